from flask import request, current_app
from flask_restx import Namespace, fields, Resource
from .auth import token_required
from .clinic import get_preferences, set_preferences
from . import db

preferences_ns = Namespace("preferences", description="Preferências do médico")

preferences_model = preferences_ns.model("Preferences", {
    "doctor_name": fields.String(description="Nome padrão do médico prescritor"),
    "doctor_crm": fields.String(description="CRM padrão do médico prescritor"),
})


@preferences_ns.route("/")
class Preferences(Resource):
    @token_required
    def get(current_doctor, self):
        return get_preferences(current_doctor), 200

    @token_required
    @preferences_ns.expect(preferences_model, validate=True)
    def put(current_doctor, self):
        """
        Atualiza o nome e o CRM usados por padrão nas receitas e evoluções.
        """
        try:
            return set_preferences(current_doctor, request.get_json()), 200
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception("Erro ao salvar preferências")
            return {"message": "Erro ao salvar preferências.", "error": str(e)}, 500
