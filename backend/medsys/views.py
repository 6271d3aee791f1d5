import datetime
from flask import request
from flask_restx import Namespace, Resource
from .auth import token_required
from .clinic import coordinator_for, handles_clinic_errors
from .errors import ValidationError

views_ns = Namespace("views", description="Painel, alertas de validade e telas")


@views_ns.route("/alerts")
class ExpiryAlerts(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self):
        """
        Receitas vencidas ou que vencem nos próximos dias, da emissão mais antiga
        para a mais recente. Parâmetro opcional: ?now=2024-03-02T00:00:00
        """
        now = request.args.get("now")
        try:
            now = datetime.datetime.fromisoformat(now) if now else None
        except ValueError:
            raise ValidationError("Parâmetro 'now' inválido (use ISO 8601).")
        rows = coordinator_for(current_doctor).alerts(now)
        return {"total": len(rows), "alerts": [row.to_dict() for row in rows]}, 200


@views_ns.route("/views/<string:view>")
class ViewSnapshot(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self, view):
        """
        Conteúdo de uma tela: dashboard, patients, prescriptions, medications ou alerts.
        """
        coordinator = coordinator_for(current_doctor)
        data = coordinator.navigate(view)
        return {"view": coordinator.current_view.value, "data": data}, 200
