from flask import request, current_app
from flask_restx import Namespace, fields, Resource
from .auth import token_required
from .clinic import coordinator_for, handles_clinic_errors, confirmation_flag
from .errors import ConfirmationRequired

medications_ns = Namespace("medications", description="Farmácia e estoque")

medication_model = medications_ns.model("Medication", {
    "name": fields.String(required=True, description="Nome do medicamento"),
    "description": fields.String(description="Descrição / posologia padrão"),
    "category": fields.String(description="Categoria"),
    "form": fields.String(description="Forma farmacêutica"),
    "stock": fields.Integer(description="Quantidade em estoque", min=0),
    "price": fields.Float(description="Preço"),
})


@medications_ns.route("/")
class MedicationList(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self):
        """
        Estoque em ordem alfabética. Filtros: ?search=amox&low_stock=true
        """
        search = request.args.get("search", "", type=str)
        low_stock = request.args.get("low_stock", "").lower() in ("1", "true", "yes", "sim")
        medications = coordinator_for(current_doctor).search_medications(search, low_stock_only=low_stock)
        return {"total": len(medications), "medications": medications}, 200

    @token_required
    @medications_ns.expect(medication_model, validate=True)
    @handles_clinic_errors
    def post(current_doctor, self):
        medication = coordinator_for(current_doctor).add_medication(request.get_json())
        return {"message": "Medicamento cadastrado com sucesso!", "id": medication["id"], "medication": medication}, 201


@medications_ns.route("/suggest")
class MedicationSuggest(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self):
        """
        Sugestões para o autocompletar dos itens da receita: ?q=ibu
        """
        term = request.args.get("q", "", type=str)
        if not term.strip():
            return {"suggestions": []}, 200
        matches = coordinator_for(current_doctor).search_medications(term)
        return {"suggestions": [
            {"id": m["id"], "name": m["name"], "dosage": m.get("description") or ""} for m in matches
        ]}, 200


@medications_ns.route("/<string:id>")
class MedicationDetail(Resource):
    @token_required
    @medications_ns.expect(medication_model, validate=True)
    @handles_clinic_errors
    def put(current_doctor, self, id):
        """
        Edição completa, incluindo estoque; o status é recalculado.
        """
        medication = coordinator_for(current_doctor).update_medication(id, request.get_json())
        return {"message": "Medicamento atualizado com sucesso!", "medication": medication}, 200

    @token_required
    @handles_clinic_errors
    def delete(current_doctor, self, id):
        """
        Remove o item do estoque. Exige ?confirm=true.
        """
        if not coordinator_for(current_doctor).delete_medication(id, confirmation_flag()):
            raise ConfirmationRequired("Deseja remover este item do estoque? Envie confirm=true.")
        current_app.logger.info("Medicamento %s removido pelo médico %s", id, current_doctor.id)
        return {"message": "Medicamento removido com sucesso!"}, 200
