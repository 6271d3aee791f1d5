from flask import request
from flask_restx import Namespace, fields, Resource
from .auth import token_required
from .clinic import coordinator_for, handles_clinic_errors, get_preferences, RecordId, DOCTOR_NAME_KEY, DOCTOR_CRM_KEY
from .coordinator import USAGE_TYPES
from .errors import NotFoundError

prescriptions_ns = Namespace("prescriptions", description="Receitas médicas")

item_model = prescriptions_ns.model("PrescriptionItem", {
    "name": fields.String(required=True, description="Nome do medicamento"),
    "dosage": fields.String(description="Posologia"),
    "quantity": fields.String(description="Quantidade"),
})

prescription_patient_model = prescriptions_ns.model("PrescriptionPatient", {
    "name": fields.String(description="Nome do paciente"),
    "cpf": fields.String(description="CPF; se não existir, o paciente é cadastrado"),
    "cns": fields.String(description="Cartão Nacional de Saúde"),
    "birth_date": fields.String(description="Data de nascimento (YYYY-MM-DD)"),
    "address": fields.String(description="Endereço"),
    "phone": fields.String(description="Telefone"),
})

prescription_model = prescriptions_ns.model("Prescription", {
    "patient_id": RecordId(description="Paciente já cadastrado"),
    "patient": fields.Nested(prescription_patient_model, description="Dados do paciente quando não há patient_id"),
    "date": fields.String(required=True, description="Data de emissão (YYYY-MM-DD)"),
    "location": fields.String(description="Local de emissão"),
    "usage_type": fields.String(enum=list(USAGE_TYPES), description="Tipo de uso"),
    "items": fields.List(fields.Nested(item_model), required=True),
    "doctor_name": fields.String(description="Médico prescritor (padrão: preferências)"),
    "doctor_crm": fields.String(description="CRM do prescritor (padrão: preferências)"),
})


@prescriptions_ns.route("/")
class PrescriptionList(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self):
        """
        Histórico de receitas, mais recentes primeiro. Filtro opcional: ?patient_id=
        """
        patient_id = request.args.get("patient_id")
        prescriptions = coordinator_for(current_doctor).prescriptions
        if patient_id:
            prescriptions = [p for p in prescriptions if str(p["patient_id"]) == patient_id]
        return {"prescriptions": list(prescriptions)}, 200

    @token_required
    @prescriptions_ns.expect(prescription_model, validate=True)
    @handles_clinic_errors
    def post(current_doctor, self):
        """
        Salva uma nova receita. Cadastra o paciente pelo CPF quando necessário
        e inclui no estoque os medicamentos ainda não cadastrados.
        """
        data = request.get_json()
        defaults = get_preferences(current_doctor)
        data["doctor_name"] = data.get("doctor_name") or defaults[DOCTOR_NAME_KEY]
        data["doctor_crm"] = data.get("doctor_crm") or defaults[DOCTOR_CRM_KEY]

        prescription = coordinator_for(current_doctor).save_prescription(data)
        return {"message": "Prescrição salva com sucesso!", "id": prescription["id"], "prescription": prescription}, 201


@prescriptions_ns.route("/<string:id>")
class PrescriptionDetail(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self, id):
        coordinator = coordinator_for(current_doctor)
        prescription = coordinator.get_prescription(id)
        if prescription is None:
            raise NotFoundError("Receita não encontrada.")
        return {"prescription": prescription, "patient": coordinator.get_patient(prescription["patient_id"])}, 200
