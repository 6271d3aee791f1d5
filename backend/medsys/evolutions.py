from flask import request
from flask_restx import Namespace, fields, Resource
from .auth import token_required
from .clinic import coordinator_for, handles_clinic_errors, get_preferences, RecordId, DOCTOR_NAME_KEY, DOCTOR_CRM_KEY

evolutions_ns = Namespace("evolutions", description="Evoluções clínicas")

evolution_model = evolutions_ns.model("Evolution", {
    "patient_id": RecordId(required=True, description="Paciente"),
    "date": fields.String(description="Data (YYYY-MM-DD); padrão: hoje"),
    "content": fields.String(required=True, description="Texto da evolução"),
    "doctor_name": fields.String(description="Médico (padrão: preferências)"),
    "doctor_crm": fields.String(description="CRM (padrão: preferências)"),
})


@evolutions_ns.route("/")
class EvolutionCreate(Resource):
    @token_required
    @evolutions_ns.expect(evolution_model, validate=True)
    @handles_clinic_errors
    def post(current_doctor, self):
        data = request.get_json()
        defaults = get_preferences(current_doctor)
        data["doctor_name"] = data.get("doctor_name") or defaults[DOCTOR_NAME_KEY]
        data["doctor_crm"] = data.get("doctor_crm") or defaults[DOCTOR_CRM_KEY]

        evolution = coordinator_for(current_doctor).save_evolution(data)
        return {"message": "Evolução registrada com sucesso!", "id": evolution["id"], "evolution": evolution}, 201


@evolutions_ns.route("/<string:patient_id>")
class PatientEvolutions(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self, patient_id):
        """
        Lista as evoluções de um paciente, mais recentes primeiro.
        """
        evolutions = coordinator_for(current_doctor).patient_evolutions(patient_id)
        return {"patient_id": patient_id, "evolutions": evolutions}, 200
