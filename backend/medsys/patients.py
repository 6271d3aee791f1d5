from flask import request, current_app
from flask_restx import Namespace, fields, Resource
from .auth import token_required
from .clinic import coordinator_for, handles_clinic_errors, confirmation_flag
from .errors import ConfirmationRequired, NotFoundError

patients_ns = Namespace("patients", description="Gerenciamento de pacientes")

patient_model = patients_ns.model("Patient", {
    "name": fields.String(required=True, description="Nome do paciente"),
    "cpf": fields.String(required=True, description="CPF (com ou sem pontuação)"),
    "cns": fields.String(description="Cartão Nacional de Saúde"),
    "birth_date": fields.String(description="Data de nascimento (YYYY-MM-DD)"),
    "address": fields.String(description="Endereço"),
    "phone": fields.String(description="Telefone"),
})


@patients_ns.route("/")
class PatientList(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self):
        """
        Listagem de pacientes com paginação e busca por nome:
        /api/patients?page=1&per_page=10&search=Joao
        """
        page = max(request.args.get("page", 1, type=int), 1)
        per_page = max(request.args.get("per_page", 10, type=int), 1)
        search = request.args.get("search", "", type=str)

        matches = coordinator_for(current_doctor).search_patients(search)
        start = (page - 1) * per_page

        return {
            "status": "success",
            "page": page,
            "per_page": per_page,
            "total": len(matches),
            "patients": matches[start:start + per_page]
        }, 200

    @token_required
    @patients_ns.expect(patient_model, validate=True)
    @handles_clinic_errors
    def post(current_doctor, self):
        """
        Cria um novo paciente para o médico autenticado.
        """
        patient = coordinator_for(current_doctor).create_patient(request.get_json())
        return {"message": "Paciente criado com sucesso!", "id": patient["id"], "patient": patient}, 201


@patients_ns.route("/by-cpf/<string:cpf>")
class PatientByCpf(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self, cpf):
        """
        Busca o paciente pelo CPF, ignorando pontuação (preenchimento automático da receita).
        """
        patient = coordinator_for(current_doctor).find_patient_by_cpf(cpf)
        if patient is None:
            raise NotFoundError("Paciente não encontrado.")
        return patient, 200


@patients_ns.route("/<string:id>")
class PatientDetail(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self, id):
        patient = coordinator_for(current_doctor).get_patient(id)
        if patient is None:
            raise NotFoundError("Paciente não encontrado.")
        return patient, 200

    @token_required
    @patients_ns.expect(patient_model, validate=True)
    @handles_clinic_errors
    def put(current_doctor, self, id):
        """
        Atualiza todos os dados do paciente.
        """
        patient = coordinator_for(current_doctor).update_patient(id, request.get_json())
        return {"message": "Paciente atualizado com sucesso!", "patient": patient}, 200

    @token_required
    @handles_clinic_errors
    def delete(current_doctor, self, id):
        """
        Exclui o paciente e, junto, suas receitas e evoluções. Exige ?confirm=true.
        """
        if not coordinator_for(current_doctor).delete_patient(id, confirmation_flag()):
            raise ConfirmationRequired("Deseja excluir permanentemente este paciente? Envie confirm=true.")
        current_app.logger.info("Paciente %s excluído pelo médico %s", id, current_doctor.id)
        return {"message": "Paciente excluído com sucesso!"}, 200


@patients_ns.route("/<string:id>/timeline")
class PatientTimeline(Resource):
    @token_required
    @handles_clinic_errors
    def get(current_doctor, self, id):
        """
        Histórico do paciente: receitas e evoluções em ordem decrescente de data.
        Filtro opcional: ?kind=prescription ou ?kind=evolution
        """
        kind = request.args.get("kind") or None
        events = coordinator_for(current_doctor).timeline(id, kind=kind)
        return {"patient_id": id, "events": events}, 200
