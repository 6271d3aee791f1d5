import datetime
import enum
import logging

from .alerts import compute_alerts, days_until_expiry, parse_date, VALIDITY_DAYS, WARNING_DAYS
from .catalog import reconcile_catalog, stock_status, is_low_stock
from .errors import (
    ValidationError, NotFoundError, PersistenceError,
    DependentOperationError, StoreError,
)
from .search import normalize_cpf, name_contains

logger = logging.getLogger(__name__)

USAGE_TYPES = ("oral", "continuous", "topical")

PATIENT_FIELDS = ("name", "cpf", "cns", "birth_date", "address", "phone")
MEDICATION_FIELDS = ("name", "description", "category", "form", "stock", "price")


def _valid_date(value):
    try:
        return parse_date(value) is not None
    except ValueError:
        return False


class View(enum.Enum):
    DASHBOARD = "dashboard"
    PATIENTS = "patients"
    PRESCRIPTIONS = "prescriptions"
    MEDICATIONS = "medications"
    ALERTS = "alerts"


class ClinicCoordinator:
    """
    Dono das quatro coleções em memória (pacientes, receitas, medicamentos
    e evoluções). As telas leem cópias somente leitura e pedem alterações
    por aqui; cada alteração vai primeiro ao repositório e só depois de
    gravada atualiza a coleção. Em caso de falha o estado fica intacto.
    """

    def __init__(self, store, validity_days=VALIDITY_DAYS, warning_days=WARNING_DAYS):
        self.store = store
        self.validity_days = validity_days
        self.warning_days = warning_days
        self.current_view = View.DASHBOARD
        self._patients = []
        self._prescriptions = []
        self._medications = []
        self._evolutions = []
        self._views = {
            View.DASHBOARD: self.dashboard,
            View.PATIENTS: lambda: list(self._patients),
            View.PRESCRIPTIONS: lambda: list(self._prescriptions),
            View.MEDICATIONS: lambda: list(self._medications),
            View.ALERTS: lambda: [row.to_dict() for row in self.alerts()],
        }

    # --- snapshots ---

    @property
    def patients(self):
        return tuple(self._patients)

    @property
    def prescriptions(self):
        return tuple(self._prescriptions)

    @property
    def medications(self):
        return tuple(self._medications)

    @property
    def evolutions(self):
        return tuple(self._evolutions)

    def load(self):
        try:
            self._patients = self.store.select_all("patients", "created_at", descending=True)
            self._medications = self.store.select_all("medications", "name")
            self._prescriptions = self.store.select_all("prescriptions", "date", descending=True)
            self._evolutions = self.store.select_all("evolutions", "date", descending=True)
        except StoreError as e:
            logger.exception("Falha ao carregar registros")
            raise PersistenceError("Erro ao carregar registros.", e) from e
        return self

    def navigate(self, view):
        if not isinstance(view, View):
            try:
                view = View(view)
            except ValueError:
                raise NotFoundError(f"Tela desconhecida: {view}")
        self.current_view = view
        return self._views[view]()

    # --- lookups ---

    def get_patient(self, patient_id):
        for patient in self._patients:
            if str(patient["id"]) == str(patient_id):
                return patient
        return None

    def get_medication(self, medication_id):
        for medication in self._medications:
            if str(medication["id"]) == str(medication_id):
                return medication
        return None

    def get_prescription(self, prescription_id):
        for prescription in self._prescriptions:
            if str(prescription["id"]) == str(prescription_id):
                return prescription
        return None

    def _require_patient(self, patient_id):
        patient = self.get_patient(patient_id)
        if patient is None:
            raise NotFoundError("Paciente não encontrado.")
        return patient

    def _require_medication(self, medication_id):
        medication = self.get_medication(medication_id)
        if medication is None:
            raise NotFoundError("Medicamento não encontrado.")
        return medication

    def find_patient_by_cpf(self, cpf):
        wanted = normalize_cpf(cpf)
        if not wanted:
            return None
        for patient in self._patients:
            if normalize_cpf(patient.get("cpf")) == wanted:
                return patient
        return None

    def search_patients(self, term=""):
        return [p for p in self._patients if name_contains(p.get("name"), term)]

    def search_medications(self, term="", low_stock_only=False):
        return [
            m for m in self._medications
            if name_contains(m.get("name"), term) and (not low_stock_only or is_low_stock(m))
        ]

    # --- patients ---

    @staticmethod
    def _patient_values(data):
        values = {field: data.get(field) for field in PATIENT_FIELDS}
        if not (values["name"] or "").strip() or not normalize_cpf(values["cpf"]):
            raise ValidationError("Nome e CPF do paciente são obrigatórios.")
        values["birth_date"] = values["birth_date"] or None
        if values["birth_date"] and not _valid_date(values["birth_date"]):
            raise ValidationError("Data de nascimento inválida (YYYY-MM-DD).")
        return values

    def create_patient(self, data):
        values = self._patient_values(data)
        try:
            patient = self.store.insert("patients", values)
        except StoreError as e:
            logger.exception("Erro ao criar paciente")
            raise PersistenceError("Erro ao criar paciente.", e) from e
        self._patients.insert(0, patient)
        logger.info("Paciente %s criado", patient["id"])
        return patient

    def update_patient(self, patient_id, data):
        patient_id = self._require_patient(patient_id)["id"]
        values = self._patient_values(data)
        try:
            patient = self.store.update("patients", patient_id, values)
        except StoreError as e:
            logger.exception("Erro ao atualizar paciente %s", patient_id)
            raise PersistenceError("Erro ao atualizar paciente.", e) from e
        self._patients = [patient if str(p["id"]) == str(patient_id) else p for p in self._patients]
        return patient

    def delete_patient(self, patient_id, confirm):
        """Exclui o paciente após confirmação; receitas e evoluções saem junto."""
        patient_id = self._require_patient(patient_id)["id"]
        if not confirm():
            return False
        try:
            self.store.delete("patients", patient_id)
        except StoreError as e:
            logger.exception("Erro ao excluir paciente %s", patient_id)
            raise PersistenceError("Erro ao excluir paciente.", e) from e

        key = str(patient_id)
        self._patients = [p for p in self._patients if str(p["id"]) != key]
        self._prescriptions = [p for p in self._prescriptions if str(p["patient_id"]) != key]
        self._evolutions = [e for e in self._evolutions if str(e["patient_id"]) != key]
        logger.info("Paciente %s excluído", patient_id)
        return True

    # --- prescriptions ---

    def _resolve_patient_id(self, data):
        patient_id = data.get("patient_id")
        if patient_id:
            return self._require_patient(patient_id)["id"], False

        patient_data = data.get("patient") or {}
        existing = self.find_patient_by_cpf(patient_data.get("cpf"))
        if existing is not None:
            return existing["id"], False

        if not (patient_data.get("name") or "").strip() or not normalize_cpf(patient_data.get("cpf")):
            raise ValidationError("Por favor, preencha o nome e CPF do paciente.")

        try:
            patient = self.create_patient(patient_data)
        except (ValidationError, PersistenceError) as e:
            raise DependentOperationError("Erro ao cadastrar o paciente da receita.", e) from e
        if not patient.get("id"):
            raise DependentOperationError("O cadastro do paciente não retornou um identificador.")
        return patient["id"], True

    def _discard_patient(self, patient_id):
        """Desfaz o cadastro automático quando a receita não pôde ser gravada."""
        try:
            self.store.delete("patients", patient_id)
        except StoreError:
            logger.exception("Paciente %s ficou cadastrado sem receita", patient_id)
            return
        self._patients = [p for p in self._patients if str(p["id"]) != str(patient_id)]

    def save_prescription(self, data):
        """
        Grava uma nova receita (sempre inserção) e, em seguida, cadastra no
        estoque os medicamentos dos itens que ainda não existem.
        """
        usage_type = data.get("usage_type") or "oral"
        if usage_type not in USAGE_TYPES:
            raise ValidationError(f"Tipo de uso inválido: {usage_type}")
        if not _valid_date(data.get("date")):
            raise ValidationError("Data da receita é obrigatória (YYYY-MM-DD).")

        items = [
            {
                "name": item.get("name", "").strip(),
                "dosage": item.get("dosage") or "",
                "quantity": item.get("quantity") or "",
            }
            for item in data.get("items") or []
            if (item.get("name") or "").strip()
        ]

        patient_id, patient_created = self._resolve_patient_id(data)
        values = {
            "patient_id": patient_id,
            "date": data.get("date"),
            "location": data.get("location"),
            "usage_type": usage_type,
            "items": items,
            "doctor_name": data.get("doctor_name"),
            "doctor_crm": data.get("doctor_crm"),
        }
        try:
            prescription = self.store.insert("prescriptions", values)
        except StoreError as e:
            logger.exception("Erro ao salvar receita")
            if patient_created:
                self._discard_patient(patient_id)
            raise PersistenceError("Erro ao salvar receita.", e) from e
        self._prescriptions.insert(0, prescription)
        logger.info("Receita %s salva para o paciente %s", prescription["id"], patient_id)

        self._register_new_medications(items)
        return prescription

    def _lookup_medication(self, name):
        return self.store.find_by_name("medications", name)

    def _register_new_medications(self, items):
        for entry in reconcile_catalog(items, self._medications, lookup=self._lookup_medication):
            try:
                self.add_medication(entry)
            except PersistenceError:
                logger.warning("Medicamento %r não foi cadastrado automaticamente", entry["name"])

    # --- evolutions ---

    def save_evolution(self, data):
        patient_id = data.get("patient_id")
        if not patient_id or not (data.get("content") or "").strip():
            raise ValidationError("Paciente e conteúdo da evolução são obrigatórios.")
        if data.get("date") and not _valid_date(data["date"]):
            raise ValidationError("Data da evolução inválida (YYYY-MM-DD).")
        patient_id = self._require_patient(patient_id)["id"]

        values = {
            "patient_id": patient_id,
            "date": data.get("date") or datetime.date.today().isoformat(),
            "content": data["content"],
            "doctor_name": data.get("doctor_name"),
            "doctor_crm": data.get("doctor_crm"),
        }
        try:
            evolution = self.store.insert("evolutions", values)
        except StoreError as e:
            logger.exception("Erro ao salvar evolução")
            raise PersistenceError("Erro ao salvar evolução.", e) from e
        self._evolutions.insert(0, evolution)
        return evolution

    def patient_evolutions(self, patient_id):
        key = str(self._require_patient(patient_id)["id"])
        return [e for e in self._evolutions if str(e["patient_id"]) == key]

    # --- medications ---

    @staticmethod
    def _medication_values(data):
        values = {field: data.get(field) for field in MEDICATION_FIELDS}
        if not (values["name"] or "").strip():
            raise ValidationError("Nome do medicamento é obrigatório.")
        try:
            values["stock"] = int(values["stock"] or 0)
            values["price"] = float(values["price"] or 0)
        except (TypeError, ValueError):
            raise ValidationError("Estoque e preço devem ser numéricos.")
        if values["stock"] < 0:
            raise ValidationError("Estoque não pode ser negativo.")
        values["name"] = values["name"].strip()
        values["status"] = stock_status(values["stock"])
        return values

    def add_medication(self, data):
        values = self._medication_values(data)
        try:
            medication = self.store.insert("medications", values)
        except StoreError as e:
            logger.exception("Erro ao cadastrar medicamento %r", values["name"])
            raise PersistenceError("Erro ao cadastrar medicamento.", e) from e
        self._medications.append(medication)
        return medication

    def update_medication(self, medication_id, data):
        medication_id = self._require_medication(medication_id)["id"]
        values = self._medication_values(data)
        try:
            medication = self.store.update("medications", medication_id, values)
        except StoreError as e:
            logger.exception("Erro ao atualizar medicamento %s", medication_id)
            raise PersistenceError("Erro ao atualizar medicamento.", e) from e
        self._medications = [
            medication if str(m["id"]) == str(medication_id) else m for m in self._medications
        ]
        return medication

    def delete_medication(self, medication_id, confirm):
        medication_id = self._require_medication(medication_id)["id"]
        if not confirm():
            return False
        try:
            self.store.delete("medications", medication_id)
        except StoreError as e:
            logger.exception("Erro ao remover medicamento %s", medication_id)
            raise PersistenceError("Erro ao remover medicamento.", e) from e
        self._medications = [m for m in self._medications if str(m["id"]) != str(medication_id)]
        return True

    # --- derived views ---

    def alerts(self, now=None):
        return compute_alerts(
            self._prescriptions,
            now or datetime.datetime.now(),
            patients=self._patients,
            validity_days=self.validity_days,
            warning_days=self.warning_days,
        )

    def _prescription_status(self, issue_date, today):
        if not _valid_date(issue_date):
            return "expired"
        return "active" if days_until_expiry(issue_date, today, self.validity_days) >= 0 else "expired"

    def timeline(self, patient_id, kind=None, today=None):
        """Receitas e evoluções do paciente, da mais recente para a mais antiga."""
        patient_id = self._require_patient(patient_id)["id"]
        today = parse_date(today) or datetime.date.today()
        key = str(patient_id)
        events = []

        if kind in (None, "prescription"):
            for p in self._prescriptions:
                if str(p["patient_id"]) != key:
                    continue
                events.append({
                    "id": p["id"],
                    "type": "prescription",
                    "date": p.get("date"),
                    "status": self._prescription_status(p.get("date"), today),
                    "usage_type": p.get("usage_type"),
                    "details": [
                        f"{i.get('name')} {i.get('dosage') or ''} - {i.get('quantity') or ''}".strip(" -")
                        for i in p.get("items") or []
                    ],
                    "doctor_name": p.get("doctor_name"),
                    "doctor_crm": p.get("doctor_crm"),
                })

        if kind in (None, "evolution"):
            for e in self._evolutions:
                if str(e["patient_id"]) != key:
                    continue
                content = e.get("content") or ""
                events.append({
                    "id": e["id"],
                    "type": "evolution",
                    "date": e.get("date"),
                    "status": "recorded",
                    "details": [content if len(content) <= 100 else content[:100] + "..."],
                    "content": content,
                    "doctor_name": e.get("doctor_name"),
                    "doctor_crm": e.get("doctor_crm"),
                })

        events.sort(key=lambda ev: parse_date(ev["date"]) or datetime.date.min, reverse=True)
        return events

    def dashboard(self):
        return {
            "patients": len(self._patients),
            "prescriptions": len(self._prescriptions),
            "medications": len(self._medications),
            "alerts": sum(1 for m in self._medications if is_low_stock(m)),
        }
