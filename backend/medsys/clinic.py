import os
from functools import wraps

from flask import current_app, request
from flask_restx import fields

from .coordinator import ClinicCoordinator
from .errors import MedSysError
from .models import Preference
from .store import SQLAlchemyStore, LocalStore
from . import db

DOCTOR_NAME_KEY = "doctor_name"
DOCTOR_CRM_KEY = "doctor_crm"


class RecordId(fields.Raw):
    """Identificador de registro: inteiro no banco, texto no armazenamento local."""
    __schema_type__ = ["integer", "string"]
    __schema_example__ = 1


def store_for(doctor):
    if current_app.config.get("STORAGE_BACKEND") == "local":
        path = os.path.join(current_app.config["LOCAL_STORE_DIR"], f"{doctor.id}.json")
        return LocalStore(path)
    return SQLAlchemyStore(doctor.id)


def coordinator_for(doctor):
    """Monta o coordenador do médico autenticado com as coleções carregadas."""
    coordinator = ClinicCoordinator(
        store_for(doctor),
        validity_days=current_app.config["PRESCRIPTION_VALIDITY_DAYS"],
        warning_days=current_app.config["PRESCRIPTION_WARNING_DAYS"],
    )
    return coordinator.load()


def handles_clinic_errors(f):
    """Converte os erros do coordenador na resposta JSON da API."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except MedSysError as e:
            if e.status_code >= 500:
                current_app.logger.error("%s (%s)", e.message, e.error)
            return e.to_response()
    return wrapper


def confirmation_flag():
    """Exclusões só acontecem com ``?confirm=true``."""
    value = request.args.get("confirm", "")
    return lambda: value.lower() in ("1", "true", "yes", "sim")


def get_preferences(doctor):
    stored = {p.key: p.value for p in Preference.query.filter_by(doctor_id=doctor.id).all()}
    return {
        DOCTOR_NAME_KEY: stored.get(DOCTOR_NAME_KEY) or doctor.name,
        DOCTOR_CRM_KEY: stored.get(DOCTOR_CRM_KEY) or doctor.crm,
    }


def set_preferences(doctor, values):
    for key in (DOCTOR_NAME_KEY, DOCTOR_CRM_KEY):
        if key not in values:
            continue
        pref = Preference.query.filter_by(doctor_id=doctor.id, key=key).first()
        if pref is None:
            pref = Preference(doctor_id=doctor.id, key=key)
            db.session.add(pref)
        pref.value = values[key]
    db.session.commit()
    return get_preferences(doctor)
