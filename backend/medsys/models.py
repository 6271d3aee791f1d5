import datetime
from . import db


def _now():
    return datetime.datetime.now(datetime.timezone.utc)


def _iso(value):
    return value.isoformat() if value is not None else None


class Doctor(db.Model):
    __tablename__ = "doctor"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(100), unique=True, nullable=False)
    password = db.Column(db.String(200), nullable=False)
    crm = db.Column(db.String(30))
    specialization = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=_now)
    patients = db.relationship("Patient", backref="doctor", lazy=True, cascade="all, delete-orphan")
    preferences = db.relationship("Preference", backref="doctor", lazy=True, cascade="all, delete-orphan")


class Patient(db.Model):
    __tablename__ = "patient"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    cpf = db.Column(db.String(20), nullable=False)
    cns = db.Column(db.String(30))
    birth_date = db.Column(db.Date)
    address = db.Column(db.String(200))
    phone = db.Column(db.String(20))
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctor.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=_now)
    prescriptions = db.relationship("Prescription", backref="patient", lazy=True, cascade="all, delete-orphan")
    evolutions = db.relationship("Evolution", backref="patient", lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "cpf": self.cpf,
            "cns": self.cns,
            "birth_date": _iso(self.birth_date),
            "address": self.address,
            "phone": self.phone,
            "created_at": _iso(self.created_at),
        }


class Medication(db.Model):
    __tablename__ = "medication"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(60))
    form = db.Column(db.String(60))
    stock = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(db.String(30), nullable=False)
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctor.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "form": self.form,
            "stock": self.stock,
            "price": self.price,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }


class Prescription(db.Model):
    __tablename__ = "prescription"

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patient.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    location = db.Column(db.String(120))
    usage_type = db.Column(db.String(20), nullable=False)
    # itens embutidos: [{"name", "dosage", "quantity"}]
    items = db.Column(db.JSON, nullable=False, default=list)
    doctor_name = db.Column(db.String(100))
    doctor_crm = db.Column(db.String(30))
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctor.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "date": _iso(self.date),
            "location": self.location,
            "usage_type": self.usage_type,
            "items": list(self.items or []),
            "doctor_name": self.doctor_name,
            "doctor_crm": self.doctor_crm,
            "created_at": _iso(self.created_at),
        }


class Evolution(db.Model):
    __tablename__ = "evolution"

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patient.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    content = db.Column(db.Text, nullable=False)
    doctor_name = db.Column(db.String(100))
    doctor_crm = db.Column(db.String(30))
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctor.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "date": _iso(self.date),
            "content": self.content,
            "doctor_name": self.doctor_name,
            "doctor_crm": self.doctor_crm,
            "created_at": _iso(self.created_at),
        }


class Preference(db.Model):
    """Preferências chave/valor do médico (ex.: nome e CRM padrão da receita)."""
    __tablename__ = "preference"
    __table_args__ = (db.UniqueConstraint("doctor_id", "key"),)

    id = db.Column(db.Integer, primary_key=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctor.id"), nullable=False)
    key = db.Column(db.String(60), nullable=False)
    value = db.Column(db.String(200))
