import datetime
from dataclasses import dataclass
from typing import Optional

VALIDITY_DAYS = 60
WARNING_DAYS = 7

EXPIRED = "EXPIRED"
MISSING_PATIENT_LABEL = "Paciente removido"


def parse_date(value):
    """Aceita ``date``, ``datetime`` ou texto ISO (``YYYY-MM-DD``)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value)[:10])


def _as_datetime(value):
    if isinstance(value, datetime.datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    return datetime.datetime.fromisoformat(str(value))


def days_until_expiry(issue_date, now, validity_days=VALIDITY_DAYS):
    """Dias inteiros (truncados) entre ``now`` e o vencimento da receita."""
    expiry = parse_date(issue_date) + datetime.timedelta(days=validity_days)
    delta = datetime.datetime.combine(expiry, datetime.time()) - _as_datetime(now)
    return int(delta.total_seconds() / 86400)


def expiry_status(days_until_expiry):
    if days_until_expiry < 0:
        return EXPIRED
    return f"EXPIRES IN {days_until_expiry} DAYS"


@dataclass(frozen=True)
class AlertRow:
    prescription: dict
    patient: Optional[dict]
    expiry_date: datetime.date
    days_until_expiry: int
    status: str

    @property
    def patient_label(self):
        if not self.patient:
            return MISSING_PATIENT_LABEL
        return self.patient.get("name") or MISSING_PATIENT_LABEL

    def to_dict(self):
        return {
            "prescription_id": self.prescription.get("id"),
            "patient_id": self.prescription.get("patient_id"),
            "patient_name": self.patient_label,
            "issue_date": parse_date(self.prescription.get("date")).isoformat(),
            "expiry_date": self.expiry_date.isoformat(),
            "days_until_expiry": self.days_until_expiry,
            "status": self.status,
        }


def compute_alerts(prescriptions, now, patients=(), validity_days=VALIDITY_DAYS, warning_days=WARNING_DAYS):
    """
    Lista as receitas vencidas ou que vencem em até ``warning_days`` dias,
    da mais antiga para a mais recente.

    A validade é ``data de emissão + validity_days``. Os dias restantes são
    truncados para inteiro. Receitas sem data são ignoradas e paciente
    ausente vira um rótulo provisório, nunca um erro.
    """
    now = _as_datetime(now)
    by_id = {p.get("id"): p for p in patients}
    rows = []

    for prescription in prescriptions:
        issue_date = parse_date(prescription.get("date"))
        if issue_date is None:
            continue

        expiry = issue_date + datetime.timedelta(days=validity_days)
        days_until = days_until_expiry(issue_date, now, validity_days)
        if days_until > warning_days:
            continue

        rows.append((issue_date, AlertRow(
            prescription=prescription,
            patient=by_id.get(prescription.get("patient_id")),
            expiry_date=expiry,
            days_until_expiry=days_until,
            status=expiry_status(days_until),
        )))

    rows.sort(key=lambda pair: pair[0])
    return [row for _, row in rows]
