import json
import logging
import os
import uuid
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .alerts import parse_date
from .errors import StoreError
from .models import Patient, Medication, Prescription, Evolution

logger = logging.getLogger(__name__)

TABLES = ("patients", "medications", "prescriptions", "evolutions")

# colunas de data convertidas de texto ISO antes da gravação no banco
_DATE_FIELDS = {
    "patients": ("birth_date",),
    "prescriptions": ("date",),
    "evolutions": ("date",),
}


class RecordStore:
    """Contrato dos repositórios consumidos pelo coordenador."""

    def insert(self, table, values):
        raise NotImplementedError

    def select_all(self, table, order_by, descending=False):
        raise NotImplementedError

    def update(self, table, record_id, values):
        raise NotImplementedError

    def delete(self, table, record_id):
        raise NotImplementedError

    def find_by_name(self, table, name):
        raise NotImplementedError


class SQLAlchemyStore(RecordStore):
    """Persistência no banco relacional, restrita aos registros do médico."""

    models = {
        "patients": Patient,
        "medications": Medication,
        "prescriptions": Prescription,
        "evolutions": Evolution,
    }

    def __init__(self, doctor_id):
        self.doctor_id = doctor_id

    def _model(self, table):
        try:
            return self.models[table]
        except KeyError:
            raise StoreError(f"Tabela desconhecida: {table}")

    def _query(self, table):
        model = self._model(table)
        return model.query.filter_by(doctor_id=self.doctor_id)

    def _get(self, table, record_id):
        row = self._query(table).filter_by(id=record_id).first()
        if row is None:
            raise StoreError(f"Registro {record_id} não encontrado em {table}")
        return row

    @staticmethod
    def _prepare(table, values):
        values = dict(values)
        values.pop("id", None)
        values.pop("created_at", None)
        for field in _DATE_FIELDS.get(table, ()):
            if field in values:
                values[field] = parse_date(values[field])
        return values

    def insert(self, table, values):
        model = self._model(table)
        row = model(**self._prepare(table, values), doctor_id=self.doctor_id)
        try:
            db.session.add(row)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreError(str(e)) from e
        return row.to_dict()

    def select_all(self, table, order_by, descending=False):
        column = getattr(self._model(table), order_by)
        ordering = column.desc() if descending else column.asc()
        try:
            return [row.to_dict() for row in self._query(table).order_by(ordering).all()]
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def update(self, table, record_id, values):
        row = self._get(table, record_id)
        try:
            for key, value in self._prepare(table, values).items():
                setattr(row, key, value)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreError(str(e)) from e
        return row.to_dict()

    def delete(self, table, record_id):
        row = self._get(table, record_id)
        try:
            db.session.delete(row)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreError(str(e)) from e

    def find_by_name(self, table, name):
        model = self._model(table)
        try:
            row = (
                self._query(table)
                .filter(func.lower(model.name) == name.strip().lower())
                .first()
            )
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return row.to_dict() if row else None


class LocalStore(RecordStore):
    """
    Versão sem servidor: todos os registros ficam em um único arquivo JSON,
    o equivalente ao armazenamento local do navegador. Não há sincronização
    com o banco relacional.
    """

    def __init__(self, path):
        self.path = path

    def _read(self):
        if not os.path.exists(self.path):
            return {table: [] for table in TABLES}
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise StoreError(f"Falha ao ler {self.path}: {e}") from e
        for table in TABLES:
            data.setdefault(table, [])
        return data

    def _write(self, data):
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        try:
            with open(self.path, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
        except OSError as e:
            raise StoreError(f"Falha ao gravar {self.path}: {e}") from e

    @staticmethod
    def _check(table):
        if table not in TABLES:
            raise StoreError(f"Tabela desconhecida: {table}")

    def insert(self, table, values):
        self._check(table)
        data = self._read()
        row = dict(values)
        row["id"] = uuid.uuid4().hex
        row["created_at"] = datetime.now(timezone.utc).isoformat()
        data[table].append(row)
        self._write(data)
        return dict(row)

    def select_all(self, table, order_by, descending=False):
        self._check(table)
        rows = self._read()[table]
        return sorted(rows, key=lambda r: (r.get(order_by) is None, r.get(order_by) or ""), reverse=descending)

    def update(self, table, record_id, values):
        self._check(table)
        data = self._read()
        for row in data[table]:
            if row["id"] == record_id:
                row.update({k: v for k, v in values.items() if k not in ("id", "created_at")})
                self._write(data)
                return dict(row)
        raise StoreError(f"Registro {record_id} não encontrado em {table}")

    def delete(self, table, record_id):
        self._check(table)
        data = self._read()
        remaining = [r for r in data[table] if r["id"] != record_id]
        if len(remaining) == len(data[table]):
            raise StoreError(f"Registro {record_id} não encontrado em {table}")
        data[table] = remaining
        if table == "patients":
            for dependent in ("prescriptions", "evolutions"):
                data[dependent] = [r for r in data[dependent] if r.get("patient_id") != record_id]
        self._write(data)

    def find_by_name(self, table, name):
        self._check(table)
        wanted = name.strip().lower()
        for row in self._read()[table]:
            if (row.get("name") or "").strip().lower() == wanted:
                return dict(row)
        return None
