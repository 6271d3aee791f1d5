import pytest

from medsys.errors import StoreError
from medsys.store import LocalStore, SQLAlchemyStore
from medsys.models import Doctor
from medsys import db


def test_local_store_persists_between_instances(tmp_path):
    path = str(tmp_path / "dados" / "1.json")
    first = LocalStore(path)
    patient = first.insert("patients", {"name": "Maria", "cpf": "123"})

    second = LocalStore(path)

    assert second.select_all("patients", "name") == [patient]
    assert patient["id"] and patient["created_at"]


def test_local_store_update_delete_and_lookup(local_store):
    med = local_store.insert("medications", {"name": "Amoxicilina", "stock": 1})

    updated = local_store.update("medications", med["id"], {"stock": 40, "id": "ignorado"})
    assert updated["stock"] == 40
    assert updated["id"] == med["id"]

    assert local_store.find_by_name("medications", "  AMOXICILINA ")["id"] == med["id"]
    assert local_store.find_by_name("medications", "Amoxi") is None

    local_store.delete("medications", med["id"])
    assert local_store.select_all("medications", "name") == []

    with pytest.raises(StoreError):
        local_store.delete("medications", med["id"])
    with pytest.raises(StoreError):
        local_store.update("medications", "nao-existe", {})
    with pytest.raises(StoreError):
        local_store.insert("exames", {})


def test_local_store_ordering(local_store):
    for date in ("2024-02-01", "2024-03-01", "2024-01-01"):
        local_store.insert("prescriptions", {"patient_id": "p", "date": date})

    dates = [p["date"] for p in local_store.select_all("prescriptions", "date", descending=True)]

    assert dates == ["2024-03-01", "2024-02-01", "2024-01-01"]


def make_doctor(email):
    doctor = Doctor(name="Dra. Teste", email=email, password="x")
    db.session.add(doctor)
    db.session.commit()
    return doctor


def test_sqlalchemy_store_is_scoped_by_doctor(app):
    store_a = SQLAlchemyStore(make_doctor("a@example.com").id)
    store_b = SQLAlchemyStore(make_doctor("b@example.com").id)

    patient = store_a.insert("patients", {"name": "Maria", "cpf": "123", "birth_date": "1980-05-17"})

    assert patient["birth_date"] == "1980-05-17"
    assert store_a.select_all("patients", "created_at", descending=True) == [patient]
    assert store_b.select_all("patients", "created_at") == []
    with pytest.raises(StoreError):
        store_b.delete("patients", patient["id"])


def test_sqlalchemy_store_cascades_patient_delete(app):
    store = SQLAlchemyStore(make_doctor("c@example.com").id)
    patient = store.insert("patients", {"name": "Maria", "cpf": "123"})
    store.insert("prescriptions", {
        "patient_id": patient["id"],
        "date": "2024-01-01",
        "usage_type": "oral",
        "items": [{"name": "Dipirona", "dosage": "500mg", "quantity": "10"}],
    })
    store.insert("evolutions", {"patient_id": patient["id"], "date": "2024-01-02", "content": "ok"})

    store.delete("patients", patient["id"])

    assert store.select_all("prescriptions", "date") == []
    assert store.select_all("evolutions", "date") == []


def test_sqlalchemy_store_name_lookup_is_case_insensitive(app):
    store = SQLAlchemyStore(make_doctor("d@example.com").id)
    store.insert("medications", {"name": "Losartana", "stock": 0, "price": 0, "status": "order requested"})

    assert store.find_by_name("medications", " losartana ")["name"] == "Losartana"
    assert store.find_by_name("medications", "Losar") is None
