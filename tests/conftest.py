import pytest

from config import TestConfig
from medsys import create_app, db
from medsys.coordinator import ClinicCoordinator
from medsys.store import LocalStore


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def register_and_login(client, email="marina@example.com", name="Dra. Marina", crm="CRM-SP 207506"):
    client.post("/api/auth/register", json={
        "name": name,
        "email": email,
        "password": "segredo123",
        "crm": crm,
    })
    response = client.post("/api/auth/login", json={"email": email, "password": "segredo123"})
    return {"x-access-token": response.get_json()["token"]}


@pytest.fixture
def auth_headers(client):
    return register_and_login(client)


@pytest.fixture
def local_store(tmp_path):
    return LocalStore(str(tmp_path / "clinic.json"))


@pytest.fixture
def coordinator(local_store):
    return ClinicCoordinator(local_store).load()
