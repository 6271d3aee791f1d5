from conftest import register_and_login


def create_patient(client, headers, **overrides):
    payload = {"name": "Maria da Silva", "cpf": "123.456.789-00", "birth_date": "", "phone": "(12) 99999-0000"}
    payload.update(overrides)
    return client.post("/api/patients/", json=payload, headers=headers)


def test_register_login_and_session_restore(client):
    headers = register_and_login(client)

    response = client.get("/api/auth/me", headers=headers)

    assert response.status_code == 200
    assert response.get_json()["doctor"]["email"] == "marina@example.com"


def test_register_rejects_duplicates_and_short_passwords(client):
    register_and_login(client)

    duplicate = client.post("/api/auth/register", json={
        "name": "Outra", "email": "marina@example.com", "password": "segredo123",
    })
    short = client.post("/api/auth/register", json={
        "name": "Outra", "email": "outra@example.com", "password": "123",
    })

    assert duplicate.status_code == 400
    assert short.status_code == 400


def test_login_with_wrong_password(client):
    register_and_login(client)

    response = client.post("/api/auth/login", json={"email": "marina@example.com", "password": "errada"})

    assert response.status_code == 401


def test_protected_routes_require_token(client):
    assert client.get("/api/patients/").status_code == 401
    assert client.get("/api/patients/", headers={"x-access-token": "lixo"}).status_code == 401


def test_patient_crud(client, auth_headers):
    created = create_patient(client, auth_headers)
    assert created.status_code == 201
    patient_id = created.get_json()["id"]
    assert created.get_json()["patient"]["birth_date"] is None

    listing = client.get("/api/patients/?search=silva", headers=auth_headers).get_json()
    assert listing["total"] == 1

    updated = client.put(f"/api/patients/{patient_id}", json={
        "name": "Maria da Silva Santos", "cpf": "123.456.789-00", "birth_date": "1980-05-17",
    }, headers=auth_headers)
    assert updated.status_code == 200
    assert updated.get_json()["patient"]["birth_date"] == "1980-05-17"

    by_cpf = client.get("/api/patients/by-cpf/12345678900", headers=auth_headers)
    assert by_cpf.get_json()["name"] == "Maria da Silva Santos"


def test_patient_validation_error(client, auth_headers):
    response = create_patient(client, auth_headers, cpf="   ")

    assert response.status_code == 400
    assert "obrigatórios" in response.get_json()["message"]


def test_patient_cpf_without_digits_is_rejected(client, auth_headers):
    response = create_patient(client, auth_headers, cpf="...-")

    assert response.status_code == 400
    assert client.get("/api/patients/", headers=auth_headers).get_json()["total"] == 0


def test_patients_are_scoped_by_doctor(client, auth_headers):
    create_patient(client, auth_headers)
    other = register_and_login(client, email="outro@example.com", name="Dr. Outro")

    assert client.get("/api/patients/", headers=other).get_json()["total"] == 0


def test_delete_patient_needs_confirmation_and_cascades(client, auth_headers):
    patient_id = create_patient(client, auth_headers).get_json()["id"]
    client.post("/api/prescriptions/", json={
        "patient_id": patient_id,
        "date": "2024-01-01",
        "items": [{"name": "Dipirona", "dosage": "500mg", "quantity": "10 comprimidos"}],
    }, headers=auth_headers)
    client.post("/api/evolutions/", json={
        "patient_id": patient_id, "content": "Paciente estável.",
    }, headers=auth_headers)

    refused = client.delete(f"/api/patients/{patient_id}", headers=auth_headers)
    assert refused.status_code == 409

    deleted = client.delete(f"/api/patients/{patient_id}?confirm=true", headers=auth_headers)
    assert deleted.status_code == 200
    assert client.get("/api/prescriptions/", headers=auth_headers).get_json()["prescriptions"] == []
    assert client.get(f"/api/patients/{patient_id}", headers=auth_headers).status_code == 404


def test_prescription_for_new_patient_registers_patient_and_medications(client, auth_headers):
    client.post("/api/medications/", json={"name": "Amoxicillin", "stock": 30}, headers=auth_headers)

    response = client.post("/api/prescriptions/", json={
        "patient": {"name": "João Souza", "cpf": "987.654.321-00"},
        "date": "2024-01-01",
        "location": "Caraguatatuba",
        "usage_type": "continuous",
        "items": [
            {"name": "amoxicillin ", "dosage": "500mg", "quantity": "21"},
            {"name": "Ibuprofen", "dosage": "200mg", "quantity": "1 caixa"},
        ],
    }, headers=auth_headers)

    assert response.status_code == 201
    prescription = response.get_json()["prescription"]
    patients = client.get("/api/patients/", headers=auth_headers).get_json()["patients"]
    assert len(patients) == 1
    assert prescription["patient_id"] == patients[0]["id"]
    # nome e CRM padrão vêm do cadastro do médico
    assert prescription["doctor_name"] == "Dra. Marina"
    assert prescription["doctor_crm"] == "CRM-SP 207506"

    medications = client.get("/api/medications/", headers=auth_headers).get_json()["medications"]
    assert [m["name"] for m in medications] == ["Amoxicillin", "Ibuprofen"]
    assert medications[1]["status"] == "order requested"

    detail = client.get(f"/api/prescriptions/{prescription['id']}", headers=auth_headers).get_json()
    assert detail["patient"]["name"] == "João Souza"


def test_records_accept_the_patient_id_returned_on_creation(client, auth_headers):
    patient_id = create_patient(client, auth_headers).get_json()["id"]

    prescription = client.post("/api/prescriptions/", json={
        "patient_id": patient_id, "date": "2024-01-01", "items": [],
    }, headers=auth_headers)
    evolution = client.post("/api/evolutions/", json={
        "patient_id": patient_id, "content": "Paciente estável.",
    }, headers=auth_headers)
    as_text = client.post("/api/evolutions/", json={
        "patient_id": str(patient_id), "content": "Retorno em 30 dias.",
    }, headers=auth_headers)

    assert prescription.status_code == 201
    assert prescription.get_json()["prescription"]["patient_id"] == patient_id
    assert evolution.status_code == 201
    assert as_text.status_code == 201
    assert client.post("/api/evolutions/", json={
        "patient_id": [patient_id], "content": "x",
    }, headers=auth_headers).status_code == 400


def test_prescription_without_patient_data(client, auth_headers):
    response = client.post("/api/prescriptions/", json={
        "patient": {"name": "Sem CPF"},
        "date": "2024-01-01",
        "items": [],
    }, headers=auth_headers)

    assert response.status_code == 400


def test_medication_crud_and_filters(client, auth_headers):
    med_id = client.post("/api/medications/", json={
        "name": "Dipirona", "description": "500mg", "category": "Analgésico", "form": "Comprimido", "stock": 50,
    }, headers=auth_headers).get_json()["id"]
    client.post("/api/medications/", json={"name": "Losartana", "stock": 3}, headers=auth_headers)

    low = client.get("/api/medications/?low_stock=true", headers=auth_headers).get_json()
    assert [m["name"] for m in low["medications"]] == ["Losartana"]

    suggestions = client.get("/api/medications/suggest?q=piro", headers=auth_headers).get_json()["suggestions"]
    assert suggestions == [{"id": med_id, "name": "Dipirona", "dosage": "500mg"}]

    updated = client.put(f"/api/medications/{med_id}", json={"name": "Dipirona", "stock": 15}, headers=auth_headers)
    assert updated.get_json()["medication"]["status"] == "low stock"

    assert client.delete(f"/api/medications/{med_id}", headers=auth_headers).status_code == 409
    assert client.delete(f"/api/medications/{med_id}?confirm=sim", headers=auth_headers).status_code == 200
    assert client.put(f"/api/medications/{med_id}", json={"name": "X"}, headers=auth_headers).status_code == 404


def test_evolutions_and_timeline(client, auth_headers):
    patient_id = create_patient(client, auth_headers).get_json()["id"]
    client.post("/api/prescriptions/", json={
        "patient_id": patient_id,
        "date": "2024-01-01",
        "items": [{"name": "Dipirona", "dosage": "500mg", "quantity": "10"}],
    }, headers=auth_headers)
    created = client.post("/api/evolutions/", json={
        "patient_id": patient_id, "date": "2024-02-01", "content": "Melhora significativa.",
    }, headers=auth_headers)
    assert created.status_code == 201

    evolutions = client.get(f"/api/evolutions/{patient_id}", headers=auth_headers).get_json()["evolutions"]
    assert [e["content"] for e in evolutions] == ["Melhora significativa."]

    timeline = client.get(f"/api/patients/{patient_id}/timeline", headers=auth_headers).get_json()["events"]
    assert [e["type"] for e in timeline] == ["evolution", "prescription"]

    only = client.get(f"/api/patients/{patient_id}/timeline?kind=prescription", headers=auth_headers)
    assert [e["type"] for e in only.get_json()["events"]] == ["prescription"]


def test_expiry_alerts(client, auth_headers):
    patient_id = create_patient(client, auth_headers).get_json()["id"]
    for date in ("2024-01-05", "2024-01-20", "2024-01-01", "2023-12-01"):
        client.post("/api/prescriptions/", json={
            "patient_id": patient_id, "date": date, "items": [],
        }, headers=auth_headers)

    response = client.get("/api/alerts?now=2024-03-02T00:00:00", headers=auth_headers)

    assert response.status_code == 200
    alerts = response.get_json()["alerts"]
    # 2024-01-20 vence em 2024-03-20, fora da janela de aviso
    assert [a["issue_date"] for a in alerts] == ["2023-12-01", "2024-01-01", "2024-01-05"]
    assert [a["status"] for a in alerts] == ["EXPIRED", "EXPIRED", "EXPIRES IN 3 DAYS"]
    assert alerts[0]["patient_name"] == "Maria da Silva"


def test_alerts_reject_bad_now(client, auth_headers):
    assert client.get("/api/alerts?now=ontem", headers=auth_headers).status_code == 400


def test_view_snapshots(client, auth_headers):
    create_patient(client, auth_headers)

    dashboard = client.get("/api/views/dashboard", headers=auth_headers).get_json()
    assert dashboard == {
        "view": "dashboard",
        "data": {"patients": 1, "prescriptions": 0, "medications": 0, "alerts": 0},
    }
    assert client.get("/api/views/config", headers=auth_headers).status_code == 404


def test_preferences_default_to_doctor_and_feed_prescriptions(client, auth_headers):
    defaults = client.get("/api/preferences/", headers=auth_headers).get_json()
    assert defaults == {"doctor_name": "Dra. Marina", "doctor_crm": "CRM-SP 207506"}

    client.put("/api/preferences/", json={"doctor_name": "Dra. Marina Leite Ianelli"}, headers=auth_headers)
    patient_id = create_patient(client, auth_headers).get_json()["id"]
    prescription = client.post("/api/prescriptions/", json={
        "patient_id": patient_id, "date": "2024-01-01", "items": [],
    }, headers=auth_headers).get_json()["prescription"]

    assert prescription["doctor_name"] == "Dra. Marina Leite Ianelli"
    assert prescription["doctor_crm"] == "CRM-SP 207506"
