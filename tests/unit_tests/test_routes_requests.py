"""HTTP surface of the request service."""

from tests.consts import AGENT_FLOAT, CLIENT_WALLET


def _create_withdrawal(client, headers, counterparty="AGAAAA01", amount=100_000):
    return client.post(
        "/api/requests",
        json={"kind": "WITHDRAWAL", "counterparty": counterparty, "amount": amount, "message": "school fees"},
        headers=headers,
    )


def _books(client, headers):
    response = client.get("/api/accounts/balance", headers=headers)
    return {item["book"]: item["balance"] for item in response.json()["balances"]}


def test_health(unauthenticated_client):
    response = unauthenticated_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_requests_need_a_token(client):
    assert client.get("/api/requests/pending").status_code in (401, 403)
    response = client.get("/api/requests/pending", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401


def test_login_rejects_wrong_password(client):
    response = client.post("/api/auth/login", json={"username": "client_one", "password": "wrong-password"})

    assert response.status_code == 401


def test_register_then_read_profile(unauthenticated_client):
    response = unauthenticated_client.post(
        "/api/auth/register",
        json={"username": "new_client", "password": "s3cret-pass", "role": "client", "phone": "+237611111111"},
    )
    assert response.status_code == 201, response.text
    token = response.json()["access_token"]

    me = unauthenticated_client.get("/api/accounts/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "new_client"
    assert me.json()["role"] == "client"

    again = unauthenticated_client.post(
        "/api/auth/register",
        json={"username": "new_client", "password": "s3cret-pass", "role": "client"},
    )
    assert again.status_code == 409
    assert again.json()["field"] == "username"


def test_withdrawal_round_trip(client, auth_headers, app_people):
    customer = auth_headers("client_one")
    agent = auth_headers("agent_one")

    created = _create_withdrawal(client, customer)
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["status"] == "PENDING"
    assert body["fee"] == 2_000
    code = body["confirmation_code"]
    assert code

    pending = client.get("/api/requests/pending", headers=agent).json()
    assert [item["reference"] for item in pending["requests"]] == [body["reference"]]
    assert all(item["confirmation_code"] is None for item in pending["requests"])

    wrong = client.post(f"/api/requests/{body['id']}/approve", json={"code": "000000"}, headers=agent)
    assert wrong.status_code == 400
    assert wrong.json()["error_type"] == "InvalidConfirmationCodeError"

    approved = client.post(f"/api/requests/{body['id']}/approve", json={"code": code}, headers=agent)
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "APPROVED"

    again = client.post(f"/api/requests/{body['id']}/approve", json={"code": code}, headers=agent)
    assert again.status_code == 409
    assert again.json()["current_status"] == "APPROVED"

    assert _books(client, customer)["WALLET"] == CLIENT_WALLET - 102_000
    agent_balances = _books(client, agent)
    assert agent_balances["FLOAT"] == AGENT_FLOAT + 100_000
    assert agent_balances["COMMISSION"] == 1_200


def test_validation_errors_are_422(client, auth_headers):
    customer = auth_headers("client_one")

    too_small = _create_withdrawal(client, customer, amount=500)
    assert too_small.status_code == 422
    assert too_small.json()["error_type"] == "RequestValidationError"

    unknown = _create_withdrawal(client, customer, counterparty="AGZZZZ99")
    assert unknown.status_code == 422


def test_duplicate_top_up_reports_existing_reference(client, auth_headers):
    agent = auth_headers("agent_one")
    payload = {"kind": "FLOAT", "counterparty": "AGAAAA02", "amount": 50_000, "details": {"direction": "TOP_UP"}}

    first = client.post("/api/requests", json=payload, headers=agent)
    assert first.status_code == 201, first.text
    second = client.post("/api/requests", json=payload, headers=agent)

    assert second.status_code == 422
    assert second.json()["existing_reference"] == first.json()["reference"]


def test_reject_cancel_and_visibility(client, auth_headers):
    customer = auth_headers("client_one")
    agent = auth_headers("agent_one")
    stranger = auth_headers("agent_two")

    first = _create_withdrawal(client, customer).json()
    second = _create_withdrawal(client, customer, amount=20_000).json()

    forbidden = client.post(f"/api/requests/{first['id']}/reject", json={"note": "no"}, headers=stranger)
    assert forbidden.status_code == 403

    rejected = client.post(f"/api/requests/{first['id']}/reject", json={"note": "out of cash"}, headers=agent)
    assert rejected.json()["status"] == "REJECTED"
    assert rejected.json()["response_note"] == "out of cash"

    cancelled = client.post(f"/api/requests/{second['id']}/cancel", headers=customer)
    assert cancelled.json()["status"] == "CANCELLED"

    assert client.get(f"/api/requests/{first['reference']}", headers=customer).status_code == 200
    assert client.get(f"/api/requests/{first['reference']}", headers=stranger).status_code == 403
    assert client.get("/api/requests/WD-UNKNOWN0", headers=customer).status_code == 404

    history = client.get("/api/requests/history", params={"status": "REJECTED"}, headers=customer).json()
    assert [item["id"] for item in history["requests"]] == [first["id"]]


def test_reissue_code(client, auth_headers):
    customer = auth_headers("client_one")
    agent = auth_headers("agent_one")
    created = _create_withdrawal(client, customer).json()

    reissued = client.post(f"/api/requests/{created['id']}/code", headers=customer)
    assert reissued.status_code == 200
    new_code = reissued.json()["confirmation_code"]

    approved = client.post(f"/api/requests/{created['id']}/approve", json={"code": new_code}, headers=agent)
    assert approved.json()["status"] == "APPROVED"


def test_expired_request_is_gone(client, auth_headers, clock):
    customer = auth_headers("client_one")
    agent = auth_headers("agent_one")
    created = _create_withdrawal(client, customer).json()

    clock.advance(hours=24, minutes=1)
    assert client.get("/api/requests/pending", headers=agent).json()["total"] == 0

    response = client.post(
        f"/api/requests/{created['id']}/approve",
        json={"code": created["confirmation_code"]},
        headers=agent,
    )
    assert response.status_code == 410
    assert client.get(f"/api/requests/{created['reference']}", headers=customer).json()["status"] == "EXPIRED"


def test_admin_sweep_and_agent_status(client, auth_headers, clock, app_people):
    customer = auth_headers("client_one")
    admin = auth_headers("admin")
    created = _create_withdrawal(client, customer).json()

    assert client.post("/api/admin/expiry/sweep", headers=customer).status_code == 403

    clock.advance(days=1, seconds=1)
    swept = client.post("/api/admin/expiry/sweep", headers=admin)
    assert swept.status_code == 200
    assert swept.json()["expired"] == [created["reference"]]

    listing = client.get("/api/admin/requests", params={"status": "EXPIRED"}, headers=admin).json()
    assert listing["total"] == 1

    suspended = client.post(
        f"/api/admin/accounts/{app_people.agent.id}/status", json={"status": "SUSPENDED"}, headers=admin
    )
    assert suspended.status_code == 200
    assert suspended.json()["agent_status"] == "SUSPENDED"

    not_agent = client.post(
        f"/api/admin/accounts/{app_people.client.id}/status", json={"status": "ACTIVE"}, headers=admin
    )
    assert not_agent.status_code == 400

    refused = _create_withdrawal(client, customer)
    assert refused.status_code == 422
