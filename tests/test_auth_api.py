import re

from editsync.core.config import settings


def extract_reset_token(body: str) -> str:
    match = re.search(r"token=([0-9a-f]{64})", body)
    assert match, body
    return match.group(1)


def test_register_returns_token_and_user(client, notifier):
    response = client.post(
        "/auth/register",
        json={"email": "Alice@Example.com", "password": "secret123", "name": "  Alice  "}
    )

    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["name"] == "Alice"
    assert [mail.to for mail in notifier.sent] == ["alice@example.com"]
    assert "Welcome" in notifier.sent[0].subject


def test_register_duplicate_email_conflicts(client, make_user):
    make_user("Alice")
    response = client.post(
        "/auth/register",
        json={"email": "ALICE@example.com", "password": "secret123", "name": "Other"}
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already registered"


def test_register_validates_input(client):
    bad_payloads = [
        {"email": "not-an-email", "password": "secret123", "name": "Alice"},
        {"email": "alice@example.com", "password": "123", "name": "Alice"},
        {"email": "alice@example.com", "password": "secret123", "name": " A "},
        {"email": "alice@example.com", "password": "secret123"},
    ]
    for payload in bad_payloads:
        response = client.post("/auth/register", json=payload)
        assert response.status_code == 400, payload
        assert response.json()["detail"]


def test_welcome_mail_failure_does_not_fail_registration(client, notifier):
    notifier.fail = True
    response = client.post(
        "/auth/register",
        json={"email": "alice@example.com", "password": "secret123", "name": "Alice"}
    )
    assert response.status_code == 201


def test_login(client, make_user):
    alice = make_user("Alice")

    response = client.post("/auth/login", json={"email": "ALICE@example.com", "password": alice.password})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == alice.id

    me = client.get("/users/me", headers={"Authorization": f"Bearer {response.json()['token']}"})
    assert me.status_code == 200


def test_login_with_wrong_password(client, make_user):
    make_user("Alice")

    response = client.post("/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"
    assert response.headers["www-authenticate"] == "Bearer"


def test_login_unknown_user(client):
    response = client.post("/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert response.status_code == 401


def test_password_reset_flow(client, make_user, notifier):
    alice = make_user("Alice")
    notifier.sent.clear()

    response = client.post("/auth/request-reset", json={"email": alice.email})
    assert response.status_code == 200
    assert notifier.sent[0].to == alice.email
    token = extract_reset_token(notifier.sent[0].body)

    response = client.post("/auth/reset-password", json={"token": token, "password": "new-secret"})
    assert response.status_code == 200

    old = client.post("/auth/login", json={"email": alice.email, "password": alice.password})
    assert old.status_code == 401
    new = client.post("/auth/login", json={"email": alice.email, "password": "new-secret"})
    assert new.status_code == 200

    # токен одноразовый
    again = client.post("/auth/reset-password", json={"token": token, "password": "another-one"})
    assert again.status_code == 400


def test_request_reset_for_unknown_email(client):
    response = client.post("/auth/request-reset", json={"email": "ghost@example.com"})
    assert response.status_code == 404


def test_request_reset_delivery_failure(client, make_user, notifier):
    alice = make_user("Alice")
    notifier.fail = True

    response = client.post("/auth/request-reset", json={"email": alice.email})
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to send email. Please check your email configuration."


def test_reset_with_invalid_token(client):
    response = client.post("/auth/reset-password", json={"token": "f" * 64, "password": "new-secret"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired token"


def test_reset_with_expired_token(client, make_user, notifier, monkeypatch):
    alice = make_user("Alice")
    notifier.sent.clear()
    monkeypatch.setattr(settings, "password_reset_expire_minutes", -1)

    client.post("/auth/request-reset", json={"email": alice.email})
    token = extract_reset_token(notifier.sent[0].body)

    response = client.post("/auth/reset-password", json={"token": token, "password": "new-secret"})
    assert response.status_code == 400


def test_invited_placeholder_can_set_password(client, make_user, make_document, notifier):
    alice = make_user("Alice")
    document = make_document(alice)
    client.post(f"/documents/{document['id']}/invite", json={"email": "newbie@example.com"}, headers=alice.headers)

    denied = client.post("/auth/login", json={"email": "newbie@example.com", "password": "anything"})
    assert denied.status_code == 401

    notifier.sent.clear()
    client.post("/auth/request-reset", json={"email": "newbie@example.com"})
    token = extract_reset_token(notifier.sent[0].body)
    client.post("/auth/reset-password", json={"token": token, "password": "brand-new"})

    response = client.post("/auth/login", json={"email": "newbie@example.com", "password": "brand-new"})
    assert response.status_code == 200
    shared = client.get("/documents", headers={"Authorization": f"Bearer {response.json()['token']}"})
    assert [doc["id"] for doc in shared.json()] == [document["id"]]
