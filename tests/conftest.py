import asyncio
import os
import tempfile
from types import SimpleNamespace

_db_dir = tempfile.mkdtemp(prefix="editsync-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["REALTIME_REQUIRE_AUTH"] = "true"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from editsync.core.db import create_tables, drop_tables
from editsync.core.errors import DeliveryFailure
from editsync.infrastructure.mail import Notifier, get_notifier
from editsync.main import app


class RecordingNotifier(Notifier):
    """Сохраняет письма вместо отправки"""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise DeliveryFailure()
        self.sent.append(SimpleNamespace(to=to, subject=subject, body=body))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(notifier):
    asyncio.run(drop_tables())
    asyncio.run(create_tables())

    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    def _make_user(name: str, email: str = None, password: str = "secret123"):
        email = email or f"{name.lower()}@example.com"
        response = client.post(
            "/auth/register",
            json={"email": email, "password": password, "name": name}
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return SimpleNamespace(
            id=body["user"]["id"],
            email=email.lower(),
            name=name,
            password=password,
            token=body["token"],
            headers={"Authorization": f"Bearer {body['token']}"}
        )

    return _make_user


@pytest.fixture
def make_document(client):
    def _make_document(owner, title: str = "Notes", content: str = "hello world", file_type: str = "md"):
        response = client.post(
            "/documents",
            json={"title": title, "content": content, "file_type": file_type},
            headers=owner.headers
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make_document
