import asyncio
import os
import tempfile
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="personelim-tests-"))

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.sqlite'}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["POSTMARK_ENABLED"] = "false"
os.environ["EMAIL_TEST_MODE"] = "false"
os.environ["UPLOAD_DIR"] = str(_TEST_DIR / "uploads")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from config import settings
from database import Base, engine, async_session_maker
from email_service import get_email_service
from main import app
from models import Province, District


class FakeEmailService:
    """Records outgoing mail instead of calling Postmark"""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []

    async def send_invitation_email(self, to_email, business_name, invited_by, code, message=None):
        self.sent.append({"kind": "invitation", "to": to_email, "code": code, "business": business_name})
        return self.succeed

    async def send_password_reset_code(self, to_email, full_name, code):
        self.sent.append({"kind": "reset", "to": to_email, "code": code})
        return self.succeed

    async def send_account_created_email(self, to_email, full_name, temp_password):
        self.sent.append({"kind": "account", "to": to_email, "password": temp_password})
        return self.succeed

    def last(self, kind):
        return [mail for mail in self.sent if mail["kind"] == kind][-1]


async def _reset_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        session.add_all([
            Province(id=34, name="Istanbul"),
            Province(id=6, name="Ankara"),
        ])
        await session.flush()
        session.add_all([
            District(id=1, name="Kadikoy", province_id=34),
            District(id=2, name="Besiktas", province_id=34),
            District(id=3, name="Cankaya", province_id=6),
        ])
        await session.commit()


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def client(email_service, upload_dir):
    asyncio.run(_reset_database())
    app.dependency_overrides[get_email_service] = lambda: email_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
