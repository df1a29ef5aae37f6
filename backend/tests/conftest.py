"""Test fixtures and configuration."""

import os

# До импорта runstore.config: быстрый bcrypt, фиксированный секрет, хранилище в памяти
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "runstore-test-secret")
os.environ["STORAGE_BACKEND"] = "memory"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from runstore.core.repository import InMemoryAppRepository, InMemoryUserRepository
from runstore.main import create_app
from runstore.services.identity_service import IdentityService
from runstore.services.submission_registry import SubmissionRegistry


class TickingClock:
    """Каждый вызов возвращает время на step позже предыдущего"""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def identity(clock):
    return IdentityService(InMemoryUserRepository(), clock=clock)


@pytest.fixture
def registry(identity, clock):
    return SubmissionRegistry(InMemoryAppRepository(), identity, clock=clock)


@pytest.fixture
def admin(identity):
    return identity.seed_admin()


@pytest.fixture
def user(identity):
    """(token, public view) обычного пользователя"""
    return identity.register("alice@example.com", "secret1", "Alice")


@pytest.fixture
def other_user(identity):
    return identity.register("bob@example.com", "secret2", "Bob")


@pytest.fixture
def app_fields():
    return {
        "name": "Foo",
        "packageName": "com.a.b",
        "description": "A tiny app that does foo things",
        "version": "1.0",
        "iconUrl": "https://cdn.example.com/foo.png",
        "apkUrl": "https://cdn.example.com/foo.apk",
        "fileSize": 2048,
    }


@pytest.fixture
def client(identity, registry):
    """HTTP клиент; lifespan создаёт администратора"""
    with TestClient(create_app(identity, registry)) as test_client:
        yield test_client


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}
