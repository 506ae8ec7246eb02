from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("SYNC_SCHEDULE_ENABLED", "false")

import uuid
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth.deps import get_current_user
from app.auth.security import create_access_token
from app.core.baas import AuthSession, AuthUser, BaaSError, get_auth_gateway
from app.core.db import Base, get_db
from app.main import app
from app.models.member import Member
from app.models.profile import Profile
from app.models.user_role import UserRole
from app.services.access import CurrentUser, resolve_access

SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def override_get_db() -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeAuthGateway:
    """In-memory stand-in for the hosted auth service."""

    def __init__(self) -> None:
        self.users: dict[str, AuthUser] = {}
        self.passwords: dict[str, str] = {}
        self.reset_requests: list[tuple[str, str | None]] = []
        self.deleted: list[str] = []

    def add_user(self, email: str, password: str = "Str0ng!Pass", *, full_name: str | None = None, user_id: str | None = None) -> AuthUser:
        user = AuthUser(
            id=user_id or str(uuid.uuid4()),
            email=email.lower(),
            full_name=full_name,
            created_at=datetime.now(timezone.utc),
            metadata={"full_name": full_name} if full_name else {},
        )
        self.users[user.id] = user
        self.passwords[user.id] = password
        return user

    def list_users(self, per_page: int = 500) -> list[AuthUser]:
        return list(self.users.values())

    def find_user_by_email(self, email: str) -> AuthUser | None:
        for user in self.users.values():
            if user.email == email.lower():
                return user
        return None

    def create_user(self, email: str, password: str, *, full_name: str | None = None, **_: Any) -> AuthUser:
        if self.find_user_by_email(email):
            raise BaaSError("A user with this email address has already been registered", code="email_exists")
        return self.add_user(email, password, full_name=full_name)

    def update_user(self, user_id: str, *, password: str | None = None, metadata: dict | None = None) -> AuthUser:
        user = self.users[user_id]
        if password:
            self.passwords[user_id] = password
        if metadata is not None:
            user.metadata = metadata
            user.full_name = metadata.get("full_name", user.full_name)
        return user

    def delete_user(self, user_id: str) -> None:
        if user_id not in self.users:
            raise BaaSError("User not found", code="user_not_found")
        del self.users[user_id]
        self.deleted.append(user_id)

    def sign_up(self, email: str, password: str, *, full_name: str | None = None) -> AuthUser:
        if self.find_user_by_email(email):
            raise BaaSError("User already registered", code="user_already_exists")
        return self.add_user(email, password, full_name=full_name)

    def sign_in(self, email: str, password: str) -> AuthSession:
        user = self.find_user_by_email(email)
        if user is None or self.passwords.get(user.id) != password:
            raise BaaSError("Invalid login credentials", code="invalid_credentials")
        return AuthSession(
            access_token=create_access_token(user.id, email=user.email),
            refresh_token="refresh-token",
            expires_in=3600,
            user=user,
        )

    def send_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        self.reset_requests.append((email, redirect_to))


@pytest.fixture(scope="session", autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables() -> Generator[None, None, None]:
    yield
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def fake_gateway() -> FakeAuthGateway:
    return FakeAuthGateway()


@pytest.fixture()
def client(db_session: Session, fake_gateway: FakeAuthGateway) -> Generator[TestClient, None, None]:
    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_gateway] = lambda: fake_gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def authorize(client: TestClient):
    def _apply(user: CurrentUser):
        app.dependency_overrides[get_current_user] = lambda: user

    yield _apply
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def make_profile(db_session: Session) -> Callable[..., Profile]:
    def _make(email: str, full_name: str | None = None, roles: tuple[str, ...] = ("user",), **fields: Any) -> Profile:
        profile = Profile(id=fields.pop("id", str(uuid.uuid4())), email=email, full_name=full_name, **fields)
        db_session.add(profile)
        db_session.flush()
        for role in roles:
            db_session.add(UserRole(user_id=profile.id, role=role))
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _make


@pytest.fixture()
def make_member(db_session: Session) -> Callable[..., Member]:
    def _make(full_name: str, email: str | None = None, **fields: Any) -> Member:
        member = Member(full_name=full_name, email=email, **fields)
        db_session.add(member)
        db_session.commit()
        db_session.refresh(member)
        return member

    return _make


@pytest.fixture()
def admin_user(db_session: Session, make_profile) -> CurrentUser:
    profile = make_profile("admin@example.com", "Church Admin", roles=("user", "admin"), role="admin")
    return resolve_access(db_session, profile.id)


@pytest.fixture()
def super_user(db_session: Session, make_profile) -> CurrentUser:
    profile = make_profile("super@example.com", "Super Admin", roles=("user", "admin", "superuser"), role="superuser")
    return resolve_access(db_session, profile.id)


@pytest.fixture()
def regular_user(db_session: Session, make_profile) -> CurrentUser:
    profile = make_profile("member@example.com", "Regular Member")
    return resolve_access(db_session, profile.id)


@pytest.fixture()
def pastor(make_member) -> Member:
    return make_member("Pastor Samuel Adeyemi", "samuel@example.com", category="Pastors", title="Senior Pastor")
