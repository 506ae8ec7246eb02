"""Gateways to the hosted backend: auth SDK clients and the management API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Any
from urllib.parse import urlparse

import httpx
from supabase import AuthError, Client, ClientOptions, create_client

from app.core.config import settings

logger = logging.getLogger(__name__)

MANAGEMENT_API_URL = "https://api.supabase.com/v1"

# Failures the SDK raises for rejected or unreachable auth calls.
SDK_ERRORS = (AuthError, httpx.HTTPError)


class BaaSError(Exception):
    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass
class AuthUser:
    id: str
    email: str | None
    full_name: str | None = None
    created_at: datetime | None = None
    confirmed_at: datetime | None = None
    last_sign_in_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthSession:
    access_token: str
    refresh_token: str | None
    expires_in: int | None
    user: AuthUser


def _to_auth_user(raw: Any) -> AuthUser:
    metadata = dict(getattr(raw, "user_metadata", None) or {})
    return AuthUser(
        id=str(raw.id),
        email=getattr(raw, "email", None),
        full_name=metadata.get("full_name"),
        created_at=getattr(raw, "created_at", None),
        confirmed_at=getattr(raw, "email_confirmed_at", None),
        last_sign_in_at=getattr(raw, "last_sign_in_at", None),
        metadata=metadata,
    )


def _wrap(action: str, exc: Exception) -> BaaSError:
    code = getattr(exc, "code", None) or getattr(exc, "status", None)
    logger.warning("baas call failed", extra={"action": action, "code": code, "error": str(exc)})
    return BaaSError(str(exc) or f"{action} failed", code=str(code) if code is not None else None)


def _client_options() -> ClientOptions:
    return ClientOptions(auto_refresh_token=False, persist_session=False)


@lru_cache
def get_admin_client() -> Client | None:
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        return None
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY, options=_client_options())


@lru_cache
def get_anon_client() -> Client | None:
    if not settings.SUPABASE_ANON_KEY:
        return None
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, options=_client_options())


class AuthGateway:
    """Auth operations against the hosted identity service.

    The anon client handles end-user flows (sign up, sign in, password reset);
    the service-role client handles administration of auth users.
    """

    def __init__(self, admin: Client | None, anon: Client | None) -> None:
        self._admin = admin
        self._anon = anon

    @property
    def admin(self) -> Client:
        if self._admin is None:
            raise BaaSError("SUPABASE_SERVICE_ROLE_KEY is not configured", code="missing_service_key")
        return self._admin

    @property
    def anon(self) -> Client:
        if self._anon is not None:
            return self._anon
        if self._admin is not None:
            return self._admin
        raise BaaSError("SUPABASE_ANON_KEY is not configured", code="missing_anon_key")

    def list_users(self, per_page: int = 500) -> list[AuthUser]:
        users: list[AuthUser] = []
        page = 1
        client = self.admin
        while True:
            try:
                batch = client.auth.admin.list_users(page=page, per_page=per_page)
            except SDK_ERRORS as exc:
                raise _wrap("list_users", exc) from exc
            users.extend(_to_auth_user(item) for item in batch)
            if len(batch) < per_page:
                return users
            page += 1

    def find_user_by_email(self, email: str) -> AuthUser | None:
        needle = email.strip().lower()
        for user in self.list_users():
            if (user.email or "").lower() == needle:
                return user
        return None

    def create_user(
        self,
        email: str,
        password: str,
        *,
        full_name: str | None = None,
        email_confirm: bool = True,
        metadata: dict[str, Any] | None = None,
    ) -> AuthUser:
        user_metadata = dict(metadata or {})
        if full_name:
            user_metadata["full_name"] = full_name
        client = self.admin
        try:
            response = client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": email_confirm,
                    "user_metadata": user_metadata,
                }
            )
        except SDK_ERRORS as exc:
            raise _wrap("create_user", exc) from exc
        return _to_auth_user(response.user)

    def update_user(
        self,
        user_id: str,
        *,
        password: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuthUser:
        attributes: dict[str, Any] = {}
        if password:
            attributes["password"] = password
        if metadata is not None:
            attributes["user_metadata"] = metadata
        client = self.admin
        try:
            response = client.auth.admin.update_user_by_id(user_id, attributes)
        except SDK_ERRORS as exc:
            raise _wrap("update_user", exc) from exc
        return _to_auth_user(response.user)

    def delete_user(self, user_id: str) -> None:
        client = self.admin
        try:
            client.auth.admin.delete_user(user_id)
        except SDK_ERRORS as exc:
            raise _wrap("delete_user", exc) from exc

    def sign_up(self, email: str, password: str, *, full_name: str | None = None) -> AuthUser:
        client = self.anon
        try:
            response = client.auth.sign_up(
                {"email": email, "password": password, "options": {"data": {"full_name": full_name}}}
            )
        except SDK_ERRORS as exc:
            raise _wrap("sign_up", exc) from exc
        if response.user is None:
            raise BaaSError("Sign up did not return a user", code="signup_failed")
        return _to_auth_user(response.user)

    def sign_in(self, email: str, password: str) -> AuthSession:
        client = self.anon
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except SDK_ERRORS as exc:
            raise _wrap("sign_in", exc) from exc
        session = response.session
        if session is None or response.user is None:
            raise BaaSError("Invalid login credentials", code="invalid_credentials")
        return AuthSession(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
            user=_to_auth_user(response.user),
        )

    def send_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        client = self.anon
        try:
            client.auth.reset_password_for_email(email, options)
        except SDK_ERRORS as exc:
            raise _wrap("password_reset", exc) from exc


def get_auth_gateway() -> AuthGateway:
    return AuthGateway(get_admin_client(), get_anon_client())


def project_ref_from_url(url: str) -> str | None:
    host = urlparse(url).hostname or ""
    if host.endswith(".supabase.co"):
        return host.split(".", 1)[0]
    return None


class ManagementClient:
    """Runs SQL through the platform management API (token tier above service role)."""

    def __init__(
        self,
        access_token: str,
        project_ref: str,
        *,
        timeout: float = 30,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.access_token = access_token
        self.project_ref = project_ref
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "ManagementClient":
        if not settings.SUPABASE_ACCESS_TOKEN:
            raise BaaSError("SUPABASE_ACCESS_TOKEN is not configured", code="missing_access_token")
        project_ref = settings.SUPABASE_PROJECT_REF or project_ref_from_url(settings.SUPABASE_URL)
        if not project_ref:
            raise BaaSError("Unable to determine the project reference", code="missing_project_ref")
        return cls(settings.SUPABASE_ACCESS_TOKEN, project_ref)

    def run_sql(self, query: str) -> list[dict[str, Any]]:
        url = f"{MANAGEMENT_API_URL}/projects/{self.project_ref}/database/query"
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(url, json={"query": query}, headers=headers)
        except httpx.HTTPError as exc:
            logger.exception("management api request failed")
            raise BaaSError("Unable to reach the management API", code="network_error") from exc

        if resp.status_code >= 400:
            logger.error("management api error", extra={"status_code": resp.status_code, "body": resp.text})
            raise BaaSError(f"HTTP {resp.status_code}: {resp.text}", code=str(resp.status_code))

        payload = resp.json()
        if isinstance(payload, list):
            return payload
        return [payload] if payload else []
