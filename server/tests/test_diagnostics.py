from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest
from jose import jwt

from app.core.baas import AuthGateway, BaaSError, ManagementClient, project_ref_from_url
from app.core.config import Settings
from app.services.diagnostics import check_environment, rls_policies, super_admin_issues, table_counts


def _key(role: str) -> str:
    return jwt.encode({"role": role, "iss": "supabase"}, "signing-secret", algorithm="HS256")


def _settings(**overrides) -> Settings:
    values = {
        "SUPABASE_URL": "https://abcdefgh.supabase.co",
        "SUPABASE_ANON_KEY": _key("anon"),
        "SUPABASE_SERVICE_ROLE_KEY": _key("service_role"),
        "SUPABASE_ACCESS_TOKEN": "sbp_token",
        "SUPABASE_PROJECT_REF": None,
        "SUPABASE_JWT_SECRET": "real-secret",
        "DATABASE_URL": "sqlite+pysqlite:///:memory:",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_check_environment_accepts_well_formed_keys():
    report = check_environment(_settings())
    assert report.ok, report.errors
    assert report.warnings == []
    assert report.claims["SUPABASE_ANON_KEY"]["role"] == "anon"
    assert all(report.present.values())


def test_check_environment_flags_swapped_and_identical_keys():
    service = _key("service_role")
    report = check_environment(_settings(SUPABASE_ANON_KEY=service, SUPABASE_SERVICE_ROLE_KEY=service))
    assert not report.ok
    assert "SUPABASE_ANON_KEY has role 'service_role', expected 'anon'" in report.errors
    assert "SUPABASE_ANON_KEY and SUPABASE_SERVICE_ROLE_KEY are identical" in report.errors


def test_check_environment_reports_missing_and_invalid_values():
    report = check_environment(
        _settings(
            SUPABASE_ANON_KEY="not-a-jwt",
            SUPABASE_SERVICE_ROLE_KEY=None,
            SUPABASE_ACCESS_TOKEN=None,
            SUPABASE_JWT_SECRET="change-me",
        )
    )
    assert report.errors == ["SUPABASE_ANON_KEY is not a valid JWT"]
    assert report.present["SUPABASE_SERVICE_ROLE_KEY"] is False
    assert any("SUPABASE_SERVICE_ROLE_KEY is missing" in warning for warning in report.warnings)
    assert any("SUPABASE_ACCESS_TOKEN is missing" in warning for warning in report.warnings)
    assert "SUPABASE_JWT_SECRET still has its placeholder value" in report.warnings


def test_project_ref_from_url():
    assert project_ref_from_url("https://abcdefgh.supabase.co") == "abcdefgh"
    assert project_ref_from_url("http://localhost:54321") is None


def test_management_client_runs_sql():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"count": 3}])

    client = ManagementClient("sbp_token", "abcdefgh", transport=httpx.MockTransport(handler))

    assert client.run_sql("select count(*) from members") == [{"count": 3}]
    assert seen["url"] == "https://api.supabase.com/v1/projects/abcdefgh/database/query"
    assert seen["auth"] == "Bearer sbp_token"
    assert seen["body"] == {"query": "select count(*) from members"}


def test_management_client_raises_on_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(401, text="unauthorized"))
    client = ManagementClient("bad", "abcdefgh", transport=transport)

    with pytest.raises(BaaSError) as excinfo:
        client.run_sql("select 1")

    assert excinfo.value.code == "401"


def test_table_counts_and_policies_on_sqlite(db_session, make_member, regular_user):
    make_member("Counted", "counted@example.com")
    counts = table_counts(db_session)
    assert counts["members"] == 1
    assert counts["profiles"] == 1
    assert counts["user_roles"] == 1
    assert counts["sermons"] == 0
    assert rls_policies(db_session) == []


def test_super_admin_issues(db_session, super_user, make_profile):
    make_profile("configured@example.com", "Configured Only")

    issues = super_admin_issues(db_session, {"Configured@example.com", "absent@example.com", "super@example.com"})

    assert issues == [
        "Super admin super@example.com has no member record",
        "Configured super admin absent@example.com has no profile",
        "Configured super admin configured@example.com has no superuser role",
    ]


def test_list_settings_accept_comma_separated_and_json(monkeypatch):
    monkeypatch.setenv("SUPER_ADMIN_EMAILS", "pastor@example.com, admin@example.com")
    monkeypatch.setenv("CORS_ORIGINS", '["https://glm.example.org"]')

    config = Settings(_env_file=None)

    assert config.SUPER_ADMIN_EMAILS == ["pastor@example.com", "admin@example.com"]
    assert config.CORS_ORIGINS == ["https://glm.example.org"]


def _gateway_with_failing_delete(error: Exception) -> AuthGateway:
    def delete_user(user_id):
        raise error

    admin = SimpleNamespace(auth=SimpleNamespace(admin=SimpleNamespace(delete_user=delete_user)))
    return AuthGateway(admin, None)


def test_gateway_wraps_transport_failures():
    gateway = _gateway_with_failing_delete(httpx.ConnectError("connection refused"))

    with pytest.raises(BaaSError) as excinfo:
        gateway.delete_user("user-1")

    assert "connection refused" in excinfo.value.message


def test_gateway_lets_programming_errors_through():
    gateway = _gateway_with_failing_delete(TypeError("unexpected keyword"))

    with pytest.raises(TypeError):
        gateway.delete_user("user-1")
