from __future__ import annotations

from app.auth.security import create_access_token
from app.services.access import CurrentUser, derive_flags, resolve_access


def test_derive_flags_from_roles_and_configured_emails():
    assert derive_flags("a@example.com", {"user"}, []) == (False, False)
    assert derive_flags("a@example.com", {"user", "admin"}, []) == (True, False)
    assert derive_flags("a@example.com", {"superuser"}, []) == (True, True)
    assert derive_flags(" Owner@Example.com ", set(), ["owner@example.com"]) == (True, True)
    assert derive_flags(None, set(), ["owner@example.com"]) == (False, False)


def test_effective_roles_include_implied_roles():
    super_user = CurrentUser(id="1", email="s@example.com", roles={"user"}, is_admin=True, is_super_user=True)
    admin = CurrentUser(id="2", email="a@example.com", roles={"user"}, is_admin=True)
    assert super_user.effective_roles == {"user", "admin", "superuser"}
    assert admin.effective_roles == {"user", "admin"}


def test_resolve_access_reads_role_rows(db_session, make_profile):
    profile = make_profile("staff@example.com", "Staff Person", roles=("user", "admin"))

    user = resolve_access(db_session, profile.id)

    assert user.email == "staff@example.com"
    assert user.roles == {"user", "admin"}
    assert user.is_admin is True
    assert user.is_super_user is False
    assert user.full_name == "Staff Person"


def test_resolve_access_for_unknown_user_grants_nothing(db_session):
    user = resolve_access(db_session, "no-such-user", "ghost@example.com")
    assert user.profile is None
    assert user.roles == set()
    assert not user.is_admin


def test_whoami_with_bearer_token(client, make_profile, make_member):
    profile = make_profile("leader@example.com", "Unit Leader", roles=("user", "superuser"))
    member = make_member("Unit Leader", "leader@example.com", user_id=profile.id)
    token = create_access_token(profile.id, email=profile.email)

    resp = client.get("/auth/whoami", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["id"] == profile.id
    assert body["user"] == "leader@example.com"
    assert body["roles"] == ["admin", "superuser", "user"]
    assert body["is_admin"] is True
    assert body["is_super_user"] is True
    assert body["member_id"] == member.id


def test_whoami_rejects_missing_and_invalid_tokens(client):
    assert client.get("/auth/whoami").status_code == 401
    resp = client.get("/auth/whoami", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_admin_routes_reject_regular_users(client, authorize, regular_user):
    authorize(regular_user)
    resp = client.get("/admin/dashboard/metrics")
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Admin privileges required"


def test_super_admin_routes_reject_plain_admins(client, authorize, admin_user):
    authorize(admin_user)
    resp = client.get("/users")
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Super Admin privileges required"
