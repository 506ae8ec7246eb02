from __future__ import annotations

from app.models.member import Member
from app.models.profile import Profile
from app.services.access import load_role_names


def test_create_user_with_admin_role(client, authorize, super_user, fake_gateway, db_session):
    authorize(super_user)

    resp = client.post(
        "/users",
        json={"email": "Office@Example.com", "password": "Str0ng!Pass", "full_name": "Office Admin", "role": "admin"},
    )

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["email"] == "office@example.com"
    assert body["roles"] == ["admin", "user"]
    assert body["is_admin"] is True
    assert body["is_super_user"] is False
    assert body["member"]["full_name"] == "Office Admin"

    member = db_session.query(Member).filter(Member.email == "office@example.com").one()
    assert member.role == "admin"
    assert member.user_id == body["id"]
    assert fake_gateway.passwords[body["id"]] == "Str0ng!Pass"

    resp = client.post(
        "/users",
        json={"email": "office@example.com", "password": "Str0ng!Pass", "full_name": "Office Again"},
    )
    assert resp.status_code == 409


def test_create_user_rejects_weak_password(client, authorize, super_user, fake_gateway):
    authorize(super_user)
    resp = client.post("/users", json={"email": "weak@example.com", "password": "weakpass", "full_name": "Weak"})
    assert resp.status_code == 400
    assert fake_gateway.users == {}


def test_list_users_merges_auth_profiles_and_members(
    client, authorize, super_user, fake_gateway, make_profile, make_member
):
    linked = fake_gateway.add_user("linked@example.com", full_name="Linked User")
    fake_gateway.add_user("bare@example.com")
    make_profile("linked@example.com", "Linked User", roles=("user", "admin"), id=linked.id)
    make_member("Linked User", "linked@example.com", user_id=linked.id)
    authorize(super_user)

    resp = client.get("/users")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["total"] == 2
    assert body["total_admins"] == 1
    assert body["total_linked"] == 1
    assert body["total_unlinked"] == 1
    assert [item["email"] for item in body["items"]] == ["bare@example.com", "linked@example.com"]
    bare = body["items"][0]
    assert bare["has_profile"] is False
    assert bare["roles"] == []

    resp = client.get("/users", params={"role": "admin"})
    assert [item["email"] for item in resp.json()["items"]] == ["linked@example.com"]

    resp = client.get("/users", params={"linked": "false"})
    assert [item["email"] for item in resp.json()["items"]] == ["bare@example.com"]

    resp = client.get("/users", params={"search": "LINKED"})
    assert resp.json()["total"] == 1


def test_update_user_name_and_role(client, authorize, super_user, fake_gateway, make_profile, make_member, db_session):
    auth_user = fake_gateway.add_user("worker@example.com", full_name="Old Name")
    profile = make_profile("worker@example.com", "Old Name", roles=("user", "admin", "superuser"), id=auth_user.id)
    make_member("Old Name", "worker@example.com", user_id=profile.id)
    authorize(super_user)

    resp = client.patch(f"/users/{profile.id}", json={"full_name": "New Name", "role": "user"})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["full_name"] == "New Name"
    assert body["roles"] == ["user"]
    assert body["is_admin"] is False
    assert fake_gateway.users[auth_user.id].full_name == "New Name"

    db_session.expire_all()
    member = db_session.query(Member).filter(Member.user_id == profile.id).one()
    assert member.full_name == "New Name"
    assert member.role == "user"

    resp = client.patch(f"/users/{super_user.id}", json={"role": "admin"})
    assert resp.status_code == 400


def test_rejected_self_demotion_leaves_name_untouched(client, authorize, super_user, fake_gateway, db_session):
    fake_gateway.add_user("super@example.com", full_name="Super Admin", user_id=super_user.id)
    authorize(super_user)

    resp = client.patch(f"/users/{super_user.id}", json={"full_name": "Renamed Admin", "role": "admin"})

    assert resp.status_code == 400
    assert fake_gateway.users[super_user.id].full_name == "Super Admin"
    db_session.expire_all()
    assert db_session.query(Profile).filter_by(id=super_user.id).one().full_name == "Super Admin"


def test_delete_user_keeps_member_unlinked(client, authorize, super_user, fake_gateway, make_profile, make_member, db_session):
    auth_user = fake_gateway.add_user("leaving@example.com")
    profile = make_profile("leaving@example.com", "Leaving Member", id=auth_user.id)
    member = make_member("Leaving Member", "leaving@example.com", user_id=profile.id)
    authorize(super_user)

    resp = client.delete(f"/users/{profile.id}")

    assert resp.status_code == 204, resp.text
    assert fake_gateway.deleted == [auth_user.id]
    db_session.expire_all()
    assert db_session.query(Profile).filter_by(id=profile.id).first() is None
    assert load_role_names(db_session, profile.id) == set()
    kept = db_session.query(Member).filter_by(id=member.id).first()
    assert kept is not None
    assert kept.user_id is None

    assert client.delete(f"/users/{super_user.id}").status_code == 400


def test_grant_and_revoke_roles(client, authorize, super_user, make_profile):
    profile = make_profile("helper@example.com", "Helper")
    authorize(super_user)

    resp = client.post(f"/users/{profile.id}/roles", json={"role": "admin"})
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"user_id": profile.id, "roles": ["admin", "user"], "changed": True}

    resp = client.post(f"/users/{profile.id}/roles", json={"role": "admin"})
    assert resp.json()["changed"] is False

    resp = client.delete(f"/users/{profile.id}/roles/admin")
    assert resp.json() == {"user_id": profile.id, "roles": ["user"], "changed": True}

    assert client.delete(f"/users/{profile.id}/roles/owner").status_code == 400
    assert client.post(f"/users/{profile.id}/roles", json={"role": "owner"}).status_code == 422
    assert client.delete(f"/users/{super_user.id}/roles/superuser").status_code == 400


def test_admin_triggered_password_reset(client, authorize, super_user, fake_gateway, make_profile):
    profile = make_profile("forgetful@example.com", "Forgetful")
    authorize(super_user)

    resp = client.post(f"/users/{profile.id}/password-reset")

    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Password reset email sent to forgetful@example.com"
    assert fake_gateway.reset_requests == [("forgetful@example.com", None)]
    assert client.post("/users/missing/password-reset").status_code == 404


def test_super_admin_endpoints(client, authorize, super_user, make_profile, make_member, db_session):
    profile = make_profile("deacon@example.com", "Deacon")
    make_member("Deacon", "deacon@example.com", user_id=profile.id)
    authorize(super_user)

    resp = client.post("/super-admins", json={"email": "Deacon@Example.com"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "SUCCESS"

    resp = client.post("/super-admins", json={"email": "deacon@example.com"})
    assert resp.json()["status"] == "ALREADY_SUPERADMIN"

    resp = client.get("/super-admins")
    assert [row["email"] for row in resp.json()] == ["deacon@example.com", "super@example.com"]

    resp = client.delete(f"/super-admins/{profile.id}")
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "SUCCESS"
    db_session.expire_all()
    assert load_role_names(db_session, profile.id) == {"user", "admin"}
    assert db_session.query(Member).filter(Member.user_id == profile.id).one().role == "admin"

    resp = client.delete(f"/super-admins/{profile.id}")
    assert resp.json()["status"] == "NOT_SUPERADMIN"

    assert client.post("/super-admins", json={"email": "ghost@example.com"}).status_code == 404
    assert client.delete(f"/super-admins/{super_user.id}").status_code == 400
