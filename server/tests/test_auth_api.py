from __future__ import annotations

from app.models.member import Member
from app.models.profile import Profile
from app.services.access import load_role_names


def test_signup_creates_profile_role_and_member(client, fake_gateway, db_session):
    payload = {
        "email": "Newcomer@Example.com",
        "password": "Str0ng!Pass",
        "full_name": "New Comer",
        "phone": "0706 123 4567",
        "church_unit": "3H Music",
    }

    resp = client.post("/auth/signup", json=payload)

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["email"] == "newcomer@example.com"
    assert body["member_synced"] is True

    profile = db_session.get(Profile, body["user_id"])
    assert profile.full_name == "New Comer"
    assert profile.phone == "07061234567"
    assert load_role_names(db_session, profile.id) == {"user"}

    member = db_session.query(Member).filter(Member.user_id == profile.id).one()
    assert member.email == "newcomer@example.com"
    assert member.church_units == ["3HMusic"]
    assert fake_gateway.find_user_by_email("newcomer@example.com") is not None


def test_signup_rejects_weak_password_and_duplicates(client, fake_gateway):
    resp = client.post(
        "/auth/signup",
        json={"email": "weak@example.com", "password": "password", "full_name": "Weak Pass"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Password is too weak. Please use a stronger password."
    assert fake_gateway.users == {}

    resp = client.post(
        "/auth/signup",
        json={"email": "short@example.com", "password": "Ab1!", "full_name": "Short Pass"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Password must be at least 8 characters long."

    fake_gateway.add_user("taken@example.com")
    resp = client.post(
        "/auth/signup",
        json={"email": "taken@example.com", "password": "Str0ng!Pass", "full_name": "Taken Already"},
    )
    assert resp.status_code == 409


def test_login_returns_tokens_and_creates_missing_profile(client, fake_gateway, db_session):
    user = fake_gateway.add_user("returning@example.com", "Str0ng!Pass", full_name="Returning User")

    resp = client.post("/auth/login", json={"email": "returning@example.com", "password": "Str0ng!Pass"})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user_id"] == user.id
    assert body["refresh_token"] == "refresh-token"
    assert db_session.get(Profile, user.id).full_name == "Returning User"

    whoami = client.get("/auth/whoami", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert whoami.status_code == 200, whoami.text
    assert whoami.json()["roles"] == []


def test_login_with_wrong_password(client, fake_gateway):
    fake_gateway.add_user("someone@example.com", "Str0ng!Pass")
    resp = client.post("/auth/login", json={"email": "someone@example.com", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"


def test_password_reset_does_not_reveal_accounts(client, fake_gateway):
    resp = client.post("/auth/password-reset", json={"email": "anyone@example.com"})
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "If an account exists for that email, a reset link has been sent.",
    }
    assert fake_gateway.reset_requests == [("anyone@example.com", None)]


def test_password_strength_levels(client):
    resp = client.post("/auth/password-strength", json={"password": "abc"})
    assert resp.json()["strength"] == "weak"
    assert resp.json()["is_valid"] is False

    resp = client.post("/auth/password-strength", json={"password": "Str0ng!Pass"})
    body = resp.json()
    assert body["strength"] == "very-strong"
    assert all(body["validations"].values())
