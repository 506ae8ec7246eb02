from __future__ import annotations

from app.models.member import Member
from app.models.profile import Profile
from app.services.access import CurrentUser


def test_read_profile_creates_missing_row(client, authorize, db_session):
    authorize(CurrentUser(id="fresh-user", email="Fresh@Example.com"))

    resp = client.get("/profile")

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["profile"]["email"] == "fresh@example.com"
    assert body["member"] is None
    assert body["roles"] == []
    assert db_session.get(Profile, "fresh-user") is not None


def test_read_profile_without_email_is_404(client, authorize):
    authorize(CurrentUser(id="anonymous", email=None))
    assert client.get("/profile").status_code == 404


def test_update_profile_mirrors_to_member(client, authorize, regular_user, make_member, pastor, db_session):
    member = make_member("Regular Member", "member@example.com", phone="08031111111")
    authorize(regular_user)

    resp = client.patch(
        "/profile",
        json={
            "full_name": "Regular Member Jr",
            "phone": "0813 222 3333",
            "church_unit": "3H Security",
            "assigned_pastor": pastor.id,
            "genotype": "AA",
        },
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["profile"]["church_unit"] == "3HSecurity"
    assert body["member"]["id"] == member.id
    assert body["roles"] == ["user"]

    db_session.expire_all()
    stored = db_session.get(Member, member.id)
    assert stored.user_id == regular_user.id
    assert stored.full_name == "Regular Member Jr"
    assert stored.phone == "08132223333"
    assert stored.genotype == "AA"
    assert stored.church_unit == "3HSecurity"
    assert stored.church_units == ["3HSecurity"]
    assert stored.assigned_to_id == pastor.id


def test_update_profile_creates_member_when_missing(client, authorize, regular_user, db_session):
    authorize(regular_user)

    resp = client.patch("/profile", json={"address": "1 Grace Avenue"})

    assert resp.status_code == 200, resp.text
    assert resp.json()["member"]["address"] == "1 Grace Avenue"
    assert db_session.query(Member).filter(Member.user_id == regular_user.id).count() == 1


def test_update_profile_validation(client, authorize, regular_user, make_member):
    plain = make_member("Not Pastor", "notpastor@example.com")
    authorize(regular_user)

    assert client.patch("/profile", json={"assigned_pastor": plain.id}).status_code == 400
    assert client.patch("/profile", json={"phone": "abc"}).status_code == 422
    assert client.patch("/profile", json={"church_unit": "Unknown Unit"}).status_code == 422
    assert client.patch("/profile", json={"date_of_birth": "2999-01-01"}).status_code == 422
