from __future__ import annotations

from app.models.member import Member


def test_pastor_create_assign_and_unassign_flow(client, authorize, admin_user, make_member, db_session):
    first = make_member("Chinedu Obi", "chinedu@example.com")
    second = make_member("Amaka Nwosu", "amaka@example.com")
    authorize(admin_user)

    resp = client.post(
        "/pastors",
        json={"full_name": "Pastor Grace Okafor", "email": "Grace.Okafor@Example.com", "church_unit": "Praise Feet"},
    )
    assert resp.status_code == 201, resp.text
    pastor = resp.json()
    assert pastor["category"] == "Pastors"
    assert pastor["title"] == "Pastor"
    assert pastor["email"] == "grace.okafor@example.com"
    assert pastor["church_units"] == ["Praise Feet"]
    assert pastor["assigned_count"] == 0

    resp = client.post(
        f"/pastors/{pastor['id']}/members",
        json={"member_ids": [first.id, second.id, first.id, "missing-id"]},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["updated"] == 2
    assert body["missing"] == ["missing-id"]

    resp = client.get(f"/pastors/{pastor['id']}")
    assert resp.json()["assigned_count"] == 2

    resp = client.get(f"/pastors/{pastor['id']}/members")
    assert [item["full_name"] for item in resp.json()] == ["Amaka Nwosu", "Chinedu Obi"]

    resp = client.delete(f"/pastors/{pastor['id']}/members/{first.id}")
    assert resp.status_code == 204
    resp = client.delete(f"/pastors/{pastor['id']}/members/{first.id}")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Member is not assigned to this pastor"

    db_session.expire_all()
    assert db_session.get(Member, first.id).assigned_to_id is None
    assert db_session.get(Member, second.id).assigned_to_id == pastor["id"]


def test_list_pastors_for_any_signed_in_user(client, authorize, regular_user, make_member, pastor):
    make_member("Pastor Retired", "retired@example.com", category="Pastors", is_active=False)
    make_member("Pastor John Eze", "john@example.com", category="Pastors", title="Youth Pastor", church_unit="3HMedia")
    make_member("Not A Pastor", "plain@example.com")
    authorize(regular_user)

    resp = client.get("/pastors")
    assert resp.status_code == 200, resp.text
    assert [item["full_name"] for item in resp.json()] == ["Pastor John Eze", "Pastor Samuel Adeyemi"]

    resp = client.get("/pastors", params={"include_inactive": "true"})
    assert len(resp.json()) == 3

    resp = client.get("/pastors", params={"title": "youth pastor"})
    assert [item["full_name"] for item in resp.json()] == ["Pastor John Eze"]

    resp = client.get("/pastors", params={"church_unit": "3H Media"})
    assert [item["full_name"] for item in resp.json()] == ["Pastor John Eze"]

    resp = client.get("/pastors", params={"search": "samuel"})
    assert [item["id"] for item in resp.json()] == [pastor.id]

    resp = client.post("/pastors", json={"full_name": "Pastor Unauthorised"})
    assert resp.status_code == 403


def test_update_pastor_keeps_category(client, authorize, admin_user, pastor, make_member):
    make_member("Someone Else", "someone@example.com")
    authorize(admin_user)

    resp = client.patch(f"/pastors/{pastor.id}", json={"title": "Overseer", "full_name": None})
    assert resp.status_code == 200, resp.text
    assert resp.json()["title"] == "Overseer"
    assert resp.json()["full_name"] == "Pastor Samuel Adeyemi"
    assert resp.json()["category"] == "Pastors"

    resp = client.patch(f"/pastors/{pastor.id}", json={"email": "someone@example.com"})
    assert resp.status_code == 409


def test_regular_member_is_not_a_pastor(client, authorize, admin_user, make_member):
    member = make_member("Plain Member", "plainer@example.com")
    authorize(admin_user)
    assert client.get(f"/pastors/{member.id}").status_code == 404
