from datetime import datetime, timedelta

from sqlalchemy import func, select, update

import invitation_service
from helpers import add_employee, auth_headers, create_business, invite, register, run_db
from models import BusinessMember, Invitation, MemberRole


def expire_invitation(code):
    async def expire(session):
        await session.execute(
            update(Invitation)
            .where(Invitation.code == code)
            .values(expires_at=datetime.utcnow() - timedelta(seconds=1))
        )
        await session.commit()
    run_db(expire)


def accept(client, token, code):
    return client.post("/api/invitations/accept", json={"code": code}, headers=auth_headers(token))


def test_invitation_scenario_accept_once(client, email_service):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    assert business["role"] == "owner"
    assert business["member_count"] == 1

    invitation = invite(client, owner, business["id"], "b@x.com")

    assert invitation["status"] == "pending"
    assert len(invitation["code"]) == 8
    assert invitation["code"] == invitation["code"].upper()
    assert invitation["code"].isalnum()
    created = datetime.fromisoformat(invitation["created_at"])
    expires = datetime.fromisoformat(invitation["expires_at"])
    assert expires - created == timedelta(days=7)
    assert email_service.last("invitation")["code"] == invitation["code"]

    user_b = register(client, "b@x.com")
    first = accept(client, user_b, invitation["code"])

    assert first.status_code == 200
    assert first.json()["data"]["status"] == "accepted"
    assert first.json()["data"]["accepted_at"] is not None

    async def membership(session):
        result = await session.execute(
            select(BusinessMember).where(BusinessMember.business_id == business["id"], BusinessMember.role == MemberRole.EMPLOYEE)
        )
        return result.scalar_one()

    assert run_db(membership).is_active is True

    second = accept(client, user_b, invitation["code"])
    assert second.status_code == 409

    refreshed = client.get(f"/api/business/{business['id']}", headers=auth_headers(owner)).json()["data"]
    assert refreshed["member_count"] == 2


def test_accept_matches_email_case_insensitively(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    invitation = invite(client, owner, business["id"], "Mixed.Case@X.com")
    user = register(client, "mixed.case@x.com")

    response = accept(client, user, invitation["code"].lower())

    assert response.status_code == 200


def test_accept_with_other_email_is_forbidden(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    invitation = invite(client, owner, business["id"], "b@x.com")
    intruder = register(client, "c@x.com")

    response = accept(client, intruder, invitation["code"])

    assert response.status_code == 403


def test_unknown_code_is_not_found(client):
    user = register(client, "b@x.com")

    response = accept(client, user, "NOPE1234")

    assert response.status_code == 404


def test_expired_pending_invitation_cannot_be_accepted(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    invitation = invite(client, owner, business["id"], "b@x.com")
    user_b = register(client, "b@x.com")
    expire_invitation(invitation["code"])

    response = accept(client, user_b, invitation["code"])

    assert response.status_code == 400
    listing = client.get(f"/api/invitations/business/{business['id']}", headers=auth_headers(owner))
    # Stored status is untouched; the listing derives it
    assert listing.json()["data"][0]["status"] == "expired"
    assert client.get("/api/invitations/my", headers=auth_headers(user_b)).json()["data"] == []


def test_duplicate_pending_invitation_conflicts_until_expired(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    invitation = invite(client, owner, business["id"], "b@x.com")

    duplicate = client.post(
        "/api/invitations", json={"business_id": business["id"], "email": "B@x.com"}, headers=auth_headers(owner)
    )
    assert duplicate.status_code == 409

    expire_invitation(invitation["code"])
    again = client.post(
        "/api/invitations", json={"business_id": business["id"], "email": "b@x.com"}, headers=auth_headers(owner)
    )
    assert again.status_code == 201


def test_inviting_an_active_member_conflicts(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    add_employee(client, owner, business["id"], "e@acme.io")

    response = client.post(
        "/api/invitations", json={"business_id": business["id"], "email": "e@acme.io"}, headers=auth_headers(owner)
    )

    assert response.status_code == 409


def test_only_owner_sends_and_cancels_invitations(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    employee = add_employee(client, owner, business["id"], "e@acme.io")

    send = client.post(
        "/api/invitations", json={"business_id": business["id"], "email": "z@x.com"}, headers=auth_headers(employee)
    )
    invitation = invite(client, owner, business["id"], "z@x.com")
    cancel = client.post(f"/api/invitations/{invitation['id']}/cancel", headers=auth_headers(employee))
    listing = client.get(f"/api/invitations/business/{business['id']}", headers=auth_headers(employee))

    assert send.status_code == 403
    assert cancel.status_code == 403
    assert listing.status_code == 403


def test_cancel_only_from_pending(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    invitation = invite(client, owner, business["id"], "b@x.com")
    user_b = register(client, "b@x.com")

    cancelled = client.post(f"/api/invitations/{invitation['id']}/cancel", headers=auth_headers(owner))
    again = client.post(f"/api/invitations/{invitation['id']}/cancel", headers=auth_headers(owner))
    redeem = accept(client, user_b, invitation["code"])

    assert cancelled.json()["data"]["status"] == "cancelled"
    assert again.status_code == 400
    assert redeem.status_code == 400


def test_invitee_can_reject(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    invitation = invite(client, owner, business["id"], "b@x.com")
    user_b = register(client, "b@x.com")

    rejected = client.post("/api/invitations/reject", json={"code": invitation["code"]}, headers=auth_headers(user_b))
    redeem = accept(client, user_b, invitation["code"])

    assert rejected.json()["data"]["status"] == "rejected"
    assert redeem.status_code == 400


def test_my_invitations_lists_valid_ones_newest_first(client):
    owner = register(client, "a@acme.io")
    first_business = create_business(client, owner)
    second_business = create_business(client, owner, name="Beta", phone_number="02125550000")
    older = invite(client, owner, first_business["id"], "b@x.com")
    newer = invite(client, owner, second_business["id"], "b@x.com")
    user_b = register(client, "b@x.com")

    response = client.get("/api/invitations/my", headers=auth_headers(user_b))

    ids = [item["id"] for item in response.json()["data"]]
    assert ids == [newer["id"], older["id"]]
    assert response.json()["data"][0]["business_name"] == "Beta"


def test_removed_member_rejoins_through_new_invitation(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    employee = add_employee(client, owner, business["id"], "e@acme.io")
    members = client.get(f"/api/business/{business['id']}/members", headers=auth_headers(owner)).json()["data"]
    member_id = next(member["id"] for member in members if member["email"] == "e@acme.io")
    client.delete(f"/api/business/{business['id']}/members/{member_id}", headers=auth_headers(owner))

    invitation = invite(client, owner, business["id"], "e@acme.io")
    response = accept(client, employee, invitation["code"])

    assert response.status_code == 200
    members = client.get(f"/api/business/{business['id']}/members", headers=auth_headers(owner)).json()["data"]
    assert [member["id"] for member in members if member["email"] == "e@acme.io"] == [member_id]


def test_expired_invitation_cannot_be_cancelled(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    invitation = invite(client, owner, business["id"], "b@x.com")
    expire_invitation(invitation["code"])

    response = client.post(f"/api/invitations/{invitation['id']}/cancel", headers=auth_headers(owner))

    assert response.status_code == 400
    listing = client.get(f"/api/invitations/business/{business['id']}", headers=auth_headers(owner))
    assert listing.json()["data"][0]["status"] == "expired"


def test_duplicate_membership_reaching_the_store_is_a_conflict(client, monkeypatch):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    employee = add_employee(client, owner, business["id"], "e@acme.io")

    async def no_membership(*args, **kwargs):
        return None

    # Both membership lookups miss, so the accept inserts a second row
    monkeypatch.setattr(invitation_service, "get_membership", no_membership)
    invitation = invite(client, owner, business["id"], "e@acme.io")

    response = accept(client, employee, invitation["code"])

    assert response.status_code == 409
    assert response.json()["success"] is False

    async def membership_count(session):
        result = await session.execute(
            select(func.count(BusinessMember.id)).where(BusinessMember.business_id == business["id"])
        )
        return result.scalar()

    assert run_db(membership_count) == 2
