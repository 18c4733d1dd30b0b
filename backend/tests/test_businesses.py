from sqlalchemy import func, select

import business_service
from errors import UnhandledStoreError
from helpers import ACME_PAYLOAD, add_employee, auth_headers, create_business, member_id_for, register, run_db
from models import Business, BusinessMember


def count_rows(model):
    async def counter(session):
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar()
    return run_db(counter)


def test_create_root_business_makes_caller_owner(client):
    token = register(client, "a@acme.io")

    business = create_business(client, token)

    assert business["role"] == "owner"
    assert business["member_count"] == 1
    assert business["is_sub_business"] is False
    assert business["phone_number"] == "02165551234"
    assert business["province_name"] == "Istanbul"
    assert business["district_name"] == "Kadikoy"
    assert count_rows(Business) == 1
    assert count_rows(BusinessMember) == 1


def test_create_business_writes_nothing_when_owner_membership_fails(client, monkeypatch):
    token = register(client, "a@acme.io")

    def failing_member(**kwargs):
        raise UnhandledStoreError("membership insert failed")

    monkeypatch.setattr(business_service, "BusinessMember", failing_member)

    response = client.post("/api/business", json=ACME_PAYLOAD, headers=auth_headers(token))

    assert response.status_code == 500
    assert count_rows(Business) == 0
    assert count_rows(BusinessMember) == 0


def test_create_business_requires_contact_details_for_root(client):
    token = register(client, "a@acme.io")

    response = client.post("/api/business", json={"name": "Acme"}, headers=auth_headers(token))

    assert response.status_code == 400
    assert "address is required" in response.json()["errors"]


def test_create_business_validates_phone_and_district(client):
    token = register(client, "a@acme.io")

    bad_phone = client.post(
        "/api/business", json={**ACME_PAYLOAD, "phone_number": "12345"}, headers=auth_headers(token)
    )
    wrong_district = client.post(
        "/api/business", json={**ACME_PAYLOAD, "district_id": 3}, headers=auth_headers(token)
    )
    short_address = client.post(
        "/api/business", json={**ACME_PAYLOAD, "address": "Short"}, headers=auth_headers(token)
    )

    assert bad_phone.status_code == 400
    assert wrong_district.status_code == 400
    assert short_address.status_code == 400
    assert count_rows(Business) == 0


def test_business_name_and_phone_are_unique_among_active_roots(client):
    token = register(client, "a@acme.io")
    create_business(client, token)

    same_name = client.post(
        "/api/business", json={**ACME_PAYLOAD, "name": "ACME", "phone_number": "02125550000"},
        headers=auth_headers(token),
    )
    same_phone = client.post(
        "/api/business", json={**ACME_PAYLOAD, "name": "Other"}, headers=auth_headers(token)
    )

    assert same_name.status_code == 409
    assert same_phone.status_code == 409


def test_get_my_businesses_and_business_by_id(client):
    token = register(client, "a@acme.io")
    business = create_business(client, token)
    outsider = register(client, "x@other.io")

    mine = client.get("/api/business", headers=auth_headers(token))
    single = client.get(f"/api/business/{business['id']}", headers=auth_headers(token))
    forbidden = client.get(f"/api/business/{business['id']}", headers=auth_headers(outsider))
    missing = client.get("/api/business/999", headers=auth_headers(token))

    assert [item["id"] for item in mine.json()["data"]] == [business["id"]]
    assert single.json()["data"]["name"] == "Acme"
    assert forbidden.status_code == 403
    assert missing.status_code == 404


def test_update_business_is_partial_and_owner_only(client):
    token = register(client, "a@acme.io")
    business = create_business(client, token)
    employee = add_employee(client, token, business["id"], "e@acme.io")

    denied = client.put(
        f"/api/business/{business['id']}", json={"name": "Hijacked"}, headers=auth_headers(employee)
    )
    updated = client.put(
        f"/api/business/{business['id']}", json={"description": "Now with paint"}, headers=auth_headers(token)
    )

    assert denied.status_code == 403
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["description"] == "Now with paint"
    assert data["name"] == "Acme"
    assert data["address"] == ACME_PAYLOAD["address"]


def test_update_business_requires_province_and_district_together(client):
    token = register(client, "a@acme.io")
    business = create_business(client, token)

    response = client.put(
        f"/api/business/{business['id']}", json={"district_id": 2}, headers=auth_headers(token)
    )
    moved = client.put(
        f"/api/business/{business['id']}", json={"province_id": 6, "district_id": 3}, headers=auth_headers(token)
    )

    assert response.status_code == 400
    assert moved.json()["data"]["district_name"] == "Cankaya"


def test_sub_business_inherits_contact_details(client):
    token = register(client, "a@acme.io")
    parent = create_business(client, token)

    response = client.post(
        f"/api/business/{parent['id']}/sub-businesses",
        json={"name": "Acme Besiktas", "latitude": 41.04, "longitude": 29.0},
        headers=auth_headers(token),
    )

    assert response.status_code == 201
    sub = response.json()["data"]
    assert sub["parent_business_id"] == parent["id"]
    assert sub["parent_business_name"] == "Acme"
    assert sub["is_sub_business"] is True
    assert sub["address"] == parent["address"]
    assert sub["phone_number"] == parent["phone_number"]
    assert sub["location_name"] == "Acme Besiktas"
    # Access flows from the parent membership
    assert sub["role"] == "owner"
    assert sub["member_count"] == 0


def test_create_business_with_parent_id_creates_location(client):
    token = register(client, "a@acme.io")
    parent = create_business(client, token)

    sub = create_business(client, token, name="Acme Kadikoy", parent_business_id=parent["id"])

    assert sub["parent_business_id"] == parent["id"]
    listing = client.get(f"/api/business/{parent['id']}/sub-businesses", headers=auth_headers(token))
    assert [item["id"] for item in listing.json()["data"]] == [sub["id"]]
    assert client.get(f"/api/business/{parent['id']}", headers=auth_headers(token)).json()["data"]["sub_business_count"] == 1


def test_locations_cannot_be_nested(client):
    token = register(client, "a@acme.io")
    parent = create_business(client, token)
    sub = create_business(client, token, name="Acme Kadikoy", parent_business_id=parent["id"])

    response = client.post(
        f"/api/business/{sub['id']}/sub-businesses", json={"name": "Too Deep"}, headers=auth_headers(token)
    )

    assert response.status_code == 400


def test_only_owner_creates_locations_and_names_are_unique(client):
    token = register(client, "a@acme.io")
    parent = create_business(client, token)
    employee = add_employee(client, token, parent["id"], "e@acme.io")
    create_business(client, token, name="Acme Kadikoy", parent_business_id=parent["id"])

    denied = client.post(
        f"/api/business/{parent['id']}/sub-businesses", json={"name": "Acme Moda"}, headers=auth_headers(employee)
    )
    duplicate = client.post(
        f"/api/business/{parent['id']}/sub-businesses", json={"name": "acme kadikoy"}, headers=auth_headers(token)
    )

    assert denied.status_code == 403
    assert duplicate.status_code == 409


def test_sub_businesses_readable_by_any_member_but_not_outsiders(client):
    token = register(client, "a@acme.io")
    parent = create_business(client, token)
    sub = create_business(client, token, name="Acme Kadikoy", parent_business_id=parent["id"])
    employee = add_employee(client, token, parent["id"], "e@acme.io")
    outsider = register(client, "x@other.io")

    as_employee = client.get(f"/api/business/{parent['id']}/sub-businesses", headers=auth_headers(employee))
    single = client.get(
        f"/api/business/{parent['id']}/sub-businesses/{sub['id']}", headers=auth_headers(employee)
    )
    as_outsider = client.get(f"/api/business/{parent['id']}/sub-businesses", headers=auth_headers(outsider))
    single_outsider = client.get(
        f"/api/business/{parent['id']}/sub-businesses/{sub['id']}", headers=auth_headers(outsider)
    )

    assert as_employee.status_code == 200
    assert single.json()["data"]["role"] == "employee"
    assert as_outsider.status_code == 403
    assert single_outsider.status_code == 403


def test_sub_business_under_wrong_parent_is_not_found(client):
    token = register(client, "a@acme.io")
    parent = create_business(client, token)
    other = create_business(client, token, name="Other", phone_number="02125550000")
    sub = create_business(client, token, name="Acme Kadikoy", parent_business_id=parent["id"])

    response = client.get(f"/api/business/{other['id']}/sub-businesses/{sub['id']}", headers=auth_headers(token))

    assert response.status_code == 404


def test_parent_owner_updates_and_deletes_location(client):
    token = register(client, "a@acme.io")
    parent = create_business(client, token)
    sub = create_business(client, token, name="Acme Kadikoy", parent_business_id=parent["id"])
    employee = add_employee(client, token, parent["id"], "e@acme.io")

    denied = client.put(
        f"/api/business/{parent['id']}/sub-businesses/{sub['id']}",
        json={"name": "Mine"},
        headers=auth_headers(employee),
    )
    updated = client.put(
        f"/api/business/{parent['id']}/sub-businesses/{sub['id']}",
        json={"latitude": 40.99},
        headers=auth_headers(token),
    )
    deleted = client.delete(
        f"/api/business/{parent['id']}/sub-businesses/{sub['id']}", headers=auth_headers(token)
    )

    assert denied.status_code == 403
    assert updated.json()["data"]["latitude"] == 40.99
    assert updated.json()["data"]["name"] == "Acme Kadikoy"
    assert deleted.status_code == 200
    listing = client.get(f"/api/business/{parent['id']}/sub-businesses", headers=auth_headers(token))
    assert listing.json()["data"] == []


def test_delete_business_cascades_to_locations_and_memberships(client):
    token = register(client, "a@acme.io")
    parent = create_business(client, token)
    sub = create_business(client, token, name="Acme Kadikoy", parent_business_id=parent["id"])
    employee = add_employee(client, token, parent["id"], "e@acme.io")

    denied = client.delete(f"/api/business/{parent['id']}", headers=auth_headers(employee))
    assert denied.status_code == 403

    response = client.delete(f"/api/business/{parent['id']}", headers=auth_headers(token))
    assert response.status_code == 200

    assert client.get(f"/api/business/{sub['id']}", headers=auth_headers(token)).status_code == 404
    assert client.get("/api/business", headers=auth_headers(employee)).json()["data"] == []

    async def active_memberships(session):
        result = await session.execute(
            select(func.count(BusinessMember.id)).where(BusinessMember.is_active == True)
        )
        return result.scalar()

    assert run_db(active_memberships) == 0


def test_parent_owner_can_manage_location_members(client):
    token = register(client, "a@acme.io")
    parent = create_business(client, token)
    sub = create_business(client, token, name="Acme Kadikoy", parent_business_id=parent["id"])
    add_employee(client, token, sub["id"], "site@acme.io")

    member_id = member_id_for(client, token, sub["id"], "site@acme.io")
    response = client.put(
        f"/api/business/{sub['id']}/members/{member_id}", json={"position": "Cashier"}, headers=auth_headers(token)
    )

    assert response.status_code == 200
    assert response.json()["data"]["position"] == "Cashier"
