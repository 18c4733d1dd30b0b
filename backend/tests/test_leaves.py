from helpers import add_employee, auth_headers, create_business, register


def request_leave(client, token, business_id, start="2024-01-10", end="2024-01-12", title="Family visit"):
    return client.post(
        "/api/leaves",
        json={"business_id": business_id, "title": title, "start_date": start, "end_date": end},
        headers=auth_headers(token),
    )


def setup_team(client):
    owner = register(client, "a@acme.io")
    business = create_business(client, owner)
    employee = add_employee(client, owner, business["id"], "e@acme.io", first_name="Elif", last_name="Sahin")
    return owner, business, employee


def test_leave_rejection_scenario(client):
    owner, business, employee = setup_team(client)

    created = request_leave(client, employee, business["id"])
    assert created.status_code == 201
    leave = created.json()["data"]
    assert leave["day_count"] == 2
    assert leave["status"] == "pending"

    rejected = client.put(
        f"/api/leaves/{leave['id']}/status",
        json={"status": "rejected", "rejection_reason": "insufficient notice"},
        headers=auth_headers(owner),
    )
    assert rejected.json()["data"]["rejection_reason"] == "insufficient notice"

    self_delete = client.delete(f"/api/leaves/{leave['id']}", headers=auth_headers(employee))
    assert self_delete.status_code == 403

    owner_delete = client.delete(f"/api/leaves/{leave['id']}", headers=auth_headers(owner))
    assert owner_delete.status_code == 200
    assert client.get(f"/api/leaves/business/{business['id']}", headers=auth_headers(owner)).json()["data"] == []


def test_single_day_leave_counts_as_one_day(client):
    _, business, employee = setup_team(client)

    response = request_leave(client, employee, business["id"], start="2024-03-01", end="2024-03-01")

    assert response.json()["data"]["day_count"] == 1


def test_leave_dates_must_be_ordered(client):
    _, business, employee = setup_team(client)

    response = request_leave(client, employee, business["id"], start="2024-03-05", end="2024-03-01")

    assert response.status_code == 400


def test_blank_title_is_rejected(client):
    _, business, employee = setup_team(client)

    response = request_leave(client, employee, business["id"], title="   ")

    assert response.status_code == 400
    assert response.json()["message"] == "Title cannot be empty"


def test_non_member_cannot_request_leave(client):
    _, business, _ = setup_team(client)
    outsider = register(client, "x@other.io")

    response = request_leave(client, outsider, business["id"])

    assert response.status_code == 403


def test_requester_withdraws_pending_leave(client):
    _, business, employee = setup_team(client)
    leave = request_leave(client, employee, business["id"]).json()["data"]

    response = client.delete(f"/api/leaves/{leave['id']}", headers=auth_headers(employee))

    assert response.status_code == 200
    assert client.get(
        "/api/leaves/my", params={"business_id": business["id"]}, headers=auth_headers(employee)
    ).json()["data"] == []


def test_other_employee_cannot_delete_leave(client):
    owner, business, employee = setup_team(client)
    colleague = add_employee(client, owner, business["id"], "c@acme.io")
    leave = request_leave(client, employee, business["id"]).json()["data"]

    response = client.delete(f"/api/leaves/{leave['id']}", headers=auth_headers(colleague))

    assert response.status_code == 403


def test_status_changes_are_owner_only_and_reason_cleared_when_not_rejected(client):
    owner, business, employee = setup_team(client)
    leave = request_leave(client, employee, business["id"]).json()["data"]
    url = f"/api/leaves/{leave['id']}/status"

    denied = client.put(url, json={"status": "approved"}, headers=auth_headers(employee))
    rejected = client.put(url, json={"status": "rejected", "rejection_reason": "busy week"}, headers=auth_headers(owner))
    approved = client.put(url, json={"status": "approved", "rejection_reason": "ignored"}, headers=auth_headers(owner))

    assert denied.status_code == 403
    assert rejected.json()["data"]["rejection_reason"] == "busy week"
    assert approved.json()["data"]["status"] == "approved"
    assert approved.json()["data"]["rejection_reason"] is None


def test_my_leaves_newest_first_and_business_leaves_named(client):
    owner, business, employee = setup_team(client)
    first = request_leave(client, employee, business["id"], title="First").json()["data"]
    second = request_leave(client, employee, business["id"], title="Second").json()["data"]

    mine = client.get("/api/leaves/my", params={"business_id": business["id"]}, headers=auth_headers(employee))
    everyone = client.get(f"/api/leaves/business/{business['id']}", headers=auth_headers(owner))
    as_employee = client.get(f"/api/leaves/business/{business['id']}", headers=auth_headers(employee))

    assert [item["id"] for item in mine.json()["data"]] == [second["id"], first["id"]]
    assert {item["member_name"] for item in everyone.json()["data"]} == {"Elif Sahin"}
    assert as_employee.status_code == 403


def test_unknown_leave_is_not_found(client):
    owner, _, _ = setup_team(client)

    response = client.put("/api/leaves/999/status", json={"status": "approved"}, headers=auth_headers(owner))

    assert response.status_code == 404
