import asyncio

from database import async_session_maker

DEFAULT_PASSWORD = "secret123"

ACME_PAYLOAD = {
    "name": "Acme",
    "description": "Hardware store",
    "address": "Moda Caddesi No: 12, Kadikoy",
    "phone_number": "0216 555 12 34",
    "province_id": 34,
    "district_id": 1,
}


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, email, password=DEFAULT_PASSWORD, first_name="Test", last_name="User"):
    response = client.post(
        "/api/auth/register",
        json={
            "email": email,
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["access_token"]


def create_business(client, token, **overrides):
    payload = {**ACME_PAYLOAD, **overrides}
    response = client.post("/api/business", json=payload, headers=auth_headers(token))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def invite(client, token, business_id, email):
    response = client.post(
        "/api/invitations",
        json={"business_id": business_id, "email": email},
        headers=auth_headers(token),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def add_employee(client, owner_token, business_id, email, first_name="Emp", last_name="Loyee"):
    """Register a user and bring them into the business through an invitation"""
    token = register(client, email, first_name=first_name, last_name=last_name)
    invitation = invite(client, owner_token, business_id, email)
    response = client.post(
        "/api/invitations/accept",
        json={"code": invitation["code"]},
        headers=auth_headers(token),
    )
    assert response.status_code == 200, response.text
    return token


def member_id_for(client, token, business_id, email):
    response = client.get(f"/api/business/{business_id}/members", headers=auth_headers(token))
    assert response.status_code == 200, response.text
    return next(member["id"] for member in response.json()["data"] if member["email"] == email)


def run_db(fn):
    """Run fn(session) against the test database and return its result"""
    async def runner():
        async with async_session_maker() as session:
            return await fn(session)
    return asyncio.run(runner())
