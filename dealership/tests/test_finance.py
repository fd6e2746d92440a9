from datetime import timedelta

import pytest
from sqlalchemy import func, select

from dealership.core.timeutils import today
from dealership.models.finance_application import FinanceApplication
from dealership.services.finance import calculate_emi, emi_summary


def application_payload(**overrides):
    body = {
        "firstName": "Priya",
        "lastName": "Saikia",
        "email": "Priya.Saikia@example.com",
        "phone": "+91 98765 43210",
        "employmentType": "salaried",
        "monthlyIncome": 45000,
        "creditScoreRange": "good",
        "bikeModel": "SP 125",
        "bikePrice": 98000,
        "downPayment": 20000,
        "tenureMonths": 24,
        "termsAccepted": True,
        "privacyPolicyAccepted": True,
    }
    body.update(overrides)
    return body


async def application_count(session):
    return (await session.execute(select(func.count()).select_from(FinanceApplication))).scalar_one()


def test_emi_formula():
    assert calculate_emi(100000, 12, 12) == 8884.88


def test_zero_rate_splits_evenly():
    assert calculate_emi(12000, 0, 12) == 1000


def test_emi_summary():
    summary = emi_summary(98000, 20000, 12, 12)
    assert summary["loanAmount"] == 78000
    assert summary["totalPayable"] == round(summary["emi"] * 12, 2)
    assert summary["totalInterest"] == round(summary["totalPayable"] - 78000, 2)


def test_invalid_tenure():
    with pytest.raises(ValueError):
        calculate_emi(1000, 10, 0)


@pytest.mark.asyncio
async def test_terms_must_be_accepted(async_client, async_db_session):
    response = await async_client.post("/api/getapproved/", json=application_payload(termsAccepted=False))
    assert response.status_code == 400
    assert response.json()["message"] == "You must accept the terms and conditions"
    assert await application_count(async_db_session) == 0


@pytest.mark.asyncio
async def test_privacy_policy_must_be_accepted(async_client, async_db_session):
    response = await async_client.post("/api/getapproved/", json=application_payload(privacyPolicyAccepted=False))
    assert response.status_code == 400
    assert response.json()["message"] == "You must accept the privacy policy"
    assert await application_count(async_db_session) == 0


@pytest.mark.asyncio
async def test_submit_and_check_status(async_client):
    response = await async_client.post("/api/getapproved/", json=application_payload())
    assert response.status_code == 201
    application = response.json()["data"]
    assert application["applicationId"].startswith("GA-")
    assert application["status"] == "pending"
    assert application["email"] == "priya.saikia@example.com"
    assert application["phone"] == "+919876543210"

    response = await async_client.post(
        "/api/getapproved/check-status",
        json={"email": "PRIYA.SAIKIA@example.com", "applicationId": application["applicationId"].lower()},
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "pending"

    response = await async_client.post(
        "/api/getapproved/check-status",
        json={"email": "someone@example.com", "applicationId": application["applicationId"]},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_one_application_per_email(async_client, async_db_session):
    await async_client.post("/api/getapproved/", json=application_payload())
    response = await async_client.post("/api/getapproved/", json=application_payload(firstName="Other"))
    assert response.status_code == 400
    assert response.json()["message"] == "An application with this email already exists"
    assert await application_count(async_db_session) == 1


@pytest.mark.asyncio
async def test_pre_approval_sets_validity(async_client, admin_headers):
    created = await async_client.post("/api/getapproved/", json=application_payload())
    ref = created.json()["data"]["applicationId"]

    response = await async_client.put(
        f"/api/getapproved/{ref}/status",
        headers=admin_headers,
        json={"status": "pre-approved", "preApprovalAmount": 75000, "validDays": 15, "reviewNotes": "Docs verified"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "pre-approved"
    assert data["preApprovalAmount"] == 75000
    assert data["preApprovalValidUntil"] == (today() + timedelta(days=15)).isoformat()
    assert data["reviewedBy"] == "Super-Admin:admin@example.com"


@pytest.mark.asyncio
async def test_branch_scoping_and_delete(async_client, admin_headers, manager_headers, test_branch, other_branch):
    await async_client.post("/api/getapproved/", json=application_payload(branchId=test_branch.id))
    other = await async_client.post(
        "/api/getapproved/", json=application_payload(email="b@example.com", branchId=other_branch.id)
    )

    listing = await async_client.get("/api/getapproved/", headers=manager_headers)
    assert listing.json()["total"] == 1

    other_id = other.json()["data"]["id"]
    response = await async_client.get(f"/api/getapproved/{other_id}", headers=manager_headers)
    assert response.status_code == 403

    response = await async_client.delete(f"/api/getapproved/{other_id}", headers=manager_headers)
    assert response.status_code == 403

    response = await async_client.delete(f"/api/getapproved/{other_id}", headers=admin_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_emi_endpoint(async_client):
    response = await async_client.post(
        "/api/getapproved/emi",
        json={"price": 120000, "downPayment": 20000, "interestRate": 12, "tenureMonths": 12},
    )
    assert response.json()["data"]["emi"] == 8884.88

    response = await async_client.post(
        "/api/getapproved/emi",
        json={"price": 50000, "downPayment": 50000, "interestRate": 12, "tenureMonths": 12},
    )
    assert response.status_code == 400
