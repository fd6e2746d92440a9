from datetime import timedelta

import pytest

from dealership.core.timeutils import today
from dealership.services.booking_service import daily_slots
from dealership.services.booking_state import ALLOWED_TRANSITIONS, can_transition, ensure_transition
from dealership.services.exceptions import InvalidTransitionError


@pytest.mark.parametrize("current,target", [
    ("pending", "confirmed"),
    ("confirmed", "in-progress"),
    ("in-progress", "completed"),
    ("pending", "cancelled"),
    ("confirmed", "cancelled"),
    ("in-progress", "cancelled"),
])
def test_allowed_transitions(current, target):
    ensure_transition(current, target)
    assert can_transition(current, target)


@pytest.mark.parametrize("current,target", [
    ("pending", "completed"),
    ("pending", "in-progress"),
    ("confirmed", "completed"),
    ("confirmed", "pending"),
    ("in-progress", "confirmed"),
])
def test_skipping_or_reversing_is_rejected(current, target):
    with pytest.raises(InvalidTransitionError) as exc:
        ensure_transition(current, target)
    assert exc.value.message == f"Cannot change booking status from '{current}' to '{target}'"


@pytest.mark.parametrize("target", list(ALLOWED_TRANSITIONS))
def test_nothing_leaves_cancelled(target):
    with pytest.raises(InvalidTransitionError) as exc:
        ensure_transition("cancelled", target)
    assert exc.value.message == "Booking is already cancelled"


def test_completed_cannot_be_cancelled():
    with pytest.raises(InvalidTransitionError) as exc:
        ensure_transition("completed", "cancelled")
    assert exc.value.message == "Cannot cancel completed booking"
    assert exc.value.status_code == 400


def test_daily_slots_skip_lunch():
    slots = daily_slots()
    assert slots[0] == "09:00"
    assert slots[-1] == "17:30"
    assert "13:00" not in slots and "13:30" not in slots
    assert len(slots) == 16


def booking_payload(branch_id, **overrides):
    body = {
        "modelName": "Shine 100",
        "registrationNumber": "AS05AB1234",
        "vehicleAge": "2 years",
        "mileage": "12000",
        "serviceType": "General Service",
        "branchId": branch_id,
        "appointmentDate": (today() + timedelta(days=3)).isoformat(),
        "appointmentTime": "10:30",
        "firstName": "Rahul",
        "lastName": "Bora",
        "email": "Rahul@Example.com",
        "phone": "9876543210",
        "termsAccepted": True,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_public_booking_flow(async_client, admin_headers, test_branch):
    response = await async_client.post("/api/service-bookings/", json=booking_payload(test_branch.id))
    assert response.status_code == 201
    booking = response.json()["data"]
    assert booking["status"] == "pending"
    assert booking["bookingId"] == f"SB-{today().strftime('%Y%m%d')}-0001"
    assert booking["email"] == "rahul@example.com"
    assert booking["customerId"] is None

    ref = booking["bookingId"]
    for status in ("confirmed", "in-progress"):
        response = await async_client.patch(
            f"/api/service-bookings/{ref}/status", headers=admin_headers, json={"status": status}
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == status

    response = await async_client.patch(
        f"/api/service-bookings/{ref}/status",
        headers=admin_headers,
        json={"status": "completed", "actualCost": 1450, "serviceNotes": "Chain adjusted"},
    )
    completed = response.json()["data"]
    assert completed["status"] == "completed"
    assert completed["actualCost"] == 1450
    assert completed["confirmedAt"] is not None
    assert completed["completedAt"] is not None

    response = await async_client.post(f"/api/service-bookings/{ref}/cancel", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot cancel completed booking"


@pytest.mark.asyncio
async def test_booking_numbers_increase_within_a_day(async_client, test_branch):
    first = await async_client.post("/api/service-bookings/", json=booking_payload(test_branch.id))
    second = await async_client.post(
        "/api/service-bookings/", json=booking_payload(test_branch.id, appointmentTime="11:00")
    )
    assert first.json()["data"]["bookingId"].endswith("-0001")
    assert second.json()["data"]["bookingId"].endswith("-0002")


@pytest.mark.asyncio
async def test_slot_conflict_and_availability(async_client, test_branch):
    payload = booking_payload(test_branch.id, appointmentTime="9:30")
    response = await async_client.post("/api/service-bookings/", json=payload)
    assert response.json()["data"]["appointmentTime"] == "09:30"

    response = await async_client.post("/api/service-bookings/", json=payload)
    assert response.status_code == 409
    assert response.json()["message"] == "Time slot is already booked. Please choose another time."

    response = await async_client.get(
        "/api/service-bookings/availability",
        params={"branchId": test_branch.id, "date": payload["appointmentDate"]},
    )
    data = response.json()["data"]
    assert data["bookedSlots"] == ["09:30"]
    assert "09:30" not in data["availableSlots"]
    assert len(data["availableSlots"]) == 15


@pytest.mark.asyncio
async def test_cancelled_slot_is_free_again(async_client, admin_headers, test_branch):
    payload = booking_payload(test_branch.id)
    created = await async_client.post("/api/service-bookings/", json=payload)
    ref = created.json()["data"]["bookingId"]

    cancelled = await async_client.post(
        f"/api/service-bookings/{ref}/cancel", headers=admin_headers, json={"reason": "Customer called"}
    )
    assert cancelled.json()["data"]["status"] == "cancelled"
    assert "Cancelled: Customer called" in cancelled.json()["data"]["internalNotes"]

    response = await async_client.post("/api/service-bookings/", json=payload)
    assert response.status_code == 201

    response = await async_client.patch(
        f"/api/service-bookings/{ref}/status", headers=admin_headers, json={"status": "confirmed"}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Booking is already cancelled"


@pytest.mark.asyncio
async def test_booking_validation(async_client, test_branch):
    response = await async_client.post(
        "/api/service-bookings/", json=booking_payload(test_branch.id, termsAccepted=False)
    )
    assert response.status_code == 400
    assert response.json()["message"] == "You must accept the terms and conditions"

    response = await async_client.post(
        "/api/service-bookings/", json=booking_payload(test_branch.id, appointmentDate=today().isoformat())
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Appointment date must be in the future"

    response = await async_client.post("/api/service-bookings/", json=booking_payload(999))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_customer_owns_booking(async_client, test_branch, make_customer):
    owner = await make_customer("9876543210")
    stranger = await make_customer("9123456780")
    owner_headers = {"Authorization": f"Bearer token-{owner.phone_number}"}
    stranger_headers = {"Authorization": f"Bearer token-{stranger.phone_number}"}

    created = await async_client.post(
        "/api/service-bookings/", headers=owner_headers, json=booking_payload(test_branch.id)
    )
    booking = created.json()["data"]
    assert booking["customerId"] == owner.id

    mine = await async_client.get("/api/service-bookings/my-bookings", headers=owner_headers)
    assert mine.json()["count"] == 1

    response = await async_client.get(f"/api/service-bookings/{booking['id']}", headers=stranger_headers)
    assert response.status_code == 403

    response = await async_client.post(f"/api/service-bookings/{booking['id']}/cancel", headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_branch_manager_only_sees_own_branch(async_client, manager_headers, test_branch, other_branch):
    await async_client.post("/api/service-bookings/", json=booking_payload(test_branch.id))
    await async_client.post("/api/service-bookings/", json=booking_payload(other_branch.id))

    response = await async_client.get("/api/service-bookings/admin/all", headers=manager_headers)
    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["branchId"] == test_branch.id

    response = await async_client.get(
        "/api/service-bookings/admin/all", headers=manager_headers, params={"branchId": other_branch.id}
    )
    assert response.status_code == 403
