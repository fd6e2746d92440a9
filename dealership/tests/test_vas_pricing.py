from datetime import date, timedelta

import pytest

from dealership.core.timeutils import today
from dealership.models.customer_vehicle import CustomerVehicle
from dealership.services.vas_pricing import calculate_price, is_eligible, price_breakdown
from dealership.services.vas_service import add_years


def test_price_without_multiplier_at_or_below_threshold():
    assert calculate_price(1000, 500, 2, 110, 1.5) == 2000
    assert calculate_price(1000, 500, 2, 125, 1.5) == 2000


def test_multiplier_applies_above_125cc():
    assert calculate_price(1000, 500, 2, 126, 1.5) == 3000
    breakdown = price_breakdown(1000, 500, 2, 160, 1.25)
    assert breakdown == {
        "basePrice": 1000,
        "yearlyPrice": 1000,
        "subtotal": 2000,
        "engineCapacityMultiplier": 1.25,
        "multiplierApplied": True,
        "totalPrice": 2500,
    }


def test_unknown_engine_capacity_has_no_multiplier():
    assert price_breakdown(1000, 0, 1, None, 2)["multiplierApplied"] is False


def test_price_rounds_to_whole_rupees():
    assert calculate_price(999, 333.3, 1, 150, 1.1) == 1466


@pytest.mark.parametrize("base_price,multiplier,expected", [(10, 1.25, 13), (2, 1.25, 3), (5, 1.5, 8)])
def test_price_rounds_half_up(base_price, multiplier, expected):
    assert calculate_price(base_price, 0, 1, 150, multiplier) == expected


@pytest.mark.parametrize("engine_capacity", [100, 150, 350])
def test_price_grows_with_years(engine_capacity):
    prices = [calculate_price(1500, 750, years, engine_capacity, 1.2) for years in range(1, 6)]
    assert prices == sorted(prices)
    assert len(set(prices)) == len(prices)


def test_eligibility_rules():
    assert is_eligible(110, "Commuter", 200, ["commuter", "sport"])
    assert not is_eligible(250, "commuter", 200, ["commuter"])
    assert not is_eligible(110, "cruiser", 200, ["commuter"])
    assert not is_eligible(None, "commuter", 200, ["commuter"])
    assert not is_eligible(110, None, 200, ["commuter"])
    assert not is_eligible(110, "commuter", 200, [])


def test_add_years_handles_leap_day():
    assert add_years(date(2024, 2, 29), 1) == date(2025, 2, 28)
    assert add_years(date(2024, 3, 1), 2) == date(2026, 3, 1)


def warranty_payload(**overrides):
    body = {
        "serviceName": "Extended Warranty 2Y",
        "serviceType": "Extended Warranty",
        "description": "Two extra years of engine and gearbox cover",
        "coverageYears": 2,
        "vehicleEligibility": {"maxEngineCapacity": 200, "categories": ["commuter"]},
        "priceStructure": {"basePrice": 1000, "pricePerYear": 500, "engineCapacityMultiplier": 1.5},
        "badges": [{"name": "Popular"}],
        "validUntil": (today() + timedelta(days=5 * 365)).isoformat(),
    }
    body.update(overrides)
    return body


async def add_vehicle(session, customer, engine_capacity=110, category="commuter"):
    vehicle = CustomerVehicle(
        customer_id=customer.id,
        model_name="Shine 100",
        category=category,
        engine_capacity=engine_capacity,
        engine_number=f"ENG{engine_capacity}{customer.id}",
        chassis_number=f"CHS{engine_capacity}{customer.id}",
        enrollments=[],
    )
    session.add(vehicle)
    await session.commit()
    return vehicle


@pytest.mark.asyncio
async def test_activate_service_on_vehicle(async_client, admin_headers, test_customer, async_db_session):
    created = await async_client.post("/api/value-added-services/admin", headers=admin_headers, json=warranty_payload())
    assert created.status_code == 201
    service = created.json()["data"]
    assert service["priceStructure"]["basePrice"] == 1000
    assert service["badges"][0]["isActive"] is True
    vehicle = await add_vehicle(async_db_session, test_customer)

    body = {"customerId": test_customer.id, "vehicleId": vehicle.id, "serviceId": service["id"]}
    response = await async_client.post("/api/value-added-services/admin/activate", headers=admin_headers, json=body)

    assert response.status_code == 201
    enrollment = response.json()["data"]
    assert enrollment["activatedDate"] == today().isoformat()
    assert enrollment["expiryDate"] == add_years(today(), 2).isoformat()
    assert enrollment["purchasePrice"] == 1000
    assert enrollment["isActive"] is True

    response = await async_client.post("/api/value-added-services/admin/activate", headers=admin_headers, json=body)
    assert response.status_code == 400
    assert response.json()["message"] == "Service is already active for this vehicle"


@pytest.mark.asyncio
async def test_expiry_is_capped_by_validity_window(async_client, admin_headers, test_customer, async_db_session):
    valid_until = today() + timedelta(days=200)
    created = await async_client.post(
        "/api/value-added-services/admin",
        headers=admin_headers,
        json=warranty_payload(validUntil=valid_until.isoformat()),
    )
    vehicle = await add_vehicle(async_db_session, test_customer)

    response = await async_client.post(
        "/api/value-added-services/admin/activate",
        headers=admin_headers,
        json={"customerId": test_customer.id, "vehicleId": vehicle.id, "serviceId": created.json()["data"]["id"]},
    )
    assert response.json()["data"]["expiryDate"] == valid_until.isoformat()


@pytest.mark.asyncio
async def test_ineligible_vehicle_is_rejected(async_client, admin_headers, test_customer, async_db_session):
    created = await async_client.post("/api/value-added-services/admin", headers=admin_headers, json=warranty_payload())
    vehicle = await add_vehicle(async_db_session, test_customer, engine_capacity=350, category="cruiser")

    response = await async_client.post(
        "/api/value-added-services/admin/activate",
        headers=admin_headers,
        json={"customerId": test_customer.id, "vehicleId": vehicle.id, "serviceId": created.json()["data"]["id"]},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Vehicle is not eligible for this service"


@pytest.mark.asyncio
async def test_deactivate_then_delete(async_client, admin_headers, test_customer, async_db_session):
    created = await async_client.post("/api/value-added-services/admin", headers=admin_headers, json=warranty_payload())
    service_id = created.json()["data"]["id"]
    vehicle = await add_vehicle(async_db_session, test_customer)
    await async_client.post(
        "/api/value-added-services/admin/activate",
        headers=admin_headers,
        json={"customerId": test_customer.id, "vehicleId": vehicle.id, "serviceId": service_id},
    )

    response = await async_client.delete(f"/api/value-added-services/admin/{service_id}", headers=admin_headers)
    assert response.status_code == 400

    response = await async_client.post(
        "/api/value-added-services/admin/deactivate",
        headers=admin_headers,
        json={"vehicleId": vehicle.id, "serviceId": service_id, "reason": "Customer request"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["deactivationReason"] == "Customer request"

    response = await async_client.delete(f"/api/value-added-services/admin/{service_id}", headers=admin_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_customer_price_quote_and_eligibility(async_client, admin_headers, customer_headers, test_customer, async_db_session):
    created = await async_client.post("/api/value-added-services/admin", headers=admin_headers, json=warranty_payload())
    service_id = created.json()["data"]["id"]
    vehicle = await add_vehicle(async_db_session, test_customer)

    response = await async_client.post(
        "/api/value-added-services/calculate-price",
        headers=customer_headers,
        json={"serviceId": service_id, "vehicleId": vehicle.id, "selectedYears": 3},
    )
    quote = response.json()["data"]
    assert quote["totalPrice"] == 2500
    assert quote["selectedYears"] == 3
    assert quote["multiplierApplied"] is False

    response = await async_client.post(
        "/api/value-added-services/calculate-price", headers=customer_headers, json={"serviceId": service_id}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Engine capacity or vehicle ID is required"

    response = await async_client.get("/api/value-added-services/eligible", headers=customer_headers)
    offers = response.json()["data"][0]["services"]
    assert [offer["price"] for offer in offers] == [2000]
    assert offers[0]["isActive"] is False


@pytest.mark.asyncio
async def test_only_super_admin_deletes_services(async_client, admin_headers, manager_headers):
    created = await async_client.post("/api/value-added-services/admin", headers=admin_headers, json=warranty_payload())
    response = await async_client.delete(
        f"/api/value-added-services/admin/{created.json()['data']['id']}", headers=manager_headers
    )
    assert response.status_code == 403
