from datetime import timedelta

import pytest

from dealership.core.timeutils import today


def vehicle_payload(customer_id, **overrides):
    body = {
        "customerId": customer_id,
        "modelName": "Activa 6G",
        "category": "gearless",
        "engineCapacity": 110,
        "engineNumber": "jf50e1112223",
        "chassisNumber": "me4jf50abc7654321",
        "numberPlate": "as03c4567",
        "insurance": True,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_register_vehicle_without_stock(async_client, admin_headers, test_customer):
    response = await async_client.post(
        "/api/customer-vehicles/", headers=admin_headers, json=vehicle_payload(test_customer.id)
    )

    assert response.status_code == 201
    vehicle = response.json()["data"]
    assert vehicle["numberPlate"] == "AS03C4567"
    assert vehicle["engineNumber"] == "JF50E1112223"
    assert vehicle["rtoInfo"] == {"rtoCode": "AS03", "rtoName": None, "state": "AS"}
    assert vehicle["registeredOwnerName"] == "Rahul Bora"
    assert vehicle["serviceStatus"] == {
        "lastServiceDate": None,
        "nextServiceDue": None,
        "serviceType": "Regular",
        "kilometers": 0,
        "serviceHistory": 0,
    }

    response = await async_client.post(
        "/api/customer-vehicles/",
        headers=admin_headers,
        json=vehicle_payload(test_customer.id, engineNumber="X1", chassisNumber="Y1"),
    )
    assert response.status_code == 409
    assert response.json()["message"] == "Number plate already registered"


@pytest.mark.asyncio
async def test_future_purchase_date_is_rejected(async_client, admin_headers, test_customer):
    response = await async_client.post(
        "/api/customer-vehicles/",
        headers=admin_headers,
        json=vehicle_payload(test_customer.id, purchaseDate=(today() + timedelta(days=1)).isoformat()),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_stock_item_can_have_only_one_active_owner(async_client, admin_headers, make_stock, make_customer):
    stock = await make_stock()
    first = await make_customer("9876543210")
    second = await make_customer("9123456780")

    response = await async_client.post(
        "/api/customer-vehicles/",
        headers=admin_headers,
        json=vehicle_payload(first.id, stockItemId=stock.id, numberPlate=None),
    )
    assert response.status_code == 201

    response = await async_client.post(
        "/api/customer-vehicles/",
        headers=admin_headers,
        json=vehicle_payload(second.id, stockItemId=stock.id, numberPlate=None),
    )
    assert response.status_code == 409
    assert response.json()["message"] == "Stock item already has an active owner"


@pytest.mark.asyncio
async def test_customer_sees_only_own_vehicles(async_client, admin_headers, make_customer):
    owner = await make_customer("9876543210")
    stranger = await make_customer("9123456780")
    created = await async_client.post("/api/customer-vehicles/", headers=admin_headers, json=vehicle_payload(owner.id))
    vehicle_id = created.json()["data"]["id"]

    mine = await async_client.get(
        "/api/customer-vehicles/my-vehicles", headers={"Authorization": "Bearer token-9876543210"}
    )
    assert [v["id"] for v in mine.json()["data"]] == [vehicle_id]

    response = await async_client.get(
        f"/api/customer-vehicles/{vehicle_id}", headers={"Authorization": "Bearer token-9876543210"}
    )
    assert response.status_code == 200

    response = await async_client.get(
        f"/api/customer-vehicles/{vehicle_id}", headers={"Authorization": f"Bearer token-{stranger.phone_number}"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_branch_manager_scope_follows_stock_branch(
    async_client, admin_headers, manager_headers, make_stock, make_customer, other_branch
):
    customer = await make_customer()
    own_stock = await make_stock()
    foreign_stock = await make_stock(branch_id=other_branch.id)
    await async_client.post(
        "/api/customer-vehicles/", headers=admin_headers,
        json=vehicle_payload(customer.id, stockItemId=own_stock.id, numberPlate=None),
    )
    foreign = await async_client.post(
        "/api/customer-vehicles/", headers=admin_headers,
        json=vehicle_payload(customer.id, stockItemId=foreign_stock.id, numberPlate=None,
                             engineNumber="E2", chassisNumber="C2"),
    )

    listing = await async_client.get("/api/customer-vehicles/", headers=manager_headers)
    assert listing.json()["total"] == 1

    response = await async_client.get(
        f"/api/customer-vehicles/{foreign.json()['data']['id']}", headers=manager_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_service_status_and_due_list(async_client, admin_headers, test_customer):
    created = await async_client.post(
        "/api/customer-vehicles/", headers=admin_headers, json=vehicle_payload(test_customer.id)
    )
    vehicle_id = created.json()["data"]["id"]
    serviced_on = today() - timedelta(days=150)

    response = await async_client.put(
        f"/api/customer-vehicles/{vehicle_id}/service-status",
        headers=admin_headers,
        json={
            "lastServiceDate": serviced_on.isoformat(),
            "nextServiceDue": (today() + timedelta(days=10)).isoformat(),
            "serviceType": "Due",
            "kilometers": 8200,
        },
    )
    status = response.json()["data"]["serviceStatus"]
    assert status["serviceHistory"] == 1
    assert status["serviceType"] == "Due"
    assert status["kilometers"] == 8200

    # same service date again is not a new visit
    response = await async_client.put(
        f"/api/customer-vehicles/{vehicle_id}/service-status",
        headers=admin_headers,
        json={"lastServiceDate": serviced_on.isoformat()},
    )
    assert response.json()["data"]["serviceStatus"]["serviceHistory"] == 1

    due = await async_client.get("/api/customer-vehicles/admin/service-due", headers=admin_headers, params={"days": 30})
    assert [v["id"] for v in due.json()["data"]] == [vehicle_id]

    stats = await async_client.get("/api/customer-vehicles/admin/stats", headers=admin_headers)
    assert stats.json()["data"]["byServiceType"] == {"Due": 1}
    assert stats.json()["data"]["insuredVehicles"] == 1


@pytest.mark.asyncio
async def test_soft_delete(async_client, admin_headers, test_customer):
    created = await async_client.post(
        "/api/customer-vehicles/", headers=admin_headers, json=vehicle_payload(test_customer.id)
    )
    vehicle_id = created.json()["data"]["id"]

    response = await async_client.delete(f"/api/customer-vehicles/{vehicle_id}", headers=admin_headers)
    assert response.status_code == 200

    active = await async_client.get("/api/customer-vehicles/", headers=admin_headers)
    assert active.json()["total"] == 0
    inactive = await async_client.get("/api/customer-vehicles/", headers=admin_headers, params={"isActive": "false"})
    assert inactive.json()["total"] == 1
