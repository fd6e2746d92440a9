import pytest

from dealership.models.bike import Bike


def bike_payload(**overrides):
    body = {
        "modelName": "CB350",
        "category": "cruiser",
        "year": 2024,
        "variants": [{"name": "DLX", "priceAdjustment": 0}, {"name": "DLX Pro", "priceAdjustment": 5000}],
        "priceBreakdown": {"exShowroom": 210000, "rto": 18000, "insurance": 9000},
        "engineSize": "348.36cc",
        "power": 20.78,
        "transmission": "5-speed",
        "colors": ["Matte Black"],
        "keySpecifications": {"Mileage": "35 kmpl"},
        "stockAvailable": 3,
    }
    body.update(overrides)
    return body


def test_on_road_price_is_sum_of_components():
    bike = Bike(ex_showroom=65000, rto=6000, insurance=4000)
    bike.recalculate_on_road_price()
    assert bike.on_road_price == 75000


@pytest.mark.asyncio
async def test_category_listing_is_paginated(async_client, make_bike):
    for i in range(12):
        await make_bike(f"Sport {i}", category="sport")
    for i in range(3):
        await make_bike(f"Commuter {i}")

    response = await async_client.get("/api/bikes/get", params={"category": "sport", "page": 2, "limit": 10})

    assert response.status_code == 200
    body = response.json()
    assert body["currentPage"] == 2
    assert body["total"] == 12
    assert body["pages"] == 2
    assert body["count"] == len(body["data"]) == 2
    assert all(bike["category"] == "sport" for bike in body["data"])


@pytest.mark.asyncio
async def test_price_filters_and_sort(async_client, make_bike):
    await make_bike("Cheap", ex_showroom=60000)
    await make_bike("Mid", ex_showroom=90000)
    await make_bike("Dear", ex_showroom=150000)

    response = await async_client.get(
        "/api/bikes/get", params={"minPrice": 80000, "sortBy": "price", "sortOrder": "asc"}
    )
    names = [bike["modelName"] for bike in response.json()["data"]]
    assert names == ["Mid", "Dear"]


@pytest.mark.asyncio
async def test_search_and_inactive_bikes(async_client, make_bike):
    await make_bike("Shine 100")
    await make_bike("Shine 125", is_active=False)

    response = await async_client.get("/api/bikes/search", params={"q": "shine"})
    assert [bike["modelName"] for bike in response.json()["data"]] == ["Shine 100"]


@pytest.mark.asyncio
async def test_create_bike(async_client, admin_headers):
    response = await async_client.post("/api/bikes/create", headers=admin_headers, json=bike_payload())

    assert response.status_code == 201
    bike = response.json()["data"]
    assert bike["priceBreakdown"]["onRoad"] == 237000
    assert bike["mainCategory"] == "bike"
    assert bike["variants"][1]["priceAdjustment"] == 5000
    assert bike["images"] == []

    response = await async_client.post("/api/bikes/create", headers=admin_headers, json=bike_payload())
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_create_requires_admin(async_client):
    response = await async_client.post("/api/bikes/create", json=bike_payload())
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, no token provided"


@pytest.mark.asyncio
async def test_update_recalculates_price(async_client, admin_headers, make_bike):
    bike = await make_bike()
    response = await async_client.patch(
        f"/api/bikes/{bike.id}",
        headers=admin_headers,
        json={"priceBreakdown": {"exShowroom": 70000, "rto": 6500, "insurance": 4200}, "isNewModel": True},
    )
    data = response.json()["data"]
    assert data["priceBreakdown"]["onRoad"] == 80700
    assert data["isNewModel"] is True


@pytest.mark.asyncio
async def test_images_upload_primary_and_delete(async_client, admin_headers, make_bike, object_storage):
    bike = await make_bike()
    files = [
        ("images", ("front.jpg", b"front-bytes", "image/jpeg")),
        ("images", ("side.png", b"side-bytes", "image/png")),
    ]

    response = await async_client.post(f"/api/bike-images/{bike.id}", headers=admin_headers, files=files)

    assert response.status_code == 201
    images = response.json()["data"]
    assert [image["isPrimary"] for image in images] == [True, False]
    assert len(object_storage.objects) == 2

    first, second = images
    response = await async_client.delete(f"/api/bike-images/image/{first['id']}", headers=admin_headers)
    assert response.status_code == 200

    remaining = (await async_client.get(f"/api/bike-images/{bike.id}")).json()["data"]
    assert [(image["id"], image["isPrimary"]) for image in remaining] == [(second["id"], True)]
    assert len(object_storage.deleted) == 1


@pytest.mark.asyncio
async def test_image_type_is_checked(async_client, admin_headers, make_bike, object_storage):
    bike = await make_bike()
    response = await async_client.post(
        f"/api/bike-images/{bike.id}",
        headers=admin_headers,
        files=[("images", ("notes.txt", b"hello", "text/plain"))],
    )
    assert response.status_code == 400
    assert object_storage.objects == {}


@pytest.mark.asyncio
async def test_delete_bike_clears_storage(async_client, admin_headers, make_bike, object_storage):
    bike = await make_bike()
    await async_client.post(
        f"/api/bike-images/{bike.id}",
        headers=admin_headers,
        files=[("images", ("front.jpg", b"front-bytes", "image/jpeg"))],
    )

    response = await async_client.delete(f"/api/bikes/{bike.id}", headers=admin_headers)
    assert response.status_code == 200
    assert len(object_storage.deleted) == 1

    response = await async_client.get(f"/api/bikes/{bike.id}")
    assert response.status_code == 404
