import pytest
from sqlalchemy import select

from dealership.models.stock import StockItem

THREE_ROWS = (
    "Model Variant,Engine Number,Frame Number,Color,LOCATION,Dealer Code\n"
    "SHINE 100 DRUM,eng001,chs001,Black,golaghat,D1\n"
    "SP 125 DISC,eng002,,Red,jorhat,D2\n"
    "UNICORN,eng003,chs003,Blue,,D3\n"
)


async def upload(client, headers, branch_id, content, filename="stock.csv"):
    return await client.post(
        "/api/csv-stock/import",
        headers=headers,
        files={"file": (filename, content.encode(), "text/csv")},
        data={"defaultBranchId": str(branch_id)},
    )


@pytest.mark.asyncio
async def test_partial_import_reports_row_errors(async_client, admin_headers, test_branch, async_db_session):
    response = await upload(async_client, admin_headers, test_branch.id, THREE_ROWS)

    assert response.status_code == 207
    body = response.json()
    data = body["data"]
    assert body["message"] == "Imported 2/3"
    assert data["totalRows"] == 3
    assert data["successCount"] == 2
    assert data["failureCount"] == 1
    assert data["successCount"] + data["failureCount"] == data["totalRows"]
    assert data["errors"] == [{
        "row": 3,
        "data": {
            "Model Variant": "SP 125 DISC",
            "Engine Number": "eng002",
            "Frame Number": "",
            "Color": "Red",
            "LOCATION": "jorhat",
            "Dealer Code": "D2",
        },
        "error": "Engine/Chassis number missing",
    }]

    items = (await async_db_session.execute(select(StockItem).order_by(StockItem.id))).scalars().all()
    assert len(items) == 2
    assert {item.csv_batch_id for item in items} == {data["batchId"]}
    assert data["batchId"].startswith("CSV-")
    assert [item.engine_number for item in items] == ["ENG001", "ENG003"]
    assert [item.location for item in items] == ["GOLAGHAT", "WAREHOUSE"]
    assert all(item.stock_id.startswith("CSV-") for item in items)
    assert all(item.status == "Available" and item.source == "csv" for item in items)
    assert {f.name: f.value for f in items[0].extra_fields} == {"Dealer Code": "D1"}
    assert items[0].csv_data == {
        "Model Variant": "SHINE 100 DRUM",
        "Engine Number": "eng001",
        "Frame Number": "chs001",
        "Color": "Black",
        "LOCATION": "golaghat",
        "Dealer Code": "D1",
    }


@pytest.mark.asyncio
async def test_full_import_is_201(async_client, admin_headers, test_branch):
    content = "Model,Engine,Chassis,Colour\nSHINE,e1,c1,Red\nSP,e2,c2,Blue\n"
    response = await upload(async_client, admin_headers, test_branch.id, content)
    assert response.status_code == 201
    assert response.json()["data"]["successCount"] == 2


@pytest.mark.asyncio
async def test_duplicates_are_reported(async_client, admin_headers, test_branch, make_stock):
    await make_stock(engine_number="ENG001", chassis_number="MANUAL-CHS")
    content = (
        "Model,Engine,Chassis,Colour\n"
        "SHINE,eng001,new-chs,Red\n"
        "SP,eng009,chs009,Blue\n"
        "SP,eng010,chs009,Blue\n"
    )
    response = await upload(async_client, admin_headers, test_branch.id, content)

    assert response.status_code == 207
    errors = response.json()["data"]["errors"]
    assert [(e["row"], e["error"]) for e in errors] == [
        (2, "Duplicate: ENG001"),
        (4, "Duplicate: CHS009"),
    ]


@pytest.mark.asyncio
async def test_missing_file_or_branch(async_client, admin_headers, test_branch):
    response = await async_client.post(
        "/api/csv-stock/import", headers=admin_headers, data={"defaultBranchId": str(test_branch.id)}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "CSV file required"

    response = await async_client.post(
        "/api/csv-stock/import",
        headers=admin_headers,
        files={"file": ("stock.csv", b"Model,Engine,Chassis,Color\n", "text/csv")},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Default branch ID required"


@pytest.mark.asyncio
async def test_unknown_branch_is_404(async_client, admin_headers):
    response = await upload(async_client, admin_headers, 999, THREE_ROWS)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unmapped_headers_are_rejected(async_client, admin_headers, test_branch):
    response = await upload(async_client, admin_headers, test_branch.id, "Model,Color\nSHINE,Red\n")
    assert response.status_code == 400
    assert response.json()["message"] == "Missing required columns: engineNumber, chassisNumber"


@pytest.mark.asyncio
async def test_non_csv_upload_is_rejected(async_client, admin_headers, test_branch):
    response = await async_client.post(
        "/api/csv-stock/import",
        headers=admin_headers,
        files={"file": ("stock.pdf", b"%PDF", "application/pdf")},
        data={"defaultBranchId": str(test_branch.id)},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_branch_manager_cannot_import_into_other_branch(async_client, manager_headers, other_branch):
    response = await upload(async_client, manager_headers, other_branch.id, THREE_ROWS)
    assert response.status_code == 403
    assert response.json()["message"] == "Not authorized to access this branch"


@pytest.mark.asyncio
async def test_batches_and_batch_rows(async_client, admin_headers, test_branch):
    imported = await upload(async_client, admin_headers, test_branch.id, THREE_ROWS, filename="march.csv")
    batch_id = imported.json()["data"]["batchId"]

    batches = (await async_client.get("/api/csv-stock/batches/list", headers=admin_headers)).json()
    assert batches["data"][0]["batchId"] == batch_id
    assert batches["data"][0]["fileName"] == "march.csv"
    assert batches["data"][0]["count"] == 2

    rows = (await async_client.get(f"/api/csv-stock/batch/{batch_id}", headers=admin_headers)).json()
    assert rows["count"] == 2

    listing = (await async_client.get(
        "/api/csv-stock/", headers=admin_headers, params={"batchId": batch_id, "limit": 1}
    )).json()
    assert listing["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
