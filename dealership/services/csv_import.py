import io
import logging
from typing import List

import pandas as pd
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.core.prometheus_metrics import prometheus_collector
from dealership.core.timeutils import utcnow
from dealership.models.enums import DEFAULT_CSV_LOCATION, StockSource, StockStatus
from dealership.models.stock import StockExtraField, StockItem
from dealership.schemas.stock import CsvImportResult, CsvRowError
from dealership.services.csv_schema import DetectedSchema, detect_schema
from dealership.services.exceptions import (
    ConflictError,
    CsvSchemaError,
    DealershipError,
    InvalidRequestError,
)
from dealership.services.ids import csv_batch_id, stock_id

logger = logging.getLogger(__name__)

CSV_SCHEMA_VERSION = 1


def parse_csv(content: bytes) -> List[dict]:
    """Header row, trimmed cells, blank lines skipped; every value kept as text."""
    try:
        df = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError:
        raise CsvSchemaError("No records to analyze")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise InvalidRequestError(f"Invalid CSV file: {e}")

    df.columns = df.columns.str.strip()
    df = df.apply(lambda column: column.str.strip())
    return df.to_dict(orient="records")


class CsvStockImportService:
    """
    Bulk creation of stock items from an uploaded CSV.

    Rows are isolated from each other: every accepted row is committed on its
    own, and a rejected row is reported without touching rows already stored.
    Database failures other than unique-key races propagate and abort the import.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def import_records(
        self,
        records: List[dict],
        branch_id: int,
        file_name: str,
        imported_by: str,
    ) -> CsvImportResult:
        """
        Imports parsed CSV rows into stock.

        Args:
            records: rows as column -> value dicts
            branch_id: branch every imported unit is assigned to
            file_name: original upload name, kept for provenance
            imported_by: label of the admin running the import

        Returns:
            CsvImportResult with counters, created stock ids and per-row errors.
            Row numbers in errors are 1-based file lines (header is line 1).

        Raises:
            CsvSchemaError: when the headers cannot be mapped
        """
        schema = detect_schema(records)
        batch_id = csv_batch_id()
        import_date = utcnow()
        result = CsvImportResult(
            batch_id=batch_id,
            total_rows=len(records),
            detected_columns=schema.columns,
        )

        for index, row in enumerate(records):
            row_number = index + 2
            try:
                created_id = await self._import_row(
                    row, schema, batch_id, import_date, branch_id, file_name, imported_by
                )
            except DealershipError as e:
                result.errors.append(CsvRowError(row=row_number, data=row, error=e.message))
                result.failure_count += 1
                prometheus_collector.record_csv_row(success=False)
                continue
            result.created.append(created_id)
            result.success_count += 1
            prometheus_collector.record_csv_row(success=True)

        result.success = result.failure_count == 0
        logger.info(
            "CSV import finished",
            extra={
                "batch_id": batch_id,
                "file_name": file_name,
                "total_rows": result.total_rows,
                "success_count": result.success_count,
                "failure_count": result.failure_count,
            },
        )
        return result

    async def _import_row(
        self,
        row: dict,
        schema: DetectedSchema,
        batch_id: str,
        import_date,
        branch_id: int,
        file_name: str,
        imported_by: str,
    ) -> str:
        engine_number = schema.value(row, "engineNumber").upper()
        chassis_number = schema.value(row, "chassisNumber").upper()
        if not engine_number or not chassis_number:
            raise InvalidRequestError("Engine/Chassis number missing")

        await self._ensure_unique_serials(engine_number, chassis_number)

        csv_count = (await self.db.execute(
            select(func.count()).select_from(StockItem).where(StockItem.source == StockSource.CSV.value)
        )).scalar_one()

        mapped = schema.mapped_columns
        item = StockItem(
            stock_id=stock_id(csv_count, prefix="CSV"),
            source=StockSource.CSV.value,
            model_name=schema.value(row, "modelName"),
            color=schema.value(row, "color"),
            engine_number=engine_number,
            chassis_number=chassis_number,
            status=StockStatus.AVAILABLE.value,
            location=schema.value(row, "location").upper() or DEFAULT_CSV_LOCATION,
            branch_id=branch_id,
            updated_by=imported_by,
            sales_history=[],
            csv_batch_id=batch_id,
            csv_file_name=file_name,
            csv_import_date=import_date,
            detected_columns=schema.columns,
            schema_version=CSV_SCHEMA_VERSION,
            # untouched upload row; typed columns and extra_fields are derived from it
            csv_data=dict(row),
            extra_fields=[
                StockExtraField(name=column, value=value)
                for column, value in row.items()
                if column not in mapped
            ],
        )
        self.db.add(item)
        try:
            await self.db.commit()
        except IntegrityError:
            # another request stored the same serial or stock id in the meantime
            await self.db.rollback()
            raise ConflictError(f"Duplicate: {engine_number}")
        return item.stock_id

    async def _ensure_unique_serials(self, engine_number: str, chassis_number: str) -> None:
        existing = (await self.db.execute(
            select(StockItem.engine_number, StockItem.chassis_number).where(
                or_(
                    StockItem.engine_number == engine_number,
                    StockItem.chassis_number == chassis_number,
                )
            ).limit(1)
        )).first()
        if existing is None:
            return
        duplicate = engine_number if existing.engine_number == engine_number else chassis_number
        raise ConflictError(f"Duplicate: {duplicate}")
