from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dealership.services.exceptions import CsvSchemaError

FIELD_MAPPINGS: Dict[str, List[str]] = {
    "modelName": ["Model Variant", "Model", "Variant", "Model Name"],
    "engineNumber": ["Engine Number", "Engine No", "Engine"],
    "chassisNumber": ["Frame Number", "Chassis Number", "Chassis", "Frame"],
    "color": ["Color", "Colour"],
    "location": ["LOCATION", "Location", "Branch"],
}

REQUIRED_FIELDS = ["modelName", "engineNumber", "chassisNumber", "color"]

SAMPLE_SIZE = 3


@dataclass
class DetectedSchema:
    columns: List[str]
    mappings: Dict[str, str]
    sample_data: List[dict] = field(default_factory=list)

    def column_for(self, field_name: str) -> Optional[str]:
        return self.mappings.get(field_name)

    def value(self, row: dict, field_name: str) -> str:
        column = self.mappings.get(field_name)
        if column is None:
            return ""
        value = row.get(column)
        return "" if value is None else str(value).strip()

    @property
    def mapped_columns(self) -> set:
        return set(self.mappings.values())


def find_column(columns: List[str], candidates: List[str]) -> Optional[str]:
    """First candidate spelling that matches a column case-insensitively wins."""
    lowered = {}
    for column in columns:
        lowered.setdefault(column.strip().lower(), column)
    for candidate in candidates:
        match = lowered.get(candidate.lower())
        if match is not None:
            return match
    return None


def detect_schema(records: List[dict]) -> DetectedSchema:
    """
    Maps arbitrary CSV headers onto the stock record fields.

    Columns are taken from the first record. Each field is resolved against
    its accepted header spellings by case-insensitive exact comparison.

    Args:
        records: parsed CSV rows as column -> value dicts

    Returns:
        DetectedSchema with the columns, field -> column mapping and a sample
        of the first rows

    Raises:
        CsvSchemaError: when there are no records or required fields are unmapped
    """
    if not records:
        raise CsvSchemaError("No records to analyze")

    columns = list(records[0].keys())
    mappings = {}
    for field_name, candidates in FIELD_MAPPINGS.items():
        column = find_column(columns, candidates)
        if column is not None:
            mappings[field_name] = column

    missing = [name for name in REQUIRED_FIELDS if name not in mappings]
    if missing:
        raise CsvSchemaError(f"Missing required columns: {', '.join(missing)}")

    return DetectedSchema(
        columns=columns,
        mappings=mappings,
        sample_data=records[:SAMPLE_SIZE],
    )
