from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

PHONE_IN_PATTERN = r"^[6-9]\d{9}$"
NUMBER_PLATE_PATTERN = r"^[A-Z]{2}[0-9]{2}[A-Z]{1,2}[0-9]{4}$"
RTO_CODE_PATTERN = r"^[A-Z]{2}[0-9]{2}$"
TIME_SLOT_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"
INTERNATIONAL_PHONE_PATTERN = r"^[\+]?[1-9][\d]{0,15}$"


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrmModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
