from dataclasses import dataclass, field
import math
from typing import Annotated

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


BODY_ERROR_KEY = "body"

MSG_NOT_AN_OBJECT = "Request body must be a JSON object"
MSG_REQUIRED_STRING = "Required string field missing or empty"
MSG_REQUIRED_NUMBER = "Required number field missing"
MSG_OPTIONAL_STRING = "Must be a string if provided"

Number = StrictInt | Annotated[float, Field(strict=True, allow_inf_nan=False)]


def is_number(value) -> bool:
    # bool is a subclass of int but is not a number in JSON terms
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def check_minimum(value, minimum):
    if value < minimum:
        raise PydanticCustomError("greater_than_equal", f"Must be >= {minimum}")
    return value


class VehicleCreate(BaseModel):
    """Request body for creating or replacing a vehicle."""

    model_config = ConfigDict(alias_generator=to_camel)

    vin: StrictStr
    manufacturer: StrictStr
    description: StrictStr | None = None
    horse_power: Number
    model_name: StrictStr
    model_year: Number
    purchase_price: Number
    fuel_type: StrictStr

    @field_validator("vin", "manufacturer", "model_name", "fuel_type", mode="before")
    @classmethod
    def validate_required_string(cls, value):
        if not isinstance(value, str) or value.strip() == "":
            raise PydanticCustomError("required_string", MSG_REQUIRED_STRING)
        return value

    @field_validator("horse_power", "model_year", "purchase_price", mode="before")
    @classmethod
    def validate_required_number(cls, value):
        if not is_number(value):
            raise PydanticCustomError("required_number", MSG_REQUIRED_NUMBER)
        return value

    # only runs when the key is present, so an explicit null is rejected
    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, value):
        if not isinstance(value, str):
            raise PydanticCustomError("optional_string", MSG_OPTIONAL_STRING)
        return value

    @field_validator("horse_power", "purchase_price")
    @classmethod
    def validate_non_negative(cls, value):
        return check_minimum(value, 0)

    @field_validator("model_year")
    @classmethod
    def validate_model_year(cls, value):
        return check_minimum(value, 1850)


MISSING_MESSAGES = {
    "vin": MSG_REQUIRED_STRING,
    "manufacturer": MSG_REQUIRED_STRING,
    "modelName": MSG_REQUIRED_STRING,
    "fuelType": MSG_REQUIRED_STRING,
    "horsePower": MSG_REQUIRED_NUMBER,
    "modelYear": MSG_REQUIRED_NUMBER,
    "purchasePrice": MSG_REQUIRED_NUMBER,
}


@dataclass
class ValidationResult:
    valid: bool
    errors: dict[str, list[str]] = field(default_factory=dict)


def validate_vehicle_payload(payload) -> ValidationResult:
    """
    Validate a decoded request body against the vehicle schema.

    Every rule is checked and all violations are collected, keyed by the
    API-facing field name. Never raises.

    Args:
        payload: The decoded JSON body, of any type.

    Returns:
        ValidationResult: ``valid`` is True only if ``errors`` is empty.
    """
    if not isinstance(payload, dict):
        return ValidationResult(valid=False, errors={BODY_ERROR_KEY: [MSG_NOT_AN_OBJECT]})

    try:
        VehicleCreate.model_validate(payload)
    except ValidationError as e:
        errors: dict[str, list[str]] = {}
        for error in e.errors():
            name = error["loc"][0]
            if error["type"] == "missing":
                message = MISSING_MESSAGES[name]
            else:
                message = error["msg"]
            errors.setdefault(name, []).append(message)
        return ValidationResult(valid=False, errors=errors)

    return ValidationResult(valid=True)
