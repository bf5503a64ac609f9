from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .db import Vehicle


class VehicleResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    vin: str
    manufacturer: str
    description: str | None = None
    horse_power: int | float
    model_name: str
    model_year: int | float
    purchase_price: int | float
    fuel_type: str


class HealthResponse(BaseModel):
    status: str


class ErrorResponse(BaseModel):
    error: str


class ValidationErrorResponse(ErrorResponse):
    details: dict[str, list[str]]


def as_number(value) -> int | float:
    """Coerce a store numeric (often a Decimal) into a JSON number."""
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return int(value)
        return float(value)
    return value


def to_api_shape(vehicle: Vehicle) -> VehicleResponse:
    """
    Map a persisted vehicle row onto its API representation.

    Args:
        vehicle (Vehicle): A row already accepted by the store.

    Returns:
        VehicleResponse: The camelCase DTO with numeric columns as numbers.
    """
    return VehicleResponse(
        id=vehicle.id,
        vin=vehicle.vin,
        manufacturer=vehicle.manufacturer,
        description=vehicle.description,
        horse_power=as_number(vehicle.horse_power),
        model_name=vehicle.model_name,
        model_year=as_number(vehicle.model_year),
        purchase_price=as_number(vehicle.purchase_price),
        fuel_type=vehicle.fuel_type,
    )


def to_row_values(payload: dict) -> dict:
    """Map a validated request body onto the mutable store columns."""
    return {
        "manufacturer": payload["manufacturer"],
        "description": payload.get("description"),
        "horse_power": payload["horsePower"],
        "model_name": payload["modelName"],
        "model_year": payload["modelYear"],
        "purchase_price": payload["purchasePrice"],
        "fuel_type": payload["fuelType"],
    }
