import pytest

from vehicle_app.validation import (
    MSG_NOT_AN_OBJECT,
    MSG_OPTIONAL_STRING,
    MSG_REQUIRED_NUMBER,
    MSG_REQUIRED_STRING,
    validate_vehicle_payload,
)


def test_valid_payload(vehicle_payload):
    result = validate_vehicle_payload(vehicle_payload)

    assert result.valid is True
    assert result.errors == {}


def test_description_is_optional(vehicle_payload):
    del vehicle_payload["description"]

    assert validate_vehicle_payload(vehicle_payload).valid is True


@pytest.mark.parametrize("payload", [None, [], ["vin"], "vin", 42, True])
def test_non_object_payload_has_single_global_error(payload):
    result = validate_vehicle_payload(payload)

    assert result.valid is False
    assert result.errors == {"body": [MSG_NOT_AN_OBJECT]}


def test_empty_object_reports_every_required_field():
    result = validate_vehicle_payload({})

    assert result.valid is False
    assert result.errors == {
        "vin": [MSG_REQUIRED_STRING],
        "manufacturer": [MSG_REQUIRED_STRING],
        "modelName": [MSG_REQUIRED_STRING],
        "fuelType": [MSG_REQUIRED_STRING],
        "horsePower": [MSG_REQUIRED_NUMBER],
        "modelYear": [MSG_REQUIRED_NUMBER],
        "purchasePrice": [MSG_REQUIRED_NUMBER],
    }


@pytest.mark.parametrize(
    "name", ["vin", "manufacturer", "modelName", "fuelType", "horsePower", "modelYear", "purchasePrice"]
)
def test_missing_required_field(vehicle_payload, name):
    del vehicle_payload[name]

    result = validate_vehicle_payload(vehicle_payload)

    assert result.valid is False
    assert list(result.errors) == [name]


@pytest.mark.parametrize("value", ["", "   ", None, 17, ["ABC"]])
def test_bad_required_string(vehicle_payload, value):
    vehicle_payload["manufacturer"] = value

    result = validate_vehicle_payload(vehicle_payload)

    assert result.errors == {"manufacturer": [MSG_REQUIRED_STRING]}


@pytest.mark.parametrize(
    "value", ["185", None, True, float("nan"), float("inf"), {"hp": 185}]
)
def test_bad_required_number(vehicle_payload, value):
    vehicle_payload["horsePower"] = value

    result = validate_vehicle_payload(vehicle_payload)

    assert result.errors == {"horsePower": [MSG_REQUIRED_NUMBER]}


@pytest.mark.parametrize("value", [None, 3, ["text"]])
def test_description_must_be_string_if_provided(vehicle_payload, value):
    vehicle_payload["description"] = value

    result = validate_vehicle_payload(vehicle_payload)

    assert result.errors == {"description": [MSG_OPTIONAL_STRING]}


@pytest.mark.parametrize(
    "name, bound", [("horsePower", 0), ("modelYear", 1850), ("purchasePrice", 0)]
)
def test_range_bounds(vehicle_payload, name, bound):
    vehicle_payload[name] = bound
    assert validate_vehicle_payload(vehicle_payload).valid is True

    vehicle_payload[name] = bound - 1
    result = validate_vehicle_payload(vehicle_payload)

    assert result.valid is False
    assert result.errors == {name: [f"Must be >= {bound}"]}


def test_fractional_values_below_bound_fail(vehicle_payload):
    vehicle_payload["purchasePrice"] = -0.01

    result = validate_vehicle_payload(vehicle_payload)

    assert result.errors == {"purchasePrice": ["Must be >= 0"]}


def test_all_violations_are_collected():
    payload = {
        "vin": "",
        "manufacturer": "Honda",
        "modelName": "Accord",
        "fuelType": "gasoline",
        "description": 12,
        "horsePower": -5,
        "modelYear": 1800,
        "purchasePrice": "cheap",
    }

    result = validate_vehicle_payload(payload)

    assert result.valid is False
    assert result.errors == {
        "vin": [MSG_REQUIRED_STRING],
        "purchasePrice": [MSG_REQUIRED_NUMBER],
        "description": [MSG_OPTIONAL_STRING],
        "horsePower": ["Must be >= 0"],
        "modelYear": ["Must be >= 1850"],
    }


def test_validation_does_not_mutate_payload(vehicle_payload):
    before = dict(vehicle_payload)

    validate_vehicle_payload(vehicle_payload)

    assert vehicle_payload == before
