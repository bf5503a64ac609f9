from contextlib import asynccontextmanager
import logging
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.openapi.docs import get_swagger_ui_html
from pydantic_core import from_json
from sqlalchemy import insert, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.responses import HTMLResponse

import vehicle_app.models as model
from vehicle_app.db import (
    Vehicle,
    create_session_factory,
    create_store_engine,
    get_db,
    init_db,
    is_unique_violation,
    vin_matches,
)
from vehicle_app.errors import (
    MSG_INTERNAL_ERROR,
    MalformedBodyError,
    PayloadValidationError,
    register_error_handlers,
)
from vehicle_app.settings import Settings
from vehicle_app.validation import VehicleCreate, validate_vehicle_payload


MSG_NOT_FOUND = "Vehicle not found"
MSG_DUPLICATE_VIN = "Vehicle with this VIN already exists"
MSG_VIN_MISMATCH = "Must match the VIN in the request path"

router = APIRouter()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    404: {"model": model.ErrorResponse},
    422: {"model": model.ValidationErrorResponse},
    500: {"model": model.ErrorResponse},
}

# the body is decoded by read_json_body, so its schema is documented by hand
VEHICLE_BODY = {
    "requestBody": {
        "content": {"application/json": {"schema": VehicleCreate.model_json_schema()}},
        "required": True,
    }
}


async def read_json_body(request: Request) -> Any:
    """
    Decode the request body as JSON.

    Only ``application/json`` (or ``+json``) bodies are decoded. An empty or
    non-JSON body decodes to an empty object so that it fails field
    validation rather than JSON parsing. ``NaN`` and ``Infinity`` are not
    JSON and are rejected.

    Raises:
        MalformedBodyError: If the body is not valid JSON.
    """
    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if media_type != "application/json" and not media_type.endswith("+json"):
        return {}
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return from_json(raw, allow_inf_nan=False)
    except ValueError as e:
        raise MalformedBodyError() from e


def store_failure(db: Session, action: str) -> HTTPException:
    """Roll back and log the store error being handled; the client sees a bare 500."""
    db.rollback()
    logger.exception(f"Store error while {action}")
    return HTTPException(status_code=500, detail=MSG_INTERNAL_ERROR)


def validate_or_raise(payload: Any, path_vin: str | None = None) -> None:
    result = validate_vehicle_payload(payload)
    errors = result.errors
    if path_vin is not None and isinstance(payload, dict):
        body_vin = payload.get("vin")
        if isinstance(body_vin, str) and body_vin.lower() != path_vin.lower():
            errors.setdefault("vin", []).append(MSG_VIN_MISMATCH)
    if errors:
        raise PayloadValidationError(errors)


@router.get("/health", response_model=model.HealthResponse)
async def health():
    return {"status": "ok"}


@router.get("/vehicle", response_model=list[model.VehicleResponse])
def list_vehicles(db: Session = Depends(get_db)):
    """
    Endpoint to list every vehicle, ordered by id.

    Args:
        db (Session): The database session, injected via dependency injection.

    Returns:
        list[model.VehicleResponse]: All stored vehicles.
    """
    logger.info("Received vehicle list request")
    try:
        vehicles = db.query(Vehicle).order_by(Vehicle.id).all()
    except SQLAlchemyError as e:
        raise store_failure(db, "listing vehicles") from e

    return [model.to_api_shape(vehicle) for vehicle in vehicles]


@router.post(
    "/vehicle",
    status_code=201,
    response_model=model.VehicleResponse,
    responses=ERROR_RESPONSES,
    openapi_extra=VEHICLE_BODY,
)
def create_vehicle(payload: Any = Depends(read_json_body), db: Session = Depends(get_db)):
    """
    Endpoint to validate and store a new vehicle.

    VIN uniqueness is left to the store's unique index; a violation is
    reported back as a validation error on ``vin``.

    Args:
        payload (Any): The decoded request body.
        db (Session): The database session, injected via dependency injection.

    Returns:
        model.VehicleResponse: The stored vehicle, including its new id.
    """
    logger.info("Received vehicle creation request")
    validate_or_raise(payload)

    stmt = (
        insert(Vehicle)
        .values(vin=payload["vin"], **model.to_row_values(payload))
        .returning(Vehicle)
    )
    try:
        vehicle = db.execute(stmt).scalar_one()
        response = model.to_api_shape(vehicle)
        db.commit()
    except IntegrityError as e:
        if not is_unique_violation(e):
            raise store_failure(db, "creating a vehicle") from e
        db.rollback()
        logger.warning(f"Duplicate VIN rejected: '{payload['vin']}'")
        raise PayloadValidationError({"vin": [MSG_DUPLICATE_VIN]}) from e
    except SQLAlchemyError as e:
        raise store_failure(db, "creating a vehicle") from e

    logger.info(f"Created vehicle {response.id} with VIN '{response.vin}'")
    return response


@router.get("/vehicle/{vin}", response_model=model.VehicleResponse, responses=ERROR_RESPONSES)
def get_vehicle(vin: str, db: Session = Depends(get_db)):
    """Endpoint to fetch a vehicle by VIN, ignoring case."""
    logger.info(f"Received lookup request for VIN '{vin}'")
    try:
        vehicle = db.query(Vehicle).filter(vin_matches(vin)).first()
    except SQLAlchemyError as e:
        raise store_failure(db, f"fetching VIN '{vin}'") from e

    if vehicle is None:
        logger.warning(f"VIN '{vin}' not found")
        raise HTTPException(status_code=404, detail=MSG_NOT_FOUND)
    return model.to_api_shape(vehicle)


@router.put(
    "/vehicle/{vin}",
    response_model=model.VehicleResponse,
    responses=ERROR_RESPONSES,
    openapi_extra=VEHICLE_BODY,
)
def update_vehicle(
    vin: str, payload: Any = Depends(read_json_body), db: Session = Depends(get_db)
):
    """
    Endpoint to replace every mutable field of the vehicle with this VIN.

    The VIN itself never changes. A body without ``vin`` takes the one from
    the path; a body with a different VIN is rejected.

    Args:
        vin (str): The VIN from the request path, matched ignoring case.
        payload (Any): The decoded request body.
        db (Session): The database session, injected via dependency injection.

    Returns:
        model.VehicleResponse: The vehicle as stored after the update.
    """
    logger.info(f"Received update request for VIN '{vin}'")
    if isinstance(payload, dict) and "vin" not in payload:
        payload = {**payload, "vin": vin}
    validate_or_raise(payload, path_vin=vin)

    stmt = (
        update(Vehicle)
        .where(vin_matches(vin))
        .values(**model.to_row_values(payload))
        .returning(Vehicle)
    )
    try:
        vehicle = db.execute(stmt).scalar_one_or_none()
        response = model.to_api_shape(vehicle) if vehicle is not None else None
        db.commit()
    except SQLAlchemyError as e:
        raise store_failure(db, f"updating VIN '{vin}'") from e

    if response is None:
        logger.warning(f"VIN '{vin}' not found")
        raise HTTPException(status_code=404, detail=MSG_NOT_FOUND)

    logger.info(f"Updated vehicle {response.id}")
    return response


@router.delete(
    "/vehicle/{vin}", status_code=204, response_class=Response, responses=ERROR_RESPONSES
)
def delete_vehicle(vin: str, db: Session = Depends(get_db)):
    """Endpoint to remove the vehicle with this VIN, ignoring case."""
    logger.info(f"Received deletion request for VIN '{vin}'")
    try:
        deleted = db.query(Vehicle).filter(vin_matches(vin)).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        raise store_failure(db, f"deleting VIN '{vin}'") from e

    if not deleted:
        logger.warning(f"VIN '{vin}' not found")
        raise HTTPException(status_code=404, detail=MSG_NOT_FOUND)

    logger.info(f"Deleted vehicle with VIN '{vin}'")
    return Response(status_code=204)


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def root():
    """
    Default endpoint that serves the Swagger UI.

    Returns:
        HTMLResponse: An HTMLResponse object that represents the Swagger UI page.
    """
    return get_swagger_ui_html(openapi_url="/openapi.json", title="API Docs")


def configure_logging(level: str) -> None:
    # no-op when the root logger is already configured
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    """
    Build the application around an explicit store engine.

    Args:
        settings (Settings): Configuration; read from the environment if omitted.
        engine (Engine): Store engine; built from ``settings.database_url`` if omitted.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or Settings()
    configure_logging(settings.log_level)
    engine = engine or create_store_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        logger.info("Vehicle store ready")
        yield
        engine.dispose()

    app = FastAPI(title="Vehicle Registry API", version="1.0.0", lifespan=lifespan)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    register_error_handlers(app)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    configure_logging(settings.log_level)
    logger.info(f"http://{settings.host}:{settings.port}")
    uvicorn.run("main:app", host=settings.host, port=settings.port)
