from fastapi import Request
from sqlalchemy import Column, Index, Integer, Numeric, Text, create_engine, event, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# SQLSTATE reported by PostgreSQL for a unique index violation
UNIQUE_VIOLATION = "23505"

# parent class for the ORM models
Base = declarative_base()


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vin = Column(Text, nullable=False)
    manufacturer = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    horse_power = Column(Numeric, nullable=False)
    model_name = Column(Text, nullable=False)
    model_year = Column(Integer, nullable=False)
    purchase_price = Column(Numeric, nullable=False)
    fuel_type = Column(Text, nullable=False)


# VINs are unique regardless of case, so the index is on the lowercased value
Index("ux_vehicles_vin_lower", func.lower(Vehicle.vin), unique=True)


def vin_matches(vin: str):
    """Case-insensitive VIN filter clause."""
    return func.lower(Vehicle.vin) == func.lower(vin)


def register_unicode_lower(dbapi_connection, connection_record):
    # the built-in lower() only folds ASCII; the lower(vin) index is built with this one
    dbapi_connection.create_function(
        "lower",
        1,
        lambda value: value.lower() if isinstance(value, str) else value,
        deterministic=True,
    )


def create_store_engine(database_url: str) -> Engine:
    """
    Build the engine for the given database URL.

    SQLite connections are shared across FastAPI's worker threads, and an
    in-memory database has to live on a single connection to survive between
    sessions. SQLite also gets a Unicode-aware lower() so VIN folding matches
    PostgreSQL.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
        event.listen(engine, "connect", register_unicode_lower)
        return engine
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    # rows returned by a write stay loaded after commit
    return sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    Tell whether an IntegrityError came from a unique index.

    psycopg exposes the SQLSTATE as ``sqlstate`` (``pgcode`` on psycopg2);
    sqlite3 only reports it in the message.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


def get_db(request: Request):
    """
    Dependency function to get a database session from the app's store.
    """
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
