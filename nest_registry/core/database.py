"""
Database configuration and session management.
"""
import logging
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from nest_registry.core.config import settings
from nest_registry.core.errors import ConflictError, InvalidError, RegistryError, UnavailableError
from nest_registry.core.models import Base

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

# SQLSTATE codes for a transaction that lost a race against a concurrent one
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
# SQLSTATE class for rejected values (too long, out of range, bad encoding)
DATA_EXCEPTION_CLASS = "22"


def build_engine(url: str, isolation_level: str = settings.db_isolation_level):
    """Create an engine; every transaction runs at the configured isolation level."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        isolation_level=isolation_level,
        pool_pre_ping=True,
        connect_args=connect_args,
        echo=settings.sql_echo,
    )


engine = build_engine(DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Initialize database by creating all tables."""
    logger.info("Initializing database...")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database initialized successfully")


def drop_db(bind=None):
    """Drop all tables (used by the init script's --reset)."""
    logger.warning("Dropping all database tables...")
    Base.metadata.drop_all(bind=bind or engine)
    logger.info("Database tables dropped")


def translate_db_error(exc: DBAPIError, context: str) -> RegistryError:
    """
    Map a DBAPI error onto the registry error taxonomy.

    Uniqueness violations and lost serialization races are conflicts;
    values the store rejects are invalid input; connection-level failures
    are reported as unavailable, never as absent.
    """
    if isinstance(exc, IntegrityError):
        logger.info(f"Uniqueness violation during {context}: {exc.orig}")
        return ConflictError(f"{context} conflicts with an existing entry")

    pgcode = getattr(exc.orig, "pgcode", None) or ""
    if pgcode in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED):
        logger.info(f"Concurrent transaction won during {context} (SQLSTATE {pgcode})")
        return ConflictError(f"{context} lost a race with a concurrent write")

    if isinstance(exc, DataError) or pgcode.startswith(DATA_EXCEPTION_CLASS):
        logger.info(f"Store rejected a value during {context}: {exc.orig}")
        return InvalidError(f"{context} has a value the registry cannot store")

    if isinstance(exc, (OperationalError, InterfaceError)) or exc.connection_invalidated:
        logger.error(f"Database unavailable during {context}: {exc.orig}")
        return UnavailableError("Registry store is unavailable", details={"operation": context})

    logger.error(f"Unexpected database error during {context}: {exc}")
    return UnavailableError("Registry store failed", details={"operation": context})


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database session.
    Usage in FastAPI:
        @app.get("/")
        def read_root(db: Session = Depends(get_db)):
            # use db session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
