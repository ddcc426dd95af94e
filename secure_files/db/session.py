import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from secure_files.core.config import Settings

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def build_engine(settings: Settings) -> Engine:
    """Create the engine, picking connect_args from the database type."""
    db_url = settings.DATABASE_URL

    if db_url.startswith("sqlite"):
        # SQLite settings
        engine = create_engine(
            db_url,
            echo=settings.DB_ECHO,
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # MySQL/PostgreSQL settings
    return create_engine(
        db_url,
        pool_pre_ping=True,  # check the connection before handing it out
        pool_recycle=3600,
        echo=settings.DB_ECHO,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_database(engine: Engine) -> None:
    """Check connectivity and create missing tables.

    Raises the driver error when the database is unreachable; callers treat
    that as fatal.
    """
    # Register models on the metadata
    from secure_files.db import base  # noqa: F401

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))
