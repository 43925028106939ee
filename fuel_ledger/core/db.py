# fuel_ledger/core/db.py

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from fuel_ledger.core.config import settings
from fuel_ledger.utils.logger import get_logger

# --- Configure logging ---
logger = get_logger(__name__)

# --- Create declarative base ---
Base = declarative_base()

# --- Asynchronous database setup ---
engine_options = {}
if settings.async_db_url.startswith("mysql"):
    # Reads taken after a ledger lock must see rows committed while waiting for it
    engine_options["isolation_level"] = "READ COMMITTED"

async_engine = create_async_engine(settings.async_db_url, echo=False, future=True, **engine_options)
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


def use_utc_session_time_zone(dbapi_connection, connection_record) -> None:
    """
    Pin the MySQL session time zone to UTC so NOW() defaults and the
    updated_on concurrency token are naive UTC, like the timestamps clients send.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("SET time_zone = '+00:00'")
    cursor.close()


if settings.async_db_url.startswith("mysql"):
    event.listen(async_engine.sync_engine, "connect", use_utc_session_time_zone)


async def get_async_db():
    """
    Async method for obtaining database session object
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            logger.info("Committing async DB transaction")
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error("Error in async DB transaction", error_message=str(e))
            raise e
        finally:
            await session.close()


async def create_all_tables() -> None:
    """
    Create every table registered on the declarative base
    """
    # Model modules register themselves on Base when imported
    from fuel_ledger.vehicles import models as _vehicle_models  # noqa: F401
    from fuel_ledger.fuel_logs import models as _fuel_log_models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")
