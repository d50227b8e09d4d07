import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from .config import get_settings
from .errors import BookingError, Conflict, Internal

settings = get_settings()
logger = logging.getLogger(__name__)

# lock_not_available, deadlock_detected, serialization_failure
LOCK_FAILURE_SQLSTATES = {"55P03", "40P01", "40001"}


def _engine_kwargs(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        # The sqlite3 busy timeout plays the role of lock_timeout.
        return {"connect_args": {"timeout": settings.lock_timeout_ms / 1000}}
    return {"pool_pre_ping": True}


engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
    **_engine_kwargs(settings.database_url),
)
async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


if engine.dialect.name == "sqlite":

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


def is_lock_failure(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in LOCK_FAILURE_SQLSTATES:
        return True
    return "database is locked" in str(orig).lower()


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Run the enclosed block as one all-or-nothing transaction.

    Any exception rolls back every write made inside the block. Driver errors
    are translated so that callers only ever see ``BookingError`` subclasses:
    unique/foreign-key violations and failed lock acquisitions become
    ``Conflict``, anything else becomes ``Internal``.
    """
    if session.in_transaction():
        # Close the implicit read transaction opened by earlier lookups
        # (e.g. resolving the current user) so the block starts fresh.
        await session.commit()

    try:
        async with session.begin():
            await _apply_lock_timeout(session)
            yield session
    except BookingError:
        raise
    except IntegrityError as exc:
        logger.warning("Integrity violation rolled back: %s", exc.orig)
        raise Conflict("The request conflicts with existing data.") from exc
    except DBAPIError as exc:
        if is_lock_failure(exc):
            logger.warning("Lock not acquired, transaction rolled back: %s", exc.orig)
            raise Conflict("The resource is busy. Please try again.") from exc
        logger.exception("Database error, transaction rolled back")
        raise Internal() from exc


async def _apply_lock_timeout(session: AsyncSession) -> None:
    if session.bind is not None and session.bind.dialect.name == "postgresql":
        timeout = int(settings.lock_timeout_ms)
        await session.execute(text(f"SET LOCAL lock_timeout = '{timeout}ms'"))


def _locking(statement: Any, nowait: bool) -> Any:
    # Locked rows replace whatever the session already holds for them.
    return statement.with_for_update(nowait=nowait).execution_options(populate_existing=True)


async def lock_one(session: AsyncSession, statement: Any, *, nowait: bool = False) -> Any | None:
    """Fetch at most one row with an exclusive row lock held until commit."""
    result = await session.execute(_locking(statement, nowait))
    return result.scalar_one_or_none()


async def lock_first(session: AsyncSession, statement: Any, *, nowait: bool = False) -> Any | None:
    """Fetch and lock the first row of an ordered statement."""
    result = await session.execute(_locking(statement.limit(1), nowait))
    return result.scalars().first()


async def lock_for_write(session: AsyncSession, model: Any, *criteria: Any) -> bool:
    """Take the write lock on the row matching ``criteria`` by bumping its version.

    SQLite ignores ``FOR UPDATE``. This write takes the database write lock
    there, and the row lock on PostgreSQL. Competing writers queue behind it
    until commit, and every read that follows in the transaction sees
    committed state. ``False`` means no row matched.
    """
    statement = (
        update(model)
        .where(*criteria)
        .values(version=model.version + 1)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(statement)
    return result.rowcount > 0


async def init_db() -> None:
    # Import models for SQLModel metadata registration
    from . import models  # noqa: F401

    attempts = max(1, settings.db_init_max_retries)
    base_delay = max(0.5, float(settings.db_init_retry_interval_seconds))

    for attempt in range(1, attempts + 1):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
            logger.info("Database schema ready.")
            return
        except Exception as exc:  # pragma: no cover - best effort logging branch
            if attempt == attempts:
                logger.exception("Database initialization failed after %s attempts.", attempts)
                raise

            delay = base_delay * attempt
            logger.warning(
                "Database init attempt %s/%s failed: %s. Retrying in %.1fs...",
                attempt,
                attempts,
                exc,
                delay,
            )
            await asyncio.sleep(delay)
