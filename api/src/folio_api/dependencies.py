"""FastAPI dependencies for database and service clients."""

from typing import Annotated, AsyncGenerator

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folio_ai.config import AiSettings, get_ai_settings
from folio_ai.drivers import EmbeddingDriver, create_embedding_driver
from folio_api.config import Settings, get_settings
from folio_core.lifecycle import BufferedJobQueue, LifecycleDispatcher
from folio_db import (
    DocumentRepository,
    PgNotifyBroadcaster,
    TemporalClient,
    TemporalJobQueue,
    get_async_engine,
    get_async_sessionmaker,
    ping,
)

logger = structlog.get_logger(__name__)


# ============================================================
# Database Session
# ============================================================

# Cache for sessionmakers - keyed by database URL
_sessionmaker_cache: dict[str, async_sessionmaker[AsyncSession]] = {}


def _get_cached_sessionmaker(settings: Settings) -> async_sessionmaker[AsyncSession]:
    """Get or create a cached sessionmaker for the configured database URL."""
    if settings.database_url not in _sessionmaker_cache:
        engine = get_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        _sessionmaker_cache[settings.database_url] = get_async_sessionmaker(engine)
    return _sessionmaker_cache[settings.database_url]


async def get_db_session(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Routes commit explicitly before flushing queued jobs; anything left
    uncommitted when the request fails is rolled back.
    """
    sessionmaker = _get_cached_sessionmaker(settings)
    session = sessionmaker()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


# Type alias for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


# ============================================================
# Service Clients
# ============================================================

# Cache for service clients
_temporal_client: TemporalClient | None = None
_embedding_driver: EmbeddingDriver | None = None


async def get_temporal_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> TemporalClient:
    """Get a cached Temporal client."""
    global _temporal_client
    if _temporal_client is None:
        _temporal_client = await TemporalClient.connect(
            target_host=settings.temporal_address,
            namespace=settings.temporal_namespace,
            default_task_queue=settings.temporal_task_queue,
        )
    return _temporal_client


def get_embedding_driver(
    ai_settings: Annotated[AiSettings, Depends(get_ai_settings)],
) -> EmbeddingDriver:
    """Get the process-wide embedding driver."""
    global _embedding_driver
    if _embedding_driver is None:
        _embedding_driver = create_embedding_driver(ai_settings)
    return _embedding_driver


async def close_clients() -> None:
    """Release cached clients on shutdown."""
    global _embedding_driver, _temporal_client
    if _embedding_driver is not None:
        await _embedding_driver.close()
        _embedding_driver = None
    _temporal_client = None


# Type aliases for dependency injection
Temporal = Annotated[TemporalClient, Depends(get_temporal_client)]
Embedder = Annotated[EmbeddingDriver, Depends(get_embedding_driver)]


# ============================================================
# Document lifecycle
# ============================================================


class LifecycleUnit:
    """
    Lifecycle dispatcher for one request.

    Jobs are held until :meth:`commit`, which commits the session and only
    then starts them.
    """

    def __init__(self, session: AsyncSession, temporal: TemporalClient):
        self.session = session
        self.documents = DocumentRepository(session)
        self.jobs = BufferedJobQueue(TemporalJobQueue(temporal))
        self.dispatcher = LifecycleDispatcher(
            self.documents, self.jobs, PgNotifyBroadcaster(session)
        )

    async def commit(self) -> int:
        await self.session.commit()
        return await self.jobs.flush()


def get_lifecycle(db: DbSession, temporal: Temporal) -> LifecycleUnit:
    return LifecycleUnit(db, temporal)


Lifecycle = Annotated[LifecycleUnit, Depends(get_lifecycle)]


# ============================================================
# Utility Functions for Health Checks
# ============================================================


async def check_database_health(settings: Settings) -> bool:
    engine = get_async_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    return await ping(engine)


async def check_temporal_health(settings: Settings) -> bool:
    """Check if Temporal is accessible."""
    try:
        client = await get_temporal_client(settings)
    except Exception as e:
        logger.warning("temporal_health_check_failed", error=str(e))
        return False
    return await client.health_check()


__all__ = [
    "DbSession",
    "Temporal",
    "Embedder",
    "Lifecycle",
    "LifecycleUnit",
    "get_db_session",
    "get_temporal_client",
    "get_embedding_driver",
    "close_clients",
    "check_database_health",
    "check_temporal_health",
]
