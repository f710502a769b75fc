"""Long-lived resources shared by the pipeline activities."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from folio_ai.config import AiSettings
from folio_ai.drivers import EmbeddingDriver, LlmDriver, create_embedding_driver, create_llm_driver
from folio_db.clients import TemporalClient, TemporalJobQueue
from folio_db.connection import get_async_engine, get_async_sessionmaker


@dataclass
class PipelineDependencies:
    """Resolved once at worker startup and closed on shutdown."""

    engine: AsyncEngine
    sessionmaker: async_sessionmaker[AsyncSession]
    embedder: EmbeddingDriver
    llm: LlmDriver
    queue: TemporalJobQueue

    @classmethod
    def build(
        cls,
        *,
        database_url: str,
        temporal: TemporalClient,
        settings: AiSettings,
    ) -> "PipelineDependencies":
        """
        Raises:
            ValueError: if the configured AI drivers cannot be built
        """
        engine = get_async_engine(database_url)
        return cls(
            engine=engine,
            sessionmaker=get_async_sessionmaker(engine),
            embedder=create_embedding_driver(settings),
            llm=create_llm_driver(settings),
            queue=TemporalJobQueue(temporal),
        )

    async def close(self) -> None:
        await self.embedder.close()
        if self.llm is not self.embedder:
            await self.llm.close()
        await self.engine.dispose()
