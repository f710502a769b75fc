"""
AI orchestration service.

Combines a generation strategy with retrieval (top-k vector search over a
project's documents) and generation (an LLM call) to produce new
documents.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

import structlog

from folio_core.errors import (
    EmbeddingStageError,
    EmptyEmbeddingError,
    LlmStageError,
    ProviderError,
    RetrievalEmptyError,
)
from folio_core.models import Document, Project
from folio_core.similarity import RETRIEVAL_TOP_K, Neighbor
from folio_ai.drivers.embedding import EmbeddingDriver
from folio_ai.drivers.llm import LlmDriver, LlmResult
from folio_ai.drivers.parsing import GeneratedItem
from folio_ai.strategies import GenerationStrategy, referenced_types, render_prompt

logger = structlog.get_logger(__name__)

UNTITLED = "Untitled Deliverable"
CONTEXT_SEPARATOR = "\n\n---\n\n"


class DocumentStore(Protocol):
    """Document persistence needed by the service."""

    async def nearest_neighbors(
        self,
        query_vector: Sequence[float],
        *,
        project_id: UUID,
        types: Sequence[str] | None = None,
        k: int,
        min_similarity: float | None = None,
    ) -> list[Neighbor[Document]]: ...

    async def contents_by_type(self, project_id: UUID, document_type: str) -> list[str]: ...

    async def replace_generated(
        self, parent_id: UUID, output_type: str, documents: Sequence[Document]
    ) -> Sequence[object]: ...

    async def add_generated(self, documents: Sequence[Document]) -> Sequence[object]: ...


@dataclass
class GenerationResult:
    strategy: str
    output_type: str
    documents: list[Document] = field(default_factory=list)
    context_documents: int = 0
    llm: LlmResult | None = None

    @property
    def created(self) -> int:
        return len(self.documents)


def format_context(documents: Sequence[Document]) -> str:
    """Concatenate documents into one context block, each tagged with its type."""
    return CONTEXT_SEPARATOR.join(
        f"[Type: {doc.type}]\nContent: {doc.content or ''}" for doc in documents
    )


def item_to_document(
    item: GeneratedItem,
    *,
    project_id: UUID,
    output_type: str,
    parent_id: UUID | None,
    strategy: str,
) -> Document:
    return Document(
        project_id=project_id,
        parent_id=parent_id,
        name=(item.title or UNTITLED)[:255],
        type=output_type,
        content=item.body,
        metadata={
            "criteria": item.criteria,
            "category": item.raw.get("category") or "general",
            "raw_data": item.raw,
            "generated_by": strategy,
        },
    )


class ProjectAiService:
    """Generates deliverables for a project from its embedded documents."""

    def __init__(
        self,
        embedder: EmbeddingDriver,
        llm: LlmDriver,
        store: DocumentStore,
        *,
        top_k: int = RETRIEVAL_TOP_K,
    ):
        self._embedder = embedder
        self._llm = llm
        self._store = store
        self._top_k = top_k
        self._log = logger.bind(service="project_ai")

    async def generate_deliverables(
        self,
        project: Project,
        strategy: GenerationStrategy,
        *,
        source_document: Document | None = None,
    ) -> GenerationResult:
        """
        Run one generation.

        Generated documents are parented to ``source_document`` when one is
        given, replacing any earlier output of the same type from it.

        Raises:
            EmbeddingStageError: the search query could not be embedded
            RetrievalEmptyError: no context documents and the strategy requires some
            LlmStageError: the LLM driver returned an error result
        """
        log = self._log.bind(project_id=str(project.id), strategy=strategy.name)

        # 1. Embed the search query
        query = strategy.search_query(project)
        try:
            query_vector = await self._embedder.get_embedding(query)
        except (ProviderError, EmptyEmbeddingError) as e:
            raise EmbeddingStageError(f"Could not embed search query: {e.message}") from e

        # 2. Retrieve best-effort context, no similarity floor
        neighbors = await self._store.nearest_neighbors(
            query_vector,
            project_id=project.id,
            types=strategy.required_types,
            k=self._top_k,
        )
        context_docs = [neighbor.item for neighbor in neighbors]
        if source_document is not None:
            context_docs = [source_document] + [
                doc for doc in context_docs if doc.id != source_document.id
            ]
        if not context_docs:
            if strategy.requires_context:
                raise RetrievalEmptyError(
                    f"No embedded {', '.join(strategy.required_types)} documents in project"
                )
            log.warning("generation_without_context")

        # 3-4. Build the context block and the user prompt
        context = format_context(context_docs)
        documents_by_type = {
            document_type: await self._store.contents_by_type(project.id, document_type)
            for document_type in referenced_types(strategy.user_prompt_template)
        }
        user_prompt = render_prompt(
            strategy.user_prompt_template,
            project=project,
            context=context,
            documents_by_type=documents_by_type,
        )

        # 5. Generate
        llm_result = await self._llm.call(
            strategy.system_prompt, user_prompt, body_key=strategy.body_key
        )
        if not llm_result.ok:
            raise LlmStageError(
                f"LLM generation failed ({llm_result.error_type}): {llm_result.message}",
                result=llm_result,
            )

        # 6. Persist each item as a document of the output type
        parent_id = source_document.id if source_document else None
        documents = [
            item_to_document(
                item,
                project_id=project.id,
                output_type=strategy.output_type,
                parent_id=parent_id,
                strategy=strategy.name,
            )
            for item in llm_result.items
        ]
        if documents:
            if parent_id is not None:
                await self._store.replace_generated(parent_id, strategy.output_type, documents)
            else:
                await self._store.add_generated(documents)

        log.info(
            "deliverables_generated",
            output_type=strategy.output_type,
            context_documents=len(context_docs),
            created=len(documents),
        )
        return GenerationResult(
            strategy=strategy.name,
            output_type=strategy.output_type,
            documents=documents,
            context_documents=len(context_docs),
            llm=llm_result,
        )
