"""
Retrieval Engine

The pipeline only depends on the ContextRetriever contract:
    search(query, k) -> snippets ordered by descending relevance, at most k,
    [] for an empty knowledge base.

QdrantContextRetriever is the production implementation (OpenAI query
embedding + Qdrant vector search).
"""

import logging
from typing import Any, List, Mapping, Protocol

from embeddings import EmbeddingGenerator, QdrantManager
from generation.schema_walker import has_answer, render_answer
from generation.schemas import RetrievedSnippet

log = logging.getLogger("generation.retrieval")

DEFAULT_TOP_K = 3
MAX_QUERY_CHARS = 1000

# Answers that best describe what the review is about
SALIENT_FIELDS = ("customer-name", "project-name", "industry", "use-case")

SOURCE_KEYS = ("source_id", "sourceId", "sourceFile", "source")
CONTENT_KEYS = ("content", "text")


class ContextRetriever(Protocol):
    async def search(self, query: str, k: int) -> List[RetrievedSnippet]:
        ...


def build_retrieval_query(responses: Mapping[str, Any]) -> str:
    """
    Query text for the knowledge base.

    Uses the salient fields when any is answered, otherwise a `key: value`
    summary of every answered field in key order.
    """
    salient = [
        f"{key}: {render_answer(responses[key])}"
        for key in SALIENT_FIELDS
        if key in responses and has_answer(responses[key])
    ]
    if salient:
        return " ".join(salient)[:MAX_QUERY_CHARS]

    summary = [
        f"{key}: {render_answer(value)}"
        for key, value in sorted(responses.items(), key=lambda item: str(item[0]))
        if has_answer(value)
    ]
    return " ".join(summary)[:MAX_QUERY_CHARS]


def _first_str(payload: Mapping[str, Any], keys) -> str:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, float(score)))


class QdrantContextRetriever:
    """ContextRetriever backed by the Qdrant knowledge collection."""

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        index: QdrantManager,
        score_threshold: float = 0.0,
    ):
        self.embedder = embedder
        self.index = index
        self.score_threshold = score_threshold

    async def search(self, query: str, k: int = DEFAULT_TOP_K) -> List[RetrievedSnippet]:
        if k <= 0 or not query or not query.strip():
            return []

        query_vector = await self.embedder.generate_embedding(query)
        hits = await self.index.search(query_vector, limit=k, score_threshold=self.score_threshold)

        snippets: List[RetrievedSnippet] = []
        for hit in hits:
            payload = hit["payload"]
            content = _first_str(payload, CONTENT_KEYS)
            if not content:
                continue
            snippets.append(
                RetrievedSnippet(
                    content=content.strip(),
                    source_id=_first_str(payload, SOURCE_KEYS) or str(hit["id"]),
                    relevance_score=_clamp(hit["score"]),
                )
            )
        snippets.sort(key=lambda s: s.relevance_score, reverse=True)
        log.info(f"[RETRIEVAL] {len(snippets)} snippet(s) for query of {len(query)} chars")
        return snippets[:k]
