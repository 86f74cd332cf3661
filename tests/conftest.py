"""
Pytest configuration for the Design Review API test suite.

Configures:
- pytest-asyncio for async test support
- a VersionStore on a throwaway SQLite file per test
- fake retriever / model doubles for the generation layer
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from database.database import create_engine, create_session_factory, init_models
from database.version_store import VersionStore
from generation.schemas import RetrievedSnippet


class TickingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


class FakeRetriever:
    """ContextRetriever double that records queries."""

    def __init__(self, snippets: Optional[List[RetrievedSnippet]] = None, error: Optional[Exception] = None):
        self.snippets = snippets or []
        self.error = error
        self.queries = []

    async def search(self, query: str, k: int) -> List[RetrievedSnippet]:
        self.queries.append((query, k))
        if self.error is not None:
            raise self.error
        return self.snippets[:k]


def make_model(answer: str = "# Report\n\nLooks good.") -> Mock:
    model = Mock()
    model.is_configured = True
    model.complete = AsyncMock(return_value=answer)
    return model


@pytest.fixture
def clock():
    return TickingClock()


@pytest_asyncio.fixture
async def store(tmp_path, clock):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'templates.db'}")
    await init_models(engine)
    yield VersionStore(create_session_factory(engine), clock=clock)
    await engine.dispose()


@pytest.fixture
def sample_content():
    return {
        "globalPromptContext": "You are reviewing a MongoDB application design.",
        "sections": [
            {
                "id": "overview",
                "title": "Overview",
                "questions": [
                    {
                        "id": "customer-name",
                        "label": "Customer name",
                        "type": "text",
                        "required": True,
                    },
                    {
                        "id": "use-case",
                        "label": "Primary use case",
                        "type": "textarea",
                        "promptContext": "Assess whether the use case suits a document model.",
                    },
                ],
            },
            {
                "id": "workload",
                "title": "Workload",
                "questions": [
                    {
                        "id": "read-write-ratio",
                        "label": "Read/write ratio",
                        "type": "text",
                        "promptContext": "Comment on indexing given this ratio.",
                    },
                    {
                        "id": "data-volume",
                        "label": "Data volume",
                        "type": "number",
                        "promptContext": "Evaluate sharding needs.",
                    },
                ],
            },
        ],
        "analysisPromptTemplate": "Write the report in markdown.",
    }


@pytest.fixture
def sample_responses():
    return {
        "customer-name": "Acme",
        "use-case": "IoT telemetry",
        "read-write-ratio": "80/20",
        "data-volume": 500,
    }


@pytest.fixture
def snippets():
    return [
        RetrievedSnippet(content="Use the bucket pattern for time series.", source_id="kb-1", relevance_score=0.92),
        RetrievedSnippet(content="Compound indexes follow the ESR rule.", source_id="kb-2", relevance_score=0.75),
        RetrievedSnippet(content="Shard on a high-cardinality key.", source_id="kb-3", relevance_score=0.41),
    ]
