"""
Qdrant Vector Database Manager
Read-only access to the reference-knowledge collection used for RAG context
"""

from typing import Any, Dict, List, Optional

from qdrant_client import AsyncQdrantClient


class QdrantManager:
    """
    Thin async wrapper over the knowledge collection.

    Points carry a payload with the passage text (`content` or `text`) and
    where it came from (`source_id` / `sourceFile` / `source`).
    """

    DEFAULT_COLLECTION = "design_review_knowledge"

    def __init__(self, client: AsyncQdrantClient, collection_name: str = DEFAULT_COLLECTION):
        self.client = client
        self.collection_name = collection_name

    @classmethod
    def connect(
        cls,
        collection_name: str = DEFAULT_COLLECTION,
        url: Optional[str] = None,
        host: str = "localhost",
        port: int = 6333,
    ) -> "QdrantManager":
        """Build a manager from connection settings (url overrides host/port)."""
        if url:
            client = AsyncQdrantClient(url=url)
        else:
            client = AsyncQdrantClient(host=host, port=port)
        return cls(client, collection_name)

    async def collection_exists(self) -> bool:
        return await self.client.collection_exists(self.collection_name)

    async def search(
        self,
        query_vector: List[float],
        limit: int = 3,
        score_threshold: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        Vector search over the knowledge collection.
        Returns [] when the collection does not exist yet.
        """
        if not await self.collection_exists():
            return []

        response = await self.client.query_points(
            collection_name=self.collection_name,
            query=query_vector,
            limit=limit,
            score_threshold=score_threshold,
            with_payload=True,
        )
        return [
            {
                "id": point.id,
                "score": point.score,
                "payload": point.payload or {},
            }
            for point in response.points
        ]

    async def close(self) -> None:
        await self.client.close()
