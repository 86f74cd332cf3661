"""
Embedding Generator
Converts query text to vector embeddings using OpenAI text-embedding-3-small

Architecture:
- Model: text-embedding-3-small (OpenAI), overridable via EMBEDDING_MODEL
- Dimensions: 1536
- Async client, so a retrieval call never blocks the event loop
"""

from typing import List

from openai import AsyncOpenAI


class EmbeddingGenerator:
    """
    Generate embeddings for query text.

    The knowledge-base index must have been built with the same model.
    """

    DEFAULT_MODEL = "text-embedding-3-small"
    EMBEDDING_DIM = 1536

    def __init__(self, client: AsyncOpenAI, model_name: str = DEFAULT_MODEL):
        """
        Args:
            client: configured AsyncOpenAI client
            model_name: OpenAI embedding model name
        """
        self.client = client
        self.model_name = model_name

    async def generate_embedding(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Errors propagate: the caller decides whether retrieval is optional.
        """
        if not text or not text.strip():
            return [0.0] * self.EMBEDDING_DIM

        response = await self.client.embeddings.create(
            input=text,
            model=self.model_name,
        )
        return response.data[0].embedding
