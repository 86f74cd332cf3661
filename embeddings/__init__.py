"""
Embeddings package
Query embedding and vector search against the reference knowledge base
"""

from .generator import EmbeddingGenerator
from .qdrant_manager import QdrantManager

__all__ = [
    "EmbeddingGenerator",
    "QdrantManager",
]
