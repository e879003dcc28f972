"""Embedding provider implementations.

Embeddings turn a furniture description into a vector that the catalog's
match function compares by cosine similarity.

One implementation of IEmbeddingProvider:
    - OpenRouterEmbeddingProvider: openai/text-embedding-3-small via OpenRouter
"""

from src.providers.embedding.openrouter_embedding_provider import OpenRouterEmbeddingProvider

__all__ = ["OpenRouterEmbeddingProvider"]
