"""Public interface definitions for all external service providers.

Every external service in Furniture Vectors is reached only through the
abstract base classes defined in this package.  Concrete adapters live in
``src/providers/`` and are wired together in ``src/main.py`` during
application startup, so tests can inject fakes without touching the network.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IDescriptionProvider       →  OpenRouterDescriptionProvider
    IEmbeddingProvider         →  OpenRouterEmbeddingProvider
    ICatalogProvider           →  SupabaseCatalogProvider
"""

from src.interfaces.catalog_provider import ICatalogProvider
from src.interfaces.description_provider import IDescriptionProvider
from src.interfaces.embedding_provider import IEmbeddingProvider

__all__ = [
    "ICatalogProvider",
    "IDescriptionProvider",
    "IEmbeddingProvider",
]
