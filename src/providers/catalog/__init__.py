"""Catalog store adapters.

One concrete implementation of ICatalogProvider
(src/interfaces/catalog_provider.py):
    - SupabaseCatalogProvider: Storage bucket, pgvector table and match RPC
"""

from src.providers.catalog.supabase_catalog_provider import SupabaseCatalogProvider

__all__ = ["SupabaseCatalogProvider"]
