"""Shared API dependencies.

Each provider returns a process-wide instance; tests swap them through
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from app.services.fetcher import RemoteFetcher
from app.services.recipe_ingestor import RecipeIngestor
from app.services.recipe_store import RecipeStore, create_recipe_store
from app.services.structured_extractor import StructuredExtractor


@lru_cache(maxsize=1)
def get_remote_fetcher() -> RemoteFetcher:
    return RemoteFetcher()


@lru_cache(maxsize=1)
def get_structured_extractor() -> StructuredExtractor:
    return StructuredExtractor()


@lru_cache(maxsize=1)
def get_recipe_store() -> RecipeStore:
    return create_recipe_store()


def get_recipe_ingestor(
    fetcher: RemoteFetcher = Depends(get_remote_fetcher),
    extractor: StructuredExtractor = Depends(get_structured_extractor),
    store: RecipeStore = Depends(get_recipe_store),
) -> RecipeIngestor:
    """Get recipe ingestion service instance."""
    return RecipeIngestor(fetcher=fetcher, extractor=extractor, store=store)


async def close_shared_resources() -> None:
    """Close pooled clients created by the providers above."""
    if get_remote_fetcher.cache_info().currsize:
        await get_remote_fetcher().aclose()
    if get_recipe_store.cache_info().currsize:
        await get_recipe_store().close()
