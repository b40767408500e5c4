"""Recipe ingestion: pick one strategy per request and persist the canonical record."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urljoin

from app.models.recipe import IngestRequest, Recipe
from app.services.fetcher import RemoteFetcher
from app.services.html_sanitizer import sanitize
from app.services.image_service import resolve_image
from app.services.recipe_store import RecipeStore
from app.services.structured_extractor import StructuredExtractor
from app.utils.exceptions import InvalidRequest, SourceUnreachable
from app.utils.recipe_normalization import normalize_extraction, normalize_recipe
from app.utils.validators import validate_url

logger = logging.getLogger(__name__)


class Strategy(str, enum.Enum):
    SOURCE = "source"
    IMAGE = "image"
    MANUAL = "manual"


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class ResolvedRequest:
    """Request with its image already decoded to bytes and its strategy fixed."""

    strategy: Strategy
    request: IngestRequest
    image: Optional[bytes]


def select_strategy(request: IngestRequest, image: Optional[bytes]) -> Strategy:
    """
    Choose the ingestion strategy. Checked in this order, first match wins:

    1) source given and title absent -> scrape the page
    2) image given and ingredients or methodSteps absent -> read the photo
    3) title given -> manual entry

    Raises:
        InvalidRequest: If none applies
    """
    if not _is_absent(request.source) and _is_absent(request.title):
        return Strategy.SOURCE
    if image is not None and (request.ingredients is None or request.methodSteps is None):
        return Strategy.IMAGE
    if not _is_absent(request.title):
        return Strategy.MANUAL
    raise InvalidRequest("Provide a source URL, a recipe image, or a title with ingredients")


def resolve_request(request: IngestRequest) -> ResolvedRequest:
    """Decode the image and fix the strategy once, before any I/O."""
    image = resolve_image(request.image)
    strategy = select_strategy(request, image)
    if strategy is Strategy.SOURCE:
        validate_url(request.source)
    return ResolvedRequest(strategy=strategy, request=request, image=image)


class RecipeIngestor:
    """Turns a URL, a photo, or manual fields into a stored Recipe."""

    def __init__(self, fetcher: RemoteFetcher, extractor: StructuredExtractor, store: RecipeStore) -> None:
        self.fetcher = fetcher
        self.extractor = extractor
        self.store = store

    async def ingest(self, request: IngestRequest, timeout: Optional[float] = None) -> Recipe:
        """
        Build and persist a recipe.

        Args:
            request: Caller input
            timeout: Bound in seconds for each outbound call; defaults from settings

        Raises:
            InvalidRequest: Input selects no strategy or the result is incomplete
            SourceUnreachable: The source page could not be fetched
            ExtractionFailed: The model returned no usable recipe
        """
        resolved = resolve_request(request)
        logger.info(
            "Ingesting recipe",
            extra={
                "strategy": resolved.strategy.value,
                "source": (request.source or "")[:200] or None,
                "has_image": resolved.image is not None,
            },
        )

        if resolved.strategy is Strategy.SOURCE:
            recipe = await self._from_source(request.source.strip(), timeout)
        elif resolved.strategy is Strategy.IMAGE:
            recipe = await self._from_image(resolved, timeout)
        else:
            recipe = self._from_manual(resolved)

        saved = await self.store.create(recipe)
        logger.info("Recipe saved", extra={"recipe_id": saved.id, "strategy": resolved.strategy.value})
        return saved

    async def replace(self, recipe_id: str, request: IngestRequest) -> Recipe:
        """
        Overwrite a stored recipe from manual fields. No fetch and no model call.

        The stored image is kept when the request carries none.
        """
        existing = await self.store.get(recipe_id)
        image = resolve_image(request.image)
        recipe = normalize_recipe(
            title=request.title,
            ingredients=request.ingredients,
            method_steps=request.methodSteps,
            tags=request.tags,
            source=request.source,
            image=image if image is not None else existing.image,
        )
        return await self.store.update(recipe_id, recipe)

    # -------------------------
    # Strategies
    # -------------------------

    async def _from_source(self, source: str, timeout: Optional[float]) -> Recipe:
        raw_html = await self.fetcher.fetch_page(source, timeout=timeout)
        cleaned = sanitize(raw_html)
        logger.info("Sanitized page", extra={"raw_chars": len(raw_html), "clean_chars": len(cleaned)})

        result = await self.extractor.extract_from_html(cleaned, timeout=timeout)
        image = await self._fetch_image_or_none(result.imageUrl, source, timeout)

        return normalize_extraction(result, source=source, image=image)

    async def _from_image(self, resolved: ResolvedRequest, timeout: Optional[float]) -> Recipe:
        request = resolved.request
        result = await self.extractor.extract_from_image(resolved.image, timeout=timeout)
        return normalize_extraction(
            result,
            tags=request.tags,
            source=request.source,
            image=resolved.image,
        )

    def _from_manual(self, resolved: ResolvedRequest) -> Recipe:
        request = resolved.request
        return normalize_recipe(
            title=request.title,
            ingredients=request.ingredients,
            method_steps=request.methodSteps,
            tags=request.tags,
            source=request.source,
            image=resolved.image,
        )

    async def _fetch_image_or_none(self, image_url: str, page_url: str, timeout: Optional[float]) -> Optional[bytes]:
        """The image is enrichment: any failure here means no image, not a failed ingestion."""
        if not image_url:
            return None

        absolute_url = urljoin(page_url, image_url)
        try:
            return await self.fetcher.fetch_image(absolute_url, timeout=timeout)
        except (SourceUnreachable, InvalidRequest) as e:
            logger.warning("Recipe image unavailable, continuing without it: %s", e, extra={"image_url": absolute_url[:200]})
            return None
