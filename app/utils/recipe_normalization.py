"""Fold extractor output or manual form fields into the canonical Recipe."""

import logging
from typing import Any, Iterable, List, Mapping, Optional

from app.models.recipe import ExtractionResult, Ingredient, MethodStep, Recipe, Tag
from app.utils.exceptions import InvalidRequest

logger = logging.getLogger(__name__)


def normalize_recipe(
    *,
    title: Any,
    ingredients: Optional[Iterable[Any]],
    method_steps: Optional[Iterable[Any]],
    tags: Optional[Iterable[Any]] = None,
    source: Optional[str] = None,
    image: Optional[bytes] = None,
) -> Recipe:
    """Build a Recipe without an id.

    - Step numbers are recomputed 1..N from position; supplied numbers are ignored.
    - Tags are deduplicated on trimmed, case-folded name, first one wins.
    - ``image`` must already be raw bytes (see ``image_service.resolve_image``).

    Raises:
        InvalidRequest: If the title or the ingredient list ends up empty, or an
            ingredient has no name. Nothing incomplete reaches storage.
    """
    clean_title = title.strip() if isinstance(title, str) else ""
    if not clean_title:
        raise InvalidRequest("Recipe title is required")

    clean_ingredients = _normalize_ingredients(ingredients)
    if not clean_ingredients:
        raise InvalidRequest("Recipe needs at least one ingredient")

    clean_source = source.strip() if isinstance(source, str) and source.strip() else None

    return Recipe(
        title=clean_title,
        ingredients=clean_ingredients,
        methodSteps=_number_steps(method_steps),
        tags=_dedupe_tags(tags),
        source=clean_source,
        image=image or None,
    )


def normalize_extraction(
    result: ExtractionResult,
    *,
    tags: Optional[Iterable[Any]] = None,
    source: Optional[str] = None,
    image: Optional[bytes] = None,
) -> Recipe:
    """Normalize an ExtractionResult; ``tags`` overrides the extracted tags when given."""
    return normalize_recipe(
        title=result.title,
        ingredients=result.ingredients,
        method_steps=result.methodSteps,
        tags=result.tags if tags is None else tags,
        source=source,
        image=image,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _normalize_ingredients(items: Optional[Iterable[Any]]) -> List[Ingredient]:
    normalized: List[Ingredient] = []
    for position, item in enumerate(items or [], start=1):
        if isinstance(item, Ingredient):
            name, amount = item.name, item.amount
        elif isinstance(item, Mapping):
            name, amount = item.get("name"), item.get("amount")
        elif isinstance(item, str):
            name, amount = item, ""
        else:
            raise InvalidRequest(f"Ingredient {position} has an unsupported shape")

        name = name.strip() if isinstance(name, str) else ""
        if not name:
            raise InvalidRequest(f"Ingredient {position} has no name")

        if amount is None:
            amount = ""
        normalized.append(Ingredient(name=name, amount=str(amount).strip()))
    return normalized


def _number_steps(items: Optional[Iterable[Any]]) -> List[MethodStep]:
    descriptions: List[str] = []
    for item in items or []:
        if isinstance(item, MethodStep):
            text = item.description
        elif isinstance(item, Mapping):
            text = item.get("description")
        else:
            text = item
        text = str(text).strip() if text is not None else ""
        if text:
            descriptions.append(text)

    return [
        MethodStep(stepNumber=number, description=text)
        for number, text in enumerate(descriptions, start=1)
    ]


def tag_key(name: str) -> str:
    return " ".join(name.split()).casefold()


def _dedupe_tags(items: Optional[Iterable[Any]]) -> List[Tag]:
    seen = set()
    tags: List[Tag] = []
    for item in items or []:
        if isinstance(item, Tag):
            name = item.name
        elif isinstance(item, Mapping):
            name = item.get("name")
        else:
            name = item
        if not isinstance(name, str) or not name.strip():
            continue

        key = tag_key(name)
        if key in seen:
            continue
        seen.add(key)
        tags.append(Tag(name=name.strip()))

    return tags
