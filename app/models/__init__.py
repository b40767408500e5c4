"""Pydantic models."""

from app.models.recipe import (
    ExtractionResult,
    Ingredient,
    IngestRequest,
    MethodStep,
    Recipe,
    RecipeResponse,
    Tag,
)

__all__ = [
    "ExtractionResult",
    "Ingredient",
    "IngestRequest",
    "MethodStep",
    "Recipe",
    "RecipeResponse",
    "Tag",
]
