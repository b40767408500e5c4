"""Recipe Pydantic models."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.services.image_service import to_data_uri


class Ingredient(BaseModel):
    """Single ingredient; amount is kept as free text."""

    name: str = Field(..., description="Ingredient name")
    amount: str = Field("", description="Free-text amount (e.g. '1L', '2 cups', 'a pinch')")


class MethodStep(BaseModel):
    """One numbered preparation step."""

    stepNumber: int = Field(..., ge=1, description="1-based position of the step")
    description: str = Field(..., description="Step text")


class Tag(BaseModel):
    name: str


class Recipe(BaseModel):
    """Canonical recipe record shared by every ingestion path and the store."""

    id: Optional[str] = Field(None, description="Assigned by storage on first save")
    title: str = Field(..., description="Recipe title")
    ingredients: List[Ingredient] = Field(default_factory=list, description="Ingredients in display order")
    methodSteps: List[MethodStep] = Field(default_factory=list, description="Steps numbered from 1")
    tags: List[Tag] = Field(default_factory=list, description="Deduplicated tags")
    source: Optional[str] = Field(None, description="Originating URL, if ingested from one")
    image: Optional[bytes] = Field(None, description="Raw image bytes")


class ExtractionResult(BaseModel):
    """Validated output of one structured extraction call. Never persisted."""

    title: str
    ingredients: List[Ingredient]
    methodSteps: List[str] = Field(default_factory=list)
    imageUrl: str = ""
    tags: List[str] = Field(default_factory=list)


class IngestRequest(BaseModel):
    """Caller input for creating a recipe.

    ``image`` is either raw bytes from a multipart upload or a base64 data URI.
    List fields are kept loosely typed; the normalizer decides what is usable.
    """

    model_config = ConfigDict(extra="ignore")

    source: Optional[str] = None
    image: Optional[Union[bytes, str]] = None
    title: Optional[str] = None
    ingredients: Optional[List[Union[Dict[str, Any], str]]] = None
    methodSteps: Optional[List[Union[str, Dict[str, Any]]]] = None
    tags: Optional[List[Union[str, Dict[str, Any]]]] = None


class RecipeResponse(BaseModel):
    """Recipe as returned over the API, with the image as a data URI."""

    id: Optional[str] = None
    title: str
    ingredients: List[Ingredient] = Field(default_factory=list)
    methodSteps: List[MethodStep] = Field(default_factory=list)
    tags: List[Tag] = Field(default_factory=list)
    source: Optional[str] = None
    image: Optional[str] = Field(None, description="data:image/jpeg;base64,... or null")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5f1c0e8a9b2d4c7e8f6a1b2c3d4e5f60",
                "title": "Soup",
                "ingredients": [{"name": "Water", "amount": "1L"}],
                "methodSteps": [{"stepNumber": 1, "description": "Boil"}],
                "tags": [{"name": "Soup"}],
                "source": "http://example.com/r1",
                "image": "data:image/jpeg;base64,/9j/4AAQSkZJRg...",
            }
        }
    )

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> "RecipeResponse":
        return cls(
            id=recipe.id,
            title=recipe.title,
            ingredients=recipe.ingredients,
            methodSteps=recipe.methodSteps,
            tags=recipe.tags,
            source=recipe.source,
            image=to_data_uri(recipe.image) if recipe.image else None,
        )
