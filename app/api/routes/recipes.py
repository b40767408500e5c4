"""Recipe endpoints: ingestion plus plain CRUD."""

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from app.api.dependencies import get_recipe_ingestor, get_recipe_store
from app.config import settings
from app.middleware.rate_limit import rate_limit_dependency
from app.models.recipe import IngestRequest, RecipeResponse
from app.services.recipe_ingestor import RecipeIngestor
from app.services.recipe_store import RecipeStore
from app.utils.exceptions import InvalidRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/recipes", tags=["recipes"])

_SCALAR_FIELDS = ("title", "source")
_LIST_FIELDS = ("ingredients", "methodSteps", "tags")

# Outbound calls of one ingestion may each take up to this long when the caller asks.
MAX_CALLER_TIMEOUT_S = 300.0


async def read_ingest_request(request: Request) -> IngestRequest:
    """
    Parse the body as JSON or as a form.

    Form submissions carry ``ingredients``, ``methodSteps`` and ``tags`` as
    JSON-encoded strings and ``image`` as a file part or a data-URI string.
    """
    content_type = request.headers.get("content-type", "").lower()

    try:
        if "application/json" in content_type:
            try:
                body = await request.json()
            except json.JSONDecodeError as e:
                raise InvalidRequest(f"Request body is not valid JSON: {e}") from e
            if not isinstance(body, dict):
                raise InvalidRequest("Request body must be a JSON object")
            return IngestRequest.model_validate(body)

        if "multipart/form-data" in content_type or "application/x-www-form-urlencoded" in content_type:
            form = await request.form(max_part_size=settings.max_image_bytes * 2)
            return IngestRequest.model_validate(await _form_to_fields(form))
    except ValidationError as e:
        raise InvalidRequest(f"Invalid recipe fields: {e.errors(include_url=False)}") from e

    raise InvalidRequest(f"Unsupported content-type: {content_type or 'none'}")


async def _form_to_fields(form) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}

    for name in _SCALAR_FIELDS:
        value = form.get(name)
        if isinstance(value, str) and value.strip():
            fields[name] = value

    for name in _LIST_FIELDS:
        value = form.get(name)
        if not isinstance(value, str) or not value.strip():
            continue
        try:
            fields[name] = json.loads(value)
        except json.JSONDecodeError as e:
            raise InvalidRequest(f"Form field '{name}' must be JSON encoded: {e}") from e

    image = form.get("image")
    if isinstance(image, UploadFile):
        data = await image.read()
        if data:
            fields["image"] = data
    elif isinstance(image, str) and image.strip():
        fields["image"] = image

    return fields


@router.get("", response_model=List[RecipeResponse])
async def list_recipes(store: RecipeStore = Depends(get_recipe_store)) -> List[RecipeResponse]:
    recipes = await store.list()
    return [RecipeResponse.from_recipe(recipe) for recipe in recipes]


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(recipe_id: str, store: RecipeStore = Depends(get_recipe_store)) -> RecipeResponse:
    return RecipeResponse.from_recipe(await store.get(recipe_id))


@router.post("", response_model=RecipeResponse, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    request: Request,
    timeout: Optional[float] = Query(None, gt=0, le=MAX_CALLER_TIMEOUT_S, description="Per-call timeout in seconds"),
    _: None = Depends(rate_limit_dependency),
    ingestor: RecipeIngestor = Depends(get_recipe_ingestor),
) -> RecipeResponse:
    """
    Create a recipe from a source URL, a recipe photo, or manual fields.

    - **source** without **title**: the page is scraped and read by the model
    - **image** without **ingredients** or **methodSteps**: the photo is read by the model
    - otherwise the supplied fields are stored as given
    """
    ingest_request = await read_ingest_request(request)

    logger.info(
        "Route /recipes called",
        extra={
            "route": "/recipes",
            "params": {
                "source": (ingest_request.source or "")[:200] or None,
                "title": (ingest_request.title or "")[:100] or None,
                "has_image": ingest_request.image is not None,
                "ingredients_count": len(ingest_request.ingredients or []),
                "steps_count": len(ingest_request.methodSteps or []),
            },
        },
    )

    recipe = await ingestor.ingest(ingest_request, timeout=timeout)
    return RecipeResponse.from_recipe(recipe)


@router.put("/{recipe_id}", response_model=RecipeResponse)
async def update_recipe(
    recipe_id: str,
    request: Request,
    ingestor: RecipeIngestor = Depends(get_recipe_ingestor),
) -> RecipeResponse:
    """Replace a recipe with the supplied fields; the stored image is kept if none is sent."""
    ingest_request = await read_ingest_request(request)
    recipe = await ingestor.replace(recipe_id, ingest_request)
    return RecipeResponse.from_recipe(recipe)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recipe(recipe_id: str, store: RecipeStore = Depends(get_recipe_store)) -> Response:
    await store.delete(recipe_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
