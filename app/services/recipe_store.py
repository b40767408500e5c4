"""Recipe persistence behind a storage-agnostic async interface."""

from __future__ import annotations

import abc
import base64
import binascii
import logging
import uuid
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.models.recipe import Recipe
from app.utils.exceptions import RecipeNotFound, StorageError

logger = logging.getLogger(__name__)


class RecipeStore(abc.ABC):
    """Create/read/update/delete/list for canonical recipes.

    Implementations must be safe for concurrent use by independent requests.
    """

    @abc.abstractmethod
    async def create(self, recipe: Recipe) -> Recipe:
        """Persist a recipe without an id and return it with its new id."""

    @abc.abstractmethod
    async def get(self, recipe_id: str) -> Recipe:
        """Raises RecipeNotFound for unknown ids."""

    @abc.abstractmethod
    async def update(self, recipe_id: str, recipe: Recipe) -> Recipe:
        """Replace a stored recipe. Raises RecipeNotFound for unknown ids."""

    @abc.abstractmethod
    async def delete(self, recipe_id: str) -> None:
        """Raises RecipeNotFound for unknown ids."""

    @abc.abstractmethod
    async def list(self) -> List[Recipe]:
        ...

    async def close(self) -> None:
        return None


class InMemoryRecipeStore(RecipeStore):
    """Process-local store; records are copied in and out."""

    def __init__(self) -> None:
        self._recipes: Dict[str, Recipe] = {}

    async def create(self, recipe: Recipe) -> Recipe:
        recipe_id = uuid.uuid4().hex
        stored = recipe.model_copy(update={"id": recipe_id}, deep=True)
        self._recipes[recipe_id] = stored
        return stored.model_copy(deep=True)

    async def get(self, recipe_id: str) -> Recipe:
        try:
            return self._recipes[recipe_id].model_copy(deep=True)
        except KeyError:
            raise RecipeNotFound(f"Recipe {recipe_id} not found") from None

    async def update(self, recipe_id: str, recipe: Recipe) -> Recipe:
        if recipe_id not in self._recipes:
            raise RecipeNotFound(f"Recipe {recipe_id} not found")
        stored = recipe.model_copy(update={"id": recipe_id}, deep=True)
        self._recipes[recipe_id] = stored
        return stored.model_copy(deep=True)

    async def delete(self, recipe_id: str) -> None:
        if self._recipes.pop(recipe_id, None) is None:
            raise RecipeNotFound(f"Recipe {recipe_id} not found")

    async def list(self) -> List[Recipe]:
        return [recipe.model_copy(deep=True) for recipe in self._recipes.values()]


class CouchDBRecipeStore(RecipeStore):
    """Document-per-recipe storage in a CouchDB database.

    Documents carry ``type: "recipe"`` so other document kinds in the same
    database are ignored; the image is stored base64-encoded in the document.
    """

    DOC_TYPE = "recipe"

    def __init__(
        self,
        base_url: str,
        database: str,
        *,
        user: str = "",
        password: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self._db_url = f"{base_url.rstrip('/')}/{database}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            auth=(user, password) if user else None,
            timeout=timeout,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def create(self, recipe: Recipe) -> Recipe:
        doc = self._to_document(recipe)
        response = await self._request("POST", self._db_url, json=doc)
        return recipe.model_copy(update={"id": response.json()["id"]})

    async def get(self, recipe_id: str) -> Recipe:
        doc = await self._get_document(recipe_id)
        return self._from_document(doc)

    async def update(self, recipe_id: str, recipe: Recipe) -> Recipe:
        current = await self._get_document(recipe_id)
        doc = self._to_document(recipe)
        doc["_rev"] = current["_rev"]
        await self._request("PUT", self._doc_url(recipe_id), json=doc)
        return recipe.model_copy(update={"id": recipe_id})

    async def delete(self, recipe_id: str) -> None:
        current = await self._get_document(recipe_id)
        await self._request("DELETE", self._doc_url(recipe_id), params={"rev": current["_rev"]})

    async def list(self) -> List[Recipe]:
        response = await self._request(
            "GET", f"{self._db_url}/_all_docs", params={"include_docs": "true"}
        )
        recipes = []
        for row in response.json().get("rows", []):
            doc = row.get("doc")
            if isinstance(doc, dict) and doc.get("type") == self.DOC_TYPE:
                recipes.append(self._from_document(doc))
        return recipes

    # -------------------------
    # Internals
    # -------------------------

    def _doc_url(self, recipe_id: str) -> str:
        return f"{self._db_url}/{recipe_id}"

    async def _get_document(self, recipe_id: str) -> Dict[str, Any]:
        response = await self._request("GET", self._doc_url(recipe_id), recipe_id=recipe_id)
        doc = response.json()
        if doc.get("type") != self.DOC_TYPE:
            raise RecipeNotFound(f"Recipe {recipe_id} not found")
        return doc

    async def _request(self, method: str, url: str, *, recipe_id: Optional[str] = None, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("CouchDB %s %s failed: %s", method, url, e)
            raise StorageError(f"CouchDB request failed: {e}") from e

        if response.status_code == 404 and recipe_id is not None:
            raise RecipeNotFound(f"Recipe {recipe_id} not found")
        if not response.is_success:
            raise StorageError(f"CouchDB {method} returned HTTP {response.status_code}: {response.text[:200]}")
        return response

    def _to_document(self, recipe: Recipe) -> Dict[str, Any]:
        doc = recipe.model_dump(exclude={"id", "image"})
        doc["type"] = self.DOC_TYPE
        doc["image"] = base64.b64encode(recipe.image).decode("ascii") if recipe.image else None
        return doc

    def _from_document(self, doc: Dict[str, Any]) -> Recipe:
        image = doc.get("image")
        image_bytes = None
        if isinstance(image, str) and image:
            try:
                image_bytes = base64.b64decode(image)
            except (binascii.Error, ValueError):
                logger.warning("Stored image for %s is not valid base64, ignoring it", doc.get("_id"))
        return Recipe(
            id=doc["_id"],
            title=doc.get("title", ""),
            ingredients=doc.get("ingredients") or [],
            methodSteps=doc.get("methodSteps") or [],
            tags=doc.get("tags") or [],
            source=doc.get("source"),
            image=image_bytes,
        )


def create_recipe_store() -> RecipeStore:
    """Build the store selected by ``settings.storage_backend``."""
    backend = settings.storage_backend.lower()
    if backend == "memory":
        return InMemoryRecipeStore()
    if backend == "couchdb":
        return CouchDBRecipeStore(
            settings.couchdb_url,
            settings.couchdb_database,
            user=settings.couchdb_user,
            password=settings.couchdb_password,
        )
    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")
