"""Pytest configuration and fixtures."""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_recipe_store, get_remote_fetcher, get_structured_extractor
from app.main import app
from app.middleware.rate_limit import limiter
from app.models.recipe import ExtractionResult, Recipe
from app.services.recipe_store import InMemoryRecipeStore
from app.utils.exceptions import SourceUnreachable

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00fake-jpeg-body"

SOUP_PAGE = """
<html>
  <head><title>Soup</title><style>body { color: red; }</style></head>
  <body>
    <script>window.track('visit');</script>
    <article class="recipe" data-id="7">
      <h1>Soup</h1>
      <ul><li>1L Water</li></ul>
      <p>Boil. See <a href="http://evil.example/next">the next recipe</a>.</p>
      <img src="http://example.com/img.jpg" onerror="alert(1)" alt="soup">
    </article>
  </body>
</html>
"""


class FakeFetcher:
    """Serves canned pages/images; any other URL is unreachable."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, images: Optional[Dict[str, bytes]] = None):
        self.pages = pages or {}
        self.images = images or {}
        self.page_calls: List[str] = []
        self.image_calls: List[str] = []
        self.timeouts: List[Optional[float]] = []

    async def fetch_page(self, url: str, timeout: Optional[float] = None) -> str:
        self.page_calls.append(url)
        self.timeouts.append(timeout)
        if url not in self.pages:
            raise SourceUnreachable(f"Fetching {url} returned HTTP 404")
        return self.pages[url]

    async def fetch_image(self, url: str, timeout: Optional[float] = None) -> bytes:
        self.image_calls.append(url)
        self.timeouts.append(timeout)
        if url not in self.images:
            raise SourceUnreachable(f"Fetching {url} returned HTTP 404")
        return self.images[url]

    async def aclose(self) -> None:
        return None


class FakeExtractor:
    """Returns a preset ExtractionResult (or raises a preset error) and records inputs."""

    def __init__(self, result: Optional[ExtractionResult] = None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.html_calls: List[str] = []
        self.image_calls: List[bytes] = []

    async def extract_from_html(self, cleaned_html: str, timeout: Optional[float] = None) -> ExtractionResult:
        self.html_calls.append(cleaned_html)
        return self._answer()

    async def extract_from_image(self, image_data: bytes, timeout: Optional[float] = None) -> ExtractionResult:
        self.image_calls.append(image_data)
        return self._answer()

    @property
    def calls(self) -> int:
        return len(self.html_calls) + len(self.image_calls)

    def _answer(self) -> ExtractionResult:
        if self.error is not None:
            raise self.error
        return self.result


class RecordingStore(InMemoryRecipeStore):
    """In-memory store that counts create calls."""

    def __init__(self) -> None:
        super().__init__()
        self.created: List[Recipe] = []

    async def create(self, recipe: Recipe) -> Recipe:
        self.created.append(recipe)
        return await super().create(recipe)


class FakeGenaiClient:
    """Stands in for ``genai.Client``; answers with a preset response object."""

    def __init__(self, response: Any = None, error: Optional[Exception] = None):
        self.requests: List[Dict[str, Any]] = []
        self._response = response
        self._error = error
        self.models = SimpleNamespace(generate_content=self._generate_content)

    def _generate_content(self, *, model, contents, config):
        self.requests.append({"model": model, "contents": contents, "config": config})
        if self._error is not None:
            raise self._error
        return self._response


def function_call_response(name: str, args: Any) -> SimpleNamespace:
    return SimpleNamespace(function_calls=[SimpleNamespace(name=name, args=args)], text=None)


def soup_extraction(**overrides: Any) -> ExtractionResult:
    data = {
        "title": "Soup",
        "ingredients": [{"name": "Water", "amount": "1L"}],
        "methodSteps": ["Boil"],
        "imageUrl": "http://example.com/img.jpg",
        "tags": ["Soup", "soup "],
    }
    data.update(overrides)
    return ExtractionResult(**data)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        pages={"http://example.com/r1": SOUP_PAGE},
        images={"http://example.com/img.jpg": JPEG_BYTES},
    )


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor(result=soup_extraction())


@pytest.fixture
def client(store, fetcher, extractor):
    """Create test client wired to fakes."""
    app.dependency_overrides[get_recipe_store] = lambda: store
    app.dependency_overrides[get_remote_fetcher] = lambda: fetcher
    app.dependency_overrides[get_structured_extractor] = lambda: extractor
    limiter_enabled = limiter.enabled
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = limiter_enabled
