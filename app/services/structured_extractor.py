"""
Gemini structured extraction of recipes from page markup and photos.

Key design:
- The model must answer through a function declaration (tool call with mode
  ANY), never free text, so the payload is machine-parseable.
- Required fields (title, ingredients, methodSteps) fail loud with
  ExtractionFailed. Decorative fields (imageUrl, tags) fail soft to empty.
- One model call per extraction; no retries and no caching here.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from app.config import settings
from app.models.recipe import ExtractionResult, Ingredient
from app.services.image_service import detect_mime_type
from app.utils.exceptions import ExtractionFailed

logger = logging.getLogger(__name__)

HTML_FUNCTION_NAME = "extract_recipe_info"
IMAGE_FUNCTION_NAME = "extract_recipe"

HTML_SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts recipe information from HTML content "
    "and generates relevant tags. Try to be as accurate as possible. "
    "Ingredients should be parsed separately into name and amount."
)
IMAGE_SYSTEM_PROMPT = (
    "You are a helpful assistant that reads recipes from photographs. "
    "Copy the text faithfully; do not invent ingredients or steps that are not visible. "
    "Ingredients should be parsed separately into name and amount."
)


def _ingredients_schema(amount_required: bool) -> types.Schema:
    return types.Schema(
        type=types.Type.ARRAY,
        description="List of ingredients with their amounts",
        items=types.Schema(
            type=types.Type.OBJECT,
            properties={
                "name": types.Schema(type=types.Type.STRING),
                "amount": types.Schema(type=types.Type.STRING),
            },
            required=["name", "amount"] if amount_required else ["name"],
        ),
    )


def build_function_declaration(*, include_enrichment: bool, max_tags: int) -> types.FunctionDeclaration:
    """Function schema the model is forced to call.

    The HTML variant also asks for the main image URL and up to ``max_tags`` tags.
    """
    properties: Dict[str, types.Schema] = {
        "title": types.Schema(type=types.Type.STRING, description="The title of the recipe"),
        "ingredients": _ingredients_schema(amount_required=not include_enrichment),
        "methodSteps": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
            description="List of steps to prepare the recipe, in order",
        ),
    }
    required = ["title", "ingredients", "methodSteps"]

    if include_enrichment:
        properties["imageUrl"] = types.Schema(
            type=types.Type.STRING,
            description="URL of the main recipe image",
        )
        properties["tags"] = types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
            max_items=max_tags,
            description=f"Up to {max_tags} relevant tags for the recipe",
        )
        required += ["imageUrl", "tags"]
        return types.FunctionDeclaration(
            name=HTML_FUNCTION_NAME,
            description=(
                "Extracts recipe information from HTML content: title, ingredients, "
                "method steps, image URL and tags."
            ),
            parameters=types.Schema(type=types.Type.OBJECT, properties=properties, required=required),
        )

    return types.FunctionDeclaration(
        name=IMAGE_FUNCTION_NAME,
        description="Extract recipe information from the image",
        parameters=types.Schema(type=types.Type.OBJECT, properties=properties, required=required),
    )


class StructuredExtractor:
    """Wraps the model call behind a validated ``ExtractionResult``."""

    def __init__(self, client: Optional[genai.Client] = None) -> None:
        self._client = client

    @property
    def client(self) -> genai.Client:
        """Get or create Gemini client (lazy initialization)."""
        if self._client is None:
            if not settings.gemini_api_key:
                raise ExtractionFailed("GEMINI_API_KEY is not configured")
            self._client = genai.Client(api_key=settings.gemini_api_key)
        return self._client

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------

    async def extract_from_html(self, cleaned_html: str, timeout: Optional[float] = None) -> ExtractionResult:
        """Extract a recipe from sanitized page markup."""
        content = (cleaned_html or "").strip()
        if not content:
            raise ExtractionFailed("Page has no usable content to extract a recipe from")

        if len(content) > settings.max_html_chars:
            logger.info(
                "Truncating page content for extraction",
                extra={"chars": len(content), "max_chars": settings.max_html_chars},
            )
            content = content[: settings.max_html_chars]

        prompt = self._build_html_prompt(content)
        logger.debug("HTML extraction prompt: %s", prompt[:500])
        declaration = build_function_declaration(include_enrichment=True, max_tags=settings.max_tags)

        args = await self._call_function(
            model=settings.gemini_text_model,
            contents=prompt,
            system_prompt=HTML_SYSTEM_PROMPT,
            declaration=declaration,
            timeout=timeout,
        )
        result = self._validate(args)
        logger.info(
            "Extracted recipe from HTML",
            extra={
                "title": result.title[:100],
                "ingredients": len(result.ingredients),
                "steps": len(result.methodSteps),
                "tags": len(result.tags),
                "has_image_url": bool(result.imageUrl),
            },
        )
        return result

    async def extract_from_image(self, image_data: bytes, timeout: Optional[float] = None) -> ExtractionResult:
        """Extract a recipe from a photo. imageUrl and tags are empty unless the model volunteers them."""
        if not image_data:
            raise ExtractionFailed("No image data to extract a recipe from")

        mime_type = detect_mime_type(image_data)
        contents = [
            types.Part.from_bytes(data=image_data, mime_type=mime_type),
            self._build_image_prompt(),
        ]
        declaration = build_function_declaration(include_enrichment=False, max_tags=settings.max_tags)

        logger.info("Extracting recipe from image", extra={"mime_type": mime_type, "bytes": len(image_data)})
        args = await self._call_function(
            model=settings.gemini_image_model,
            contents=contents,
            system_prompt=IMAGE_SYSTEM_PROMPT,
            declaration=declaration,
            timeout=timeout,
        )
        result = self._validate(args)
        logger.info(
            "Extracted recipe from image",
            extra={"title": result.title[:100], "ingredients": len(result.ingredients), "steps": len(result.methodSteps)},
        )
        return result

    # ---------------------------------------------------------------------
    # Prompts
    # ---------------------------------------------------------------------

    def _build_html_prompt(self, content: str) -> str:
        return (
            "Extract the recipe information from the following HTML content. "
            f"Generate up to {settings.max_tags} relevant tags for this recipe based on its "
            "ingredients, method, and overall theme.\n\n"
            f"HTML content:\n{content}"
        )

    def _build_image_prompt(self) -> str:
        return "Extract the recipe title, ingredients and method steps from this image."

    # ---------------------------------------------------------------------
    # Model call
    # ---------------------------------------------------------------------

    async def _call_function(
        self,
        *,
        model: str,
        contents: Any,
        system_prompt: str,
        declaration: types.FunctionDeclaration,
        timeout: Optional[float],
    ) -> Any:
        """Run one forced function call and return the raw arguments payload."""
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=settings.gemini_temperature,
            max_output_tokens=settings.gemini_max_tokens,
            tools=[types.Tool(function_declarations=[declaration])],
            tool_config=types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(
                    mode=types.FunctionCallingConfigMode.ANY,
                    allowed_function_names=[declaration.name],
                )
            ),
        )
        client = self.client

        def _sync_call() -> Any:
            return client.models.generate_content(model=model, contents=contents, config=config)

        limit = timeout if timeout is not None else settings.model_timeout
        try:
            response = await asyncio.wait_for(asyncio.to_thread(_sync_call), timeout=limit)
        except asyncio.TimeoutError as e:
            logger.error("Extraction model call timed out", extra={"model": model, "timeout_s": limit})
            raise ExtractionFailed(f"Extraction model did not answer within {limit:.0f}s") from e
        except Exception as e:
            logger.error("Extraction model call failed: %s", str(e), exc_info=True)
            raise ExtractionFailed(f"Extraction model call failed: {e}") from e

        for call in getattr(response, "function_calls", None) or []:
            if getattr(call, "name", None) == declaration.name:
                return call.args

        text = getattr(response, "text", None)
        logger.warning(
            "Model did not call %s",
            declaration.name,
            extra={"model": model, "text_preview": (text or "")[:200] if isinstance(text, str) else None},
        )
        raise ExtractionFailed("Model declined to return structured recipe data")

    # ---------------------------------------------------------------------
    # Validation
    # ---------------------------------------------------------------------

    def _validate(self, args: Any) -> ExtractionResult:
        """Check the required fields and coerce the decorative ones. Never backfills."""
        if isinstance(args, (str, bytes)):
            try:
                args = json.loads(args)
            except json.JSONDecodeError as e:
                raise ExtractionFailed(f"Function call arguments are not valid JSON: {e}") from e

        if not isinstance(args, dict):
            raise ExtractionFailed("Function call arguments are not an object")

        title = args.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ExtractionFailed("Extraction is missing the recipe title")

        if "ingredients" not in args or not isinstance(args["ingredients"], list):
            raise ExtractionFailed("Extraction is missing the ingredients list")
        ingredients = [self._validate_ingredient(item) for item in args["ingredients"]]

        if "methodSteps" not in args:
            raise ExtractionFailed("Extraction is missing the method steps")
        steps = args["methodSteps"]
        method_steps: List[str] = []
        if isinstance(steps, list):
            method_steps = [str(step) for step in steps if step is not None]

        image_url = args.get("imageUrl")
        if not isinstance(image_url, str):
            image_url = ""

        tags = args.get("tags")
        tag_names: List[str] = []
        if isinstance(tags, list):
            tag_names = [str(tag) for tag in tags if tag is not None][: settings.max_tags]

        return ExtractionResult(
            title=title.strip(),
            ingredients=ingredients,
            methodSteps=method_steps,
            imageUrl=image_url.strip(),
            tags=tag_names,
        )

    @staticmethod
    def _validate_ingredient(item: Any) -> Ingredient:
        if not isinstance(item, dict):
            raise ExtractionFailed(f"Ingredient entry is not an object: {item!r}")

        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ExtractionFailed("Ingredient entry has no name")

        amount = item.get("amount")
        if amount is None:
            amount = ""
        elif not isinstance(amount, str):
            amount = str(amount)

        return Ingredient(name=name.strip(), amount=amount.strip())
