"""Tests for recipe normalization."""

import pytest

from conftest import soup_extraction

from app.models.recipe import Ingredient, MethodStep, Tag
from app.utils.exceptions import InvalidRequest
from app.utils.recipe_normalization import normalize_extraction, normalize_recipe


def _recipe(**overrides):
    fields = {
        "title": "Pancakes",
        "ingredients": [{"name": "Flour", "amount": "200g"}],
        "method_steps": ["Mix", "Fry"],
    }
    fields.update(overrides)
    return normalize_recipe(**fields)


def test_steps_numbered_from_one_in_input_order():
    recipe = _recipe(method_steps=["3. Mix", "1. Rest", "Fry"])
    assert recipe.methodSteps == [
        MethodStep(stepNumber=1, description="3. Mix"),
        MethodStep(stepNumber=2, description="1. Rest"),
        MethodStep(stepNumber=3, description="Fry"),
    ]


def test_supplied_step_numbers_are_ignored():
    recipe = _recipe(
        method_steps=[
            {"stepNumber": 7, "description": "Mix"},
            {"stepNumber": 2, "description": "Fry"},
        ]
    )
    assert [(s.stepNumber, s.description) for s in recipe.methodSteps] == [(1, "Mix"), (2, "Fry")]


def test_blank_steps_skipped_before_numbering():
    recipe = _recipe(method_steps=["Mix", "   ", "Fry"])
    assert [s.stepNumber for s in recipe.methodSteps] == [1, 2]


def test_tags_deduplicated_case_and_whitespace_insensitive():
    recipe = _recipe(tags=["Dessert", "dessert ", " DESSERT", "Quick", {"name": "quick"}])
    assert recipe.tags == [Tag(name="Dessert"), Tag(name="Quick")]


def test_blank_tags_dropped():
    recipe = _recipe(tags=["", "  ", {"name": ""}, "Breakfast"])
    assert recipe.tags == [Tag(name="Breakfast")]


def test_ingredient_amount_defaults_to_empty_string():
    recipe = _recipe(ingredients=[{"name": "Salt"}, {"name": "Eggs", "amount": 2}])
    assert recipe.ingredients == [Ingredient(name="Salt", amount=""), Ingredient(name="Eggs", amount="2")]


def test_ingredient_order_preserved():
    names = ["Flour", "Milk", "Egg", "Butter"]
    recipe = _recipe(ingredients=[{"name": n, "amount": ""} for n in names])
    assert [i.name for i in recipe.ingredients] == names


def test_empty_title_rejected():
    with pytest.raises(InvalidRequest):
        _recipe(title="  ")


def test_empty_ingredients_rejected():
    with pytest.raises(InvalidRequest):
        _recipe(ingredients=[])
    with pytest.raises(InvalidRequest):
        _recipe(ingredients=None)


def test_ingredient_without_name_rejected():
    with pytest.raises(InvalidRequest):
        _recipe(ingredients=[{"name": "Flour"}, {"name": "  ", "amount": "1 cup"}])


def test_recipe_has_no_id_and_keeps_image_bytes():
    recipe = _recipe(image=b"\x89PNG\r\n\x1a\nrest", source=" http://example.com/p ")
    assert recipe.id is None
    assert recipe.image == b"\x89PNG\r\n\x1a\nrest"
    assert recipe.source == "http://example.com/p"


def test_normalize_extraction_uses_extracted_tags():
    recipe = normalize_extraction(soup_extraction(), source="http://example.com/r1")
    assert recipe.title == "Soup"
    assert recipe.tags == [Tag(name="Soup")]
    assert recipe.methodSteps == [MethodStep(stepNumber=1, description="Boil")]


def test_normalize_extraction_caller_tags_override():
    recipe = normalize_extraction(soup_extraction(tags=[]), tags=[{"name": "Winter"}])
    assert recipe.tags == [Tag(name="Winter")]
