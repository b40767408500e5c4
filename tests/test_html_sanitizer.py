"""Tests for HTML sanitization."""

from bs4 import BeautifulSoup

from conftest import SOUP_PAGE

from app.services.html_sanitizer import sanitize


def test_removes_script_and_style_subtrees():
    cleaned = sanitize(SOUP_PAGE)
    assert "<script" not in cleaned
    assert "window.track" not in cleaned
    assert "<style" not in cleaned
    assert "color: red" not in cleaned


def test_returns_body_content_only():
    cleaned = sanitize(SOUP_PAGE)
    assert "<head" not in cleaned
    assert "<body" not in cleaned
    assert "<h1>Soup</h1>" in cleaned


def test_strips_attributes():
    cleaned = sanitize(SOUP_PAGE)
    assert "class=" not in cleaned
    assert "data-id" not in cleaned
    assert "<article>" in cleaned


def test_anchor_replaced_by_its_text():
    cleaned = sanitize(SOUP_PAGE)
    assert BeautifulSoup(cleaned, "html.parser").find("a") is None
    assert "evil.example" not in cleaned
    assert "the next recipe" in cleaned


def test_image_keeps_only_src_and_alt():
    cleaned = sanitize(SOUP_PAGE)
    assert 'src="http://example.com/img.jpg"' in cleaned
    assert 'alt="soup"' in cleaned
    assert "onerror" not in cleaned


def test_image_with_unsafe_src_loses_all_attributes():
    cleaned = sanitize('<body><img src="javascript:alert(1)" alt="x"><img src="data:image/png;base64,AAAA"></body>')
    assert "javascript" not in cleaned
    assert "base64" not in cleaned
    assert cleaned.count("<img/>") == 2


def test_comments_removed():
    cleaned = sanitize("<body><p>Stir</p><!-- tracking pixel --></body>")
    assert cleaned == "<p>Stir</p>"


def test_fragment_without_body():
    assert sanitize("<p class='x'>Bake at 180C</p>") == "<p>Bake at 180C</p>"


def test_empty_and_none_input():
    assert sanitize("") == ""
    assert sanitize(None) == ""


def test_script_only_page_is_near_empty():
    assert sanitize("<html><body><script>var a = 1;</script></body></html>") == ""


def test_accepts_bytes():
    assert sanitize(b"<body><p>Simmer</p></body>") == "<p>Simmer</p>"
