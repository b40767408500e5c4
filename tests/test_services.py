"""Tests for validators and image payload handling."""

import base64

import pytest

from conftest import JPEG_BYTES

from app.services.image_service import detect_mime_type, resolve_image, to_data_uri
from app.utils.exceptions import InvalidRequest
from app.utils.validators import validate_url


def test_validate_url_valid():
    assert validate_url("https://example.com/recipe") == "https://example.com/recipe"
    assert validate_url("  http://example.com/recipe ") == "http://example.com/recipe"


@pytest.mark.parametrize(
    "url",
    [
        "",
        "ftp://example.com",
        "javascript:alert(1)",
        "http:///nohost",
        "http://localhost/recipe",
        "http://127.0.0.1/recipe",
        "http://10.0.0.5/recipe",
        "http://192.168.1.1/recipe",
        "http://172.16.0.1/recipe",
        "http://169.254.169.254/latest/meta-data",
        "http://[::1]/recipe",
    ],
)
def test_validate_url_rejected(url):
    with pytest.raises(InvalidRequest):
        validate_url(url)


def test_validate_url_allows_public_ip():
    assert validate_url("http://93.184.216.34/r") == "http://93.184.216.34/r"


def test_resolve_image_none_and_blank():
    assert resolve_image(None) is None
    assert resolve_image("   ") is None


def test_resolve_image_bytes_pass_through():
    assert resolve_image(JPEG_BYTES) == JPEG_BYTES


def test_resolve_image_data_uri_and_bare_base64():
    encoded = base64.b64encode(JPEG_BYTES).decode()
    assert resolve_image(f"data:image/png;base64,{encoded}") == JPEG_BYTES
    assert resolve_image(encoded) == JPEG_BYTES


@pytest.mark.parametrize("payload", ["data:image/jpeg,rawtext", "data:image/jpeg;base64,%%%", b""])
def test_resolve_image_invalid(payload):
    with pytest.raises(InvalidRequest):
        resolve_image(payload)


def test_resolve_image_too_large(monkeypatch):
    from app.config import settings

    monkeypatch.setattr(settings, "max_image_bytes", 8)
    with pytest.raises(InvalidRequest):
        resolve_image(JPEG_BYTES)


def test_detect_mime_type():
    assert detect_mime_type(JPEG_BYTES) == "image/jpeg"
    assert detect_mime_type(b"\x89PNG\r\n\x1a\n....") == "image/png"
    assert detect_mime_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"
    assert detect_mime_type(b"GIF89a....") == "image/gif"
    assert detect_mime_type(b"not an image") == "image/jpeg"


def test_to_data_uri():
    assert to_data_uri(b"abc") == "data:image/jpeg;base64,YWJj"
