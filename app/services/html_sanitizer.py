"""Reduce untrusted page markup to structural text before it reaches the model."""

from __future__ import annotations

import logging
import re
from typing import Union

from bs4 import BeautifulSoup, Comment

logger = logging.getLogger(__name__)

# Removed together with their content.
_DROP_TAGS = ["script", "style", "noscript", "template", "iframe", "svg"]

# Image attributes that may survive, and only with an absolute http(s) src.
_IMG_KEEP_ATTRS = {"src", "alt"}

_BLANK_RUNS = re.compile(r"\n\s*\n+")


def sanitize(raw_html: Union[str, bytes, None]) -> str:
    """
    Strip scripting, styling, attributes and links from ``raw_html``.

    Returns the inner markup of ``<body>`` (or of the whole document when
    there is no body). Never raises: unparseable input yields ``""``.
    """
    if not raw_html:
        return ""

    try:
        soup = BeautifulSoup(raw_html, "html.parser")

        for element in soup.find_all(_DROP_TAGS):
            element.decompose()

        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

        # Keep the anchor text in the surrounding prose, drop the target.
        for anchor in soup.find_all("a"):
            anchor.unwrap()

        for element in soup.find_all(True):
            if element.name == "img":
                _strip_image_attrs(element)
            else:
                element.attrs = {}

        root = soup.body or soup
        cleaned = root.decode_contents()
    except Exception as e:  # html.parser can trip on pathological markup
        logger.warning("HTML sanitization failed, returning empty content: %s", e)
        return ""

    return _BLANK_RUNS.sub("\n", cleaned).strip()


def _strip_image_attrs(element) -> None:
    src = element.get("src")
    if not isinstance(src, str) or not src.strip().lower().startswith(("http://", "https://")):
        element.attrs = {}
        return
    element.attrs = {
        name: value for name, value in element.attrs.items() if name in _IMG_KEEP_ATTRS
    }
