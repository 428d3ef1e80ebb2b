"""HTML sanitizing for field values written to the CRM."""

import logging
import re
from typing import Any

from bs4 import BeautifulSoup, Comment, Tag

logger = logging.getLogger(__name__)

# Formatting markup kept as is; any other tag is unwrapped (its text is kept)
ALLOWED_ELEMENTS = {
    "a", "abbr", "acronym", "b", "bdo", "big", "blockquote", "br",
    "caption", "center", "cite", "code", "col", "colgroup", "dd", "del",
    "dfn", "div", "dl", "dt", "em", "font", "h1", "h2", "h3", "h4", "h5",
    "h6", "hr", "i", "img", "ins", "kbd", "li", "ol", "p", "pre", "q", "s",
    "samp", "small", "span", "strike", "strong", "sub", "sup", "table",
    "tbody", "td", "tfoot", "th", "thead", "tr", "tt", "u", "ul", "var",
}

# Dropped together with everything inside them
FORBIDDEN_ELEMENTS = [
    "script", "noscript", "template", "form", "style", "link", "meta",
    "base", "iframe", "frame", "frameset", "object", "embed", "applet",
    "video", "audio", "svg", "math", "textarea", "select", "button",
    "input",
]

ALLOWED_ATTRIBUTES = {
    "href", "src", "alt", "title", "width", "height", "colspan", "rowspan",
    "dir", "lang", "cite", "datetime", "align", "valign", "border",
    "cellpadding", "cellspacing", "color", "face", "size", "start",
}

URL_ATTRIBUTES = {"href", "src", "cite"}

ALLOWED_SCHEMES = {"http", "https", "mailto", "ftp", "tel"}

# Browsers only open a tag on "<" followed by a letter, "/", "!" or "?"
MARKUP_START = re.compile(r"<[a-zA-Z/!?]")

SCHEME = re.compile(r"^([a-z][a-z0-9+.\-]*):")


class Sanitizer:
    """
    Strips active content from text values.

    Only formatting markup survives: known-dangerous elements are removed
    with their content, other unknown tags are unwrapped, and attributes
    are limited to an allowlist with URL schemes checked. Values that
    contain markup are re-serialized, so entities in them come back
    normalized; values without markup are returned untouched.

    Args:
        enabled: When False, every value passes through untouched
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def sanitize(self, value: Any) -> Any:
        """Return a safe copy of ``value``; non-strings are returned as is."""
        if not self.enabled or not isinstance(value, str):
            return value

        if not MARKUP_START.search(value):
            return value

        soup = BeautifulSoup(value, "html.parser")

        for tag in soup.find_all(FORBIDDEN_ELEMENTS):
            tag.decompose()

        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

        for tag in soup.find_all(True):
            if tag.name not in ALLOWED_ELEMENTS:
                tag.unwrap()
                continue
            _clean_attributes(tag)

        cleaned = str(soup)
        if cleaned != value:
            logger.debug("Sanitized markup in field value")
        return cleaned


def _clean_attributes(tag: Tag) -> None:
    for attr in list(tag.attrs):
        lowered = attr.lower()
        if lowered not in ALLOWED_ATTRIBUTES:
            del tag[attr]
        elif lowered in URL_ATTRIBUTES and not _is_safe_url(tag[attr]):
            del tag[attr]


def _is_safe_url(value: Any) -> bool:
    if isinstance(value, list):
        value = " ".join(value)
    # Browsers ignore whitespace and control characters inside the scheme
    compact = "".join(ch for ch in str(value) if ch > " ").lower()
    match = SCHEME.match(compact)
    return match is None or match.group(1) in ALLOWED_SCHEMES
