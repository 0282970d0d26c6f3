"""Sanitize course content and rendered markdown before it reaches a browser."""

from __future__ import annotations

import bleach
from bleach.css_sanitizer import CSSSanitizer

_ALLOWED_TAGS: frozenset[str] = frozenset(
    {
        "a",
        "b",
        "blockquote",
        "br",
        "code",
        "del",
        "div",
        "em",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "hr",
        "i",
        "li",
        "ol",
        "p",
        "pre",
        "span",
        "strong",
        "table",
        "tbody",
        "td",
        "th",
        "thead",
        "tr",
        "u",
        "ul",
    }
)

_BASIC_TAGS: frozenset[str] = frozenset({"p", "br", "strong", "em", "u", "b", "i"})

_ALLOWED_ATTRIBUTES: dict[str, list[str]] = {
    "*": ["class", "style"],
    "a": ["href", "target", "rel", "class"],
}

_ALLOWED_PROTOCOLS: frozenset[str] = frozenset({"http", "https", "mailto"})

_CSS = CSSSanitizer(
    allowed_css_properties=["color", "background-color", "text-align", "font-weight"]
)


def sanitize_html(raw: str | None) -> str:
    """Rich course content: headings, lists, tables and links."""

    return bleach.clean(
        raw or "",
        tags=_ALLOWED_TAGS,
        attributes=_ALLOWED_ATTRIBUTES,
        protocols=_ALLOWED_PROTOCOLS,
        css_sanitizer=_CSS,
        strip=True,
    ).strip()


def sanitize_basic_html(raw: str | None) -> str:
    return bleach.clean(raw or "", tags=_BASIC_TAGS, attributes={}, strip=True).strip()
