"""Forgiving tag scanner for link-preview metadata.

No DOM is built: <meta>, <title>, <img> and JSON-LD <script> blocks are
located with regular expressions, which keeps working on truncated or
malformed markup.
"""

import html
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

_META_TAG_RE = re.compile(r"<meta\b([^>]*)>", re.IGNORECASE)
_IMG_TAG_RE = re.compile(r"<img\b([^>]*)>", re.IGNORECASE)
_TITLE_RE = re.compile(r"<title\b[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)
_SCRIPT_RE = re.compile(
    r"<script\b([^>]*)>(.*?)</script\s*>", re.IGNORECASE | re.DOTALL
)
_ATTR_RE = re.compile(
    r"""([^\s"'<>/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?"""
)
_WRAPPER_RE = re.compile(r"^\s*(?:<!--|<!\[CDATA\[)|(?:-->|\]\]>)\s*$")

# Attributes that name a <meta> tag, in lookup order
_META_KEY_ATTRS = ("property", "name", "itemprop")

JSON_LD_TYPE = "application/ld+json"


@dataclass
class PageMarkup:
    """Everything the field resolvers need from one HTML document."""

    meta_tags: dict[str, str] = field(default_factory=dict)
    title: str | None = None
    first_image: str | None = None
    json_ld: list[dict[str, Any]] = field(default_factory=list)


def parse_attributes(attr_text: str) -> dict[str, str]:
    """Parse a tag's attribute string; names are lowercased, first one wins."""
    attrs: dict[str, str] = {}
    for match in _ATTR_RE.finditer(attr_text):
        name = match.group(1).lower()
        if name in attrs:
            continue
        value = next((g for g in match.group(2, 3, 4) if g is not None), "")
        attrs[name] = html.unescape(value)
    return attrs


def collect_meta_tags(text: str) -> dict[str, str]:
    """Map each <meta> key (property, else name, else itemprop) to its content.

    Keys are trimmed and lowercased, values trimmed. The first occurrence of a
    key wins, and tags without content are ignored.
    """
    tags: dict[str, str] = {}
    for match in _META_TAG_RE.finditer(text):
        attrs = parse_attributes(match.group(1))
        key = ""
        for attr in _META_KEY_ATTRS:
            key = attrs.get(attr, "").strip().lower()
            if key:
                break
        if not key or key in tags:
            continue
        content = attrs.get("content", "").strip()
        if content:
            tags[key] = content
    return tags


def extract_title(text: str) -> str | None:
    match = _TITLE_RE.search(text)
    if not match:
        return None
    title = html.unescape(match.group(1)).strip()
    return title or None


def extract_first_image(text: str) -> str | None:
    """Return the src of the first <img> that has one."""
    for match in _IMG_TAG_RE.finditer(text):
        src = parse_attributes(match.group(1)).get("src", "").strip()
        if src:
            return src
    return None


def _is_json_ld(attrs: dict[str, str]) -> bool:
    # type="application/ld+json; profile=..." is still JSON-LD
    media_type = attrs.get("type", "").split(";", 1)[0].strip().lower()
    return media_type == JSON_LD_TYPE


def extract_json_ld(text: str) -> list[dict[str, Any]]:
    """Parse every JSON-LD block independently.

    A block that fails to parse is skipped. Arrays are flattened one level and
    the object members of a top-level ``@graph`` are promoted to nodes.
    """
    nodes: list[dict[str, Any]] = []
    for index, match in enumerate(_SCRIPT_RE.finditer(text)):
        if not _is_json_ld(parse_attributes(match.group(1))):
            continue
        raw = _WRAPPER_RE.sub("", match.group(2)).strip()
        if not raw:
            continue
        try:
            parsed = json.loads(raw)
        except (ValueError, RecursionError) as e:
            logger.debug(f"Skipping malformed JSON-LD block #{index}: {e}")
            continue
        items = parsed if isinstance(parsed, list) else [parsed]
        for item in items:
            if not isinstance(item, dict):
                continue
            nodes.append(item)
            graph = item.get("@graph")
            if isinstance(graph, list):
                nodes.extend(g for g in graph if isinstance(g, dict))
    return nodes


def extract_markup(text: str) -> PageMarkup:
    return PageMarkup(
        meta_tags=collect_meta_tags(text),
        title=extract_title(text),
        first_image=extract_first_image(text),
        json_ld=extract_json_ld(text),
    )
