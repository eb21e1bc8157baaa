"""Candidate collection from parsed JSON-LD nodes.

JSON-LD arrives in any shape, so every value is first classified into one of
four kinds and handled by an explicit recursive visitor. The walk is bounded
in depth and remembers the objects it has entered, so self-referencing or
pathologically nested data cannot loop or blow the stack.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MAX_DEPTH = 32

IMAGE_KEYS = frozenset({"image", "thumbnailurl"})
IMAGE_OBJECT_FIELDS = ("url", "contentUrl", "thumbnailUrl")
HEADLINE_KEYS = frozenset({"headline"})
NAME_KEYS = frozenset({"name"})
TEXT_OBJECT_FIELDS = ("text", "value", "name")

# Sub-objects describing someone other than the page itself; names and images
# found below these keys rank after the page's own values.
PARTY_KEYS = frozenset(
    {
        "author",
        "creator",
        "publisher",
        "contributor",
        "editor",
        "brand",
        "provider",
        "sourceorganization",
        "copyrightholder",
        "organizer",
        "performer",
        "seller",
        "manufacturer",
        "logo",
        "breadcrumb",
        "itemlistelement",
        "potentialaction",
    }
)

_WHITESPACE_RE = re.compile(r"\s+")


class JsonKind(Enum):
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    OTHER = "other"


def json_kind(value: Any) -> JsonKind:
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, list):
        return JsonKind.ARRAY
    if isinstance(value, dict):
        return JsonKind.OBJECT
    return JsonKind.OTHER


def normalize_whitespace(value: str) -> str:
    """Collapse runs of whitespace (full-width spaces included) to one space."""
    return _WHITESPACE_RE.sub(" ", value).strip()


def unwrap_strings(
    value: Any, object_fields: tuple[str, ...], depth: int = 0
) -> list[str]:
    """Flatten a string / array / object value into its string members.

    Objects contribute the first of ``object_fields`` that yields anything.
    """
    if depth > MAX_DEPTH:
        return []
    kind = json_kind(value)
    if kind is JsonKind.STRING:
        text = normalize_whitespace(value)
        return [text] if text else []
    if kind is JsonKind.ARRAY:
        out: list[str] = []
        for item in value:
            out.extend(unwrap_strings(item, object_fields, depth + 1))
        return out
    if kind is JsonKind.OBJECT:
        for name in object_fields:
            if name in value:
                found = unwrap_strings(value[name], object_fields, depth + 1)
                if found:
                    return found
    return []


def first_string(value: Any, object_fields: tuple[str, ...] = ("name",)) -> str | None:
    found = unwrap_strings(value, object_fields)
    return found[0] if found else None


@dataclass
class JsonLdCandidates:
    images: list[str] = field(default_factory=list)
    titles: list[str] = field(default_factory=list)
    # Unresolved "@id" references used as images; never a strong value
    image_refs: list[str] = field(default_factory=list)


class _CandidateWalker:
    def __init__(self, nodes_by_id: dict[str, dict[str, Any]]) -> None:
        self._nodes_by_id = nodes_by_id
        self._visited: set[int] = set()
        self._image_refs: list[str] = []
        self._images: tuple[list[str], list[str]] = ([], [])
        self._headlines: tuple[list[str], list[str]] = ([], [])
        self._names: tuple[list[str], list[str]] = ([], [])

    def visit(self, value: Any, depth: int = 0, in_party: bool = False) -> None:
        if depth > MAX_DEPTH:
            return
        kind = json_kind(value)
        if kind is JsonKind.ARRAY:
            for item in value:
                self.visit(item, depth + 1, in_party)
        elif kind is JsonKind.OBJECT:
            self._visit_object(value, depth, in_party)

    def _visit_object(self, obj: dict[str, Any], depth: int, in_party: bool) -> None:
        if id(obj) in self._visited:
            return
        self._visited.add(id(obj))
        tier = 1 if in_party else 0
        for key, child in obj.items():
            lkey = key.lower() if isinstance(key, str) else ""
            if lkey in IMAGE_KEYS:
                self._images[tier].extend(self._image_urls(child))
            elif lkey in HEADLINE_KEYS:
                self._headlines[tier].extend(unwrap_strings(child, TEXT_OBJECT_FIELDS))
            elif lkey in NAME_KEYS:
                self._names[tier].extend(unwrap_strings(child, TEXT_OBJECT_FIELDS))
            self.visit(child, depth + 1, in_party or lkey in PARTY_KEYS)

    def _image_urls(self, value: Any, depth: int = 0) -> list[str]:
        """Image URLs of a value, following "@id"-only objects to their node."""
        if depth > MAX_DEPTH:
            return []
        kind = json_kind(value)
        if kind is JsonKind.ARRAY:
            out: list[str] = []
            for item in value:
                out.extend(self._image_urls(item, depth + 1))
            return out
        if kind is not JsonKind.OBJECT:
            return unwrap_strings(value, IMAGE_OBJECT_FIELDS)
        found = unwrap_strings(value, IMAGE_OBJECT_FIELDS)
        if found:
            return found
        ref = value.get("@id")
        if not isinstance(ref, str) or not ref.strip():
            return []
        ref = ref.strip()
        target = self._nodes_by_id.get(ref)
        if target is not None:
            found = unwrap_strings(target, IMAGE_OBJECT_FIELDS)
            if found:
                return found
        self._image_refs.append(ref)
        return [ref]

    def result(self) -> JsonLdCandidates:
        images = self._images[0] + self._images[1]
        titles = (
            self._headlines[0] + self._names[0] + self._headlines[1] + self._names[1]
        )
        return JsonLdCandidates(
            images=_dedupe(images),
            titles=_dedupe(titles),
            image_refs=_dedupe(self._image_refs),
        )


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def index_nodes(nodes: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Map each "@id" to the first object that says more than its id."""
    index: dict[str, dict[str, Any]] = {}
    seen: set[int] = set()

    def _walk(value: Any, depth: int) -> None:
        if depth > MAX_DEPTH:
            return
        kind = json_kind(value)
        if kind is JsonKind.ARRAY:
            for item in value:
                _walk(item, depth + 1)
        elif kind is JsonKind.OBJECT and id(value) not in seen:
            seen.add(id(value))
            ref = value.get("@id")
            if isinstance(ref, str) and len(value) > 1:
                index.setdefault(ref.strip(), value)
            for child in value.values():
                _walk(child, depth + 1)

    for node in nodes:
        _walk(node, 0)
    return index


def collect_candidates(nodes: list[dict[str, Any]]) -> JsonLdCandidates:
    """Depth-first walk over every node collecting image and title candidates."""
    walker = _CandidateWalker(index_nodes(nodes))
    for node in nodes:
        walker.visit(node)
    return walker.result()


def find_author(nodes: list[dict[str, Any]]) -> str | None:
    """First author (or creator) of a top-level node."""
    for node in nodes:
        value = node.get("author")
        if value is None:
            value = node.get("creator")
        found = first_string(value)
        if found:
            return found
    return None


def find_publisher(nodes: list[dict[str, Any]]) -> str | None:
    """First publisher name of a top-level node."""
    for node in nodes:
        found = first_string(node.get("publisher"))
        if found:
            return found
    return None
