"""Per-field resolution policy for link previews.

Every resolver is a pure function of one document. It returns a
``FieldCandidates``: the preferred value (first candidate passing the
placeholder filter) plus the ordered list of every usable candidate, which
callers pool across fetch attempts as a last-resort fallback.
"""

import re
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlsplit

from linkmeta.services import jsonld
from linkmeta.services.jsonld import normalize_whitespace
from linkmeta.services.markup import PageMarkup

META_IMAGE_PRIORITY = (
    "og:image",
    "og:image:url",
    "og:image:secure_url",
    "og:image:secure-url",
    "og:image:secureurl",
    "twitter:image",
    "twitter:image:src",
    "twitter:image:url",
    "twitter:image0",
    "twitter:image:large",
    "twitter:image:secure",
    "image",
)

META_TITLE_PRIORITY = ("og:title", "twitter:title", "title")

META_SITE_NAME_KEYS = (
    "og:site_name",
    "site_name",
    "application-name",
    "twitter:app:name:iphone",
    "twitter:app:name:ipad",
    "twitter:app:name:googleplay",
)

AUTHOR_KEYWORDS = (
    "author",
    "authors",
    "article:author",
    "book:author",
    "byline",
    "creator",
    "dc.creator",
    "dc:creator",
    "twitter:creator",
    "作者",
    "著者",
)

DESCRIPTION_KEYS = ("description", "og:description", "twitter:description")

_PLACEHOLDER_IMAGE_RE = re.compile(
    r"(favicon|spacer|pixel|blank|transparent|placeholder)|\.ico$", re.IGNORECASE
)
_AUTHOR_LABEL_RE = re.compile(r"^(?:作者|著者|(?:author|byline|by)\b)\s*[：:\-]?\s*", re.IGNORECASE)
_AUTHOR_SEPARATOR_RE = re.compile(r"[|｜／/\n\r]")
_AUTHOR_IN_TEXT_RE = re.compile(
    r"(?:作者|著者|\bauthor\b)\s*[：:\-]?\s*([^|｜／/\n\r]{1,80})", re.IGNORECASE
)
_AUTHOR_INLINE_RE = re.compile(r"(?:作者|著者)\s*[：:\-]\s*([^<\n\r]{1,80})")


@dataclass
class FieldCandidates:
    preferred: str | None = None
    candidates: list[str] = field(default_factory=list)


def _pick(values: list[str], is_placeholder) -> FieldCandidates:
    unique = list(dict.fromkeys(v for v in values if v))
    preferred = next((v for v in unique if not is_placeholder(v)), None)
    return FieldCandidates(preferred=preferred, candidates=unique)


# ---------------------------------------------------------------------------
# Image
# ---------------------------------------------------------------------------


def resolve_image_url(candidate: str, base_url: str) -> str | None:
    """Absolute http(s) URL for ``candidate``; data: URIs pass through as-is."""
    candidate = candidate.strip()
    if not candidate:
        return None
    if candidate[:5].lower() == "data:":
        return candidate
    try:
        resolved = urljoin(base_url, candidate)
        parts = urlsplit(resolved)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return resolved


def is_placeholder_image(url: str) -> bool:
    if url[:5].lower() == "data:":
        return True
    filename = urlsplit(url).path.rsplit("/", 1)[-1]
    return bool(_PLACEHOLDER_IMAGE_RE.search(filename))


def image_candidates(
    markup: PageMarkup, base_url: str, ld: jsonld.JsonLdCandidates | None = None
) -> FieldCandidates:
    if ld is None:
        ld = jsonld.collect_candidates(markup.json_ld)
    raw = [markup.meta_tags[k] for k in META_IMAGE_PRIORITY if k in markup.meta_tags]
    raw.extend(ld.images)
    if markup.first_image:
        raw.append(markup.first_image)
    resolved = [resolve_image_url(c, base_url) for c in raw]
    refs = {resolve_image_url(r, base_url) for r in ld.image_refs}
    return _pick(
        [r for r in resolved if r],
        lambda url: url in refs or is_placeholder_image(url),
    )


# ---------------------------------------------------------------------------
# Title and site name
# ---------------------------------------------------------------------------


def _bare_host(host: str) -> str:
    host = host.lower().rstrip(".")
    return host[4:] if host.startswith("www.") else host


def is_host_equivalent(value: str, base_url: str) -> bool:
    """True when ``value`` is just the page's hostname, with or without www."""
    host = urlsplit(base_url).hostname or ""
    if not host:
        return False
    return _bare_host(value.strip()) == _bare_host(host)


def title_candidates(
    markup: PageMarkup, base_url: str, ld: jsonld.JsonLdCandidates | None = None
) -> FieldCandidates:
    if ld is None:
        ld = jsonld.collect_candidates(markup.json_ld)
    raw = [markup.meta_tags[k] for k in META_TITLE_PRIORITY if k in markup.meta_tags]
    raw.extend(ld.titles)
    if markup.title:
        raw.append(markup.title)
    return _pick(
        [normalize_whitespace(v) for v in raw],
        lambda v: is_host_equivalent(v, base_url),
    )


def site_name_candidates(markup: PageMarkup, base_url: str) -> FieldCandidates:
    meta = markup.meta_tags
    raw = [meta[k] for k in META_SITE_NAME_KEYS if k in meta]
    publisher = jsonld.find_publisher(markup.json_ld)
    if publisher:
        raw.append(publisher)
    raw.extend(v for k, v in meta.items() if "site_name" in k or "sitename" in k)
    return _pick(
        [normalize_whitespace(v) for v in raw],
        lambda v: is_host_equivalent(v, base_url),
    )


# ---------------------------------------------------------------------------
# Author
# ---------------------------------------------------------------------------


def clean_author(raw: str) -> str | None:
    """Strip a leading label ("作者：", "by ") and cut at the first separator."""
    normalized = normalize_whitespace(raw)
    if not normalized:
        return None
    stripped = _AUTHOR_LABEL_RE.sub("", normalized, count=1)
    first = _AUTHOR_SEPARATOR_RE.split(stripped, maxsplit=1)[0]
    return normalize_whitespace(first) or None


def author_from_text(text: str) -> str | None:
    match = _AUTHOR_IN_TEXT_RE.search(normalize_whitespace(text))
    return clean_author(match.group(0)) if match else None


def find_author(markup: PageMarkup, raw_html: str) -> str | None:
    """First match wins: author-like meta keys, descriptions, inline text, JSON-LD."""
    for key, value in markup.meta_tags.items():
        if any(keyword in key for keyword in AUTHOR_KEYWORDS):
            found = clean_author(value)
            if found:
                return found

    for key in DESCRIPTION_KEYS:
        value = markup.meta_tags.get(key)
        if value:
            found = author_from_text(value)
            if found:
                return found

    match = _AUTHOR_INLINE_RE.search(raw_html)
    if match:
        found = clean_author(match.group(0))
        if found:
            return found

    found = jsonld.find_author(markup.json_ld)
    return clean_author(found) if found else None


@dataclass
class DocumentFields:
    image: FieldCandidates
    title: FieldCandidates
    site_name: FieldCandidates
    author: str | None

    @property
    def complete(self) -> bool:
        """Image and title both resolved to non-placeholder values."""
        return bool(self.image.preferred and self.title.preferred)


def resolve_fields(markup: PageMarkup, raw_html: str, base_url: str) -> DocumentFields:
    ld = jsonld.collect_candidates(markup.json_ld)
    return DocumentFields(
        image=image_candidates(markup, base_url, ld),
        title=title_candidates(markup, base_url, ld),
        site_name=site_name_candidates(markup, base_url),
        author=find_author(markup, raw_html),
    )


def merge_field(results: list[FieldCandidates]) -> str | None:
    """First preferred value across attempts, else the first pooled candidate."""
    for result in results:
        if result.preferred:
            return result.preferred
    for result in results:
        if result.candidates:
            return result.candidates[0]
    return None
