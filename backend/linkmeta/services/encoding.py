"""Character encoding resolution for fetched HTML.

Priority: UTF-8 BOM, then the Content-Type charset, then a <meta> declaration
sniffed from the first bytes of the body, then UTF-8.
"""

import codecs
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

# Labels seen in the wild mapped to Python codec names. Latin-1 style labels
# decode as cp1252, matching what browsers do with them.
_CHARSET_ALIASES: dict[str, str] = {
    "utf8": "utf-8",
    "utf-8": "utf-8",
    "unicode-1-1-utf-8": "utf-8",
    "shift-jis": "shift_jis",
    "shift_jis": "shift_jis",
    "shiftjis": "shift_jis",
    "sjis": "shift_jis",
    "x-sjis": "shift_jis",
    "cp932": "shift_jis",
    "ms932": "shift_jis",
    "windows-31j": "shift_jis",
    "euc-jp": "euc_jp",
    "x-euc-jp": "euc_jp",
    "iso-2022-jp": "iso2022_jp",
    "gbk": "gbk",
    "gb2312": "gb2312",
    "gb18030": "gb18030",
    "big5": "big5",
    "big5-hkscs": "big5hkscs",
    "euc-kr": "euc_kr",
    "ks_c_5601-1987": "euc_kr",
    "iso-8859-1": "cp1252",
    "iso8859-1": "cp1252",
    "latin1": "cp1252",
    "latin-1": "cp1252",
    "us-ascii": "cp1252",
    "ascii": "cp1252",
}

_CT_CHARSET_RE = re.compile(r"charset\s*=\s*[\"']?([^\s\"';,]+)", re.IGNORECASE)
_META_CHARSET_RE = re.compile(
    r"<meta\b[^>]*?\bcharset\s*=\s*[\"']?\s*([^\s\"'/>;]+)", re.IGNORECASE
)
_META_HTTP_EQUIV_RE = re.compile(
    r"<meta\b[^>]*?http-equiv\s*=\s*[\"']?content-type[^>]*>", re.IGNORECASE
)


def normalize_charset(label: str | None) -> str | None:
    """Map a declared charset label to a usable codec name, or None."""
    if not label:
        return None
    key = label.strip().strip("\"'").lower()
    if not key:
        return None
    if key in _CHARSET_ALIASES:
        return _CHARSET_ALIASES[key]
    try:
        name = codecs.lookup(key).name
        # Rejects bytes-to-bytes codecs and ones that cannot replace errors
        b"<html>".decode(name, errors="replace")
    except (LookupError, UnicodeError):
        return None
    return name


def charset_from_content_type(content_type: str | None) -> str | None:
    if not content_type:
        return None
    match = _CT_CHARSET_RE.search(content_type)
    return normalize_charset(match.group(1)) if match else None


def sniff_meta_charset(head: bytes) -> str | None:
    """Find <meta charset> or an http-equiv content-type declaration in ``head``."""
    # latin-1 maps every byte to one code point, so ASCII markup survives
    text = head.decode("latin-1")
    match = _META_CHARSET_RE.search(text)
    if match:
        found = normalize_charset(match.group(1))
        if found:
            return found
    for tag in _META_HTTP_EQUIV_RE.finditer(text):
        found = charset_from_content_type(tag.group(0))
        if found:
            return found
    return None


def resolve_encoding(
    content_type: str | None, body: bytes, sniff_bytes: int = 32_768
) -> str:
    if body.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"
    return (
        charset_from_content_type(content_type)
        or sniff_meta_charset(body[:sniff_bytes])
        or DEFAULT_ENCODING
    )


def decode_body(body: bytes, encoding: str) -> str:
    """Decode ``body`` without ever raising; bad sequences become U+FFFD."""
    try:
        return body.decode(encoding, errors="replace")
    except (LookupError, UnicodeError):
        logger.debug(f"Unusable encoding {encoding!r}, decoding as UTF-8")
        return body.decode(DEFAULT_ENCODING, errors="replace")
