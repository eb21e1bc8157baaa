"""Bounded, deadline-aware reading of HTTP response bodies."""

import logging
import re

import httpx

from linkmeta.services.deadline import Deadline

logger = logging.getLogger(__name__)

_HEAD_END_RE = re.compile(rb"</head\s*>", re.IGNORECASE)
# Bytes of the previous buffer re-scanned so a marker split across chunks is found
_MARKER_OVERLAP = 16


async def read_limited(
    response: httpx.Response,
    deadline: Deadline,
    *,
    max_bytes: int,
    head_tail_bytes: int,
) -> bytes:
    """Read ``response`` until the stream ends or a byte cap is reached.

    The primary cap is ``max_bytes``. Once ``</head>`` has been seen, reading
    continues for at most ``head_tail_bytes`` past the marker. Truncation is
    not an error. Each chunk read runs through ``deadline``, so a stalled
    body raises DeadlineExceeded instead of hanging.
    """
    buf = bytearray()
    limit = max_bytes
    head_seen = False
    chunks = response.aiter_bytes()

    try:
        while len(buf) < limit:
            chunk = await deadline.run(_next_chunk(chunks))
            if chunk is None:
                break
            if not chunk:
                continue
            scan_from = max(0, len(buf) - _MARKER_OVERLAP)
            buf.extend(chunk)
            if not head_seen:
                match = _HEAD_END_RE.search(buf, scan_from)
                if match:
                    head_seen = True
                    limit = min(max_bytes, match.end() + head_tail_bytes)
    finally:
        await chunks.aclose()

    if len(buf) > limit:
        logger.debug(f"Body truncated at {limit} bytes ({response.url})")
        del buf[limit:]
    return bytes(buf)


async def _next_chunk(chunks) -> bytes | None:
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None
