"""Entry point of the link metadata resolver.

Validates the target, drives the fetch strategy, resolves fields for every
document obtained and merges them, or degrades to the domain fallback.
Nothing but cancellation escapes: every path ends in a ResolveResult.
"""

import logging
import time
from contextlib import aclosing
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from linkmeta.config import settings
from linkmeta.core.exceptions import FetchFailure, InvalidTargetURLError
from linkmeta.core.metrics import link_resolve_duration_seconds, link_resolve_requests_total
from linkmeta.schemas.metadata import ResolvedMetadata, ResolveRequest
from linkmeta.services.deadline import Deadline
from linkmeta.services.fallback import domain_fallback
from linkmeta.services.fetcher import FetchStrategy, block_reason, create_http_client
from linkmeta.services.fields import DocumentFields, merge_field, resolve_fields

logger = logging.getLogger(__name__)


@dataclass
class ResolveResult:
    status_code: int
    metadata: ResolvedMetadata
    outcome: str


def parse_target_url(raw: str | None) -> str:
    """Validate the inbound url parameter, raising InvalidTargetURLError."""
    try:
        return ResolveRequest(url=raw).url
    except ValidationError as e:
        err = e.errors()[0]
        cause = err.get("ctx", {}).get("error")
        raise InvalidTargetURLError(str(cause) if cause else "Invalid URL") from None


def failure_message(failure: FetchFailure, status_code: int | None = None) -> str | None:
    if failure is FetchFailure.TIMEOUT:
        return "Timed out fetching the page"
    if failure is FetchFailure.NETWORK:
        return "Failed to fetch the page"
    if failure is FetchFailure.BLOCKED:
        return block_reason(status_code)
    if failure is FetchFailure.EMPTY_BODY:
        return "The page returned an empty response"
    if failure is FetchFailure.UPSTREAM_ERROR:
        return f"The site responded with HTTP {status_code}"
    # Non-HTML targets (PDFs, images) are an expected outcome
    return None


def merge_documents(documents: list[DocumentFields]) -> ResolvedMetadata:
    return ResolvedMetadata(
        image=merge_field([d.image for d in documents]),
        title=merge_field([d.title for d in documents]),
        author=next((d.author for d in documents if d.author), None),
        site_name=merge_field([d.site_name for d in documents]),
    )


async def resolve_link_metadata(
    url: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout_ms: int | None = None,
    max_bytes: int | None = None,
) -> ResolveResult:
    """Resolve preview metadata for an already validated http(s) URL."""
    started = time.perf_counter()
    deadline = Deadline.from_ms(timeout_ms or settings.RESOLVE_TIMEOUT_MS)
    try:
        result = await _resolve(url, deadline, transport, max_bytes)
    except Exception:
        logger.exception(f"Unexpected error resolving {url}")
        result = ResolveResult(
            502, domain_fallback(url, failure_message(FetchFailure.NETWORK)), "error"
        )

    link_resolve_requests_total.labels(outcome=result.outcome).inc()
    link_resolve_duration_seconds.observe(time.perf_counter() - started)
    return result


async def _resolve(
    url: str,
    deadline: Deadline,
    transport: httpx.AsyncBaseTransport | None,
    max_bytes: int | None,
) -> ResolveResult:
    documents: list[DocumentFields] = []

    async with create_http_client(transport) as client:
        strategy = FetchStrategy(client, max_bytes=max_bytes)
        async with aclosing(strategy.documents(url, deadline)) as snapshots:
            async for snapshot in snapshots:
                fields = resolve_fields(snapshot.markup, snapshot.raw_html, snapshot.base_url)
                documents.append(fields)
                if fields.complete:
                    break

    if documents:
        return ResolveResult(200, merge_documents(documents), "success")

    failure = strategy.failure or FetchFailure.NETWORK
    message = failure_message(failure, strategy.failure_status)
    logger.warning(
        f"No document for {url}: {failure.value}"
        + (f" ({strategy.failure_status})" if strategy.failure_status else "")
    )
    return ResolveResult(failure.http_status, domain_fallback(url, message), failure.value)
