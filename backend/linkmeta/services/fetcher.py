"""Multi-attempt fetch strategy.

Attempts run sequentially in a fixed order, each with its own header profile
and optionally a byte-range request, all sharing one Deadline. Documents are
yielded as they are obtained so the caller decides whether to keep going.
"""

import logging
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum

import httpx

from linkmeta.config import settings
from linkmeta.core.exceptions import DeadlineExceeded, FetchFailure
from linkmeta.core.metrics import link_fetch_attempts_total
from linkmeta.services.deadline import Deadline
from linkmeta.services.encoding import decode_body, resolve_encoding
from linkmeta.services.markup import PageMarkup, extract_markup, extract_title
from linkmeta.services.stream_reader import read_limited

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

# Lowercased <title> fragments of anti-bot interstitials served with a 200
_CHALLENGE_TITLES = (
    "just a moment",
    "attention required",
    "checking your browser",
    "verify you are human",
    "are you a robot",
    "access denied",
)
# Interstitials carry little visible text; longer pages are real content
_CHALLENGE_MAX_TEXT = 800
_BODY_RE = re.compile(r"<body\b[^>]*>(.*?)(?:</body>|\Z)", re.DOTALL | re.IGNORECASE)
_INVISIBLE_RE = re.compile(
    r"<(script|style|noscript)\b[^>]*>.*?</\1\s*>", re.DOTALL | re.IGNORECASE
)
_TAG_RE = re.compile(r"<[^>]+>")


class HeaderProfile(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class FetchAttempt:
    profile: HeaderProfile
    use_range: bool


DEFAULT_ATTEMPTS: tuple[FetchAttempt, ...] = (
    FetchAttempt(HeaderProfile.PRIMARY, use_range=True),
    FetchAttempt(HeaderProfile.PRIMARY, use_range=False),
    FetchAttempt(HeaderProfile.FALLBACK, use_range=True),
    FetchAttempt(HeaderProfile.FALLBACK, use_range=False),
)

PRIMARY_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)
FALLBACK_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.6 Safari/605.1.15"
)


def get_headers_for_profile(profile: HeaderProfile) -> dict[str, str]:
    """Request headers presenting the resolver as a desktop browser."""
    if profile is HeaderProfile.FALLBACK:
        # Deliberately plain: no client hints or Sec-Fetch-* to fingerprint
        return {
            "User-Agent": FALLBACK_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
    return {
        "User-Agent": PRIMARY_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Upgrade-Insecure-Requests": "1",
    }


def is_html_content_type(content_type: str | None) -> bool:
    return (content_type or "").strip().lower().startswith(HTML_CONTENT_TYPES)


def visible_text(html: str) -> str:
    """Body text with scripts, styles and tags removed, whitespace collapsed."""
    body_match = _BODY_RE.search(html)
    body = body_match.group(1) if body_match else ""
    body = _INVISIBLE_RE.sub(" ", body)
    return " ".join(_TAG_RE.sub(" ", body).split())


def looks_like_challenge(text: str) -> bool:
    """An interstitial title on a page with almost no visible text."""
    title = (extract_title(text[:8192]) or "").lower()
    if not any(pattern in title for pattern in _CHALLENGE_TITLES):
        return False
    return len(visible_text(text)) < _CHALLENGE_MAX_TEXT


def block_reason(status_code: int | None) -> str:
    """Human-readable reason for a blocked fetch."""
    if status_code == 429:
        return "Rate limited (429): the site is throttling requests. Try again later."
    if status_code == 401:
        return "Authentication required (401): the page is not publicly accessible."
    if status_code == 403:
        return "Access denied (403): the site explicitly blocked the request."
    if status_code == 406:
        return "Not acceptable (406): the site refused to serve this client."
    return "Blocked by bot protection: the site served a challenge page instead of content."


@dataclass
class DocumentSnapshot:
    raw_html: str
    base_url: str
    markup: PageMarkup
    status_code: int

    @property
    def partial(self) -> bool:
        """True when the server honoured a byte range, so more body exists."""
        return self.status_code == 206


@dataclass
class AttemptOutcome:
    attempt: FetchAttempt
    snapshot: DocumentSnapshot | None = None
    failure: FetchFailure | None = None
    status_code: int | None = None
    detail: str | None = None


def create_http_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """One client per resolution; nothing is shared between requests."""
    return httpx.AsyncClient(
        follow_redirects=True,
        max_redirects=settings.MAX_REDIRECTS,
        http2=settings.HTTP2_ENABLED,
        transport=transport,
    )


class FetchStrategy:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        attempts: tuple[FetchAttempt, ...] = DEFAULT_ATTEMPTS,
        blocked_statuses: frozenset[int] | None = None,
        range_bytes: int | None = None,
        max_bytes: int | None = None,
        head_tail_bytes: int | None = None,
        sniff_bytes: int | None = None,
    ):
        self.client = client
        self.attempts = attempts
        self.blocked_statuses = blocked_statuses or frozenset(settings.BLOCKED_STATUS_CODES)
        self.range_bytes = range_bytes or settings.RANGE_REQUEST_BYTES
        self.max_bytes = max_bytes or settings.MAX_RESPONSE_BYTES
        self.head_tail_bytes = head_tail_bytes or settings.HEAD_TAIL_BYTES
        self.sniff_bytes = sniff_bytes or settings.CHARSET_SNIFF_BYTES
        # Classification of the run when no document was produced
        self.failure: FetchFailure | None = None
        self.failure_status: int | None = None
        self.outcomes: list[AttemptOutcome] = []

    async def documents(self, url: str, deadline: Deadline) -> AsyncIterator[DocumentSnapshot]:
        """Yield a snapshot per successful attempt until attempts run out.

        Blocked statuses skip the rest of the primary profile and end the
        run on the fallback profile. Timeouts and non-HTML responses end the
        run immediately. A full-body attempt is skipped when the range
        attempt before it already received the whole document.
        """
        done_profiles: set[HeaderProfile] = set()
        produced = False
        last: AttemptOutcome | None = None

        for attempt in self.attempts:
            if attempt.profile in done_profiles:
                continue
            if deadline.expired:
                self._finish(AttemptOutcome(attempt, failure=FetchFailure.TIMEOUT), produced)
                return

            outcome = await self._run_attempt(url, attempt, deadline)
            self.outcomes.append(outcome)
            self._record(outcome)

            if outcome.snapshot is not None:
                produced = True
                if not outcome.snapshot.partial:
                    done_profiles.add(attempt.profile)
                yield outcome.snapshot
                continue

            failure = outcome.failure
            if failure in (FetchFailure.TIMEOUT, FetchFailure.UNSUPPORTED_CONTENT_TYPE):
                self._finish(outcome, produced)
                return
            if attempt.use_range:
                # Abandoned range attempt; the full-body attempt decides
                logger.debug(f"Range attempt abandoned for {url}: {failure.value} ({outcome.status_code})")
                if last is None:
                    last = outcome
                continue
            if failure is FetchFailure.BLOCKED:
                if attempt.profile is HeaderProfile.FALLBACK:
                    self._finish(outcome, produced)
                    return
                logger.info(f"Primary profile blocked for {url} ({outcome.status_code}), trying fallback")
                done_profiles.add(attempt.profile)
            last = outcome

        if last is not None:
            self._finish(last, produced)

    def _finish(self, outcome: AttemptOutcome, produced: bool) -> None:
        if produced:
            return
        self.failure = outcome.failure
        self.failure_status = outcome.status_code

    def _record(self, outcome: AttemptOutcome) -> None:
        result = "document" if outcome.snapshot is not None else outcome.failure.value
        link_fetch_attempts_total.labels(
            profile=outcome.attempt.profile.value,
            range=str(outcome.attempt.use_range).lower(),
            result=result,
        ).inc()

    async def _run_attempt(
        self, url: str, attempt: FetchAttempt, deadline: Deadline
    ) -> AttemptOutcome:
        headers = get_headers_for_profile(attempt.profile)
        if attempt.use_range:
            headers["Range"] = f"bytes=0-{self.range_bytes - 1}"
        logger.debug(f"Fetching {url} (profile={attempt.profile.value}, range={attempt.use_range})")

        try:
            request = self.client.build_request(
                "GET", url, headers=headers, timeout=httpx.Timeout(deadline.remaining())
            )
            response = await deadline.run(self.client.send(request, stream=True))
        except (DeadlineExceeded, httpx.TimeoutException):
            return AttemptOutcome(attempt, failure=FetchFailure.TIMEOUT)
        except httpx.HTTPError as e:
            logger.info(f"Fetch failed for {url}: {type(e).__name__}: {e}")
            return AttemptOutcome(attempt, failure=FetchFailure.NETWORK, detail=type(e).__name__)

        status = response.status_code
        try:
            if status in self.blocked_statuses:
                return AttemptOutcome(attempt, failure=FetchFailure.BLOCKED, status_code=status)
            if not response.is_success:
                return AttemptOutcome(attempt, failure=FetchFailure.UPSTREAM_ERROR, status_code=status)

            content_type = response.headers.get("content-type")
            if not is_html_content_type(content_type):
                logger.info(f"Non-HTML content at {url}: {content_type!r}")
                return AttemptOutcome(
                    attempt, failure=FetchFailure.UNSUPPORTED_CONTENT_TYPE, status_code=status
                )

            body = await read_limited(
                response,
                deadline,
                max_bytes=self.max_bytes,
                head_tail_bytes=self.head_tail_bytes,
            )
            base_url = str(response.url)
        except (DeadlineExceeded, httpx.TimeoutException):
            return AttemptOutcome(attempt, failure=FetchFailure.TIMEOUT, status_code=status)
        except httpx.HTTPError as e:
            logger.info(f"Body read failed for {url}: {type(e).__name__}: {e}")
            return AttemptOutcome(
                attempt, failure=FetchFailure.NETWORK, status_code=status, detail=type(e).__name__
            )
        finally:
            await response.aclose()

        if not body.strip():
            return AttemptOutcome(attempt, failure=FetchFailure.EMPTY_BODY, status_code=status)

        text = decode_body(body, resolve_encoding(content_type, body, self.sniff_bytes))
        if looks_like_challenge(text):
            return AttemptOutcome(attempt, failure=FetchFailure.BLOCKED, status_code=status)

        snapshot = DocumentSnapshot(
            raw_html=text,
            base_url=base_url,
            markup=extract_markup(text),
            status_code=status,
        )
        return AttemptOutcome(attempt, snapshot=snapshot, status_code=status)
