"""Metadata synthesized from the target URL alone."""

from urllib.parse import quote, urlsplit

from linkmeta.config import settings
from linkmeta.schemas.metadata import ResolvedMetadata


def bare_hostname(url: str) -> str:
    host = (urlsplit(url).hostname or "").rstrip(".")
    return host[4:] if host.startswith("www.") else host


def site_origin(url: str) -> str:
    """scheme://host[:port], lowercased and without any userinfo."""
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    origin = f"{parts.scheme.lower()}://{host}"
    if parts.port is not None:
        origin += f":{parts.port}"
    return origin


def favicon_service_url(url: str, template: str | None = None) -> str:
    origin = site_origin(url)
    return (template or settings.FAVICON_SERVICE_URL).format(origin=quote(origin, safe=""))


def domain_fallback(url: str, error: str | None = None) -> ResolvedMetadata:
    """Favicon-service image and the bare hostname as title and site name."""
    host = bare_hostname(url) or None
    return ResolvedMetadata(
        image=favicon_service_url(url),
        title=host,
        author=None,
        site_name=host,
        error=error,
    )
