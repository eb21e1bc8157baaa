from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ALLOWED_SCHEMES = ("http", "https")


class ResolveRequest(BaseModel):
    url: str

    @field_validator("url", mode="before")
    @classmethod
    def _absolute_http_url(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Missing url parameter")
        url = v.strip()
        if any(ch.isspace() or ord(ch) < 0x20 for ch in url):
            raise ValueError("Invalid URL")
        try:
            parts = urlsplit(url)
            parts.port  # raises on a malformed port
        except ValueError as e:
            raise ValueError("Invalid URL") from e
        if parts.scheme.lower() not in _ALLOWED_SCHEMES:
            raise ValueError("Only http and https URLs are supported")
        if not parts.hostname:
            raise ValueError("Invalid URL")
        return url


class ResolvedMetadata(BaseModel):
    """The payload returned for every resolve, including degraded ones."""

    model_config = ConfigDict(populate_by_name=True)

    image: str | None = None
    title: str | None = None
    author: str | None = None
    site_name: str | None = Field(default=None, alias="siteName")
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(by_alias=True)
        if payload["error"] is None:
            del payload["error"]
        return payload


class ErrorResponse(BaseModel):
    error: str
