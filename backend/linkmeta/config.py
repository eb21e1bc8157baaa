import logging
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # App
    APP_NAME: str = "LinkMeta"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Resolver
    RESOLVE_TIMEOUT_MS: int = 7000  # shared deadline for every attempt of one request
    MAX_RESPONSE_BYTES: int = 512_000  # ~500 KB
    HEAD_TAIL_BYTES: int = 32_768  # keep reading at most this much once </head> is seen
    RANGE_REQUEST_BYTES: int = 65_536
    CHARSET_SNIFF_BYTES: int = 32_768
    MAX_REDIRECTS: int = 5
    HTTP2_ENABLED: bool = True
    BLOCKED_STATUS_CODES: List[int] = [401, 403, 406, 429]
    FAVICON_SERVICE_URL: str = "https://www.google.com/s2/favicons?sz=128&domain_url={origin}"

    # Sentry
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2
    SENTRY_ENVIRONMENT: str = "development"

    # Logging
    LOG_FORMAT: str = "json"  # "json" for production, "text" for development
    LOG_LEVEL: str = "INFO"

    # Metrics
    METRICS_ENABLED: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator(
        "RESOLVE_TIMEOUT_MS",
        "MAX_RESPONSE_BYTES",
        "HEAD_TAIL_BYTES",
        "RANGE_REQUEST_BYTES",
        "CHARSET_SNIFF_BYTES",
    )
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("FAVICON_SERVICE_URL")
    @classmethod
    def _has_origin_placeholder(cls, v: str) -> str:
        if "{origin}" not in v:
            raise ValueError("must contain an {origin} placeholder")
        return v

    def model_post_init(self, __context) -> None:
        if self.HEAD_TAIL_BYTES > self.MAX_RESPONSE_BYTES:
            _logger.warning(
                "HEAD_TAIL_BYTES (%d) exceeds MAX_RESPONSE_BYTES (%d); "
                "the primary cap will apply.",
                self.HEAD_TAIL_BYTES,
                self.MAX_RESPONSE_BYTES,
            )


settings = Settings()
