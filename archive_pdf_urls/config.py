from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from urllib.parse import urlsplit

from pydantic_settings import BaseSettings, SettingsConfigDict

# Retries on top of the first attempt for every request the client makes
DEFAULT_MAX_REQUEST_RETRIES = 5

# Snapshots older than this are stale and the URL gets archived again
DEFAULT_ARCHIVE_THRESHOLD_DAYS = 30

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Fedora; Linux x86_64; rv:40.0) Gecko/20100101 Firefox/40.0"
)

WAYBACK_MACHINE_ARCHIVE_ENDPOINT = "https://web.archive.org/save/"
WAYBACK_MACHINE_CHECK_ENDPOINT = (
    "https://web.archive.org/cdx/search/cdx"
    "?output=json&fl=timestamp&filter=statuscode:200&limit=-1&url="
)

# Hosts that block or refuse Wayback captures
EXCLUDED_DOMAINS: tuple[str, ...] = (
    "archive.org",
    "jstor.org",
    "diw.de",
    "youtube.com",
    "plato.stanford.edu",
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="WAYBACK_", extra="ignore"
    )

    app_name: str = "Archive PDF URLs"

    archive_endpoint: str = WAYBACK_MACHINE_ARCHIVE_ENDPOINT
    check_endpoint: str = WAYBACK_MACHINE_CHECK_ENDPOINT
    max_request_retries: int = DEFAULT_MAX_REQUEST_RETRIES
    archive_threshold_days: int = DEFAULT_ARCHIVE_THRESHOLD_DAYS
    user_agent: str = DEFAULT_USER_AGENT
    excluded_domains: list[str] = list(EXCLUDED_DOMAINS)

    request_timeout: float = 30.0
    backoff_factor: float = 1.0     # seconds, doubled per retry
    backoff_max: float = 30.0

    # URLs archived at the same time by the CLI and the HTTP service
    concurrency: int = 4

    log_level: str = "INFO"


settings = Settings()


def _check_endpoint(name: str, value: str) -> None:
    parts = urlsplit(value)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ValueError(f"Invalid {name} URL: {value}")


@dataclass(frozen=True)
class ClientConfig:
    """
    Read-only configuration shared by every call of a Wayback client.

    The freshness cutoff is computed once, when the config is built, and is
    not refreshed afterwards: long-lived configs see their window narrow.
    """

    archive_endpoint: str = WAYBACK_MACHINE_ARCHIVE_ENDPOINT
    check_endpoint: str = WAYBACK_MACHINE_CHECK_ENDPOINT
    max_request_retries: int = DEFAULT_MAX_REQUEST_RETRIES
    archive_threshold_days: int = DEFAULT_ARCHIVE_THRESHOLD_DAYS
    user_agent: str = DEFAULT_USER_AGENT
    excluded_domains: tuple[str, ...] = EXCLUDED_DOMAINS
    request_timeout: float = 30.0
    backoff_factor: float = 1.0
    backoff_max: float = 30.0
    archive_threshold_timestamp: datetime = field(init=False)

    def __post_init__(self) -> None:
        _check_endpoint("archive_endpoint", self.archive_endpoint)
        _check_endpoint("check_endpoint", self.check_endpoint)
        if self.max_request_retries < 0:
            raise ValueError(f"max_request_retries must be >= 0, got {self.max_request_retries}")
        # Lists from settings become an ordered, immutable set
        object.__setattr__(self, "excluded_domains", tuple(dict.fromkeys(self.excluded_domains)))
        object.__setattr__(
            self,
            "archive_threshold_timestamp",
            datetime.now(UTC) - timedelta(days=self.archive_threshold_days),
        )

    @classmethod
    def from_settings(cls, s: Settings) -> ClientConfig:
        return cls(
            archive_endpoint=s.archive_endpoint,
            check_endpoint=s.check_endpoint,
            max_request_retries=s.max_request_retries,
            archive_threshold_days=s.archive_threshold_days,
            user_agent=s.user_agent,
            excluded_domains=tuple(s.excluded_domains),
            request_timeout=s.request_timeout,
            backoff_factor=s.backoff_factor,
            backoff_max=s.backoff_max,
        )
