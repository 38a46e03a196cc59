"""Configuration management for the hot-rank RSS generator."""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

API_URL = "https://gateway.36kr.com/api/mis/nav/home/nav/rank/hot"

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 6.0; Nexus 5 Build/MRA58N) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/130.0.0.0 Mobile Safari/537.36"
)

# Directory holding the hotrank_rss package; relative output paths start here
PROJECT_ROOT = Path(__file__).resolve().parent.parent

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings for the hot-rank fetch."""

    max_attempts: int = 3
    base_delay_ms: int = 500
    max_delay_ms: int = 8000

    @property
    def attempts(self) -> int:
        """Number of attempts actually made; never less than one."""
        return max(1, self.max_attempts)


@dataclass(frozen=True)
class FetchConfig:
    """Configuration for the hot-rank API request."""

    api_url: str = API_URL
    timeout: float = 15.0
    user_agent: str = MOBILE_USER_AGENT
    partner_id: str = "wap"
    site_id: int = 1
    platform_id: int = 2
    retry: RetryPolicy = field(default_factory=RetryPolicy)


@dataclass(frozen=True)
class OutputConfig:
    """Where the generated feed is written."""

    path: str = "rss.xml"
    root: Path = PROJECT_ROOT

    def resolve(self) -> Path:
        return self.root / self.path


def env_int(name: str, fallback: int) -> int:
    """Read a signed 64-bit decimal integer from the environment.

    Absent, blank, malformed or out-of-range values fall back silently.
    """
    raw = os.getenv(name)
    if raw is None or not _INTEGER.fullmatch(raw):
        return fallback
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return fallback
    return value


class Config:
    """Main configuration manager.

    Environment variables are read once, at construction time.
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        defaults = RetryPolicy()
        self.retry_max = env_int("FETCH_RETRY_MAX", defaults.max_attempts)
        self.retry_base_delay_ms = env_int(
            "FETCH_RETRY_BASE_DELAY_MS", defaults.base_delay_ms
        )
        self.retry_max_delay_ms = env_int(
            "FETCH_RETRY_MAX_DELAY_MS", defaults.max_delay_ms
        )
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

    def get_retry_policy(self) -> RetryPolicy:
        """Get retry policy."""
        return RetryPolicy(
            max_attempts=self.retry_max,
            base_delay_ms=self.retry_base_delay_ms,
            max_delay_ms=self.retry_max_delay_ms,
        )

    def get_fetch_config(self) -> FetchConfig:
        """Get hot-rank API configuration."""
        return FetchConfig(retry=self.get_retry_policy())

    def get_output_config(self, out: str | None = None) -> OutputConfig:
        """Get output configuration, honouring a command-line override."""
        if out:
            return OutputConfig(path=out)
        return OutputConfig()
