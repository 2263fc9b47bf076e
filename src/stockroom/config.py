"""
Runtime settings.

Read once from the environment, after loading a local .env file if present.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name, default)
    # Unset variables injected by some hosting build steps arrive as "undefined"
    if value is None or value.strip() in ("", "undefined"):
        return default
    return value.strip()


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from the environment (and a local .env file)."""

    extraction_model: str = "gpt-4o-mini"
    supabase_url: str | None = None
    supabase_key: str | None = None
    supabase_table: str = "documents"
    cache_path: Path = Path("data/documents.json")
    request_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            extraction_model=_env("STOCKROOM_EXTRACTION_MODEL", "gpt-4o-mini"),
            supabase_url=_env("SUPABASE_URL"),
            supabase_key=_env("SUPABASE_ANON_KEY"),
            supabase_table=_env("STOCKROOM_SUPABASE_TABLE", "documents"),
            cache_path=Path(_env("STOCKROOM_CACHE_PATH", "data/documents.json")),
            request_timeout=float(_env("STOCKROOM_REQUEST_TIMEOUT", "10")),
            log_level=_env("STOCKROOM_LOG_LEVEL", "INFO").upper(),
        )

    @property
    def remote_enabled(self) -> bool:
        """Remote sync needs both the project URL and the anon key."""
        return bool(self.supabase_url and self.supabase_key)
