"""Process settings read from the environment.

Callers load ``.env`` first (the CLI does so with ``python-dotenv``) and then
call :meth:`Settings.from_env`. Explicit arguments win over the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .logging_setup import LOG_LEVEL_ENV

DATABASE_URL_ENV = "DATABASE_URL"
RULES_FILE_ENV = "FEED_BRIDGE_RULES_FILE"


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str | None = None
    rules_file: Path | None = None
    log_level: str | None = None

    @classmethod
    def from_env(
        cls,
        *,
        database_url: str | None = None,
        rules_file: str | Path | None = None,
        log_level: str | None = None,
    ) -> Settings:
        rules = rules_file or os.getenv(RULES_FILE_ENV) or None
        return cls(
            database_url=database_url or os.getenv(DATABASE_URL_ENV) or None,
            rules_file=Path(rules) if rules else None,
            log_level=log_level or os.getenv(LOG_LEVEL_ENV) or None,
        )

    def require_database_url(self) -> str:
        if not self.database_url:
            raise RuntimeError(
                f"{DATABASE_URL_ENV} is not set; pass --database-url or set it in the environment"
            )
        return self.database_url


__all__ = ["Settings"]
