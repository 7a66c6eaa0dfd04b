"""
Runtime settings, read once from environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    max_sessions: int = 1000

    @classmethod
    def from_env(cls) -> "Settings":
        max_sessions = int(os.getenv("TTT_MAX_SESSIONS", "1000"))
        if max_sessions < 1:
            raise ValueError(f"TTT_MAX_SESSIONS must be at least 1, got {max_sessions}")
        return cls(
            log_level=os.getenv("TTT_LOG_LEVEL", "INFO").upper(),
            cors_origins=_split_origins(os.getenv("TTT_CORS_ORIGINS", "*")) or ["*"],
            max_sessions=max_sessions,
        )


SETTINGS = Settings.from_env()
