from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass

ANALYSIS_SAMPLE_ROWS = 200
SUGGESTION_SAMPLE_ROWS = 50
INSIGHT_SAMPLE_ROWS = 200
LLM_TIMEOUT_SECONDS = 120
MAX_UPLOAD_BYTES = 30 * 1024 * 1024


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from None


@dataclass(frozen=True)
class Settings:
    analysis_sample_rows: int = ANALYSIS_SAMPLE_ROWS
    suggestion_sample_rows: int = SUGGESTION_SAMPLE_ROWS
    insight_sample_rows: int = INSIGHT_SAMPLE_ROWS
    llm_timeout_seconds: int = LLM_TIMEOUT_SECONDS
    llm_max_attempts: int = 1
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            analysis_sample_rows=_env_int("ANALYSIS_SAMPLE_ROWS", ANALYSIS_SAMPLE_ROWS),
            suggestion_sample_rows=_env_int("SUGGESTION_SAMPLE_ROWS", SUGGESTION_SAMPLE_ROWS),
            insight_sample_rows=_env_int("INSIGHT_SAMPLE_ROWS", INSIGHT_SAMPLE_ROWS),
            llm_timeout_seconds=_env_int("LLM_TIMEOUT_SECONDS", LLM_TIMEOUT_SECONDS),
            llm_max_attempts=max(1, _env_int("LLM_MAX_ATTEMPTS", 1)),
            max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", MAX_UPLOAD_BYTES),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
