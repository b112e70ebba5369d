from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pdfquiz.utils.logging_config import get_logger
from pdfquiz.utils.types import TierScheme

logger = get_logger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def load_env(env_path: Path | str = ".env", *, override: bool = False) -> None:
    """Lightweight .env loader."""
    path = Path(env_path)
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if override or key not in os.environ:
            os.environ[key] = value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; using %s", name, raw, default)
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass
class AgentSettings:
    interval_seconds: float = 600.0
    max_files: int = 50
    max_questions_per_file: int = 48
    pacing_seconds: float = 1.5
    dedup_fetch_limit: int = 5000
    tier_scheme: TierScheme = TierScheme.EXPERT
    source_dir: Optional[str] = None
    ocr_fallback: bool = False
    db_url: str = "data/questions.db"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    groq_api_key: str = ""
    groq_model: str = "llama-3.3-70b-versatile"
    embeddings_enabled: bool = False
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"

    @classmethod
    def from_env(cls) -> "AgentSettings":
        defaults = cls()
        return cls(
            interval_seconds=_env_float("AGENT_INTERVAL_SECONDS", defaults.interval_seconds),
            max_files=_env_int("AGENT_MAX_FILES", defaults.max_files),
            max_questions_per_file=_env_int("AGENT_MAX_QUESTIONS_PER_FILE", defaults.max_questions_per_file),
            pacing_seconds=_env_float("AGENT_PACING_SECONDS", defaults.pacing_seconds),
            dedup_fetch_limit=_env_int("AGENT_DEDUP_FETCH_LIMIT", defaults.dedup_fetch_limit),
            tier_scheme=TierScheme.from_value(os.getenv("AGENT_TIER_SCHEME")),
            source_dir=os.getenv("AGENT_SOURCE_DIR") or None,
            ocr_fallback=_env_bool("AGENT_OCR_FALLBACK"),
            db_url=os.getenv("DB_URL", defaults.db_url),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL", defaults.openai_model),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            groq_model=os.getenv("GROQ_MODEL", defaults.groq_model),
            embeddings_enabled=_env_bool("EMBEDDINGS_ENABLED"),
            embedding_model=os.getenv("EMBEDDING_MODEL", defaults.embedding_model),
        )


__all__ = ["AgentSettings", "load_env"]
