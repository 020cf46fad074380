"""Runtime settings read from `GLOSSARY_*` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(env.get(name) or default)
    except (TypeError, ValueError):
        return default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env.get(name) or default)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    storage_path: Optional[Path] = None
    seed_demo: bool = True
    vote_delta: float = 0.05
    queue_size: int = 3
    flag_hold_ms: int = 1000
    min_definition_length: int = 10
    max_upload_bytes: int = 10 * 1024 * 1024
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        storage = (env.get("GLOSSARY_STORAGE_PATH") or "").strip()
        return cls(
            storage_path=Path(storage).expanduser() if storage else None,
            seed_demo=_env_bool(env, "GLOSSARY_SEED_DEMO", cls.seed_demo),
            vote_delta=_env_float(env, "GLOSSARY_VOTE_DELTA", cls.vote_delta),
            queue_size=max(1, _env_int(env, "GLOSSARY_QUEUE_SIZE", cls.queue_size)),
            flag_hold_ms=_env_int(env, "GLOSSARY_FLAG_HOLD_MS", cls.flag_hold_ms),
            min_definition_length=_env_int(
                env, "GLOSSARY_MIN_DEFINITION_LENGTH", cls.min_definition_length
            ),
            max_upload_bytes=_env_int(env, "GLOSSARY_MAX_UPLOAD_BYTES", cls.max_upload_bytes),
            log_level=(env.get("GLOSSARY_LOG_LEVEL") or cls.log_level).strip().upper(),
            host=(env.get("GLOSSARY_HOST") or cls.host).strip(),
            port=_env_int(env, "GLOSSARY_PORT", cls.port),
        )
