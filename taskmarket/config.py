"""Runtime configuration helpers."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

STORAGE_BACKENDS = ("memory", "postgres")


@dataclass(frozen=True)
class MarketConfig:
    """Settings for the marketplace host process."""

    storage_backend: str = "memory"
    db: Dict[str, Any] = field(default_factory=dict)
    jwt_secret_key: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_exp_minutes: int = 60 * 24 * 7
    session_cookie_name: str = "session"
    session_cookie_secure: bool = False
    message_max_length: int = 2000
    plan_renewal_days: int = 30
    log_level: str = "INFO"


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _parse_connect_timeout(raw_value: str) -> int:
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def load_config(env: Optional[Mapping[str, str]] = None) -> MarketConfig:
    """Load :class:`MarketConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    storage_backend = (env_mapping.get("STORAGE_BACKEND") or "memory").strip().lower()
    if storage_backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got {storage_backend!r}"
        )

    db = dict(
        host=env_mapping.get("DB_HOST", "127.0.0.1"),
        port=_to_int(env_mapping.get("DB_PORT"), default=5432),
        dbname=env_mapping.get("DB_NAME", "taskmarket"),
        user=env_mapping.get("DB_USER", "taskmarket"),
        password=env_mapping.get("DB_PASSWORD", "taskmarket"),
        connect_timeout=_parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT", "5")),
    )

    return MarketConfig(
        storage_backend=storage_backend,
        db=db,
        jwt_secret_key=env_mapping.get("JWT_SECRET_KEY", "dev-secret-change-me"),
        jwt_exp_minutes=max(1, _to_int(env_mapping.get("JWT_EXP_MINUTES"), default=60 * 24 * 7)),
        session_cookie_name=env_mapping.get("SESSION_COOKIE_NAME", "session"),
        session_cookie_secure=_to_bool(env_mapping.get("SESSION_COOKIE_SECURE"), default=False),
        message_max_length=max(1, _to_int(env_mapping.get("MESSAGE_MAX_LENGTH"), default=2000)),
        plan_renewal_days=max(1, _to_int(env_mapping.get("PLAN_RENEWAL_DAYS"), default=30)),
        log_level=(env_mapping.get("LOG_LEVEL") or "INFO").strip().upper(),
    )


__all__ = ["MarketConfig", "STORAGE_BACKENDS", "load_config"]
