from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    db_path: str = os.getenv("RSR_DB_PATH", "rsr.db")
    environment: str = os.getenv("RSR_ENVIRONMENT", "dev")
    pipeline: str = os.getenv("RSR_PIPELINE", "")
    log_level: str = os.getenv("RSR_LOG_LEVEL", "INFO")

    # Poll intervals (seconds)
    devmode_status_interval_s: float = _env_float("RSR_DEVMODE_STATUS_INTERVAL_S", 2.0)
    camel_status_interval_s: float = _env_float("RSR_CAMEL_STATUS_INTERVAL_S", 2.0)

    # Outbound call timeouts (milliseconds)
    status_timeout_ms: int = _env_int("RSR_STATUS_TIMEOUT_MS", 500)
    upload_timeout_ms: int = _env_int("RSR_UPLOAD_TIMEOUT_MS", 1000)
    reload_timeout_ms: int = _env_int("RSR_RELOAD_TIMEOUT_MS", 1000)

    # Circuit breaker
    cb_volume_threshold: int = _env_int("RSR_CB_VOLUME_THRESHOLD", 10)
    cb_failure_ratio: float = _env_float("RSR_CB_FAILURE_RATIO", 0.5)
    cb_delay_ms: int = _env_int("RSR_CB_DELAY_MS", 1000)

    # Dispatch queues
    dispatch_workers: int = _env_int("RSR_DISPATCH_WORKERS", 4)
    dispatch_max_pending: int = _env_int("RSR_DISPATCH_MAX_PENDING", 1000)

    # Cluster / container addressing
    namespace: str = os.getenv("RSR_NAMESPACE", "karavan")
    cluster: str | None = os.getenv("RSR_CLUSTER")
    devmode_port: int = _env_int("RSR_DEVMODE_PORT", 8080)
    watch_pods: bool = _env_bool("RSR_WATCH_PODS", True)

    # Image registry prefix used by the images endpoint
    registry: str = os.getenv("RSR_REGISTRY", "registry:5000")
    group: str = os.getenv("RSR_GROUP", "karavan")


settings = Settings()
