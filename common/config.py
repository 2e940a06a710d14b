from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from metrics_api.core.domain.windows import DEFAULT_WINDOWS, parse_windows


def _default_env_file() -> str:
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes", "on")


@dataclass(frozen=True)
class Settings:
    redis_url: str = "redis://localhost:6379/0"
    # "redis" | "memory"
    store_backend: str = "redis"
    namespace: str = ""

    retention_seconds: int = 7 * 24 * 60 * 60
    aggregation_windows: Tuple[str, ...] = DEFAULT_WINDOWS
    max_points: int = 10_000

    aggregation_interval_seconds: float = 60.0
    cleanup_interval_seconds: float = 3600.0

    mirror_queue_size: int = 10_000
    notify_queue_size: int = 1_000

    register_defaults: bool = True
    alert_webhook_url: Optional[str] = None
    log_level: str = "INFO"

    @property
    def retention_ms(self) -> int:
        return self.retention_seconds * 1000


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("METRICS_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    windows_raw = os.getenv("METRICS_AGGREGATION_WINDOWS", ",".join(DEFAULT_WINDOWS))
    windows = tuple(w.strip() for w in windows_raw.split(",") if w.strip())
    # Fail fast on a malformed window list.
    parse_windows(windows)

    return Settings(
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        store_backend=os.getenv("METRICS_STORE", "redis").strip().lower(),
        namespace=os.getenv("METRICS_NAMESPACE", ""),
        retention_seconds=int(os.getenv("METRICS_RETENTION_SECONDS", str(7 * 24 * 60 * 60))),
        aggregation_windows=windows,
        max_points=int(os.getenv("METRICS_MAX_POINTS", "10000")),
        aggregation_interval_seconds=float(os.getenv("METRICS_AGGREGATION_INTERVAL", "60")),
        cleanup_interval_seconds=float(os.getenv("METRICS_CLEANUP_INTERVAL", "3600")),
        mirror_queue_size=int(os.getenv("METRICS_MIRROR_QUEUE_SIZE", "10000")),
        notify_queue_size=int(os.getenv("METRICS_NOTIFY_QUEUE_SIZE", "1000")),
        register_defaults=_env_bool("METRICS_REGISTER_DEFAULTS", "true"),
        alert_webhook_url=os.getenv("ALERT_WEBHOOK_URL") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
