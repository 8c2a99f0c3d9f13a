"""
Runtime settings, read from `POLYSYNC_*` environment variables.

Every accessor reads the environment on each call, so tests (and a running
dev server) can change a value with no restart.
"""
from __future__ import annotations

import os
from pathlib import Path

from geo.codec import GeometryEncoding

REPO_ROOT = Path(__file__).resolve().parents[1]

_FALSEY = {"0", "false", "no", "off"}


def _env(name: str, default: str) -> str:
    return (os.getenv(f"POLYSYNC_{name}") or default).strip()


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(f"POLYSYNC_{name}")
    return Path(raw) if raw else default


# Remote polygon service


def remote_url() -> str:
    return _env("REMOTE_URL", "http://localhost:8000").rstrip("/")


def remote_timeout_s() -> float:
    try:
        return max(0.1, float(_env("REMOTE_TIMEOUT_S", "30")))
    except ValueError:
        return 30.0


def geometry_encoding() -> GeometryEncoding:
    return "wkt" if _env("GEOMETRY_ENCODING", "geojson").lower() == "wkt" else "geojson"


def read_only_path() -> str:
    return _env("READ_ONLY_PATH", "/public/ro.json")


def read_only_config_path() -> Path:
    return _env_path("READ_ONLY_CONFIG", REPO_ROOT / "data" / "read_only.yaml")


# Action log


def telemetry_enabled() -> bool:
    return _env("TELEMETRY", "1").lower() not in _FALSEY


def telemetry_path() -> Path:
    return _env_path(
        "TELEMETRY_PATH", REPO_ROOT / "data" / "telemetry" / "actions.duckdb"
    )


# HTTP app


def cors_origins() -> list[str]:
    raw = _env("CORS_ORIGINS", "http://localhost:3000")
    return [o.strip() for o in raw.split(",") if o.strip()]


def log_level_name() -> str:
    return _env("LOG_LEVEL", "INFO").upper()
