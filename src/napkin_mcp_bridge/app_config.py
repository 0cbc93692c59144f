from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from napkin_mcp_bridge.provider.napkin_client import DEFAULT_BASE_URL

DEFAULT_PORT = 8080
DEFAULT_HOST = "0.0.0.0"


@dataclass
class RuntimeEnv:
    napkin_api_key: str
    public_base_url: str | None
    host: str | None
    port: int | None


@dataclass
class AppConfig:
    provider_base_url: str
    request_timeout_seconds: float
    poll_interval_seconds: float
    poll_max_attempts: int
    artifact_ttl_seconds: float
    session_ttl_seconds: float
    sweep_interval_seconds: float
    sse_keepalive_seconds: float
    host: str
    port: int
    log_level: str
    log_consumers: list | None


def load_json_config(path: Path | None = None) -> dict:
    config_path = path or Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_int(value: object, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_float(value: object, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_app_config(config: dict) -> AppConfig:
    return AppConfig(
        provider_base_url=str(config.get("ProviderBaseUrl") or DEFAULT_BASE_URL).strip(),
        request_timeout_seconds=_to_float(config.get("RequestTimeoutSeconds"), 30.0),
        poll_interval_seconds=_to_float(config.get("PollIntervalSeconds"), 2.0),
        poll_max_attempts=_to_int(config.get("PollMaxAttempts"), 12),
        artifact_ttl_seconds=_to_float(config.get("ArtifactTtlSeconds"), 3600.0),
        session_ttl_seconds=_to_float(config.get("SessionTtlSeconds"), 3600.0),
        sweep_interval_seconds=_to_float(config.get("SweepIntervalSeconds"), 60.0),
        sse_keepalive_seconds=_to_float(config.get("SseKeepaliveSeconds"), 30.0),
        host=str(config.get("Host") or DEFAULT_HOST),
        port=_to_int(config.get("Port"), DEFAULT_PORT),
        log_level=str(config.get("LogLevel", "INFO")).upper(),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    port_raw = os.environ.get("PORT", "").strip()
    return RuntimeEnv(
        napkin_api_key=os.environ.get("NAPKIN_API_KEY", "").strip(),
        public_base_url=os.environ.get("PUBLIC_BASE_URL", "").strip() or None,
        host=os.environ.get("HOST", "").strip() or None,
        port=_to_int(port_raw, DEFAULT_PORT) if port_raw else None,
    )


def apply_env_overrides(app: AppConfig, env: RuntimeEnv) -> AppConfig:
    if env.host:
        app.host = env.host
    if env.port is not None:
        app.port = env.port
    return app
