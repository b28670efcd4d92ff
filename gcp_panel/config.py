"""Application configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

import yaml

DEFAULT_RUNTIME_CONFIG_PATH = "runtime-config.yaml"
RUNTIME_CONFIG_ENV = "GCP_PANEL_CONFIG"
PORT_ENV = "PORT"


@dataclass(frozen=True, slots=True)
class AppSettings:
    app_env: str
    data_dir: str
    session_cookie_name: str
    session_cookie_max_age_seconds: int
    session_cookie_secure: bool
    listen_host: str
    listen_port: int
    log_level: str = "INFO"
    trust_forwarded_for: bool = True
    default_zone: str = "us-central1-a"
    password_min_length: int = 5
    legacy_key_filename: str = "gcp-key.json"
    runtime_config_path: str = DEFAULT_RUNTIME_CONFIG_PATH

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @classmethod
    def from_yaml(
        cls,
        runtime_config_path: str = DEFAULT_RUNTIME_CONFIG_PATH,
        *,
        environ: dict[str, str] | None = None,
    ) -> AppSettings:
        env = environ if environ is not None else dict(os.environ)
        normalized_path = runtime_config_path.strip() or DEFAULT_RUNTIME_CONFIG_PATH
        config = _load_runtime_config(normalized_path)

        app_cfg = cast(dict[str, Any], config.get("app", {}))
        session_cfg = cast(dict[str, Any], config.get("session", {}))
        server_cfg = cast(dict[str, Any], config.get("server", {}))
        storage_cfg = cast(dict[str, Any], config.get("storage", {}))
        auth_cfg = cast(dict[str, Any], config.get("auth", {}))
        compute_cfg = cast(dict[str, Any], config.get("compute", {}))

        app_env = str(app_cfg.get("env", "development")).lower()

        return cls(
            app_env=app_env,
            data_dir=str(storage_cfg.get("data_dir", "data")),
            session_cookie_name=str(session_cfg.get("cookie_name", "gcp_auth")),
            session_cookie_max_age_seconds=int(
                session_cfg.get("cookie_max_age_seconds", 7 * 24 * 60 * 60)
            ),
            session_cookie_secure=bool(
                session_cfg.get("cookie_secure", app_env == "production")
            ),
            listen_host=str(server_cfg.get("host", "0.0.0.0")),
            listen_port=_resolve_listen_port(server_cfg, env),
            log_level=str(app_cfg.get("log_level", "INFO")).upper(),
            trust_forwarded_for=bool(server_cfg.get("trust_forwarded_for", True)),
            default_zone=str(compute_cfg.get("default_zone", "us-central1-a")),
            password_min_length=max(1, int(auth_cfg.get("password_min_length", 5))),
            legacy_key_filename=str(storage_cfg.get("legacy_key_filename", "gcp-key.json")),
            runtime_config_path=normalized_path,
        )

    @classmethod
    def from_env(cls) -> AppSettings:
        return cls.from_yaml(
            runtime_config_path=os.environ.get(RUNTIME_CONFIG_ENV, DEFAULT_RUNTIME_CONFIG_PATH)
        )


def _load_runtime_config(runtime_config_path: str) -> dict[str, Any]:
    path = Path(runtime_config_path)
    if not path.exists() or not path.is_file():
        return {}

    parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    if isinstance(parsed, dict):
        return parsed
    return {}


def _resolve_listen_port(server_cfg: dict[str, Any], env: dict[str, str]) -> int:
    raw_port: Any = env.get(PORT_ENV, "").strip() or server_cfg.get("port", 3000)
    try:
        port = int(raw_port)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid listen port: {raw_port!r}") from exc

    if not 0 < port < 65536:
        raise ValueError(f"listen port out of range: {port}")
    return port


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings.from_env()
