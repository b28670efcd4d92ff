"""Run the panel under uvicorn: ``python -m gcp_panel.server``."""

from __future__ import annotations

import argparse
from collections.abc import Sequence

import uvicorn

from gcp_panel.config import AppSettings
from gcp_panel.logging_setup import UVICORN_LOG_CONFIG, setup_logging
from gcp_panel.main import create_app


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m gcp_panel.server")
    parser.add_argument("--config", help="path to runtime-config.yaml")
    args = parser.parse_args(list(argv) if argv is not None else None)

    settings = AppSettings.from_yaml(args.config) if args.config else AppSettings.from_env()
    setup_logging(settings.log_level)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.listen_host,
        port=settings.listen_port,
        log_config=UVICORN_LOG_CONFIG,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
