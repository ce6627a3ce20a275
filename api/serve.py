"""
Process entry point: build the app and serve it with uvicorn.

Usage:
    python serve.py
"""

from __future__ import annotations

from uvicorn import Config, Server

from core.config import load_settings
from main import create_app


def main() -> None:
    settings = load_settings()
    app = create_app(settings)
    config = Config(
        app=app,
        host=settings.http_host,
        port=settings.http_port,
        timeout_keep_alive=settings.http_read_timeout,
        timeout_graceful_shutdown=settings.http_shutdown_timeout,
        log_config=None,
    )
    Server(config).run()


if __name__ == "__main__":
    main()
