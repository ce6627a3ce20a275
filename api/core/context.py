"""
Application context: the objects every request handler shares.

Built once by `create_app`, stored on `app.state.context`, and handed to
handlers through the `get_context` dependency. Nothing in it changes after
startup; request-scoped data travels through arguments and return values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import Request

from .config import Settings

if TYPE_CHECKING:
    from resources.addressing import RouteTable
    from resources.repository import DocumentStore


@dataclass(frozen=True)
class AppContext:
    settings: Settings
    store: DocumentStore
    routes: RouteTable


def get_context(request: Request) -> AppContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise RuntimeError("Application context is not initialized. Build the app with create_app().")
    return context
