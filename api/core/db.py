"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns one connection pool. `create_app` builds it, the FastAPI
lifespan connects and closes it (see `api/main.py`), and it reaches handlers
through the application context only.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg


def split_sslmode(url: str) -> tuple[str, str | None]:
    """
    Remove a libpq-style `sslmode` query parameter from `url`.

    asyncpg takes the SSL mode through its `ssl` argument instead.
    Returns (url_without_sslmode, sslmode_or_None).
    """
    parts = urlsplit(url)
    if not parts.query:
        return url, None

    sslmode: str | None = None
    params = []
    for k, v in parse_qsl(parts.query, keep_blank_values=True):
        if k == "sslmode":
            sslmode = v
            continue
        params.append((k, v))
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment)), sslmode


class Database:
    def __init__(
        self,
        dsn: str,
        *,
        ssl: str | None = None,
        min_size: int = 1,
        max_size: int = 5,
        command_timeout: float = 30,
    ) -> None:
        self._dsn = dsn
        self._ssl = ssl
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        if self._pool is not None:
            return None
        self._pool = await asyncpg.create_pool(
            dsn=self._dsn,
            ssl=self._ssl,
            min_size=self._min_size,
            max_size=self._max_size,
            command_timeout=self._command_timeout,
        )

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None

    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call connect() on startup.")
        return self._pool

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self.pool().fetchrow(sql, *args)
        return dict(row) if row is not None else None

    async def fetch_val(self, sql: str, *args: Any) -> Any:
        return await self.pool().fetchval(sql, *args)

    async def ping(self) -> bool:
        return await self.fetch_val("SELECT 1") == 1
