"""
Document store persistence (raw SQL).

One table per resource type:

    identifier UUID DEFAULT gen_random_uuid() PRIMARY KEY
    body       JSONB

plus a GIN index on `body` (see `db/migrations/`). The index is maintained by
the database on every write; nothing here touches it.

Bodies cross this boundary as JSON text. asyncpg does not encode Python values
for json/jsonb parameters, so the text is bound as-is and cast with `::jsonb`;
reads select `body::text` so the document is never decoded here.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Protocol

import asyncpg

from core.db import Database
from core.errors import StoreError, ValidationError

from .addressing import ResourceType

# Errors that mean "the backend could not do it", as opposed to bugs.
# `asyncpg.exceptions.DataError` (a PostgresError) is caught first on writes: it means the
# body itself was unacceptable.
_BACKEND_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


@dataclass(frozen=True)
class StoredDocument:
    identifier: uuid.UUID
    # None for a reserved identifier that has no body yet.
    body: str | None


class DocumentStore(Protocol):
    async def allocate(self, resource_type: ResourceType) -> uuid.UUID: ...

    async def create(self, resource_type: ResourceType, body: str) -> uuid.UUID: ...

    async def get(self, resource_type: ResourceType, identifier: uuid.UUID) -> StoredDocument | None: ...

    async def replace(self, resource_type: ResourceType, identifier: uuid.UUID, body: str) -> bool: ...

    async def upsert(self, resource_type: ResourceType, identifier: uuid.UUID, body: str) -> bool: ...

    async def delete(self, resource_type: ResourceType, identifier: uuid.UUID) -> bool: ...

    async def ping(self) -> bool: ...


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class PostgresDocumentStore:
    def __init__(self, db: Database, *, schema: str | None = None) -> None:
        self._db = db
        self._schema = schema

    def _table(self, resource_type: ResourceType) -> str:
        table = quote_ident(resource_type.table)
        if self._schema:
            return f"{quote_ident(self._schema)}.{table}"
        return table

    async def allocate(self, resource_type: ResourceType) -> uuid.UUID:
        """
        Reserve a new row with no body and return its generated identifier.
        """
        try:
            row = await self._db.fetch_one(
                f"""
                INSERT INTO {self._table(resource_type)} (body)
                VALUES (NULL)
                RETURNING identifier
                """
            )
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"allocate failed: {exc}") from exc
        if row is None:
            raise StoreError("allocate returned no identifier.")
        return row["identifier"]

    async def create(self, resource_type: ResourceType, body: str) -> uuid.UUID:
        try:
            row = await self._db.fetch_one(
                f"""
                INSERT INTO {self._table(resource_type)} (body)
                VALUES ($1::jsonb)
                RETURNING identifier
                """,
                body,
            )
        except asyncpg.exceptions.DataError as exc:
            raise ValidationError(f"Document rejected by the store: {exc}") from exc
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"create failed: {exc}") from exc
        if row is None:
            raise StoreError("create returned no identifier.")
        return row["identifier"]

    async def get(self, resource_type: ResourceType, identifier: uuid.UUID) -> StoredDocument | None:
        try:
            row = await self._db.fetch_one(
                f"""
                SELECT identifier, body::text AS body
                FROM {self._table(resource_type)}
                WHERE identifier = $1
                """,
                identifier,
            )
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"get failed: {exc}") from exc
        if row is None:
            return None
        return StoredDocument(identifier=row["identifier"], body=row["body"])

    async def replace(self, resource_type: ResourceType, identifier: uuid.UUID, body: str) -> bool:
        """
        Overwrite the body of an existing row. False when no row matched.
        """
        try:
            row = await self._db.fetch_one(
                f"""
                UPDATE {self._table(resource_type)}
                SET body = $2::jsonb
                WHERE identifier = $1
                RETURNING identifier
                """,
                identifier,
                body,
            )
        except asyncpg.exceptions.DataError as exc:
            raise ValidationError(f"Document rejected by the store: {exc}") from exc
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"replace failed: {exc}") from exc
        return row is not None

    async def upsert(self, resource_type: ResourceType, identifier: uuid.UUID, body: str) -> bool:
        """
        Insert or overwrite. Returns True when a new row was created.

        The `existing` CTE reads the statement's starting snapshot, so it does
        not see the row this same statement inserts. Two concurrent upserts of
        the same new identifier can both report True; the later write wins.
        """
        table = self._table(resource_type)
        try:
            row = await self._db.fetch_one(
                f"""
                WITH existing AS (
                    SELECT 1 FROM {table} WHERE identifier = $1
                )
                INSERT INTO {table} (identifier, body)
                VALUES ($1, $2::jsonb)
                ON CONFLICT (identifier) DO UPDATE
                SET body = EXCLUDED.body
                RETURNING NOT EXISTS (SELECT 1 FROM existing) AS created
                """,
                identifier,
                body,
            )
        except asyncpg.exceptions.DataError as exc:
            raise ValidationError(f"Document rejected by the store: {exc}") from exc
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"upsert failed: {exc}") from exc
        if row is None:
            raise StoreError("upsert returned no row.")
        return bool(row["created"])

    async def delete(self, resource_type: ResourceType, identifier: uuid.UUID) -> bool:
        try:
            row = await self._db.fetch_one(
                f"""
                DELETE FROM {self._table(resource_type)}
                WHERE identifier = $1
                RETURNING identifier
                """,
                identifier,
            )
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"delete failed: {exc}") from exc
        return row is not None

    async def ping(self) -> bool:
        try:
            return await self._db.ping()
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"ping failed: {exc}") from exc
