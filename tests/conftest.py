"""Shared fixtures: an in-memory document store and app clients built on it."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from core.context import AppContext
from core.errors import StoreError
from main import create_app
from resources.addressing import ResourceType, RouteTable
from resources.repository import StoredDocument

API = "/api/v1/namespace/pavedroad.io"


class MemoryDocumentStore:
    """DocumentStore double. Records every call as (operation, type, identifier)."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[uuid.UUID, str | None]] = {}
        self.calls: list[tuple[str, str, uuid.UUID | None]] = []

    def _table(self, resource_type: ResourceType) -> dict[uuid.UUID, str | None]:
        return self.tables.setdefault(resource_type.table, {})

    async def allocate(self, resource_type: ResourceType) -> uuid.UUID:
        self.calls.append(("allocate", resource_type.name, None))
        identifier = uuid.uuid4()
        self._table(resource_type)[identifier] = None
        return identifier

    async def create(self, resource_type: ResourceType, body: str) -> uuid.UUID:
        self.calls.append(("create", resource_type.name, None))
        identifier = uuid.uuid4()
        self._table(resource_type)[identifier] = body
        return identifier

    async def get(self, resource_type: ResourceType, identifier: uuid.UUID) -> StoredDocument | None:
        self.calls.append(("get", resource_type.name, identifier))
        table = self._table(resource_type)
        if identifier not in table:
            return None
        return StoredDocument(identifier=identifier, body=table[identifier])

    async def replace(self, resource_type: ResourceType, identifier: uuid.UUID, body: str) -> bool:
        self.calls.append(("replace", resource_type.name, identifier))
        table = self._table(resource_type)
        if identifier not in table:
            return False
        table[identifier] = body
        return True

    async def upsert(self, resource_type: ResourceType, identifier: uuid.UUID, body: str) -> bool:
        self.calls.append(("upsert", resource_type.name, identifier))
        table = self._table(resource_type)
        created = identifier not in table
        table[identifier] = body
        return created

    async def delete(self, resource_type: ResourceType, identifier: uuid.UUID) -> bool:
        self.calls.append(("delete", resource_type.name, identifier))
        table = self._table(resource_type)
        if identifier not in table:
            return False
        del table[identifier]
        return True

    async def ping(self) -> bool:
        return True


class BrokenDocumentStore(MemoryDocumentStore):
    async def get(self, resource_type, identifier):
        raise StoreError("get failed: connection refused")

    async def ping(self) -> bool:
        raise StoreError("ping failed: connection refused")


class SlowDocumentStore(MemoryDocumentStore):
    async def get(self, resource_type, identifier):
        await asyncio.sleep(5)
        return None


@pytest.fixture
def settings() -> Settings:
    return Settings(log_path="", resource_types=("films", "books"))


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def context(settings, store) -> AppContext:
    return AppContext(settings=settings, store=store, routes=RouteTable.from_settings(settings))


@pytest.fixture
def client(settings, store):
    with TestClient(create_app(settings, store=store)) as c:
        yield c


@pytest.fixture
def upsert_client(settings, store):
    upsert_settings = replace(settings, put_creates_missing=True)
    with TestClient(create_app(upsert_settings, store=store)) as c:
        yield c
