"""
Resource CRUD logic.

Each operation validates its inputs, makes exactly one store call, and maps
the outcome to a result or a `ServiceError`. Store calls are bounded by the
HTTP write timeout; asyncpg honours cancellation, so a timed-out call is
cancelled rather than left running.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, TypeVar

from core.context import AppContext
from core.errors import NotFoundError, StoreError, ValidationError

from .addressing import ResourceAddress, require_allocate, require_concrete

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PutResult:
    identifier: uuid.UUID
    created: bool


def _reject_constant(name: str) -> None:
    raise ValueError(f"{name} is not valid JSON.")


def _unstorable_string(value: Any) -> str | None:
    """
    Return the first string in a decoded document that JSONB cannot hold:
    one containing U+0000 or an unpaired surrogate.
    """
    if isinstance(value, str):
        if "\x00" in value or any("\ud800" <= ch <= "\udfff" for ch in value):
            return value
        return None
    if isinstance(value, dict):
        for key, item in value.items():
            found = _unstorable_string(key)
            if found is None:
                found = _unstorable_string(item)
            if found is not None:
                return found
        return None
    if isinstance(value, list):
        for item in value:
            found = _unstorable_string(item)
            if found is not None:
                return found
    return None


def parse_body(raw: bytes) -> str:
    """
    Validate a request body as JSON and return it as text, unchanged.

    The document is not re-serialized; the store receives what the caller sent.
    Strings with U+0000 or unpaired surrogates are valid JSON but not valid
    JSONB text, so they are rejected here rather than by the database.
    """
    if not raw or not raw.strip():
        raise ValidationError("Request body is required.")
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationError("Request body must be UTF-8 encoded JSON.") from exc
    try:
        document = json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ValidationError(f"Malformed JSON body: {exc}") from exc
    if _unstorable_string(document) is not None:
        raise ValidationError("JSON strings must not contain \\u0000 or unpaired surrogates.")
    return text


def _describe(address: ResourceAddress) -> str:
    identifier = address.identifier
    return (
        f"namespace={address.namespace} type={address.resource_type.name} "
        f"identifier={identifier if identifier is not None else '-'}"
    )


async def _store_call(context: AppContext, operation: str, address: ResourceAddress, call: Awaitable[T]) -> T:
    timeout_s = context.settings.http_write_timeout
    try:
        return await asyncio.wait_for(call, timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        logger.error("%s timed out after %ss (%s)", operation, timeout_s, _describe(address))
        raise StoreError(f"{operation} timed out talking to the store.") from exc
    except StoreError as exc:
        logger.error("%s failed (%s): %s", operation, _describe(address), exc)
        raise


async def allocate(context: AppContext, address: ResourceAddress) -> uuid.UUID:
    """
    Reserve a fresh identifier for a following PUT.

    The reservation is a persisted row with a NULL body, so the identifier
    stays valid for PUT and reads as JSON `null` until a body is attached.
    """
    require_allocate(address, "GET")
    identifier = await _store_call(
        context, "allocate", address, context.store.allocate(address.resource_type)
    )
    logger.info("allocate %s -> %s", _describe(address), identifier)
    return identifier


async def create(context: AppContext, address: ResourceAddress, raw_body: bytes) -> uuid.UUID:
    require_allocate(address, "POST")
    body = parse_body(raw_body)
    identifier = await _store_call(
        context, "create", address, context.store.create(address.resource_type, body)
    )
    logger.info("create %s -> %s", _describe(address), identifier)
    return identifier


async def read(context: AppContext, address: ResourceAddress) -> str:
    """
    Return the stored body as JSON text (`null` for a reserved identifier).
    """
    identifier = require_concrete(address, "GET")
    document = await _store_call(
        context, "read", address, context.store.get(address.resource_type, identifier)
    )
    if document is None:
        logger.info("read %s: not found", _describe(address))
        raise NotFoundError(f"{address.resource_type.name} {identifier} not found.")
    logger.info("read %s", _describe(address))
    return document.body if document.body is not None else "null"


async def replace(context: AppContext, address: ResourceAddress, raw_body: bytes) -> PutResult:
    identifier = require_concrete(address, "PUT")
    body = parse_body(raw_body)

    if context.settings.put_creates_missing:
        created = await _store_call(
            context, "upsert", address, context.store.upsert(address.resource_type, identifier, body)
        )
        logger.info("upsert %s created=%s", _describe(address), created)
        return PutResult(identifier=identifier, created=created)

    found = await _store_call(
        context, "replace", address, context.store.replace(address.resource_type, identifier, body)
    )
    if not found:
        logger.info("replace %s: not found", _describe(address))
        raise NotFoundError(f"{address.resource_type.name} {identifier} not found; allocate it first.")
    logger.info("replace %s", _describe(address))
    return PutResult(identifier=identifier, created=False)


async def delete(context: AppContext, address: ResourceAddress) -> None:
    identifier = require_concrete(address, "DELETE")
    found = await _store_call(
        context, "delete", address, context.store.delete(address.resource_type, identifier)
    )
    if not found:
        logger.info("delete %s: not found", _describe(address))
        raise NotFoundError(f"{address.resource_type.name} {identifier} not found.")
    logger.info("delete %s", _describe(address))
