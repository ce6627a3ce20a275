"""
Resource addressing.

URL shape (k8s style):

    {api-version}/namespace/{namespace}/{type}LIST/      -> allocate an identifier
    {api-version}/namespace/{namespace}/{type}/{uuid}    -> a concrete resource

The `LIST` suffix is resolved here, once, into an `AllocateKey`; everything
downstream works with `ConcreteKey` / `AllocateKey` and never looks at the raw
path again.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Union

from core.config import Settings
from core.errors import RoutingError

_TYPE_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class ResourceType:
    name: str
    table: str


@dataclass(frozen=True)
class ConcreteKey:
    identifier: uuid.UUID


@dataclass(frozen=True)
class AllocateKey:
    pass


ResourceKey = Union[ConcreteKey, AllocateKey]


@dataclass(frozen=True)
class ResourceAddress:
    namespace: str
    resource_type: ResourceType
    key: ResourceKey

    @property
    def identifier(self) -> uuid.UUID | None:
        if isinstance(self.key, ConcreteKey):
            return self.key.identifier
        return None


def parse_identifier(raw: str) -> uuid.UUID:
    """
    Accept only the canonical lowercase dashed form, so each resource has one path.
    """
    try:
        identifier = uuid.UUID(raw)
    except ValueError as exc:
        raise RoutingError(f"Invalid resource identifier: {raw!r}.") from exc
    if str(identifier) != raw:
        raise RoutingError(f"Identifier must be a lowercase dashed UUID: {raw!r}.")
    return identifier


@dataclass(frozen=True)
class RouteTable:
    api_version: str
    namespace_segment: str
    default_namespace: str
    list_sentinel: str
    resource_types: dict[str, ResourceType]

    @classmethod
    def from_settings(cls, settings: Settings) -> RouteTable:
        resource_types: dict[str, ResourceType] = {}
        for name in settings.resource_types:
            if not _TYPE_NAME_RE.match(name):
                raise ValueError(f"Invalid resource type name: {name!r}.")
            # One physical table per type, named after it.
            resource_types[name.lower()] = ResourceType(name=name.lower(), table=name.lower())
        return cls(
            api_version="/" + settings.api_version.strip("/"),
            namespace_segment=settings.namespace_segment,
            default_namespace=settings.default_namespace,
            list_sentinel=settings.list_sentinel,
            resource_types=resource_types,
        )

    def resolve_type(self, name: str) -> ResourceType:
        resource_type = self.resource_types.get(name.lower())
        if resource_type is None:
            raise RoutingError(f"Unknown resource type: {name!r}.")
        return resource_type

    def parse(self, path: str) -> ResourceAddress:
        """
        Turn a request path into a `ResourceAddress` or raise `RoutingError`.
        """
        segments = path.strip("/").split("/") if path.strip("/") else []
        version = self.api_version.strip("/").split("/")
        if segments[: len(version)] != version:
            raise RoutingError(f"Path must start with {self.api_version}.")
        rest = segments[len(version):]

        if not rest or rest[0] != self.namespace_segment:
            raise RoutingError(f"Missing '{self.namespace_segment}' segment.")
        rest = rest[1:]

        if len(rest) == 2:
            namespace, tail = rest
            if not tail.endswith(self.list_sentinel) or tail == self.list_sentinel:
                raise RoutingError(
                    f"Expected '{{type}}{self.list_sentinel}' or '{{type}}/{{identifier}}'."
                )
            type_name = tail[: -len(self.list_sentinel)]
            key: ResourceKey = AllocateKey()
        elif len(rest) == 3:
            namespace, type_name, raw_key = rest
            key = ConcreteKey(parse_identifier(raw_key))
        else:
            raise RoutingError("Wrong number of path segments.")

        return ResourceAddress(
            namespace=namespace or self.default_namespace,
            resource_type=self.resolve_type(type_name),
            key=key,
        )

    def build(self, address: ResourceAddress) -> str:
        """
        Inverse of `parse`: the canonical path for an address.
        """
        prefix = f"{self.api_version}/{self.namespace_segment}/{address.namespace}"
        if isinstance(address.key, AllocateKey):
            return f"{prefix}/{address.resource_type.name}{self.list_sentinel}/"
        return f"{prefix}/{address.resource_type.name}/{address.key.identifier}"


def require_concrete(address: ResourceAddress, method: str) -> uuid.UUID:
    if not isinstance(address.key, ConcreteKey):
        raise RoutingError(f"{method} requires a concrete identifier, not the list key.")
    return address.key.identifier


def require_allocate(address: ResourceAddress, method: str) -> None:
    if not isinstance(address.key, AllocateKey):
        raise RoutingError(f"{method} is only valid on the list key.")
