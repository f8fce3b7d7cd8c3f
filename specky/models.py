"""Canonical data model shared by every stage of the pipeline.

EndpointDescriptor is the spec-version-independent view of one operation.
ToolDescriptor holds a reference to the EndpointDescriptor it was built from;
both are immutable and live as long as the loaded spec.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

HTTP_METHODS: tuple[str, ...] = ("get", "post", "put", "patch", "delete", "head", "options")

AUTH_TYPES: tuple[str, ...] = ("none", "apikey", "bearer", "basic", "oauth2")

DEFAULT_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    required: bool = False
    description: str | None = None
    type: str = "string"
    format: str | None = None
    enum: tuple[Any, ...] | None = None
    default: Any = None
    has_default: bool = False


@dataclass(frozen=True)
class BodyDescriptor:
    required: bool = False
    description: str | None = None
    content_type: str = DEFAULT_CONTENT_TYPE
    schema: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResponseDescriptor:
    """Informational only; never used for dispatch."""

    status_code: str
    description: str | None = None
    content_type: str | None = None
    schema: dict[str, Any] | None = None


@dataclass(frozen=True)
class EndpointDescriptor:
    operation_id: str
    method: str
    path: str
    summary: str | None = None
    description: str | None = None
    path_params: tuple[ParameterDescriptor, ...] = ()
    query_params: tuple[ParameterDescriptor, ...] = ()
    header_params: tuple[ParameterDescriptor, ...] = ()
    request_body: BodyDescriptor | None = None
    responses: tuple[ResponseDescriptor, ...] = ()
    tags: tuple[str, ...] = ()
    security: tuple[str, ...] = ()


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: dict[str, Any]
    endpoint: EndpointDescriptor

    def to_dict(self) -> dict[str, Any]:
        """Wire shape of a tool listing entry."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class ParsedSpec:
    title: str
    version: str
    base_url: str
    endpoints: tuple[EndpointDescriptor, ...] = ()
    description: str | None = None


@dataclass(frozen=True)
class AuthConfig:
    type: str = "none"
    token: str | None = None
    header_name: str | None = None
    username: str | None = None
    password: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    token_url: str | None = None


@dataclass(frozen=True)
class ServerConfig:
    spec: str
    auth: AuthConfig = field(default_factory=AuthConfig)
    base_url: str | None = None
    verbose: bool = False
    server_name: str | None = None
    server_version: str | None = None
    mode: str = "search"
    tags: tuple[str, ...] = ()
    include: str | None = None
    exclude: str | None = None
