"""Shared fixtures: sample documents and a recording mock transport.

No test touches the network. Outbound calls go through httpx.MockTransport,
which records every request and answers with a canned response.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Callable

import httpx
import pytest

from specky.dispatch import ServerContext, create_context
from specky.models import AuthConfig, ServerConfig
from specky.schema_parser import parse_spec


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------

PETSTORE_V2: dict[str, Any] = {
    "swagger": "2.0",
    "info": {"title": "Swagger Petstore", "version": "1.0.7"},
    "host": "petstore.swagger.io",
    "basePath": "/v2",
    "schemes": ["https", "http"],
    "paths": {
        "/pet": {
            "post": {
                "tags": ["pet"],
                "summary": "Add a new pet to the store",
                "operationId": "addPet",
                "parameters": [
                    {
                        "in": "body",
                        "name": "body",
                        "description": "Pet object that needs to be added to the store",
                        "required": True,
                        "schema": {
                            "type": "object",
                            "required": ["name"],
                            "properties": {
                                "id": {"type": "integer", "format": "int64"},
                                "name": {"type": "string", "example": "doggie"},
                                "status": {
                                    "type": "string",
                                    "enum": ["available", "pending", "sold"],
                                },
                            },
                        },
                    },
                ],
                "responses": {"405": {"description": "Invalid input"}},
                "security": [{"petstore_auth": ["write:pets", "read:pets"]}],
            },
        },
        "/pet/findByStatus": {
            "get": {
                "tags": ["pet"],
                "summary": "Finds Pets by status",
                "description": "Multiple status values can be provided with comma separated strings",
                "operationId": "findPetsByStatus",
                "parameters": [
                    {
                        "name": "status",
                        "in": "query",
                        "description": "Status values that need to be considered for filter",
                        "required": True,
                        "type": "array",
                        "items": {"type": "string"},
                    },
                ],
                "responses": {"200": {"description": "successful operation"}},
            },
        },
        "/pet/{petId}": {
            "get": {
                "tags": ["pet"],
                "summary": "Find pet by ID",
                "description": "Returns a single pet",
                "operationId": "getPetById",
                "parameters": [
                    {
                        "name": "petId",
                        "in": "path",
                        "description": "ID of pet to return",
                        "required": True,
                        "type": "integer",
                        "format": "int64",
                    },
                ],
                "responses": {
                    "200": {
                        "description": "successful operation",
                        "schema": {"type": "object"},
                    },
                    "404": {"description": "Pet not found"},
                },
                "security": [{"api_key": []}],
            },
            "delete": {
                "tags": ["pet"],
                "summary": "Deletes a pet",
                "operationId": "deletePet",
                "parameters": [
                    {"name": "api_key", "in": "header", "required": False, "type": "string"},
                    {
                        "name": "petId",
                        "in": "path",
                        "description": "Pet id to delete",
                        "required": True,
                        "type": "integer",
                    },
                ],
                "responses": {"404": {"description": "Pet not found"}},
            },
        },
        "/pet/{petId}/uploadImage": {
            "post": {
                "tags": ["pet"],
                "summary": "uploads an image",
                "operationId": "uploadFile",
                "consumes": ["multipart/form-data"],
                "parameters": [
                    {"name": "petId", "in": "path", "required": True, "type": "integer"},
                    {"name": "additionalMetadata", "in": "formData", "required": False, "type": "string"},
                ],
                "responses": {"200": {"description": "successful operation"}},
            },
        },
        "/store/inventory": {
            "get": {
                "tags": ["store"],
                "summary": "Returns pet inventories by status",
                "operationId": "getInventory",
                "responses": {"200": {"description": "successful operation"}},
                "security": [{"api_key": []}],
            },
        },
        "/user/login": {
            "get": {
                "tags": ["user"],
                "summary": "Logs user into the system",
                "operationId": "loginUser",
                "parameters": [
                    {"name": "username", "in": "query", "required": True, "type": "string"},
                    {"name": "password", "in": "query", "required": True, "type": "string"},
                ],
                "responses": {"200": {"description": "successful operation"}},
            },
        },
        "/health": {
            "get": {
                "summary": "Health check",
                "responses": {"200": {"description": "OK"}},
            },
        },
    },
}

OPENAPI_V3: dict[str, Any] = {
    "openapi": "3.0.3",
    "info": {"title": "Inventory API", "version": "2.1.0", "description": "Items and stock"},
    "servers": [
        {
            "url": "https://api.example.com/{version}",
            "variables": {"version": {"default": "v1"}},
        },
        {"url": "https://staging.example.com/v1"},
    ],
    "paths": {
        "/items": {
            "get": {
                "tags": ["items"],
                "summary": "List items",
                "operationId": "listItems",
                "parameters": [
                    {
                        "name": "limit",
                        "in": "query",
                        "schema": {"type": "integer", "default": 20},
                    },
                    {"name": "session", "in": "cookie", "schema": {"type": "string"}},
                ],
                "responses": {
                    "200": {
                        "description": "A list of items",
                        "content": {"application/json": {"schema": {"type": "array"}}},
                    },
                },
            },
            "post": {
                "tags": ["items"],
                "requestBody": {
                    "required": True,
                    "description": "Items to import",
                    "content": {
                        "application/json": {
                            "schema": {"type": "array", "items": {"type": "object"}},
                        },
                    },
                },
                "responses": {"201": {"description": "Created"}},
            },
        },
        "/items/{itemId}": {
            "parameters": [
                {
                    "name": "itemId",
                    "in": "path",
                    "required": True,
                    "schema": {"type": "string"},
                },
            ],
            "get": {
                "tags": ["items"],
                "summary": "Get item",
                "operationId": "getItem",
                "parameters": [
                    {"name": "X-Request-Id", "in": "header", "schema": {"type": "string"}},
                ],
                "responses": {"200": {"description": "OK"}},
            },
            "patch": {
                "tags": ["items"],
                "summary": "Update item",
                "operationId": "updateItem",
                "requestBody": {
                    "content": {
                        "application/merge-patch+json": {
                            "schema": {
                                "type": "object",
                                "required": ["name"],
                                "properties": {
                                    "name": {"type": "string"},
                                    "quantity": {"type": "integer"},
                                },
                            },
                        },
                        "application/json": {"schema": {"type": "object"}},
                    },
                },
                "responses": {"200": {"description": "OK"}},
            },
        },
        "/broken": "not-a-path-item",
    },
}


@pytest.fixture
def petstore_v2() -> dict[str, Any]:
    return copy.deepcopy(PETSTORE_V2)


@pytest.fixture
def openapi_v3() -> dict[str, Any]:
    return copy.deepcopy(OPENAPI_V3)


@pytest.fixture
def petstore_spec(petstore_v2):
    return parse_spec(petstore_v2)


# ---------------------------------------------------------------------------
# Mock transport
# ---------------------------------------------------------------------------

class RecordingTransport:
    """Collects outbound requests and answers them with a canned response.

    Set `response` to an httpx.Response, or to a callable taking the
    request, before the call under test.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.response: httpx.Response | Callable[[httpx.Request], httpx.Response] = (
            httpx.Response(200, json={"ok": True})
        )
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if callable(self.response):
            return self.response(request)
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


@pytest.fixture
def recorder() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
async def make_context(recorder):
    """Return an async factory building a ServerContext over the recorder."""
    contexts: list[ServerContext] = []

    async def _make(
        document: dict[str, Any],
        auth: AuthConfig | None = None,
        **config: Any,
    ) -> ServerContext:
        server_config = ServerConfig(spec="test", auth=auth or AuthConfig(), **config)
        context = await create_context(parse_spec(document), server_config, transport=recorder.transport)
        contexts.append(context)
        return context

    yield _make
    for context in contexts:
        await context.aclose()
