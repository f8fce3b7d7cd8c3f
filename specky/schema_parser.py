"""Normalize OpenAPI 3.x and Swagger 2.0 documents into EndpointDescriptors.

The document version is detected once, up front, and selects a SpecFormat
variant. Each variant knows only the handful of places where the two
versions differ:
- base URL (servers[] vs scheme/host/basePath)
- where a parameter keeps its type (nested schema vs on the parameter)
- request body (requestBody.content vs the in: body parameter)
- response schemas (content map vs schema)
Everything else is shared, so both versions produce identical shapes.
"""

from __future__ import annotations

from typing import Any

import structlog

from .errors import SpecFormatError, SpeckyError
from .loader import get_paths, load_spec
from .models import (
    DEFAULT_CONTENT_TYPE,
    HTTP_METHODS,
    BodyDescriptor,
    EndpointDescriptor,
    ParameterDescriptor,
    ParsedSpec,
    ResponseDescriptor,
)
from .naming import generate_operation_id

log = structlog.get_logger(__name__)

# Locations kept as parameters; everything else (cookie, formData) is dropped
_PARAM_LOCATIONS = ("path", "query", "header")


def _json_type(schema: dict[str, Any]) -> str:
    """Map an OpenAPI type to the JSON Schema subset used by tools."""
    schema_type = schema.get("type")
    if schema_type == "integer":
        return "number"
    if isinstance(schema_type, str) and schema_type:
        return schema_type
    return "string"


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


class SpecFormat:
    """Version-specific accessors; see OpenAPIv3Format and Swagger2Format."""

    name = ""

    def base_url(self, document: dict[str, Any]) -> str:
        raise NotImplementedError

    def parameter_schema(self, param: dict[str, Any]) -> dict[str, Any]:
        schema = param.get("schema")
        if isinstance(schema, dict) and schema:
            return schema
        return param

    def request_body(
        self,
        operation: dict[str, Any],
        params: list[dict[str, Any]],
    ) -> BodyDescriptor | None:
        raise NotImplementedError

    def response(self, status_code: str, response: dict[str, Any]) -> ResponseDescriptor:
        raise NotImplementedError


class OpenAPIv3Format(SpecFormat):
    name = "openapi3"

    def base_url(self, document: dict[str, Any]) -> str:
        servers = _as_list(document.get("servers"))
        server = servers[0] if servers and isinstance(servers[0], dict) else {}
        url = server.get("url") or ""
        if not url:
            return "http://localhost"
        # Substitute server variables with their defaults
        variables = server.get("variables") or {}
        for var_name, var in variables.items():
            if isinstance(var, dict) and "default" in var:
                url = url.replace(f"{{{var_name}}}", str(var["default"]))
        return url

    def request_body(
        self,
        operation: dict[str, Any],
        params: list[dict[str, Any]],
    ) -> BodyDescriptor | None:
        request_body = operation.get("requestBody")
        if not isinstance(request_body, dict):
            return None

        content = request_body.get("content")
        if not isinstance(content, dict):
            content = {}
        content_type = next(iter(content), DEFAULT_CONTENT_TYPE)
        media_type = content.get(content_type) or {}
        schema = media_type.get("schema") if isinstance(media_type, dict) else None

        return BodyDescriptor(
            required=bool(request_body.get("required", False)),
            description=request_body.get("description"),
            content_type=content_type,
            schema=schema if isinstance(schema, dict) else {},
        )

    def response(self, status_code: str, response: dict[str, Any]) -> ResponseDescriptor:
        content = response.get("content")
        if not isinstance(content, dict):
            content = {}
        content_type = next(iter(content), None)
        schema = None
        if content_type is not None and isinstance(content[content_type], dict):
            schema = content[content_type].get("schema")
        return ResponseDescriptor(
            status_code=status_code,
            description=response.get("description"),
            content_type=content_type,
            schema=schema,
        )


class Swagger2Format(SpecFormat):
    name = "swagger2"

    def base_url(self, document: dict[str, Any]) -> str:
        schemes = _as_list(document.get("schemes"))
        scheme = schemes[0] if schemes else "https"
        host = document.get("host") or "localhost"
        base_path = document.get("basePath") or ""
        return f"{scheme}://{host}{base_path}"

    def request_body(
        self,
        operation: dict[str, Any],
        params: list[dict[str, Any]],
    ) -> BodyDescriptor | None:
        body_param = next((p for p in params if p.get("in") == "body"), None)
        if body_param is None:
            return None

        schema = body_param.get("schema")
        return BodyDescriptor(
            required=bool(body_param.get("required", False)),
            description=body_param.get("description"),
            content_type=DEFAULT_CONTENT_TYPE,
            schema=schema if isinstance(schema, dict) else {},
        )

    def response(self, status_code: str, response: dict[str, Any]) -> ResponseDescriptor:
        schema = response.get("schema")
        return ResponseDescriptor(
            status_code=status_code,
            description=response.get("description"),
            content_type=None,
            schema=schema if isinstance(schema, dict) else None,
        )


def detect_format(document: dict[str, Any]) -> SpecFormat:
    """Pick the format variant from the document's version field."""
    openapi = document.get("openapi")
    if isinstance(openapi, str) and openapi.startswith("3."):
        return OpenAPIv3Format()
    if document.get("swagger") == "2.0":
        return Swagger2Format()
    raise SpecFormatError(
        "Unsupported document: expected an 'openapi: 3.x' or 'swagger: \"2.0\"' field"
    )


def parse_parameter(fmt: SpecFormat, param: dict[str, Any]) -> ParameterDescriptor:
    """Build a ParameterDescriptor from a v2 or v3 parameter object."""
    schema = fmt.parameter_schema(param)
    enum = schema.get("enum")
    return ParameterDescriptor(
        name=param.get("name", ""),
        required=bool(param.get("required", False)),
        description=param.get("description"),
        type=_json_type(schema),
        format=schema.get("format"),
        enum=tuple(enum) if isinstance(enum, list) else None,
        default=schema.get("default"),
        has_default="default" in schema,
    )


def parse_responses(fmt: SpecFormat, responses: Any) -> tuple[ResponseDescriptor, ...]:
    if not isinstance(responses, dict):
        return ()
    return tuple(
        fmt.response(str(code), response)
        for code, response in responses.items()
        if isinstance(response, dict)
    )


def _security_names(operation: dict[str, Any]) -> tuple[str, ...]:
    names: list[str] = []
    for requirement in _as_list(operation.get("security")):
        if not isinstance(requirement, dict):
            continue
        for scheme in requirement:
            if scheme not in names:
                names.append(scheme)
    return tuple(names)


def parse_operation(
    fmt: SpecFormat,
    method: str,
    path: str,
    operation: dict[str, Any],
    path_level_params: list[Any],
) -> EndpointDescriptor:
    """Build one EndpointDescriptor.

    Path-level parameters come first, then operation-level ones. Same-name
    declarations are not merged; both entries survive.
    """
    all_params = [
        p for p in path_level_params + _as_list(operation.get("parameters"))
        if isinstance(p, dict)
    ]

    buckets: dict[str, list[ParameterDescriptor]] = {loc: [] for loc in _PARAM_LOCATIONS}
    for param in all_params:
        location = param.get("in")
        if location in buckets:
            buckets[location].append(parse_parameter(fmt, param))

    tags = tuple(str(t) for t in _as_list(operation.get("tags")))

    return EndpointDescriptor(
        operation_id=operation.get("operationId") or generate_operation_id(method, path),
        method=method,
        path=path,
        summary=operation.get("summary"),
        description=operation.get("description"),
        path_params=tuple(buckets["path"]),
        query_params=tuple(buckets["query"]),
        header_params=tuple(buckets["header"]),
        request_body=fmt.request_body(operation, all_params),
        responses=parse_responses(fmt, operation.get("responses")),
        tags=tags,
        security=_security_names(operation),
    )


def parse_endpoints(document: dict[str, Any], fmt: SpecFormat | None = None) -> list[EndpointDescriptor]:
    """Walk every path and method of a dereferenced document."""
    fmt = fmt or detect_format(document)
    endpoints: list[EndpointDescriptor] = []

    for path, path_item in get_paths(document).items():
        if not isinstance(path_item, dict):
            continue

        path_level_params = _as_list(path_item.get("parameters"))
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue
            endpoints.append(parse_operation(fmt, method, path, operation, path_level_params))

    return endpoints


def parse_spec(document: dict[str, Any]) -> ParsedSpec:
    """Normalize a dereferenced document into a ParsedSpec."""
    fmt = detect_format(document)
    info = document.get("info") if isinstance(document.get("info"), dict) else {}
    endpoints = parse_endpoints(document, fmt)

    spec = ParsedSpec(
        title=str(info.get("title") or "API"),
        version=str(info.get("version") or ""),
        description=info.get("description"),
        base_url=fmt.base_url(document),
        endpoints=tuple(endpoints),
    )
    log.info(
        "spec_parsed",
        format=fmt.name,
        title=spec.title,
        endpoints=len(spec.endpoints),
    )
    return spec


def load_parsed_spec(source: str) -> ParsedSpec:
    """Load, dereference and normalize a spec from a file path or URL."""
    return parse_spec(load_spec(source))


def validate_spec(source: str) -> bool:
    """Return True if the source loads and normalizes without error."""
    try:
        load_parsed_spec(source)
    except SpeckyError as exc:
        log.debug("spec_invalid", source=source, error=str(exc))
        return False
    return True
