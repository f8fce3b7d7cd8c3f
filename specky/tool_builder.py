"""Build MCP tool descriptors from normalized endpoints.

Each endpoint becomes one tool: a snake_case name, a description assembled
from summary/description/tags, and an object input schema holding the path
and query parameters plus the request body. Object bodies with explicit
properties are flattened into the top level; anything else becomes a single
"body" property. Header parameters are never part of the schema.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from .models import EndpointDescriptor, ParameterDescriptor, ToolDescriptor
from .naming import build_tool_name, deduplicate_tool_names

log = structlog.get_logger(__name__)

# Group label for tools whose endpoint declares no tags
DEFAULT_TAG = "default"


def param_to_json_schema(param: ParameterDescriptor) -> dict[str, Any]:
    """Convert a ParameterDescriptor to a JSON Schema property."""
    schema: dict[str, Any] = {
        "type": param.type,
        "description": param.description,
    }
    if param.format:
        schema["format"] = param.format
    if param.enum:
        schema["enum"] = list(param.enum)
    if param.has_default:
        schema["default"] = param.default
    return schema


def _make_description(endpoint: EndpointDescriptor) -> str:
    """Join summary, description and tags with blank lines."""
    parts = [endpoint.summary or f"{endpoint.method.upper()} {endpoint.path}"]

    if endpoint.description and endpoint.description != endpoint.summary:
        parts.append(endpoint.description)

    if endpoint.tags:
        parts.append(f"Tags: {', '.join(endpoint.tags)}")

    return "\n\n".join(parts)


def build_input_schema(endpoint: EndpointDescriptor) -> dict[str, Any]:
    """Build the object input schema for one endpoint."""
    properties: dict[str, Any] = {}
    required: list[str] = []

    for param in (*endpoint.path_params, *endpoint.query_params):
        properties[param.name] = param_to_json_schema(param)
        if param.required and param.name not in required:
            required.append(param.name)

    body = endpoint.request_body
    if body is not None:
        schema = body.schema
        body_props = schema.get("properties")
        if schema.get("type") == "object" and isinstance(body_props, dict):
            body_required = schema.get("required") or []
            for prop_name, prop_schema in body_props.items():
                properties[prop_name] = prop_schema
                if body.required and prop_name in body_required and prop_name not in required:
                    required.append(prop_name)
        else:
            properties["body"] = {**schema, "description": body.description or "Request body"}
            if body.required and "body" not in required:
                required.append("body")

    return {
        "type": "object",
        "properties": properties,
        "required": required,
    }


def endpoint_to_tool(endpoint: EndpointDescriptor) -> ToolDescriptor:
    """Convert a single endpoint to a tool descriptor."""
    return ToolDescriptor(
        name=build_tool_name(endpoint.operation_id),
        description=_make_description(endpoint),
        input_schema=build_input_schema(endpoint),
        endpoint=endpoint,
    )


def generate_tools(endpoints: Iterable[EndpointDescriptor]) -> list[ToolDescriptor]:
    """Generate one tool per endpoint, with unique names."""
    tools = [endpoint_to_tool(endpoint) for endpoint in endpoints]
    return deduplicate_tool_names(tools)


def group_tools_by_tag(tools: Sequence[ToolDescriptor]) -> dict[str, list[ToolDescriptor]]:
    """Group tools by endpoint tag; untagged tools go under 'default'."""
    groups: dict[str, list[ToolDescriptor]] = {}
    for tool in tools:
        for tag in tool.endpoint.tags or (DEFAULT_TAG,):
            groups.setdefault(tag, []).append(tool)
    return groups


def get_tools_summary(tools: Sequence[ToolDescriptor]) -> dict[str, Any]:
    """Count tools overall, per HTTP method and per tag."""
    by_method: dict[str, int] = {}
    by_tag: dict[str, int] = {}

    for tool in tools:
        method = tool.endpoint.method.upper()
        by_method[method] = by_method.get(method, 0) + 1
        for tag in tool.endpoint.tags:
            by_tag[tag] = by_tag.get(tag, 0) + 1

    return {
        "total": len(tools),
        "by_method": by_method,
        "by_tag": by_tag,
    }


def available_tags(tools: Iterable[ToolDescriptor]) -> list[str]:
    """Distinct tags in first-seen order."""
    tags: dict[str, None] = {}
    for tool in tools:
        for tag in tool.endpoint.tags:
            tags.setdefault(tag, None)
    return list(tags)


def filter_endpoints(
    endpoints: Iterable[EndpointDescriptor],
    tags: Iterable[str] | None = None,
    include: str | None = None,
    exclude: str | None = None,
) -> list[EndpointDescriptor]:
    """Restrict endpoints by tag set, then include regex, then exclude regex.

    Tag matching is case-insensitive; the regexes are searched in the path.
    """
    result = list(endpoints)

    wanted = {t.strip().lower() for t in tags or () if t.strip()}
    if wanted:
        result = [ep for ep in result if any(tag.lower() in wanted for tag in ep.tags)]
        log.info("filtered_by_tags", tags=sorted(wanted), endpoints=len(result))

    if include:
        pattern = re.compile(include)
        result = [ep for ep in result if pattern.search(ep.path)]
        log.info("filtered_by_include", pattern=include, endpoints=len(result))

    if exclude:
        pattern = re.compile(exclude)
        result = [ep for ep in result if not pattern.search(ep.path)]
        log.info("filtered_by_exclude", pattern=exclude, endpoints=len(result))

    return result
