"""Route tool invocations to HTTP calls.

Two policies sit on top of the same ServerContext:

- FullModeDispatcher lists every generated tool and calls the one named.
- SearchModeDispatcher lists two meta-tools: search_endpoints ranks the
  generated tools against a free-text query, call_endpoint invokes one of
  them by id with whatever extra arguments it is given.

Anything that goes wrong while serving one invocation is returned as an
error-flagged ToolResult; nothing raised here reaches the transport.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

import httpx
import structlog

from .auth import create_authenticated_client, fetch_oauth2_token
from .errors import ApiCallError, EndpointNotFoundError, SpeckyError, UnknownToolError
from .models import EndpointDescriptor, ParsedSpec, ServerConfig, ToolDescriptor
from .request_builder import ENDPOINT_ID_ARG, BodyPolicy, build_request
from .tool_builder import available_tags, filter_endpoints, generate_tools

log = structlog.get_logger(__name__)

SEARCH_TOOL = "search_endpoints"
CALL_TOOL = "call_endpoint"

DEFAULT_SEARCH_LIMIT = 10

# Scores added per field by search_endpoints
_FULL_QUERY_SCORE = 10
_WORD_SCORE = 5

_SEARCHABLE_METHODS = ["get", "post", "put", "patch", "delete"]


@dataclass(frozen=True)
class ToolResult:
    text: str
    is_error: bool = False

    @classmethod
    def ok(cls, text: str) -> ToolResult:
        return cls(text=text)

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(text=f"Error: {message}", is_error=True)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            result["isError"] = True
        return result


@dataclass(frozen=True)
class ServerContext:
    """Everything a dispatcher needs; built once per loaded spec."""

    spec: ParsedSpec
    tools: tuple[ToolDescriptor, ...]
    base_url: str
    client: httpx.AsyncClient

    def find_tool(self, name: str) -> ToolDescriptor | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    async def aclose(self) -> None:
        await self.client.aclose()


async def create_context(
    spec: ParsedSpec,
    config: ServerConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ServerContext:
    """Filter endpoints, generate tools and set up the authenticated client.

    An oauth2 config without a token but with client credentials gets its
    token here. If that fails the server still starts, unauthenticated.
    """
    endpoints = filter_endpoints(spec.endpoints, config.tags, config.include, config.exclude)
    spec = replace(spec, endpoints=tuple(endpoints))
    tools = generate_tools(spec.endpoints)

    auth = config.auth
    if auth.type == "oauth2" and not auth.token:
        async with httpx.AsyncClient(transport=transport) as token_client:
            token = await fetch_oauth2_token(auth, token_client)
        if token:
            auth = replace(auth, token=token)
        else:
            log.warning("oauth2_token_unavailable", token_url=auth.token_url)

    return ServerContext(
        spec=spec,
        tools=tuple(tools),
        base_url=config.base_url or spec.base_url,
        client=create_authenticated_client(auth, transport=transport),
    )


async def execute_api_call(
    context: ServerContext,
    endpoint: EndpointDescriptor,
    args: Mapping[str, Any],
    policy: BodyPolicy,
) -> str:
    """Send the request and return pretty JSON or the raw text body."""
    request = build_request(context.base_url, endpoint, args, policy)
    log.debug("calling_endpoint", method=request.method, url=request.url)

    try:
        response = await context.client.request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.content,
        )
    except httpx.HTTPError as exc:
        raise ApiCallError(str(exc) or type(exc).__name__) from exc

    if not response.is_success:
        log.info(
            "api_call_failed",
            method=request.method,
            url=request.url,
            status=response.status_code,
        )
        raise ApiCallError(
            f"{response.status_code} {response.reason_phrase}\n{response.text}".rstrip()
        )

    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = response.json()
        except ValueError as exc:
            raise ApiCallError(f"Invalid JSON in response: {exc}") from exc
        return json.dumps(data, indent=2, ensure_ascii=False)
    return response.text


async def _invoke(
    context: ServerContext,
    tool: ToolDescriptor,
    args: Mapping[str, Any],
    policy: BodyPolicy,
) -> ToolResult:
    try:
        return ToolResult.ok(await execute_api_call(context, tool.endpoint, args, policy))
    except Exception as exc:
        log.warning("tool_call_error", tool=tool.name, error=str(exc))
        return ToolResult.error(str(exc) or type(exc).__name__)


class FullModeDispatcher:
    """Every endpoint is a directly callable tool."""

    def __init__(self, context: ServerContext) -> None:
        self.context = context
        self._tools = {tool.name: tool for tool in context.tools}

    def list_tools(self) -> list[dict[str, Any]]:
        return [tool.to_dict() for tool in self.context.tools]

    def get_tool(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None) -> ToolResult:
        try:
            tool = self.get_tool(name)
        except UnknownToolError as exc:
            return ToolResult.error(str(exc))
        return await _invoke(self.context, tool, arguments or {}, BodyPolicy.DIRECT)


def _as_str_list(value: Any) -> list[str]:
    """Accept a list or a comma-separated string; anything else filters nothing."""
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return []


def _score(tool: ToolDescriptor, query: str, words: list[str]) -> int:
    endpoint = tool.endpoint
    fields = [
        tool.name,
        tool.description,
        endpoint.path,
        endpoint.summary or "",
        endpoint.operation_id,
        *endpoint.tags,
    ]
    score = 0
    for field in (f.lower() for f in fields):
        if query in field:
            score += _FULL_QUERY_SCORE
        for word in words:
            if word in field:
                score += _WORD_SCORE
    return score


def search_endpoints(
    tools: Sequence[ToolDescriptor],
    query: str,
    tags: Iterable[str] | None = None,
    methods: Iterable[str] | None = None,
    limit: int | None = None,
) -> list[ToolDescriptor]:
    """Rank tools against a free-text query, best first.

    Tag and method filters are case-insensitive and applied before scoring.
    Ties keep their original order.
    """
    query = query.lower()
    words = query.split()
    limit = limit or DEFAULT_SEARCH_LIMIT

    candidates = list(tools)

    wanted_tags = {t.lower() for t in tags or ()}
    if wanted_tags:
        candidates = [
            t for t in candidates
            if any(tag.lower() in wanted_tags for tag in t.endpoint.tags)
        ]

    wanted_methods = {m.lower() for m in methods or ()}
    if wanted_methods:
        candidates = [t for t in candidates if t.endpoint.method.lower() in wanted_methods]

    scored = [(tool, _score(tool, query, words)) for tool in candidates]
    scored = [item for item in scored if item[1] > 0]
    scored.sort(key=lambda item: item[1], reverse=True)
    return [tool for tool, _ in scored[:limit]]


def format_endpoint(tool: ToolDescriptor) -> dict[str, Any]:
    """Search result entry for one tool."""
    endpoint = tool.endpoint
    parameters = [
        {
            "name": p.name,
            "in": location,
            "required": p.required,
            "type": p.type,
            "description": p.description,
        }
        for location, params in (("path", endpoint.path_params), ("query", endpoint.query_params))
        for p in params
    ]
    return {
        "id": tool.name,
        "method": endpoint.method.upper(),
        "path": endpoint.path,
        "summary": endpoint.summary or tool.description.split("\n")[0],
        "tags": list(endpoint.tags),
        "parameters": parameters,
        "has_request_body": endpoint.request_body is not None,
    }


class SearchModeDispatcher:
    """Two meta-tools: search_endpoints and call_endpoint."""

    def __init__(self, context: ServerContext) -> None:
        self.context = context
        self._tags = available_tags(context.tools)

    def list_tools(self) -> list[dict[str, Any]]:
        title = self.context.spec.title
        return [
            {
                "name": SEARCH_TOOL,
                "description": (
                    f"Search for API endpoints in {title}. Use this to find the right"
                    " endpoint before calling it. Returns matching endpoints with their"
                    " IDs, methods, paths, and parameters."
                ),
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": 'Search query (e.g., "create pet", "get user", "delete order")',
                        },
                        "tags": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": (
                                "Optional: Filter by tags. Available tags: "
                                f"{', '.join(self._tags)}"
                            ),
                        },
                        "methods": {
                            "type": "array",
                            "items": {"type": "string", "enum": list(_SEARCHABLE_METHODS)},
                            "description": "Optional: Filter by HTTP methods",
                        },
                        "limit": {
                            "type": "number",
                            "description": f"Optional: Maximum results (default: {DEFAULT_SEARCH_LIMIT})",
                        },
                    },
                    "required": ["query"],
                },
            },
            {
                "name": CALL_TOOL,
                "description": (
                    "Call an API endpoint by its ID. First use search_endpoints to find"
                    " the endpoint ID, then use this tool with the endpoint_id and any"
                    " required parameters."
                ),
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        ENDPOINT_ID_ARG: {
                            "type": "string",
                            "description": (
                                "The endpoint ID returned from search_endpoints"
                                ' (e.g., "get_pet_by_id", "add_pet")'
                            ),
                        },
                    },
                    "required": [ENDPOINT_ID_ARG],
                    "additionalProperties": True,
                },
            },
        ]

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None) -> ToolResult:
        args = dict(arguments or {})
        if name == SEARCH_TOOL:
            return self._search(args)
        if name == CALL_TOOL:
            return await self._call(args)
        return ToolResult(text=f"Unknown tool: {name}", is_error=True)

    def _search(self, args: dict[str, Any]) -> ToolResult:
        query = args.get("query")
        if not isinstance(query, str):
            return ToolResult.error("query is required")

        limit = args.get("limit")
        try:
            limit = int(limit) if limit is not None else None
        except (TypeError, ValueError):
            return ToolResult.error(f"limit must be a number, got {limit!r}")

        results = search_endpoints(
            self.context.tools,
            query,
            tags=_as_str_list(args.get("tags")),
            methods=_as_str_list(args.get("methods")),
            limit=limit,
        )

        if not results:
            return ToolResult.ok(
                f'No endpoints found matching "{query}". Try different keywords'
                f" or browse available tags: {', '.join(self._tags)}"
            )

        formatted = json.dumps([format_endpoint(t) for t in results], indent=2, ensure_ascii=False)
        return ToolResult.ok(
            f"Found {len(results)} matching endpoint(s):\n\n{formatted}\n\n"
            'Use call_endpoint with the endpoint "id" and required parameters to call an endpoint.'
        )

    def resolve_endpoint(self, endpoint_id: str) -> ToolDescriptor:
        """Exact match by name, else EndpointNotFoundError with suggestions."""
        tool = self.context.find_tool(endpoint_id)
        if tool is not None:
            return tool

        similar = [
            t.name for t in self.context.tools
            if endpoint_id in t.name or t.name in endpoint_id
        ]
        raise EndpointNotFoundError(endpoint_id, similar)

    async def _call(self, args: dict[str, Any]) -> ToolResult:
        endpoint_id = args.get(ENDPOINT_ID_ARG)
        if not endpoint_id:
            return ToolResult.error(f"{ENDPOINT_ID_ARG} is required")

        try:
            tool = self.resolve_endpoint(str(endpoint_id))
        except SpeckyError as exc:
            return ToolResult(text=str(exc), is_error=True)

        return await _invoke(self.context, tool, args, BodyPolicy.RESIDUAL)


def create_dispatcher(context: ServerContext, mode: str) -> FullModeDispatcher | SearchModeDispatcher:
    if mode == "full":
        return FullModeDispatcher(context)
    if mode == "search":
        return SearchModeDispatcher(context)
    raise ValueError(f"Unknown mode {mode!r}; expected 'search' or 'full'")
