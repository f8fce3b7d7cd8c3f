"""Turn an endpoint plus a flat argument mapping into an HTTP request.

Pure: nothing here touches the network. The URL is the base URL plus the
path template with path arguments substituted and query arguments appended.
Missing path arguments leave their {placeholder} in place.

Body policies:
- DIRECT (full mode): a literal "body" argument is sent as-is; otherwise
  every argument that is not a path or query parameter becomes the body.
  Only endpoints that declare a request body get one.
- RESIDUAL (search mode): every argument that is not a path or query
  parameter and not "endpoint_id" becomes the body.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, urlencode

from .models import DEFAULT_CONTENT_TYPE, EndpointDescriptor

# Argument consumed by search mode's call_endpoint to pick the endpoint
ENDPOINT_ID_ARG = "endpoint_id"

# Characters encodeURIComponent leaves alone
_PATH_SAFE = "-_.!~*'()"


class BodyPolicy(enum.Enum):
    DIRECT = "direct"
    RESIDUAL = "residual"


@dataclass(frozen=True)
class BuiltRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    @property
    def content(self) -> str | None:
        """The body serialized as JSON text, or None."""
        if self.body is None:
            return None
        return json.dumps(self.body)


def stringify(value: Any) -> str:
    """String form of an argument value for URLs and headers."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def build_url(base_url: str, endpoint: EndpointDescriptor, args: Mapping[str, Any]) -> str:
    url = base_url + endpoint.path

    for param in endpoint.path_params:
        if param.name in args:
            url = url.replace(
                f"{{{param.name}}}",
                quote(stringify(args[param.name]), safe=_PATH_SAFE),
                1,
            )

    query = [
        (param.name, stringify(args[param.name]))
        for param in endpoint.query_params
        if param.name in args
    ]
    query_string = urlencode(dict(query))
    if query_string:
        url += f"?{query_string}"

    return url


def _residual_args(
    endpoint: EndpointDescriptor,
    args: Mapping[str, Any],
    exclude: frozenset[str] = frozenset(),
) -> dict[str, Any] | None:
    routed = {p.name for p in endpoint.path_params} | {p.name for p in endpoint.query_params}
    residual = {
        key: value
        for key, value in args.items()
        if key not in routed and key not in exclude
    }
    return residual or None


def extract_body(
    endpoint: EndpointDescriptor,
    args: Mapping[str, Any],
    policy: BodyPolicy = BodyPolicy.DIRECT,
) -> Any:
    """Pick the request body out of the arguments, or None."""
    if policy is BodyPolicy.RESIDUAL:
        return _residual_args(endpoint, args, frozenset({ENDPOINT_ID_ARG}))

    if endpoint.request_body is None:
        return None
    if "body" in args:
        return args["body"]
    return _residual_args(endpoint, args)


def build_request(
    base_url: str,
    endpoint: EndpointDescriptor,
    args: Mapping[str, Any],
    policy: BodyPolicy = BodyPolicy.DIRECT,
) -> BuiltRequest:
    """Build method, URL, headers and body for one invocation."""
    body = extract_body(endpoint, args, policy)

    headers: dict[str, str] = {}
    if endpoint.request_body is not None and endpoint.request_body.content_type:
        headers["Content-Type"] = endpoint.request_body.content_type
    elif policy is BodyPolicy.RESIDUAL and body is not None:
        headers["Content-Type"] = DEFAULT_CONTENT_TYPE

    for param in endpoint.header_params:
        if param.name in args:
            headers[param.name] = stringify(args[param.name])

    return BuiltRequest(
        method=endpoint.method.upper(),
        url=build_url(base_url, endpoint, args),
        headers=headers,
        body=body,
    )
