"""Outbound authentication.

get_auth_headers() is the pure step: AuthConfig in, header dict out.
HeaderAuth plugs those headers into httpx so every request sent through an
authenticated client is decorated. Auth headers are applied after the
caller's own headers, so on a name collision the auth header wins
(last write wins).

OAuth2 client credentials are exchanged for a token by fetch_oauth2_token().
A failed exchange is logged and resolves to None; it never raises.
"""

from __future__ import annotations

import base64
from collections.abc import Generator
from typing import Any

import httpx
import structlog

from .errors import OAuth2Error
from .models import AUTH_TYPES, AuthConfig

log = structlog.get_logger(__name__)

DEFAULT_API_KEY_HEADER = "X-API-Key"


def get_auth_headers(auth: AuthConfig | None) -> dict[str, str]:
    """Compute the auth headers for a config."""
    if auth is None or auth.type == "none":
        return {}

    headers: dict[str, str] = {}

    if auth.type in ("bearer", "oauth2"):
        if auth.token:
            headers["Authorization"] = f"Bearer {auth.token}"

    elif auth.type == "apikey":
        if auth.token:
            headers[auth.header_name or DEFAULT_API_KEY_HEADER] = auth.token

    elif auth.type == "basic":
        if auth.username and auth.password:
            credentials = base64.b64encode(
                f"{auth.username}:{auth.password}".encode()
            ).decode("ascii")
            headers["Authorization"] = f"Basic {credentials}"

    return headers


class HeaderAuth(httpx.Auth):
    """httpx auth hook that layers precomputed headers onto each request."""

    def __init__(self, headers: dict[str, str]) -> None:
        self.headers = dict(headers)

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        for name, value in self.headers.items():
            request.headers[name] = value
        yield request


def create_authenticated_client(
    auth: AuthConfig | None,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float | None = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient whose requests all carry the auth headers.

    No timeout is applied unless one is given.
    """
    return httpx.AsyncClient(
        auth=HeaderAuth(get_auth_headers(auth)),
        transport=transport,
        timeout=timeout,
    )


async def request_oauth2_token(auth: AuthConfig, client: httpx.AsyncClient) -> str | None:
    """Run the client-credentials exchange; raises OAuth2Error on HTTP failure."""
    response = await client.post(
        auth.token_url,
        data={
            "grant_type": "client_credentials",
            "client_id": auth.client_id,
            "client_secret": auth.client_secret,
        },
    )
    if not response.is_success:
        raise OAuth2Error(response.status_code, response.reason_phrase)

    data: Any = response.json()
    if not isinstance(data, dict):
        return None
    return data.get("access_token")


async def fetch_oauth2_token(
    auth: AuthConfig,
    client: httpx.AsyncClient | None = None,
) -> str | None:
    """Obtain an OAuth2 token, or None if unconfigured or the exchange fails."""
    if auth.type != "oauth2" or not (auth.token_url and auth.client_id and auth.client_secret):
        return None

    owns_client = client is None
    client = client or httpx.AsyncClient()
    try:
        return await request_oauth2_token(auth, client)
    except (OAuth2Error, httpx.HTTPError, ValueError) as exc:
        log.error("oauth2_token_failed", token_url=auth.token_url, error=str(exc))
        return None
    finally:
        if owns_client:
            await client.aclose()


def parse_auth_from_options(
    auth: str | None = None,
    token: str | None = None,
    key: str | None = None,
    header: str | None = None,
    username: str | None = None,
    password: str | None = None,
    client_id: str | None = None,
    client_secret: str | None = None,
    token_url: str | None = None,
) -> AuthConfig:
    """Assemble an AuthConfig from CLI-style options; key is an alias of token."""
    auth_type = (auth or "none").lower()
    if auth_type not in AUTH_TYPES:
        raise ValueError(f"Unknown auth type {auth!r}; expected one of {', '.join(AUTH_TYPES)}")

    return AuthConfig(
        type=auth_type,
        token=token or key,
        header_name=header,
        username=username,
        password=password,
        client_id=client_id,
        client_secret=client_secret,
        token_url=token_url,
    )
