"""Assemble a ServerConfig from CLI options and SPECKY_* environment variables.

Explicit options win; the environment fills in whatever was not given.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .auth import parse_auth_from_options
from .models import AUTH_TYPES, ServerConfig

MODES = ("search", "full")


class Settings(BaseSettings):
    """Options shared by the CLI and the SPECKY_* environment."""

    model_config = SettingsConfigDict(env_prefix="SPECKY_", env_ignore_empty=True, extra="ignore")

    # Auth
    auth: str = "none"
    token: str | None = None
    key: str | None = None
    header: str | None = None
    username: str | None = None
    password: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    token_url: str | None = None

    # Serving
    base_url: str | None = None
    mode: str = "search"
    server_name: str | None = None
    server_version: str | None = None

    # Endpoint filters; tags is comma-separated
    tags: str | None = None
    include: str | None = None
    exclude: str | None = None

    @field_validator("auth", "mode")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.lower()

    @field_validator("auth")
    @classmethod
    def _known_auth(cls, value: str) -> str:
        if value not in AUTH_TYPES:
            raise ValueError(f"Unknown auth type {value!r}; expected one of {', '.join(AUTH_TYPES)}")
        return value

    @field_validator("mode")
    @classmethod
    def _known_mode(cls, value: str) -> str:
        if value not in MODES:
            raise ValueError(f"Unknown mode {value!r}; expected one of {', '.join(MODES)}")
        return value

    @field_validator("include", "exclude")
    @classmethod
    def _valid_pattern(cls, value: str | None) -> str | None:
        if value:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"Invalid pattern {value!r}: {exc}") from exc
        return value

    @property
    def tag_list(self) -> tuple[str, ...]:
        if not self.tags:
            return ()
        return tuple(t.strip() for t in self.tags.split(",") if t.strip())


def default_server_name(title: str) -> str:
    """specky-<title lowercased, whitespace runs replaced by '-'>."""
    return "specky-" + re.sub(r"\s+", "-", title.lower())


def build_config(spec: str, verbose: bool = False, **options: Any) -> ServerConfig:
    """Merge CLI options with environment fallbacks into a ServerConfig.

    Options left as None or "" fall through to the environment. Raises
    pydantic.ValidationError (a ValueError) on a bad mode, auth type or regex.
    """
    given = {name: value for name, value in options.items() if value not in (None, "")}
    settings = Settings(**given)

    auth = parse_auth_from_options(
        auth=settings.auth,
        token=settings.token,
        key=settings.key,
        header=settings.header,
        username=settings.username,
        password=settings.password,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        token_url=settings.token_url,
    )

    return ServerConfig(
        spec=spec,
        auth=auth,
        base_url=settings.base_url,
        verbose=verbose,
        server_name=settings.server_name,
        server_version=settings.server_version,
        mode=settings.mode,
        tags=settings.tag_list,
        include=settings.include,
        exclude=settings.exclude,
    )
