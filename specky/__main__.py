"""Entry point: python -m specky <spec> [options]

Loads the spec, prints a report to stderr and serves it over MCP stdio.
With --list the report (including the tools table) goes to stdout and the
process exits without serving.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

import structlog
import typer

from . import __version__
from .config import build_config
from .errors import SpeckyError
from .logger import configure
from .models import ParsedSpec, ServerConfig
from .report import render_report
from .schema_parser import load_parsed_spec
from .server import serve
from .tool_builder import filter_endpoints, generate_tools

app = typer.Typer(
    help="Transform Swagger/OpenAPI specs into MCP servers for LLMs.",
    add_completion=False,
)


def _report(parsed: ParsedSpec, config: ServerConfig, show_banner: bool, show_tools: bool) -> str:
    endpoints = filter_endpoints(parsed.endpoints, config.tags, config.include, config.exclude)
    return render_report(
        replace(parsed, endpoints=tuple(endpoints)),
        generate_tools(endpoints),
        config.base_url or parsed.base_url,
        config.mode,
        __version__,
        show_banner=show_banner,
        show_tools=show_tools,
    )


@app.command()
def main(
    spec: str = typer.Argument(..., help="Path or URL to Swagger/OpenAPI spec (JSON or YAML)."),
    auth: str | None = typer.Option(None, "--auth", "-a", help="none|apikey|bearer|basic|oauth2"),
    token: str | None = typer.Option(None, "--token", "-t", help="Bearer token or API key value."),
    key: str | None = typer.Option(None, "--key", "-k", help="API key value (alias for --token)."),
    header: str | None = typer.Option(None, "--header", help="Header name for API key (default: X-API-Key)."),
    username: str | None = typer.Option(None, "--username", "-u", help="Username for basic auth."),
    password: str | None = typer.Option(None, "--password", "-p", help="Password for basic auth."),
    client_id: str | None = typer.Option(None, "--client-id", help="OAuth2 client ID."),
    client_secret: str | None = typer.Option(None, "--client-secret", help="OAuth2 client secret."),
    token_url: str | None = typer.Option(None, "--token-url", help="OAuth2 token URL."),
    base_url: str | None = typer.Option(None, "--base-url", "-b", help="Override base URL from spec."),
    mode: str | None = typer.Option(None, "--mode", "-m", help="Server mode: search (default) or full."),
    tags: str | None = typer.Option(None, "--tags", help="Filter endpoints by tags (comma-separated)."),
    include: str | None = typer.Option(None, "--include", help="Include only paths matching this regex."),
    exclude: str | None = typer.Option(None, "--exclude", help="Exclude paths matching this regex."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output."),
    banner: bool = typer.Option(True, "--banner/--no-banner", help="Show or hide the banner."),
    list_tools: bool = typer.Option(False, "--list", help="List tools and exit (don't start server)."),
) -> None:
    """Serve an OpenAPI/Swagger spec as an MCP server."""
    configure("DEBUG" if verbose else "INFO", json_out=False)
    log = structlog.get_logger(__name__)

    try:
        config = build_config(
            spec,
            verbose=verbose,
            auth=auth,
            token=token,
            key=key,
            header=header,
            username=username,
            password=password,
            client_id=client_id,
            client_secret=client_secret,
            token_url=token_url,
            base_url=base_url,
            mode=mode,
            tags=tags,
            include=include,
            exclude=exclude,
        )
        parsed = load_parsed_spec(config.spec)
    except (SpeckyError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    report = _report(parsed, config, banner, list_tools or verbose)
    typer.echo(report, err=not list_tools, nl=False)

    if list_tools:
        raise typer.Exit(code=0)

    if config.auth.type != "none":
        log.info("using_authentication", type=config.auth.type)

    try:
        asyncio.run(serve(parsed, config))
    except KeyboardInterrupt:
        log.info("server_stopped")


if __name__ == "__main__":
    app()
