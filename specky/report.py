"""Render the startup report: spec info, tool summary and tools table.

Rendering is template-driven (templates/report.txt.j2); this module only
prepares the rows.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import jinja2

from .models import ParsedSpec, ToolDescriptor
from .tool_builder import get_tools_summary

TEMPLATE_DIR = Path(__file__).parent / "templates"

_METHOD_WIDTH = 7  # DELETE and OPTIONS
_MAX_PATH_WIDTH = 40
_DESC_WIDTH = 40


def _truncate(text: str, width: int) -> str:
    if len(text) > width:
        text = text[: width - 3] + "..."
    return text.ljust(width)


def _table_rows(tools: Sequence[ToolDescriptor]) -> tuple[list[dict[str, str]], dict[str, int]]:
    path_width = min(_MAX_PATH_WIDTH, max((len(t.endpoint.path) for t in tools), default=4))
    path_width = max(path_width, len("Path"))
    rows = [
        {
            "method": tool.endpoint.method.upper().ljust(_METHOD_WIDTH),
            "path": _truncate(tool.endpoint.path, path_width),
            "description": _truncate(tool.endpoint.summary or tool.name, _DESC_WIDTH),
        }
        for tool in tools
    ]
    widths = {"method": _METHOD_WIDTH, "path": path_width, "description": _DESC_WIDTH}
    return rows, widths


def _environment() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_report(
    spec: ParsedSpec,
    tools: Sequence[ToolDescriptor],
    base_url: str,
    mode: str,
    version: str,
    show_banner: bool = True,
    show_tools: bool = False,
) -> str:
    """Render the report as plain text."""
    rows, widths = _table_rows(tools)
    context: dict[str, Any] = {
        "version": version,
        "show_banner": show_banner,
        "show_tools": show_tools and bool(tools),
        "spec": spec,
        "base_url": base_url,
        "mode": mode,
        "summary": get_tools_summary(tools),
        "rows": rows,
        "widths": widths,
    }
    return _environment().get_template("report.txt.j2").render(**context)
