"""Load an OpenAPI/Swagger document and dereference its local $refs.

Sources may be a local path or an http(s) URL; content may be JSON or YAML.
The result is a plain dict in which every resolvable "#/..." reference has
been replaced by its target. References that would recurse into themselves
are left in place as {"$ref": ...} nodes so the document stays a tree.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from urllib.parse import unquote

import httpx
import structlog
import yaml

from .errors import SpecLoadError

log = structlog.get_logger(__name__)

_YAML_SUFFIXES = (".yaml", ".yml")


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _read_source(source: str) -> str:
    if _is_url(source):
        try:
            response = httpx.get(source, follow_redirects=True, timeout=30.0)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SpecLoadError(f"Failed to fetch {source}: {exc}") from exc
        return response.text

    path = Path(source)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecLoadError(f"Failed to read {source}: {exc}") from exc


def parse_document(text: str, source: str = "") -> dict[str, Any]:
    """Decode JSON or YAML text into a mapping."""
    prefer_yaml = source.lower().endswith(_YAML_SUFFIXES)
    document: Any
    try:
        if prefer_yaml:
            document = yaml.safe_load(text)
        else:
            try:
                document = json.loads(text)
            except json.JSONDecodeError:
                # YAML is a superset of JSON, so this also covers .json files with YAML in them
                document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SpecLoadError(f"Failed to parse {source or 'document'}: {exc}") from exc

    if not isinstance(document, dict):
        raise SpecLoadError(f"{source or 'document'} does not contain a mapping at the top level")
    return document


def resolve_ref(spec: dict[str, Any], ref: str) -> Any:
    """Resolve a local $ref pointer in the spec."""
    if not ref.startswith("#"):
        raise KeyError(ref)
    pointer = ref[1:].lstrip("/")
    node: Any = spec
    if not pointer:
        return node
    for raw in pointer.split("/"):
        part = unquote(raw).replace("~1", "/").replace("~0", "~")
        if isinstance(node, list):
            node = node[int(part)]
        else:
            node = node[part]
    return node


def dereference(spec: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of the spec with local $refs replaced by their targets."""
    resolved: dict[str, Any] = {}

    def _walk(node: Any, stack: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [_walk(item, stack) for item in node]
        if not isinstance(node, dict):
            return node

        ref = node.get("$ref")
        if isinstance(ref, str):
            if ref in stack:
                return dict(node)
            if ref in resolved:
                return resolved[ref]
            try:
                target = resolve_ref(spec, ref)
            except (KeyError, IndexError, ValueError, TypeError):
                log.debug("unresolved_ref", ref=ref)
                return dict(node)
            value = _walk(target, stack + (ref,))
            resolved[ref] = value
            return value

        return {key: _walk(value, stack) for key, value in node.items()}

    return _walk(spec, ())


def load_spec(source: str | Path) -> dict[str, Any]:
    """Load a spec from disk or URL and dereference it."""
    source = str(source)
    document = parse_document(_read_source(source), source)
    log.debug("spec_document_loaded", source=source)
    return dereference(document)


def get_paths(spec: dict[str, Any]) -> dict[str, Any]:
    """Extract paths from the spec."""
    paths = spec.get("paths")
    return paths if isinstance(paths, dict) else {}
