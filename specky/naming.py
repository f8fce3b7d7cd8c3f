"""Operation identifiers and MCP tool names.

Operation ids are synthesized only when the spec omits one:
  GET    /pets                  -> getPets
  GET    /pets/{petId}          -> getPetsPetId
  POST   /store/order           -> postStoreOrder
  DELETE /user/{username}/ping  -> deleteUserUsernamePing

Tool names are the snake_case form of the operation id:
  getPetById       -> get_pet_by_id
  findPetsByStatus -> find_pets_by_status
  list-users.v2    -> list_users_v2
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from .models import ToolDescriptor

log = structlog.get_logger(__name__)

TOOL_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

# Prefix for ids that would otherwise not start with a letter
_FALLBACK_PREFIX = "op_"


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def generate_operation_id(method: str, path: str) -> str:
    """Build a camelCase operation id from HTTP method + path."""
    text = re.sub(r"\{([^}]+)\}", lambda m: _capitalize(m.group(1)), path)
    text = re.sub(r"[^a-zA-Z0-9]+", " ", text)
    words = [w for w in text.split(" ") if w]

    camel = "".join(
        word.lower() if i == 0 else _capitalize(word)
        for i, word in enumerate(words)
    )
    return f"{method.lower()}{_capitalize(camel)}"


def build_tool_name(operation_id: str) -> str:
    """Convert an operation id to a tool name matching ^[a-z][a-z0-9_]*$."""
    name = re.sub(r"([a-z])([A-Z])", r"\1_\2", operation_id)
    name = re.sub(r"[^A-Za-z0-9_]", "_", name)
    name = name.lower()
    if not TOOL_NAME_PATTERN.match(name):
        name = _FALLBACK_PREFIX + name
    return name


def deduplicate_tool_names(tools: list[ToolDescriptor]) -> list[ToolDescriptor]:
    """Ensure all tool names are unique by appending a method suffix if needed.

    The first tool to claim a name keeps it. Later ones get "_<method>", and
    if that is still taken, "_<method>_<n>" with the smallest free n >= 2.
    Every original name is reserved up front, so a rename never takes the
    name a later tool was given.
    """
    reserved = {tool.name for tool in tools}
    taken: set[str] = set()
    result: list[ToolDescriptor] = []
    for tool in tools:
        if tool.name in taken:
            base = f"{tool.name}_{tool.endpoint.method.lower()}"
            name = base
            n = 1
            while name in taken or name in reserved:
                n += 1
                name = f"{base}_{n}"
            log.warning(
                "tool_name_collision",
                name=tool.name,
                renamed_to=name,
                method=tool.endpoint.method.upper(),
                path=tool.endpoint.path,
            )
            tool = replace(tool, name=name)
        taken.add(tool.name)
        result.append(tool)
    return result
