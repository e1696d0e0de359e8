#!/usr/bin/env python3
"""
Parsing of the JSON Claude Code sends to PreToolUse hooks on stdin.

    {"tool_name": "Bash", "tool_input": {"command": "ls -la"}, "session_id": "..."}

The tool input variant is picked from the fields present, not from
tool_name, so MultiEdit-style tools with a file_path are still checked.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union


class HookInputError(ValueError):
    """stdin did not contain a usable hook payload."""


@dataclass(frozen=True)
class BashInput:
    command: str
    description: Optional[str] = None
    timeout: Optional[int] = None


@dataclass(frozen=True)
class ReadInput:
    file_path: str


@dataclass(frozen=True)
class EditInput:
    file_path: str
    old_string: str
    new_string: str


@dataclass(frozen=True)
class WriteInput:
    file_path: str
    content: str


@dataclass(frozen=True)
class UnknownInput:
    raw: Any = None


ToolInput = Union[BashInput, ReadInput, EditInput, WriteInput, UnknownInput]


def _str(obj: dict, key: str) -> Optional[str]:
    value = obj.get(key)
    return value if isinstance(value, str) else None


def parse_tool_input(value: Any) -> ToolInput:
    if not isinstance(value, dict):
        return UnknownInput(value)

    command = _str(value, "command")
    if command is not None:
        timeout = value.get("timeout")
        return BashInput(
            command=command,
            description=_str(value, "description"),
            timeout=timeout if isinstance(timeout, int) and not isinstance(timeout, bool) else None,
        )

    file_path = _str(value, "file_path")
    if file_path is not None:
        old_string = _str(value, "old_string")
        new_string = _str(value, "new_string")
        if old_string is not None and new_string is not None:
            return EditInput(file_path, old_string, new_string)
        content = _str(value, "content")
        if content is not None:
            return WriteInput(file_path, content)
        return ReadInput(file_path)

    return UnknownInput(value)


@dataclass(frozen=True)
class HookInput:
    tool_name: str
    tool_input: ToolInput
    session_id: Optional[str] = None
    hook_event_name: Optional[str] = None
    cwd: Optional[str] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    def summary(self) -> str:
        """Short description for logs. Commands are cut at 100 characters."""
        tool_input = self.tool_input
        if isinstance(tool_input, BashInput):
            command = tool_input.command
            if len(command) > 100:
                command = command[:100] + "..."
            return f"Bash: {command}"
        if isinstance(tool_input, ReadInput):
            return f"Read: {tool_input.file_path}"
        if isinstance(tool_input, EditInput):
            return f"Edit: {tool_input.file_path}"
        if isinstance(tool_input, WriteInput):
            return f"Write: {tool_input.file_path}"
        return f"Unknown tool: {self.tool_name}"


def parse_hook_input(text: str) -> HookInput:
    """Parse hook JSON. Raises HookInputError on malformed input."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise HookInputError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise HookInputError("Hook input must be a JSON object")
    tool_name = data.get("tool_name")
    if not isinstance(tool_name, str):
        raise HookInputError("Hook input is missing 'tool_name'")
    if "tool_input" not in data:
        raise HookInputError("Hook input is missing 'tool_input'")

    return HookInput(
        tool_name=tool_name,
        tool_input=parse_tool_input(data["tool_input"]),
        session_id=_str(data, "session_id"),
        hook_event_name=_str(data, "hook_event_name"),
        cwd=_str(data, "cwd"),
        raw=data,
    )
