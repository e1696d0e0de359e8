#!/usr/bin/env python3
"""
User allowlist.

Loaded from YAML:

    allow:
      - pattern: 'rm\\s+-rf\\s+\\./node_modules'
        reason: Allow cleaning node_modules
        tool: Bash          # optional: Bash, Read, Edit, Write or "*"

A match short-circuits every other check and allows the operation.
"""

import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml
from jsonschema import ValidationError, validate

SCOPED_TOOLS = ("bash", "read", "edit", "write")

ALLOWLIST_SCHEMA = {
    "type": "object",
    "properties": {
        "allow": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "pattern": {"type": "string"},
                    "reason": {"type": "string"},
                    "tool": {"type": ["string", "null"]},
                },
                "required": ["pattern", "reason"],
            },
        },
    },
}


class AllowlistError(Exception):
    """The allowlist file is unreadable or one of its patterns is invalid."""


@dataclass(frozen=True)
class AllowEntry:
    pattern: str
    reason: str
    tool: Optional[str] = None


Compiled = List[Tuple["re.Pattern[str]", str]]


@dataclass
class CompiledAllowlist:
    general: Compiled = field(default_factory=list)
    scoped: Dict[str, Compiled] = field(
        default_factory=lambda: {tool: [] for tool in SCOPED_TOOLS}
    )

    @classmethod
    def empty(cls) -> "CompiledAllowlist":
        return cls()

    def is_empty(self) -> bool:
        return not self.general and not any(self.scoped.values())

    def matches(self, tool: str, text: str) -> Optional[str]:
        """Reason of the first matching entry; tool-specific entries win over general ones."""
        for regex, reason in self.scoped.get(tool.lower(), []):
            if regex.search(text):
                return reason
        for regex, reason in self.general:
            if regex.search(text):
                return reason
        return None


def compile_allowlist(entries: Iterable[AllowEntry]) -> CompiledAllowlist:
    """
    Compile allowlist entries.

    Raises AllowlistError if any pattern is invalid; nothing is applied in
    that case.
    """
    allowlist = CompiledAllowlist()
    for entry in entries:
        try:
            regex = re.compile(entry.pattern)
        except re.error as e:
            raise AllowlistError(f"Invalid allowlist pattern '{entry.pattern}': {e}") from e

        tool = (entry.tool or "*").lower()
        if tool in allowlist.scoped:
            allowlist.scoped[tool].append((regex, entry.reason))
        else:
            if tool != "*":
                print(f"Warning: Unknown tool type in allowlist: {entry.tool}", file=sys.stderr)
            allowlist.general.append((regex, entry.reason))
    return allowlist


def parse_allowlist(data: Optional[dict]) -> List[AllowEntry]:
    """Validate a loaded YAML document and turn it into entries."""
    if data is None:
        return []
    try:
        validate(instance=data, schema=ALLOWLIST_SCHEMA)
    except ValidationError as e:
        raise AllowlistError(f"Invalid allowlist: {e.message}") from e
    return [
        AllowEntry(item["pattern"], item["reason"], item.get("tool"))
        for item in data.get("allow") or []
    ]


def load_allowlist(path: Path) -> CompiledAllowlist:
    """Read, validate and compile an allowlist file. A missing file is an empty allowlist."""
    path = Path(path)
    if not path.exists():
        return CompiledAllowlist.empty()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (IOError, OSError, yaml.YAMLError) as e:
        raise AllowlistError(f"Could not read allowlist {path}: {e}") from e
    return compile_allowlist(parse_allowlist(data))
