#!/usr/bin/env python3
"""
Decisions and their hook output.

Blocking uses permissionDecision: "deny" in JSON output with exit code 0,
which Claude Code treats the same way in the CLI and the VS Code extension.
"""

from dataclasses import dataclass
from typing import Optional, Union

TOOL_NAME = "cmdguard"


@dataclass(frozen=True)
class Allow:
    reason: str


@dataclass(frozen=True)
class Deny:
    rule_id: str
    reason: str


@dataclass(frozen=True)
class Warn:
    rule_id: str
    reason: str


Decision = Union[Allow, Deny, Warn]


def is_allow(decision: Decision) -> bool:
    return isinstance(decision, Allow)


def is_deny(decision: Decision) -> bool:
    return isinstance(decision, Deny)


def rule_id_of(decision: Decision) -> Optional[str]:
    if isinstance(decision, (Deny, Warn)):
        return decision.rule_id
    return None


def to_warn(decision: Decision) -> Decision:
    """Downgrade a Deny to a Warn with the same rule and reason."""
    if isinstance(decision, Deny):
        return Warn(decision.rule_id, decision.reason)
    return decision


def format_message(decision: Decision) -> str:
    if isinstance(decision, Deny):
        return f"[{TOOL_NAME}:{decision.rule_id}] Blocked: {decision.reason}"
    if isinstance(decision, Warn):
        return f"[{TOOL_NAME}:{decision.rule_id}] Warning: {decision.reason}"
    return decision.reason


def hook_output(decision: Decision) -> dict:
    """
    Build the PreToolUse hook response.

    Allow -> {} (let Claude Code carry on), Deny -> permissionDecision
    "deny", Warn -> a system message only.
    """
    if isinstance(decision, Deny):
        message = format_message(decision)
        return {
            "hookSpecificOutput": {
                "hookEventName": "PreToolUse",
                "permissionDecision": "deny",
                "permissionDecisionReason": message,
            },
            "systemMessage": message,
        }
    if isinstance(decision, Warn):
        return {"systemMessage": format_message(decision)}
    return {}
