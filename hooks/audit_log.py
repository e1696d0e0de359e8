#!/usr/bin/env python3
"""
JSONL audit log of cmdguard decisions.

One JSON object per line:
  {"timestamp": "...", "level": "BLOCKED", "tool": "Bash", "rule_id": "rm-root",
   "input_summary": "Bash: rm -rf /", "reason": "...", "session_id": "..."}

Secrets in the input summary are redacted. Logging failure never blocks
the hook.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from decision import Decision, Deny, Warn, rule_id_of
from hook_input import HookInput
from secret_scan import redact_secrets

ALLOWED = "ALLOWED"
BLOCKED = "BLOCKED"
WARN = "WARN"
DISABLED = "DISABLED"

# Truncate very long summaries
MAX_SUMMARY_LENGTH = 500


def level_for(decision: Decision, disabled: bool = False) -> str:
    if disabled:
        return DISABLED
    if isinstance(decision, Deny):
        return BLOCKED
    if isinstance(decision, Warn):
        return WARN
    return ALLOWED


def build_entry(
    hook_input: HookInput,
    decision: Decision,
    disabled: bool = False,
) -> dict:
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level_for(decision, disabled),
        "tool": hook_input.tool_name,
        "input_summary": redact_secrets(hook_input.summary())[:MAX_SUMMARY_LENGTH],
        "reason": decision.reason,
    }
    rule_id = rule_id_of(decision)
    if rule_id is not None:
        entry["rule_id"] = rule_id
    if hook_input.session_id:
        entry["session_id"] = hook_input.session_id
    return entry


class AuditLogger:
    """Appends decisions to a JSONL file. A None path disables logging."""

    def __init__(self, path: Optional[Path]):
        self.path = Path(path) if path is not None else None

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def log(self, hook_input: HookInput, decision: Decision, disabled: bool = False) -> bool:
        """Write one entry. Returns False if the entry could not be written."""
        if self.path is None:
            return False
        entry = build_entry(hook_input, decision, disabled)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except (IOError, OSError) as e:
            # Logging failure shouldn't block operation
            print(f"Warning: Could not write to audit log: {e}", file=sys.stderr)
            return False
        return True
