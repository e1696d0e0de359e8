#!/usr/bin/env python3
"""
File path checking for Read, Edit and Write.

Paths are matched against the secret path rules (.env, SSH keys, cloud
credentials, ...). .env.example, id_rsa.pub and similar stay readable.
"""

import re
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from decision import Allow, Decision, Deny
from rules import RuleSet, SafetyLevel


def normalize_path(path: str) -> str:
    """Expand a leading ~ and use forward slashes."""
    path = path.replace("\\", "/")
    if path == "~":
        return str(Path.home()).replace("\\", "/")
    if path.startswith("~/"):
        return str(Path.home()).replace("\\", "/") + path[1:]
    return path


def check_path(file_path: str, safety_level: SafetyLevel, secret_rules: RuleSet) -> Decision:
    rule = secret_rules.first_match(normalize_path(file_path), safety_level)
    if rule is not None:
        return Deny(rule.id, rule.reason)
    return Allow("file path passed all checks")


def compile_protected_patterns(patterns: Iterable[str]) -> List[Tuple[str, "re.Pattern[str]"]]:
    """Compile user protected-path patterns, skipping (and reporting) invalid ones."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append((pattern, re.compile(pattern)))
        except re.error as e:
            print(f"Warning: Invalid protected path pattern '{pattern}': {e}", file=sys.stderr)
    return compiled


def is_protected_path(
    file_path: str, patterns: Iterable[Tuple[str, "re.Pattern[str]"]]
) -> Optional[str]:
    """Return the first pattern from compile_protected_patterns() matching the path, or None."""
    normalized = normalize_path(file_path)
    for pattern, regex in patterns:
        if regex.search(normalized):
            return pattern
    return None
