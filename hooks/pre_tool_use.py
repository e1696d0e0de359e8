#!/usr/bin/env python3
"""
cmdguard: PreToolUse hook

Reads the hook payload from stdin, checks it, writes one audit entry and
prints the hook response on stdout.

Exit codes:
  0 = Success (uses JSON output for allow/deny decision)

Design principle: Fail-closed. If the payload cannot be parsed, block.
"""

import argparse
import json
import os
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import List, Optional, TextIO

from audit_log import AuditLogger
from config import Config, ConfigError, load_config, load_config_file
from decision import Decision, Deny, hook_output
from engine import WARN_ONLY_VAR, SecurityEngine
from hook_input import HookInputError, parse_hook_input
from rules import SafetyLevel

# Fail-closed: if True, unparseable hook input blocks the tool call
FAIL_CLOSED = True


def get_version() -> str:
    try:
        return version("cmdguard")
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmdguard",
        description="PreToolUse safety hook for Claude Code (reads hook JSON from stdin).",
    )
    parser.add_argument(
        "-l", "--safety-level",
        choices=["critical", "high", "strict"],
        help="override the configured safety level",
    )
    parser.add_argument(
        "-d", "--dry-run",
        action="store_true",
        help="report what would be blocked without blocking (warn only)",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help="config file to use instead of the default locations",
    )
    parser.add_argument("-v", "--version", action="version", version=f"cmdguard {get_version()}")
    return parser


def resolve_config(args: argparse.Namespace) -> Config:
    if args.config is not None:
        try:
            config = load_config_file(args.config)
        except ConfigError as e:
            print(f"Warning: {e}; using defaults", file=sys.stderr)
            config = Config()
    else:
        config = load_config()

    if args.safety_level:
        config.general.safety_level = SafetyLevel.from_str(args.safety_level)
    return config


def emit(decision: Decision, out: TextIO):
    print(json.dumps(hook_output(decision)), file=out)


def main(argv: Optional[List[str]] = None, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout
    args = build_parser().parse_args(argv)

    raw = stdin.read()
    if not raw.strip():
        print("{}", file=stdout)
        return 0

    try:
        hook_input = parse_hook_input(raw)
    except HookInputError as e:
        if FAIL_CLOSED:
            emit(Deny("parse-error", f"Could not parse hook input ({e})"), stdout)
        else:
            print("{}", file=stdout)
        return 0

    config = resolve_config(args)
    environ = None
    if args.dry_run:
        environ = dict(os.environ)
        environ[WARN_ONLY_VAR] = "1"

    engine = SecurityEngine(config, environ=environ)
    decision = engine.check(hook_input)

    AuditLogger(config.audit_file()).log(hook_input, decision, disabled=engine.is_disabled())
    emit(decision, stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
