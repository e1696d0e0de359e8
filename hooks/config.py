#!/usr/bin/env python3
"""
cmdguard configuration.

Looked up in order, first readable file wins:
  ~/.cmdguard/config.yaml
  /etc/cmdguard/config.yaml

Every key is optional; see DEFAULT_CONFIG_YAML for the full layout. A file
that fails to parse or validate is reported on stderr and skipped.
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import ValidationError, validate

from rules import DEFAULT_SAFETY_LEVEL, SafetyLevel
from wrappers import DEFAULT_WRAPPERS

STATE_DIR = Path.home() / ".cmdguard"
USER_CONFIG_FILE = STATE_DIR / "config.yaml"
SYSTEM_CONFIG_FILE = Path("/etc/cmdguard/config.yaml")
CONFIG_PATHS = [USER_CONFIG_FILE, SYSTEM_CONFIG_FILE]

DEFAULT_AUDIT_PATH = "~/.cmdguard/audit.jsonl"
DEFAULT_ALLOWLIST_FILE = "~/.cmdguard/allow.yaml"

DEFAULT_CONFIG_YAML = """\
general:
  safety_level: high
  audit_log: true
  audit_path: ~/.cmdguard/audit.jsonl
overrides:
  allowlist_file: ~/.cmdguard/allow.yaml
bash:
  wrappers: [sudo, timeout, xargs, env, nice, nohup, ionice, strace, time, unbuffer, watch, caffeinate, doas]
  block_variable_commands: true
  block_pipe_to_shell: true
files:
  protected_patterns: []
"""

_STRING_OR_NULL = {"type": ["string", "null"]}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "general": {
            "type": "object",
            "properties": {
                "safety_level": {
                    "type": "string",
                    "enum": ["critical", "high", "strict", "Critical", "High", "Strict"],
                },
                "audit_log": {"type": "boolean"},
                "audit_path": _STRING_OR_NULL,
            },
        },
        "overrides": {
            "type": "object",
            "properties": {"allowlist_file": _STRING_OR_NULL},
        },
        "bash": {
            "type": "object",
            "properties": {
                "wrappers": {"type": "array", "items": {"type": "string"}},
                "block_variable_commands": {"type": "boolean"},
                "block_pipe_to_shell": {"type": "boolean"},
            },
        },
        "files": {
            "type": "object",
            "properties": {
                "protected_patterns": {"type": "array", "items": {"type": "string"}},
            },
        },
    },
}


class ConfigError(Exception):
    """A configuration file could not be read or is invalid."""


def expand_path(path: str) -> Path:
    """Expand a leading ~/ to the home directory."""
    if path == "~" or path.startswith("~/"):
        return Path.home() / path[2:]
    return Path(path)


@dataclass
class GeneralConfig:
    safety_level: SafetyLevel = DEFAULT_SAFETY_LEVEL
    audit_log: bool = True
    audit_path: Optional[str] = DEFAULT_AUDIT_PATH


@dataclass
class OverrideConfig:
    allowlist_file: Optional[str] = DEFAULT_ALLOWLIST_FILE


@dataclass
class BashConfig:
    wrappers: List[str] = field(default_factory=lambda: list(DEFAULT_WRAPPERS))
    block_variable_commands: bool = True
    block_pipe_to_shell: bool = True


@dataclass
class FilesConfig:
    # Extra regexes denied for Read/Edit/Write on top of the secret path rules
    protected_patterns: List[str] = field(default_factory=list)


@dataclass
class Config:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    overrides: OverrideConfig = field(default_factory=OverrideConfig)
    bash: BashConfig = field(default_factory=BashConfig)
    files: FilesConfig = field(default_factory=FilesConfig)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Config":
        """Build a Config from a loaded YAML document. Raises ConfigError."""
        if data is None:
            return cls()
        try:
            validate(instance=data, schema=CONFIG_SCHEMA)
        except ValidationError as e:
            location = "/".join(str(p) for p in e.absolute_path) or "<root>"
            raise ConfigError(f"{location}: {e.message}") from e

        general = data.get("general") or {}
        overrides = data.get("overrides") or {}
        bash = data.get("bash") or {}
        files = data.get("files") or {}

        config = cls()
        if "safety_level" in general:
            config.general.safety_level = SafetyLevel.from_str(general["safety_level"])
        if "audit_log" in general:
            config.general.audit_log = general["audit_log"]
        if "audit_path" in general:
            config.general.audit_path = general["audit_path"]
        if "allowlist_file" in overrides:
            config.overrides.allowlist_file = overrides["allowlist_file"]
        if "wrappers" in bash:
            config.bash.wrappers = list(bash["wrappers"])
        if "block_variable_commands" in bash:
            config.bash.block_variable_commands = bash["block_variable_commands"]
        if "block_pipe_to_shell" in bash:
            config.bash.block_pipe_to_shell = bash["block_pipe_to_shell"]
        if "protected_patterns" in files:
            config.files.protected_patterns = list(files["protected_patterns"])
        return config

    def audit_file(self) -> Optional[Path]:
        if not self.general.audit_log or not self.general.audit_path:
            return None
        return expand_path(self.general.audit_path)

    def allowlist_file(self) -> Optional[Path]:
        if not self.overrides.allowlist_file:
            return None
        return expand_path(self.overrides.allowlist_file)


def load_config_file(path: Path) -> Config:
    """Load one config file. Raises ConfigError if it cannot be used."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (IOError, OSError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    return Config.from_dict(data)


def load_config(paths: Optional[List[Path]] = None) -> Config:
    """Return the first usable config among `paths`, else the defaults."""
    for path in CONFIG_PATHS if paths is None else paths:
        path = Path(path)
        if not path.exists():
            continue
        try:
            return load_config_file(path)
        except ConfigError as e:
            print(f"Warning: Failed to load config, skipping: {e}", file=sys.stderr)
    return Config()
