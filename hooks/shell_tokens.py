#!/usr/bin/env python3
"""
Shell tokenizing and splitting helpers.

These work on raw text and never fail. They back the grammar-based analyzer
(command_analyzer.py) and are the whole story when bashlex cannot parse a
command, so the fallback detectors here lean towards blocking.
"""

import os
import re
import shlex
from typing import List, Optional


def tokenize(command: str) -> Optional[List[str]]:
    """
    Split a command into words using POSIX shell quoting rules.

    Returns None when the quoting is unbalanced.
    """
    try:
        return shlex.split(command)
    except ValueError:
        return None


def base_command(command: str) -> Optional[str]:
    """First word of the command, without any directory prefix."""
    tokens = tokenize(command)
    if not tokens:
        return None
    return os.path.basename(tokens[0])


def split_compound(command: str) -> List[str]:
    """
    Split a command on ;, &&, || and newlines that sit outside quotes.

    A single | (pipe) or & (background) does not split. Parts are stripped,
    empty parts are kept; callers skip them.
    """
    parts = []
    current = ""
    i = 0
    quote_char = None

    while i < len(command):
        char = command[i]

        if char == "\\" and quote_char != "'" and i + 1 < len(command):
            current += command[i:i + 2]
            i += 2
            continue

        if quote_char:
            if char == quote_char:
                quote_char = None
            current += char
            i += 1
            continue

        if char in ('"', "'"):
            quote_char = char
            current += char
            i += 1
            continue

        two_char = command[i:i + 2]
        if two_char in ("&&", "||"):
            parts.append(current.strip())
            current = ""
            i += 2
            continue

        if char in (";", "\n"):
            parts.append(current.strip())
            current = ""
            i += 1
            continue

        current += char
        i += 1

    parts.append(current.strip())
    return parts


def split_pipeline(command: str) -> List[str]:
    """
    Split one compound part on unquoted | (and |&) into pipeline stages.

    Meant for the output of split_compound(); a || that survives there is
    treated as two pipes.
    """
    stages = []
    current = ""
    i = 0
    quote_char = None

    while i < len(command):
        char = command[i]

        if char == "\\" and quote_char != "'" and i + 1 < len(command):
            current += command[i:i + 2]
            i += 2
            continue

        if quote_char:
            if char == quote_char:
                quote_char = None
            current += char
            i += 1
            continue

        if char in ('"', "'"):
            quote_char = char
            current += char
            i += 1
            continue

        if char == "|":
            stages.append(current.strip())
            current = ""
            i += 2 if command[i + 1:i + 2] == "&" else 1
            continue

        current += char
        i += 1

    stages.append(current.strip())
    return stages


# === INTERPRETERS ===

SHELL_INTERPRETERS = frozenset({
    "sh", "bash", "zsh", "dash", "ksh", "csh", "tcsh", "fish", "ash", "busybox",
})

SCRIPT_INTERPRETERS = frozenset({
    "python", "python2", "python3", "ruby", "perl", "node", "nodejs", "php",
})

_VERSIONED_PYTHON = re.compile(r"^python\d+(\.\d+)*$")


def is_shell_interpreter(name: str) -> bool:
    return os.path.basename(name).lower() in SHELL_INTERPRETERS


def is_script_interpreter(name: str) -> bool:
    base = os.path.basename(name).lower()
    return base in SCRIPT_INTERPRETERS or bool(_VERSIONED_PYTHON.match(base))


# === FALLBACK DETECTORS ===
# Used when the grammar parser gives up. Regex over raw text only.

VARIABLE_EXECUTION_PATTERNS = [
    re.compile(r"^\s*\$\w+(\s|$)"),       # $cmd args
    re.compile(r"^\s*\$\{\w+\}"),         # ${cmd} args
    re.compile(r"^\s*\$\("),              # $(whoami)
    re.compile(r"^\s*`"),                 # `id`
    re.compile(r"\beval\s+.*\$"),         # eval $x, eval "$(...)"
    re.compile(r"\beval\s+.*`"),
]

PIPE_TO_SHELL_PATTERNS = [
    re.compile(r"\|\s*(sudo\s+)?(\S*/)?(ba|z|da|k|c|tc|fi)?sh\b"),
    re.compile(r"\|\s*(\S*/)?env\s+(\S*/)?(ba|z|da|k)?sh\b"),
    re.compile(r"\|\s*xargs\s+(-\S+\s+)*(\S*/)?(ba|z|da|k)?sh\b"),
    re.compile(r"\|\s*(source|\.)\s"),
]

PIPE_TO_INTERPRETER_PATTERNS = [
    re.compile(r"\|\s*(sudo\s+)?(\S*/)?(env\s+)?(python[0-9.]*|ruby|perl|node|nodejs|php)\b"),
    re.compile(r"\|\s*xargs\s+(-\S+\s+)*(\S*/)?(python[0-9.]*|ruby|perl|node|nodejs|php)\b"),
]

ENV_HIJACK_PATTERNS = [
    re.compile(r"\bLD_PRELOAD\s*="),
    re.compile(r"\bLD_LIBRARY_PATH\s*="),
    re.compile(r"\bDYLD_INSERT_LIBRARIES\s*="),
    re.compile(r"\bDYLD_LIBRARY_PATH\s*="),
    re.compile(r"\bPATH\s*=\s*[\"']?(/tmp|/var/tmp|\./|\.:)"),
    re.compile(r"\bCMDGUARD_DISABLED\s*="),
    re.compile(r"\bCMDGUARD_WARN_ONLY\s*="),
]


def has_variable_execution(command: str) -> bool:
    """Does the text run a command whose name comes from a variable or substitution?"""
    return any(p.search(command) for p in VARIABLE_EXECUTION_PATTERNS)


def has_pipe_to_shell(command: str) -> bool:
    return any(p.search(command) for p in PIPE_TO_SHELL_PATTERNS)


def has_pipe_to_interpreter(command: str) -> bool:
    return any(p.search(command) for p in PIPE_TO_INTERPRETER_PATTERNS)


def has_dangerous_pipe(command: str) -> bool:
    """Text-level check for piping into a shell or script interpreter."""
    return has_pipe_to_shell(command) or has_pipe_to_interpreter(command)


def has_env_hijacking(command: str) -> bool:
    """
    Does the command set a loader variable, a hostile PATH, or try to
    switch cmdguard itself off through the environment?
    """
    return any(p.search(command) for p in ENV_HIJACK_PATTERNS)
