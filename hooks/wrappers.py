#!/usr/bin/env python3
"""
Wrapper command unwrapping.

    sudo timeout 30 nice -n 10 rm -rf /   ->   ["rm -rf /"]

A wrapper is a program whose job is to run another program (sudo, timeout,
env, xargs, ...). Rules are written against the wrapped program, so the
wrapper and its own options are peeled off first.
"""

import os
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List

from shell_tokens import tokenize

# Upper bound on nested wrappers. Past this the remainder is returned as-is
# and still goes through rule matching.
MAX_UNWRAP_DEPTH = 32


@dataclass(frozen=True)
class WrapperSpec:
    # Options whose next token is their argument (sudo -u root)
    options_with_argument: FrozenSet[str] = frozenset()
    # Positional arguments before the wrapped command (timeout DURATION)
    positional_args: int = 0
    # env-style NAME=value words before the wrapped command
    skips_assignments: bool = False


_SIMPLE_PREFIX = WrapperSpec(frozenset({"-n", "-c", "-p"}))

WRAPPER_SPECS: Dict[str, WrapperSpec] = {
    "sudo": WrapperSpec(frozenset({
        "-u", "--user", "-g", "--group", "-C", "--close-from", "-h", "--host",
    })),
    "doas": WrapperSpec(frozenset({"-u", "-C"})),
    "timeout": WrapperSpec(frozenset({"-s", "--signal", "-k", "--kill-after"}), positional_args=1),
    "env": WrapperSpec(frozenset({"-u", "--unset", "-C", "--chdir"}), skips_assignments=True),
    "xargs": WrapperSpec(frozenset({"-n", "-L", "-I", "-E", "-s", "-P", "-d", "-a"})),
    "watch": WrapperSpec(frozenset({"-n", "-d", "--interval", "--differences"})),
    "nice": _SIMPLE_PREFIX,
    "ionice": _SIMPLE_PREFIX,
    "nohup": _SIMPLE_PREFIX,
    "strace": WrapperSpec(frozenset({"-e", "-o", "-p", "-s", "-u"})),
    "time": _SIMPLE_PREFIX,
    "unbuffer": _SIMPLE_PREFIX,
    "caffeinate": WrapperSpec(frozenset({"-t", "-w"})),
}

DEFAULT_WRAPPERS: List[str] = [
    "sudo",
    "timeout",
    "xargs",
    "env",
    "nice",
    "nohup",
    "ionice",
    "strace",
    "time",
    "unbuffer",
    "watch",
    "caffeinate",  # macOS
    "doas",        # BSD sudo alternative
]


def _wrapper_name(token: str, wrappers: FrozenSet[str]) -> str:
    """Return the wrapper name for `token` ("/usr/bin/sudo" -> "sudo"), or ''."""
    name = os.path.basename(token)
    if token in wrappers:
        return token
    if name in wrappers:
        return name
    return ""


def _skip_wrapper(tokens: List[str], spec: WrapperSpec) -> List[str]:
    """Drop the wrapper token and its own options; return what it runs."""
    idx = 1
    positional = spec.positional_args
    while idx < len(tokens):
        token = tokens[idx]
        if token == "--":
            return tokens[idx + 1:]
        if token.startswith("-") and len(token) > 1:
            idx += 2 if token in spec.options_with_argument else 1
        elif spec.skips_assignments and "=" in token and not token.startswith("="):
            idx += 1
        elif positional:
            positional -= 1
            idx += 1
        else:
            return tokens[idx:]
    return []


def unwrap_tokens(tokens: List[str], wrappers: Iterable[str]) -> List[str]:
    """Peel wrappers off a token list. Empty result means a bare wrapper."""
    wrapper_set = frozenset(wrappers)
    for _ in range(MAX_UNWRAP_DEPTH):
        if not tokens:
            return tokens
        name = _wrapper_name(tokens[0], wrapper_set)
        if not name:
            return tokens
        tokens = _skip_wrapper(tokens, WRAPPER_SPECS.get(name, _SIMPLE_PREFIX))
    return tokens


def unwrap_command(command: str, wrappers: Iterable[str] = DEFAULT_WRAPPERS) -> List[str]:
    """
    Return the command(s) hidden behind wrapper programs.

    Args:
        command: Raw command text, e.g. "sudo -u root rm -rf /"
        wrappers: Wrapper program names to peel off. Names without a
                  known option table are treated as simple prefixes.

    Returns:
        A non-empty list of command strings. When the text cannot be
        tokenized, or only wrappers remain, the original text is returned.
    """
    wrappers = frozenset(wrappers)
    tokens = tokenize(command)
    if not tokens or not is_wrapper(tokens[0], wrappers):
        return [command]

    unwrapped = unwrap_tokens(tokens, wrappers)
    if not unwrapped:
        return [command]
    return [" ".join(unwrapped)]


def is_wrapper(token: str, wrappers: Iterable[str] = DEFAULT_WRAPPERS) -> bool:
    return bool(_wrapper_name(token, frozenset(wrappers)))
