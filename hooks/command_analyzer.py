#!/usr/bin/env python3
"""
Grammar-based command analysis.

Uses bashlex (a port of bash's own parser) to turn a command line into a
syntax tree, then walks the tree to find every simple command, including
those nested in $(...), `...`, <(...), subshells, groups, loops and function
bodies. Quoting is resolved by the parser, so ba'sh' and "rm" come out as
bash and rm.

If bashlex cannot parse the text the analysis comes back with parsed=False
and the caller falls back to the regex detectors in shell_tokens.py.
"""

import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import bashlex

from shell_tokens import is_script_interpreter, is_shell_interpreter
from wrappers import DEFAULT_WRAPPERS, unwrap_tokens

# Deepest syntax tree the walker will descend into. Anything deeper is
# reported as unparsed and handled by the fallback detectors.
MAX_NESTING_DEPTH = 64

# Builtins that run their arguments as code
_EVAL_BUILTINS = frozenset({"eval", "exec"})

_EXPANSION_KINDS = frozenset({"parameter", "commandsubstitution", "processsubstitution"})

# Attributes bashlex uses for child nodes
_CHILD_LIST_ATTRS = ("parts", "list")
_CHILD_NODE_ATTRS = ("command", "output", "body")


@dataclass
class NormalizedCommand:
    name: str
    full_command: str
    is_dynamic: bool = False
    arguments: List[str] = field(default_factory=list)

    @property
    def normalized_text(self) -> str:
        """Name and arguments with quoting removed, joined by single spaces."""
        return " ".join([self.name] + self.arguments)


@dataclass
class CommandAnalysis:
    commands: List[NormalizedCommand] = field(default_factory=list)
    has_dynamic_command: bool = False
    has_pipe_to_shell: bool = False
    has_pipe_to_interpreter: bool = False
    parsed: bool = True
    error: Optional[str] = None

    @classmethod
    def unparsed(cls, error: str) -> "CommandAnalysis":
        return cls(parsed=False, error=error)


class _TooDeep(Exception):
    pass


def _children(node) -> List:
    children = []
    for attr in _CHILD_LIST_ATTRS:
        value = getattr(node, attr, None)
        if isinstance(value, list):
            children.extend(value)
    for attr in _CHILD_NODE_ATTRS:
        value = getattr(node, attr, None)
        if value is not None and hasattr(value, "kind"):
            children.append(value)
    return children


def _walk(roots: Iterable) -> Iterable:
    """Yield every node under `roots` once. Raises _TooDeep past MAX_NESTING_DEPTH."""
    stack: List[Tuple[object, int]] = [(root, 0) for root in reversed(list(roots))]
    seen = set()
    while stack:
        node, depth = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        if depth > MAX_NESTING_DEPTH:
            raise _TooDeep(f"command nesting deeper than {MAX_NESTING_DEPTH}")
        yield node
        for child in reversed(_children(node)):
            stack.append((child, depth + 1))


def _has_unquoted_expansion(raw: str) -> bool:
    """Look for $ or ` outside single quotes in raw word text."""
    in_single = False
    in_double = False
    i = 0
    while i < len(raw):
        char = raw[i]
        if char == "\\" and not in_single:
            i += 2
            continue
        if char == "'" and not in_double:
            in_single = not in_single
        elif char == '"' and not in_single:
            in_double = not in_double
        elif char in ("$", "`") and not in_single:
            return True
        i += 1
    return False


def _word_is_dynamic(source: str, word) -> bool:
    for part in getattr(word, "parts", None) or []:
        if part.kind in _EXPANSION_KINDS:
            return True
    start, end = word.pos
    return _has_unquoted_expansion(source[start:end])


def _command_words(node) -> List:
    return [part for part in node.parts if part.kind == "word"]


def _effective_word_index(words: List, wrappers: Iterable[str]) -> Optional[int]:
    """Index of the word that actually runs once wrappers are peeled off."""
    tokens = [w.word for w in words]
    remaining = unwrap_tokens(tokens, wrappers)
    if not remaining:
        return None
    return len(tokens) - len(remaining)


def _normalize(source: str, node, wrappers: Iterable[str]) -> Optional[NormalizedCommand]:
    words = _command_words(node)
    if not words:
        # Assignment- or redirect-only command
        return None

    name_word = words[0]
    is_dynamic = _word_is_dynamic(source, name_word)

    effective = _effective_word_index(words, wrappers)
    if effective is not None and effective > 0:
        is_dynamic = is_dynamic or _word_is_dynamic(source, words[effective])

    effective_name = words[effective].word if effective is not None else name_word.word
    if os.path.basename(effective_name) in _EVAL_BUILTINS:
        start = (effective or 0) + 1
        if any(_word_is_dynamic(source, w) for w in words[start:]):
            is_dynamic = True

    start, end = node.pos
    return NormalizedCommand(
        name=name_word.word,
        full_command=source[start:end],
        is_dynamic=is_dynamic,
        arguments=[w.word for w in words[1:]],
    )


def _program_name(words: List, wrappers: Iterable[str]) -> Optional[str]:
    """Lower-cased basename of the program a command really runs."""
    tokens = unwrap_tokens([w.word for w in words], list(wrappers) + ["env"])
    if not tokens:
        return None
    return os.path.basename(tokens[0]).lower()


def _classify_pipeline(pipeline, wrappers: Iterable[str]) -> Tuple[bool, bool]:
    """(to_shell, to_interpreter) for the final stage of a pipeline."""
    stages = [p for p in pipeline.parts if p.kind != "pipe"]
    if len(stages) < 2:
        return False, False

    last = stages[-1]
    if last.kind == "command":
        command_nodes = [last]
    else:
        # (...) or { ...; } as the final stage: look at what runs inside
        command_nodes = [n for n in _walk([last]) if n.kind == "command"]

    to_shell = to_interpreter = False
    for node in command_nodes:
        name = _program_name(_command_words(node), wrappers)
        if not name:
            continue
        if is_shell_interpreter(name):
            to_shell = True
        elif is_script_interpreter(name):
            to_interpreter = True
    return to_shell, to_interpreter


def analyze_command(source: str, wrappers: Iterable[str] = DEFAULT_WRAPPERS) -> CommandAnalysis:
    """
    Parse a command line and describe every command it would run.

    Never raises: anything bashlex cannot handle (syntax errors, arithmetic
    expansion, case statements, runaway nesting) produces parsed=False.
    """
    if not source.strip():
        return CommandAnalysis.unparsed("empty command")

    wrappers = list(wrappers)
    try:
        trees = bashlex.parse(source)
    except Exception as e:
        return CommandAnalysis.unparsed(f"{type(e).__name__}: {e}")

    analysis = CommandAnalysis()
    try:
        for node in _walk(trees):
            if node.kind == "command":
                command = _normalize(source, node, wrappers)
                if command is not None:
                    analysis.commands.append(command)
            elif node.kind == "pipeline":
                to_shell, to_interpreter = _classify_pipeline(node, wrappers)
                analysis.has_pipe_to_shell |= to_shell
                analysis.has_pipe_to_interpreter |= to_interpreter
    except _TooDeep as e:
        return CommandAnalysis.unparsed(str(e))

    analysis.has_dynamic_command = any(c.is_dynamic for c in analysis.commands)
    return analysis


def has_command(analysis: CommandAnalysis, name: str) -> bool:
    """Does the analysis contain `name`, either bare or as a path ending in /name?"""
    name = name.lower()
    for command in analysis.commands:
        candidate = command.name.lower()
        if candidate == name or candidate.endswith("/" + name):
            return True
    return False


def command_names(analysis: CommandAnalysis) -> List[str]:
    return [command.name for command in analysis.commands]
