#!/usr/bin/env python3
"""
Bash command checking.

Layer 1: grammar analysis (command_analyzer.py) catches obfuscation:
         dynamic command names, pipes into interpreters.
Layer 2: rule matching on every command found, after unwrapping sudo,
         timeout, env and friends.
Layer 3: rule matching on the raw ;/&&/|| parts, for patterns that span
         pipes or that the grammar pass does not surface.

If bashlex cannot parse the command, a text-level fallback runs instead:
the same checks on every part and pipeline stage, using regexes, shlex
and the wrapper unwrapper.
First verdict wins.
"""

from typing import Iterable, List, Optional, Tuple

from command_analyzer import analyze_command
from decision import Allow, Decision, Deny
from rules import RuleSet, SafetyLevel
from shell_tokens import (
    has_env_hijacking,
    has_pipe_to_interpreter,
    has_pipe_to_shell,
    has_variable_execution,
    is_script_interpreter,
    is_shell_interpreter,
    split_compound,
    split_pipeline,
    tokenize,
)
from wrappers import DEFAULT_WRAPPERS, unwrap_command, unwrap_tokens

DYNAMIC_COMMAND = Deny(
    "dynamic-command",
    "Dynamic command execution detected (variable or command substitution in command position)",
)
PIPE_TO_SHELL = Deny("pipe-to-shell", "Piping to shell interpreter is blocked for security")
PIPE_TO_INTERPRETER = Deny(
    "pipe-to-interpreter", "Piping to script interpreter is blocked for security"
)
ENV_HIJACKING = Deny("env-hijacking", "Environment variable hijacking detected")


def _candidates(text: str, wrappers: List[str], normalized: Optional[str] = None) -> List[str]:
    """
    Texts to match rules against, without duplicates: unwrapped variants of
    the quote-normalized form, unwrapped variants of `text`, then `text`.
    """
    variants = []
    if normalized is not None:
        variants.extend(unwrap_command(normalized, wrappers))
    variants.extend(unwrap_command(text, wrappers))
    variants.append(text)

    candidates = []
    for candidate in variants:
        if candidate not in candidates:
            candidates.append(candidate)
    return candidates


def _match_rules(
    candidates: List[str],
    safety_level: SafetyLevel,
    dangerous_rules: RuleSet,
    exfiltration_rules: RuleSet,
) -> Optional[Decision]:
    rule = dangerous_rules.first_match_any(candidates, safety_level)
    if rule is None:
        rule = exfiltration_rules.first_match_any(candidates, safety_level)
    if rule is None:
        return None
    return Deny(rule.id, rule.reason)


def _check_parts(
    command: str,
    safety_level: SafetyLevel,
    dangerous_rules: RuleSet,
    exfiltration_rules: RuleSet,
    wrappers: List[str],
) -> Optional[Decision]:
    for part in split_compound(command):
        if not part:
            continue
        decision = _match_rules(
            _candidates(part, wrappers), safety_level, dangerous_rules, exfiltration_rules
        )
        if decision is not None:
            return decision
    return None


def check_command(
    command: str,
    safety_level: SafetyLevel,
    dangerous_rules: RuleSet,
    exfiltration_rules: RuleSet,
    wrappers: Iterable[str] = DEFAULT_WRAPPERS,
    block_variable_commands: bool = True,
    block_pipe_to_shell: bool = True,
) -> Decision:
    """
    Decide whether a shell command may run.

    The allowlist and the CMDGUARD_* environment switches are handled by
    the caller (engine.SecurityEngine); this function only looks at the text.
    """
    wrappers = list(wrappers)
    analysis = analyze_command(command, wrappers)
    if not analysis.parsed:
        return check_command_fallback(
            command, safety_level, dangerous_rules, exfiltration_rules, wrappers,
            block_variable_commands, block_pipe_to_shell,
        )

    if block_variable_commands and analysis.has_dynamic_command:
        return DYNAMIC_COMMAND

    if block_pipe_to_shell and analysis.has_pipe_to_shell:
        return PIPE_TO_SHELL
    if block_pipe_to_shell and analysis.has_pipe_to_interpreter:
        return PIPE_TO_INTERPRETER

    if has_env_hijacking(command):
        return ENV_HIJACKING

    for normalized in analysis.commands:
        decision = _match_rules(
            _candidates(normalized.full_command, wrappers, normalized.normalized_text),
            safety_level, dangerous_rules, exfiltration_rules,
        )
        if decision is not None:
            return decision

    decision = _check_parts(command, safety_level, dangerous_rules, exfiltration_rules, wrappers)
    if decision is not None:
        return decision

    return Allow("passed all checks")


def _stage_is_dynamic(stage: str, wrappers: List[str]) -> bool:
    if has_variable_execution(stage):
        return True
    tokens = tokenize(stage)
    if not tokens:
        return False
    remaining = unwrap_tokens(tokens, wrappers)
    if not remaining or len(remaining) == len(tokens):
        return False
    # Quoting is gone after tokenizing, so '$x' behind a wrapper counts too
    return "$" in remaining[0] or "`" in remaining[0]


def _fallback_dynamic(command: str, wrappers: List[str]) -> bool:
    """Variable execution in any ;/&&/|| part or any pipeline stage."""
    if has_variable_execution(command):
        return True
    for part in split_compound(command):
        for stage in split_pipeline(part):
            if stage and _stage_is_dynamic(stage, wrappers):
                return True
    return False


def _fallback_pipe_targets(command: str, wrappers: List[str]) -> Tuple[bool, bool]:
    """(to_shell, to_interpreter) from the last stage of each pipeline, unwrapped."""
    to_shell = has_pipe_to_shell(command)
    to_interpreter = has_pipe_to_interpreter(command)
    for part in split_compound(command):
        stages = split_pipeline(part)
        if len(stages) < 2:
            continue
        tokens = tokenize(stages[-1])
        if not tokens:
            continue
        remaining = unwrap_tokens(tokens, wrappers + ["env"])
        if not remaining:
            continue
        if is_shell_interpreter(remaining[0]):
            to_shell = True
        elif is_script_interpreter(remaining[0]):
            to_interpreter = True
    return to_shell, to_interpreter


def check_command_fallback(
    command: str,
    safety_level: SafetyLevel,
    dangerous_rules: RuleSet,
    exfiltration_rules: RuleSet,
    wrappers: Iterable[str] = DEFAULT_WRAPPERS,
    block_variable_commands: bool = True,
    block_pipe_to_shell: bool = True,
) -> Decision:
    """Text-level checks for commands the grammar parser could not handle."""
    wrappers = list(wrappers)

    if block_variable_commands and _fallback_dynamic(command, wrappers):
        return DYNAMIC_COMMAND

    if block_pipe_to_shell:
        to_shell, to_interpreter = _fallback_pipe_targets(command, wrappers)
        if to_shell:
            return PIPE_TO_SHELL
        if to_interpreter:
            return PIPE_TO_INTERPRETER

    if has_env_hijacking(command):
        return ENV_HIJACKING

    decision = _check_parts(command, safety_level, dangerous_rules, exfiltration_rules, wrappers)
    if decision is not None:
        return decision

    return Allow("passed all checks (fallback)")
