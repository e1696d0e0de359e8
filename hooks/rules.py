#!/usr/bin/env python3
"""
Rule engine for cmdguard.

Rules are plain data (see rule_tables.py). A RuleSet compiles a list of rules
once and answers "which rule, if any, matches this text at this safety level".
"""

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


class SafetyLevel(IntEnum):
    """How aggressively to block. Each level sees every rule of the levels below it."""

    CRITICAL = 0
    HIGH = 1
    STRICT = 2

    def includes(self, other: "SafetyLevel") -> bool:
        return self >= other

    @classmethod
    def from_str(cls, value: str) -> "SafetyLevel":
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(
                f"Unknown safety level '{value}' (expected critical, high or strict)"
            ) from None

    def __str__(self) -> str:
        return self.name.lower()


DEFAULT_SAFETY_LEVEL = SafetyLevel.HIGH


@dataclass(frozen=True)
class Rule:
    id: str
    level: SafetyLevel
    pattern: str
    reason: str
    ignore_case: bool = False


class RuleCompileError(ValueError):
    """A rule pattern is not a valid regular expression."""

    def __init__(self, rule_id: str, pattern: str, error: re.error):
        super().__init__(f"Rule '{rule_id}' has invalid pattern '{pattern}': {error}")
        self.rule_id = rule_id
        self.pattern = pattern


class RuleSet:
    """An ordered, pre-compiled collection of rules."""

    def __init__(self, rules: Iterable[Rule]):
        self._compiled: List[Tuple[Rule, "re.Pattern[str]"]] = []
        for rule in rules:
            flags = re.IGNORECASE if rule.ignore_case else 0
            try:
                self._compiled.append((rule, re.compile(rule.pattern, flags)))
            except re.error as e:
                raise RuleCompileError(rule.id, rule.pattern, e) from e

    def __len__(self) -> int:
        return len(self._compiled)

    @property
    def rules(self) -> List[Rule]:
        return [rule for rule, _ in self._compiled]

    def first_match(self, text: str, level: SafetyLevel) -> Optional[Rule]:
        """
        Return the first rule (in table order) active at `level` that matches `text`.

        None means this rule set has no verdict for the text.
        """
        for rule, regex in self._compiled:
            if level.includes(rule.level) and regex.search(text):
                return rule
        return None

    def first_match_any(self, texts: Sequence[str], level: SafetyLevel) -> Optional[Rule]:
        """Try every text in order and return the first rule hit."""
        for text in texts:
            rule = self.first_match(text, level)
            if rule is not None:
                return rule
        return None


RuleTable = Dict[SafetyLevel, Sequence[Rule]]


def rules_for_level(table: RuleTable, level: SafetyLevel) -> List[Rule]:
    """
    Flatten a level-keyed table into the rules visible at `level`.

    Critical rules always come first, then High, then Strict; table order
    within each level is preserved.
    """
    rules: List[Rule] = []
    for table_level in sorted(table):
        if level.includes(table_level):
            rules.extend(table[table_level])
    return rules

