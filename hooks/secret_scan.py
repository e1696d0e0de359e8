#!/usr/bin/env python3
"""Detect and redact secret values (API keys, tokens, passwords) in text."""

import re

REDACTED = "[REDACTED]"

SECRET_VALUE_PATTERNS = [
    # API keys and tokens
    re.compile(r"api[_-]?key\s*[=:]\s*['\"]?[a-zA-Z0-9_]{16,}", re.IGNORECASE),
    re.compile(r"secret[_-]?key\s*[=:]\s*['\"]?[a-zA-Z0-9_]{16,}", re.IGNORECASE),
    re.compile(r"access[_-]?token\s*[=:]\s*['\"]?[a-zA-Z0-9_]{16,}", re.IGNORECASE),
    # AWS
    re.compile(r"AKIA[0-9A-Z]{16}"),
    re.compile(r"aws[_-]?secret[_-]?access[_-]?key\s*[=:]\s*['\"]?[0-9a-zA-Z/+]{20,}", re.IGNORECASE),
    # GitHub
    re.compile(r"gh[pousr]_[A-Za-z0-9_]{36,}"),
    re.compile(r"github_pat_[A-Za-z0-9_]{22,}"),
    # Inline passwords
    re.compile(r"(password|passwd|pwd)\s*[=:]\s*['\"][^'\"]+['\"]", re.IGNORECASE),
]


def contains_secret(text: str) -> bool:
    return any(p.search(text) for p in SECRET_VALUE_PATTERNS)


def redact_secrets(text: str) -> str:
    for pattern in SECRET_VALUE_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text
