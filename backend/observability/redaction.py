"""Secrets redaction for log output.

Patterns: stats keys, API keys/secrets, JWTs, bearer tokens, MongoDB URIs
with credentials, email addresses.
"""
import re
from typing import List, Tuple

# (pattern, replacement_label)
_PATTERNS: List[Tuple[re.Pattern, str]] = [
    # Stats bridge header echoed into logs
    (re.compile(r"x-stats-key[\"']?\s*[:=]\s*[\"']?[^\s\"',}]+", re.IGNORECASE), "x-stats-key=[REDACTED]"),
    # API key patterns (generic long hex/base64)
    (re.compile(r"(?:api[_-]?key|token|secret|password)[\s:=]+[\"']?[A-Za-z0-9_\-\.]{16,}[\"']?", re.IGNORECASE), "[REDACTED_SECRET]"),
    # JWT tokens
    (re.compile(r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"), "[REDACTED_JWT]"),
    # MongoDB URI with credentials
    (re.compile(r"mongodb(?:\+srv)?://[^\s/@]+:[^\s/@]+@[^\s]+"), "[REDACTED_MONGO_URI]"),
    # Generic bearer token
    (re.compile(r"Bearer\s+[A-Za-z0-9_\-\.]+", re.IGNORECASE), "[REDACTED_BEARER]"),
    # Email
    (re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+"), "[REDACTED_EMAIL]"),
]


def redact(text: str) -> str:
    """Apply all redaction patterns to text."""
    result = text
    for pattern, replacement in _PATTERNS:
        result = pattern.sub(replacement, result)
    return result
