"""Mask secret values in anything shown to the user or written to logs.

Redaction is presentation hygiene only. Output of these functions is never
written back into a config file. All functions are total and non-mutating.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from typing import Any, TypeVar

T = TypeVar("T")

_MASK = "****"

# Exact key names (case-insensitive) whose values are secrets, in headers or anywhere else.
_SENSITIVE_KEY = re.compile(
    r"^(authorization|access[-_]?key|api[-_]?key|token|secret|password|pass)$",
    re.IGNORECASE,
)

# Environment variable names vary widely (MY_API_TOKEN, DB_PASS...), so env keys
# are matched by substring instead.
_ENV_SENSITIVE_KEY = re.compile(r"(token|secret|key|password|pass|auth)", re.IGNORECASE)

_ENV_CONTAINER = "env"
_ARGV_CONTAINER = "args"

# ─── Log/argv redaction ─────────────────────────────────────────

BEARER_FLAG = "--oauth2Bearer"

SENSITIVE_HEADER_KEYS: tuple[str, ...] = (
    "proxy-authorization",
    "authorization",
    "x-api-key",
    "x-auth-token",
    "x-access-token",
)

_BEARER_IN_TEXT = re.compile(r"(--oauth2Bearer(?:\s+|=))([^\s\"']+)", re.IGNORECASE)

_HEADER_ALTERNATION = "|".join(re.escape(k) for k in SENSITIVE_HEADER_KEYS)
_HEADER_LINE = re.compile(
    r"(?<![\w-])(" + _HEADER_ALTERNATION + r")(\s*:\s*)([^\r\n]+)",
    re.IGNORECASE,
)

_BEARER_VALUE = re.compile(r"^Bearer\s+\S+$", re.IGNORECASE)


def mask_secret(value: T) -> T:
    """Keep only the last 4 characters of a secret string: ``"****" + last4``.

    Non-strings and empty strings pass through. A value that already has
    the mask shape is returned unchanged so masking is idempotent even for
    secrets shorter than 4 characters.
    """
    if not isinstance(value, str) or not value:
        return value
    if value.startswith(_MASK) and len(value) <= len(_MASK) + 4:
        return value
    return _MASK + value[-4:]  # type: ignore[return-value]


def redact(value: T) -> T:
    """Return a copy of *value* with sensitive values masked.

    Keys are never dropped or renamed; only the values of sensitive keys
    change. Inside an ``env`` mapping the broader substring rule applies,
    and an ``args`` list is redacted like a command line.
    """
    return _redact_node(value, in_env=False)


def _redact_node(node: Any, *, in_env: bool) -> Any:
    if isinstance(node, Mapping):
        out: dict[Any, Any] = {}
        for key, child in node.items():
            key_text = str(key)
            sensitive = bool(_SENSITIVE_KEY.match(key_text)) or (
                in_env and bool(_ENV_SENSITIVE_KEY.search(key_text))
            )
            if sensitive and isinstance(child, str):
                out[key] = mask_secret(child)
            elif key_text == _ARGV_CONTAINER and isinstance(child, list):
                out[key] = redact_argv(child)
            else:
                out[key] = _redact_node(child, in_env=key_text.lower() == _ENV_CONTAINER)
        return out
    if isinstance(node, list):
        return [_redact_node(item, in_env=False) for item in node]
    if isinstance(node, tuple):
        return tuple(_redact_node(item, in_env=False) for item in node)
    if isinstance(node, (str, int, float, bool)) or node is None:
        return node
    return copy.deepcopy(node)


def redact_text(text: str) -> str:
    """Redact bearer flags and ``Header: value`` lines inside free text."""
    out = _BEARER_IN_TEXT.sub(r"\1<redacted:bearer>", text)
    return _HEADER_LINE.sub(
        lambda m: f"{m.group(1)}{m.group(2)}<redacted:{m.group(1).lower()}>", out
    )


def redact_argv(argv: list[Any]) -> list[Any]:
    """Redact an argv list: the element after ``--oauth2Bearer`` is masked."""
    out: list[Any] = []
    skip_next = False
    for part in argv:
        if skip_next:
            out.append("<redacted:bearer>" if isinstance(part, str) else part)
            skip_next = False
            continue
        if isinstance(part, str) and part.lower() == BEARER_FLAG.lower():
            out.append(part)
            skip_next = True
            continue
        out.append(redact_text(part) if isinstance(part, str) else part)
    return out


def redact_for_logs(value: T) -> T:
    """Redact a string, argv list, or mapping for logs and previews.

    Secrets become fixed placeholders such as ``<redacted:bearer>``; an
    ``Authorization: Bearer`` scheme stays visible.
    """
    if isinstance(value, str):
        return redact_text(value)  # type: ignore[return-value]
    if isinstance(value, list):
        return redact_argv(value)  # type: ignore[return-value]
    if isinstance(value, Mapping):
        return _redact_mapping_for_logs(value)  # type: ignore[return-value]
    return value


def _redact_mapping_for_logs(mapping: Mapping[Any, Any]) -> dict[Any, Any]:
    out: dict[Any, Any] = {}
    for key, child in mapping.items():
        if isinstance(child, Mapping):
            out[key] = _redact_mapping_for_logs(child)
            continue
        if isinstance(child, list):
            out[key] = redact_argv(child)
            continue
        if not isinstance(child, str):
            out[key] = child
            continue

        key_lower = str(key).lower()
        if key_lower == "authorization":
            out[key] = (
                "Bearer <redacted:authorization>"
                if _BEARER_VALUE.match(child)
                else "<redacted:authorization>"
            )
        elif key_lower in SENSITIVE_HEADER_KEYS:
            out[key] = f"<redacted:{key_lower}>"
        elif _BEARER_VALUE.match(child):
            out[key] = "Bearer <redacted:authorization>"
        else:
            out[key] = redact_text(child)
    return out
