"""Utilities for redacting credentials before they reach logs or error payloads."""

from __future__ import annotations

import re
import typing
from collections.abc import Mapping, Sequence, Set as AbstractSet
from typing import Any

_REDACTION_PLACEHOLDER = "[redacted]"
_ELLIPSIS = "…"

# Salesforce access tokens and session ids: 15 character org id, "!", opaque tail.
_SESSION_ID_PATTERN = re.compile(r"\b00D[A-Za-z0-9]{12,15}![A-Za-z0-9._]+")
_SFDX_AUTH_URL_PATTERN = re.compile(r"force://\S+")
_BEARER_PATTERN = re.compile(r"(?i)\b(bearer\s+)[A-Za-z0-9._~+/=-]+")
_SECRET_FLAG_PATTERN = re.compile(
    r"(?i)(--(?:password|client-secret|access-token|sfdx-url)(?:=|\s+))(\S+)",
)
_EMAIL_PATTERN = re.compile(r"(?i)\b[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}\b")
# Opaque tokens mix digits with upper and lower case letters; paths and words do not.
_LONG_TOKEN_PATTERN = re.compile(
    r"\b(?=[A-Za-z0-9+/_-]*[0-9])(?=[A-Za-z0-9+/_-]*[a-z])(?=[A-Za-z0-9+/_-]*[A-Z])"
    r"[A-Za-z0-9+/_-]{40,}={0,2}",
)


def mask_secrets(text: str, *, max_length: int = 2048) -> str:
    """Redact credential-like values from *text* and enforce a length ceiling."""
    masked = _SESSION_ID_PATTERN.sub(_REDACTION_PLACEHOLDER, text)
    masked = _SFDX_AUTH_URL_PATTERN.sub(_REDACTION_PLACEHOLDER, masked)
    masked = _BEARER_PATTERN.sub(rf"\g<1>{_REDACTION_PLACEHOLDER}", masked)
    masked = _SECRET_FLAG_PATTERN.sub(rf"\g<1>{_REDACTION_PLACEHOLDER}", masked)
    masked = _EMAIL_PATTERN.sub(_REDACTION_PLACEHOLDER, masked)
    masked = _LONG_TOKEN_PATTERN.sub(_REDACTION_PLACEHOLDER, masked)

    if max_length > 0 and len(masked) > max_length:
        return masked[:max_length] + _ELLIPSIS
    return masked


def scrub_for_logging(value: Any, *, max_length: int = 2048) -> Any:
    """Return a structure safe for logging by masking nested string values."""
    if isinstance(value, str):
        processed: Any = mask_secrets(value, max_length=max_length)
    elif isinstance(value, bytes):
        processed = mask_secrets(value.decode("utf-8", errors="replace"), max_length=max_length)
    elif isinstance(value, Mapping):
        processed_mapping: dict[Any, Any] = {}
        mapping_items = typing.cast("Mapping[Any, Any]", value)
        for key, item in mapping_items.items():
            processed_mapping[key] = scrub_for_logging(item, max_length=max_length)
        processed = processed_mapping
    elif isinstance(value, tuple):
        tuple_items = typing.cast("tuple[Any, ...]", value)
        processed = tuple(
            scrub_for_logging(item, max_length=max_length) for item in tuple_items
        )
    elif isinstance(value, AbstractSet):
        set_items = typing.cast("AbstractSet[Any]", value)
        processed = {scrub_for_logging(item, max_length=max_length) for item in set_items}
    elif isinstance(value, Sequence):
        sequence_items = typing.cast("Sequence[Any]", value)
        processed = [
            scrub_for_logging(item, max_length=max_length) for item in sequence_items
        ]
    else:
        processed = value
    return processed


__all__ = ["mask_secrets", "scrub_for_logging"]
