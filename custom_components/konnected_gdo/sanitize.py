"""Log sanitisation helpers for device traffic."""

from __future__ import annotations

import re

_BASIC_RE = re.compile(r"Basic\s+[A-Za-z0-9+/]+=*", re.IGNORECASE)
_USERINFO_RE = re.compile(r"(?i)(https?://)[^/@\s]+@")
_PASSWORD_QUERY_RE = re.compile(r"(?i)(password|username)=([^&\s]+)")


def redact_text(value: str | None) -> str:
    """Return ``value`` with Basic credentials and URL user-info removed."""

    if not value:
        return ""
    text = str(value)
    redacted = _BASIC_RE.sub("Basic ***", text)
    redacted = _USERINFO_RE.sub(lambda match: f"{match.group(1)}***@", redacted)
    redacted = _PASSWORD_QUERY_RE.sub(lambda match: f"{match.group(1)}=***", redacted)
    return redacted.replace("authorization", "auth").replace("Authorization", "Auth")


def mask_identifier(value: str | None) -> str:
    """Return a masked identifier (device id / MAC) suitable for log output."""

    if value is None:
        return ""
    trimmed = str(value).strip()
    if not trimmed:
        return ""
    if len(trimmed) <= 4:
        return "***"
    if len(trimmed) <= 8:
        return f"{trimmed[:2]}...{trimmed[-2:]}"
    return f"{trimmed[:4]}...{trimmed[-4:]}"


__all__ = ["mask_identifier", "redact_text"]
