"""Redaction helpers for vendor URLs, git output and hook environments.

Users sometimes configure credential-bearing URLs
(``https://token@host/repo.git``); nothing we log, raise or export may
contain the credential part.
"""
from __future__ import annotations

import re
from typing import Sequence
from urllib.parse import urlsplit, urlunsplit

_SCHEME_CRED_RE = re.compile(r"([a-zA-Z][a-zA-Z0-9+.-]*://)([^\s/@]+(:[^\s/@]*)?@)")
_SCP_STYLE_RE = re.compile(r"\b(?!git@)([^\s@/]+)@([^\s:/]+):")
_SCP_URL_RE = re.compile(r"(?P<user>[^@\s/]+)@(?P<host>[^:\s/]+):(?P<rest>.+)$")


def redact_url_credentials(url: str) -> str:
    """Return ``url`` with any embedded credentials removed."""
    raw = str(url)
    if "://" in raw:
        parts = urlsplit(raw)
        if parts.username is None and parts.password is None:
            return raw
        host = parts.hostname or ""
        port = f":{parts.port}" if parts.port else ""
        return urlunsplit((parts.scheme, f"{host}{port}", parts.path, parts.query, parts.fragment))

    m = _SCP_URL_RE.match(raw)
    if m and m.group("user") != "git":
        return f"<redacted>@{m.group('host')}:{m.group('rest')}"
    return raw


def redact_text_credentials(text: str) -> str:
    """Redact credential-bearing URL fragments from arbitrary text."""
    s = str(text)
    s = _SCHEME_CRED_RE.sub(r"\1<redacted>@", s)
    s = _SCP_STYLE_RE.sub(r"<redacted>@\2:", s)
    return s


def redact_git_args(args: Sequence[str]) -> list[str]:
    """Redact credentials from a git argv for safe logging."""
    return [redact_url_credentials(a) for a in args]


def sanitize_env_value(value: object) -> str:
    """Make ``value`` safe to export as a single-line environment variable.

    Newlines and carriage returns become spaces; NUL bytes are dropped.
    """
    return str(value).replace("\r", " ").replace("\n", " ").replace("\0", "")


__all__ = [
    "redact_url_credentials",
    "redact_text_credentials",
    "redact_git_args",
    "sanitize_env_value",
]
