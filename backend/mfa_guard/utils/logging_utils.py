"""Helpers for keeping PII out of request logs."""

import hashlib
from typing import Optional

_MISSING = "N/A"


def _short_hash(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:6]


def redact_email(email: Optional[str]) -> str:
    """
    Mask an email address, keeping the domain and a stable marker for correlation.

    Examples:
        >>> redact_email("auditor@phoenixgrc.io")
        'a***@phoenixgrc.io'
        >>> redact_email(None)
        'N/A'
    """
    if not email:
        return _MISSING

    local, sep, domain = email.partition("@")
    if not sep or not domain:
        return f"hash:{_short_hash(email)}"

    # Short local parts would be fully revealed by a one-letter prefix
    if len(local) < 3:
        return f"hash:{_short_hash(email)}@{domain}"

    return f"{local[0]}***@{domain}"


def redact_ip(ip_address: Optional[str]) -> str:
    """
    Mask the host part of a client address.

    Examples:
        >>> redact_ip("10.20.30.40")
        '10.20.30.***'
    """
    if not ip_address:
        return _MISSING

    octets = ip_address.split(".")
    if len(octets) == 4:
        return ".".join(octets[:3]) + ".***"

    groups = ip_address.split(":")
    if len(groups) >= 4:
        return ":".join(groups[:3]) + ":***"

    return f"hash:{_short_hash(ip_address)}"
