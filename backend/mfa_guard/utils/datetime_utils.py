"""Naive-UTC timestamps for TIMESTAMP WITHOUT TIME ZONE columns."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time with tzinfo stripped, e.g. for ``last_login_at``."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
