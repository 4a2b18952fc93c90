# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Timestamp helpers.

All timestamps are stored as ISO 8601 strings in UTC.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_iso() -> str:
    """Return current UTC timestamp in ISO 8601 format."""
    return datetime.now(timezone.utc).isoformat()


def days_ago_iso(days: int) -> str:
    """ISO timestamp for the start of a trailing window of N days."""
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


def parse_iso(value: str | None) -> datetime:
    """Parse an ISO 8601 timestamp; missing or malformed values map to the epoch.

    Naive timestamps are assumed to be UTC. A trailing 'Z' is accepted.
    """
    if not value:
        return EPOCH
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return EPOCH
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
