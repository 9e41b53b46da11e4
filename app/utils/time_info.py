"""
TIME INFORMATION UTILITY
========================

Timestamps stamped on every API response, in the same ISO-8601 UTC form a
JavaScript frontend produces with Date.toISOString() (millisecond precision,
trailing "Z").
"""

import datetime


def get_timestamp() -> str:
    """Return the current UTC time, e.g. 2026-02-05T14:03:09.512Z."""
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
