"""
UTILITIES PACKAGE
=================

Helpers used by the services and routes (no HTTP, no business logic):

  retry     - backoff_delay() / wait(): exponential backoff timing for the completion retry loop.
  sentiment - split_sentiment(): read and strip the [SENTIMENT: ...] tag.
  time_info - get_timestamp(): ISO-8601 UTC timestamp for API responses.
  uploads   - audio type checks, unique upload paths, best-effort cleanup.
"""
