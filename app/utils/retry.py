"""
RETRY UTILITY
=============

Backoff timing shared by the completion service's retry loop. The loop itself
lives in CompletionService.request_completion because each branch (rate limit,
server error, network error) moves its counters differently; this module only
answers "how long do we wait" and does the waiting with a log line.

Waiting is an asyncio sleep, so a request backing off holds no worker thread.

Example:
  await wait(backoff_delay(retry_count), "Server error", sleep=asyncio.sleep)
"""

import asyncio
import logging
from typing import Awaitable, Callable

from config import BASE_RETRY_DELAY


logger = logging.getLogger("JournalAI")


def backoff_delay(retry_count: int, base_delay: float = BASE_RETRY_DELAY) -> float:
    """Seconds to wait before retry number retry_count + 1: base, 2x base, 4x base, ..."""
    return base_delay * (2 ** retry_count)


async def wait(
    delay: float,
    reason: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Log why we are pausing, then suspend this request for delay seconds."""
    logger.info("%s. Retrying in %.1fs...", reason, delay)
    await sleep(delay)
