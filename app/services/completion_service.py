"""
COMPLETION SERVICE MODULE
=========================

Sends a (system prompt, user message) pair to the OpenRouter chat-completions
API and returns the reply text. Free-tier models on OpenRouter are rate limited
aggressively per model, so a request walks an ordered fallback chain
(config.MODEL_FALLBACKS) before giving up.

RETRY / FALLBACK POLICY (two counters: model_index, retry_count):
  - 429 on a model that is not the last: pause MODEL_SWITCH_DELAY, move to the
    next model, retry_count back to 0.
  - 429 on the last model: exponential backoff (BASE_RETRY_DELAY * 2**n) on
    that same model up to MAX_RETRIES times, then RateLimitExhaustedError.
  - 5xx or a connection error: exponential backoff on the same model up to
    MAX_RETRIES times.
  - Any other non-2xx status: UpstreamAPIError straight away.
  - 2xx without choices[0].message.content: MalformedResponseError.

request_completion is a coroutine. Only the blocking requests POST runs in a
worker thread (asyncio.to_thread); backoff waits are asyncio sleeps, so a
request waiting out a backoff holds no thread and does not delay others.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

import requests

from app.exceptions import (
    MalformedResponseError,
    RateLimitExhaustedError,
    UpstreamAPIError,
    UpstreamConnectionError,
)
from app.services.openrouter import auth_headers, error_message, is_success, json_body
from app.utils.retry import backoff_delay, wait
from config import (
    BASE_RETRY_DELAY,
    MAX_RETRIES,
    MAX_TOKENS,
    MODEL_FALLBACKS,
    MODEL_SWITCH_DELAY,
    OPENROUTER_BASE_URL,
    RATE_LIMIT_RETRY_AFTER,
    TEMPERATURE,
)


logger = logging.getLogger("JournalAI")

RATE_LIMIT_MESSAGE = (
    "Rate limit exceeded. Free tier models are currently busy. "
    "Please try again in a few minutes."
)


# ==============================================================================
# COMPLETION SERVICE CLASS
# ==============================================================================

class CompletionService:
    """
    Chat-completion client with model fallback and exponential backoff.

    The model chain is fixed when the service is built and never changes, so
    one instance is safely shared by all concurrent requests. sleep is
    injectable so tests can run the retry loop without waiting.
    """

    def __init__(
        self,
        api_key: str,
        models: Sequence[str] = MODEL_FALLBACKS,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_RETRY_DELAY,
        switch_delay: float = MODEL_SWITCH_DELAY,
        url: str = OPENROUTER_BASE_URL,
    ):
        if not models:
            raise ValueError("CompletionService needs at least one model")
        self.api_key = api_key
        self.models = tuple(models)
        self.session = session or requests.Session()
        self.sleep = sleep
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.switch_delay = switch_delay
        self.url = url

    def _post(self, model: str, system_prompt: str, user_message: str) -> requests.Response:
        """One HTTP call to the chat-completions endpoint with the given model."""
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }
        return self.session.post(
            self.url,
            headers=auth_headers(self.api_key, attribution=True),
            json=payload,
        )

    async def _backoff(self, retry_count: int, reason: str) -> None:
        await wait(backoff_delay(retry_count, self.base_delay), reason, sleep=self.sleep)

    async def request_completion(self, system_prompt: str, user_message: str) -> str:
        """
        Return the completion text for the prompt pair, trying the model chain
        in order. Raises RateLimitExhaustedError, UpstreamAPIError,
        UpstreamConnectionError or MalformedResponseError when it gives up.
        """
        retry_count = 0
        model_index = 0
        last_index = len(self.models) - 1

        while True:
            model = self.models[model_index]
            logger.info("Attempting API call with model: %s (attempt %d)", model, retry_count + 1)

            try:
                response = await asyncio.to_thread(self._post, model, system_prompt, user_message)
            except requests.exceptions.ConnectionError as e:
                if retry_count < self.max_retries:
                    await self._backoff(retry_count, f"Network error ({e})")
                    retry_count += 1
                    continue
                logger.error("OpenRouter API call failed: %s", e)
                raise UpstreamConnectionError(f"Could not reach OpenRouter: {e}") from e

            data = json_body(response)
            status = response.status_code

            if status == 429:
                logger.warning("Rate limit hit for model: %s", model)

                if model_index < last_index:
                    logger.info("Switching to fallback model: %s", self.models[model_index + 1])
                    await self.sleep(self.switch_delay)
                    model_index += 1
                    retry_count = 0
                    continue

                if retry_count < self.max_retries:
                    await self._backoff(
                        retry_count,
                        f"All models rate limited (attempt {retry_count + 1}/{self.max_retries})",
                    )
                    retry_count += 1
                    continue

                logger.error("Rate limit exhausted across models: %s", ", ".join(self.models))
                raise RateLimitExhaustedError(RATE_LIMIT_MESSAGE, retry_after=RATE_LIMIT_RETRY_AFTER)

            if not is_success(response):
                message = error_message(data, response)
                if status >= 500 and retry_count < self.max_retries:
                    await self._backoff(retry_count, f"Server error {status} from {model}")
                    retry_count += 1
                    continue
                logger.error("OpenRouter API error from %s: %s - %s", model, status, message)
                raise UpstreamAPIError(status, message)

            content = _extract_content(data)
            logger.info("Successfully got response from: %s", model)
            return content


def _extract_content(data: Optional[dict]) -> str:
    """choices[0].message.content, or MalformedResponseError if any level is missing."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (TypeError, KeyError, IndexError) as e:
        raise MalformedResponseError("Invalid response structure from OpenRouter API") from e
    if not isinstance(content, str):
        raise MalformedResponseError("Invalid response structure from OpenRouter API")
    return content
