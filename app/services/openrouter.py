"""
OPENROUTER HTTP HELPERS
=======================

Bits shared by CompletionService and TranscriptionService: auth headers,
tolerant JSON decoding, and pulling a readable message out of an error body.
OpenRouter reports errors as {"error": {"message": "...", "code": ...}}.
"""

from typing import Optional

import requests

from config import APP_TITLE, APP_URL


def auth_headers(api_key: str, attribution: bool = False) -> dict:
    """Bearer auth header; with attribution=True also the HTTP-Referer / X-Title pair OpenRouter ranks apps by."""
    headers = {"Authorization": f"Bearer {api_key}"}
    if attribution:
        headers["HTTP-Referer"] = APP_URL
        headers["X-Title"] = APP_TITLE
    return headers


def json_body(response: requests.Response) -> Optional[dict]:
    """Decoded JSON object, or None if the body is empty, not JSON, or not an object."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def error_message(data: Optional[dict], response: requests.Response) -> str:
    """error.message from the body when present, else the HTTP reason phrase."""
    if data:
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return response.reason or f"HTTP {response.status_code}"


def is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300
