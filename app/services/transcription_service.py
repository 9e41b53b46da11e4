"""
TRANSCRIPTION SERVICE MODULE
============================

Uploads an audio file to OpenRouter's Whisper endpoint and returns the text.
Used by POST /transcribe. There is no retry here: a failed upload is reported
to the client, who can simply record again.
"""

import logging
from pathlib import Path
from typing import Optional

import requests

from app.exceptions import TranscriptionError
from app.services.openrouter import auth_headers, error_message, is_success, json_body
from config import OPENROUTER_TRANSCRIPTION_URL, TRANSCRIPTION_MODEL


logger = logging.getLogger("JournalAI")


class TranscriptionService:
    """Thin client for the audio/transcriptions endpoint."""

    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        url: str = OPENROUTER_TRANSCRIPTION_URL,
        model: str = TRANSCRIPTION_MODEL,
    ):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.url = url
        self.model = model

    def transcribe(self, file_path: Path, content_type: str = "audio/mp4") -> str:
        """
        Send the file as multipart form data and return the transcribed text.
        Returns "" if the API answered without text; raises TranscriptionError
        on a network failure or a non-2xx status.
        """
        file_path = Path(file_path)
        logger.info("Transcribing audio file: %s", file_path)

        try:
            with open(file_path, "rb") as f:
                response = self.session.post(
                    self.url,
                    headers=auth_headers(self.api_key),
                    files={"file": (file_path.name, f, content_type)},
                    data={"model": self.model},
                )
        except requests.exceptions.RequestException as e:
            logger.error("Transcription error: %s", e)
            raise TranscriptionError(f"Transcription request failed: {e}") from e

        data = json_body(response)
        if not is_success(response):
            message = error_message(data, response)
            logger.error("Transcription error: %s - %s", response.status_code, message)
            raise TranscriptionError(f"Transcription failed: {response.status_code} - {message}")

        text = (data or {}).get("text")
        if text is None:
            text = ""
        elif not isinstance(text, str):
            logger.error("Transcription response has non-string text: %r", text)
            raise TranscriptionError("Invalid response structure from transcription API")
        logger.info("Transcription successful (%d chars)", len(text))
        return text
