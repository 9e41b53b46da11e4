"""
SERVICES PACKAGE
=================

Business logic lives here. The API layer (app.main) calls these services;
they don't handle HTTP routing, only the outbound OpenRouter calls.

MODULES:
    completion_service    - Chat completions with model fallback and backoff.
    transcription_service - Audio file to text via Whisper.
    openrouter            - Shared headers and error-body helpers.
"""
