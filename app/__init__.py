"""
JOURNAL AI APPLICATION PACKAGE
==============================

Main Python package for the Journal AI backend.

  from app.main import app
  from app.services.completion_service import CompletionService

FILE STRUCTURE:
  app/
    __init__.py   - This file; marks 'app' as a package.
    main.py       - FastAPI app and all HTTP endpoints (/analyze, /recap, /transcribe, /health, /models).
    models.py     - Pydantic models for API requests and responses.
    exceptions.py - Error types with their HTTP status codes.
    services/     - OpenRouter clients: chat completions with fallback, Whisper transcription.
    utils/        - Helpers: backoff timing, sentiment tag parsing, timestamps, upload files.
"""
