"""
JOURNAL AI MAIN API
===================

This module defines the FastAPI application and all HTTP endpoints. The
backend is a relay: journal text goes to an OpenRouter chat model, audio goes
to OpenRouter's Whisper endpoint, and the answers come back as JSON.

ENDPOINTS:
  GET  /            - Returns API name and list of endpoints.
  GET  /health      - Liveness probe plus the configured model chain.
  GET  /models      - Primary model and the full fallback chain.
  POST /analyze     - One journal entry -> empathetic reply + sentiment ("nature").
  POST /recap       - A month of entries -> structured monthly summary.
  POST /transcribe  - Multipart audio upload (field "audio") -> text.

ERRORS:
  Every failure is answered as {"error": ..., "message": ...}. Services raise
  app.exceptions errors which carry their own status code; the handlers below
  turn them into responses.

STARTUP:
  The lifespan function validates configuration (OPENROUTER_API_KEY must be
  set) and builds the completion and transcription services. Without the key
  startup fails with ConfigurationError.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from app.exceptions import (
    InvalidInputError,
    InvalidUploadError,
    JournalAIError,
    ServiceUnavailableError,
    TranscriptionError,
)
from app.models import (
    AnalyzeRequest,
    AnalyzeResponse,
    ErrorResponse,
    HealthResponse,
    ModelsResponse,
    RecapRequest,
    RecapResponse,
    TranscribeResponse,
)
from app.services.completion_service import CompletionService
from app.services.transcription_service import TranscriptionService
from app.utils.sentiment import split_sentiment
from app.utils.time_info import get_timestamp
from app.utils.uploads import build_upload_path, is_allowed_audio, remove_quietly, save_upload


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("JournalAI")


# -----------------------------------------------------------------------------
# GLOBAL SERVICE REFERENCES
# -----------------------------------------------------------------------------
# Set during startup (lifespan) and used by all route handlers.
completion_service: Optional[CompletionService] = None
transcription_service: Optional[TranscriptionService] = None

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    415: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# -------------------------------------------------------------------------
# LIFESPAN (STARTUP / SHUTDOWN)
# -------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Validate configuration, then build the OpenRouter clients.
    On shutdown, close their HTTP connection pools.
    """
    global completion_service, transcription_service

    logger.info("=" * 60)
    logger.info("Journal AI Backend - Starting Up...")
    logger.info("=" * 60)

    try:
        config.validate_config()
        completion_service = CompletionService(config.OPENROUTER_API_KEY, config.MODEL_FALLBACKS)
        transcription_service = TranscriptionService(config.OPENROUTER_API_KEY)
    except Exception as e:
        logger.error(f"Fatal error during startup: {e}", exc_info=True)
        raise

    logger.info("Primary model: %s", config.MODEL_FALLBACKS[0])
    logger.info("Fallback models: %s", ", ".join(config.MODEL_FALLBACKS[1:]))
    logger.info("Server is ready to accept requests")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down Journal AI Backend...")
    for service in (completion_service, transcription_service):
        if service:
            service.session.close()
    completion_service = None
    transcription_service = None


# -------------------------------------------------------------------------
# FASTAPI APP AND CORS
# -------------------------------------------------------------------------
app = FastAPI(
    title="Journal AI API",
    description="Journal analysis, monthly recaps and voice transcription via OpenRouter",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================================================================
# ERROR HANDLERS
# =========================================================================

@app.exception_handler(JournalAIError)
async def journal_error_handler(request: Request, exc: JournalAIError):
    """Turn a service/validation error into its JSON payload and status code."""
    if exc.status_code >= 500:
        logger.error("Error in %s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed JSON or wrong field types are invalid input (400), not 422."""
    fields = sorted({
        err["loc"][1] for err in exc.errors()
        if len(err.get("loc", ())) > 1 and isinstance(err["loc"][1], str)
    })
    if fields:
        message = "Request body has invalid values for: " + ", ".join(fields) + " (expected strings)"
    else:
        message = "Request body must be a JSON object"
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": "Invalid input", "message": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not found",
                "message": f"Route {request.method} {request.url.path} does not exist",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "message": str(exc.detail)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": "An unexpected error occurred"},
    )


def _require(service, name: str):
    if service is None:
        raise ServiceUnavailableError(f"{name} not initialized")
    return service


# =========================================================================
# API ENDPOINTS
# =========================================================================

@app.get("/")
async def root():
    """Return the API name and a short description of each endpoint (for discovery)."""
    return {
        "message": "Journal AI API",
        "endpoints": {
            "/analyze": "Analyze one journal entry (reply + sentiment)",
            "/recap": "Monthly recap of many entries",
            "/transcribe": "Transcribe an uploaded audio file (field 'audio')",
            "/models": "Primary and fallback models",
            "/health": "System health check",
        }
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        status="healthy",
        timestamp=get_timestamp(),
        service=config.SERVICE_NAME,
        models=list(config.MODEL_FALLBACKS),
    )


@app.get("/models", response_model=ModelsResponse)
async def models():
    """Return the model chain; models are tried in this order on rate limits."""
    return ModelsResponse(
        primary=config.MODEL_FALLBACKS[0],
        fallbacks=list(config.MODEL_FALLBACKS),
        note="Models are tried in order if rate limits are encountered",
    )


@app.post("/analyze", response_model=AnalyzeResponse, responses=ERROR_RESPONSES)
async def analyze(request: AnalyzeRequest):
    """
    Analyze a single journal entry and return empathetic follow-up questions.

    HOW IT WORKS:
    1. Validates that entry is a non-empty string (400 otherwise, no API call).
    2. Truncates entries longer than MAX_ENTRY_LENGTH characters.
    3. Asks the model (with fallback/retry) for a reply that starts with a
       [SENTIMENT: positive|negative] marker.
    4. Returns the reply without the marker plus the sentiment as "nature".

    RESPONSE:
    {
        "success": true,
        "analysis": "That sounds amazing! ...",
        "nature": "positive",
        "timestamp": "2026-02-05T14:03:09.512Z"
    }
    """
    entry = request.entry
    if entry is None:
        raise InvalidInputError('Request body must contain an "entry" field with a string value')
    if not entry.strip():
        raise InvalidInputError("Journal entry cannot be empty")

    if len(entry) > config.MAX_ENTRY_LENGTH:
        logger.info("Truncating entry from %d to %d characters", len(entry), config.MAX_ENTRY_LENGTH)
        entry = entry[:config.MAX_ENTRY_LENGTH]

    service = _require(completion_service, "Completion service")
    try:
        ai_response = await service.request_completion(config.ANALYZE_SYSTEM_PROMPT, entry)
    except JournalAIError:
        raise
    except Exception as e:
        logger.error(f"Error in /analyze route: {e}", exc_info=True)
        raise JournalAIError("An unexpected error occurred while analyzing your entry")

    nature, analysis = split_sentiment(ai_response)
    return AnalyzeResponse(analysis=analysis, nature=nature, timestamp=get_timestamp())


@app.post("/recap", response_model=RecapResponse, responses=ERROR_RESPONSES)
async def recap(request: RecapRequest):
    """
    Generate a monthly summary of all journal entries.

    entries is the whole month as one string (the client joins entries).
    Inputs over MAX_RECAP_LENGTH characters are rejected, not truncated,
    because cutting a month short would silently skew the summary.
    """
    entries = request.entries
    if entries is None:
        raise InvalidInputError('Request body must contain an "entries" field with a string value')
    if not entries.strip():
        raise InvalidInputError("Entries cannot be empty")
    if len(entries) > config.MAX_RECAP_LENGTH:
        raise InvalidInputError(
            f"Entries are too long. Maximum {config.MAX_RECAP_LENGTH:,} characters allowed."
        )

    service = _require(completion_service, "Completion service")
    try:
        ai_response = await service.request_completion(config.RECAP_SYSTEM_PROMPT, entries)
    except JournalAIError:
        raise
    except Exception as e:
        logger.error(f"Error in /recap route: {e}", exc_info=True)
        raise JournalAIError("An unexpected error occurred while generating your recap")

    return RecapResponse(recap=ai_response, timestamp=get_timestamp())


@app.post("/transcribe", response_model=TranscribeResponse, responses=ERROR_RESPONSES)
async def transcribe(audio: Optional[UploadFile] = File(default=None)):
    """
    Transcribe an uploaded audio file and return the text.

    The upload is written to uploads/ under a unique name, sent to Whisper,
    and deleted afterwards whatever the outcome.
    """
    if audio is None or not audio.filename:
        raise InvalidUploadError(
            'Please upload an audio file with the field name "audio"',
            error="No file uploaded",
        )
    if not is_allowed_audio(audio.filename, audio.content_type):
        raise InvalidUploadError(
            "Invalid file type. Only audio/video files are allowed.",
            status_code=415,
            error="Unsupported file type",
        )

    service = _require(transcription_service, "Transcription service")
    upload_path = build_upload_path(audio.filename)
    try:
        await asyncio.to_thread(save_upload, audio.file, upload_path)
        text = await asyncio.to_thread(
            service.transcribe, upload_path, audio.content_type or "audio/mp4"
        )
    except JournalAIError:
        raise
    except Exception as e:
        logger.error(f"Error in /transcribe route: {e}", exc_info=True)
        raise JournalAIError("An error occurred while transcribing the audio file")
    finally:
        remove_quietly(upload_path)
        await audio.close()

    if not text.strip():
        raise TranscriptionError("No speech could be detected in the recording", status_code=422)

    return TranscribeResponse(text=text, timestamp=get_timestamp())


# -------------------------------------------------------------------------
# STANDALONE RUN (python -m app.main)
# -------------------------------------------------------------------------
def run():
    """Start the uvicorn server (same as run.py); used if someone does python -m app.main"""
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=True,
        log_level="info"
    )

if __name__ == "__main__":
    run()
