"""
CONFIGURATION MODULE
====================

PURPOSE:
  Central place for all Journal AI settings: the OpenRouter API key, endpoint
  URLs, the model fallback chain, retry timing, request limits, upload limits,
  and the system prompts used for entry analysis and monthly recaps.

WHAT THIS FILE DOES:
  - Loads environment variables from .env (so API keys stay out of code).
  - Exposes OPENROUTER_API_KEY and OPENROUTER_MODEL for the completion service.
  - Builds MODEL_FALLBACKS, the ordered list of models tried on rate limits.
  - Defines the uploads/ folder where audio files wait for transcription.
  - Holds the system prompts for POST /analyze and POST /recap.
  - validate_config(): called once at startup; raises ConfigurationError when
    a required setting (the API key) is missing.

USAGE:
  Import what you need: `from config import MODEL_FALLBACKS, ANALYZE_SYSTEM_PROMPT`
  All services import from here so behaviour is consistent.
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

from app.exceptions import ConfigurationError


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logger = logging.getLogger("JournalAI")


# -----------------------------------------------------------------------------
# ENVIRONMENT
# -----------------------------------------------------------------------------
# Load environment variables from .env file (if it exists).
load_dotenv()


# -----------------------------------------------------------------------------
# BASE PATH
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent

# ============================================================================
# SERVER
# ============================================================================
PORT = int(os.getenv("PORT", "3000"))
APP_URL = os.getenv("APP_URL", "http://localhost:3000")
APP_TITLE = "Journal AI App"
SERVICE_NAME = "Journal AI Backend"

# Comma-separated list of allowed origins; "*" lets any frontend call the API.
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# ============================================================================
# OPENROUTER API CONFIGURATION
# ============================================================================
# OpenRouter proxies many LLM vendors behind one OpenAI-compatible API.
# OPENROUTER_API_KEY is required; the server refuses to start without it.
# OPENROUTER_MODEL overrides the primary (first) model of the fallback chain.

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "").strip()
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_TRANSCRIPTION_URL = "https://openrouter.ai/api/v1/audio/transcriptions"
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "").strip() or "deepseek/deepseek-r1:free"

# Model fallback chain: tried in order when a model is rate limited (429).
# Free models first, one paid model last as the final resort.
MODEL_FALLBACKS = tuple(dict.fromkeys([
    OPENROUTER_MODEL,
    "google/gemini-2.0-flash-exp:free",
    "meta-llama/llama-3.2-3b-instruct:free",
    "nousresearch/hermes-3-llama-3.1-405b:free",
    "openai/gpt-3.5-turbo",
]))

TRANSCRIPTION_MODEL = "openai/whisper-1"

# Generation settings sent with every completion request.
TEMPERATURE = 0.7
MAX_TOKENS = 800  # Kept small for free tier efficiency

# ============================================================================
# RETRY POLICY
# ============================================================================
# MAX_RETRIES: backoff retries allowed per model index (server errors, network
#   errors, and rate limits once the last model of the chain is reached).
# BASE_RETRY_DELAY: seconds; the n-th retry waits BASE_RETRY_DELAY * 2**n.
# MODEL_SWITCH_DELAY: seconds to pause before moving to the next model.

MAX_RETRIES = 2
BASE_RETRY_DELAY = 3.0
MODEL_SWITCH_DELAY = 2.0

# Seconds the client is told to wait after the whole chain is rate limited.
RATE_LIMIT_RETRY_AFTER = 60

# ============================================================================
# REQUEST LIMITS
# ============================================================================
# Single entries longer than this are truncated (not rejected) before analysis.
MAX_ENTRY_LENGTH = 10_000
# Recap input longer than this is rejected with 400.
MAX_RECAP_LENGTH = 50_000

# ============================================================================
# AUDIO UPLOADS
# ============================================================================
# Uploaded audio is written here, transcribed, then deleted.
UPLOADS_DIR = BASE_DIR / "uploads"

MAX_UPLOAD_SIZE = 25 * 1024 * 1024  # 25MB
ALLOWED_AUDIO_TYPES = frozenset({
    "audio/mp4",
    "audio/mpeg",
    "audio/wav",
    "audio/webm",
    "video/mp4",
    "audio/m4a",
})
ALLOWED_AUDIO_EXTENSIONS = frozenset({".mp4", ".m4a", ".mp3", ".wav", ".webm"})

# ============================================================================
# SYSTEM PROMPTS
# ============================================================================
# ANALYZE_SYSTEM_PROMPT asks the model to open with a [SENTIMENT: ...] marker;
# app.utils.sentiment pulls that marker out before the reply reaches the client.

ANALYZE_SYSTEM_PROMPT = """You are an empathetic AI journal companion. Your role is to:
1. Analyze the emotional tone and mood of the user's journal entry
2. Identify key themes, concerns, or highlights
3. Generate 2-3 thoughtful, empathetic follow-up questions that encourage deeper reflection
4. Provide validation and support

IMPORTANT GUIDELINES:
- Use SIMPLE, everyday language that anyone can understand
- AVOID jargon, technical terms, or complex vocabulary
- Write like you're talking to a friend - warm, natural, and conversational
- If the user writes in Hindi or uses Hindi words, respond in Hinglish (Hindi words written in English script mixed with English)
- Keep sentences short and clear
- KEEP YOUR RESPONSE BRIEF - Maximum 3-4 short sentences total
- Use line breaks between thoughts for easy reading
- At the very beginning of your response, include a sentiment marker: [SENTIMENT: positive] or [SENTIMENT: negative]

After the sentiment marker, provide a SHORT empathetic response (50-100 words max).

Example format for English entry:
[SENTIMENT: positive]
That sounds amazing! I can feel your excitement.

What made this moment special for you?
How are you planning to celebrate?

Example format for Hindi/Hinglish entry:
[SENTIMENT: negative]
Aaj kaafi tough raha lagta hai. It's okay to feel overwhelmed.

Kya hua specifically?
Abhi kaise feel kar rahe ho?"""

RECAP_SYSTEM_PROMPT = """You are an insightful AI journal analyst. Create a comprehensive monthly recap that includes:

1. **Overall Emotional Trend**: Describe the general emotional trajectory over the month
2. **Key Highlights**: Identify 3-5 significant moments or achievements
3. **Recurring Themes**: Note patterns in thoughts, concerns, or activities
4. **Personal Growth**: Observe any signs of growth or change
5. **Supportive Advice**: Offer 2-3 pieces of constructive, encouraging advice for moving forward

Be empathetic, constructive, and focus on helping the user gain insights about themselves. Structure your response with clear sections. Keep it concise (under 500 words)."""


def validate_config() -> None:
    """
    Check the settings the server cannot run without.

    Called once from the FastAPI lifespan before any service is built. Raises
    ConfigurationError (instead of exiting) so the startup failure is reported
    through the normal uvicorn error path.
    """
    if not OPENROUTER_API_KEY:
        logger.error("OPENROUTER_API_KEY is not set in .env file")
        raise ConfigurationError("OPENROUTER_API_KEY is not set in .env file")
    if not MODEL_FALLBACKS:
        raise ConfigurationError("Model fallback chain is empty")
