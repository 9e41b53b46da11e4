"""
DATA MODELS MODULE
==================

Pydantic models for API requests and responses. FastAPI uses these to parse
incoming JSON and to serialize responses.

MODELS:
  AnalyzeRequest / AnalyzeResponse - POST /analyze (one journal entry).
  RecapRequest / RecapResponse     - POST /recap (a month of entries as one string).
  TranscribeResponse               - POST /transcribe.
  HealthResponse, ModelsResponse   - GET /health, GET /models.
  ErrorResponse                    - Shape of every error body.

Request fields are Optional so a missing field reaches the route handler, which
answers with a specific "Invalid input" message instead of a generic 422.
"""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional

# ==============================================================================
# REQUEST MODELS
# ==============================================================================

class AnalyzeRequest(BaseModel):
    """Body of POST /analyze. entry must be a non-empty string (checked in the route)."""
    entry: Optional[str] = None

class RecapRequest(BaseModel):
    """Body of POST /recap. entries is all of the month's entries joined into one string."""
    entries: Optional[str] = None

# ==============================================================================
# RESPONSE MODELS
# ==============================================================================

class AnalyzeResponse(BaseModel):
    success: bool = True
    analysis: str                                 # Reply text with the sentiment tag removed.
    nature: Literal["positive", "negative"]
    timestamp: str

class RecapResponse(BaseModel):
    success: bool = True
    recap: str
    timestamp: str

class TranscribeResponse(BaseModel):
    success: bool = True
    text: str
    timestamp: str

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    service: str
    models: List[str]

class ModelsResponse(BaseModel):
    primary: str
    fallbacks: List[str]
    note: str

class ErrorResponse(BaseModel):
    """
    Error body for every failure. details and retryAfter only appear for
    upstream errors and rate limits respectively.
    """
    error: str
    message: str
    details: Optional[str] = None
    retry_after: Optional[int] = Field(default=None, alias="retryAfter")
