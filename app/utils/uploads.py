"""
UPLOAD HELPERS
==============

Small file helpers for POST /transcribe: decide whether an upload looks like
audio, pick a collision-free path under uploads/, and delete the file again
once transcription is done.
"""

import logging
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Optional

from app.exceptions import InvalidUploadError
from config import ALLOWED_AUDIO_EXTENSIONS, ALLOWED_AUDIO_TYPES, MAX_UPLOAD_SIZE, UPLOADS_DIR


logger = logging.getLogger("JournalAI")

_CHUNK_SIZE = 1024 * 1024


def is_allowed_audio(filename: Optional[str], content_type: Optional[str]) -> bool:
    """True if the MIME type is a known audio/video type or the file extension is."""
    if content_type and content_type.lower() in ALLOWED_AUDIO_TYPES:
        return True
    if filename and Path(filename).suffix.lower() in ALLOWED_AUDIO_EXTENSIONS:
        return True
    return False


def build_upload_path(filename: Optional[str], upload_dir: Path = UPLOADS_DIR) -> Path:
    """
    Return a fresh path inside upload_dir named "<epoch-ms>-<random><ext>".
    The uploaded file's extension is kept so the transcription API can sniff the format.
    Creates upload_dir if needed.
    """
    upload_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(filename).suffix if filename else ""
    unique_name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}{suffix}"
    return upload_dir / unique_name


def save_upload(source: BinaryIO, dest: Path, max_size: int = MAX_UPLOAD_SIZE) -> int:
    """
    Copy an uploaded file object to dest in chunks and return the byte count.
    Raises InvalidUploadError (413) once more than max_size bytes arrive; the
    partial file is left for the caller's cleanup.
    """
    written = 0
    with open(dest, "wb") as out:
        while True:
            chunk = source.read(_CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > max_size:
                raise InvalidUploadError(
                    f"File too large. Maximum size is {max_size // (1024 * 1024)}MB.",
                    status_code=413,
                    error="File too large",
                )
            out.write(chunk)
    return written


def remove_quietly(path: Path) -> None:
    """Delete path if it exists. Cleanup is best-effort: failures are only logged."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug("Could not remove upload %s: %s", path, e)
