"""
SENTIMENT TAG UTILITY
=====================

The analysis prompt asks the model to open its reply with a marker such as
"[SENTIMENT: negative]". These helpers read that marker and strip it so the
client gets the polarity as a field and the reply text without the tag.
"""

import re
from typing import Tuple

SENTIMENT_TAG_RE = re.compile(r"\[SENTIMENT:\s*(positive|negative)\]\s*", re.IGNORECASE)

DEFAULT_NATURE = "positive"


def split_sentiment(text: str) -> Tuple[str, str]:
    """
    Split a model reply into (nature, body).

    With a tag, the tag and the whitespace after it are removed and the body is
    trimmed. Without one, the nature defaults to positive and the text is
    returned as-is.
    """
    match = SENTIMENT_TAG_RE.search(text)
    if not match:
        return DEFAULT_NATURE, text
    body = (text[:match.start()] + text[match.end():]).strip()
    return match.group(1).lower(), body
