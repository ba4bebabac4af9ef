"""Encoding negotiation and MIME type helpers."""

import logging
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

DEFAULT_MIME_PREFERENCES = (
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/ogg;codecs=opus",
    "audio/mp4",
    "audio/wav",
)
DEFAULT_FALLBACK_MIME = "audio/wav"

_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mp4": "m4a",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/flac": "flac",
    "audio/l16": "pcm",
}


def base_type(mime_type: str) -> str:
    """Strip parameters: ``audio/webm;codecs=opus`` -> ``audio/webm``."""
    return mime_type.split(";", 1)[0].strip().lower()


def extension_for(mime_type: str) -> str:
    """File extension for a MIME type, ``bin`` when unknown."""
    return _EXTENSIONS.get(base_type(mime_type), "bin")


def select_mime_type(
    preferences: Iterable[str],
    probe: Callable[[str], bool],
    fallback: str = DEFAULT_FALLBACK_MIME,
) -> str:
    """Return the first preferred encoding the probe accepts, else ``fallback``."""
    for mime_type in preferences:
        if probe(mime_type):
            logger.info(f"Using supported MIME type: {mime_type}")
            return mime_type
    logger.info(f"Using fallback MIME type: {fallback}")
    return fallback
