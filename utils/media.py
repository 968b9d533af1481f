"""
Audio format helpers shared by the nodes: MIME mapping and file naming.
"""

import mimetypes
from typing import Optional
from urllib.parse import urlparse, unquote

MIME_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "aac": "audio/aac",
    "m4a": "audio/mp4",
}

# Reverse lookup used when a payload arrives without a usable file name
MIME_EXTENSIONS = {
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
    "audio/flac": "flac",
    "audio/aac": "aac",
    "audio/mp4": "m4a",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

AUDIO_FORMATS = list(MIME_TYPES.keys())


def mime_type_for_extension(ext: str) -> str:
    """MIME type for one of the supported audio extensions."""
    return MIME_TYPES.get(ext.lower(), DEFAULT_MIME_TYPE)


def extension_from_binary(file_name: Optional[str], mime_type: Optional[str]) -> str:
    """
    Work out the extension of a binary payload.

    The file name wins when it has an alphanumeric extension; otherwise the
    MIME type is mapped back; unknown payloads become "bin".

    Args:
        file_name: File name attached to the payload, if any
        mime_type: MIME type attached to the payload

    Returns:
        Lower-cased extension without the dot
    """
    if file_name:
        parts = file_name.split(".")
        # Extensions end up in temp file names, so only plain ones count
        if len(parts) > 1 and parts[-1].isalnum():
            return parts[-1].lower()

    return MIME_EXTENSIONS.get(mime_type or "", "bin")


def replace_extension(file_name: str, new_ext: str) -> str:
    """Swap the extension of a file name; dotfiles keep their full name."""
    dot_index = file_name.rfind(".")
    base_name = file_name[:dot_index] if dot_index > 0 else file_name
    return f"{base_name}.{new_ext}"


def file_name_from_url(url: str) -> str:
    """Last path segment of a URL, percent-decoded, or "download"."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return "download"

    if not parsed.scheme or not parsed.netloc:
        return "download"

    return unquote(parsed.path.split("/")[-1]) or "download"


def guess_mime_type(file_name: str) -> str:
    """Guess a MIME type from a file name, preferring the audio table."""
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    if ext in MIME_TYPES:
        return MIME_TYPES[ext]

    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or DEFAULT_MIME_TYPE
