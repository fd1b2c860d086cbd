"""Audio upload validation: allowed names/types and magic-byte sniffing"""
from typing import Optional, Tuple
from pathlib import PurePosixPath

ALLOWED_AUDIO_MIMETYPES = (
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/wave",
    "audio/x-wav",
    "audio/aiff",
    "audio/x-aiff",
    "audio/flac",
    "audio/x-flac",
    "audio/ogg",
    "audio/aac",
    "audio/mp4",
    "audio/x-m4a",
    "audio/webm",
    "audio/opus",
    "audio/x-ms-wma",
)

ALLOWED_AUDIO_EXTENSIONS = (
    ".mp3", ".wav", ".wave", ".aiff", ".aif", ".flac", ".ogg", ".oga",
    ".aac", ".m4a", ".mp4", ".webm", ".opus", ".wma",
)

# (format name, offset, accepted prefixes)
AUDIO_SIGNATURES = (
    ("MP3 (ID3)", 0, (b"ID3",)),
    ("MP3 (MPEG)", 0, (b"\xff\xfb", b"\xff\xfa", b"\xff\xf3", b"\xff\xf2")),
    ("WAV", 0, (b"RIFF",)),
    ("FLAC", 0, (b"fLaC",)),
    ("OGG", 0, (b"OggS",)),
    ("M4A/MP4", 4, (b"ftypM4A", b"ftypisom", b"ftypmp42")),
    ("AIFF", 0, (b"FORM",)),
    ("WebM", 0, (b"\x1a\x45\xdf\xa3",)),
    ("AAC (ADTS)", 0, (b"\xff\xf1", b"\xff\xf9")),
    ("WMA", 0, (b"\x30\x26\xb2\x75\x8e\x66\xcf\x11",)),
)

HEADER_BYTES = 64


def has_audio_extension(file_name: str) -> bool:
    return PurePosixPath(file_name.lower()).suffix in ALLOWED_AUDIO_EXTENSIONS


def is_audio_mimetype(content_type: str) -> bool:
    return content_type in ALLOWED_AUDIO_MIMETYPES


def detect_audio_format(header: bytes) -> Optional[str]:
    """
    Identify an audio container from its leading bytes

    Args:
        header: First bytes of the file (HEADER_BYTES is plenty)

    Returns:
        Human-readable format name, or None when nothing matches
    """
    for name, offset, prefixes in AUDIO_SIGNATURES:
        window = header[offset:]
        if any(window.startswith(prefix) for prefix in prefixes):
            return name
    return None


def validate_audio_header(header: bytes) -> Tuple[bool, str]:
    """Return (is_valid, detected format or error message)"""
    if len(header) < 4:
        return False, "File is too small to be a valid audio file"
    detected = detect_audio_format(header)
    if detected is None:
        return False, "Invalid file type. The file does not appear to be a valid audio file."
    return True, detected
