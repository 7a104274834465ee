"""
Input validation and basic audio metadata (duration, sample rate, channels) via soundfile.
"""

from pathlib import Path

import soundfile as sf
from pydantic import BaseModel, Field

from stemsplit.errors import InputValidationError

ALLOWED_EXTENSIONS = (".mp3", ".wav", ".flac", ".ogg", ".m4a", ".aac")


class AudioInfo(BaseModel):
    path: Path
    duration_sec: float = Field(default=0.0, ge=0, description="Track length in seconds")
    sample_rate: int = Field(default=0, ge=0, description="Hz")
    channels: int = Field(default=0, ge=0)
    subtype: str | None = Field(default=None, description="Sample encoding, e.g. PCM_16")
    error: str | None = Field(default=None, description="Set when the file could not be read")


def validate_input_file(path: str | Path) -> Path:
    """Return the path if it is an existing file with a supported extension, else raise InputValidationError."""
    p = Path(path)
    if not p.is_file():
        raise InputValidationError(f"Input file not found: {p}")
    if p.suffix.lower() not in ALLOWED_EXTENSIONS:
        allowed = ", ".join(ALLOWED_EXTENSIONS)
        raise InputValidationError(f"Unsupported format '{p.suffix or '(none)'}'. Supported formats: {allowed}")
    return p


def get_audio_info(path: str | Path) -> AudioInfo:
    """
    Read duration / sample rate / channels. Decode failures are returned in AudioInfo.error;
    a missing or unsupported file raises InputValidationError.
    """
    p = validate_input_file(path)
    try:
        info = sf.info(str(p))
    except RuntimeError as e:
        return AudioInfo(path=p, error=f"Could not read audio info: {e}")
    return AudioInfo(
        path=p,
        duration_sec=float(info.duration),
        sample_rate=int(info.samplerate),
        channels=int(info.channels),
        subtype=info.subtype,
    )
