"""Capture-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CaptureState(Enum):
    """Lifecycle state of a capture session."""
    IDLE = "idle"
    REQUESTING = "requesting"
    RECORDING = "recording"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class AudioConstraints:
    """Requested microphone settings.

    The processing flags are requests; a backend that cannot honour them
    records audio without that processing.
    """
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True
    sample_rate: int = 44100
    channel_count: int = 1
    device_index: Optional[int] = None


@dataclass(frozen=True)
class AudioFragment:
    """An incremental piece of recorded data."""
    data: bytes
    mime_type: str = ""
    peak_level: Optional[float] = None  # 0.0 to 1.0, for level meters

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class AudioArtifact:
    """The finalized recording plus its encoding type."""
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class CaptureStatus:
    """Read-only snapshot of a capture session for display."""
    state: CaptureState
    elapsed_seconds: int = 0
    chunk_count: int = 0
    bytes_captured: int = 0
    mime_type: Optional[str] = None
    peak_level: float = 0.0
    error_message: Optional[str] = None
    artifact_size: Optional[int] = None
    preview_path: Optional[str] = None
