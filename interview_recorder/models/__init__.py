"""Data models for the interview recorder."""

from .capture import (
    AudioArtifact,
    AudioConstraints,
    AudioFragment,
    CaptureState,
    CaptureStatus,
)
from .events import CaptureEvent
from .recording import Identity, RecordingLog, RecordingMetadata

__all__ = [
    "AudioArtifact",
    "AudioConstraints",
    "AudioFragment",
    "CaptureState",
    "CaptureStatus",
    "CaptureEvent",
    "Identity",
    "RecordingLog",
    "RecordingMetadata",
]
