"""Event models for capture lifecycle notifications."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .capture import AudioArtifact, CaptureState


@dataclass
class CaptureEvent:
    """Capture session lifecycle event.

    ``artifact`` is set only on the transition to STOPPED, ``error`` only on
    the transition to ERROR.
    """
    event_type: str  # "requesting", "started", "stopping", "stopped", "error", "reset"
    state: CaptureState
    session_number: int
    artifact: Optional[AudioArtifact] = None
    error: Optional[Exception] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return getattr(self.error, "user_message", str(self.error))
