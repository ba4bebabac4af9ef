"""Audio environment abstractions: device acquisition and recorder creation."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..models.capture import AudioConstraints
from .recorder import AudioRecorder

logger = logging.getLogger(__name__)


class DeviceHandle(ABC):
    """An acquired microphone stream, owned by exactly one capture session."""

    def __init__(self):
        self.released = False

    @property
    @abstractmethod
    def track_count(self) -> int:
        """Number of audio tracks (input channels) the device delivers."""

    def release(self) -> None:
        """Stop all underlying tracks. Safe to call more than once."""
        if self.released:
            return
        self.released = True
        self._stop_tracks()

    @abstractmethod
    def _stop_tracks(self) -> None:
        pass


class AudioBackend(ABC):
    """The runtime capability set a capture session depends on."""

    @abstractmethod
    def is_supported(self) -> bool:
        """True if device access and chunked recording are both available."""

    @abstractmethod
    def get_user_media(self, constraints: AudioConstraints) -> DeviceHandle:
        """Acquire an input device. May block while the environment decides.

        Raises a CaptureError subclass for classified failures; any other
        exception is treated as an unclassified acquisition failure.
        """

    @abstractmethod
    def is_type_supported(self, mime_type: str) -> bool:
        """Capability probe for an encoding."""

    @abstractmethod
    def create_recorder(self, handle: DeviceHandle, mime_type: Optional[str] = None) -> AudioRecorder:
        """Create a recorder for ``handle``.

        Raises UnsupportedEncodingError when ``mime_type`` is rejected;
        ``None`` selects the recorder's default encoding.
        """
