"""Recorder capability used by the capture session manager."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from ..models.capture import AudioFragment

logger = logging.getLogger(__name__)

DataCallback = Callable[[AudioFragment], None]
StopCallback = Callable[[], None]
ErrorCallback = Callable[[Exception], None]


class RecorderState(Enum):
    INACTIVE = "inactive"
    RECORDING = "recording"


class AudioRecorder(ABC):
    """Records an acquired device into binary fragments.

    Implementations deliver every fragment through ``on_data_available``
    before calling ``on_stop`` exactly once. ``on_error`` reports a failure
    while recording; no ``on_stop`` follows it.
    """

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        self.state = RecorderState.INACTIVE
        self.on_data_available: Optional[DataCallback] = None
        self.on_stop: Optional[StopCallback] = None
        self.on_error: Optional[ErrorCallback] = None

    @abstractmethod
    def start(self, timeslice_ms: int = 100) -> None:
        """Begin recording, emitting a fragment roughly every ``timeslice_ms``."""

    @abstractmethod
    def stop(self) -> None:
        """Request finalization. ``on_stop`` fires once remaining data is delivered."""

    def detach(self) -> None:
        """Drop all callbacks so no further events are delivered."""
        self.on_data_available = None
        self.on_stop = None
        self.on_error = None

    def _emit_data(self, fragment: AudioFragment) -> None:
        callback = self.on_data_available
        if callback:
            callback(fragment)

    def _emit_stop(self) -> None:
        callback = self.on_stop
        if callback:
            callback()

    def _emit_error(self, error: Exception) -> None:
        callback = self.on_error
        if callback:
            callback(error)
