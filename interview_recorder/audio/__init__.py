"""Audio capture module."""

from .capture import CaptureSessionManager
from .capture_pub import CAPTURE_TOPIC, CapturePublisher
from .devices import AudioBackend, DeviceHandle
from .recorder import AudioRecorder, RecorderState
from .timer import IntervalTimer

__all__ = [
    'CaptureSessionManager',
    'CapturePublisher',
    'CAPTURE_TOPIC',
    'AudioBackend',
    'DeviceHandle',
    'AudioRecorder',
    'RecorderState',
    'IntervalTimer',
]
