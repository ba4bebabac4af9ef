"""Pytest configuration and fixtures for interview recorder tests."""

import pytest
import tempfile
import logging
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock, MagicMock, patch
import numpy as np

from interview_recorder.audio.devices import AudioBackend, DeviceHandle
from interview_recorder.audio.recorder import AudioRecorder, RecorderState
from interview_recorder.exceptions import UnsupportedEncodingError
from interview_recorder.models.capture import AudioConstraints, AudioFragment
from interview_recorder.models.recording import Identity, RecordingMetadata


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: several components working together")
    config.addinivalue_line("markers", "hardware: needs a real microphone")
    config.addinivalue_line("markers", "slow: takes more than a few seconds")


class FakeDeviceHandle(DeviceHandle):
    """Device handle that records how often it was released."""

    def __init__(self, tracks: int = 1):
        super().__init__()
        self.tracks = tracks
        self.stop_calls = 0

    @property
    def track_count(self) -> int:
        return self.tracks

    def _stop_tracks(self) -> None:
        self.stop_calls += 1


class FakeRecorder(AudioRecorder):
    """Recorder driven by the test: fragments and finalization are pushed manually."""

    def __init__(self, mime_type: str = "audio/webm;codecs=opus"):
        super().__init__(mime_type)
        self.start_calls = 0
        self.stop_calls = 0
        self.timeslice_ms: Optional[int] = None
        self.finalize_on_stop = False
        self.before_start = None

    def start(self, timeslice_ms: int = 100) -> None:
        if self.before_start:
            self.before_start()
        self.start_calls += 1
        self.timeslice_ms = timeslice_ms
        self.state = RecorderState.RECORDING

    def stop(self) -> None:
        self.stop_calls += 1
        self.state = RecorderState.INACTIVE
        if self.finalize_on_stop:
            self._emit_stop()

    def emit(self, data: bytes, mime_type: Optional[str] = None) -> None:
        self._emit_data(AudioFragment(data=data, mime_type=self.mime_type if mime_type is None else mime_type))

    def finalize(self) -> None:
        self._emit_stop()

    def fail(self, error: Exception) -> None:
        self.state = RecorderState.INACTIVE
        self._emit_error(error)


class FakeBackend(AudioBackend):
    """Scriptable audio environment."""

    def __init__(self,
                 supported: bool = True,
                 supported_types=("audio/webm;codecs=opus", "audio/webm", "audio/wav"),
                 acquisition_error: Optional[Exception] = None,
                 tracks: int = 1):
        self.supported = supported
        self.supported_types = set(supported_types)
        self.acquisition_error = acquisition_error
        self.tracks = tracks
        self.handles: List[FakeDeviceHandle] = []
        self.recorders: List[FakeRecorder] = []
        self.requested_constraints: List[AudioConstraints] = []
        self.on_get_user_media = None
        self.on_recorder_start = None

    def is_supported(self) -> bool:
        return self.supported

    def get_user_media(self, constraints: AudioConstraints) -> FakeDeviceHandle:
        self.requested_constraints.append(constraints)
        if self.on_get_user_media:
            self.on_get_user_media()
        if self.acquisition_error is not None:
            raise self.acquisition_error
        handle = FakeDeviceHandle(self.tracks)
        self.handles.append(handle)
        return handle

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in self.supported_types

    def create_recorder(self, handle: DeviceHandle, mime_type: Optional[str] = None) -> FakeRecorder:
        if mime_type is not None and mime_type not in self.supported_types:
            raise UnsupportedEncodingError(mime_type)
        recorder = FakeRecorder(mime_type or "audio/wav")
        recorder.before_start = self.on_recorder_start
        self.recorders.append(recorder)
        return recorder

    @property
    def recorder(self) -> FakeRecorder:
        return self.recorders[-1]

    @property
    def handle(self) -> FakeDeviceHandle:
        return self.handles[-1]


class ManualTimer:
    """Interval timer stand-in; tests call ``tick()`` instead of waiting a second."""

    instances: List["ManualTimer"] = []

    def __init__(self, callback, interval: float = 1.0):
        self.callback = callback
        self.interval = interval
        self.started = False
        self.cancelled = False
        ManualTimer.instances.append(self)

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def tick(self, times: int = 1) -> None:
        for _ in range(times):
            self.callback()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            'index': 0,
            'name': 'Test Microphone',
            'maxInputChannels': 2,
            'defaultSampleRate': 48000.0,
        }
        mock_pyaudio_instance.is_format_supported.return_value = True

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def manual_timer():
    """Timer factory that hands out ManualTimer instances."""
    ManualTimer.instances = []
    return ManualTimer


@pytest.fixture
def captured_events():
    """List that collects capture events when used as a listener."""
    return []


@pytest.fixture
def user_identity():
    return Identity(id="user-123", email="interviewer@example.com", full_name="Ivy Interviewer")


@pytest.fixture
def admin_identity():
    return Identity(id="admin-1", email="Admin@Example.com")


@pytest.fixture
def metadata():
    return RecordingMetadata.build("Jane Doe", "Rate Negotiation", 3)


@pytest.fixture
def config_file(temp_data_dir):
    """Write a minimal interview_recorder.yaml and return its path."""
    path = Path(temp_data_dir) / "interview_recorder.yaml"
    path.write_text(
        "supabase:\n"
        "  url: https://test.supabase.co\n"
        "  anon_key: test-anon-key\n"
        "access:\n"
        "  admin_emails:\n"
        "    - Admin@Example.com\n"
        "audio:\n"
        "  sample_rate: 16000\n"
        "storage:\n"
        "  data_directory: data\n",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def mock_supabase():
    """MagicMock Supabase client with chainable table queries and a storage bucket."""
    client = MagicMock()

    query = MagicMock()
    query.select.return_value = query
    query.insert.return_value = query
    query.eq.return_value = query
    query.order.return_value = query
    query.execute.return_value = Mock(data=[])
    client.table.return_value = query

    bucket = MagicMock()
    bucket.upload.return_value = Mock(path="recordings/x.webm")
    bucket.get_public_url.side_effect = lambda path: f"https://test.supabase.co/storage/v1/object/public/recordings/{path}"
    client.storage.from_.return_value = bucket

    client.query = query
    client.bucket = bucket
    return client


@pytest.fixture
def make_manager(fake_backend, manual_timer, captured_events, temp_data_dir):
    """Build a CaptureSessionManager wired to the fake backend and manual timer."""
    from interview_recorder.audio.capture import CaptureSessionManager

    def _make(backend=None, **kwargs):
        kwargs.setdefault("listener", captured_events.append)
        kwargs.setdefault("timer_factory", manual_timer)
        kwargs.setdefault("preview_dir", temp_data_dir)
        return CaptureSessionManager(backend or fake_backend, **kwargs)

    return _make


@pytest.fixture
def recording_manager(make_manager, fake_backend):
    """A manager that is already RECORDING on the fake backend."""
    manager = make_manager()
    manager.start_capture(AudioConstraints())
    return manager
