"""PyAudio (PortAudio) implementation of the audio environment."""

import logging
import struct
from threading import Event, Lock, Thread
from typing import List, Optional

import numpy as np
import pyaudio

from ..exceptions import (
    AcquisitionFailedError,
    CapabilityUnsupportedError,
    CaptureError,
    DeviceNotFoundError,
    DeviceReleasedError,
    DeviceUnavailableError,
    PermissionDeniedError,
    UnsupportedEncodingError,
)
from ..models.capture import AudioConstraints, AudioFragment
from .devices import AudioBackend, DeviceHandle
from .encodings import base_type
from .recorder import AudioRecorder, RecorderState

logger = logging.getLogger(__name__)

# PortAudio error codes as reported in OSError.errno by PyAudio
PA_UNANTICIPATED_HOST_ERROR = -9999
PA_INVALID_CHANNEL_COUNT = -9998
PA_INVALID_SAMPLE_RATE = -9997
PA_INVALID_DEVICE = -9996
PA_SAMPLE_FORMAT_NOT_SUPPORTED = -9994
PA_DEVICE_UNAVAILABLE = -9985

_UNSUPPORTED_CODES = {
    PA_INVALID_CHANNEL_COUNT,
    PA_INVALID_SAMPLE_RATE,
    PA_SAMPLE_FORMAT_NOT_SUPPORTED,
}

WAV_MIME = "audio/wav"
PCM_MIME = "audio/l16"
SUPPORTED_TYPES = (WAV_MIME, PCM_MIME)

# RIFF sizes are unknown while streaming; readers treat this as "until EOF"
STREAMING_RIFF_SIZE = 0xFFFFFFFF


def streaming_wav_header(sample_rate: int, channels: int, sample_width: int) -> bytes:
    """44-byte PCM WAV header for a stream of unknown length."""
    block_align = channels * sample_width
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF", STREAMING_RIFF_SIZE, b"WAVE",
        b"fmt ", 16, 1, channels, sample_rate,
        sample_rate * block_align, block_align, sample_width * 8,
        b"data", STREAMING_RIFF_SIZE,
    )


def classify_acquisition_error(error: Exception) -> CaptureError:
    """Map a PortAudio/OS failure to the capture error taxonomy."""
    if isinstance(error, CaptureError):
        return error
    if isinstance(error, PermissionError):
        return PermissionDeniedError(str(error))

    message = str(error)
    lowered = message.lower()
    code = getattr(error, "errno", None)
    if code == PA_INVALID_DEVICE:
        return DeviceNotFoundError(message)
    if code == PA_DEVICE_UNAVAILABLE:
        return DeviceUnavailableError(message)
    if code in _UNSUPPORTED_CODES:
        return CapabilityUnsupportedError(message)
    if "permission" in lowered or "not permitted" in lowered:
        return PermissionDeniedError(message)
    if "busy" in lowered or "unavailable" in lowered:
        return DeviceUnavailableError(message)
    return AcquisitionFailedError(message)


class PyAudioDeviceHandle(DeviceHandle):
    """An open PortAudio input stream."""

    def __init__(self, pyaudio_instance: pyaudio.PyAudio, stream, sample_rate: int,
                 channels: int, sample_format: int = pyaudio.paInt16):
        super().__init__()
        self.pyaudio_instance = pyaudio_instance
        self.stream = stream
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_format = sample_format
        self.sample_width = pyaudio.get_sample_size(sample_format)
        self._lock = Lock()

    @property
    def track_count(self) -> int:
        return self.channels

    def read(self, frames: int) -> bytes:
        with self._lock:
            if self.released:
                raise DeviceReleasedError()
            return self.stream.read(frames, exception_on_overflow=False)

    def _stop_tracks(self) -> None:
        with self._lock:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
            finally:
                self.pyaudio_instance.terminate()
        logger.info("Audio device released")


class PyAudioRecorder(AudioRecorder):
    """Reads the device on a background thread and emits one fragment per timeslice."""

    def __init__(self, handle: PyAudioDeviceHandle, mime_type: str = WAV_MIME):
        super().__init__(mime_type)
        self.handle = handle
        self.is_wav = base_type(mime_type) == WAV_MIME
        self.timeslice_ms = 100
        self.total_fragments = 0

        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()

    def start(self, timeslice_ms: int = 100) -> None:
        if self.state is RecorderState.RECORDING:
            logger.warning("Recorder already running")
            return

        logger.info(f"Starting recorder ({self.mime_type}, {timeslice_ms}ms timeslice)")
        self.timeslice_ms = timeslice_ms
        self.total_fragments = 0
        self.stop_event.clear()
        self.state = RecorderState.RECORDING

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioRecorderThread"
        self.recording_thread.start()

    def stop(self) -> None:
        if self.state is not RecorderState.RECORDING:
            logger.warning("No recording in progress")
            return
        logger.info("Stopping recorder")
        self.stop_event.set()

    def join(self, timeout: float = 2.0) -> None:
        """Wait for the recording thread to finish."""
        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=timeout)
            if self.recording_thread.is_alive():
                logger.warning("Recorder thread did not stop cleanly")

    def _frames_per_slice(self) -> int:
        return max(1, self.handle.sample_rate * self.timeslice_ms // 1000)

    def _fragment(self, pcm: bytes, prefix: bytes = b"") -> AudioFragment:
        self.total_fragments += 1
        return AudioFragment(data=prefix + pcm, mime_type=self.mime_type, peak_level=peak_level(pcm))

    def _record_continuously(self) -> None:
        """Internal method: recording loop in background thread."""
        frames = self._frames_per_slice()
        header = b""
        if self.is_wav:
            header = streaming_wav_header(
                self.handle.sample_rate, self.handle.channels, self.handle.sample_width
            )
        try:
            while not self.stop_event.is_set():
                pcm = self.handle.read(frames)
                if header and pcm:
                    # Header rides on the first PCM fragment; a stop before any audio yields no chunks
                    self._emit_data(self._fragment(pcm, prefix=header))
                    header = b""
                else:
                    self._emit_data(self._fragment(pcm))
        except Exception as e:
            logger.error(f"Recorder error: {e}")
            self.state = RecorderState.INACTIVE
            self._emit_error(e)
            return

        self.state = RecorderState.INACTIVE
        logger.info(f"Recorder stopped. Total fragments: {self.total_fragments}")
        self._emit_stop()


def peak_level(pcm: bytes) -> float:
    """Peak amplitude of 16-bit PCM as a fraction of full scale."""
    samples = np.frombuffer(pcm[: len(pcm) - len(pcm) % 2], dtype=np.int16)
    if samples.size == 0:
        return 0.0
    return float(np.abs(samples.astype(np.int32)).max()) / 32768.0


class PyAudioBackend(AudioBackend):
    """Audio environment backed by the system's PortAudio devices."""

    def __init__(self, sample_format: int = pyaudio.paInt16):
        self.sample_format = sample_format

    def is_supported(self) -> bool:
        try:
            pa = pyaudio.PyAudio()
        except Exception as e:
            logger.warning(f"PortAudio unavailable: {e}")
            return False
        pa.terminate()
        return True

    def get_user_media(self, constraints: AudioConstraints) -> PyAudioDeviceHandle:
        pa = pyaudio.PyAudio()
        try:
            device_info = self._resolve_input_device(pa, constraints.device_index)
            device_index = int(device_info["index"])
            channels = max(1, min(constraints.channel_count, int(device_info["maxInputChannels"])))
            rate = self._negotiate_sample_rate(pa, device_info, constraints.sample_rate, channels)
            self._log_unapplied_processing(constraints)

            stream = pa.open(
                format=self.sample_format,
                channels=channels,
                rate=rate,
                input=True,
                input_device_index=device_index,
                frames_per_buffer=1024,
            )
        except Exception as e:
            pa.terminate()
            if isinstance(e, CaptureError):
                raise
            raise classify_acquisition_error(e) from e

        logger.info(f"Audio stream opened: {device_info.get('name')} {rate}Hz, {channels} channel(s)")
        return PyAudioDeviceHandle(pa, stream, rate, channels, self.sample_format)

    def list_input_devices(self) -> List[dict]:
        """Device info dicts for every device with at least one input channel."""
        pa = pyaudio.PyAudio()
        try:
            devices = [pa.get_device_info_by_index(i) for i in range(pa.get_device_count())]
        finally:
            pa.terminate()
        return [info for info in devices if int(info.get("maxInputChannels", 0)) > 0]

    def is_type_supported(self, mime_type: str) -> bool:
        return base_type(mime_type) in SUPPORTED_TYPES

    def create_recorder(self, handle: DeviceHandle, mime_type: Optional[str] = None) -> PyAudioRecorder:
        if mime_type is None:
            mime_type = WAV_MIME
        if not self.is_type_supported(mime_type):
            raise UnsupportedEncodingError(mime_type)
        if not isinstance(handle, PyAudioDeviceHandle):
            raise TypeError(f"Expected PyAudioDeviceHandle, got {type(handle).__name__}")
        if base_type(mime_type) == PCM_MIME:
            mime_type = f"audio/L16;rate={handle.sample_rate};channels={handle.channels}"
        return PyAudioRecorder(handle, mime_type)

    def _resolve_input_device(self, pa: pyaudio.PyAudio, device_index: Optional[int]) -> dict:
        if device_index is None:
            try:
                return pa.get_default_input_device_info()
            except OSError as e:
                raise DeviceNotFoundError(str(e)) from e

        info = pa.get_device_info_by_index(device_index)
        if int(info.get("maxInputChannels", 0)) < 1:
            raise DeviceNotFoundError(f"Device {device_index} has no input channels")
        return info

    def _negotiate_sample_rate(self, pa: pyaudio.PyAudio, device_info: dict,
                               requested: int, channels: int) -> int:
        try:
            pa.is_format_supported(
                requested,
                input_device=int(device_info["index"]),
                input_channels=channels,
                input_format=self.sample_format,
            )
            return requested
        except ValueError:
            fallback = int(device_info["defaultSampleRate"])
            logger.warning(f"Sample rate {requested}Hz not supported, using device default {fallback}Hz")
            return fallback

    def _log_unapplied_processing(self, constraints: AudioConstraints) -> None:
        requested = [
            name for name, enabled in (
                ("echo cancellation", constraints.echo_cancellation),
                ("noise suppression", constraints.noise_suppression),
                ("auto gain control", constraints.auto_gain_control),
            ) if enabled
        ]
        if requested:
            logger.debug(f"PortAudio does not apply {', '.join(requested)}; recording unprocessed input")
