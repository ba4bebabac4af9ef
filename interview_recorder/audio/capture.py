"""Capture session manager: one recording attempt from device acquisition to artifact.

State machine::

    IDLE -> REQUESTING -> RECORDING -> STOPPED -> (reset) -> IDLE
    REQUESTING | RECORDING -> ERROR -> (reset) -> IDLE

Recorder, timer and UI callbacks arrive on different threads. Each event
has exactly one handler that mutates session state, always under
``self._lock``; listeners, the recorder and the device are only called
after the lock is released, so a callback can never re-enter a mutation.
Every session gets a generation number and events carrying a stale
generation are dropped.
"""

import logging
import tempfile
from pathlib import Path
from threading import Lock
from typing import Callable, Iterable, List, Optional

from ..exceptions import (
    AcquisitionFailedError,
    CapabilityUnsupportedError,
    CaptureError,
    CaptureInProgressError,
    EmptyRecordingError,
    FinalizationFailedError,
    UnsupportedEncodingError,
)
from ..models.capture import (
    AudioArtifact,
    AudioConstraints,
    AudioFragment,
    CaptureState,
    CaptureStatus,
)
from ..models.events import CaptureEvent
from .devices import AudioBackend, DeviceHandle
from .encodings import DEFAULT_FALLBACK_MIME, DEFAULT_MIME_PREFERENCES, extension_for, select_mime_type
from .recorder import AudioRecorder, RecorderState
from .timer import IntervalTimer

logger = logging.getLogger(__name__)

CaptureListener = Callable[[CaptureEvent], None]
TimerFactory = Callable[[Callable[[], None]], IntervalTimer]

_BUSY_STATES = (CaptureState.REQUESTING, CaptureState.RECORDING)


class CaptureSessionManager:
    """Owns the lifecycle of a single capture session and its resources."""

    def __init__(
        self,
        backend: AudioBackend,
        listener: Optional[CaptureListener] = None,
        mime_preferences: Iterable[str] = DEFAULT_MIME_PREFERENCES,
        fallback_mime: str = DEFAULT_FALLBACK_MIME,
        timeslice_ms: int = 100,
        timer_factory: TimerFactory = IntervalTimer,
        preview_dir: Optional[str] = None,
    ):
        """Initialize the manager.

        Args:
            backend: Audio environment used to acquire devices and recorders
            listener: One-way receiver of lifecycle events (including the artifact)
            mime_preferences: Encodings to try, most preferred first
            fallback_mime: Encoding used when no preference is supported
            timeslice_ms: Requested interval between recorded fragments
            timer_factory: Builds the one-second elapsed-time timer
            preview_dir: Directory for preview files (system temp dir if None)
        """
        self.backend = backend
        self.listener = listener
        self.mime_preferences = tuple(mime_preferences)
        self.fallback_mime = fallback_mime
        self.timeslice_ms = timeslice_ms
        self.timer_factory = timer_factory
        self.preview_dir = preview_dir

        self._lock = Lock()
        self._generation = 0
        self._state = CaptureState.IDLE
        self._chunks: List[AudioFragment] = []
        self._elapsed_seconds = 0
        self._mime_type: Optional[str] = None
        self._artifact: Optional[AudioArtifact] = None
        self._error: Optional[CaptureError] = None
        self._peak_level = 0.0
        self._stopping = False

        self._device: Optional[DeviceHandle] = None
        self._recorder: Optional[AudioRecorder] = None
        self._timer: Optional[IntervalTimer] = None
        self._preview_path: Optional[Path] = None

    # -- Read-only views ----------------------------------------------------

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed_seconds

    @property
    def mime_type(self) -> Optional[str]:
        return self._mime_type

    @property
    def result_artifact(self) -> Optional[AudioArtifact]:
        return self._artifact

    @property
    def error(self) -> Optional[CaptureError]:
        return self._error

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def holds_device(self) -> bool:
        return self._device is not None

    @property
    def timer_active(self) -> bool:
        return self._timer is not None

    @property
    def preview_path(self) -> Optional[str]:
        return str(self._preview_path) if self._preview_path else None

    def status(self) -> CaptureStatus:
        with self._lock:
            return CaptureStatus(
                state=self._state,
                elapsed_seconds=self._elapsed_seconds,
                chunk_count=len(self._chunks),
                bytes_captured=sum(chunk.size for chunk in self._chunks),
                mime_type=self._mime_type,
                peak_level=self._peak_level,
                error_message=self._error.user_message if self._error else None,
                artifact_size=self._artifact.size if self._artifact else None,
                preview_path=str(self._preview_path) if self._preview_path else None,
            )

    # -- Operations ---------------------------------------------------------

    def check_support(self) -> bool:
        """True if the environment can both acquire devices and record chunks."""
        try:
            return self.backend.is_supported()
        except Exception as e:
            logger.warning(f"Capability check failed: {e}")
            return False

    def start_capture(self, constraints: Optional[AudioConstraints] = None) -> CaptureState:
        """Acquire the microphone and start recording.

        Blocks while the device request is pending. Returns the resulting
        state (RECORDING or ERROR).

        Raises:
            CaptureInProgressError: a session is already requesting or recording
        """
        constraints = constraints or AudioConstraints()
        with self._lock:
            if self._state in _BUSY_STATES:
                raise CaptureInProgressError()
            if self._state is not CaptureState.IDLE:
                logger.info("Discarding previous session before starting a new one")
                self._clear_session()
            self._generation += 1
            generation = self._generation
            self._state = CaptureState.REQUESTING
        self._notify(CaptureEvent("requesting", CaptureState.REQUESTING, generation))

        if not self.check_support():
            self._fail(generation, CapabilityUnsupportedError())
            return self._state

        logger.info("Requesting microphone access...")
        try:
            device = self.backend.get_user_media(constraints)
        except Exception as e:
            self._fail(generation, self._classify(e))
            return self._state

        try:
            if device.track_count < 1:
                raise AcquisitionFailedError("No audio tracks found in media stream")
            mime_type = select_mime_type(self.mime_preferences, self.backend.is_type_supported,
                                         self.fallback_mime)
            recorder = self._create_recorder(device, mime_type)
        except Exception as e:
            device.release()
            self._fail(generation, self._classify(e))
            return self._state

        with self._lock:
            if generation != self._generation:
                stale = True
            else:
                stale = False
                self._device = device
                self._recorder = recorder
                self._mime_type = recorder.mime_type
                self._chunks = []
                self._elapsed_seconds = 0
                self._stopping = False
                self._state = CaptureState.RECORDING
                recorder.on_data_available = lambda fragment: self._handle_chunk(fragment, generation)
                recorder.on_stop = lambda: self._handle_finalized(generation)
                recorder.on_error = lambda error: self._handle_recorder_error(error, generation)
                timer = self.timer_factory(lambda: self._handle_tick(generation))
                self._timer = timer
        if stale:
            logger.info("Session was discarded while the device request was pending")
            device.release()
            return self._state

        try:
            recorder.start(self.timeslice_ms)
        except Exception as e:
            self._fail(generation, self._classify(e))
            return self._state

        with self._lock:
            stale = generation != self._generation
            if not stale:
                timer.start()
        if stale:
            # Disposed between handing over the recorder and starting it
            logger.info("Session was discarded before the recorder started")
            if recorder.state is RecorderState.RECORDING:
                recorder.stop()
            return self._state

        logger.info(f"Recording started ({recorder.mime_type})")
        self._notify(CaptureEvent("started", CaptureState.RECORDING, generation))
        return self._state

    def on_chunk_available(self, fragment: AudioFragment) -> None:
        """Append a recorded fragment to the current session."""
        self._handle_chunk(fragment, None)

    def stop_capture(self) -> None:
        """Stop the timer and ask the recorder to finalize. No-op unless recording."""
        with self._lock:
            if self._state is not CaptureState.RECORDING or self._stopping:
                logger.debug(f"stop_capture ignored in state {self._state.value}")
                return
            self._stopping = True
            generation = self._generation
            timer, self._timer = self._timer, None
            recorder = self._recorder

        logger.info("Stopping recording...")
        if timer:
            timer.cancel()
        self._notify(CaptureEvent("stopping", CaptureState.RECORDING, generation))
        if recorder is None:
            return
        try:
            recorder.stop()
        except Exception as e:
            logger.error(f"Recorder failed to stop: {e}")
            self._fail(generation, FinalizationFailedError())

    def on_finalized(self) -> None:
        """Assemble the artifact once the recorder has delivered all fragments."""
        self._handle_finalized(None)

    def on_recorder_error(self, error: Exception) -> None:
        self._handle_recorder_error(error, None)

    def on_tick(self) -> None:
        self._handle_tick(None)

    def create_preview(self) -> Optional[str]:
        """Write the artifact to a transient file for playback and return its path."""
        with self._lock:
            if self._state is not CaptureState.STOPPED or self._artifact is None:
                logger.warning("No finished recording to preview")
                return None
            if self._preview_path is None:
                with tempfile.NamedTemporaryFile(
                    prefix="interview-preview-",
                    suffix=f".{extension_for(self._artifact.mime_type)}",
                    dir=self.preview_dir,
                    delete=False,
                ) as f:
                    f.write(self._artifact.data)
                self._preview_path = Path(f.name)
                logger.info(f"Preview written to {self._preview_path}")
            return str(self._preview_path)

    def reset(self) -> None:
        """Discard the finished or failed session and return to IDLE.

        Raises:
            CaptureInProgressError: called while requesting or recording
        """
        with self._lock:
            if self._state in _BUSY_STATES:
                raise CaptureInProgressError("Stop the recording before resetting")
            if self._state is CaptureState.IDLE:
                return
            logger.info("Resetting recording...")
            self._generation += 1
            generation = self._generation
            self._clear_session()
        self._notify(CaptureEvent("reset", CaptureState.IDLE, generation))

    def dispose(self) -> None:
        """Release every resource held by the manager. Safe to call repeatedly."""
        with self._lock:
            self._generation += 1
            timer, self._timer = self._timer, None
            recorder, self._recorder = self._recorder, None
            device, self._device = self._device, None
            self._clear_session()

        if timer:
            timer.cancel()
        if recorder:
            recorder.detach()
            if recorder.state is RecorderState.RECORDING:
                recorder.stop()
        if device:
            device.release()
            logger.info("Capture session disposed")

    # -- Event handlers -----------------------------------------------------

    def _is_current(self, generation: Optional[int]) -> bool:
        return generation is None or generation == self._generation

    def _handle_chunk(self, fragment: AudioFragment, generation: Optional[int]) -> None:
        with self._lock:
            if not self._is_current(generation) or self._state is not CaptureState.RECORDING:
                logger.debug("Dropping fragment outside an active recording")
                return
            if not fragment.data:
                return
            self._chunks.append(fragment)
            if fragment.peak_level is not None:
                self._peak_level = fragment.peak_level

    def _handle_tick(self, generation: Optional[int]) -> None:
        with self._lock:
            if (self._is_current(generation) and self._state is CaptureState.RECORDING
                    and not self._stopping):
                self._elapsed_seconds += 1

    def _handle_finalized(self, generation: Optional[int]) -> None:
        with self._lock:
            if not self._is_current(generation) or self._state is not CaptureState.RECORDING:
                logger.debug("Ignoring finalize outside an active recording")
                return
            generation = self._generation
            timer, self._timer = self._timer, None
            device, self._device = self._device, None
            self._recorder = None
            self._stopping = False

            logger.info(f"Recorder finalized. Total chunks: {len(self._chunks)}")
            try:
                self._artifact = self._assemble()
                self._state = CaptureState.STOPPED
                event = CaptureEvent("stopped", CaptureState.STOPPED, generation, artifact=self._artifact)
            except CaptureError as e:
                event = self._enter_error(e, generation)
            except Exception as e:
                logger.error(f"Failed to assemble recording: {e}", exc_info=True)
                event = self._enter_error(FinalizationFailedError(), generation)

        if timer:
            timer.cancel()
        if device:
            device.release()
        self._notify(event)

    def _handle_recorder_error(self, error: Exception, generation: Optional[int]) -> None:
        logger.error(f"Recorder error: {error}")
        self._fail(generation, FinalizationFailedError("Recording error occurred. Please try again."))

    # -- Helpers --------------------------------------------------------------

    def _assemble(self) -> AudioArtifact:
        if not self._chunks:
            raise EmptyRecordingError("No audio data was recorded")
        total_size = sum(chunk.size for chunk in self._chunks)
        logger.info(f"Total audio data size: {total_size} bytes")
        if total_size == 0:
            raise EmptyRecordingError("Recorded audio is empty")

        mime_type = self._chunks[0].mime_type or self._mime_type or self.fallback_mime
        data = b"".join(chunk.data for chunk in self._chunks)
        if len(data) != total_size:
            raise FinalizationFailedError()
        logger.info(f"Created audio artifact: {len(data)} bytes, type: {mime_type}")
        return AudioArtifact(data=data, mime_type=mime_type)

    def _create_recorder(self, device: DeviceHandle, mime_type: str) -> AudioRecorder:
        try:
            return self.backend.create_recorder(device, mime_type)
        except UnsupportedEncodingError:
            logger.info(f"Recorder rejected {mime_type}, trying recorder default")
            return self.backend.create_recorder(device, None)

    def _classify(self, error: Exception) -> CaptureError:
        if isinstance(error, CaptureError):
            return error
        if isinstance(error, UnsupportedEncodingError):
            return CapabilityUnsupportedError(str(error))
        return AcquisitionFailedError(str(error) or type(error).__name__)

    def _enter_error(self, error: CaptureError, generation: int) -> CaptureEvent:
        """Caller holds the lock."""
        logger.error(f"Capture failed [{error.code}]: {error}")
        self._state = CaptureState.ERROR
        self._error = error
        self._artifact = None
        return CaptureEvent("error", CaptureState.ERROR, generation, error=error)

    def _fail(self, generation: Optional[int], error: CaptureError) -> None:
        with self._lock:
            if not self._is_current(generation) or self._state not in _BUSY_STATES:
                logger.debug(f"Ignoring failure for inactive session: {error}")
                return
            generation = self._generation
            timer, self._timer = self._timer, None
            recorder, self._recorder = self._recorder, None
            device, self._device = self._device, None
            self._stopping = False
            event = self._enter_error(error, generation)

        if timer:
            timer.cancel()
        if recorder:
            recorder.detach()
            if recorder.state is RecorderState.RECORDING:
                recorder.stop()
        if device:
            device.release()
        self._notify(event)

    def _clear_session(self) -> None:
        """Caller holds the lock."""
        self._revoke_preview()
        self._state = CaptureState.IDLE
        self._chunks = []
        self._elapsed_seconds = 0
        self._mime_type = None
        self._artifact = None
        self._error = None
        self._peak_level = 0.0
        self._stopping = False

    def _revoke_preview(self) -> None:
        if self._preview_path is None:
            return
        try:
            self._preview_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove preview file {self._preview_path}: {e}")
        self._preview_path = None

    def _notify(self, event: CaptureEvent) -> None:
        if self.listener is None:
            return
        try:
            self.listener(event)
        except Exception as e:
            logger.error(f"Capture listener failed on '{event.event_type}': {e}", exc_info=True)
