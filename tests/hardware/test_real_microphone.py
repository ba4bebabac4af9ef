"""Real hardware tests for microphone capture.

These tests require an actual input device and verify that the capture
session produces a playable recording.

Run with: pytest tests/hardware/ -v -s -m hardware
"""

import pytest
import time
import wave

from interview_recorder.audio.capture import CaptureSessionManager
from interview_recorder.audio.pyaudio_backend import PyAudioBackend
from interview_recorder.models.capture import AudioConstraints, CaptureState


@pytest.mark.hardware
@pytest.mark.slow
class TestRealMicrophone:
    """Tests that require real audio hardware to run."""

    def test_record_three_seconds(self, temp_data_dir):
        """Record three seconds from the default microphone and check the WAV output."""
        backend = PyAudioBackend()
        if not backend.is_supported() or not backend.list_input_devices():
            pytest.skip("No audio input device available")

        print("\nRecording 3 seconds from the default microphone...")
        manager = CaptureSessionManager(backend, preview_dir=temp_data_dir)
        try:
            state = manager.start_capture(AudioConstraints(sample_rate=16000))
            assert state is CaptureState.RECORDING, manager.status().error_message

            time.sleep(3.2)
            manager.stop_capture()

            deadline = time.time() + 5
            while manager.state is CaptureState.RECORDING and time.time() < deadline:
                time.sleep(0.05)

            assert manager.state is CaptureState.STOPPED, manager.status().error_message
            assert manager.elapsed_seconds >= 2
            print(f"Recorded {manager.result_artifact.size} bytes ({manager.mime_type})")

            preview = manager.create_preview()
            with wave.open(preview, 'rb') as wf:
                framerate = wf.getframerate()
                frames = wf.readframes(framerate * 10)
                seconds = len(frames) / (wf.getsampwidth() * wf.getnchannels() * framerate)
            print(f"Preview file: {preview} ({seconds:.1f}s at {framerate}Hz)")
            assert 2.5 <= seconds <= 4.5
        finally:
            manager.dispose()

        assert manager.holds_device is False
