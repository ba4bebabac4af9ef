"""Unit tests for the terminal screens."""

import pytest
from datetime import datetime
from unittest.mock import Mock

from rich.console import Console
from rich.panel import Panel

from interview_recorder.exceptions import PermissionDeniedError, UploadError
from interview_recorder.models.capture import CaptureState
from interview_recorder.models.events import CaptureEvent
from interview_recorder.models.recording import RecordingLog
from interview_recorder.services.access import AccessPolicy
from interview_recorder.ui.recorder_screen import RecorderScreen
from interview_recorder.ui.recordings_view import (
    build_recordings_table,
    format_size_kb,
    format_time,
    render_profile,
    render_recordings,
)


@pytest.fixture
def recording_service():
    return Mock()


@pytest.fixture
def screen(make_manager, recording_service, metadata, user_identity):
    console = Console(record=True, width=100)
    return RecorderScreen(make_manager(), recording_service, metadata, user_identity, console=console)


def finish_recording(screen, backend, data=b"answer-audio"):
    screen.handle_key("1")
    backend.recorder.emit(data)
    screen.handle_key("2")
    backend.recorder.finalize()


@pytest.mark.unit
class TestRecorderScreen:
    """Test cases for keyboard commands on the recorder screen."""

    def test_start_and_stop_keys(self, screen, fake_backend):
        assert screen.handle_key("1") is True
        assert screen.manager.state is CaptureState.RECORDING

        screen.handle_key("2")
        fake_backend.recorder.finalize()

        assert screen.manager.state is CaptureState.ERROR

    def test_quit_key(self, screen):
        assert screen.handle_key("q") is False

    def test_unknown_key_ignored(self, screen):
        assert screen.handle_key("x") is True
        assert screen.manager.state is CaptureState.IDLE

    def test_start_while_recording_shows_message(self, screen):
        screen.handle_key("1")
        screen.handle_key("1")

        assert screen.message == "A recording is already in progress."

    def test_reset_while_recording_shows_message(self, screen):
        screen.handle_key("1")
        screen.handle_key("3")

        assert screen.manager.state is CaptureState.RECORDING
        assert screen.message == "A recording is already in progress."

    def test_upload_without_recording(self, screen, recording_service):
        screen.handle_key("u")

        recording_service.upload.assert_not_called()
        assert "Finish a recording" in screen.message

    def test_upload_once(self, screen, fake_backend, recording_service, metadata, user_identity):
        """Test an uploaded artifact cannot be uploaded a second time."""
        finish_recording(screen, fake_backend)

        screen.handle_key("u")
        screen.handle_key("u")

        recording_service.upload.assert_called_once_with(
            screen.manager.result_artifact, metadata, user_identity
        )
        assert "already uploaded" in screen.message
        assert screen.is_uploading is False

    def test_upload_failure_keeps_artifact(self, screen, fake_backend, recording_service):
        """Test a failed upload leaves the artifact available for another try."""
        finish_recording(screen, fake_backend)
        recording_service.upload.side_effect = UploadError("Network error")

        screen.handle_key("u")

        assert screen.message.startswith("Network error")
        assert screen.message_style == "red"
        assert screen.manager.result_artifact is not None

        recording_service.upload.side_effect = None
        screen.handle_key("u")
        assert screen.message == "Recording uploaded successfully!"

    def test_record_again_allows_new_upload(self, screen, fake_backend, recording_service):
        finish_recording(screen, fake_backend)
        screen.handle_key("u")

        screen.handle_key("3")
        finish_recording(screen, fake_backend, b"second-answer")
        screen.handle_key("u")

        assert recording_service.upload.call_count == 2

    def test_preview_key(self, screen, fake_backend):
        screen.handle_key("p")
        assert "Finish a recording" in screen.message

        finish_recording(screen, fake_backend)
        screen.handle_key("p")

        assert screen.message == f"Preview saved to {screen.manager.preview_path}"

    def test_capture_events_update_message(self, screen):
        screen.on_capture_event(CaptureEvent("error", CaptureState.ERROR, 1, error=PermissionDeniedError()))
        assert screen.message == PermissionDeniedError.default_message

        screen.on_capture_event(CaptureEvent("reset", CaptureState.IDLE, 2))
        assert screen.message is None

    def test_render_shows_state_and_labels(self, screen):
        screen.handle_key("1")

        panel = screen.render()
        screen.console.print(panel)
        output = screen.console.export_text()

        assert isinstance(panel, Panel)
        assert "RECORDING" in output
        assert "Jane Doe" in output
        assert "Q3 Rate Negotiation" in output


@pytest.mark.unit
class TestRecordingsView:
    """Test cases for list and profile rendering."""

    def test_format_helpers(self):
        assert format_time(0) == "0:00"
        assert format_time(75) == "1:15"
        assert format_size_kb(2048) == "2 KB"

    def test_admin_table_has_user_column(self, admin_identity, user_identity):
        policy = AccessPolicy(admin_emails=["admin@example.com"])
        recordings = [RecordingLog(candidate_name="Jane", question_label="Intro", question_position=2,
                                   file_url="https://example/a.webm", user_id="user-123",
                                   created_at=datetime(2024, 5, 1, 10, 0))]

        admin_table = build_recordings_table(recordings, admin_identity, policy)
        user_table = build_recordings_table(recordings, user_identity, policy)

        assert [c.header for c in admin_table.columns] == ["Candidate", "Question", "Q#", "Recorded", "User", "File"]
        assert "User" not in [c.header for c in user_table.columns]
        assert admin_table.title == "All Recordings"
        assert user_table.title == "My Recordings"

    def test_empty_list_messages(self, admin_identity, user_identity):
        policy = AccessPolicy(admin_emails=["admin@example.com"])
        console = Console(record=True, width=120)

        render_recordings(console, [], user_identity, policy)
        render_recordings(console, [], admin_identity, policy)
        output = console.export_text()

        assert "Record your first one" in output
        assert "No recordings found in the system." in output

    def test_render_profile(self, admin_identity):
        console = Console(record=True, width=120)

        render_profile(console, admin_identity, AccessPolicy(admin_emails=["admin@example.com"]))
        render_profile(console, None, AccessPolicy())
        output = console.export_text()

        assert "Admin@Example.com" in output
        assert "Admin" in output
        assert "Not signed in" in output
