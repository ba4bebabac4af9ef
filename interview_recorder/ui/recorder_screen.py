"""Interactive recording screen."""

import logging
import time
from typing import Optional

from pubsub import pub
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ..audio.capture import CaptureSessionManager
from ..audio.capture_pub import CAPTURE_TOPIC
from ..exceptions import CaptureInProgressError, InterviewRecorderError
from ..models.capture import AudioConstraints, CaptureState
from ..models.events import CaptureEvent
from ..models.recording import Identity, RecordingMetadata
from ..services.recording_service import RecordingService
from .keyboard_input import create_input_handler
from .recordings_view import format_size_kb, format_time

logger = logging.getLogger(__name__)

_STATE_LABELS = {
    CaptureState.IDLE: ("⏹️  READY", "bold yellow"),
    CaptureState.REQUESTING: ("🎤 REQUESTING MICROPHONE", "bold cyan"),
    CaptureState.RECORDING: ("🔴 RECORDING", "bold red"),
    CaptureState.STOPPED: ("✅ RECORDING COMPLETE", "bold green"),
    CaptureState.ERROR: ("❌ ERROR", "bold red"),
}


class RecorderScreen:
    """Drives one capture session manager from the keyboard."""

    def __init__(self,
                 manager: CaptureSessionManager,
                 recording_service: RecordingService,
                 metadata: RecordingMetadata,
                 identity: Optional[Identity],
                 constraints: Optional[AudioConstraints] = None,
                 console: Optional[Console] = None,
                 topic: str = CAPTURE_TOPIC,
                 refresh_interval: float = 0.25):
        self.manager = manager
        self.recording_service = recording_service
        self.metadata = metadata
        self.identity = identity
        self.constraints = constraints or AudioConstraints()
        self.console = console or Console()
        self.topic = topic
        self.refresh_interval = refresh_interval

        self.message: Optional[str] = None
        self.message_style = "white"
        self.is_uploading = False
        self._uploaded_artifact = None

    def run(self) -> None:
        """Show the screen until the user quits, then dispose the session."""
        pub.subscribe(self.on_capture_event, self.topic)
        input_handler = create_input_handler(self.handle_key)
        try:
            with Live(self.render(), console=self.console, refresh_per_second=8) as live:
                input_handler.start()
                while not input_handler.finished.is_set():
                    live.update(self.render())
                    time.sleep(self.refresh_interval)
        finally:
            input_handler.stop()
            pub.unsubscribe(self.on_capture_event, self.topic)
            self.manager.dispose()

    def on_capture_event(self, event: CaptureEvent) -> None:
        if event.event_type == "stopped" and event.artifact is not None:
            self._set_message(f"Recording complete ({format_size_kb(event.artifact.size)})", "green")
        elif event.event_type == "error":
            self._set_message(event.error_message, "red")
        elif event.event_type == "reset":
            self._set_message(None)

    def handle_key(self, key: str) -> bool:
        """Run the command bound to ``key``. Returns False to quit."""
        if key == "q":
            return False
        if key == "1":
            self.start()
        elif key == "2":
            self.manager.stop_capture()
        elif key == "3":
            self.reset()
        elif key == "p":
            self.preview()
        elif key == "u":
            self.upload()
        return True

    def start(self) -> None:
        self._set_message(None)
        try:
            self.manager.start_capture(self.constraints)
        except CaptureInProgressError as e:
            self._set_message(e.user_message, "yellow")

    def reset(self) -> None:
        try:
            self.manager.reset()
        except CaptureInProgressError as e:
            self._set_message(e.user_message, "yellow")
            return
        self._uploaded_artifact = None

    def preview(self) -> None:
        path = self.manager.create_preview()
        if path:
            self._set_message(f"Preview saved to {path}", "cyan")
        else:
            self._set_message("Finish a recording before previewing it", "yellow")

    def upload(self) -> None:
        artifact = self.manager.result_artifact
        if artifact is None:
            self._set_message("Finish a recording before uploading it", "yellow")
            return
        if artifact is self._uploaded_artifact:
            self._set_message("This recording was already uploaded. Press 3 to record again.", "yellow")
            return

        self.is_uploading = True
        self._set_message("Uploading...", "cyan")
        try:
            self.recording_service.upload(artifact, self.metadata, self.identity)
        except InterviewRecorderError as e:
            logger.error(f"Upload error: {e}")
            self._set_message(f"{e.user_message}. A copy was kept; run 'interview-recorder retry' "
                              "or press u to try again.", "red")
        else:
            self._uploaded_artifact = artifact
            self._set_message("Recording uploaded successfully!", "green")
        finally:
            self.is_uploading = False

    def _set_message(self, message: Optional[str], style: str = "white") -> None:
        self.message = message
        self.message_style = style

    def render(self) -> Panel:
        status = self.manager.status()
        label, style = _STATE_LABELS[status.state]

        lines = [
            Text(label, style=style),
            Text(f"Candidate: {self.metadata.candidate_name}"),
            Text(f"Question:  Q{self.metadata.question_position} {self.metadata.question_label}"),
        ]
        if status.state is CaptureState.RECORDING:
            meter = "█" * int(status.peak_level * 20)
            lines.append(Text(f"Recording: {format_time(status.elapsed_seconds)}", style="red"))
            lines.append(Text(f"Level: [{meter:<20}] {format_size_kb(status.bytes_captured)}"))
        elif status.state is CaptureState.STOPPED and status.artifact_size is not None:
            lines.append(Text(f"{format_size_kb(status.artifact_size)} · {status.mime_type}"))
        if self.message:
            lines.append(Text(self.message, style=self.message_style))

        lines.append(Text(""))
        lines.append(Text.from_markup(
            "[bold green]1[/] start  [bold yellow]2[/] stop  [bold blue]3[/] record again  "
            "[bold cyan]p[/] preview  [bold magenta]u[/] upload  [bold red]q[/] quit"
        ))
        return Panel(Group(*lines), title="🎙️  Voice Interview Recorder", border_style="blue")
