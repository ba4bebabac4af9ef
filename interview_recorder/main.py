"""Command line entry point for the interview recorder."""

import functools
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from . import __version__
from .config import RecorderConfig
from .exceptions import InterviewRecorderError, NotAuthenticatedError

logger = logging.getLogger(__name__)
console = Console()


def setup_logging(config: RecorderConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/interview_recorder.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - warnings only, the rich UI owns the terminal
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("Interview recorder starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


class AppContext:
    """Lazily wires configuration, logging and services for a command."""

    def __init__(self, config_path: Optional[str], log_level: Optional[str]):
        self.config_path = config_path
        self.log_level = log_level
        self._config: Optional[RecorderConfig] = None
        self._client = None
        self._file_manager = None

    @property
    def config(self) -> RecorderConfig:
        if self._config is None:
            self._config = RecorderConfig(self.config_path)
            setup_logging(self._config, self.log_level or self._config.get('logging.level', 'INFO'))
        return self._config

    @property
    def file_manager(self):
        from .storage.file_manager import FileManager
        if self._file_manager is None:
            self._file_manager = FileManager(self.config.get_data_directory())
        return self._file_manager

    @property
    def client(self):
        from .services.supabase_client import create_supabase_client
        if self._client is None:
            self._client = create_supabase_client(self.config, self.file_manager.auth_session_file)
        return self._client

    def policy(self):
        from .services.access import AccessPolicy
        return AccessPolicy.from_config(self.config)

    def auth(self):
        from .services.auth_service import AuthService
        return AuthService(self.client)

    def repository(self):
        from .services.recordings_repository import RecordingsRepository
        return RecordingsRepository(self.client, self.policy(),
                                    table=self.config.get('supabase.table', 'recording_logs'))

    def recording_service(self):
        from .services.recording_service import RecordingService
        return RecordingService(
            self.client,
            self.repository(),
            self.policy(),
            file_manager=self.file_manager,
            bucket=self.config.get('supabase.bucket', 'recordings'),
        )

    def identity_or_anonymous(self):
        """Signed-in identity; None only when anonymous access is allowed."""
        identity = self.auth().current_identity()
        if identity is None and not self.policy().allow_anonymous:
            raise NotAuthenticatedError()
        return identity


def reports_errors(command):
    """Print application errors for the user and exit non-zero."""
    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except InterviewRecorderError as e:
            logger.error(f"Command failed [{e.code}]: {e}")
            console.print(f"❌ {e.user_message}", style="bold red")
            if isinstance(e, NotAuthenticatedError):
                console.print("Run [bold]interview-recorder login[/bold] first.")
            sys.exit(1)
    return wrapper


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="Path to configuration YAML file (default: looks for interview_recorder.yaml)")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Set logging level (overrides config)")
@click.version_option(__version__, prog_name="interview-recorder")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """Voice interview recorder: record answers, upload them, browse recordings."""
    ctx.obj = AppContext(config_path, log_level)


@cli.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
@click.pass_obj
@reports_errors
def login(app: AppContext, email: str, password: str) -> None:
    """Sign in to access your recordings."""
    from .ui.recordings_view import render_profile
    identity = app.auth().sign_in(email, password)
    console.print("✅ Signed in", style="green")
    render_profile(console, identity, app.policy())


@cli.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_obj
@reports_errors
def signup(app: AppContext, email: str, password: str) -> None:
    """Create an account."""
    identity = app.auth().sign_up(email, password)
    if identity is None:
        console.print("📧 Check your email to confirm your account, then run login.", style="cyan")
    else:
        console.print(f"✅ Account created, signed in as {identity.email}", style="green")


@cli.command()
@click.pass_obj
@reports_errors
def logout(app: AppContext) -> None:
    """Sign out."""
    app.auth().sign_out()
    console.print("👋 Signed out")


@cli.command()
@click.pass_obj
@reports_errors
def whoami(app: AppContext) -> None:
    """Show the signed-in user and role."""
    from .ui.recordings_view import render_profile
    render_profile(console, app.auth().current_identity(), app.policy())


@cli.command()
@click.pass_obj
@reports_errors
def devices(app: AppContext) -> None:
    """List audio input devices (use the index as audio.device_index)."""
    from .audio.pyaudio_backend import PyAudioBackend
    backend = PyAudioBackend()
    for info in backend.list_input_devices():
        console.print(f"[bold]{info['index']}[/bold]  {info['name']}  "
                      f"({int(info['maxInputChannels'])} ch, {int(info['defaultSampleRate'])} Hz)")


@cli.command()
@click.option("--candidate", prompt="Candidate name", help="Candidate's full name")
@click.option("--question", prompt="Question label", help="e.g. Rate Negotiation, Technical Skills")
@click.option("--position", type=click.IntRange(1, 50), default=1, show_default=True,
              prompt="Question position", help="Question position in the interview")
@click.option("--device-index", type=int, default=None, help="Input device index (overrides config)")
@click.pass_obj
@reports_errors
def record(app: AppContext, candidate: str, question: str, position: int,
           device_index: Optional[int]) -> None:
    """Record an answer and upload it."""
    from .audio.capture import CaptureSessionManager
    from .audio.capture_pub import CapturePublisher
    from .audio.pyaudio_backend import PyAudioBackend
    from .exceptions import CapabilityUnsupportedError
    from .models.recording import RecordingMetadata
    from .ui.recorder_screen import RecorderScreen

    metadata = RecordingMetadata.build(candidate, question, position)
    identity = app.identity_or_anonymous()
    config = app.config

    constraints = config.get_audio_constraints()
    if device_index is not None:
        constraints.device_index = device_index

    publisher = CapturePublisher()
    manager = CaptureSessionManager(
        PyAudioBackend(),
        listener=publisher.publish_capture_event,
        mime_preferences=config.get('audio.mime_preferences'),
        fallback_mime=config.get('audio.fallback_mime'),
        timeslice_ms=int(config.get('audio.timeslice_ms', 100)),
    )
    if not manager.check_support():
        raise CapabilityUnsupportedError()

    screen = RecorderScreen(
        manager,
        app.recording_service(),
        metadata,
        identity,
        constraints=constraints,
        console=console,
        topic=publisher.topic,
    )
    screen.run()


@cli.command(name="list")
@click.pass_obj
@reports_errors
def list_recordings(app: AppContext) -> None:
    """Show your recordings (all recordings for admins)."""
    from .ui.recordings_view import render_recordings
    identity = app.identity_or_anonymous()
    with console.status("Loading recordings..."):
        recordings = app.repository().list_for(identity)
    render_recordings(console, recordings, identity, app.policy())


@cli.command()
@click.pass_obj
@reports_errors
def retry(app: AppContext) -> None:
    """Retry uploads that failed earlier."""
    from .exceptions import UploadError
    identity = app.identity_or_anonymous()
    pending_uploads = app.file_manager.list_pending_uploads()
    if not pending_uploads:
        console.print("Nothing to retry.")
        return

    service = app.recording_service()
    failed = 0
    for pending in pending_uploads:
        label = f"{pending.metadata.candidate_name} / {pending.metadata.question_label}"
        try:
            service.retry_pending(pending, identity)
            console.print(f"✅ Uploaded {label}", style="green")
        except UploadError as e:
            failed += 1
            console.print(f"❌ {label}: {e.user_message}", style="red")
    if failed:
        sys.exit(1)


def main() -> None:
    """Main entry point for the interview recorder."""
    cli()


if __name__ == "__main__":
    main()
