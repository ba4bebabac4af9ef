"""Rich rendering for recording lists and the user profile."""

from typing import List, Optional

from rich.console import Console
from rich.table import Table

from ..models.recording import Identity, RecordingLog
from ..services.access import AccessPolicy


def format_time(seconds: int) -> str:
    """``75`` -> ``1:15``."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def format_size_kb(size_bytes: int) -> str:
    return f"{round(size_bytes / 1024)} KB"


def build_recordings_table(recordings: List[RecordingLog], identity: Optional[Identity],
                           policy: AccessPolicy) -> Table:
    is_admin = policy.is_admin(identity)
    table = Table(title=policy.list_title(identity), show_lines=False)
    table.add_column("Candidate", style="bold")
    table.add_column("Question")
    table.add_column("Q#", justify="right")
    table.add_column("Recorded")
    if is_admin:
        table.add_column("User", style="dim")
    table.add_column("File", overflow="fold")

    for recording in recordings:
        row = [
            recording.candidate_name,
            recording.question_label,
            f"Q{recording.question_position}" if recording.question_position else "",
            recording.created_at.strftime("%Y-%m-%d %H:%M") if recording.created_at else "",
        ]
        if is_admin:
            row.append(recording.user_id or "")
        row.append(recording.file_url)
        table.add_row(*row)
    return table


def render_recordings(console: Console, recordings: List[RecordingLog],
                      identity: Optional[Identity], policy: AccessPolicy) -> None:
    if not recordings:
        if policy.is_admin(identity):
            console.print("No recordings found in the system.", style="yellow")
        else:
            console.print("No recordings found. Record your first one with "
                          "[bold]interview-recorder record[/bold]!", style="yellow")
        return
    console.print(build_recordings_table(recordings, identity, policy))


def render_profile(console: Console, identity: Optional[Identity], policy: AccessPolicy) -> None:
    if identity is None:
        console.print("Not signed in", style="yellow")
        return
    role = policy.role_label(identity)
    style = "bold magenta" if role == "Admin" else "bold blue"
    console.print(f"👤 {identity.email or identity.id}  [{style}]{role}[/{style}]")
