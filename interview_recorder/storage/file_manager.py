"""File management module for local recorder data."""

import json
import logging
import random
import shutil
import string
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..audio.encodings import extension_for
from ..models.capture import AudioArtifact
from ..models.recording import RecordingMetadata

logger = logging.getLogger(__name__)

PENDING_INFO_FILE = "pending_upload.json"


@dataclass
class PendingUpload:
    """A recording whose upload failed, kept for a manual retry."""
    pending_id: str
    created_at: datetime
    metadata: RecordingMetadata
    mime_type: str
    audio_file: str
    file_size_bytes: int
    user_id: Optional[str] = None
    last_error: Optional[str] = None


class FileManager:
    """Manages local storage: pending uploads and the auth session file."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all local data
        """
        self.data_dir = Path(data_dir)
        self.pending_dir = self.data_dir / "pending"

        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.pending_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    @property
    def auth_session_file(self) -> Path:
        return self.data_dir / "auth_session.json"

    def _new_pending_id(self) -> str:
        # Timestamp plus random suffix keeps ids unique and sortable
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
        return f"{timestamp}_{random_suffix}"

    def save_pending_upload(self,
                            artifact: AudioArtifact,
                            metadata: RecordingMetadata,
                            user_id: Optional[str] = None,
                            last_error: Optional[str] = None) -> PendingUpload:
        """Store an artifact and its metadata so the upload can be retried later.

        Args:
            artifact: The recording that failed to upload
            metadata: Labels the user entered for it
            user_id: Owner identity, if signed in
            last_error: Message of the failure that caused the save

        Returns:
            The saved PendingUpload
        """
        pending_id = self._new_pending_id()
        pending_path = self.pending_dir / pending_id
        pending_path.mkdir(parents=True, exist_ok=True)

        audio_file = f"audio.{extension_for(artifact.mime_type)}"
        pending = PendingUpload(
            pending_id=pending_id,
            created_at=datetime.now(),
            metadata=metadata,
            mime_type=artifact.mime_type,
            audio_file=audio_file,
            file_size_bytes=artifact.size,
            user_id=user_id,
            last_error=last_error,
        )

        try:
            (pending_path / audio_file).write_bytes(artifact.data)
            self._write_info(pending_path, pending)
        except OSError as e:
            logger.error(f"Error saving pending upload: {e}")
            shutil.rmtree(pending_path, ignore_errors=True)
            raise

        logger.info(f"Pending upload saved: {pending_path} ({artifact.size} bytes)")
        return pending

    def _write_info(self, pending_path: Path, pending: PendingUpload) -> None:
        info = {
            "pending_id": pending.pending_id,
            "created_at": pending.created_at.isoformat(),
            "metadata": pending.metadata.model_dump(),
            "mime_type": pending.mime_type,
            "audio_file": pending.audio_file,
            "file_size_bytes": pending.file_size_bytes,
            "user_id": pending.user_id,
            "last_error": pending.last_error,
        }
        with open(pending_path / PENDING_INFO_FILE, 'w', encoding='utf-8') as f:
            json.dump(info, f, indent=2)

    def load_pending_upload(self, pending_id: str) -> Optional[PendingUpload]:
        """Load pending upload information.

        Args:
            pending_id: Pending upload identifier

        Returns:
            PendingUpload or None if not found or unreadable
        """
        info_file = self.pending_dir / pending_id / PENDING_INFO_FILE

        if not info_file.exists():
            logger.warning(f"Pending upload info not found: {info_file}")
            return None

        try:
            with open(info_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            return PendingUpload(
                pending_id=data["pending_id"],
                created_at=datetime.fromisoformat(data["created_at"]),
                metadata=RecordingMetadata(**data["metadata"]),
                mime_type=data["mime_type"],
                audio_file=data["audio_file"],
                file_size_bytes=data["file_size_bytes"],
                user_id=data.get("user_id"),
                last_error=data.get("last_error"),
            )

        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading pending upload {pending_id}: {e}")
            return None

    def load_pending_artifact(self, pending: PendingUpload) -> AudioArtifact:
        audio_path = self.pending_dir / pending.pending_id / pending.audio_file
        return AudioArtifact(data=audio_path.read_bytes(), mime_type=pending.mime_type)

    def update_pending_error(self, pending: PendingUpload, last_error: str) -> None:
        pending.last_error = last_error
        self._write_info(self.pending_dir / pending.pending_id, pending)

    def list_pending_uploads(self) -> List[PendingUpload]:
        """List pending uploads, oldest first."""
        pending_uploads = []
        for path in sorted(self.pending_dir.iterdir()):
            if path.is_dir() and (path / PENDING_INFO_FILE).exists():
                pending = self.load_pending_upload(path.name)
                if pending:
                    pending_uploads.append(pending)

        logger.debug(f"Found {len(pending_uploads)} pending uploads")
        return pending_uploads

    def remove_pending_upload(self, pending_id: str) -> bool:
        """Delete a pending upload once it has been uploaded.

        Returns:
            True if something was removed
        """
        pending_path = self.pending_dir / pending_id
        if not pending_path.exists():
            return False
        shutil.rmtree(pending_path)
        logger.info(f"Removed pending upload: {pending_id}")
        return True
