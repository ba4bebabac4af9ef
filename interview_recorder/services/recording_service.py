"""Hand-off workflow: upload a finished recording and record its metadata."""

import logging
import uuid
from typing import Optional, Tuple

from supabase import Client

from ..audio.encodings import extension_for
from ..exceptions import InterviewRecorderError, NotAuthenticatedError, UploadError
from ..models.capture import AudioArtifact
from ..models.recording import Identity, RecordingLog, RecordingMetadata
from ..storage.file_manager import FileManager, PendingUpload
from .access import AccessPolicy
from .recordings_repository import RecordingsRepository

logger = logging.getLogger(__name__)


def build_storage_path(candidate_name: str, mime_type: str) -> str:
    """``recordings/<candidate>/<uuid>.<ext>``, the extension following the real encoding."""
    folder = candidate_name.strip().replace("/", "-").replace("\\", "-")
    return f"recordings/{folder}/{uuid.uuid4()}.{extension_for(mime_type)}"


class RecordingService:
    """Uploads artifacts to object storage and persists their records.

    The artifact is never modified: it is stored with the content type it
    was recorded in. A failed upload leaves the caller's artifact untouched
    and, when a FileManager is configured, keeps a local copy for ``retry``.
    """

    def __init__(self,
                 client: Client,
                 repository: RecordingsRepository,
                 policy: AccessPolicy,
                 file_manager: Optional[FileManager] = None,
                 bucket: str = "recordings"):
        self.client = client
        self.repository = repository
        self.policy = policy
        self.file_manager = file_manager
        self.bucket = bucket
        # Local copy kept for the most recent failed artifact; one copy per artifact
        self._kept_copy: Optional[Tuple[AudioArtifact, PendingUpload]] = None

    def upload(self,
               artifact: Optional[AudioArtifact],
               metadata: RecordingMetadata,
               identity: Optional[Identity] = None) -> RecordingLog:
        """Upload ``artifact`` and insert its record.

        Raises:
            NotAuthenticatedError: no identity and anonymous uploads are off
            UploadError: storage or database failure
        """
        if artifact is None or artifact.size == 0:
            raise UploadError("There is no recording to upload")
        if identity is None and not self.policy.allow_anonymous:
            raise NotAuthenticatedError()

        try:
            log = self._hand_off(artifact, metadata, identity)
        except UploadError as e:
            self._keep_for_retry(artifact, metadata, identity, e.user_message)
            raise
        self._discard_kept_copy(artifact)
        return log

    def retry_pending(self, pending: PendingUpload, identity: Optional[Identity] = None) -> RecordingLog:
        """Re-attempt a saved upload; it is removed locally on success."""
        if self.file_manager is None:
            raise UploadError("No local storage configured for pending uploads")
        if identity is None and not self.policy.allow_anonymous:
            raise NotAuthenticatedError()

        artifact = self.file_manager.load_pending_artifact(pending)
        try:
            log = self._hand_off(artifact, pending.metadata, identity)
        except UploadError as e:
            self.file_manager.update_pending_error(pending, e.user_message)
            raise
        self.file_manager.remove_pending_upload(pending.pending_id)
        return log

    def _hand_off(self, artifact: AudioArtifact, metadata: RecordingMetadata,
                  identity: Optional[Identity]) -> RecordingLog:
        file_path = build_storage_path(metadata.candidate_name, artifact.mime_type)
        logger.info(f"Uploading {artifact.size} bytes ({artifact.mime_type}) to {self.bucket}/{file_path}")

        bucket = self.client.storage.from_(self.bucket)
        try:
            bucket.upload(
                path=file_path,
                file=artifact.data,
                file_options={
                    "content-type": artifact.mime_type,
                    "cache-control": "3600",
                    "upsert": "false",
                },
            )
            public_url = bucket.get_public_url(file_path)
        except Exception as e:
            logger.error(f"Upload error: {e}")
            raise UploadError(str(e) or "Failed to upload recording") from e

        log = RecordingLog(
            candidate_name=metadata.candidate_name,
            question_label=metadata.question_label,
            question_position=metadata.question_position,
            file_url=public_url,
            user_id=identity.id if identity else None,
        )
        try:
            return self.repository.insert(log)
        except InterviewRecorderError as e:
            raise UploadError(f"Recording uploaded but saving its details failed: {e}") from e

    def _keep_for_retry(self, artifact: AudioArtifact, metadata: RecordingMetadata,
                        identity: Optional[Identity], error_message: str) -> None:
        if self.file_manager is None:
            return
        kept = self._kept_copy
        try:
            if (kept is not None and kept[0] is artifact
                    and self.file_manager.load_pending_upload(kept[1].pending_id) is not None):
                self.file_manager.update_pending_error(kept[1], error_message)
                logger.info(f"Updated pending upload {kept[1].pending_id}")
                return
            pending = self.file_manager.save_pending_upload(
                artifact, metadata, identity.id if identity else None, error_message
            )
            self._kept_copy = (artifact, pending)
            logger.info(f"Kept failed upload as pending {pending.pending_id}")
        except OSError as e:
            logger.error(f"Could not keep failed upload for retry: {e}")

    def _discard_kept_copy(self, artifact: AudioArtifact) -> None:
        kept = self._kept_copy
        if kept is None or kept[0] is not artifact:
            return
        self._kept_copy = None
        if self.file_manager is not None:
            self.file_manager.remove_pending_upload(kept[1].pending_id)
