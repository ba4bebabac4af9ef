"""Services layer: auth, access policy, records and the upload hand-off."""

from .access import AccessPolicy
from .auth_service import AuthService
from .recording_service import RecordingService, build_storage_path
from .recordings_repository import RecordingsRepository

__all__ = [
    "AccessPolicy",
    "AuthService",
    "RecordingService",
    "RecordingsRepository",
    "build_storage_path",
]
