"""Exception hierarchy for the interview recorder.

Every capture failure is terminal for the session it happened in and
carries a ``user_message`` that the UI shows verbatim.
"""

from typing import Optional


class InterviewRecorderError(Exception):
    """Base exception for all interview recorder errors."""

    code = "INTERVIEW_RECORDER_ERROR"
    default_message = "An unexpected error occurred."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(detail or self.default_message)

    @property
    def user_message(self) -> str:
        return self.default_message


# -- Capture session taxonomy ------------------------------------------------


class CaptureError(InterviewRecorderError):
    """A failure that ends the current capture session."""

    code = "CAPTURE_ERROR"


class CapabilityUnsupportedError(CaptureError):
    code = "CAPABILITY_UNSUPPORTED"
    default_message = (
        "Audio recording is not supported on this system. "
        "Check that PortAudio is installed and an input device exists."
    )


class PermissionDeniedError(CaptureError):
    code = "PERMISSION_DENIED"
    default_message = (
        "Error accessing microphone. Please allow microphone access and try again."
    )


class DeviceNotFoundError(CaptureError):
    code = "DEVICE_NOT_FOUND"
    default_message = (
        "Error accessing microphone. No microphone found. Please connect a microphone."
    )


class DeviceUnavailableError(CaptureError):
    code = "DEVICE_UNAVAILABLE"
    default_message = (
        "Error accessing microphone. "
        "Microphone is being used by another application."
    )


class AcquisitionFailedError(CaptureError):
    """Unclassified device acquisition failure."""

    code = "ACQUISITION_FAILED"
    default_message = "Error accessing microphone. Please check your microphone permissions."

    @property
    def user_message(self) -> str:
        if self.detail:
            return f"Error accessing microphone. {self.detail}"
        return self.default_message


class EmptyRecordingError(CaptureError):
    code = "EMPTY_RECORDING"
    default_message = "No audio data was recorded. Please check your microphone and try again."


class FinalizationFailedError(CaptureError):
    code = "FINALIZATION_FAILED"
    default_message = "Failed to create audio file. Please try recording again."

    @property
    def user_message(self) -> str:
        return self.detail or self.default_message


# -- Misuse and environment errors (never change session state) -------------


class CaptureInProgressError(InterviewRecorderError):
    code = "CAPTURE_IN_PROGRESS"
    default_message = "A recording is already in progress."


class DeviceReleasedError(InterviewRecorderError):
    code = "DEVICE_RELEASED"
    default_message = "The audio device has already been released."


class UnsupportedEncodingError(InterviewRecorderError):
    code = "UNSUPPORTED_ENCODING"
    default_message = "The requested audio encoding is not supported."


# -- Collaborator errors -------------------------------------------------------


class ConfigurationError(InterviewRecorderError):
    code = "CONFIGURATION_ERROR"
    default_message = "The application is not configured correctly."

    @property
    def user_message(self) -> str:
        return self.detail or self.default_message


class AuthError(InterviewRecorderError):
    code = "AUTH_ERROR"
    default_message = "Authentication failed."

    @property
    def user_message(self) -> str:
        return self.detail or self.default_message


class NotAuthenticatedError(AuthError):
    code = "NOT_AUTHENTICATED"
    default_message = "Please sign in to continue."

    @property
    def user_message(self) -> str:
        return self.default_message


class MetadataValidationError(InterviewRecorderError):
    code = "INVALID_METADATA"
    default_message = "Recording details are incomplete."

    @property
    def user_message(self) -> str:
        return self.detail or self.default_message


class UploadError(InterviewRecorderError):
    code = "UPLOAD_FAILED"
    default_message = "Failed to upload recording"

    @property
    def user_message(self) -> str:
        return self.detail or self.default_message


class RepositoryError(InterviewRecorderError):
    code = "REPOSITORY_ERROR"
    default_message = "Failed to load recordings. Please try again."
