"""Recording metadata and persisted record models."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..exceptions import MetadataValidationError

MIN_QUESTION_POSITION = 1
MAX_QUESTION_POSITION = 50


class Identity(BaseModel):
    """The signed-in user as reported by the auth service."""
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None


class RecordingMetadata(BaseModel):
    """Caller-supplied labels attached to an uploaded recording."""
    candidate_name: str
    question_label: str
    question_position: int = Field(
        default=MIN_QUESTION_POSITION,
        ge=MIN_QUESTION_POSITION,
        le=MAX_QUESTION_POSITION,
    )

    @field_validator("candidate_name", "question_label")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @classmethod
    def build(cls, candidate_name: str, question_label: str,
              question_position: int = MIN_QUESTION_POSITION) -> "RecordingMetadata":
        """Validate user input, raising MetadataValidationError with a readable message."""
        if not candidate_name or not candidate_name.strip():
            raise MetadataValidationError("Please enter candidate name")
        if not question_label or not question_label.strip():
            raise MetadataValidationError("Please enter question label")
        try:
            return cls(
                candidate_name=candidate_name,
                question_label=question_label,
                question_position=question_position,
            )
        except ValidationError as e:
            raise MetadataValidationError(
                f"Question position must be between {MIN_QUESTION_POSITION} "
                f"and {MAX_QUESTION_POSITION}"
            ) from e


class RecordingLog(BaseModel):
    """A row of the ``recording_logs`` table."""
    id: Optional[str] = None
    candidate_name: str
    question_label: str
    question_position: Optional[int] = MIN_QUESTION_POSITION
    file_url: str
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_insert_row(self) -> Dict[str, Any]:
        """Columns sent on insert; server-generated columns are left out."""
        return self.model_dump(exclude={"id", "created_at"}, exclude_none=True)
