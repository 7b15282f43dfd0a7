"""TaskBadge exception hierarchy.

Commit pipeline stages raise these; the pipeline turns them into a failed
PipelineResult so the entry point always sees a final status. The entry
point raises ConfigurationError itself, before the pipeline runs.
"""

from typing import Optional

from shared.models import PipelineStage, PushErrorKind


class BadgeError(Exception):
    """Base exception for all TaskBadge errors."""

    stage: Optional[PipelineStage] = None

    def __init__(self, message: str = "", *, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.suggestion = suggestion


class ConfigurationError(BadgeError):
    """Invalid or missing configuration."""


class PipelineValidationError(BadgeError):
    """The batch failed pre-write validation."""

    stage = PipelineStage.VALIDATE


class ArtifactWriteError(BadgeError):
    """A badge file could not be written."""

    stage = PipelineStage.WRITE_FILES


class StageError(BadgeError):
    """A badge file could not be added to the index."""

    stage = PipelineStage.STAGE


class CommitError(BadgeError):
    """The commit could not be created."""

    stage = PipelineStage.COMMIT


class PushError(BadgeError):
    """The push was rejected or failed."""

    stage = PipelineStage.PUSH

    def __init__(
        self,
        message: str = "",
        *,
        kind: PushErrorKind = PushErrorKind.UNKNOWN,
        attempts: int = 1,
        suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(message, suggestion=suggestion)
        self.kind = kind
        self.attempts = attempts


class PushRetriesExhaustedError(PushError):
    """Every push attempt failed with a retryable error."""
