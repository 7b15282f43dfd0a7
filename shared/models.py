"""
Data models for the TaskBadge generator.

This module provides the models shared by the scanner, renderer and commit
pipeline:
- Task count pairs and per-source records
- Badge artifacts and their on-disk JSON document
- Commit pipeline results and status enums
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


MESSAGE_PATTERN = r"^\d+/\d+$"


class BadgeColor(Enum):
    """Badge colors."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @property
    def shields_value(self) -> str:
        """Color name understood by the badge rendering service."""
        if self is BadgeColor.GREEN:
            return "brightgreen"
        return self.value

    @classmethod
    def from_shields_value(cls, value: str) -> "BadgeColor":
        if value == "brightgreen":
            return cls.GREEN
        return cls(value)


class PipelineStatus(Enum):
    """Final outcome of a commit pipeline run."""
    SUCCESS = "success"
    NO_CHANGES = "no_changes"
    FAILURE = "failure"


class PipelineStage(Enum):
    """Commit pipeline states."""
    VALIDATE = "validate"
    WRITE_FILES = "write_files"
    STAGE = "stage"
    DIFF_CHECK = "diff_check"
    COMMIT = "commit"
    PUSH = "push"
    DONE = "done"


class PushErrorKind(Enum):
    """Classification of a failed push."""
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    NO_REMOTE = "no_remote"
    PATH_ESCAPE = "path_escape"
    TIMEOUT = "timeout"
    NETWORK = "network"
    NON_FAST_FORWARD = "non_fast_forward"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in (
            PushErrorKind.TIMEOUT,
            PushErrorKind.NETWORK,
            PushErrorKind.NON_FAST_FORWARD,
            PushErrorKind.UNKNOWN,
        )


class CountPair(BaseModel):
    """Total and completed task counts."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0, description="Number of task lines")
    completed: int = Field(default=0, ge=0, description="Number of completed task lines")

    @model_validator(mode="after")
    def validate_completed(self):
        """Completed tasks can never exceed the total."""
        if self.completed > self.total:
            raise ValueError(
                f"Completed tasks ({self.completed}) cannot exceed total tasks ({self.total})"
            )
        return self

    @computed_field
    @property
    def rate(self) -> float:
        """Completion rate, 0 when there are no tasks."""
        if self.total == 0:
            return 0.0
        return self.completed / self.total

    def __add__(self, other: "CountPair") -> "CountPair":
        return CountPair(total=self.total + other.total, completed=self.completed + other.completed)


class SourceRecord(BaseModel):
    """Counts for one named document source."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Document source name")
    counts: CountPair


class DocumentSource(BaseModel):
    """Raw document handed from discovery to aggregation.

    ``raw_text`` of ``None`` without an ``error`` means the document does not
    exist; an ``error`` means it could not be retrieved.
    """

    name: str = Field(..., min_length=1)
    raw_text: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class AggregateResult(BaseModel):
    """Per-source records plus their element-wise sum."""

    records: List[SourceRecord] = Field(default_factory=list)
    global_counts: CountPair = Field(default_factory=CountPair)


class BadgeDocument(BaseModel):
    """On-disk badge JSON consumed by the badge rendering service."""

    model_config = ConfigDict(populate_by_name=True)

    schema_version: Literal[1] = Field(default=1, alias="schemaVersion")
    label: str = Field(..., min_length=1)
    message: str = Field(..., pattern=MESSAGE_PATTERN)
    color: Literal["brightgreen", "yellow", "red"]

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "BadgeDocument":
        return cls.model_validate(json.loads(json_str))


class Artifact(BaseModel):
    """A rendered badge and the workspace-relative path it is written to."""

    model_config = ConfigDict(frozen=True)

    target_path: str = Field(..., min_length=1, description="Workspace relative path")
    label: str = Field(..., min_length=1)
    message: str = Field(..., pattern=MESSAGE_PATTERN)
    color: BadgeColor

    def to_document(self) -> BadgeDocument:
        return BadgeDocument(label=self.label, message=self.message, color=self.color.shields_value)

    def serialize(self) -> str:
        """Serialized file content."""
        return self.to_document().to_json()


@dataclass
class CommitAttempt:
    """State of one push attempt inside the retry loop."""

    number: int
    last_error: str = ""
    retryable: bool = False
    kind: Optional[PushErrorKind] = None


class PipelineResult(BaseModel):
    """Outcome of one commit pipeline run."""

    status: PipelineStatus
    stage: PipelineStage = PipelineStage.DONE
    written_paths: List[str] = Field(default_factory=list)
    committed: bool = False
    pushed: bool = False
    commit_sha: Optional[str] = None
    attempts: int = 0
    error: Optional[str] = None
    suggestion: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not PipelineStatus.FAILURE

    @property
    def local_only_commit(self) -> bool:
        """A commit exists locally that never reached the remote."""
        return self.committed and not self.pushed
