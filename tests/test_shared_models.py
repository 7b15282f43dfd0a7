"""
Unit tests for shared models module.

Covers count invariants, badge documents, color mapping and pipeline
result helpers.
"""

import json

import pytest
from pydantic import ValidationError

from shared.errors import (
    BadgeError,
    ConfigurationError,
    PushError,
    PushRetriesExhaustedError,
    StageError,
)
from shared.models import (
    AggregateResult,
    Artifact,
    BadgeColor,
    BadgeDocument,
    CountPair,
    DocumentSource,
    PipelineResult,
    PipelineStage,
    PipelineStatus,
    PushErrorKind,
    SourceRecord,
)


class TestCountPair:
    """Test cases for CountPair."""

    def test_defaults(self):
        """Test the empty pair."""
        counts = CountPair()

        assert counts.total == 0
        assert counts.completed == 0
        assert counts.rate == 0.0

    def test_rate(self):
        """Test the completion rate."""
        assert CountPair(total=8, completed=5).rate == pytest.approx(0.625)

    def test_completed_cannot_exceed_total(self):
        """Test the count invariant."""
        with pytest.raises(ValidationError):
            CountPair(total=2, completed=3)

    def test_negative_counts(self):
        """Test that counts are non-negative."""
        with pytest.raises(ValidationError):
            CountPair(total=-1, completed=0)

    def test_addition(self):
        """Test element-wise sum."""
        assert CountPair(total=3, completed=1) + CountPair(total=2, completed=2) == CountPair(
            total=5, completed=3
        )

    def test_frozen(self):
        """Test that pairs are immutable."""
        counts = CountPair(total=1, completed=1)

        with pytest.raises(ValidationError):
            counts.total = 2

    def test_rate_in_dump(self):
        """Test that the computed rate is serialized."""
        assert CountPair(total=4, completed=1).model_dump() == {"total": 4, "completed": 1, "rate": 0.25}


class TestSourceModels:
    """Test cases for source and aggregate models."""

    def test_source_record_requires_name(self):
        """Test that names cannot be empty."""
        with pytest.raises(ValidationError):
            SourceRecord(name="", counts=CountPair())

    def test_document_source_failed(self):
        """Test the failed flag."""
        assert not DocumentSource(name="a").failed
        assert not DocumentSource(name="a", raw_text="- [x]").failed
        assert DocumentSource(name="a", error="denied").failed

    def test_aggregate_defaults(self):
        """Test the empty aggregate."""
        result = AggregateResult()

        assert result.records == []
        assert result.global_counts == CountPair()


class TestBadgeColor:
    """Test cases for BadgeColor."""

    @pytest.mark.parametrize(
        "color,value",
        [
            (BadgeColor.GREEN, "brightgreen"),
            (BadgeColor.YELLOW, "yellow"),
            (BadgeColor.RED, "red"),
        ],
    )
    def test_shields_value(self, color, value):
        """Test the rendering-service color names."""
        assert color.shields_value == value
        assert BadgeColor.from_shields_value(value) is color


class TestBadgeDocument:
    """Test cases for BadgeDocument and Artifact."""

    def test_alias_serialization(self):
        """Test the camelCase schema field."""
        document = BadgeDocument(label="All Tasks", message="5/8", color="yellow")

        assert json.loads(document.to_json()) == {
            "schemaVersion": 1,
            "label": "All Tasks",
            "message": "5/8",
            "color": "yellow",
        }

    def test_from_json(self):
        """Test parsing a badge file."""
        document = BadgeDocument.from_json(
            '{"schemaVersion": 1, "label": "x Tasks", "message": "0/0", "color": "red"}'
        )

        assert document.schema_version == 1
        assert document.message == "0/0"

    @pytest.mark.parametrize("message", ["5 of 8", "5/", "-1/2", ""])
    def test_message_pattern(self, message):
        """Test that messages are completed/total."""
        with pytest.raises(ValidationError):
            BadgeDocument(label="x", message=message, color="red")

    def test_unknown_color(self):
        """Test that only three colors are allowed."""
        with pytest.raises(ValidationError):
            BadgeDocument(label="x", message="1/2", color="blue")

    def test_unknown_schema_version(self):
        """Test that the schema version is fixed."""
        with pytest.raises(ValidationError):
            BadgeDocument.from_json('{"schemaVersion": 2, "label": "x", "message": "1/2", "color": "red"}')

    def test_artifact_serialize(self):
        """Test that artifacts serialize through the document."""
        artifact = Artifact(
            target_path=".kiro/alpha-badge-data.json",
            label="alpha Tasks",
            message="5/5",
            color=BadgeColor.GREEN,
        )

        assert artifact.to_document().color == "brightgreen"
        assert artifact.serialize() == artifact.to_document().to_json()
        assert not artifact.serialize().endswith("\n")


class TestPipelineResult:
    """Test cases for PipelineResult."""

    def test_success(self):
        """Test a pushed result."""
        result = PipelineResult(status=PipelineStatus.SUCCESS, committed=True, pushed=True, attempts=1)

        assert result.ok
        assert not result.local_only_commit
        assert result.stage is PipelineStage.DONE

    def test_no_changes_is_ok(self):
        """Test that no changes is not a failure."""
        assert PipelineResult(status=PipelineStatus.NO_CHANGES).ok

    def test_local_only_commit(self):
        """Test a commit that never reached the remote."""
        result = PipelineResult(
            status=PipelineStatus.FAILURE,
            stage=PipelineStage.PUSH,
            committed=True,
            pushed=False,
        )

        assert not result.ok
        assert result.local_only_commit


class TestErrors:
    """Test cases for the exception hierarchy."""

    @pytest.mark.parametrize(
        "kind,retryable",
        [
            (PushErrorKind.AUTHENTICATION, False),
            (PushErrorKind.NOT_FOUND, False),
            (PushErrorKind.NO_REMOTE, False),
            (PushErrorKind.PATH_ESCAPE, False),
            (PushErrorKind.TIMEOUT, True),
            (PushErrorKind.NETWORK, True),
            (PushErrorKind.NON_FAST_FORWARD, True),
            (PushErrorKind.UNKNOWN, True),
        ],
    )
    def test_push_error_retryable(self, kind, retryable):
        """Test retryability per error kind."""
        error = PushError("push failed", kind=kind)

        assert error.kind.retryable is retryable
        assert error.stage is PipelineStage.PUSH

    def test_exhausted_is_push_error(self):
        """Test the retries exhausted error."""
        error = PushRetriesExhaustedError("gave up", kind=PushErrorKind.TIMEOUT, attempts=3)

        assert isinstance(error, PushError)
        assert error.attempts == 3

    def test_stage_error(self):
        """Test stage attribution and suggestion."""
        error = StageError("Failed to stage", suggestion="Check the index lock")

        assert error.stage is PipelineStage.STAGE
        assert error.suggestion == "Check the index lock"

    def test_configuration_error(self):
        """Test that configuration errors belong to no pipeline stage."""
        error = ConfigurationError("Invalid configuration", suggestion="Fix the settings")

        assert isinstance(error, BadgeError)
        assert error.stage is None
        assert error.suggestion == "Fix the settings"
