"""
Commit pipeline for badge artifacts.

One run moves through

    VALIDATE -> WRITE_FILES -> STAGE -> DIFF_CHECK -> (DONE | COMMIT -> PUSH -> DONE)

Every artifact is written before any is staged, and every one is staged
before the commit. A failure in any stage aborts the batch. Files already
written stay on disk; a commit that was created but not pushed stays local
and is reported as such.
"""

import logging
import os
import stat
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from config.settings import GitSettings, settings
from shared.errors import (
    ArtifactWriteError,
    BadgeError,
    CommitError,
    PipelineValidationError,
    PushError,
    PushRetriesExhaustedError,
    StageError,
)
from shared.models import (
    Artifact,
    CommitAttempt,
    PipelineResult,
    PipelineStage,
    PipelineStatus,
    PushErrorKind,
)
from services.badge_committer.classifier import (
    PUSH_ERROR_DESCRIPTIONS,
    PUSH_ERROR_SUGGESTIONS,
    classify_push_error,
)
from services.badge_committer.ports import VersionControlPort

logger = logging.getLogger(__name__)

NOTHING_TO_COMMIT_MARKERS = ("nothing to commit", "nothing added to commit", "no changes added to commit")

NEW_FILE_MODE = 0o644


@dataclass
class BadgeTarget:
    """An artifact resolved against the working tree."""

    artifact: Artifact
    full_path: Path
    repo_path: str
    content: str


@dataclass
class PipelineRun:
    """Mutable state of one run."""

    artifacts: Sequence[Artifact]
    message: str
    targets: List[BadgeTarget] = field(default_factory=list)
    written_paths: List[str] = field(default_factory=list)
    status: PipelineStatus = PipelineStatus.SUCCESS
    committed: bool = False
    pushed: bool = False
    commit_sha: Optional[str] = None
    attempts: int = 0
    suggestion: Optional[str] = None

    @property
    def repo_paths(self) -> List[str]:
        return [target.repo_path for target in self.targets]


class CommitPipeline:
    """Writes, stages, commits and pushes one batch of badge artifacts."""

    def __init__(
        self,
        port: VersionControlPort,
        workspace: Union[str, Path] = ".",
        git_settings: Optional[GitSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.port = port
        self.workspace = Path(workspace).resolve()
        self.settings = git_settings or settings.git
        self.sleep = sleep
        self._handlers: Dict[PipelineStage, Callable[[PipelineRun], PipelineStage]] = {
            PipelineStage.VALIDATE: self.validate,
            PipelineStage.WRITE_FILES: self.write_files,
            PipelineStage.STAGE: self.stage_files,
            PipelineStage.DIFF_CHECK: self.diff_check,
            PipelineStage.COMMIT: self.commit,
            PipelineStage.PUSH: self.push,
        }

    def run(self, artifacts: Sequence[Artifact], message: Optional[str] = None) -> PipelineResult:
        """Run the pipeline; never raises for pipeline failures."""
        commit_message = self.settings.commit_message if message is None else message
        state = PipelineRun(artifacts=list(artifacts), message=commit_message)
        stage = PipelineStage.VALIDATE

        logger.info(f"Starting to commit {len(state.artifacts)} badge files")
        try:
            while stage is not PipelineStage.DONE:
                logger.debug(f"Pipeline stage: {stage.value}")
                stage = self._handlers[stage](state)
        except BadgeError as e:
            return self._failure(state, e.stage or stage, e)

        if state.status is PipelineStatus.NO_CHANGES:
            logger.info("No changes to commit - badge files are already up to date")
        else:
            logger.info(f"Committed and pushed badge files ({state.commit_sha})")

        return PipelineResult(
            status=state.status,
            written_paths=state.written_paths,
            committed=state.committed,
            pushed=state.pushed,
            commit_sha=state.commit_sha,
            attempts=state.attempts,
            suggestion=state.suggestion,
        )

    def _failure(self, state: PipelineRun, stage: PipelineStage, error: BadgeError) -> PipelineResult:
        suggestion = error.suggestion
        if state.committed and not state.pushed:
            local_note = (
                f"Local commit {state.commit_sha} was not pushed and exists only in this checkout."
            )
            suggestion = f"{suggestion} {local_note}" if suggestion else local_note
        logger.error(f"Commit pipeline failed at {stage.value}: {error}")
        if suggestion:
            logger.error(suggestion)

        return PipelineResult(
            status=PipelineStatus.FAILURE,
            stage=stage,
            written_paths=state.written_paths,
            committed=state.committed,
            pushed=state.pushed,
            commit_sha=state.commit_sha,
            attempts=getattr(error, "attempts", state.attempts),
            error=str(error),
            suggestion=suggestion,
        )

    # Stages

    def validate(self, state: PipelineRun) -> PipelineStage:
        """Check message, repository, writability and path containment."""
        message = (state.message or "").strip()
        if not message:
            raise PipelineValidationError("Commit message cannot be empty")
        if "\n" in message or "\r" in message:
            raise PipelineValidationError("Commit message must be a single line")
        state.message = message

        root = self.port.working_tree_root()
        if root is None:
            raise PipelineValidationError(
                f"Not inside a git working tree: {self.workspace}",
                suggestion="Run from a checked-out repository (e.g. after actions/checkout).",
            )
        root = root.resolve()
        if not self.workspace.is_relative_to(root):
            raise PipelineValidationError(f"Workspace {self.workspace} is outside the repository {root}")

        if not state.artifacts:
            logger.info("No badge artifacts to commit")
            state.status = PipelineStatus.NO_CHANGES
            return PipelineStage.DONE

        targets: Dict[str, BadgeTarget] = {}
        for artifact in state.artifacts:
            target = self._resolve(artifact, root)
            if target.repo_path in targets:
                logger.warning(f"Two badges share {target.repo_path}; keeping the last one")
            targets[target.repo_path] = target

        for target in targets.values():
            directory = _nearest_existing_dir(target.full_path.parent)
            if not os.access(directory, os.W_OK):
                raise PipelineValidationError(
                    f"Badge directory is not writable: {directory}",
                    suggestion="Check file permissions of the checkout.",
                )

        state.targets = list(targets.values())
        return PipelineStage.WRITE_FILES

    def _resolve(self, artifact: Artifact, root: Path) -> BadgeTarget:
        full_path = (self.workspace / artifact.target_path).resolve()
        if not full_path.is_relative_to(root):
            raise PipelineValidationError(
                f"Badge path escapes the repository: {artifact.target_path}",
                suggestion=PUSH_ERROR_SUGGESTIONS[PushErrorKind.PATH_ESCAPE],
            )
        try:
            content = artifact.serialize()
        except ValidationError as e:
            raise PipelineValidationError(f"Invalid badge {artifact.target_path}: {e}")
        return BadgeTarget(
            artifact=artifact,
            full_path=full_path,
            repo_path=full_path.relative_to(root).as_posix(),
            content=content,
        )

    def write_files(self, state: PipelineRun) -> PipelineStage:
        for target in state.targets:
            try:
                _write_atomic(target.full_path, target.content)
            except OSError as e:
                raise ArtifactWriteError(f"Failed to write {target.artifact.target_path}: {e}")
            state.written_paths.append(target.artifact.target_path)
            logger.debug(f"Wrote badge file: {target.artifact.target_path}")
        return PipelineStage.STAGE

    def stage_files(self, state: PipelineRun) -> PipelineStage:
        for path in state.repo_paths:
            result = self.port.stage(path)
            if not result.ok:
                raise StageError(f"Failed to stage {path}: {result.error}")
            logger.debug(f"Staged file: {path}")
        return PipelineStage.DIFF_CHECK

    def diff_check(self, state: PipelineRun) -> PipelineStage:
        if not self.port.has_staged_changes(state.repo_paths):
            state.status = PipelineStatus.NO_CHANGES
            self._check_unpushed(state)
            return PipelineStage.DONE
        return PipelineStage.COMMIT

    def _check_unpushed(self, state: PipelineRun) -> None:
        """Flag local commits that an earlier run failed to push."""
        ahead = self.port.commits_ahead(self.settings.remote, self.settings.branch)
        if not ahead:
            return
        state.suggestion = (
            f"{ahead} local commit(s) are not on {self.settings.remote} yet; "
            f"push them to publish earlier badge updates."
        )
        logger.warning(state.suggestion)

    def commit(self, state: PipelineRun) -> PipelineStage:
        identity = self.port.configure_identity(self.settings.user_name, self.settings.user_email)
        if not identity.ok:
            raise CommitError(f"Failed to configure git user: {identity.error}")

        result = self.port.commit(state.message, state.repo_paths)
        if not result.ok:
            if any(marker in result.error.lower() for marker in NOTHING_TO_COMMIT_MARKERS):
                state.status = PipelineStatus.NO_CHANGES
                self._check_unpushed(state)
                return PipelineStage.DONE
            raise CommitError(f"Failed to commit changes: {result.error}")

        state.committed = True
        state.commit_sha = self.port.head_sha()
        logger.info(f"Committed badge files with message: {state.message}")
        return PipelineStage.PUSH

    def push(self, state: PipelineRun) -> PipelineStage:
        """Push with classified retries and exponential backoff."""
        remote = self.settings.remote
        branch = self.settings.branch
        max_attempts = self.settings.max_push_attempts
        attempt = CommitAttempt(number=0)

        while True:
            attempt.number += 1
            state.attempts = attempt.number
            result = self.port.push(remote, branch)
            if result.ok:
                state.pushed = True
                logger.info(f"Pushed to {remote} on attempt {attempt.number}")
                return PipelineStage.DONE

            attempt.last_error = result.error
            attempt.kind = classify_push_error(result.error)
            attempt.retryable = attempt.kind.retryable
            description = PUSH_ERROR_DESCRIPTIONS[attempt.kind]

            if not attempt.retryable:
                raise PushError(
                    f"Push failed with {description} (not retried): {attempt.last_error}",
                    kind=attempt.kind,
                    attempts=attempt.number,
                    suggestion=PUSH_ERROR_SUGGESTIONS[attempt.kind],
                )

            if attempt.number >= max_attempts:
                raise PushRetriesExhaustedError(
                    f"Push failed after {attempt.number} attempts, last error ({description}): "
                    f"{attempt.last_error}",
                    kind=attempt.kind,
                    attempts=attempt.number,
                    suggestion=PUSH_ERROR_SUGGESTIONS[attempt.kind],
                )

            delay = self.settings.backoff_base * (2 ** (attempt.number - 1))
            logger.warning(
                f"Push attempt {attempt.number}/{max_attempts} failed ({description}), "
                f"retrying in {delay:g}s"
            )
            self.sleep(delay)

            if attempt.kind is PushErrorKind.NON_FAST_FORWARD and self.settings.rebase_on_reject:
                rebase = self.port.rebase_onto_remote(remote, branch)
                if rebase.ok:
                    state.commit_sha = self.port.head_sha() or state.commit_sha
                else:
                    logger.warning(f"Rebase onto {remote} failed, retrying push without it: {rebase.error}")


def _nearest_existing_dir(path: Path) -> Path:
    while not path.exists() and path != path.parent:
        path = path.parent
    return path


def _target_mode(path: Path) -> int:
    """Mode of the existing badge file, else the default for new files."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return NEW_FILE_MODE


def _write_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _target_mode(path)

    # Temp file in the target directory so the replace stays on one filesystem
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as fh:
        tmp_path = Path(fh.name)
        try:
            fh.write(content)
        except BaseException:
            fh.close()
            tmp_path.unlink(missing_ok=True)
            raise

    try:
        # NamedTemporaryFile creates 0600 files
        os.chmod(tmp_path, mode)
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
