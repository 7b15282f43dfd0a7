"""
Version-control port used by the commit pipeline.

The pipeline only talks to git through VersionControlPort. GitPythonPort
(git_port.py) drives a real repository; InMemoryGitPort keeps everything in
memory and can be scripted to fail.
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class GitResult:
    """Success flag plus the error text the pipeline classifies."""

    ok: bool
    error: str = ""
    output: str = ""

    @classmethod
    def success(cls, output: str = "") -> "GitResult":
        return cls(ok=True, output=output)

    @classmethod
    def failure(cls, error: str) -> "GitResult":
        return cls(ok=False, error=error)


class VersionControlPort(ABC):
    """Git operations needed by the commit pipeline.

    Paths are relative to the working tree root, in POSIX form.
    """

    @abstractmethod
    def working_tree_root(self) -> Optional[Path]:
        """Root of the working tree, or None outside a repository."""

    @abstractmethod
    def configure_identity(self, name: str, email: str) -> GitResult:
        pass

    @abstractmethod
    def stage(self, path: str) -> GitResult:
        pass

    @abstractmethod
    def has_staged_changes(self, paths: Sequence[str]) -> bool:
        """Whether the index differs from the last commit for any of ``paths``."""

    @abstractmethod
    def commit(self, message: str, paths: Sequence[str]) -> GitResult:
        pass

    @abstractmethod
    def push(self, remote: str, branch: Optional[str] = None) -> GitResult:
        pass

    @abstractmethod
    def rebase_onto_remote(self, remote: str, branch: Optional[str] = None) -> GitResult:
        pass

    @abstractmethod
    def head_sha(self) -> Optional[str]:
        pass

    @abstractmethod
    def commits_ahead(self, remote: str, branch: Optional[str] = None) -> Optional[int]:
        """Local commits not on the remote branch, or None when unknown."""


@dataclass
class InMemoryGitPort(VersionControlPort):
    """Records git operations in memory; file contents are read from ``root``."""

    root: Path
    is_repository: bool = True
    identity: Optional[Tuple[str, str]] = None
    head_tree: Dict[str, bytes] = field(default_factory=dict)
    index: Dict[str, bytes] = field(default_factory=dict)
    commits: List[Dict[str, object]] = field(default_factory=list)
    remote_sha: Optional[str] = None
    stage_errors: Dict[str, str] = field(default_factory=dict)
    push_errors: List[str] = field(default_factory=list)
    commit_error: Optional[str] = None
    identity_error: Optional[str] = None
    rebase_error: Optional[str] = None
    push_attempts: int = 0
    rebase_attempts: int = 0
    calls: List[str] = field(default_factory=list)

    def working_tree_root(self) -> Optional[Path]:
        return Path(self.root) if self.is_repository else None

    def configure_identity(self, name: str, email: str) -> GitResult:
        self.calls.append("configure_identity")
        if self.identity_error:
            return GitResult.failure(self.identity_error)
        self.identity = (name, email)
        return GitResult.success()

    def stage(self, path: str) -> GitResult:
        self.calls.append(f"stage:{path}")
        if path in self.stage_errors:
            return GitResult.failure(self.stage_errors[path])
        file_path = Path(self.root) / path
        if not file_path.is_file():
            return GitResult.failure(f"fatal: pathspec '{path}' did not match any files")
        self.index[path] = file_path.read_bytes()
        return GitResult.success()

    def has_staged_changes(self, paths: Sequence[str]) -> bool:
        self.calls.append("has_staged_changes")
        return any(self.index.get(path) != self.head_tree.get(path) for path in paths)

    def commit(self, message: str, paths: Sequence[str]) -> GitResult:
        self.calls.append("commit")
        if self.commit_error:
            return GitResult.failure(self.commit_error)
        changed = [path for path in paths if self.index.get(path) != self.head_tree.get(path)]
        if not changed:
            return GitResult.failure("nothing to commit, working tree clean")

        for path in changed:
            self.head_tree[path] = self.index[path]
        digest = hashlib.sha1()
        digest.update((self.head_sha() or "").encode())
        digest.update(message.encode())
        for path in sorted(changed):
            digest.update(path.encode())
            digest.update(self.head_tree[path])
        sha = digest.hexdigest()
        self.commits.append({"sha": sha, "message": message, "paths": changed, "author": self.identity})
        return GitResult.success(sha)

    def push(self, remote: str, branch: Optional[str] = None) -> GitResult:
        self.calls.append("push")
        self.push_attempts += 1
        if self.push_errors:
            return GitResult.failure(self.push_errors.pop(0))
        self.remote_sha = self.head_sha()
        return GitResult.success()

    def rebase_onto_remote(self, remote: str, branch: Optional[str] = None) -> GitResult:
        self.calls.append("rebase")
        self.rebase_attempts += 1
        if self.rebase_error:
            return GitResult.failure(self.rebase_error)
        return GitResult.success()

    def head_sha(self) -> Optional[str]:
        if not self.commits:
            return None
        return str(self.commits[-1]["sha"])

    def commits_ahead(self, remote: str, branch: Optional[str] = None) -> Optional[int]:
        shas = [str(commit["sha"]) for commit in self.commits]
        if self.remote_sha is None:
            return len(shas)
        if self.remote_sha not in shas:
            return None
        return len(shas) - 1 - shas.index(self.remote_sha)
