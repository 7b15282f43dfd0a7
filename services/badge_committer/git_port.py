"""GitPython implementation of the version-control port."""

import base64
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from git.exc import GitError

from services.badge_committer.ports import GitResult, VersionControlPort

logger = logging.getLogger(__name__)

REDACTED = "***"


class GitPythonPort(VersionControlPort):
    """Runs git in the repository containing ``workspace``.

    Every git call is bounded by ``kill_after_timeout``. A timed out command
    fails with a "did not complete" error.
    """

    def __init__(
        self,
        workspace: Union[str, Path],
        token: Optional[str] = None,
        local_timeout: float = 10.0,
        push_timeout: float = 60.0,
    ):
        self.workspace = Path(workspace)
        self.local_timeout = local_timeout
        self.push_timeout = push_timeout
        self._token = token or None
        self._repo: Optional[Repo] = None
        self._opened = False

    @property
    def repo(self) -> Optional[Repo]:
        if not self._opened:
            self._opened = True
            try:
                self._repo = Repo(self.workspace, search_parent_directories=True)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                logger.debug(f"No git repository at {self.workspace}: {e}")
                self._repo = None
        return self._repo

    def _auth_header(self) -> Optional[str]:
        if not self._token:
            return None
        credentials = base64.b64encode(f"x-access-token:{self._token}".encode()).decode()
        return f"http.extraheader=AUTHORIZATION: basic {credentials}"

    def _secrets(self) -> List[str]:
        if not self._token:
            return []
        credentials = base64.b64encode(f"x-access-token:{self._token}".encode()).decode()
        return [self._token, credentials]

    def redact(self, text: str) -> str:
        for secret in self._secrets():
            text = text.replace(secret, REDACTED)
        return text

    def _failure(self, error: Exception) -> GitResult:
        text = str(error)
        if isinstance(error, GitCommandError):
            # git's own output only; the cmdline carries ref names and options
            text = f"{error.stderr}{error.stdout}".strip() or text
        return GitResult.failure(self.redact(text).strip())

    def _remote_git(self):
        """Git command object carrying the push credentials, if any."""
        header = self._auth_header()
        if header:
            return self.repo.git(c=header)
        return self.repo.git

    def working_tree_root(self) -> Optional[Path]:
        if self.repo is None or self.repo.working_tree_dir is None:
            return None
        return Path(self.repo.working_tree_dir)

    def configure_identity(self, name: str, email: str) -> GitResult:
        if self.repo is None:
            return GitResult.failure(f"Not a git repository: {self.workspace}")
        try:
            with self.repo.config_writer() as writer:
                writer.set_value("user", "name", name)
                writer.set_value("user", "email", email)
        except (GitError, OSError) as e:
            return self._failure(e)
        logger.debug(f"Configured git user: {name} <{email}>")
        return GitResult.success()

    def stage(self, path: str) -> GitResult:
        try:
            output = self.repo.git.add("--", path, kill_after_timeout=self.local_timeout)
        except (GitError, OSError) as e:
            return self._failure(e)
        return GitResult.success(output)

    def has_staged_changes(self, paths: Sequence[str]) -> bool:
        try:
            self.repo.git.diff(
                "--cached", "--quiet", "--", *paths, kill_after_timeout=self.local_timeout
            )
        except GitCommandError as e:
            if e.status == 1:
                return True
            logger.warning(f"Could not compare index with HEAD, assuming changes: {self.redact(str(e))}")
            return True
        return False

    def commit(self, message: str, paths: Sequence[str]) -> GitResult:
        try:
            output = self.repo.git.commit(
                "-m", message, "--", *paths, kill_after_timeout=self.local_timeout
            )
        except (GitError, OSError) as e:
            return self._failure(e)
        return GitResult.success(output)

    def _remote_names(self) -> List[str]:
        return [remote.name for remote in self.repo.remotes]

    def push(self, remote: str, branch: Optional[str] = None) -> GitResult:
        if remote not in self._remote_names():
            return GitResult.failure(f"No remote named '{remote}' is configured")

        refspec = f"HEAD:{branch}" if branch else "HEAD"
        try:
            output = self._remote_git().push(remote, refspec, kill_after_timeout=self.push_timeout)
        except (GitError, OSError) as e:
            return self._failure(e)
        return GitResult.success(output)

    def rebase_onto_remote(self, remote: str, branch: Optional[str] = None) -> GitResult:
        if branch is None:
            if self.repo.head.is_detached:
                return GitResult.failure("Cannot rebase a detached HEAD without a branch")
            branch = self.repo.active_branch.name

        try:
            output = self._remote_git().pull(
                "--rebase", remote, branch, kill_after_timeout=self.push_timeout
            )
        except (GitError, OSError) as e:
            result = self._failure(e)
            try:
                self.repo.git.rebase("--abort", kill_after_timeout=self.local_timeout)
            except GitCommandError as abort_error:
                logger.debug(f"git rebase --abort: {self.redact(str(abort_error))}")
            return result
        return GitResult.success(output)

    def head_sha(self) -> Optional[str]:
        if self.repo is None:
            return None
        try:
            return self.repo.head.commit.hexsha
        except ValueError:
            return None

    def commits_ahead(self, remote: str, branch: Optional[str] = None) -> Optional[int]:
        if self.repo is None:
            return None
        if branch is None:
            if self.repo.head.is_detached:
                return None
            branch = self.repo.active_branch.name

        try:
            count = self.repo.git.rev_list(
                "--count", f"{remote}/{branch}..HEAD", kill_after_timeout=self.local_timeout
            )
        except GitCommandError as e:
            logger.debug(f"Could not compare HEAD with {remote}/{branch}: {self.redact(str(e))}")
            return None
        return int(count.strip())
