"""
Tests for the update_badges command line tool.

Git is replaced by InMemoryGitPort; badge files are really written to a
temporary checkout.
"""

import json

import pytest
from click.testing import CliRunner

from config.settings import BadgeSettings, Settings
from services.badge_committer.ports import InMemoryGitPort
from update_badges import BadgeUpdaterCLI, update_badges


@pytest.fixture
def workspace(tmp_path):
    """Checkout with two specs."""
    root = tmp_path.resolve()
    specs = root / ".kiro" / "specs"
    (specs / "alpha").mkdir(parents=True)
    (specs / "alpha" / "tasks.md").write_text("- [x] 1\n- [x] 2\n", encoding="utf-8")
    (specs / "beta").mkdir()
    (specs / "beta" / "tasks.md").write_text("- [ ] 1\n- [x] 2\n- [ ] 3\n", encoding="utf-8")
    return root


@pytest.fixture
def port(workspace):
    """In-memory git port rooted at the checkout."""
    return InMemoryGitPort(root=workspace)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def patched_port(mocker, port):
    """Route the CLI to the in-memory port."""
    return mocker.patch.object(BadgeUpdaterCLI, "make_port", return_value=port)


class TestUpdateBadgesCommand:
    """Test cases for the update_badges command."""

    def test_update_commits_and_pushes(self, runner, workspace, port):
        """Test a successful run."""
        result = runner.invoke(update_badges, ["--workspace", str(workspace)])

        assert result.exit_code == 0, result.output
        assert "global-badge-path=.kiro/badge-data-all.json" in result.output
        assert (
            "spec-badge-paths=.kiro/alpha-badge-data.json,.kiro/beta-badge-data.json" in result.output
        )
        assert "Success" in result.output
        assert port.remote_sha is not None
        assert port.commits[0]["message"] == "Update task completion badges"

        document = json.loads((workspace / ".kiro" / "badge-data-all.json").read_text(encoding="utf-8"))
        assert document == {"schemaVersion": 1, "label": "All Tasks", "message": "3/5", "color": "yellow"}

    def test_second_run_is_up_to_date(self, runner, workspace, port):
        """Test that an unchanged re-run commits nothing."""
        runner.invoke(update_badges, ["--workspace", str(workspace)])
        result = runner.invoke(update_badges, ["--workspace", str(workspace)])

        assert result.exit_code == 0, result.output
        assert "up to date" in result.output
        assert len(port.commits) == 1

    def test_custom_commit_message(self, runner, workspace, port):
        """Test the --commit-message option."""
        result = runner.invoke(
            update_badges, ["--workspace", str(workspace), "--commit-message", "Refresh badges"]
        )

        assert result.exit_code == 0, result.output
        assert port.commits[0]["message"] == "Refresh badges"

    def test_token_is_passed_to_port(self, runner, workspace, patched_port):
        """Test that the token option reaches the port factory."""
        result = runner.invoke(update_badges, ["--workspace", str(workspace), "--token", "ghp_abc"])

        assert result.exit_code == 0, result.output
        assert patched_port.call_args.args[1] == "ghp_abc"
        assert "ghp_abc" not in result.output

    def test_push_permission_denied(self, runner, workspace, port):
        """Test that a rejected push exits non-zero with guidance."""
        port.push_errors = ["remote: Permission to owner/repo.git denied to github-actions[bot].\n"
                            "fatal: unable to access: The requested URL returned error: 403"]

        result = runner.invoke(update_badges, ["--workspace", str(workspace)])

        assert result.exit_code == 1
        assert "Badge update failed" in result.output
        assert "authentication" in result.output
        assert port.push_attempts == 1

    def test_specs_dir_option(self, runner, workspace, port):
        """Test scanning a non-default specs directory."""
        other = workspace / "plans" / "gamma"
        other.mkdir(parents=True)
        (other / "tasks.md").write_text("- [x] only\n", encoding="utf-8")

        result = runner.invoke(update_badges, ["--workspace", str(workspace), "--specs-dir", "plans"])

        assert result.exit_code == 0, result.output
        assert "spec-badge-paths=.kiro/gamma-badge-data.json" in result.output

    def test_unexpected_error(self, runner, workspace, mocker):
        """Test that unexpected exceptions exit non-zero."""
        mocker.patch.object(BadgeUpdaterCLI, "scan", side_effect=RuntimeError("boom"))

        result = runner.invoke(update_badges, ["--workspace", str(workspace)])

        assert result.exit_code == 1
        assert "boom" in result.output

    def test_invalid_configuration_stops_before_git(self, runner, workspace, port, mocker):
        """Test that an output directory outside the checkout is rejected."""
        mocker.patch("update_badges.settings", Settings(badge=BadgeSettings(output_dir="../outside")))

        result = runner.invoke(update_badges, ["--workspace", str(workspace)])

        assert result.exit_code == 1
        assert "escapes" in result.output
        assert port.calls == []
        assert not (workspace.parent / "outside").exists()

    def test_production_requires_token(self, runner, workspace, port, mocker):
        """Test the production token check on a real run."""
        mocker.patch("update_badges.settings", Settings(environment="production"))

        result = runner.invoke(update_badges, ["--workspace", str(workspace)], env={"GITHUB_TOKEN": None})

        assert result.exit_code == 1
        assert "token" in result.output
        assert port.calls == []

    def test_production_with_token(self, runner, workspace, port, mocker):
        """Test that a token on the command line satisfies production."""
        mocker.patch("update_badges.settings", Settings(environment="production"))

        result = runner.invoke(update_badges, ["--workspace", str(workspace), "--token", "ghp_abc"])

        assert result.exit_code == 0, result.output
        assert port.remote_sha is not None

    def test_unpushed_commit_warning(self, runner, workspace, port):
        """Test that an up-to-date run still reports a commit left unpushed."""
        port.push_errors = ["remote: Repository not found."]
        first = runner.invoke(update_badges, ["--workspace", str(workspace)])

        second = runner.invoke(update_badges, ["--workspace", str(workspace)])

        assert first.exit_code == 1
        assert second.exit_code == 0, second.output
        assert "Warning" in second.output
        assert len(port.commits) == 1

    def test_missing_workspace(self, runner, tmp_path):
        """Test that click rejects a missing directory."""
        result = runner.invoke(update_badges, ["--workspace", str(tmp_path / "missing")])

        assert result.exit_code == 2
