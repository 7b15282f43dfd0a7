#!/usr/bin/env python3
"""
TaskBadge CLI

Scans spec task documents, renders completion badges and commits them:
- Checkbox counting per spec and across all specs
- Badge JSON files for the badge rendering service
- Commit and push with retries and clear failure reporting

Usage:
    python update_badges.py [OPTIONS]

Examples:
    python update_badges.py                                  # Update badges in current repo
    python update_badges.py --workspace /path/to/repo        # Update badges in another checkout
    python update_badges.py --commit-message "Refresh badges" --token "$GITHUB_TOKEN"
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config.settings import settings, validate_configuration
from shared.errors import ConfigurationError
from shared.models import AggregateResult, Artifact, PipelineResult, PipelineStatus
from services.badge_committer.git_port import GitPythonPort
from services.badge_committer.pipeline import CommitPipeline
from services.badge_committer.ports import VersionControlPort
from services.badge_generator.renderer import BadgeRenderer
from services.task_scanner.scanner import TaskScanner

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.monitoring.log_level),
    format=settings.monitoring.log_format
)
logger = logging.getLogger(__name__)


class BadgeUpdaterCLI:
    """CLI interface for badge updates."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.renderer = BadgeRenderer(settings.badge)

    def make_port(self, workspace: Path, token: Optional[str]) -> VersionControlPort:
        return GitPythonPort(
            workspace,
            token=token,
            local_timeout=settings.git.local_timeout,
            push_timeout=settings.git.push_timeout,
        )

    def check_configuration(self, workspace: Path, specs_dir: Optional[str], token: Optional[str]):
        """Validate settings against the workspace; raises ConfigurationError."""
        validation = validate_configuration(settings, workspace, token=token, specs_dir=specs_dir)
        for warning in validation["warnings"]:
            logger.warning(warning)
        if not validation["valid"]:
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(validation['errors'])}",
                suggestion="Fix the settings (environment variables or .env) and re-run.",
            )

    def scan(self, workspace: Path, specs_dir: Optional[str]) -> AggregateResult:
        scanner = TaskScanner(workspace / (specs_dir or settings.scan.specs_dir))
        result = scanner.scan_all_specs()
        logger.info(f"Found {len(result.records)} specs with task files")
        for record in result.records:
            percent = round(record.counts.rate * 100)
            logger.info(
                f"  {record.name}: {record.counts.completed}/{record.counts.total} tasks ({percent}%)"
            )
        return result

    def update(
        self,
        workspace: Path,
        specs_dir: Optional[str] = None,
        commit_message: Optional[str] = None,
        token: Optional[str] = None,
        port: Optional[VersionControlPort] = None,
    ) -> PipelineResult:
        """Scan, render and commit; returns the pipeline result."""
        self.check_configuration(workspace, specs_dir, token)
        aggregate = self.scan(workspace, specs_dir)
        artifacts = self.renderer.render_all(aggregate)
        for artifact in artifacts:
            logger.info(f"  {artifact.label}: {artifact.message} ({artifact.color.value})")

        pipeline = CommitPipeline(port or self.make_port(workspace, token), workspace, settings.git)
        result = pipeline.run(artifacts, commit_message)
        self.display_summary(aggregate, artifacts)
        return result

    def display_summary(self, aggregate: AggregateResult, artifacts: List[Artifact]):
        """Display badge summary in a rich table."""
        table = Table(title="Task Badges", show_header=True, header_style="bold magenta")
        table.add_column("Badge", style="cyan", no_wrap=True)
        table.add_column("Tasks", style="green")
        table.add_column("Color")
        table.add_column("Path", style="white")

        for artifact in artifacts:
            table.add_row(
                artifact.label,
                artifact.message,
                f"[{artifact.color.value}]{artifact.color.value}[/{artifact.color.value}]",
                artifact.target_path,
            )

        self.console.print(table)

        counts = aggregate.global_counts
        self.console.print(
            f"Overall progress: {counts.completed}/{counts.total} tasks ({round(counts.rate * 100)}%)"
        )

    def display_result(self, result: PipelineResult):
        """Display the final pipeline status."""
        if result.status is PipelineStatus.FAILURE:
            self.display_error_message(result.error or "Unknown error", result.suggestion or "")
            return

        text = Text()
        text.append("✅ ", style="bold green")
        if result.status is PipelineStatus.NO_CHANGES:
            text.append("Badges are already up to date, nothing to commit.\n\n", style="bold white")
        else:
            text.append("Badges committed and pushed.\n\n", style="bold white")
            text.append("Commit: ", style="cyan")
            text.append(f"{(result.commit_sha or '')[:8]}\n", style="bold white")
            text.append("Push attempts: ", style="cyan")
            text.append(f"{result.attempts}\n", style="white")
        text.append("Files: ", style="cyan")
        text.append(f"{len(result.written_paths)} written", style="white")
        if result.suggestion:
            text.append("\nWarning: ", style="yellow")
            text.append(result.suggestion, style="white")

        title = "No Changes" if result.status is PipelineStatus.NO_CHANGES else "Success"
        border = "yellow" if result.suggestion else "green"
        self.console.print(Panel(text, title=title, border_style=border))

    def display_error_message(self, error: str, suggestion: str = ""):
        """Display error message with helpful suggestions."""
        error_text = Text()
        error_text.append("❌ ", style="bold red")
        error_text.append("Badge update failed\n\n", style="bold white")
        error_text.append("Error: ", style="red")
        error_text.append(f"{error}\n", style="white")

        if suggestion:
            error_text.append("Suggestion: ", style="yellow")
            error_text.append(f"{suggestion}", style="white")

        panel = Panel(error_text, title="Error", border_style="red")
        self.console.print(panel)

    def display_outputs(self, result: PipelineResult):
        """Print the badge paths for downstream steps."""
        global_path = self.renderer.badge_path()
        spec_paths = [path for path in result.written_paths if path != global_path]
        click.echo(f"global-badge-path={global_path}")
        click.echo(f"spec-badge-paths={','.join(spec_paths)}")


@click.command()
@click.option(
    '--workspace',
    default='.',
    help='Path to the repository checkout (default: current directory)',
    type=click.Path(exists=True, file_okay=False, dir_okay=True)
)
@click.option(
    '--specs-dir',
    default=None,
    help='Specs directory relative to the workspace (default: .kiro/specs)'
)
@click.option(
    '--commit-message',
    default=None,
    help='Commit message for the badge update'
)
@click.option(
    '--token',
    envvar='GITHUB_TOKEN',
    default=None,
    help='Token used to push (default: $GITHUB_TOKEN)'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose output'
)
def update_badges(
    workspace: str,
    specs_dir: Optional[str],
    commit_message: Optional[str],
    token: Optional[str],
    verbose: bool
):
    """Generate task completion badges and commit them."""

    if verbose or settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    cli = BadgeUpdaterCLI()
    token = token or (settings.git.token.get_secret_value() if settings.git.token else None)
    if token:
        logger.debug("Push token configured")

    try:
        result = cli.update(Path(workspace).resolve(), specs_dir, commit_message, token)
    except ConfigurationError as e:
        logger.error(str(e))
        cli.display_error_message(str(e), e.suggestion or "")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        cli.display_error_message(str(e), "Check the logs for more details")
        sys.exit(1)

    cli.display_result(result)
    cli.display_outputs(result)
    if result.status is PipelineStatus.FAILURE:
        sys.exit(1)


if __name__ == "__main__":
    update_badges()
