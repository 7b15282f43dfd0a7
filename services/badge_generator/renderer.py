"""
Badge rendering.

Maps task counts to badge artifacts:
- ``message`` is ``"{completed}/{total}"``
- green when every task is done, red when there are no tasks or none are
  done, yellow otherwise
- labels and paths are built from the sanitized spec name
"""

import logging
import re
from pathlib import PurePosixPath
from typing import Any, List, Optional

from config.settings import BadgeSettings, settings
from shared.models import AggregateResult, Artifact, BadgeColor

logger = logging.getLogger(__name__)

UNSAFE_NAME_CHARS = re.compile(r"[^\w \-]")
UNKNOWN_NAME = "Unknown"


def sanitize_name(name: str) -> str:
    """Drop everything but letters, digits, space, hyphen and underscore."""
    return UNSAFE_NAME_CHARS.sub("", name).strip()


def color_for(completed: int, total: int) -> BadgeColor:
    if total > 0 and completed == total:
        return BadgeColor.GREEN
    if total == 0 or completed == 0:
        return BadgeColor.RED
    return BadgeColor.YELLOW


def _valid_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class BadgeRenderer:
    """Builds badge artifacts from count pairs."""

    def __init__(self, badge_settings: Optional[BadgeSettings] = None):
        self.settings = badge_settings or settings.badge

    def badge_path(self, name: Optional[str] = None) -> str:
        """Workspace relative path of a badge; the global badge when ``name`` is None."""
        output_dir = PurePosixPath(self.settings.output_dir)
        if name is None:
            return str(output_dir / self.settings.global_filename)
        return str(output_dir / f"{name}{self.settings.spec_filename_suffix}")

    def label_for(self, name: Optional[str] = None) -> str:
        if name is None:
            return self.settings.global_label
        return f"{name} {self.settings.label_suffix}"

    def render(self, name: Optional[str], counts: Any) -> Artifact:
        """
        Render one badge.

        ``counts`` is normally a CountPair. Counts that are negative or where
        completed exceeds total produce a red ``0/0`` fallback badge instead
        of an error.
        """
        safe_name = None
        try:
            if name is not None:
                safe_name = sanitize_name(name)
                if not safe_name:
                    logger.warning(f"Spec name {name!r} is empty after sanitization")
                    return self.fallback(UNKNOWN_NAME)

            total = getattr(counts, "total", None)
            completed = getattr(counts, "completed", None)
            if not (_valid_count(total) and _valid_count(completed)) or completed > total:
                logger.warning(
                    f"Invalid task counts for {name or 'global badge'}: {completed}/{total}, "
                    f"rendering fallback badge"
                )
                return self.fallback(safe_name)

            artifact = Artifact(
                target_path=self.badge_path(safe_name),
                label=self.label_for(safe_name),
                message=f"{completed}/{total}",
                color=color_for(completed, total),
            )
            logger.debug(f"Rendered {artifact.label}: {artifact.message} ({artifact.color.value})")
            return artifact
        except Exception as e:
            logger.warning(f"Failed to render badge for {name or 'global badge'}: {e}")
            return self.fallback(safe_name or (UNKNOWN_NAME if name is not None else None))

    def fallback(self, safe_name: Optional[str] = None) -> Artifact:
        return Artifact(
            target_path=self.badge_path(safe_name),
            label=self.label_for(safe_name),
            message="0/0",
            color=BadgeColor.RED,
        )

    def render_all(self, result: AggregateResult) -> List[Artifact]:
        """Global badge first, then one badge per record in record order."""
        artifacts = [self.render(None, result.global_counts)]
        for record in result.records:
            artifacts.append(self.render(record.name, record.counts))
        return artifacts
