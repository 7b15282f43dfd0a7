"""
Spec directory discovery.

Each immediate sub-directory of the specs directory is one document source,
named after the directory, whose document is its tasks file.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from config.settings import settings
from shared.models import AggregateResult, DocumentSource
from services.task_scanner.aggregator import aggregate

logger = logging.getLogger(__name__)


class TaskScanner:
    """Finds task documents and hands them to the aggregator."""

    def __init__(
        self,
        specs_dir: Optional[Union[str, Path]] = None,
        tasks_filename: Optional[str] = None,
    ):
        self.specs_dir = Path(specs_dir or settings.scan.specs_dir)
        self.tasks_filename = tasks_filename or settings.scan.tasks_filename

    def list_spec_names(self) -> List[str]:
        """Spec directory names, sorted for stable output."""
        if not self.specs_dir.is_dir():
            logger.info(f"Specs directory not found: {self.specs_dir}")
            return []

        try:
            return sorted(entry.name for entry in self.specs_dir.iterdir() if entry.is_dir())
        except OSError as e:
            logger.warning(f"Error scanning specs directory {self.specs_dir}: {e}")
            return []

    def scan_single_spec(self, spec_name: str) -> DocumentSource:
        """Read one spec's tasks file."""
        tasks_file = self.specs_dir / spec_name / self.tasks_filename

        if not tasks_file.is_file():
            logger.debug(f"No {self.tasks_filename} in {spec_name}")
            return DocumentSource(name=spec_name)

        try:
            raw_text = tasks_file.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return DocumentSource(name=spec_name, error=str(e))

        return DocumentSource(name=spec_name, raw_text=raw_text)

    def collect_sources(self) -> List[DocumentSource]:
        """Document sources for every spec directory."""
        return [self.scan_single_spec(name) for name in self.list_spec_names()]

    def scan_all_specs(self) -> AggregateResult:
        """Collect and aggregate every spec."""
        return aggregate(self.collect_sources())
