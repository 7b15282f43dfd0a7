"""Checkbox task counting for task documents."""

import logging
import re
from typing import Optional, Union

from shared.models import CountPair

logger = logging.getLogger(__name__)

# "-" then at most one space, then a single-character marker in brackets
CHECKBOX_PATTERN = re.compile(r"^-(?: )?\[([ xX-])\]")
LINE_BREAK = re.compile(r"\r\n|\r|\n")
COMPLETED_MARKERS = frozenset({"x", "X"})


def parse_checkboxes(text: Optional[Union[str, bytes]]) -> CountPair:
    """
    Count checkbox tasks in a document.

    Every line whose left-trimmed form starts with a checkbox bullet is one
    task, whatever its indentation. ``[x]`` and ``[X]`` are completed,
    ``[ ]`` and ``[-]`` are open. Anything else is not a task.

    Never raises: a missing or unreadable document counts as no tasks.
    """
    if not text:
        return CountPair()

    try:
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")

        total = 0
        completed = 0
        for line in LINE_BREAK.split(text):
            match = CHECKBOX_PATTERN.match(line.lstrip())
            if not match:
                continue
            total += 1
            if match.group(1) in COMPLETED_MARKERS:
                completed += 1

        return CountPair(total=total, completed=completed)
    except Exception as e:
        logger.warning(f"Malformed task document, counting it as empty: {e}")
        return CountPair()
