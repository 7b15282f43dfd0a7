"""Aggregation of per-source task counts."""

import logging
from typing import Iterable

from shared.models import AggregateResult, CountPair, DocumentSource, SourceRecord
from services.task_scanner.parser import parse_checkboxes

logger = logging.getLogger(__name__)


def aggregate(sources: Iterable[DocumentSource]) -> AggregateResult:
    """
    Parse each source and sum the counts.

    Sources whose retrieval failed are skipped with a warning. Records keep
    the input order.
    """
    records = []
    global_counts = CountPair()

    for source in sources:
        if source.failed:
            logger.warning(f"Skipping {source.name}: {source.error}")
            continue

        counts = parse_checkboxes(source.raw_text)
        records.append(SourceRecord(name=source.name, counts=counts))
        global_counts = global_counts + counts

    logger.debug(
        f"Aggregated {len(records)} sources: {global_counts.completed}/{global_counts.total}"
    )
    return AggregateResult(records=records, global_counts=global_counts)
