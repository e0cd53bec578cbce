from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .mapping import active_targets, require_mappable
from .models import MappingSet, RawRow, TransformedRecord, TransformResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def transform_row(row: RawRow, mapping_set: MappingSet) -> TransformedRecord:
    record: TransformedRecord = {}
    for m in mapping_set.mappings:
        if m.mapped:
            # later sources sharing a target overwrite earlier ones
            record[m.target] = row.get(m.source, "")
    return record


def transform_rows(
    rows: Sequence[RawRow],
    mapping_set: MappingSet,
    on_progress: Optional[ProgressCallback] = None,
    progress_every: int = 100,
) -> TransformResult:
    """
    Apply ``mapping_set`` to every row, preserving row order.

    ``on_progress(done, total)`` is called every ``progress_every`` records and
    once when all records are done.
    """
    require_mappable(mapping_set)

    total = len(rows)
    step = max(progress_every, 1)
    records = []
    for done, row in enumerate(rows, start=1):
        records.append(transform_row(row, mapping_set))
        if on_progress is not None and done % step == 0 and done != total:
            on_progress(done, total)

    if on_progress is not None:
        on_progress(total, total)

    targets = active_targets(mapping_set)
    logger.info("Transformed %d rows into %d target fields", total, len(targets))
    return TransformResult(records=records, active_targets=targets)
