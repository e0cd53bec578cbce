"""
parse -> infer mapping -> transform -> export, as explicit stage outputs.

Hosts own sequencing and I/O; nothing here keeps session state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional, Sequence

from .exporters import DEFAULT_FILENAME_PREFIX, export_records
from .mapping import apply_overrides, infer_mappings
from .models import (
    ExportBundle,
    FieldMapping,
    KeywordRule,
    MappingSet,
    ParseResult,
    TargetFieldDefinition,
    TransformResult,
)
from .parse import parse_bytes
from .rules import KEYWORD_RULES, TARGET_FIELDS
from .transform import ProgressCallback, transform_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    parse: ParseResult
    mappings: MappingSet
    transform: TransformResult
    bundle: ExportBundle


def run_pipeline(
    raw: bytes,
    format_id: str,
    overrides: Optional[Mapping[str, str]] = None,
    mapping_set: Optional[MappingSet] = None,
    row_limit: Optional[int] = None,
    catalog: Sequence[TargetFieldDefinition] = TARGET_FIELDS,
    rules: Sequence[KeywordRule] = KEYWORD_RULES,
    on_progress: Optional[ProgressCallback] = None,
    progress_every: int = 100,
    filename_prefix: str = DEFAULT_FILENAME_PREFIX,
    today: Optional[date] = None,
) -> PipelineResult:
    """
    Run every stage over ``raw``.

    A caller-supplied ``mapping_set`` replaces inference; its sources must be
    parsed headers and headers it leaves out stay unmapped. ``overrides`` are
    applied on top either way.
    The whole file is processed unless ``row_limit`` is given.
    """
    parsed = parse_bytes(raw, row_limit=row_limit)

    if mapping_set is None:
        mapping_set = infer_mappings(parsed.headers, rules)
    else:
        mapping_set = _rebase(mapping_set, parsed.headers, catalog)

    if overrides:
        mapping_set = apply_overrides(mapping_set, overrides, catalog)

    transformed = transform_rows(
        parsed.rows,
        mapping_set,
        on_progress=on_progress,
        progress_every=progress_every,
    )
    bundle = export_records(
        format_id,
        transformed.records,
        transformed.active_targets,
        today=today,
        filename_prefix=filename_prefix,
    )
    logger.info("Pipeline produced %s from %d rows", bundle.filename, len(parsed.rows))
    return PipelineResult(parse=parsed, mappings=mapping_set, transform=transformed, bundle=bundle)


def _rebase(
    mapping_set: MappingSet,
    headers: Sequence[str],
    catalog: Sequence[TargetFieldDefinition],
) -> MappingSet:
    """
    Re-apply a caller-held mapping set onto the parsed headers.

    Headers the caller left out stay unmapped; unknown sources or targets raise.
    """
    base = MappingSet(mappings=tuple(FieldMapping(source=h) for h in headers))
    return apply_overrides(base, {m.source: m.target for m in mapping_set.mappings}, catalog)
