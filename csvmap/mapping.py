"""Column-to-target mapping: keyword inference and caller overrides."""

from __future__ import annotations

import logging
from typing import List, Mapping, Sequence

from .errors import NoMappableFieldsError, UnknownSourceError, UnknownTargetError
from .models import SKIP_TARGET, FieldMapping, KeywordRule, MappingSet, TargetFieldDefinition
from .rules import KEYWORD_RULES, TARGET_FIELDS

logger = logging.getLogger(__name__)


def infer_target(header: str, rules: Sequence[KeywordRule] = KEYWORD_RULES) -> str:
    """First rule with a keyword contained in the lower-cased header wins; "" if none."""
    lowered = header.lower()
    for rule in rules:
        if any(keyword.lower() in lowered for keyword in rule.keywords):
            return rule.target
    return ""


def infer_mappings(
    headers: Sequence[str],
    rules: Sequence[KeywordRule] = KEYWORD_RULES,
) -> MappingSet:
    mappings = tuple(FieldMapping(source=h, target=infer_target(h, rules)) for h in headers)
    logger.debug(
        "Inferred mappings: %s",
        {m.source: m.target for m in mappings},
    )
    return MappingSet(mappings=mappings)


def override_mapping(
    mapping_set: MappingSet,
    source: str,
    target: str,
    catalog: Sequence[TargetFieldDefinition] = TARGET_FIELDS,
) -> MappingSet:
    """
    Return a new MappingSet with ``source`` pointed at ``target``.

    ``target`` may be a catalog id, "skip" to exclude the column, or "" to
    clear it. No mapping is added or removed.
    """
    allowed = {f.id for f in catalog} | {SKIP_TARGET, ""}
    if target not in allowed:
        raise UnknownTargetError(target)
    if mapping_set.get(source) is None:
        raise UnknownSourceError(source)

    return MappingSet(
        mappings=tuple(
            FieldMapping(source=m.source, target=target) if m.source == source else m
            for m in mapping_set.mappings
        )
    )


def apply_overrides(
    mapping_set: MappingSet,
    overrides: Mapping[str, str],
    catalog: Sequence[TargetFieldDefinition] = TARGET_FIELDS,
) -> MappingSet:
    for source, target in overrides.items():
        mapping_set = override_mapping(mapping_set, source, target, catalog)
    return mapping_set


def active_targets(mapping_set: MappingSet) -> List[str]:
    """Distinct mapped target ids, in header order of first occurrence."""
    targets: List[str] = []
    for m in mapping_set.mappings:
        if m.mapped and m.target not in targets:
            targets.append(m.target)
    return targets


def missing_required(
    mapping_set: MappingSet,
    catalog: Sequence[TargetFieldDefinition] = TARGET_FIELDS,
) -> List[str]:
    mapped = set(active_targets(mapping_set))
    return [f.id for f in catalog if f.required and f.id not in mapped]


def require_mappable(mapping_set: MappingSet) -> None:
    if not any(m.mapped for m in mapping_set.mappings):
        raise NoMappableFieldsError()
