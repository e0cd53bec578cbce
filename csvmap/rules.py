"""
Deterministic mapping rules.

The target catalog and the keyword table are plain data so that new targets or
keywords never require touching the parser or the transformer.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Sequence, Tuple

from pydantic import BaseModel, ValidationError

from .errors import RuleFileError
from .models import SKIP_TARGET, KeywordRule, TargetFieldDefinition

logger = logging.getLogger(__name__)

DELIMITER = ","
QUOTE = '"'
PREVIEW_ROW_LIMIT = 10

TARGET_FIELDS: Tuple[TargetFieldDefinition, ...] = (
    TargetFieldDefinition(id="name", label="Customer Name", required=True),
    TargetFieldDefinition(id="email", label="Email Address", required=True),
    TargetFieldDefinition(id="company", label="Company Name"),
    TargetFieldDefinition(id="phone", label="Phone Number"),
    TargetFieldDefinition(id="amount", label="Amount"),
    TargetFieldDefinition(id="date", label="Date"),
    TargetFieldDefinition(id="description", label="Description"),
    TargetFieldDefinition(id="category", label="Category"),
)

SKIP_FIELD = TargetFieldDefinition(id=SKIP_TARGET, label="Skip this field")

# Order is precedence: the first rule whose keyword occurs in the header wins.
KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(target="name", keywords=("name", "customer", "client")),
    KeywordRule(target="email", keywords=("email", "mail")),
    KeywordRule(target="company", keywords=("company", "business", "organization")),
    KeywordRule(target="amount", keywords=("amount", "total", "price", "cost")),
    KeywordRule(target="phone", keywords=("phone", "tel", "mobile")),
    KeywordRule(target="date", keywords=("date", "time")),
    KeywordRule(target="description", keywords=("description", "note", "comment")),
    KeywordRule(target="category", keywords=("category", "type", "class")),
)


class RuleFile(BaseModel):
    fields: List[TargetFieldDefinition]
    keyword_rules: List[KeywordRule]


def catalog_choices(
    catalog: Sequence[TargetFieldDefinition] = TARGET_FIELDS,
) -> List[TargetFieldDefinition]:
    """Targets a caller may pick for a column, including the skip entry."""
    return [*catalog, SKIP_FIELD]


def catalog_ids(catalog: Sequence[TargetFieldDefinition] = TARGET_FIELDS) -> List[str]:
    return [f.id for f in catalog]


def load_rule_file(
    path: Path,
) -> Tuple[Tuple[TargetFieldDefinition, ...], Tuple[KeywordRule, ...]]:
    """
    Load a catalog and keyword table from JSON.

    Expected shape::

        {"fields": [{"id": "sku", "label": "SKU", "required": true}],
         "keyword_rules": [{"target": "sku", "keywords": ["sku", "item"]}]}
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        rule_file = RuleFile.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise RuleFileError(f"Cannot load rule file {path}: {e}") from e

    ids = [f.id for f in rule_file.fields]
    if SKIP_TARGET in ids:
        raise RuleFileError(f"{SKIP_TARGET!r} is reserved and cannot be a target field")
    if len(set(ids)) != len(ids):
        raise RuleFileError("Target field ids must be unique")
    for rule in rule_file.keyword_rules:
        if rule.target not in ids:
            raise RuleFileError(f"Keyword rule points at unknown target {rule.target!r}")

    logger.info(
        "Loaded %d target fields and %d keyword rules from %s",
        len(rule_file.fields),
        len(rule_file.keyword_rules),
        path,
    )
    return tuple(rule_file.fields), tuple(rule_file.keyword_rules)
