"""
Export serializers.

Each exporter turns transformed records plus the ordered active target ids into
an ExportBundle. Adding a format means registering one more Exporter.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from .errors import NothingToExportError, UnsupportedFormatError
from .models import ExportBundle, TransformedRecord

logger = logging.getLogger(__name__)

DEFAULT_FILENAME_PREFIX = "processed_data"

Serializer = Callable[[Sequence[TransformedRecord], Sequence[str]], str]


@dataclass(frozen=True)
class Exporter:
    id: str
    label: str
    suffix: str
    content_type: str
    serialize: Serializer

    def filename(self, today: date, prefix: str = DEFAULT_FILENAME_PREFIX) -> str:
        return f"{prefix}_{today.isoformat()}{self.suffix}"


def escape_csv_value(value: str) -> str:
    if "," in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def to_csv(records: Sequence[TransformedRecord], fields: Sequence[str]) -> str:
    lines = [",".join(fields)]
    for record in records:
        lines.append(",".join(escape_csv_value(record.get(f, "")) for f in fields))
    return "\n".join(lines)


def to_json(records: Sequence[TransformedRecord], fields: Sequence[str]) -> str:
    return json.dumps([dict(r) for r in records], indent=2, ensure_ascii=False)


def to_html_table(records: Sequence[TransformedRecord], fields: Sequence[str]) -> str:
    # Values are inserted verbatim; markup inside cells is not escaped.
    head = "".join(f"<th>{f}</th>" for f in fields)
    body = "".join(
        "<tr>" + "".join(f"<td>{r.get(f, '')}</td>" for f in fields) + "</tr>"
        for r in records
    )
    return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


EXPORTERS: Dict[str, Exporter] = {}


def register_exporter(exporter: Exporter) -> Exporter:
    EXPORTERS[exporter.id] = exporter
    return exporter


register_exporter(Exporter("excel", "Excel (.xls)", ".xls", "application/vnd.ms-excel", to_html_table))
register_exporter(Exporter("csv", "CSV File", ".csv", "text/csv", to_csv))
register_exporter(Exporter("json", "JSON", ".json", "application/json", to_json))
register_exporter(Exporter("google-sheets", "Google Sheets", "_for_google_sheets.csv", "text/csv", to_csv))


def get_exporter(format_id: str) -> Exporter:
    try:
        return EXPORTERS[format_id]
    except KeyError:
        raise UnsupportedFormatError(format_id) from None


def list_exporters() -> List[Exporter]:
    return list(EXPORTERS.values())


def export_records(
    format_id: str,
    records: Sequence[TransformedRecord],
    fields: Sequence[str],
    today: Optional[date] = None,
    filename_prefix: str = DEFAULT_FILENAME_PREFIX,
) -> ExportBundle:
    """Serialize ``records`` with the exporter registered as ``format_id``."""
    exporter = get_exporter(format_id)
    if not records:
        raise NothingToExportError()

    today = today or datetime.now(timezone.utc).date()
    content = exporter.serialize(records, fields)
    logger.info("Exported %d records as %s", len(records), exporter.id)
    return ExportBundle(
        content=content,
        filename=exporter.filename(today, filename_prefix),
        content_type=exporter.content_type,
    )
