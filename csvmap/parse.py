"""
Delimited text parsing.

Responsibilities:
- encoding detection + decoding to text
- newline normalization
- quote-aware line tokenizing (comma delimiter, double-quote escaping)
- header/row assembly with row width enforcement
- bounded materialization of data rows
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from charset_normalizer import from_bytes

from .errors import EmptyInputError
from .models import ParseReport, ParseResult, RawRow, ReportItem
from .rules import DELIMITER, PREVIEW_ROW_LIMIT, QUOTE

logger = logging.getLogger(__name__)

UTF8_BOM = b"\xef\xbb\xbf"


def decode_bytes(raw: bytes) -> Tuple[str, Dict[str, Any]]:
    """
    Decode uploaded bytes to text.

    Rules:
    - Strict UTF-8 first; a leading BOM is dropped.
    - Otherwise use the best guess of charset-normalizer.
    - If that fails too, decode UTF-8 with replacement characters and report it.
    """
    detected = None
    decode_fallback = False

    try:
        text = raw.decode("utf-8-sig")
        decode_used = "utf-8-sig" if raw.startswith(UTF8_BOM) else "utf-8"
    except UnicodeDecodeError:
        match = from_bytes(raw).best()
        if match is not None:
            detected = match.encoding
        decode_used = detected or "utf-8"
        try:
            text = raw.decode(decode_used)
        except (UnicodeDecodeError, LookupError):
            decode_used = "utf-8"
            text = raw.decode(decode_used, errors="replace")
            decode_fallback = True
        logger.warning("Input is not valid UTF-8, decoded as %s", decode_used)

    return text, {
        "detected": detected,
        "decode_used": decode_used,
        "decode_fallback": decode_fallback,
    }


def normalize_newlines(text: str) -> Tuple[str, Dict[str, Any]]:
    """CRLF -> LF. A bare CR is cell content, not a line break."""
    before = {
        "crlf": text.count("\r\n"),
        "cr": text.count("\r") - text.count("\r\n"),
        "lf": text.count("\n") - text.count("\r\n"),
    }
    text = text.replace("\r\n", "\n")
    return text, {
        "policy": "lf",
        "before": before,
        "changed": before["crlf"] > 0,
    }


def split_line(line: str) -> Tuple[List[str], bool]:
    """
    Tokenize one line into trimmed cells.

    Returns the cells and whether the line ended inside an open quoted field.
    An unterminated quote is tolerated: the rest of the line belongs to the
    open field.
    """
    cells: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        char = line[i]
        if char == QUOTE:
            if in_quotes and i + 1 < n and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    cells.append("".join(current).strip())
    return cells, in_quotes


def parse_text(text: str, row_limit: Optional[int] = PREVIEW_ROW_LIMIT) -> ParseResult:
    """
    Parse delimited text into a header list and rows keyed by header.

    ``row_limit`` bounds how many data lines become rows; ``None`` keeps all of
    them. ``total_rows`` always counts every data line.
    """
    text, newline_report = normalize_newlines(text)
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        raise EmptyInputError()

    warnings: List[ReportItem] = []

    header_cells, open_quote = split_line(lines[0])
    if open_quote:
        warnings.append(ReportItem(row=1, issue="unterminated_quote", action="closed_at_end_of_line"))

    headers: List[str] = []
    for name in header_cells:
        if name in headers:
            warnings.append(ReportItem(
                row=1,
                column=name,
                issue="duplicate_header",
                action="last_occurrence_wins",
            ))
        else:
            headers.append(name)

    width_expected = len(header_cells)
    data_lines = lines[1:]
    total_rows = len(data_lines)
    if row_limit is not None:
        data_lines = data_lines[:max(row_limit, 0)]

    short_rows = 0
    long_rows = 0
    max_columns_seen = width_expected
    rows: List[RawRow] = []

    for i, line in enumerate(data_lines):
        line_no = i + 2
        cells, open_quote = split_line(line)
        max_columns_seen = max(max_columns_seen, len(cells))

        if open_quote:
            warnings.append(ReportItem(row=line_no, issue="unterminated_quote", action="closed_at_end_of_line"))

        if len(cells) < width_expected:
            short_rows += 1
            warnings.append(ReportItem(
                row=line_no,
                issue="row_too_short",
                value=str(len(cells)),
                action=f"padded_to_{width_expected}",
            ))
        elif len(cells) > width_expected:
            long_rows += 1
            warnings.append(ReportItem(
                row=line_no,
                issue="row_too_long",
                value=str(len(cells)),
                action=f"truncated_to_{width_expected}",
            ))

        row: RawRow = {}
        for index, name in enumerate(header_cells):
            row[name] = cells[index] if index < len(cells) else ""
        rows.append(row)

    truncated = len(rows) < total_rows
    if truncated:
        logger.debug("Materialized %d of %d data rows", len(rows), total_rows)

    report = ParseReport(
        normalizations={
            "newlines": newline_report,
            "row_width": {
                "expected_columns": width_expected,
                "short_rows_padded": short_rows,
                "long_rows_truncated": long_rows,
                "max_columns_seen": max_columns_seen,
                "policy": {
                    "short_rows": "pad",
                    "long_rows": "truncate",
                    "output_columns": "header_columns",
                },
            },
        },
        warnings=warnings,
    )

    logger.info(
        "Parsed %d columns, %d of %d rows (%d warnings)",
        len(headers),
        len(rows),
        total_rows,
        len(warnings),
    )
    return ParseResult(
        headers=headers,
        rows=rows,
        total_rows=total_rows,
        truncated=truncated,
        report=report,
    )


def parse_bytes(raw: bytes, row_limit: Optional[int] = PREVIEW_ROW_LIMIT) -> ParseResult:
    """Decode ``raw`` and parse it; the encoding section is added to the report."""
    text, encoding_report = decode_bytes(raw)
    result = parse_text(text, row_limit=row_limit)
    report = result.report.model_copy(
        update={"normalizations": {"encoding": encoding_report, **result.report.normalizations}}
    )
    return result.model_copy(update={"report": report})
