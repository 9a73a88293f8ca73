"""Delimited text parsing and serialisation for spreadsheet exports.

The parser is total: any input text produces a (possibly empty) list of rows
and malformed quoting never raises. Lines are split on ``\\n`` before fields
are scanned, so quoted values cannot span lines.
"""

from __future__ import annotations

import json
from typing import Iterable, Sequence

from .rows import Row, has_content

DELIMITER = ","
QUOTE = '"'


def split_delimited_line(line: str, delimiter: str = DELIMITER) -> list[str]:
    """Split a single line into raw field values honouring double quotes.

    A delimiter inside quotes is literal and ``""`` inside quotes decodes to a
    single quote character. An unterminated quote runs to the end of the line.
    """

    fields: list[str] = []
    current: list[str] = []
    inside_quotes = False
    index = 0
    length = len(line)

    while index < length:
        char = line[index]
        if char == QUOTE:
            if inside_quotes and index + 1 < length and line[index + 1] == QUOTE:
                current.append(QUOTE)
                index += 1
            else:
                inside_quotes = not inside_quotes
        elif char == delimiter and not inside_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1

    fields.append("".join(current))
    return fields


def parse_delimited(text: str, delimiter: str = DELIMITER) -> list[Row]:
    """Parse delimited ``text`` into rows keyed by the trimmed header cells.

    Blank lines are skipped, short lines are padded with empty strings, extra
    trailing fields are ignored and rows whose fields are all empty are dropped.
    Duplicate headers collapse onto one key and the last value wins.
    """

    if not text:
        return []

    lines = iter(text.split("\n"))
    headers: list[str] | None = None
    for line in lines:
        if line.strip():
            headers = [cell.strip() for cell in split_delimited_line(line, delimiter)]
            break
    if headers is None:
        return []

    rows: list[Row] = []
    for line in lines:
        if not line.strip():
            continue
        values = split_delimited_line(line, delimiter)
        row: Row = {}
        for index, header in enumerate(headers):
            row[header] = values[index].strip() if index < len(values) else ""
        if has_content(row):
            rows.append(row)
    return rows


def _quote(value: str) -> str:
    return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE


def _header_cell(value: str, delimiter: str) -> str:
    if delimiter in value or QUOTE in value:
        return _quote(value)
    return value


def to_delimited_text(
    rows: Sequence[Row],
    *,
    headers: Iterable[str] | None = None,
    delimiter: str = DELIMITER,
) -> str:
    """Serialise ``rows`` with every data field wrapped in double quotes.

    Columns default to the keys of the first row. Missing values are written
    as empty strings.
    """

    if not rows:
        return ""
    columns = list(headers) if headers is not None else list(rows[0].keys())
    lines = [delimiter.join(_header_cell(column, delimiter) for column in columns)]
    for row in rows:
        lines.append(
            delimiter.join(_quote(str(row.get(column) or "")) for column in columns)
        )
    return "\n".join(lines)


def to_json_text(rows: Sequence[Row], *, indent: int = 2) -> str:
    """Serialise ``rows`` as a pretty-printed JSON array."""

    return json.dumps(list(rows), indent=indent, ensure_ascii=False)


__all__ = [
    "DELIMITER",
    "parse_delimited",
    "split_delimited_line",
    "to_delimited_text",
    "to_json_text",
]
