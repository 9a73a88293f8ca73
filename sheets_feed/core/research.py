"""Split free-form market research rows into headings, tables and text."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Iterable

from pydantic import Field

from sheets_feed.providers.base import RecordModel

from .rows import Row

_DASHES = re.compile(r"^-+$")
MIN_PARAGRAPH_LENGTH = 10


class BlockKind(StrEnum):
    HEADING = "heading"
    TABLE = "table"
    BULLET = "bullet"
    PARAGRAPH = "paragraph"


class ResearchBlock(RecordModel):
    """One structural element of a research sheet."""

    kind: BlockKind
    text: str = ""
    rows: list[list[str]] = Field(default_factory=list)


def _first_value(row: Row) -> str:
    for value in row.values():
        text = (value or "").strip()
        if text:
            return text
    return ""


def _table_cells(content: str) -> list[str]:
    cells = [cell.strip() for cell in content.split("|")]
    return [cell for cell in cells if cell and not _DASHES.match(cell)]


def segment_research(rows: Iterable[Row]) -> list[ResearchBlock]:
    """Classify each row by its first non-empty value.

    ``##`` marks a heading, a value with more than two ``|``-separated parts is
    a table row (consecutive ones are merged), a leading ``-`` marks a bullet
    and anything else longer than ten characters is a paragraph. Separator
    lines made only of dashes are dropped.
    """

    blocks: list[ResearchBlock] = []
    table: list[list[str]] = []

    def flush_table() -> None:
        if table:
            blocks.append(ResearchBlock(kind=BlockKind.TABLE, rows=list(table)))
            table.clear()

    for row in rows:
        content = _first_value(row)
        if not content:
            continue

        if "##" in content:
            flush_table()
            heading = content.replace("#", "").strip()
            if heading:
                blocks.append(ResearchBlock(kind=BlockKind.HEADING, text=heading))
        elif "|" in content and len(content.split("|")) > 2:
            cells = _table_cells(content)
            if cells:
                table.append(cells)
        elif content.startswith("-") and not _DASHES.match(content):
            flush_table()
            bullet = content[1:].strip()
            if bullet:
                blocks.append(ResearchBlock(kind=BlockKind.BULLET, text=bullet))
        elif len(content) > MIN_PARAGRAPH_LENGTH and not _DASHES.match(content):
            flush_table()
            blocks.append(ResearchBlock(kind=BlockKind.PARAGRAPH, text=content))

    flush_table()
    return blocks


__all__ = ["BlockKind", "ResearchBlock", "segment_research"]
