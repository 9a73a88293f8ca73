"""Tests for market research segmentation."""

from __future__ import annotations

from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sheets_feed.core.research import BlockKind, segment_research


def _rows(*values: str) -> list[dict[str, str]]:
    return [{"Notes": value, "Extra": ""} for value in values]


def test_headings_bullets_and_paragraphs() -> None:
    blocks = segment_research(
        _rows(
            "## Macro Outlook ##",
            "- Watch CPI on Thursday",
            "Liquidity remains the dominant driver this week.",
            "short",
            "----",
        )
    )

    assert [(block.kind, block.text) for block in blocks] == [
        (BlockKind.HEADING, "Macro Outlook"),
        (BlockKind.BULLET, "Watch CPI on Thursday"),
        (BlockKind.PARAGRAPH, "Liquidity remains the dominant driver this week."),
    ]


def test_consecutive_table_rows_merge() -> None:
    blocks = segment_research(
        _rows(
            "| Asset | Bias | Level |",
            "|-------|------|-------|",
            "| BTC | Long | 64000 |",
            "| ETH | Flat | 3100 |",
            "## Next",
        )
    )

    assert blocks[0].kind is BlockKind.TABLE
    assert blocks[0].rows == [
        ["Asset", "Bias", "Level"],
        ["BTC", "Long", "64000"],
        ["ETH", "Flat", "3100"],
    ]
    assert blocks[1].kind is BlockKind.HEADING


def test_trailing_table_is_flushed() -> None:
    blocks = segment_research(_rows("Intro paragraph for the table.", "| a | b | c |"))

    assert [block.kind for block in blocks] == [BlockKind.PARAGRAPH, BlockKind.TABLE]
    assert blocks[1].rows == [["a", "b", "c"]]


def test_first_non_empty_value_is_used() -> None:
    blocks = segment_research([{"Notes": "", "Extra": "- from the second column"}])

    assert blocks[0].kind is BlockKind.BULLET
    assert blocks[0].text == "from the second column"


def test_empty_rows_produce_no_blocks() -> None:
    assert segment_research(_rows("", "   ")) == []
