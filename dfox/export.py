"""Delimited text export of query results (copy row / copy all)."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

from .models import QueryResult

DELIMITER = "\t"


def _clean(cell: str, delimiter: str) -> str:
    # One record per line: embedded delimiters and newlines become spaces.
    return cell.replace(delimiter, " ").replace("\r", " ").replace("\n", " ")


def _line(cells: Sequence[str], delimiter: str) -> str:
    return delimiter.join(_clean(str(c), delimiter) for c in cells)


def row_lines(result: QueryResult, index: int, delimiter: str = DELIMITER) -> list[str]:
    """Header plus the row at `index`. Empty when there is no such row."""
    if not result.has_rows or not 0 <= index < len(result.rows):
        return []
    return [_line(result.columns, delimiter), _line(result.rows[index], delimiter)]


def result_lines(result: QueryResult, delimiter: str = DELIMITER) -> list[str]:
    """Header plus every row of the result."""
    if not result.has_rows:
        return []
    return [_line(result.columns, delimiter)] + [_line(row, delimiter) for row in result.rows]


def write_lines(path: Path, lines: Iterable[str]) -> Path:
    """Replace `path` with `lines`; returns the resolved path."""
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    return target
