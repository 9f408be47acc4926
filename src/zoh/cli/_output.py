from __future__ import annotations

import json
import sys
from typing import Any, Iterable

OUTPUT_FORMATS = ("table", "json")


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _columns(items: Iterable[dict]) -> list[str]:
    # Union of keys, in first-seen order
    columns: dict[str, None] = {}
    for item in items:
        columns.update(dict.fromkeys(item))
    return list(columns)


def print_table(items: list[dict]) -> None:
    """Print dicts as a markdown-style table, one column per key."""
    if not items:
        return
    columns = _columns(items)
    rows = [[_cell(item.get(col)) for col in columns] for item in items]
    widths = [max(len(cell) for cell in column) for column in zip(columns, *rows)]

    def line(cells: list[str], fill: str = " ") -> str:
        padded = (cell.ljust(width, fill) for cell, width in zip(cells, widths))
        return f"|{fill}" + f"{fill}|{fill}".join(padded) + f"{fill}|"

    print(line(columns))
    print(line([""] * len(columns), "-"))
    for row in rows:
        print(line(row))


def print_items(items: list[dict], *, output_format: str = "table") -> None:
    if output_format == "json":
        print(json.dumps(items, indent=2))
    else:
        print_table(items)


def status(message: str) -> None:
    """Progress and confirmation messages go to stderr so stdout stays scriptable."""
    print(message, file=sys.stderr)
