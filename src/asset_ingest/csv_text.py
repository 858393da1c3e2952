"""asset_ingest.csv_text

Parser for the asset upload CSV.

Only one dialect is supported: comma delimiter, double quotes toggling a
quoted section.  The whole text is consumed eagerly and parsing holds no
state, so the same input always yields the same list of rows.
"""

from __future__ import annotations

import re
from pathlib import Path

from asset_ingest.normalize import canonical_header_key

_LINE_BREAK_RE = re.compile(r"\r?\n")


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line into trimmed fields.

    A double quote toggles quoted mode and is never kept; a comma only
    separates fields outside quotes.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    fields.append("".join(current).strip())
    return fields


def parse_csv_text(text: str) -> list[dict[str, str]]:
    """Parse CSV text into row dicts keyed by canonical header names.

    Returns [] when the text has fewer than two non-blank lines.  Short rows
    are padded with empty strings; rows with every field empty are dropped.
    """
    lines = [ln for ln in _LINE_BREAK_RE.split(text) if ln.strip()]
    if len(lines) < 2:
        return []

    headers = [canonical_header_key(cell) for cell in split_csv_line(lines[0])]

    rows: list[dict[str, str]] = []
    for line in lines[1:]:
        values = split_csv_line(line)
        if not any(values):
            continue
        row = {
            header: values[idx] if idx < len(values) else ""
            for idx, header in enumerate(headers)
        }
        rows.append(row)
    return rows


def read_csv_file(path: Path) -> list[dict[str, str]]:
    """Read an upload file (UTF-8, BOM tolerated) and parse it."""
    return parse_csv_text(path.read_text(encoding="utf-8-sig"))
