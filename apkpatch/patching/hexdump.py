"""Hex dump formatting for patch logs."""

from __future__ import annotations

from typing import List

ROW_WIDTH = 16


def format_hex_dump(data: bytes, index: int, length: int, context: int = 8) -> List[str]:
    """Render the bytes around ``data[index:index + length]``.

    Each row holds the row offset, up to 16 hex bytes and their ASCII form.
    Bytes inside the highlighted span are wrapped in brackets.
    """
    start = max(0, index - context)
    end = min(len(data), index + length + context)
    rows: List[str] = []

    for row_start in range(start, end, ROW_WIDTH):
        hex_cells = []
        ascii_cells = []
        for pos in range(row_start, row_start + ROW_WIDTH):
            if pos < len(data):
                value = data[pos]
                cell = f"{value:02X}"
                if index <= pos < index + length:
                    cell = f"[{cell}]"
                else:
                    cell = f" {cell} "
                hex_cells.append(cell)
                ascii_cells.append(chr(value) if 32 <= value < 127 else ".")
            else:
                hex_cells.append("    ")
                ascii_cells.append(" ")
        rows.append(f"{row_start:08X}  {''.join(hex_cells)} | {''.join(ascii_cells)}")

    return rows
