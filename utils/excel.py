"""utils/excel.py

Lightweight helpers to export tables as .xlsx using openpyxl.

Design goals:
- Minimal styling (header bold + freeze pane)
- Safe for Arabic/Unicode
- No database dependencies (Flask only for the download response)
"""

from __future__ import annotations

from io import BytesIO
from typing import Iterable, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter


def _style_sheet(ws, headers: Sequence[str]) -> None:
    header_font = Font(bold=True)
    for col in range(1, len(headers) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    # Freeze header row
    ws.freeze_panes = "A2"
    # Arabic tables read right-to-left
    ws.sheet_view.rightToLeft = True

    # Auto width (simple heuristic)
    for col_idx in range(1, len(headers) + 1):
        col_letter = get_column_letter(col_idx)
        max_len = 0
        for cell in ws[col_letter]:
            val = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(val))
        ws.column_dimensions[col_letter].width = min(max(10, max_len + 2), 55)


def make_xlsx_bytes(
    sheet_name: str,
    headers: Sequence[str],
    rows: Iterable[Sequence[object]],
) -> bytes:
    """Create an .xlsx file (bytes) for a single sheet table."""
    wb = Workbook()
    ws = wb.active

    # Excel sheet name max 31
    ws.title = (sheet_name or "Sheet1")[:31]

    ws.append(list(headers))
    for r in rows:
        ws.append(["" if v is None else v for v in r])

    _style_sheet(ws, headers)

    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


def xlsx_response(filename: str, data: bytes):
    from flask import send_file

    return send_file(
        BytesIO(data),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=filename,
    )
