"""Excel import helper used by the student import endpoint.

Features
--------
- Flexible header normalization (Arabic/English, spaces/underscores, hamza forms)
- Read rows from .xlsx into dicts
- Pick a value by trying several header spellings
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from utils.arabic import normalize_arabic


def normalize_header(h: str) -> str:
    """Normalize a header for tolerant matching."""
    if h is None:
        return ""
    s = str(h).strip().lower()
    if not s:
        return ""
    # unify separators
    for ch in ["\u200f", "\u200e", "\ufeff"]:
        s = s.replace(ch, "")
    s = s.replace("-", " ").replace("/", " ")
    s = s.replace("_", " ")
    # أ/إ/آ, ة and tashkeel
    s = normalize_arabic(s)
    return s


def norm_key(key: str) -> str:
    return normalize_header(key).replace(" ", "")


def _is_empty_row(values: Sequence[Any]) -> bool:
    for v in values:
        if v is None:
            continue
        if str(v).strip() != "":
            return False
    return True


def read_excel_rows(file_storage, *, sheet_index: int = 0, max_rows: int = 10000) -> Tuple[str, List[Dict[str, Any]], List[str]]:
    """Read an Excel file from a Werkzeug FileStorage (or any binary file object).

    Returns:
      (sheet_title, rows, headers_normalized)

    `rows` is a list of dicts where keys are normalized header keys without spaces.
    Example: "الاسم_الأول" -> "الاسمالاول".
    """
    from openpyxl import load_workbook

    wb = load_workbook(file_storage, data_only=True)
    sheetnames = wb.sheetnames
    if not sheetnames:
        raise ValueError("Excel file has no sheets")

    idx = sheet_index if 0 <= sheet_index < len(sheetnames) else 0
    ws = wb[sheetnames[idx]]

    # Read header row
    raw_headers = []
    for cell in ws[1]:
        raw_headers.append(str(cell.value).strip() if cell.value is not None else "")

    headers_norm = [norm_key(h) for h in raw_headers]

    rows: List[Dict[str, Any]] = []
    count = 0
    for r in ws.iter_rows(min_row=2, values_only=True):
        if _is_empty_row(r):
            continue
        row: Dict[str, Any] = {}
        for hn, val in zip(headers_norm, r):
            if hn:
                row[hn] = val
        rows.append(row)
        count += 1
        if count >= max_rows:
            break

    return ws.title, rows, headers_norm


def pick(row: Dict[str, Any], *possible_headers: str, default: Any = None) -> Any:
    """Pick a value from a normalized-row dict by trying multiple header names."""
    for h in possible_headers:
        k = norm_key(h)
        if k in row:
            return row.get(k)
    return default


def to_str(val: Any) -> Optional[str]:
    if val is None:
        return None
    if isinstance(val, float) and val.is_integer():
        val = int(val)
    s = str(val).strip()
    return s if s else None
