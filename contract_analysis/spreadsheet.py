# SPDX-License-Identifier: AGPL-3.0-only

"""
Spreadsheet emission for analysis rows.

Rows are written to a single-sheet .xlsx with pandas and the openpyxl
engine, then base64 encoded for the JSON response and optionally persisted
to the public downloads folder.
"""

import base64
import io
import logging
import os
import re
from typing import List, Sequence

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter
from werkzeug.utils import secure_filename

from .models import ColumnLayout, Row

logger = logging.getLogger(__name__)

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Label column, value column
COLUMN_WIDTHS = (30, 50)

# Excel forbids these in sheet names and caps the length at 31
_INVALID_SHEET_CHARS = re.compile(r'[\[\]:*?/\\]')


def safe_sheet_name(name: str) -> str:
    cleaned = _INVALID_SHEET_CHARS.sub(" ", name or "").strip()
    return (cleaned or "Sheet1")[:31]


def cell_text(value: str) -> str:
    """Drop control characters that worksheets cannot store."""
    return ILLEGAL_CHARACTERS_RE.sub("", value or "")


def rows_to_dataframe(rows: Sequence[Row], layout: ColumnLayout = ColumnLayout.FIELD_VALUE) -> pd.DataFrame:
    """Convert rows to a two-column DataFrame using the layout's headers."""
    left, right = layout.headers
    records = [{left: cell_text(row.label), right: cell_text(row.value)} for row in rows]
    return pd.DataFrame(records, columns=[left, right])


def build_workbook(
    rows: Sequence[Row],
    layout: ColumnLayout = ColumnLayout.FIELD_VALUE,
    sheet_name: str = None,
) -> bytes:
    """
    Serialize rows into an .xlsx document.

    Args:
        rows: Ordered rows to write below the header
        layout: Column naming for the header row
        sheet_name: Sheet title (defaults to the layout's sheet name)

    Returns:
        The workbook as bytes
    """
    sheet = safe_sheet_name(sheet_name or layout.default_sheet_name)
    df = rows_to_dataframe(rows, layout)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet, index=False)
        worksheet = writer.sheets[sheet]
        # openpyxl stores any string starting with "=" as a formula
        for cells in worksheet.iter_rows(min_row=2):
            for cell in cells:
                if isinstance(cell.value, str) and cell.value.startswith("="):
                    cell.data_type = "s"
        for col_idx, width in enumerate(COLUMN_WIDTHS, start=1):
            worksheet.column_dimensions[get_column_letter(col_idx)].width = width
    # Exiting the 'with' block writes the workbook into the buffer.

    return buffer.getvalue()


def encode_workbook(data: bytes) -> str:
    """Base64 text suitable for a data URI or JSON payload."""
    return base64.b64encode(data).decode("ascii")


def decode_workbook(encoded: str) -> bytes:
    return base64.b64decode(encoded)


def read_workbook_rows(data: bytes, layout: ColumnLayout = ColumnLayout.FIELD_VALUE) -> List[Row]:
    """Read rows back from an .xlsx produced by ``build_workbook``."""
    df = pd.read_excel(io.BytesIO(data), dtype=str, keep_default_na=False)
    left, right = layout.headers
    return [Row(label=str(rec[left]), value=str(rec[right])) for rec in df.to_dict("records")]


def build_result_filename(original_name: str, timestamp_ms: int) -> str:
    """``<original-basename>_analysis_<unix-millis>.xlsx``, shown to the user as-is."""
    base = os.path.splitext(re.split(r'[\\/]', original_name or "")[-1])[0].strip()
    return f"{base or 'document'}_analysis_{timestamp_ms}.xlsx"


def storage_filename(filename: str) -> str:
    """Name used for the persisted copy on disk and in its download URL."""
    return secure_filename(filename) or "analysis.xlsx"


def save_to_downloads(data: bytes, directory: str, filename: str) -> str:
    """Write the workbook into the downloads folder and return its path."""
    os.makedirs(directory, exist_ok=True)
    out_path = os.path.join(directory, filename)
    with open(out_path, "wb") as f:
        f.write(data)
    logger.info("Saved analysis spreadsheet to %s", out_path)
    return out_path
