# Overview: Spreadsheet export of transaction history (one row per line item).

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from io import BytesIO

import openpyxl
from openpyxl.styles import Font

from ..money import money_to_json
from shopledger.time_utils import to_local, utcnow


XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

NUMBERED_COLUMNS = [
    "Transaction #",
    "Date",
    "Time",
    "Product",
    "Quantity",
    "Price",
    "Line Total",
    "Transaction Total",
    "Customer",
    "Operator",
]

# Single-transaction exports drop the running number
SINGLE_COLUMNS = NUMBERED_COLUMNS[1:]


def local_today(utc_offset_hours: int, now: datetime | None = None):
    return to_local(now or utcnow(), utc_offset_hours).date()


def select_today(transactions: Iterable, utc_offset_hours: int, now: datetime | None = None) -> list:
    """Transactions whose local calendar day is today."""
    today = local_today(utc_offset_hours, now)
    return [t for t in transactions if to_local(t.created_at, utc_offset_hours).date() == today]


def transaction_rows(transactions: Iterable, utc_offset_hours: int, *, numbered: bool = True) -> list[list]:
    """
    Flatten transactions into sheet rows.

    The transaction total only appears on a transaction's first line so
    summing the column gives revenue.
    """
    rows = []
    for index, t in enumerate(transactions, start=1):
        local = to_local(t.created_at, utc_offset_hours)
        date_str = local.strftime("%Y-%m-%d")
        time_str = local.strftime("%H:%M")
        for line_index, line in enumerate(t.lines):
            row = [
                date_str,
                time_str,
                line.product_name,
                line.quantity,
                money_to_json(line.unit_price),
                money_to_json(line.unit_price * line.quantity),
                money_to_json(t.total_amount) if line_index == 0 else "",
                t.customer_name or "",
                t.created_by,
            ]
            if numbered:
                row.insert(0, index)
            rows.append(row)
    return rows


def build_workbook(transactions: Iterable, *, sheet_title: str, utc_offset_hours: int, numbered: bool = True) -> BytesIO:
    """Render transactions to an in-memory .xlsx file positioned at 0."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_title[:31]

    bold_font = Font(bold=True)
    columns = NUMBERED_COLUMNS if numbered else SINGLE_COLUMNS
    for col_idx, column_name in enumerate(columns, 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.value = column_name
        cell.font = bold_font

    for row in transaction_rows(transactions, utc_offset_hours, numbered=numbered):
        ws.append(row)

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer


def export_filename(prefix: str, utc_offset_hours: int, now: datetime | None = None) -> str:
    return f"{prefix}-{local_today(utc_offset_hours, now).isoformat()}.xlsx"
