"""File renditions of the reorder sheet and usage reports (CSV and PDF)."""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..core.config import settings
from .money import format_currency

LOGGER = logging.getLogger(__name__)

REORDER_HEADERS = [
    "Item Name",
    "SKU",
    "Current Stock",
    "Minimum Stock",
    "Recommended Order",
    "Unit",
    "Unit Cost",
    "Total Cost",
    "Supplier",
    "Category",
]

# kind -> (file stem, [(column title, row key)])
REPORT_COLUMNS: Dict[str, tuple[str, List[tuple[str, str]]]] = {
    "items": (
        "most-used-items",
        [
            ("Item Name", "item_name"),
            ("SKU", "item_sku"),
            ("Total Quantity Used", "total_quantity"),
            ("Total Cost", "total_cost"),
            ("Number of Transactions", "transaction_count"),
        ],
    ),
    "projects": (
        "project-expenses",
        [
            ("Project Name", "project_name"),
            ("Total Cost", "total_cost"),
            ("Number of Items", "item_count"),
        ],
    ),
    "monthly": (
        "monthly-usage",
        [
            ("Month", "month"),
            ("Total Cost", "total_cost"),
            ("Number of Transactions", "transaction_count"),
        ],
    ),
}


def reorder_filename(day: date | None = None) -> str:
    day = day or datetime.now(timezone.utc).date()
    return f"reorder-sheet-{day.isoformat()}.csv"


def reorder_sheet_csv(sheet: Dict[str, Any]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(REORDER_HEADERS)
    for line in sheet["lines"]:
        writer.writerow(
            [
                line["name"],
                line["sku"],
                line["current_stock"],
                line["minimum_stock"],
                line["recommended_order"],
                line["unit"],
                f"{line['unit_cost']:.2f}",
                f"{line['line_cost']:.2f}",
                line["supplier"],
                line["category"] or "",
            ]
        )
    return output.getvalue()


def report_filename(kind: str, start: date, end: date) -> str:
    stem, _ = _report_spec(kind)
    return f"{stem}-{start.isoformat()}-to-{end.isoformat()}.csv"


def report_csv(kind: str, rows: Iterable[Dict[str, Any]]) -> str:
    """One of the usage reports as CSV, costs written as ``$0.00``."""

    _, columns = _report_spec(kind)
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow([title for title, _ in columns])
    for row in rows:
        writer.writerow(
            [format_currency(row.get(key)) if key == "total_cost" else row.get(key, "") for _, key in columns]
        )
    return output.getvalue()


def _report_spec(kind: str):
    try:
        return REPORT_COLUMNS[kind]
    except KeyError:
        raise ValueError(f"unknown report: {kind}; expected one of {', '.join(REPORT_COLUMNS)}") from None


def _latin1(text: Any) -> str:
    # Core PDF fonts only cover Latin-1.
    return str(text if text is not None else "").encode("latin-1", "replace").decode("latin-1")


_PDF_COLUMNS = [
    ("Item", 58, "L"),
    ("SKU", 28, "L"),
    ("On hand", 18, "R"),
    ("Min", 14, "R"),
    ("Order", 16, "R"),
    ("Unit cost", 22, "R"),
    ("Line cost", 24, "R"),
]


def render_reorder_pdf(sheet: Dict[str, Any]) -> bytes:
    """Printable reorder sheet, one table per supplier."""

    pdf = FPDF(unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()
    effective_width = pdf.w - pdf.l_margin - pdf.r_margin

    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(effective_width, 10, _latin1(f"{settings.APP_NAME} reorder sheet"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    generated_at = datetime.now(timezone.utc).astimezone()
    pdf.set_font("Helvetica", size=10)
    pdf.cell(
        effective_width,
        5,
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M %Z')}",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.cell(
        effective_width,
        5,
        f"{sheet['item_count']} item(s), {sheet['total_units']} unit(s), total {format_currency(sheet['total_cost'])}",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.ln(3)

    if not sheet["lines"]:
        pdf.set_font("Helvetica", "I", 11)
        pdf.multi_cell(effective_width, 6, "Nothing is at or below its minimum stock level.")

    for group in sheet["groups"]:
        pdf.set_font("Helvetica", "B", 12)
        pdf.cell(
            effective_width,
            7,
            _latin1(f"{group['supplier']} ({group['item_count']} item(s), {format_currency(group['subtotal'])})"),
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
        pdf.set_font("Helvetica", "B", 9)
        for title, width, align in _PDF_COLUMNS:
            pdf.cell(width, 6, title, border="B", align=align)
        pdf.ln(6)
        pdf.set_font("Helvetica", size=9)
        for line in group["lines"]:
            values = [
                line["name"][:38],
                line["sku"],
                str(line["current_stock"]),
                str(line["minimum_stock"]),
                str(line["recommended_order"]),
                format_currency(line["unit_cost"]),
                format_currency(line["line_cost"]),
            ]
            for (_, width, align), value in zip(_PDF_COLUMNS, values):
                pdf.cell(width, 5.5, _latin1(value), align=align)
            pdf.ln(5.5)
        pdf.ln(3)

    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(effective_width, 7, f"Grand total: {format_currency(sheet['total_cost'])}", align="R")

    LOGGER.info("reorder.pdf.rendered", extra={"extra_data": {"lines": sheet["item_count"]}})
    return bytes(pdf.output())
