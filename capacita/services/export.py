"""Tabular exports for the admin reports: spreadsheet-friendly CSV and PDF."""

from __future__ import annotations

import csv
import io
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

CSV_BOM = "\ufeff"
CSV_DELIMITER = ";"

HEADER_FILL = (147 / 255, 51 / 255, 234 / 255)
ZEBRA_FILL = (245 / 255, 245 / 255, 250 / 255)
MARGIN = 15 * mm
HEADER_HEIGHT = 8 * mm
ROW_HEIGHT = 7 * mm


@dataclass(frozen=True)
class ExportColumn:
    header: str
    key: str


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    if isinstance(value, float):
        return f"{value:.2f}".rstrip("0").rstrip(".")
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y %H:%M")
    if hasattr(value, "strftime"):
        return value.strftime("%d/%m/%Y")
    return str(value)


def export_csv(
    title: str,
    columns: Sequence[ExportColumn],
    rows: Iterable[Mapping[str, Any]],
) -> bytes:
    """Title row, blank row, header row, then data; UTF-8 with BOM for Excel."""

    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=CSV_DELIMITER, lineterminator="\n")
    writer.writerow([title])
    writer.writerow([])
    writer.writerow([col.header for col in columns])
    for row in rows:
        writer.writerow([_cell(row.get(col.key)) for col in columns])
    return (CSV_BOM + buf.getvalue()).encode("utf-8")


def _truncate(value: str, max_chars: int) -> str:
    if max_chars < 3 or len(value) <= max_chars:
        return value
    return value[: max_chars - 2] + ".."


class _PdfTable:
    def __init__(
        self,
        pdf: canvas.Canvas,
        columns: Sequence[ExportColumn],
        page_width: float,
    ) -> None:
        self.pdf = pdf
        self.columns = columns
        self.available_width = page_width - 2 * MARGIN
        self.col_width = self.available_width / max(len(columns), 1)
        # mirrors the 2mm-per-character heuristic of the on-screen table
        self.max_chars = int(self.col_width / mm // 2)

    def _center(self, index: int) -> float:
        return MARGIN + index * self.col_width + self.col_width / 2

    def header(self, top: float) -> float:
        pdf = self.pdf
        pdf.setFillColorRGB(*HEADER_FILL)
        pdf.rect(MARGIN, top - HEADER_HEIGHT, self.available_width, HEADER_HEIGHT, 0, 1)
        pdf.setFillColorRGB(1, 1, 1)
        pdf.setFont("Helvetica-Bold", 9)
        for index, col in enumerate(self.columns):
            pdf.drawCentredString(self._center(index), top - 5.5 * mm, col.header)
        return top - HEADER_HEIGHT

    def row(self, top: float, values: List[str], zebra: bool) -> float:
        pdf = self.pdf
        if zebra:
            pdf.setFillColorRGB(*ZEBRA_FILL)
            pdf.rect(MARGIN, top - ROW_HEIGHT, self.available_width, ROW_HEIGHT, 0, 1)
        pdf.setFillGray(50 / 255)
        pdf.setFont("Helvetica", 8)
        for index, value in enumerate(values):
            pdf.drawCentredString(
                self._center(index), top - 5 * mm, _truncate(value, self.max_chars)
            )
        return top - ROW_HEIGHT


def rows_per_page(first_page: bool, page_height: float, preamble: float) -> int:
    top = page_height - MARGIN - (preamble if first_page else 0) - HEADER_HEIGHT
    usable = top - (MARGIN + 10 * mm)
    return max(1, math.floor(usable / ROW_HEIGHT) + 1)


def export_pdf(
    title: str,
    columns: Sequence[ExportColumn],
    rows: Sequence[Mapping[str, Any]],
    *,
    subtitle: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """A4 landscape table with repeated header band and "Página i de N" footer."""

    page_width, page_height = landscape(A4)
    generated_at = generated_at or datetime.now()
    preamble = 8 * mm + (6 * mm if subtitle else 0) + 10 * mm

    values = [[_cell(row.get(col.key)) for col in columns] for row in rows]
    first_capacity = rows_per_page(True, page_height, preamble)
    other_capacity = rows_per_page(False, page_height, preamble)
    remaining = max(len(values) - first_capacity, 0)
    total_pages = 1 + math.ceil(remaining / other_capacity)

    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=(page_width, page_height))
    pdf.setTitle(title)
    table = _PdfTable(pdf, columns, page_width)

    def footer(page: int) -> None:
        pdf.setFont("Helvetica", 8)
        pdf.setFillGray(150 / 255)
        pdf.drawCentredString(
            page_width / 2, 8 * mm, f"Página {page} de {total_pages}"
        )

    y = page_height - MARGIN
    pdf.setFont("Helvetica-Bold", 18)
    pdf.setFillGray(0)
    pdf.drawCentredString(page_width / 2, y - 5 * mm, title)
    y -= 8 * mm
    if subtitle:
        pdf.setFont("Helvetica", 10)
        pdf.setFillGray(100 / 255)
        pdf.drawCentredString(page_width / 2, y - 4 * mm, subtitle)
        y -= 6 * mm
    pdf.setFont("Helvetica", 8)
    pdf.setFillGray(150 / 255)
    pdf.drawCentredString(
        page_width / 2,
        y - 3 * mm,
        f"Gerado em: {generated_at.strftime('%d/%m/%Y %H:%M:%S')}",
    )
    y -= 10 * mm
    y = table.header(y)

    page = 1
    capacity = first_capacity
    on_page = 0
    for index, row_values in enumerate(values):
        if on_page >= capacity:
            footer(page)
            pdf.showPage()
            page += 1
            capacity = other_capacity
            on_page = 0
            y = table.header(page_height - MARGIN)
        y = table.row(y, row_values, zebra=index % 2 == 0)
        on_page += 1

    footer(page)
    pdf.showPage()
    pdf.save()
    return buf.getvalue()
