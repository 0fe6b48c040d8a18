"""Flattening of the indexed tree into rows and the spreadsheet/PDF encoders."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from openpyxl.styles import Font, PatternFill
from openpyxl.worksheet.properties import Outline
from reportlab.lib import colors
from reportlab.lib.pagesizes import A3, A4, landscape, portrait
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .config import CATEGORY_NAMES, COLUMN_LABELS, COLUMN_NAMES, ColumnVisibility
from .indexing import assign_indices
from .models import LEVEL_ITEM, STATUS_COMPLETE, TreeNode
from .outline import apply_outline_to_openpyxl, build_outline_nodes, levels_to_level_map
from .rollup import EstimateTotals

logger = logging.getLogger(__name__)

BASE_COLUMNS = ("Index", "Level", "Description", "Status")
SUMMARY_SHEET = "Summary"
PDF_FONT = "Helvetica"
PDF_FONT_BOLD = "Helvetica-Bold"
INDENT = "    "

Columns = Union[ColumnVisibility, Iterable[str], None]


@dataclass
class RowRecord:
    """One flattened tree node as consumed by the table and export encoders."""

    index: str
    level: int
    name: str
    amount: float
    costs: Dict[str, float] = field(default_factory=dict)
    status: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    rate: Optional[float] = None

    def value(self, column: str) -> Any:
        if column == "amount":
            return self.amount
        if column in CATEGORY_NAMES:
            return self.costs.get(column, 0.0)
        return getattr(self, column)

    def as_dict(self, columns: Sequence[str] = COLUMN_NAMES) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "Index": self.index,
            "Level": self.level,
            "Description": self.name,
            "Status": self.status,
        }
        for column in columns:
            row[COLUMN_LABELS[column]] = self.value(column)
        return row


def resolve_columns(columns: Columns) -> List[str]:
    """Return visible column keys in canonical order."""

    if columns is None:
        return list(COLUMN_NAMES)
    if isinstance(columns, ColumnVisibility):
        return columns.visible()
    return ColumnVisibility.from_names(columns).visible()


def flatten_forest(forest: List[TreeNode]) -> List[RowRecord]:
    """Re-index ``forest`` and flatten it in pre-order."""

    assign_indices(forest)
    rows: List[RowRecord] = []

    def visit(nodes: Iterable[TreeNode], depth: int) -> None:
        for node in nodes:
            rows.append(_row_for(node, depth))
            if node.children:
                visit(node.children, depth + 1)

    visit(forest, 0)
    return rows


def summarise_rows(rows: Iterable[RowRecord]) -> EstimateTotals:
    """Totals shared by every encoder: sums over the top-level rows."""

    totals = EstimateTotals(categories={name: 0.0 for name in CATEGORY_NAMES})
    for row in rows:
        if row.level != 0:
            continue
        totals.project_total += row.amount
        for name in CATEGORY_NAMES:
            totals.categories[name] += row.costs.get(name, 0.0)
    return totals


def rows_to_dataframe(rows: Sequence[RowRecord], columns: Columns = None) -> pd.DataFrame:
    visible = resolve_columns(columns)
    header = [*BASE_COLUMNS, *(COLUMN_LABELS[column] for column in visible)]
    if not rows:
        return pd.DataFrame(columns=header)
    frame = pd.DataFrame([row.as_dict(visible) for row in rows], columns=header)
    for column in visible:
        if column != "unit":
            frame[COLUMN_LABELS[column]] = pd.to_numeric(
                frame[COLUMN_LABELS[column]], errors="coerce"
            )
    return frame


def export_to_table(forest: List[TreeNode], columns: Columns = None) -> pd.DataFrame:
    """Flatten ``forest`` into the on-screen table."""

    return rows_to_dataframe(flatten_forest(forest), columns)


def export_to_spreadsheet(
    forest: List[TreeNode],
    columns: Columns = None,
    *,
    project_name: str = "Estimate",
    sheet_name: str = "Estimate",
) -> bytes:
    """Serialize the estimate to XLSX bytes with row outline groups per level."""

    rows = flatten_forest(forest)
    frame = rows_to_dataframe(rows, columns)
    totals = summarise_rows(rows)
    summary = summary_frame(totals)

    buffer = io.BytesIO()
    safe_sheet = sheet_name[:31] or "Estimate"
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name=safe_sheet)
        summary.to_excel(writer, index=False, sheet_name=SUMMARY_SHEET)
        writer.book.properties.title = project_name

        worksheet = writer.book[safe_sheet]
        header_font = Font(bold=True)
        header_fill = PatternFill(fill_type="solid", fgColor="EEF2FF")
        for cell in worksheet[1]:
            cell.font = header_font
            cell.fill = header_fill
        for offset, row in enumerate(rows):
            if row.level == 0:
                for cell in worksheet[offset + 2]:
                    cell.font = header_font

        nodes = build_outline_nodes(
            levels_to_level_map([row.level for row in rows]), sheet=safe_sheet
        )
        if nodes:
            apply_outline_to_openpyxl(worksheet, nodes)
            outline_pr = worksheet.sheet_properties.outlinePr
            if outline_pr is None:
                outline_pr = Outline()
            outline_pr.summaryBelow = False
            worksheet.sheet_properties.outlinePr = outline_pr
    buffer.seek(0)
    logger.info("Exported %d rows to spreadsheet for '%s'", len(rows), project_name)
    return buffer.getvalue()


def summary_frame(totals: EstimateTotals) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "Metric": ["Grand total", "Total overheads", "Total profit", "Contract sum"],
            "Value": [
                totals.project_total,
                totals.total_overheads,
                totals.total_profit,
                totals.contract_sum,
            ],
        }
    )


def format_money(value: Any) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ""
    return f"{float(value):,.2f}"


def format_quantity(value: Any) -> str:
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ""
    return f"{float(value):,.2f}".rstrip("0").rstrip(".")


def document_page_size(column_count: int):
    """Pick the page format for ``column_count`` visible columns."""

    total = column_count + 2
    size = A3 if total > 8 else A4
    return landscape(size) if total > 6 else portrait(size)


def export_to_document(
    forest: List[TreeNode],
    columns: Columns = None,
    *,
    project_name: str = "Estimate",
    project_id: Optional[str] = None,
    currency: str = "Ksh",
    generated_at: Optional[datetime] = None,
    compress: bool = True,
) -> bytes:
    """Render the estimate as a paginated PDF document."""

    rows = flatten_forest(forest)
    visible = resolve_columns(columns)
    totals = summarise_rows(rows)
    generated_at = generated_at or datetime.now()

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=document_page_size(len(visible)),
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=20 * mm,
        title=project_name,
        pageCompression=1 if compress else 0,
    )
    styles = getSampleStyleSheet()
    for style_name in ("Normal", "BodyText"):
        styles[style_name].fontName = PDF_FONT
    for style_name in ("Title", "Heading2"):
        styles[style_name].fontName = PDF_FONT_BOLD

    story: List[Any] = [Paragraph(project_name, styles["Title"])]
    if project_id:
        story.append(Paragraph(f"Project ID: {project_id}", styles["Normal"]))
    story.append(
        Paragraph(
            f"Generated on {generated_at:%Y-%m-%d} at {generated_at:%H:%M:%S}",
            styles["Normal"],
        )
    )
    story.append(Spacer(1, 6))

    cards = Table(
        [
            ["Project total", "Total overheads", "Total profit", "Contract sum"],
            [
                f"{currency} {format_money(value)}"
                for value in (
                    totals.project_total,
                    totals.total_overheads,
                    totals.total_profit,
                    totals.contract_sum,
                )
            ],
        ]
    )
    cards.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), PDF_FONT),
                ("FONTNAME", (0, 1), (-1, 1), PDF_FONT_BOLD),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("BOX", (0, 0), (-1, -1), 0.5, colors.HexColor("#6366f1")),
                ("INNERGRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#cccccc")),
                ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#f9fafb")),
            ]
        )
    )
    story.extend([cards, Spacer(1, 10)])

    header = ["Index", "Description"]
    for column in visible:
        label = COLUMN_LABELS[column]
        header.append(label if column in ("quantity", "unit") else f"{label} ({currency})")
    table_data: List[List[str]] = [header]
    for row in rows:
        cells = [row.index, INDENT * row.level + row.name]
        for column in visible:
            value = row.value(column)
            if column == "unit":
                cells.append(value or "")
            elif column == "quantity":
                cells.append(format_quantity(value))
            else:
                cells.append(format_money(value))
        table_data.append(cells)

    table_style = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1e293b")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), PDF_FONT_BOLD),
        ("FONTNAME", (0, 1), (-1, -1), PDF_FONT),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#cccccc")),
    ]
    for offset, row in enumerate(rows, start=1):
        if row.level == 0:
            table_style.append(("FONTNAME", (0, offset), (-1, offset), PDF_FONT_BOLD))
            table_style.append(("BACKGROUND", (0, offset), (-1, offset), colors.HexColor("#f1f5f9")))
    if rows:
        table = Table(table_data, repeatRows=1)
        table.setStyle(TableStyle(table_style))
        story.append(table)
    else:
        story.append(Paragraph("No estimate items to display.", styles["Normal"]))
    story.append(Spacer(1, 10))

    footer = Table(
        [
            ["Grand total", format_money(totals.project_total)],
            ["Total overheads", format_money(totals.total_overheads)],
            ["Total profit", format_money(totals.total_profit)],
        ],
        hAlign="RIGHT",
    )
    footer.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), PDF_FONT_BOLD),
                ("FONTNAME", (1, 0), (1, -1), PDF_FONT),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("LINEABOVE", (0, 0), (-1, 0), 0.5, colors.black),
            ]
        )
    )
    story.append(footer)

    doc.build(story, onFirstPage=_draw_page_footer, onLaterPages=_draw_page_footer)
    buffer.seek(0)
    logger.info("Exported %d rows to document for '%s'", len(rows), project_name)
    return buffer.getvalue()


def _draw_page_footer(canvas, doc) -> None:
    canvas.saveState()
    canvas.setFont(PDF_FONT, 8)
    canvas.setFillColor(colors.HexColor("#64748b"))
    canvas.drawString(doc.leftMargin, 10 * mm, "Generated by BQ Studio")
    canvas.drawRightString(
        doc.pagesize[0] - doc.rightMargin, 10 * mm, f"Page {doc.page}"
    )
    canvas.restoreState()


def _row_for(node: TreeNode, depth: int) -> RowRecord:
    row = RowRecord(
        index=node.index,
        level=depth,
        name=node.name,
        amount=node.amount,
        costs=dict(node.costs),
    )
    if node.level == LEVEL_ITEM:
        item = node.item
        row.status = "Complete" if item.status == STATUS_COMPLETE else "Incomplete"
        row.quantity = item.quantity
        row.unit = item.unit
        row.rate = item.unit_cost
    return row


__all__ = [
    "RowRecord",
    "document_page_size",
    "export_to_document",
    "export_to_spreadsheet",
    "export_to_table",
    "flatten_forest",
    "format_money",
    "resolve_columns",
    "rows_to_dataframe",
    "summarise_rows",
    "summary_frame",
]
