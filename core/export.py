"""Export sinks: CSV download and the PowerPoint budget report.

Both take the record snapshot they are handed and never touch the working set.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date
from typing import List, Optional, Sequence

import pandas as pd
from pptx import Presentation
from pptx.chart.data import CategoryChartData
from pptx.dml.color import RGBColor
from pptx.enum.chart import XL_CHART_TYPE, XL_LEGEND_POSITION
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches, Pt

from core.errors import ExportError
from core.models import NUMERIC_FIELDS, ActivityRecord, DashboardMetrics, records_to_frame


logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "No",
    "Activity Code",
    "Domain Name",
    "Activity Name",
    "Operation",
    "Timeline",
    "Status",
    "Allocation Budget",
    "Expenditure",
    "Balance",
    "Budget Progress (%)",
]
CSV_COLUMNS = [
    "sequence_id",
    "activity_code",
    "domain_name",
    "activity_name",
    "operation",
    "timeline",
    "status",
    "allocation_budget",
    "expenditure",
    "balance",
    "budget_progress",
]

ITEMS_PER_SLIDE = 6
TREND_POINTS = 15
TABLE_ROWS_PER_SLIDE = 14

TITLE_COLOR = "1E3A8A"
MUTED_COLOR = "64748B"
DARK_COLOR = "1F2937"
BORDER_COLOR = "E2E8F0"
GREEN = "10B981"
RED = "EF4444"
DARK_RED = "B91C1C"
DARK_GREEN = "047857"
BLUE = "3B82F6"
TRACK_COLOR = "E5E7EB"
HEADER_FILL = "F3F4F6"


def export_filename(kind: str, today: Optional[date] = None) -> str:
    stamp = (today or date.today()).isoformat()
    if kind == "csv":
        return f"budget_data_export_{stamp}.csv"
    if kind == "pptx":
        return f"Budget_Report_{stamp}.pptx"
    raise ValueError(f"Unknown export kind: {kind}")


def format_currency(value: float) -> str:
    return f"${value:,.0f}" if float(value).is_integer() else f"${value:,.2f}"


def _num(value: float):
    """Whole amounts are written without a trailing ".0"."""
    value = float(value)
    return int(value) if value.is_integer() else value


# ---------------- CSV ----------------
def export_csv(records: Sequence[ActivityRecord]) -> str:
    """Text columns are double-quoted, amounts are written bare."""
    try:
        df = records_to_frame(records)[CSV_COLUMNS].copy()
        for col in NUMERIC_FIELDS:
            df[col] = pd.Series([_num(v) for v in df[col]], index=df.index, dtype=object)
        lines = [",".join(CSV_HEADERS)]
        if not df.empty:
            body = df.to_csv(index=False, header=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
            lines.append(body.rstrip("\n"))
        return "\n".join(lines)
    except Exception as exc:
        logger.exception("CSV export failed")
        raise ExportError("Failed to export CSV.") from exc


# ---------------- PowerPoint ----------------
def _rgb(hex_color: str) -> RGBColor:
    return RGBColor.from_string(hex_color)


def _add_text(slide, text: str, x: float, y: float, w: float, h: float = 0.4, *, size: int = 12,
              bold: bool = False, color: str = DARK_COLOR, align=None) -> None:
    box = slide.shapes.add_textbox(Inches(x), Inches(y), Inches(w), Inches(h))
    frame = box.text_frame
    frame.word_wrap = True
    para = frame.paragraphs[0]
    run = para.add_run()
    run.text = text
    run.font.size = Pt(size)
    run.font.bold = bold
    run.font.color.rgb = _rgb(color)
    if align is not None:
        para.alignment = align


def _add_rect(slide, x: float, y: float, w: float, h: float, fill: str, line: Optional[str] = None) -> None:
    shape = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, Inches(x), Inches(y), Inches(w), Inches(h))
    shape.fill.solid()
    shape.fill.fore_color.rgb = _rgb(fill)
    if line:
        shape.line.color.rgb = _rgb(line)
    else:
        shape.line.fill.background()


def _overview_slide(prs, records: Sequence[ActivityRecord], metrics: DashboardMetrics, title: str, today: date) -> None:
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    _add_text(slide, title, 0.5, 0.4, 9.0, 0.5, size=24, bold=True, color=TITLE_COLOR)
    _add_text(slide, f"Generated on: {today.isoformat()}", 0.5, 0.9, 9.0, size=12, color=MUTED_COLOR)

    kpis = [
        ("Current Balance", metrics.total_balance, GREEN if metrics.total_balance >= 0 else RED),
        ("Total Expenditure", metrics.total_expenditure, RED),
        ("Total Overspent", metrics.total_overspent, DARK_RED),
        ("Total Underspent", metrics.total_underspent, DARK_GREEN),
    ]
    x = 0.5
    for label, value, color in kpis:
        _add_rect(slide, x, 1.4, 2.0, 1.2, "FFFFFF", BORDER_COLOR)
        _add_text(slide, label, x + 0.1, 1.6, 1.8, size=11, color=MUTED_COLOR)
        _add_text(slide, format_currency(value), x + 0.1, 2.0, 1.8, size=18, bold=True, color=color)
        x += 2.2

    donut_data = CategoryChartData()
    donut_data.categories = ["Spent", "Remaining"]
    donut_data.add_series("Budget", (metrics.total_expenditure, max(metrics.total_balance, 0.0)))
    donut = slide.shapes.add_chart(
        XL_CHART_TYPE.DOUGHNUT, Inches(0.5), Inches(3.0), Inches(4.0), Inches(3.5), donut_data
    ).chart
    donut.has_title = True
    donut.chart_title.text_frame.text = "Budget Utilization"
    donut.has_legend = True
    donut.legend.position = XL_LEGEND_POSITION.BOTTOM
    donut.legend.include_in_layout = False
    plot = donut.plots[0]
    plot.has_data_labels = True
    plot.data_labels.show_percentage = True
    plot.data_labels.show_value = False
    for point, color in zip(plot.series[0].points, (RED, GREEN)):
        point.format.fill.solid()
        point.format.fill.fore_color.rgb = _rgb(color)

    trend = list(records[:TREND_POINTS])
    if trend:
        area_data = CategoryChartData()
        area_data.categories = [r.timeline or r.activity_code for r in trend]
        area_data.add_series("Balance", [r.balance for r in trend])
        area = slide.shapes.add_chart(
            XL_CHART_TYPE.AREA, Inches(5.0), Inches(3.0), Inches(4.5), Inches(3.5), area_data
        ).chart
        area.has_title = True
        area.chart_title.text_frame.text = "Balance Trend (Recent Activities)"
        area.has_legend = False
        fill = area.plots[0].series[0].format.fill
        fill.solid()
        fill.fore_color.rgb = _rgb(BLUE)


def _progress_slides(prs, records: Sequence[ActivityRecord]) -> None:
    total = len(records)
    for start in range(0, total, ITEMS_PER_SLIDE):
        batch = records[start:start + ITEMS_PER_SLIDE]
        slide = prs.slides.add_slide(prs.slide_layouts[6])
        end = min(start + ITEMS_PER_SLIDE, total)
        _add_text(slide, f"Budget Progress (Items {start + 1} - {end})", 0.5, 0.4, 9.0, size=18, bold=True, color="333333")

        y = 1.0
        for item in batch:
            _add_rect(slide, 0.5, y, 9.0, 0.9, "FFFFFF", TRACK_COLOR)
            _add_text(slide, item.activity_name, 0.7, y + 0.1, 3.2, size=12, bold=True)
            _add_text(slide, item.timeline, 0.7, y + 0.45, 3.2, size=10, color="6B7280")

            bar_x, bar_y, bar_w, bar_h = 4.0, y + 0.35, 3.0, 0.15
            progress = min(max(item.budget_progress, 0.0), 100.0)
            _add_rect(slide, bar_x, bar_y, bar_w, bar_h, TRACK_COLOR)
            filled = progress / 100 * bar_w
            if filled > 0:
                _add_rect(slide, bar_x, bar_y, filled, bar_h, RED if item.budget_progress > 100 else BLUE)
            _add_text(slide, f"{item.budget_progress:.0f}%", bar_x + bar_w + 0.1, bar_y - 0.12, 0.7, size=11, bold=True)

            _add_text(slide, f"Exp: {format_currency(item.expenditure)}", 7.8, y + 0.1, 1.6, size=10,
                      color="6B7280", align=PP_ALIGN.RIGHT)
            _add_text(slide, f"Bud: {format_currency(item.allocation_budget)}", 7.8, y + 0.45, 1.6, size=10,
                      bold=True, align=PP_ALIGN.RIGHT)
            y += 1.0


def _table_slides(prs, records: Sequence[ActivityRecord]) -> None:
    headers = ["Activity", "Status", "Budget", "Spent", "Balance"]
    widths = [4.0, 1.5, 1.2, 1.2, 1.2]
    chunks: List[Sequence[ActivityRecord]] = [
        records[i:i + TABLE_ROWS_PER_SLIDE] for i in range(0, len(records), TABLE_ROWS_PER_SLIDE)
    ] or [[]]

    for page, chunk in enumerate(chunks):
        slide = prs.slides.add_slide(prs.slide_layouts[6])
        title = "Detailed Activity List" if page == 0 else "Detailed Activity List (cont.)"
        _add_text(slide, title, 0.5, 0.4, 9.0, size=18, bold=True, color="333333")

        shape = slide.shapes.add_table(len(chunk) + 1, len(headers), Inches(0.5), Inches(1.0), Inches(9.0),
                                       Inches(0.4 * (len(chunk) + 1)))
        table = shape.table
        for idx, width in enumerate(widths):
            table.columns[idx].width = Inches(width)

        for col, text in enumerate(headers):
            cell = table.cell(0, col)
            cell.text = text
            cell.fill.solid()
            cell.fill.fore_color.rgb = _rgb(HEADER_FILL)
            para = cell.text_frame.paragraphs[0]
            para.runs[0].font.bold = True
            para.runs[0].font.size = Pt(10)
            para.runs[0].font.color.rgb = _rgb("111827")
            if col >= 2:
                para.alignment = PP_ALIGN.RIGHT

        for row_idx, item in enumerate(chunk, start=1):
            values = [
                item.activity_name,
                item.status.value,
                format_currency(item.allocation_budget),
                format_currency(item.expenditure),
                format_currency(item.balance),
            ]
            for col, text in enumerate(values):
                cell = table.cell(row_idx, col)
                cell.text = text
                para = cell.text_frame.paragraphs[0]
                if para.runs:
                    para.runs[0].font.size = Pt(10)
                if col >= 2:
                    para.alignment = PP_ALIGN.RIGHT


def export_pptx(
    records: Sequence[ActivityRecord],
    metrics: DashboardMetrics,
    domain_name: Optional[str] = None,
    today: Optional[date] = None,
) -> bytes:
    """Overview slide, paginated progress slides, then the full activity table."""
    today = today or date.today()
    title = f"Budget Report: {domain_name}" if domain_name else "Overall Budget Report"
    records = list(records)
    try:
        prs = Presentation()
        prs.slide_width = Inches(10)
        prs.slide_height = Inches(7.5)
        _overview_slide(prs, records, metrics, title, today)
        _progress_slides(prs, records)
        _table_slides(prs, records)
        buf = io.BytesIO()
        prs.save(buf)
        return buf.getvalue()
    except Exception as exc:
        logger.exception("PowerPoint export failed")
        raise ExportError("Failed to generate PowerPoint. Please try again.") from exc
