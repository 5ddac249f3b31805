"""
seatassign/excel_exporter.py

Exports seat charts to an Excel workbook:
    Master Sheet      roll ranges of every room
    Displaying Sheet  notice-board summary (room, paper, branch-semester, range)
    <room name>       one chart per room, two seats per column cell
"""

import re
import logging
from typing import Dict, List, Optional, Set, Union, IO
import openpyxl
from openpyxl.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet
from openpyxl.styles import Font, Border, Side, Alignment, PatternFill
from openpyxl.utils import get_column_letter
from .models import PrintLayout
from .report import seat_cell, split_summary_label
from .utils import roll_suffix

logger = logging.getLogger(__name__)

# --- Styling Constants ---
TITLE_FONT = Font(size=14, bold=True)
BOLD_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
CENTER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)
THIN_BORDER_SIDE = Side(style="thin", color="000000")
THIN_BORDER = Border(left=THIN_BORDER_SIDE, right=THIN_BORDER_SIDE, top=THIN_BORDER_SIDE, bottom=THIN_BORDER_SIDE)

MASTER_SHEET = "Master Sheet"
DISPLAY_SHEET = "Displaying Sheet"
MAX_SHEET_TITLE = 31

HEADER_KEYS = ["institution", "affiliation", "department", "title"]


class SeatChartExporter:
    """
    Writes the charts of several rooms into one workbook.

    `header` holds the banner lines printed on top of the displaying and room
    sheets: institution, affiliation, department, title and date. Missing
    lines are left out.
    """

    def __init__(self, layouts: List[PrintLayout], header: Optional[Dict[str, str]] = None):
        self.layouts = layouts
        self.header = dict(header or {})

    def export(self, target: Union[str, IO[bytes]]):
        wb = self.build_workbook()
        wb.save(target)
        logger.info("Exported %d room charts", len(self.layouts))

    def build_workbook(self) -> Workbook:
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        used_titles: Set[str] = {MASTER_SHEET, DISPLAY_SHEET}

        self._write_master_sheet(wb.create_sheet(title=MASTER_SHEET))
        self._write_displaying_sheet(wb.create_sheet(title=DISPLAY_SHEET))
        for layout in self.layouts:
            title = _sheet_title(layout.classroom.room_name, used_titles)
            used_titles.add(title)
            self._write_room_sheet(wb.create_sheet(title=title), layout)
        return wb

    def _banner_lines(self) -> List[str]:
        return [self.header[key] for key in HEADER_KEYS if self.header.get(key)]

    def _write_master_sheet(self, ws: Worksheet):
        ws.cell(1, 1, "Master Seating Chart").font = TITLE_FONT
        row = 3
        for layout in self.layouts:
            ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=4)
            ws.cell(row, 1, f"Room No: {layout.classroom.room_name}").font = BOLD_FONT
            row += 1
            row = self._write_summary_table(ws, row, layout)
            row += 1
        _set_widths(ws, [30, 12, 12, 10])

    def _write_summary_table(self, ws: Worksheet, row: int, layout: PrintLayout) -> int:
        for col, header in enumerate(["Subject", "From", "To", "Total"], start=1):
            cell = ws.cell(row, col, header)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = CENTER_ALIGN
        row += 1
        for summary in layout.summary:
            subject, _ = split_summary_label(summary.paper)
            values = [subject, roll_suffix(summary.from_roll), roll_suffix(summary.to_roll), summary.total]
            for col, value in enumerate(values, start=1):
                ws.cell(row, col, value).border = THIN_BORDER
            row += 1
        ws.cell(row, 1, "Total").font = BOLD_FONT
        ws.cell(row, 4, sum(s.total for s in layout.summary)).font = BOLD_FONT
        return row + 1

    def _write_displaying_sheet(self, ws: Worksheet):
        row = 1
        for line in self._banner_lines() + [f"Date: {self.header.get('date', '')}"]:
            ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=5)
            cell = ws.cell(row, 1, line)
            cell.font = BOLD_FONT
            cell.alignment = CENTER_ALIGN
            row += 1
        row += 1

        for col, header in enumerate(["Room", "Paper/Subject", "Branch-Semester",
                                      "Roll Number Range", "Total Students"], start=1):
            cell = ws.cell(row, col, header)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = CENTER_ALIGN
        row += 1

        for layout in self.layouts:
            first_row = row
            for summary in layout.summary:
                paper, branch_semester = split_summary_label(summary.paper)
                values = [
                    layout.classroom.room_name if row == first_row else "",
                    paper,
                    branch_semester,
                    f"{roll_suffix(summary.from_roll)} to {roll_suffix(summary.to_roll)}",
                    summary.total,
                ]
                for col, value in enumerate(values, start=1):
                    ws.cell(row, col, value).border = THIN_BORDER
                row += 1
            if row - first_row > 1:
                ws.merge_cells(start_row=first_row, start_column=1, end_row=row - 1, end_column=1)
                ws.cell(first_row, 1).alignment = CENTER_ALIGN
            row += 1
        _set_widths(ws, [12, 30, 20, 20, 15])

    def _write_room_sheet(self, ws: Worksheet, layout: PrintLayout):
        room_name = layout.classroom.room_name
        row = 1
        for line in self._banner_lines():
            ws.cell(row, 1, line).font = BOLD_FONT
            row += 1
        ws.cell(row, 1, "Date")
        ws.cell(row, 2, self.header.get("date", ""))
        row += 1
        ws.cell(row, 1, "Room No.").font = BOLD_FONT
        ws.cell(row, 2, room_name).font = BOLD_FONT
        row += 2

        groups = sorted({f"{a.branch}-{a.semester_section}"
                         for sub_column in layout.columns for a in sub_column if a is not None})
        if groups:
            ws.cell(row, 1, "Branch-Semester Groups:")
            ws.cell(row, 2, " | ".join(groups))
            row += 2

        row = self._write_summary_table(ws, row, layout)
        row += 1

        columns = len(layout.benches_per_column)
        for col in range(1, columns + 1):
            cell = ws.cell(row, col, f"Column {col}")
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = CENTER_ALIGN
        row += 1
        for r in range(layout.max_rows_in_column):
            for col in range(columns):
                side1 = layout.columns[col * 2][r]
                side2 = layout.columns[col * 2 + 1][r]
                cell = ws.cell(row, col + 1, f"{seat_cell(side1)} | {seat_cell(side2)}")
                cell.alignment = CENTER_ALIGN
                cell.border = THIN_BORDER
            row += 1
        _set_widths(ws, [24] * max(columns, 4))


def _sheet_title(room_name: str, used: Set[str]) -> str:
    base = re.sub(r"[\[\]:*?/\\]", "_", room_name).strip() or "Room"
    base = base[:MAX_SHEET_TITLE]
    title = base
    n = 2
    while title in used:
        suffix = f" ({n})"
        title = base[:MAX_SHEET_TITLE - len(suffix)] + suffix
        n += 1
    return title


def _set_widths(ws: Worksheet, widths: List[int]):
    for col, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(col)].width = width
