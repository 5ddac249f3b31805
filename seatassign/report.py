"""
seatassign/report.py

Turns a room's assignments into a printable seat chart: a roll-range summary
and a grid of two sub-columns (Side 1, Side 2) per physical column.

The desk geometry is recomputed here from the classroom alone, so charts can
be drawn for assignments that came from anywhere, e.g. a reloaded snapshot.
"""

import logging
from typing import Dict, List, Optional, Tuple
from .models import Assignment, Classroom, PrintLayout, SummaryRow
from .layout import benches_per_column, desk_position
from . import utils

logger = logging.getLogger(__name__)

COLUMN_GROUP_LABEL = "Roll No"


def summary_label(paper: str, branch: str, semester_section: str) -> str:
    return f"{paper} ({branch} - {semester_section})"


def build_summary(assignments: List[Assignment]) -> List[SummaryRow]:
    groups: Dict[Tuple[str, str, str], List[Assignment]] = {}
    for assignment in assignments:
        key = (assignment.paper, assignment.branch, assignment.semester_section)
        groups.setdefault(key, []).append(assignment)

    summary = []
    for (paper, branch, semester_section), group in groups.items():
        rolls = sorted((a.roll_number for a in group), key=utils.roll_numeric_key)
        summary.append(SummaryRow(
            paper=summary_label(paper, branch, semester_section),
            from_roll=rolls[0],
            to_roll=rolls[-1],
            total=len(group),
        ))
    summary.sort(key=lambda row: row.paper)
    return summary


def layout_for_print(classroom: Classroom, assignments: List[Assignment]) -> PrintLayout:
    """
    Lays out one room. Assignments for other rooms are ignored.
    """
    in_room = sorted(
        (a for a in assignments if a.room_name == classroom.room_name),
        key=lambda a: a.serial_number,
    )
    summary = build_summary(in_room)
    benches = benches_per_column(classroom)

    desk_map: Dict[int, List[Optional[Assignment]]] = {}
    for assignment in in_room:
        entry = desk_map.setdefault(assignment.desk_number, [None, None])
        entry[0 if assignment.side == utils.SIDE_1 else 1] = assignment

    columns: List[List[Optional[Assignment]]] = []
    column_groups: List[str] = []
    max_rows = 0
    offset = 0
    for rows in benches:
        max_rows = max(max_rows, rows)
        left: List[Optional[Assignment]] = []
        right: List[Optional[Assignment]] = []
        for row in range(1, rows + 1):
            side1, side2 = desk_map.get(offset + row, [None, None])
            left.append(side1)
            right.append(side2)
        columns.extend([left, right])
        column_groups.extend([COLUMN_GROUP_LABEL, COLUMN_GROUP_LABEL])
        offset += rows

    outside = [n for n in desk_map if desk_position(benches, n) is None]
    if outside:
        logger.warning("%s: desks %s are outside the room layout and were left off the chart",
                       classroom.room_name, sorted(outside))

    for sub_column in columns:
        sub_column.extend([None] * (max_rows - len(sub_column)))

    return PrintLayout(
        classroom=classroom,
        summary=summary,
        columns=columns,
        max_rows_in_column=max_rows,
        benches_per_column=benches,
        column_groups=column_groups,
    )


def generate_print_data(classrooms: List[Classroom], assignments: List[Assignment]) -> List[PrintLayout]:
    """Charts for every room that has at least one assignment, in the given room order."""
    layouts = []
    for classroom in classrooms:
        if any(a.room_name == classroom.room_name for a in assignments):
            layouts.append(layout_for_print(classroom, assignments))
    return layouts


def seat_cell(assignment: Optional[Assignment]) -> str:
    """Chart cell text: "<serial>. <roll suffix>", empty for a free seat."""
    if assignment is None:
        return ""
    return f"{assignment.serial_number}. {utils.roll_suffix(assignment.roll_number)}"


def split_summary_label(label: str) -> Tuple[str, str]:
    """"DBMS (CT - 3-A)" -> ("DBMS", "CT - 3-A")."""
    if label.endswith(")") and " (" in label:
        paper, _, rest = label.rpartition(" (")
        return paper.strip(), rest[:-1].strip()
    return label, ""
