"""
main.py

Main entry point for exam seat allocation.
Reads the rooms and students in data/, seats the students, checks the
result and writes the seat charts and a snapshot to output/.
"""

import os
import sys
import logging
from datetime import datetime
from typing import Dict, Optional
from seatassign import utils
from seatassign.data_loader import load_classrooms, load_students, save_snapshot
from seatassign.allocator import allocate
from seatassign.validator import check_feasibility, validate
from seatassign.report import generate_print_data
from seatassign.excel_exporter import SeatChartExporter

# --- Configuration ---
DATA_DIR = "data"
OUTPUT_DIR = "output"
CLASSROOM_FILE = os.path.join(DATA_DIR, "classrooms.csv")
STUDENT_FILE = os.path.join(DATA_DIR, "students.csv")
CHART_FILE_NAME = "Seating_Chart.xlsx"
SNAPSHOT_FILE_NAME = "snapshot.json"
STRATEGY = utils.DEFAULT_STRATEGY

CHART_HEADER: Dict[str, str] = {
    "institution": "",
    "department": "",
    "title": "Seating Arrangement",
}


def run(classroom_file: str = CLASSROOM_FILE,
        student_file: str = STUDENT_FILE,
        output_dir: str = OUTPUT_DIR,
        strategy: str = STRATEGY,
        header: Optional[Dict[str, str]] = None) -> int:
    """Runs one allocation end to end. Returns a process exit code."""
    print("=" * 90)
    print("EXAM SEAT ALLOCATION".center(90))
    print("=" * 90)

    print("\nLoading data...")
    classrooms = load_classrooms(classroom_file)
    students = load_students(student_file)
    print(f"  Rooms: {len(classrooms)}")
    print(f"  Students: {len(students)}")

    if not classrooms:
        print(f"\nNo classrooms found! Please create {classroom_file}")
        return 1
    if not students:
        print(f"\nNo students found! Please create {student_file}")
        return 1

    feasibility = check_feasibility(classrooms, students)
    for warning in feasibility.warnings:
        print(f"  WARNING: {warning}")
    for issue in feasibility.issues:
        print(f"  ISSUE: {issue}")

    print(f"\nAllocating seats ({strategy})...")
    allocation = allocate(classrooms, students, strategy=strategy)
    report = validate(allocation, students)
    for warning in allocation.warnings:
        print(f"  WARNING: {warning}")
    if not allocation.assignments:
        print("\nNobody was seated.")
        return 1

    for classroom in classrooms:
        filled = len(allocation.for_room(classroom.room_name))
        print(f"  {classroom.room_name}: {filled} / {classroom.total_capacity}")
    print(f"  Seated: {len(allocation.assignments)}  Unassigned: {len(allocation.unassigned_students)}")
    print(f"  Same-desk violations: {report.statistics.same_desk_violations}")
    print(f"  Adjacent same-paper pairs: {report.statistics.adjacent_same_paper_count}")

    if allocation.unassigned_students:
        print("\nUnassigned students:")
        for student in allocation.unassigned_students:
            print(f"  - {student.roll_number} ({student.paper})")

    if not report.is_valid:
        for violation in report.violations:
            print(f"  - {violation}")
        return 1

    os.makedirs(output_dir, exist_ok=True)
    snapshot_file = os.path.join(output_dir, SNAPSHOT_FILE_NAME)
    save_snapshot(snapshot_file, classrooms, students, allocation)

    layouts = generate_print_data(classrooms, allocation.assignments)
    if layouts:
        chart_header = dict(header if header is not None else CHART_HEADER)
        chart_header.setdefault("date", datetime.now().strftime("%d.%m.%Y"))
        chart_file = os.path.join(output_dir, CHART_FILE_NAME)
        SeatChartExporter(layouts, chart_header).export(chart_file)
        print(f"\nExported: {chart_file}")
    print(f"Snapshot: {snapshot_file}")

    print("\n" + "=" * 90)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(run())
