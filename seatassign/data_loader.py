"""
seatassign/data_loader.py

Reads students and classrooms from CSV, Excel or JSON files and keeps
room configurations and snapshots as JSON.

Expected student columns:   roll_number, paper, branch, semester_section
Expected classroom columns: room_name, total_capacity, number_of_columns, desks_per_column
(common spellings such as "Roll No", "Subject", "Room", "Capacity", "Cols" are accepted)
"""

import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple
import pandas as pd
from .models import Allocation, Classroom, Student
from .errors import DataFormatError
from . import utils

logger = logging.getLogger(__name__)

STUDENT_COLUMNS: Dict[str, List[str]] = {
    "roll_number": ["roll_number", "rollnumber", "roll", "rollno", "roll_no", "student_id"],
    "paper": ["paper", "subject", "course", "course_code"],
    "branch": ["branch", "dept", "department"],
    "semester_section": ["semester_section", "semestersection", "semester", "sem", "sem_section"],
}

CLASSROOM_COLUMNS: Dict[str, List[str]] = {
    "room_name": ["room_name", "roomname", "room", "room_id", "room_no", "room_number"],
    "total_capacity": ["total_capacity", "totalcapacity", "capacity", "seats"],
    "number_of_columns": ["number_of_columns", "numberofcolumns", "columns", "cols"],
    "desks_per_column": ["desks_per_column", "deskspercolumn", "desks", "benches_per_column"],
}

TABLE_EXTENSIONS = {".csv", ".xlsx", ".xls"}


def _read_table(filepath: str) -> Optional[pd.DataFrame]:
    extension = os.path.splitext(filepath)[1].lower()
    if extension not in TABLE_EXTENSIONS:
        raise DataFormatError(f"Unsupported file type '{extension}' for {filepath}")
    try:
        if extension == ".csv":
            df = pd.read_csv(filepath, dtype=str, encoding="utf-8-sig")
        else:
            df = pd.read_excel(filepath, dtype=str)
    except FileNotFoundError:
        logger.warning("File not found: %s", filepath)
        return None
    return df.fillna("")


def _map_columns(df: pd.DataFrame, mapping: Dict[str, List[str]], required: Iterable[str]) -> pd.DataFrame:
    """Renames the first matching alias of every known column to its standard name."""
    df.columns = df.columns.str.strip().str.lower().str.replace(" ", "_")
    renames = {}
    for standard, aliases in mapping.items():
        for alias in aliases:
            if alias in df.columns:
                renames[alias] = standard
                break
    df = df.rename(columns=renames)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataFormatError(f"Missing columns: {missing}")
    return df


def _read_json(filepath: str) -> Optional[Any]:
    try:
        with open(filepath, mode="r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning("File not found: %s", filepath)
        return None
    except json.JSONDecodeError as e:
        raise DataFormatError(f"{filepath} is not valid JSON: {e}") from e


def load_students(filepath: str) -> List[Student]:
    """
    Loads students from a CSV/Excel table or a JSON list of student records.
    Papers and semester sections are upper-cased; rows with blanks or a
    repeated roll number are skipped with a warning.
    """
    if filepath.lower().endswith(".json"):
        records = _read_json(filepath)
        if records is None:
            return []
        if not isinstance(records, list):
            raise DataFormatError(f"{filepath} must contain a list of students")
        # null fields count as blank
        rows = [
            {
                "roll_number": r.get("rollNumber") or "",
                "paper": r.get("paper") or "",
                "branch": r.get("branch") or "",
                "semester_section": r.get("semesterSection") or "",
            }
            for r in records if isinstance(r, dict)
        ]
    else:
        df = _read_table(filepath)
        if df is None:
            return []
        df = _map_columns(df, STUDENT_COLUMNS, STUDENT_COLUMNS.keys())
        rows = df.to_dict("records")

    students = []
    seen = set()
    for row in rows:
        roll = str(row["roll_number"]).strip()
        paper = str(row["paper"]).strip().upper()
        branch = str(row["branch"]).strip()
        semester_section = str(row["semester_section"]).strip().upper()
        if not (roll and paper and branch and semester_section):
            logger.warning("Skipping incomplete student row: %s", row)
            continue
        if roll in seen:
            logger.warning("Skipping duplicate roll number %s", roll)
            continue
        seen.add(roll)
        students.append(Student(roll, paper, branch, semester_section))

    logger.info("Loaded %d students from %s", len(students), filepath)
    return students


def _classroom_from_row(row: Dict[str, Any]) -> Optional[Classroom]:
    name = str(row.get("room_name", "")).strip()
    if not name:
        return None
    desks_text = str(row.get("desks_per_column", "")).strip()
    desks = utils.parse_desk_counts(desks_text) if desks_text else None
    capacity_text = str(row.get("total_capacity", "")).strip()
    columns_text = str(row.get("number_of_columns", "")).strip()

    if not capacity_text:
        if not desks:
            raise ValueError("needs a capacity or desks per column")
        return Classroom.from_desks_per_column(name, desks)

    columns = int(float(columns_text)) if columns_text else (len(desks) if desks else utils.DEFAULT_NUMBER_OF_COLUMNS)
    return Classroom(
        room_name=name,
        total_capacity=int(float(capacity_text)),
        number_of_columns=columns,
        desks_per_column=desks,
    )


def load_classrooms(filepath: str) -> List[Classroom]:
    """
    Loads classrooms from a CSV/Excel table or a saved JSON configuration.
    desks_per_column is written as "8,7,7,8" in tables.
    """
    if filepath.lower().endswith(".json"):
        return load_classrooms_json(filepath)

    df = _read_table(filepath)
    if df is None:
        return []
    df = _map_columns(df, CLASSROOM_COLUMNS, ["room_name"])

    classrooms = []
    for row in df.to_dict("records"):
        try:
            classroom = _classroom_from_row(row)
        except (ValueError, TypeError) as e:
            logger.warning("Skipping invalid classroom row %s: %s", row, e)
            continue
        if classroom is not None:
            classrooms.append(classroom)

    logger.info("Loaded %d classrooms from %s", len(classrooms), filepath)
    return classrooms


def load_classrooms_json(filepath: str) -> List[Classroom]:
    """Reads a configuration written by save_classrooms_json."""
    records = _read_json(filepath)
    if records is None:
        return []
    if not isinstance(records, list):
        raise DataFormatError(f"{filepath} is not a valid configuration file")

    classrooms = []
    for record in records:
        if not isinstance(record, dict) or "roomName" not in record or "totalCapacity" not in record:
            raise DataFormatError(f"{filepath} is not a valid configuration file")
        record = dict(record)
        record.setdefault("numberOfColumns", utils.DEFAULT_NUMBER_OF_COLUMNS)
        try:
            classrooms.append(Classroom.from_dict(record))
        except (ValueError, TypeError) as e:
            logger.warning("Skipping invalid classroom %s: %s", record, e)
    return classrooms


def save_classrooms_json(classrooms: List[Classroom], filepath: str):
    if not classrooms:
        raise ValueError("Add at least one classroom before saving.")
    _write_json(filepath, [c.to_dict() for c in classrooms])


def expand_roll_range(branch: str, semester_section: str, paper: str,
                      start: int, end: int, existing: Iterable[Student] = ()) -> List[Student]:
    """
    Students "<branch>-<semester>-<n>" for n in start..end, skipping roll
    numbers already present in `existing`.
    """
    branch = branch.strip()
    paper = paper.strip().upper()
    semester_section = semester_section.strip().upper()
    if not (branch and paper and semester_section):
        raise ValueError("Please provide branch, paper and semester for the range.")
    if start > end:
        raise ValueError(f"Invalid range {start}..{end}")

    semester = utils.semester_number(semester_section)
    taken = {s.roll_number for s in existing}
    students = []
    for n in range(start, end + 1):
        roll = f"{branch}-{semester}-{n}"
        if roll not in taken:
            students.append(Student(roll, paper, branch, semester_section))
    return students


def save_snapshot(filepath: str, classrooms: List[Classroom], students: List[Student],
                  allocation: Optional[Allocation] = None):
    """Writes classrooms, students and (optionally) their allocation to one JSON file."""
    snapshot: Dict[str, Any] = {
        "classrooms": [c.to_dict() for c in classrooms],
        "students": [s.to_dict() for s in students],
    }
    if allocation is not None:
        snapshot["allocation"] = allocation.to_dict()
    _write_json(filepath, snapshot)


def load_snapshot(filepath: str) -> Tuple[List[Classroom], List[Student], Optional[Allocation]]:
    data = _read_json(filepath)
    if data is None:
        return [], [], None
    if not isinstance(data, dict):
        raise DataFormatError(f"{filepath} is not a snapshot file")
    try:
        classrooms = [Classroom.from_dict(c) for c in data.get("classrooms", [])]
        students = [Student.from_dict(s) for s in data.get("students", [])]
        allocation = Allocation.from_dict(data["allocation"]) if data.get("allocation") else None
    except (KeyError, TypeError, ValueError) as e:
        raise DataFormatError(f"{filepath} is not a snapshot file: {e}") from e
    return classrooms, students, allocation


def _write_json(filepath: str, data: Any):
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, mode="w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
