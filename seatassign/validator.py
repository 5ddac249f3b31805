"""
seatassign/validator.py

Read-only checks around an allocation run:
    validate           re-scans a finished allocation for same-desk conflicts
    check_feasibility  looks at the inputs before a run
"""

import logging
from typing import Dict, List, Tuple
from .models import (Allocation, Assignment, Classroom, FeasibilityReport, Student,
                     ValidationReport, ValidationStatistics)
from .errors import InvalidConfiguration
from .layout import check_classroom
from . import utils

logger = logging.getLogger(__name__)


def validate(allocation: Allocation, students: List[Student]) -> ValidationReport:
    """
    Checks that no desk holds two students of the same conflict class.
    The allocation is never modified.
    """
    by_roll = {s.roll_number: s for s in students}
    desks = _group_by_desk(allocation.assignments)

    violations = _check_same_desk(desks, by_roll)
    statistics = ValidationStatistics(
        total_assigned=len(allocation.assignments),
        same_desk_violations=len(violations),
        adjacent_same_paper_count=_count_adjacent_same_paper(desks),
        paper_distribution=_paper_distribution(allocation.assignments),
    )
    if violations:
        logger.error("Allocation has %d same-desk violations", len(violations))
    return ValidationReport(is_valid=not violations, violations=violations, statistics=statistics)


def _group_by_desk(assignments: List[Assignment]) -> Dict[Tuple[str, int], List[Assignment]]:
    desks: Dict[Tuple[str, int], List[Assignment]] = {}
    for assignment in assignments:
        desks.setdefault((assignment.room_name, assignment.desk_number), []).append(assignment)
    return desks


def _check_same_desk(desks: Dict[Tuple[str, int], List[Assignment]],
                     by_roll: Dict[str, Student]) -> List[str]:
    violations = []
    for (room_name, desk_number), occupants in desks.items():
        for i in range(len(occupants)):
            for j in range(i + 1, len(occupants)):
                first = by_roll.get(occupants[i].roll_number, occupants[i].student)
                second = by_roll.get(occupants[j].roll_number, occupants[j].student)
                if first.conflict_class == second.conflict_class:
                    violations.append(
                        f"Same class students on desk {room_name}-{desk_number}: "
                        f"{first.roll_number} and {second.roll_number}"
                    )
    return violations


def _count_adjacent_same_paper(desks: Dict[Tuple[str, int], List[Assignment]]) -> int:
    """Advisory: occupant pairs on consecutive occupied desks of a room that share a paper."""
    rooms: Dict[str, Dict[int, List[Assignment]]] = {}
    for (room_name, desk_number), occupants in desks.items():
        rooms.setdefault(room_name, {})[desk_number] = occupants

    count = 0
    for room_desks in rooms.values():
        numbers = sorted(room_desks)
        for current, following in zip(numbers, numbers[1:]):
            for a in room_desks[current]:
                for b in room_desks[following]:
                    if a.paper == b.paper:
                        count += 1
    return count


def _paper_distribution(assignments: List[Assignment]) -> Dict[str, int]:
    distribution: Dict[str, int] = {}
    for assignment in assignments:
        distribution[assignment.paper] = distribution.get(assignment.paper, 0) + 1
    return distribution


def check_feasibility(classrooms: List[Classroom], students: List[Student]) -> FeasibilityReport:
    """
    Runs all pre-allocation checks. Issues block a useful run; warnings do not.
    """
    report = FeasibilityReport()
    usable = _check_rooms(classrooms, report)
    _check_students(students, report)
    _check_capacity(usable, students, report)
    return report


def _check_rooms(classrooms: List[Classroom], report: FeasibilityReport) -> List[Classroom]:
    usable = []
    seen = set()
    for classroom in classrooms:
        try:
            check_classroom(classroom)
        except InvalidConfiguration as e:
            report.issues.append(f"Invalid room configuration: {e}")
            continue
        if classroom.room_name in seen:
            report.issues.append(f"Duplicate room name: {classroom.room_name}")
            continue
        seen.add(classroom.room_name)
        usable.append(classroom)

        physical = classroom.physical_seats
        if physical is not None and physical != classroom.total_capacity:
            report.warnings.append(
                f"{classroom.room_name}: capacity {classroom.total_capacity} differs from the "
                f"{physical} seats of its desks {classroom.desks_per_column}; "
                f"at most {min(physical, classroom.total_capacity)} will be filled."
            )
    return usable


def _check_students(students: List[Student], report: FeasibilityReport):
    seen = set()
    duplicates = []
    for student in students:
        if student.roll_number in seen and student.roll_number not in duplicates:
            duplicates.append(student.roll_number)
        seen.add(student.roll_number)
    if duplicates:
        report.issues.append(f"Duplicate roll numbers: {', '.join(duplicates)}")

    if len({s.conflict_class for s in students}) == 1 and len(students) > 1:
        report.warnings.append(
            "All students share one paper and semester; only one side of each desk can be used."
        )


def _check_capacity(classrooms: List[Classroom], students: List[Student], report: FeasibilityReport):
    total_capacity = sum(c.total_capacity for c in classrooms)
    total_students = len(students)

    if total_capacity < total_students:
        report.issues.append(
            f"Insufficient room capacity! Need {total_students} seats, have {total_capacity}. "
            f"Add {total_students - total_capacity} more seats."
        )
    elif total_capacity:
        utilisation = (total_students / total_capacity) * 100
        if utilisation > utils.HIGH_UTILISATION_PERCENT:
            report.warnings.append(
                f"High room utilisation ({utilisation:.1f}%). Some students may stay unseated "
                "if a few papers dominate."
            )
