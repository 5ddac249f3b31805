"""
seatassign/models.py

Data models for classrooms, students and their seat assignments.
Records are exchanged as camelCase dicts (to_dict / from_dict).
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from . import utils


@dataclass(frozen=True)
class Student:
    """
    One exam candidate. Roll numbers look like "<branch>-<semester>-<ordinal>".
    """
    roll_number: str
    paper: str
    branch: str
    semester_section: str

    @property
    def semester(self) -> str:
        return utils.semester_number(self.semester_section)

    @property
    def conflict_class(self) -> str:
        return utils.conflict_class(self.paper, self.semester_section)

    def to_dict(self) -> Dict[str, str]:
        return {
            "rollNumber": self.roll_number,
            "paper": self.paper,
            "branch": self.branch,
            "semesterSection": self.semester_section,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Student":
        return cls(
            roll_number=str(data["rollNumber"]).strip(),
            paper=str(data["paper"]).strip(),
            branch=str(data["branch"]).strip(),
            semester_section=str(data["semesterSection"]).strip(),
        )


@dataclass
class Classroom:
    """
    An exam room of two-seat desks laid out in columns.
    desks_per_column, when given, overrides the even split of the capacity.
    """
    room_name: str
    total_capacity: int
    number_of_columns: int
    desks_per_column: Optional[List[int]] = None

    def __post_init__(self):
        self.room_name = self.room_name.strip()
        if self.desks_per_column is not None:
            self.desks_per_column = [int(d) for d in self.desks_per_column]

    @classmethod
    def from_desks_per_column(cls, room_name: str, desks_per_column: List[int]) -> "Classroom":
        """Builds a room whose capacity is implied by its desk counts."""
        desks = [int(d) for d in desks_per_column]
        return cls(
            room_name=room_name,
            total_capacity=sum(desks) * utils.SEATS_PER_DESK,
            number_of_columns=len(desks),
            desks_per_column=desks,
        )

    @property
    def physical_seats(self) -> Optional[int]:
        if self.desks_per_column is None:
            return None
        return sum(self.desks_per_column) * utils.SEATS_PER_DESK

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "roomName": self.room_name,
            "totalCapacity": self.total_capacity,
            "numberOfColumns": self.number_of_columns,
        }
        if self.desks_per_column is not None:
            data["desksPerColumn"] = list(self.desks_per_column)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Classroom":
        desks = data.get("desksPerColumn")
        return cls(
            room_name=str(data["roomName"]),
            total_capacity=int(data["totalCapacity"]),
            number_of_columns=int(data["numberOfColumns"]),
            desks_per_column=list(desks) if desks is not None else None,
        )


@dataclass
class Desk:
    """A two-seat desk; derived from the room geometry on every run."""
    room_name: str
    desk_number: int
    column: int
    row: int
    side1: Optional[Student] = None
    side2: Optional[Student] = None

    def occupants(self) -> List[Student]:
        return [s for s in (self.side1, self.side2) if s is not None]


@dataclass(frozen=True)
class Assignment:
    student: Student
    room_name: str
    desk_number: int
    side: str
    serial_number: int

    @property
    def roll_number(self) -> str:
        return self.student.roll_number

    @property
    def paper(self) -> str:
        return self.student.paper

    @property
    def branch(self) -> str:
        return self.student.branch

    @property
    def semester_section(self) -> str:
        return self.student.semester_section

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = self.student.to_dict()
        data["assignment"] = {
            "roomName": self.room_name,
            "deskNumber": self.desk_number,
            "side": self.side,
            "serialNumber": self.serial_number,
        }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assignment":
        seat = data["assignment"]
        side = str(seat["side"])
        if side not in utils.SIDES:
            raise ValueError(f"Unknown desk side '{side}' for {data.get('rollNumber')}")
        return cls(
            student=Student.from_dict(data),
            room_name=str(seat["roomName"]),
            desk_number=int(seat["deskNumber"]),
            side=side,
            serial_number=int(seat["serialNumber"]),
        )


@dataclass
class Allocation:
    """Result of one allocation run."""
    assignments: List[Assignment] = field(default_factory=list)
    unassigned_students: List[Student] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    strategy: str = utils.DEFAULT_STRATEGY

    def for_room(self, room_name: str) -> List[Assignment]:
        return [a for a in self.assignments if a.room_name == room_name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assignments": [a.to_dict() for a in self.assignments],
            "unassignedStudents": [s.to_dict() for s in self.unassigned_students],
            "warnings": list(self.warnings),
            "strategy": self.strategy,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Allocation":
        return cls(
            assignments=[Assignment.from_dict(a) for a in data.get("assignments", [])],
            unassigned_students=[Student.from_dict(s) for s in data.get("unassignedStudents", [])],
            warnings=[str(w) for w in data.get("warnings", [])],
            strategy=str(data.get("strategy", utils.DEFAULT_STRATEGY)),
        )


@dataclass
class ValidationStatistics:
    total_assigned: int = 0
    same_desk_violations: int = 0
    adjacent_same_paper_count: int = 0
    paper_distribution: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAssigned": self.total_assigned,
            "sameDeskViolations": self.same_desk_violations,
            "adjacentSamePaperCount": self.adjacent_same_paper_count,
            "paperDistribution": dict(self.paper_distribution),
        }


@dataclass
class ValidationReport:
    is_valid: bool
    violations: List[str]
    statistics: ValidationStatistics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "violations": list(self.violations),
            "statistics": self.statistics.to_dict(),
        }


@dataclass
class FeasibilityReport:
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "issues": list(self.issues), "warnings": list(self.warnings)}


@dataclass
class SummaryRow:
    """One roll-range line of a room's chart: "<paper> (<branch> - <semesterSection>)"."""
    paper: str
    from_roll: str
    to_roll: str
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {"paper": self.paper, "from": self.from_roll, "to": self.to_roll, "total": self.total}


@dataclass
class PrintLayout:
    classroom: Classroom
    summary: List[SummaryRow]
    columns: List[List[Optional[Assignment]]]
    max_rows_in_column: int
    benches_per_column: List[int] = field(default_factory=list)
    column_groups: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "classroom": self.classroom.to_dict(),
            "summary": [row.to_dict() for row in self.summary],
            "columns": [
                [cell.to_dict() if cell is not None else None for cell in sub_column]
                for sub_column in self.columns
            ],
            "columnGroups": list(self.column_groups),
            "benchesPerColumn": list(self.benches_per_column),
            "maxRowsInColumn": self.max_rows_in_column,
        }
