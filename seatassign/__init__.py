"""
seatassign

Exam seat allocation: two-seat desks, no two students of the same paper and
semester on one desk, and printable seat charts.
"""

from .models import Allocation, Assignment, Classroom, PrintLayout, Student, ValidationReport
from .errors import DataFormatError, InvalidConfiguration
from .allocator import STRATEGIES, SeatAllocator, allocate
from .validator import check_feasibility, validate
from .report import generate_print_data, layout_for_print

__all__ = [
    "Allocation", "Assignment", "Classroom", "PrintLayout", "Student", "ValidationReport",
    "DataFormatError", "InvalidConfiguration",
    "STRATEGIES", "SeatAllocator", "allocate",
    "check_feasibility", "validate",
    "generate_print_data", "layout_for_print",
]
