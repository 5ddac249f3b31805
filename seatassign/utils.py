"""
seatassign/utils.py

Roll-number keys, conflict classes and the engine's constants.
"""
import re
from typing import Dict, List, Tuple

# --- Seating Constants ---
SEATS_PER_DESK: int = 2
MAX_COLUMNS: int = 8
DEFAULT_NUMBER_OF_COLUMNS: int = 4  # older room files have no column count
SIDE_1: str = "Side 1"
SIDE_2: str = "Side 2"
SIDES: List[str] = [SIDE_1, SIDE_2]

# --- Allocation Constants ---
DEFAULT_STRATEGY: str = "sticky_pair"
DEFAULT_SEED: int = 2024
# Rooms are filled in this order of column count; anything else comes last.
ROOM_COLUMN_PREFERENCE: Dict[int, int] = {4: 0, 5: 1}
OTHER_ROOM_PREFERENCE: int = 2

# --- Feasibility Constants ---
HIGH_UTILISATION_PERCENT: float = 90.0

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


def roll_suffix(roll_number: str) -> str:
    """Last '-' separated part of a roll number ("CT-3-45" -> "45")."""
    return roll_number.split("-")[-1]


def roll_numeric_key(roll_number: str) -> int:
    """Numeric ordinal of a roll number; non-numeric suffixes sort as 0."""
    match = _LEADING_INT.match(roll_suffix(roll_number))
    if not match:
        return 0
    return int(match.group(0))


def roll_sort_key(roll_number: str) -> Tuple[int, str]:
    return (roll_numeric_key(roll_number), roll_number)


def semester_number(semester_section: str) -> str:
    """'3-A' -> '3', '5' -> '5', '' -> '0'."""
    semester = semester_section.split("-")[0].strip()
    return semester or "0"


def conflict_class(paper: str, semester_section: str) -> str:
    return f"{paper}-{semester_number(semester_section)}"


def room_preference(number_of_columns: int) -> int:
    return ROOM_COLUMN_PREFERENCE.get(number_of_columns, OTHER_ROOM_PREFERENCE)


def parse_desk_counts(value: str) -> List[int]:
    """
    Parses a desks-per-column string such as "8,7,7,8" (or "8-7-7-8").
    Blank entries are ignored; anything else that is not an integer raises ValueError.
    """
    parts = re.split(r"[,;\-\s]+", value.strip())
    return [int(p) for p in parts if p]
