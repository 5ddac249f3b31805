"""
seatassign/layout.py

Desk geometry of a classroom. Desks are numbered column-major from 1:
column 1 front to back, then column 2, and so on.
"""

import logging
from typing import List, Optional, Tuple
from .models import Classroom, Desk
from .errors import InvalidConfiguration
from . import utils

logger = logging.getLogger(__name__)


def benches_per_column(classroom: Classroom) -> List[int]:
    """
    Number of desks in each column.

    An explicit desks_per_column is used verbatim when its length matches the
    column count, even if its seats do not add up to total_capacity. Otherwise
    ceil(capacity / 2) desks are spread evenly, extra desks going to the
    leftmost columns.
    """
    columns = classroom.number_of_columns
    capacity = classroom.total_capacity
    if columns < 1:
        raise InvalidConfiguration(f"number of columns must be at least 1, got {columns}", classroom.room_name)
    if capacity < 1:
        raise InvalidConfiguration(f"capacity must be at least 1, got {capacity}", classroom.room_name)

    desks = classroom.desks_per_column
    if desks is not None and len(desks) == columns:
        return list(desks)

    benches = -(-capacity // utils.SEATS_PER_DESK)
    base, remainder = divmod(benches, columns)
    return [base + 1 if i < remainder else base for i in range(columns)]


def check_classroom(classroom: Classroom) -> None:
    """Raises InvalidConfiguration if the room must not be used for allocation."""
    name = classroom.room_name
    if not name:
        raise InvalidConfiguration("room name is required")
    if not 1 <= classroom.number_of_columns <= utils.MAX_COLUMNS:
        raise InvalidConfiguration(
            f"number of columns must be between 1 and {utils.MAX_COLUMNS}, got {classroom.number_of_columns}",
            name,
        )
    if classroom.total_capacity < 1:
        raise InvalidConfiguration(f"capacity must be at least 1, got {classroom.total_capacity}", name)
    desks = classroom.desks_per_column
    if desks is not None:
        if len(desks) != classroom.number_of_columns:
            raise InvalidConfiguration(
                f"expected {classroom.number_of_columns} desk counts, got {len(desks)}: {desks}", name
            )
        if any(d < 1 for d in desks):
            raise InvalidConfiguration(f"every column needs at least one desk: {desks}", name)


def seat_limit(classroom: Classroom) -> int:
    """How many seats a run may fill: the declared capacity, capped by the physical desks."""
    physical = sum(benches_per_column(classroom)) * utils.SEATS_PER_DESK
    return min(classroom.total_capacity, physical)


def desk_position(benches: List[int], desk_number: int) -> Optional[Tuple[int, int]]:
    """(column, row), both 1-based, of a desk number; None if the room has no such desk."""
    if desk_number < 1:
        return None
    offset = 0
    for column, rows in enumerate(benches, start=1):
        if desk_number <= offset + rows:
            return column, desk_number - offset
        offset += rows
    return None


def build_desks(classroom: Classroom) -> List[Desk]:
    benches = benches_per_column(classroom)
    logger.debug("%s: benches per column %s", classroom.room_name, benches)
    desks = []
    desk_number = 1
    for column, rows in enumerate(benches, start=1):
        for row in range(1, rows + 1):
            desks.append(Desk(classroom.room_name, desk_number, column, row))
            desk_number += 1
    return desks
