"""
seatassign/allocator.py

The seat allocation engine.

Students are grouped into conflict classes (paper + semester number). Two
students of the same conflict class are never placed on the same desk. Rooms
are filled in a fixed preference order (4-column rooms, then 5-column, then
the rest, ties by name) and every filled seat gets a room-local serial number
1..k in the order it was filled.

Strategies are selected by name:
    sticky_pair      (default) keeps two classes side by side down the columns
    branch_priority  fills each room from one branch, pairing its semesters
    shuffle          seeded random placement with rejection
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from .models import Allocation, Assignment, Classroom, Desk, Student
from .errors import InvalidConfiguration
from .layout import build_desks, check_classroom, seat_limit
from . import utils

logger = logging.getLogger(__name__)

Buckets = Dict[str, List[Student]]


@dataclass(frozen=True)
class Rotation:
    """
    The sticky pair: which conflict class sits on each side, and where the
    search for the next non-empty bucket resumes.
    """
    cursor: int = 0
    side1: Optional[str] = None
    side2: Optional[str] = None


def bucket_students(students: List[Student]) -> Buckets:
    """Groups students by conflict class, each bucket in roll-number order."""
    buckets: Buckets = {}
    for student in students:
        buckets.setdefault(student.conflict_class, []).append(student)
    for bucket in buckets.values():
        bucket.sort(key=lambda s: utils.roll_sort_key(s.roll_number))
    return buckets


def order_classrooms(classrooms: List[Classroom]) -> List[Classroom]:
    return sorted(classrooms, key=lambda c: (utils.room_preference(c.number_of_columns), c.room_name))


def _advance(keys: List[str], buckets: Buckets, cursor: int, exclude: Optional[str]) -> Tuple[Optional[str], int]:
    for step in range(len(keys)):
        index = (cursor + step) % len(keys)
        key = keys[index]
        if key != exclude and buckets.get(key):
            return key, (index + 1) % len(keys)
    return None, cursor


def next_pair(rotation: Rotation, keys: List[str], buckets: Buckets) -> Tuple[Optional[str], Optional[str], Rotation]:
    """
    Conflict classes for the next desk.

    A side keeps its class while that bucket has students. An emptied side
    takes the next non-empty bucket after the cursor that differs from the
    other side. When a single class is left, it goes to Side 1 and Side 2
    is None. Returns (side1_class, side2_class, new_rotation).
    """
    side1 = rotation.side1 if rotation.side1 is not None and buckets.get(rotation.side1) else None
    side2 = rotation.side2 if rotation.side2 is not None and buckets.get(rotation.side2) else None
    cursor = rotation.cursor

    if side1 is None:
        side1, cursor = _advance(keys, buckets, cursor, exclude=side2)
    if side2 is None:
        side2, cursor = _advance(keys, buckets, cursor, exclude=side1)
    if side1 is None and side2 is not None:
        side1, side2 = side2, None

    return side1, side2, Rotation(cursor, side1, side2)


def _occupant(desk: Desk, side: str) -> Optional[Student]:
    return desk.side1 if side == utils.SIDE_1 else desk.side2


def _partner(desk: Desk, side: str) -> Optional[Student]:
    return desk.side2 if side == utils.SIDE_1 else desk.side1


class _RoomFill:
    """Desks and serial counter of one room during a single run."""

    def __init__(self, classroom: Classroom):
        self.classroom = classroom
        self.limit = seat_limit(classroom)
        self.desks = build_desks(classroom)
        self.serial = 0
        self.assignments: List[Assignment] = []

    @property
    def full(self) -> bool:
        return self.serial >= self.limit

    def place(self, desk: Desk, side: str, student: Student):
        if _occupant(desk, side) is not None:
            raise ValueError(f"{self.classroom.room_name} desk {desk.desk_number} {side} is already taken")
        partner = _partner(desk, side)
        if partner is not None and partner.conflict_class == student.conflict_class:
            raise ValueError(
                f"{student.roll_number} and {partner.roll_number} share {student.conflict_class} "
                f"on {self.classroom.room_name} desk {desk.desk_number}"
            )
        if side == utils.SIDE_1:
            desk.side1 = student
        else:
            desk.side2 = student

    def record(self, desk: Desk, side: str, student: Student) -> Assignment:
        self.serial += 1
        assignment = Assignment(student, self.classroom.room_name, desk.desk_number, side, self.serial)
        self.assignments.append(assignment)
        return assignment

    def seat(self, desk: Desk, side: str, student: Student) -> Assignment:
        self.place(desk, side, student)
        return self.record(desk, side, student)

    def seats_in_order(self) -> List[Tuple[Desk, str]]:
        """Seats a run may use, in traversal order, cut off at the seat limit."""
        seats = [(desk, side) for desk in self.desks for side in utils.SIDES]
        return seats[:self.limit]


def _semester_key(semester: str) -> Tuple[int, str]:
    return (int(semester) if semester.isdigit() else 0, semester)


class SeatAllocator:
    """
    One allocation run over a fixed set of classrooms and students.
    Inputs are never mutated; all run state lives on this object.
    """

    def __init__(self,
                 classrooms: List[Classroom],
                 students: List[Student],
                 strategy: str = utils.DEFAULT_STRATEGY,
                 rng: Optional[random.Random] = None,
                 strict: bool = False):

        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown allocation strategy '{strategy}'. Choose one of: {', '.join(STRATEGIES)}")
        self.classrooms = list(classrooms)
        self.students = list(students)
        self.strategy = strategy
        self.rng = rng if rng is not None else random.Random(utils.DEFAULT_SEED)
        self.strict = strict
        self.warnings: List[str] = []

    def run(self) -> Allocation:
        rooms = self._usable_rooms()
        total_capacity = sum(r.total_capacity for r in rooms)

        if total_capacity < len(self.students):
            self._warn(
                f"Not enough capacity: {len(self.students)} students but only "
                f"{total_capacity} seats in {len(rooms)} rooms. Nobody was seated."
            )
            return Allocation([], list(self.students), list(self.warnings), self.strategy)

        fill = getattr(self, STRATEGIES[self.strategy])
        assignments, unassigned = fill(order_classrooms(rooms))

        if unassigned:
            self._warn(f"{len(unassigned)} students left unseated: desks ran out or only one conflict class remained.")
        logger.info("%s: seated %d of %d students in %d rooms",
                    self.strategy, len(assignments), len(self.students), len(rooms))
        return Allocation(assignments, unassigned, list(self.warnings), self.strategy)

    def _warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)

    def _usable_rooms(self) -> List[Classroom]:
        usable = []
        seen = set()
        for classroom in self.classrooms:
            try:
                check_classroom(classroom)
                if classroom.room_name in seen:
                    raise InvalidConfiguration("duplicate room name", classroom.room_name)
            except InvalidConfiguration as e:
                if self.strict:
                    raise
                self._warn(f"Skipping room: {e}")
                continue
            seen.add(classroom.room_name)
            usable.append(classroom)
        return usable

    # --- sticky_pair ---

    def _fill_sticky_pair(self, rooms: List[Classroom]) -> Tuple[List[Assignment], List[Student]]:
        buckets = bucket_students(self.students)
        keys = sorted(buckets)
        rotation = Rotation()
        assignments: List[Assignment] = []

        for classroom in rooms:
            if not any(buckets.values()):
                break
            room = _RoomFill(classroom)
            for desk in room.desks:
                if room.full or not any(buckets.values()):
                    break
                first, second, rotation = next_pair(rotation, keys, buckets)
                room.seat(desk, utils.SIDE_1, buckets[first].pop(0))
                if second is not None and not room.full:
                    room.seat(desk, utils.SIDE_2, buckets[second].pop(0))
            logger.info("%s: filled %d of %d seats", classroom.room_name, room.serial, room.limit)
            assignments.extend(room.assignments)

        unassigned = [s for key in keys for s in buckets[key]]
        return assignments, unassigned

    # --- branch_priority ---

    def _fill_branch_priority(self, rooms: List[Classroom]) -> Tuple[List[Assignment], List[Student]]:
        by_branch: Dict[str, Dict[str, List[Student]]] = {}
        for student in self.students:
            by_branch.setdefault(student.branch, {}).setdefault(student.semester, []).append(student)
        for semesters in by_branch.values():
            for group in semesters.values():
                group.sort(key=lambda s: utils.roll_sort_key(s.roll_number))

        def remaining(branch: str) -> int:
            return sum(len(group) for group in by_branch[branch].values())

        def top_two_semesters(branch: str) -> List[str]:
            semesters = [sem for sem, group in by_branch[branch].items() if group]
            semesters.sort(key=lambda sem: (-len(by_branch[branch][sem]), _semester_key(sem)))
            return semesters[:2]

        fills: Dict[str, _RoomFill] = {}

        # Pass 1: one branch per room, its two largest semesters side by side.
        for classroom in rooms:
            branches = [b for b in by_branch if remaining(b) > 0]
            if not branches:
                break
            branch = min(branches, key=lambda b: (-remaining(b), b))
            room = fills[classroom.room_name] = _RoomFill(classroom)
            for desk in room.desks:
                if room.full:
                    break
                semesters = top_two_semesters(branch)
                if not semesters:
                    break
                room.seat(desk, utils.SIDE_1, by_branch[branch][semesters[0]].pop(0))
                if len(semesters) > 1 and not room.full:
                    room.seat(desk, utils.SIDE_2, by_branch[branch][semesters[1]].pop(0))
            logger.info("%s: branch %s, %d seats after first pass", classroom.room_name, branch, room.serial)

        # Pass 2: leftovers of every branch go into the free seats.
        leftovers = [s for semesters in by_branch.values() for group in semesters.values() for s in group]
        buckets = bucket_students(leftovers)

        def pick(exclude: Optional[str] = None) -> Optional[str]:
            live = [k for k, bucket in buckets.items() if bucket and k != exclude]
            if not live:
                return None
            return min(live, key=lambda k: (-len(buckets[k]), k))

        for classroom in rooms:
            if not any(buckets.values()):
                break
            room = fills.get(classroom.room_name)
            if room is None:
                room = fills[classroom.room_name] = _RoomFill(classroom)
            for desk in room.desks:
                if room.full or not any(buckets.values()):
                    break
                occupants = desk.occupants()
                if len(occupants) == utils.SEATS_PER_DESK:
                    continue
                if not occupants:
                    top = pick()
                    room.seat(desk, utils.SIDE_1, buckets[top].pop(0))
                    other = pick(exclude=top)
                    if other is not None and not room.full:
                        room.seat(desk, utils.SIDE_2, buckets[other].pop(0))
                    continue
                side = utils.SIDE_2 if desk.side2 is None else utils.SIDE_1
                other = pick(exclude=_partner(desk, side).conflict_class)
                if other is not None:
                    room.seat(desk, side, buckets[other].pop(0))

        assignments = [a for classroom in rooms if classroom.room_name in fills
                       for a in fills[classroom.room_name].assignments]
        unassigned = [s for key in sorted(buckets) for s in buckets[key]]
        return assignments, unassigned

    # --- shuffle ---

    def _fill_shuffle(self, rooms: List[Classroom]) -> Tuple[List[Assignment], List[Student]]:
        fills = [_RoomFill(classroom) for classroom in rooms]
        seats = [(room, desk, side) for room in fills for desk, side in room.seats_in_order()]

        order = list(range(len(self.students)))
        self.rng.shuffle(order)
        unplaced = []

        for index in order:
            student = self.students[index]
            free = [seat for seat in seats if _occupant(seat[1], seat[2]) is None]
            self.rng.shuffle(free)
            for room, desk, side in free:
                partner = _partner(desk, side)
                if partner is not None and partner.conflict_class == student.conflict_class:
                    continue
                room.place(desk, side, student)
                break
            else:
                unplaced.append(index)

        # Serial numbers follow the desk order, not the order of placement.
        assignments: List[Assignment] = []
        for room in fills:
            for desk in room.desks:
                for side in utils.SIDES:
                    student = _occupant(desk, side)
                    if student is not None:
                        room.record(desk, side, student)
            assignments.extend(room.assignments)

        unassigned = [self.students[i] for i in sorted(unplaced)]
        return assignments, unassigned


STRATEGIES: Dict[str, str] = {
    "sticky_pair": "_fill_sticky_pair",
    "branch_priority": "_fill_branch_priority",
    "shuffle": "_fill_shuffle",
}


def allocate(classrooms: List[Classroom],
             students: List[Student],
             strategy: str = utils.DEFAULT_STRATEGY,
             rng: Optional[random.Random] = None,
             strict: bool = False) -> Allocation:
    """
    Convenience wrapper for the SeatAllocator class.
    """
    return SeatAllocator(classrooms, students, strategy, rng, strict).run()
