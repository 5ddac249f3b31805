"""
tests/test_allocator.py

Unit tests for the seat allocation engine.
Requires 'pytest' to run.
"""
import random
import pytest
from typing import List
from seatassign.models import Allocation, Classroom, Student
from seatassign.errors import InvalidConfiguration
from seatassign.allocator import (STRATEGIES, Rotation, SeatAllocator, allocate, bucket_students,
                                  next_pair, order_classrooms)
from seatassign.layout import benches_per_column
from seatassign import utils


def make_students(paper: str, branch: str, semester_section: str, count: int, start: int = 1) -> List[Student]:
    semester = utils.semester_number(semester_section)
    return [Student(f"{branch}-{semester}-{n}", paper, branch, semester_section)
            for n in range(start, start + count)]


@pytest.fixture
def mixed_students() -> List[Student]:
    """34 students in 3 conflict classes (DBMS-3 spans two branches)."""
    return (make_students("DBMS", "CT", "3-A", 12)
            + make_students("CN", "CT", "5-A", 9)
            + make_students("DBMS", "AIDS", "3-B", 7)
            + make_students("ML", "AIDS", "5-B", 6))


@pytest.fixture
def mixed_rooms() -> List[Classroom]:
    return [Classroom("203", 9, 3), Classroom("202", 16, 5), Classroom("201", 20, 4)]


def assert_no_same_class_desk(allocation: Allocation):
    desks = {}
    for a in allocation.assignments:
        desks.setdefault((a.room_name, a.desk_number), []).append(a.student.conflict_class)
    for classes in desks.values():
        assert len(classes) == len(set(classes))


def assert_serials_contiguous(allocation: Allocation):
    rooms = {}
    for a in allocation.assignments:
        rooms.setdefault(a.room_name, []).append(a.serial_number)
    for serials in rooms.values():
        assert sorted(serials) == list(range(1, len(serials) + 1))


def assert_every_student_once(allocation: Allocation, students: List[Student]):
    seated = [a.roll_number for a in allocation.assignments]
    unseated = [s.roll_number for s in allocation.unassigned_students]
    assert len(seated) == len(set(seated))
    assert sorted(seated + unseated) == sorted(s.roll_number for s in students)


def assert_seats_exist(allocation: Allocation, rooms: List[Classroom]):
    by_name = {r.room_name: r for r in rooms}
    taken = set()
    for a in allocation.assignments:
        assert 1 <= a.desk_number <= sum(benches_per_column(by_name[a.room_name]))
        assert a.side in utils.SIDES
        seat = (a.room_name, a.desk_number, a.side)
        assert seat not in taken
        taken.add(seat)
    for name, room in by_name.items():
        assert len(allocation.for_room(name)) <= room.total_capacity


# --- Invariants hold for every strategy ---

@pytest.mark.parametrize("strategy", list(STRATEGIES))
def test_strategy_invariants(strategy, mixed_rooms, mixed_students):
    allocation = allocate(mixed_rooms, mixed_students, strategy=strategy)

    assert allocation.strategy == strategy
    assert_no_same_class_desk(allocation)
    assert_serials_contiguous(allocation)
    assert_every_student_once(allocation, mixed_students)
    assert_seats_exist(allocation, mixed_rooms)


@pytest.mark.parametrize("strategy", list(STRATEGIES))
def test_inputs_are_not_mutated(strategy, mixed_rooms, mixed_students):
    rooms_before = [r.to_dict() for r in mixed_rooms]
    students_before = list(mixed_students)
    allocate(mixed_rooms, mixed_students, strategy=strategy)
    assert [r.to_dict() for r in mixed_rooms] == rooms_before
    assert mixed_students == students_before


@pytest.mark.parametrize("strategy", list(STRATEGIES))
def test_same_input_gives_same_output(strategy, mixed_rooms, mixed_students):
    first = allocate(mixed_rooms, mixed_students, strategy=strategy)
    second = allocate(mixed_rooms, mixed_students, strategy=strategy)
    assert first == second


# --- sticky_pair ---

def test_two_rooms_scenario():
    """Two rooms, 12 seats, 10 students of two classes: everyone is seated."""
    rooms = [Classroom("RoomA", 8, 2), Classroom("RoomB", 4, 1)]
    students = make_students("P1", "CT", "3-A", 5) + make_students("P2", "AIDS", "3-A", 5)

    allocation = allocate(rooms, students)

    assert len(allocation.assignments) == 10
    assert allocation.unassigned_students == []
    assert allocation.warnings == []
    assert_no_same_class_desk(allocation)
    assert_serials_contiguous(allocation)

    first = allocation.assignments[0]
    assert (first.roll_number, first.room_name, first.desk_number, first.side, first.serial_number) == \
        ("CT-3-1", "RoomA", 1, utils.SIDE_1, 1)
    second = allocation.assignments[1]
    assert (second.roll_number, second.side, second.serial_number) == ("AIDS-3-1", utils.SIDE_2, 2)

    # RoomA takes 8, RoomB the last pair; 2 seats stay empty
    assert len(allocation.for_room("RoomA")) == 8
    assert [a.roll_number for a in allocation.for_room("RoomB")] == ["CT-3-5", "AIDS-3-5"]


def test_rotation_carries_over_to_the_next_room():
    """
    ALG runs out in the first room and CHEM takes its side. The second room
    must continue with CHEM / BIO; starting over would give BIO / CHEM.
    """
    students = (make_students("ALG", "CT", "3-A", 2)
                + make_students("BIO", "IT", "3-A", 5)
                + make_students("CHEM", "ME", "3-A", 3))
    rooms = [Classroom("R1", 8, 1), Classroom("R2", 10, 1)]

    allocation = allocate(rooms, students)

    r1 = [(a.desk_number, a.side, a.roll_number) for a in allocation.for_room("R1")]
    assert r1 == [
        (1, utils.SIDE_1, "CT-3-1"), (1, utils.SIDE_2, "IT-3-1"),
        (2, utils.SIDE_1, "CT-3-2"), (2, utils.SIDE_2, "IT-3-2"),
        (3, utils.SIDE_1, "ME-3-1"), (3, utils.SIDE_2, "IT-3-3"),
        (4, utils.SIDE_1, "ME-3-2"), (4, utils.SIDE_2, "IT-3-4"),
    ]
    r2 = [(a.desk_number, a.side, a.roll_number) for a in allocation.for_room("R2")]
    assert r2 == [(1, utils.SIDE_1, "ME-3-3"), (1, utils.SIDE_2, "IT-3-5")]
    assert allocation.unassigned_students == []


def test_sticky_pair_ignores_input_order(mixed_rooms, mixed_students):
    forward = allocate(mixed_rooms, mixed_students)
    backward = allocate(list(reversed(mixed_rooms)), list(reversed(mixed_students)))

    def seats(allocation):
        return sorted((a.roll_number, a.room_name, a.desk_number, a.side, a.serial_number)
                      for a in allocation.assignments)

    assert seats(forward) == seats(backward)


def test_sticky_pair_seats_everyone_in_mixed_scenario(mixed_rooms, mixed_students):
    allocation = allocate(mixed_rooms, mixed_students)
    assert allocation.unassigned_students == []
    # 4-column room first, then the 5-column one
    assert allocation.assignments[0].room_name == "201"
    assert len(allocation.for_room("201")) == 20


def test_single_class_uses_side_one_only():
    students = make_students("DBMS", "CT", "3-A", 5)
    allocation = allocate([Classroom("R1", 10, 1)], students)

    assert len(allocation.assignments) == 5
    assert {a.side for a in allocation.assignments} == {utils.SIDE_1}
    assert [a.desk_number for a in allocation.assignments] == [1, 2, 3, 4, 5]


def test_single_class_runs_out_of_desks():
    """Capacity is enough on paper but only 3 desks exist for one class."""
    students = make_students("DBMS", "CT", "3-A", 5)
    allocation = allocate([Classroom("R1", 6, 1)], students)

    assert [a.roll_number for a in allocation.assignments] == ["CT-3-1", "CT-3-2", "CT-3-3"]
    assert [s.roll_number for s in allocation.unassigned_students] == ["CT-3-4", "CT-3-5"]
    assert_serials_contiguous(allocation)
    assert len(allocation.warnings) == 1


def test_odd_capacity_leaves_last_side_two_empty():
    rooms = [Classroom("R1", 3, 1), Classroom("R2", 2, 1)]
    students = make_students("P1", "CT", "3-A", 2) + make_students("P2", "CT", "5-A", 2)

    allocation = allocate(rooms, students)

    r1 = allocation.for_room("R1")
    assert [a.serial_number for a in r1] == [1, 2, 3]
    assert [(a.desk_number, a.side) for a in r1] == [(1, utils.SIDE_1), (1, utils.SIDE_2), (2, utils.SIDE_1)]
    r2 = allocation.for_room("R2")
    assert [(a.roll_number, a.side, a.serial_number) for a in r2] == [("CT-5-2", utils.SIDE_1, 1)]
    assert allocation.unassigned_students == []


def test_capacity_shortfall_seats_nobody():
    students = [Student("CT-3-9", "DBMS", "CT", "3-A"),
                Student("CT-3-1", "CN", "CT", "3-A"),
                Student("AIDS-5-2", "ML", "AIDS", "5-B"),
                Student("CT-3-4", "DBMS", "CT", "3-A")]
    allocation = allocate([Classroom("R1", 3, 2)], students)

    assert allocation.assignments == []
    # Input order is kept
    assert allocation.unassigned_students == students
    assert "Not enough capacity" in allocation.warnings[0]


def test_capacity_exactly_equal_is_allowed():
    students = make_students("P1", "CT", "3-A", 2) + make_students("P2", "CT", "5-A", 2)
    allocation = allocate([Classroom("R1", 4, 2)], students)
    assert len(allocation.assignments) == 4
    assert allocation.unassigned_students == []


def test_empty_inputs():
    assert allocate([], []).assignments == []
    allocation = allocate([Classroom("R1", 10, 2)], [])
    assert allocation.assignments == []
    assert allocation.unassigned_students == []


def test_room_preference_order():
    rooms = [Classroom("Z", 10, 3), Classroom("B", 10, 5), Classroom("C", 10, 4), Classroom("A", 10, 4)]
    assert [r.room_name for r in order_classrooms(rooms)] == ["A", "C", "B", "Z"]


def test_invalid_room_is_skipped_with_warning():
    rooms = [Classroom("Bad", 10, 0), Classroom("Good", 10, 2)]
    students = make_students("P1", "CT", "3-A", 2) + make_students("P2", "CT", "5-A", 2)

    allocation = allocate(rooms, students)

    assert {a.room_name for a in allocation.assignments} == {"Good"}
    assert len(allocation.assignments) == 4
    assert any("Bad" in w for w in allocation.warnings)


def test_duplicate_room_name_is_skipped():
    rooms = [Classroom("R1", 4, 2), Classroom("R1", 10, 2)]
    students = make_students("P1", "CT", "3-A", 2) + make_students("P2", "CT", "5-A", 2)

    allocation = allocate(rooms, students)

    assert len(allocation.assignments) == 4
    assert any("duplicate" in w for w in allocation.warnings)


def test_strict_mode_raises_on_invalid_room():
    rooms = [Classroom("Bad", 10, 2, [5, 5, 5]), Classroom("Good", 10, 2)]
    with pytest.raises(InvalidConfiguration):
        allocate(rooms, make_students("P1", "CT", "3-A", 2), strict=True)


def test_unknown_strategy():
    with pytest.raises(ValueError):
        SeatAllocator([Classroom("R1", 10, 2)], [], strategy="alphabetical")


# --- Sticky pair rotation ---

def test_bucket_students_sorts_numerically():
    students = [Student("CT-3-10", "DBMS", "CT", "3-A"),
                Student("CT-3-2", "DBMS", "CT", "3-A"),
                Student("CT-3-X", "DBMS", "CT", "3-A")]
    buckets = bucket_students(students)
    assert list(buckets) == ["DBMS-3"]
    assert [s.roll_number for s in buckets["DBMS-3"]] == ["CT-3-X", "CT-3-2", "CT-3-10"]


def test_next_pair_rotation():
    keys = ["A", "B", "C"]
    buckets = {"A": ["a1"], "B": ["b1", "b2"], "C": ["c1"]}

    first, second, rotation = next_pair(Rotation(), keys, buckets)
    assert (first, second) == ("A", "B")
    assert rotation == Rotation(2, "A", "B")

    buckets["A"].pop(0)
    buckets["B"].pop(0)
    # A ran dry: B stays on Side 2, C takes Side 1
    first, second, rotation = next_pair(rotation, keys, buckets)
    assert (first, second) == ("C", "B")
    assert rotation.cursor == 0

    buckets["C"].pop(0)
    buckets["B"].pop(0)
    assert next_pair(rotation, keys, buckets)[:2] == (None, None)


def test_next_pair_with_one_class_left():
    keys = ["A", "B"]
    assert next_pair(Rotation(0, "A", "B"), keys, {"A": ["a1"], "B": []})[:2] == ("A", None)

    # The surviving Side 2 class moves over to Side 1
    first, second, rotation = next_pair(Rotation(1, "A", "B"), keys, {"A": [], "B": ["b1"]})
    assert (first, second) == ("B", None)
    assert rotation.side1 == "B"


# --- branch_priority ---

def test_branch_priority_fills_rooms_branch_by_branch():
    students = (make_students("DBMS", "CT", "3-A", 4)
                + make_students("CN", "CT", "5-A", 3)
                + make_students("DBMS", "AIDS", "3-B", 2))
    rooms = [Classroom("R1", 8, 2), Classroom("R2", 6, 1)]

    allocation = allocate(rooms, students, strategy="branch_priority")

    assert allocation.unassigned_students == []
    assert {a.branch for a in allocation.for_room("R1")} == {"CT"}
    assert {a.branch for a in allocation.for_room("R2")} == {"AIDS"}
    desk1 = [a.roll_number for a in allocation.for_room("R1") if a.desk_number == 1]
    assert desk1 == ["CT-3-1", "CT-5-1"]
    assert_serials_contiguous(allocation)


def test_branch_priority_fills_leftovers_in_second_pass():
    """One branch with a single semester leaves half-empty desks for the other."""
    students = make_students("DBMS", "CT", "3-A", 4) + make_students("ML", "AIDS", "5-B", 2)
    rooms = [Classroom("R1", 8, 2)]

    allocation = allocate(rooms, students, strategy="branch_priority")

    assert allocation.unassigned_students == []
    assert len(allocation.assignments) == 6
    assert_no_same_class_desk(allocation)
    assert_serials_contiguous(allocation)


# --- shuffle ---

def test_shuffle_is_reproducible_with_seed(mixed_rooms, mixed_students):
    first = allocate(mixed_rooms, mixed_students, strategy="shuffle", rng=random.Random(7))
    second = allocate(mixed_rooms, mixed_students, strategy="shuffle", rng=random.Random(7))
    assert first == second


def test_shuffle_serials_follow_desk_order(mixed_rooms, mixed_students):
    allocation = allocate(mixed_rooms, mixed_students, strategy="shuffle", rng=random.Random(11))
    for room in mixed_rooms:
        seats = sorted(allocation.for_room(room.room_name), key=lambda a: a.serial_number)
        order = [(a.desk_number, utils.SIDES.index(a.side)) for a in seats]
        assert order == sorted(order)
