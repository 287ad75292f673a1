import pytest

from app.services.conflict_detector import (
    Dimension,
    SlotWindow,
    conflicting_pairs,
    find_conflicts,
    minutes_to_time,
    ranges_overlap,
    time_to_minutes,
)


def window(slot_id, start, end, *, day="MONDAY", teacher="T1", room="R1", klass="C1"):
    return SlotWindow(
        slot_id=slot_id,
        day=day,
        start=time_to_minutes(start),
        end=time_to_minutes(end),
        teacher_id=teacher,
        room_id=room,
        class_id=klass,
    )


def test_time_helpers_parse_and_format():
    assert time_to_minutes("00:00") == 0
    assert time_to_minutes("09:45") == 585
    assert time_to_minutes("23:59") == 1439
    assert minutes_to_time(585) == "09:45"


@pytest.mark.parametrize("value", ["9:00", "24:00", "12:60", "1200", "", "12:00:00"])
def test_time_to_minutes_rejects_malformed_values(value):
    with pytest.raises(ValueError):
        time_to_minutes(value)


def test_overlap_is_half_open_and_symmetric():
    assert ranges_overlap(540, 600, 570, 630)
    assert ranges_overlap(570, 630, 540, 600)
    # containment
    assert ranges_overlap(540, 720, 600, 630)
    assert ranges_overlap(600, 630, 540, 720)
    # touching
    assert not ranges_overlap(540, 600, 600, 660)
    assert not ranges_overlap(600, 660, 540, 600)


def test_back_to_back_slots_do_not_conflict():
    existing = [window("A", "09:00", "10:00")]
    assert find_conflicts(window(None, "10:00", "11:00"), existing) == []
    assert find_conflicts(window(None, "08:00", "09:00"), existing) == []


def test_slots_on_other_days_are_ignored():
    existing = [window("A", "09:00", "10:00", day="TUESDAY")]
    assert find_conflicts(window(None, "09:00", "10:00"), existing) == []


def test_unrelated_resources_do_not_conflict():
    existing = [window("A", "09:00", "10:00", teacher="T2", room="R2", klass="C2")]
    assert find_conflicts(window(None, "09:30", "10:30"), existing) == []


def test_one_pair_reports_every_shared_dimension_in_fixed_order():
    existing = [window("A", "09:00", "10:00")]
    conflicts = find_conflicts(window(None, "09:30", "10:30"), existing)

    assert [conflict.dimension for conflict in conflicts] == [Dimension.teacher, Dimension.room, Dimension.class_]
    assert {conflict.with_slot_id for conflict in conflicts} == {"A"}
    assert (conflicts[0].existing_start, conflicts[0].existing_end) == ("09:00", "10:00")
    assert conflicts[0].message == "Teacher already has a scheduled session at this time"
    assert conflicts[2].dimension.value == "class"


def test_conflicts_within_a_dimension_are_ordered_by_start_time():
    existing = [
        window("late", "10:30", "11:30", room="R2", klass="C2"),
        window("early", "09:00", "10:00", room="R3", klass="C3"),
    ]
    conflicts = find_conflicts(window(None, "09:30", "11:00", room="R9", klass="C9"), existing)

    assert [(c.dimension, c.with_slot_id) for c in conflicts] == [
        (Dimension.teacher, "early"),
        (Dimension.teacher, "late"),
    ]


def test_room_conflict_only_when_teacher_and_class_differ():
    existing = [window("A", "11:00", "12:00", teacher="T2", klass="C2")]
    conflicts = find_conflicts(window(None, "11:30", "12:30"), existing)

    assert len(conflicts) == 1
    assert conflicts[0].dimension is Dimension.room
    assert conflicts[0].message == "Room already booked at this time"


def test_excluded_slot_never_conflicts_with_itself():
    existing = [window("C", "09:00", "10:00"), window("A", "09:00", "10:00", teacher="T2", room="R2")]
    conflicts = find_conflicts(window("C", "09:15", "10:15"), existing, exclude_id="C")

    assert [(c.dimension, c.with_slot_id) for c in conflicts] == [(Dimension.class_, "A")]


def test_conflicting_pairs_is_empty_for_a_consistent_schedule():
    windows = [
        window("A", "09:00", "10:00"),
        window("B", "10:00", "11:00"),
        window("C", "09:00", "10:00", teacher="T2", room="R2", klass="C2"),
        window("D", "09:00", "10:00", day="TUESDAY"),
    ]
    assert conflicting_pairs(windows) == []


def test_conflicting_pairs_finds_overlaps_past_a_non_overlapping_neighbour():
    windows = [
        window("long", "09:00", "12:00"),
        window("short", "09:30", "10:00", teacher="T2", room="R2", klass="C2"),
        window("clash", "11:00", "11:30", teacher="T3", room="R3"),
    ]
    assert conflicting_pairs(windows) == [("long", "clash", Dimension.class_)]
