import os
import sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    WorkoutRepository,
    ExerciseRepository,
    SetRepository,
    TemplateRepository,
    ProgramRepository,
)
from planner_service import PlannerService


@pytest.fixture
def planner(tmp_path):
    db_file = str(tmp_path / "workout.db")
    return PlannerService(
        WorkoutRepository(db_file),
        ExerciseRepository(db_file),
        SetRepository(db_file),
        TemplateRepository(db_file),
        ProgramRepository(db_file),
    )


def _shape(workout):
    return [(e["name"], len(e["sets"]), e["note"]) for e in workout["exercises"]]


@pytest.mark.asyncio
async def test_template_crud(planner):
    templates = planner.templates
    first = await templates.create("Upper")
    second = await templates.create("Lower")
    bench = await templates.add_exercise(first, "Bench Press", 4, "close grip")
    await templates.add_exercise(first, "Barbell Row")

    names = [t["name"] for t in await templates.fetch_all()]
    assert names == ["Lower", "Upper"]

    exercises = await templates.fetch_exercises(first)
    assert [(e["name"], e["default_sets"], e["order_index"]) for e in exercises] == [
        ("Bench Press", 4, 0),
        ("Barbell Row", 3, 1),
    ]
    await templates.remove_exercise(bench)
    assert len(await templates.fetch_exercises(first)) == 1

    await templates.delete(first)
    assert await templates.fetch_with_exercises(first) is None
    assert await templates.fetch_exercises(first) == []
    assert (await templates.fetch_with_exercises(second))["exercises"] == []


@pytest.mark.asyncio
async def test_workout_from_template(planner):
    tid = await planner.templates.create("Push")
    await planner.templates.add_exercise(tid, "Bench Press", 3, "warm up first")
    await planner.templates.add_exercise(tid, "Overhead Press", 2)

    wid = await planner.create_workout_from_template(tid)
    workout = await planner.workouts.fetch_with_exercises(wid)
    assert _shape(workout) == [
        ("Bench Press", 3, "warm up first"),
        ("Overhead Press", 2, None),
    ]
    for ex in workout["exercises"]:
        assert all(s["weight"] == 0 and s["reps"] == 0 for s in ex["sets"])
        assert [s["order_index"] for s in ex["sets"]] == list(range(len(ex["sets"])))


@pytest.mark.asyncio
async def test_workout_from_missing_template_is_empty(planner):
    wid = await planner.create_workout_from_template(999)
    workout = await planner.workouts.fetch_with_exercises(wid)
    assert workout["exercises"] == []
    assert workout["finished_at"] is None


@pytest.mark.asyncio
async def test_save_workout_as_template(planner):
    wid = await planner.workouts.create()
    squat = await planner.exercises.add(wid, "Squat", "belt")
    await planner.exercises.add(wid, "Leg Curl")
    for _ in range(5):
        await planner.sets.add(squat, 100.0, 5)
    await planner.workouts.finish(wid)

    tid = await planner.save_workout_as_template(wid, "Legs")
    template = await planner.templates.fetch_with_exercises(tid)
    assert template["name"] == "Legs"
    assert [(e["name"], e["default_sets"], e["note"]) for e in template["exercises"]] == [
        ("Squat", 5, "belt"),
        ("Leg Curl", 3, None),
    ]

    with pytest.raises(ValueError):
        await planner.save_workout_as_template(12345, "Nope")


@pytest.mark.asyncio
async def test_program_days_and_workout_creation(planner):
    pid = await planner.create_program(
        "Full Body",
        "three day split",
        days=[
            {"name": "Day A", "exercises": [{"name": "Squat", "default_sets": 5}]},
            {"name": "Rest"},
            {
                "name": "Day B",
                "exercises": [
                    {"name": "Deadlift", "default_sets": 1, "note": "top set"},
                    {"name": "Pull-ups"},
                ],
            },
        ],
        image_index=2,
    )
    program = await planner.programs.fetch_by_id(pid)
    assert program["description"] == "three day split"
    assert program["image_index"] == 2
    assert program["is_active"] is False
    days = program["days"]
    assert [(d["day_index"], d["name"]) for d in days] == [
        (0, "Day A"),
        (1, "Rest"),
        (2, "Day B"),
    ]
    assert days[1]["exercises"] == []

    wid = await planner.create_workout_from_program_day(days[2]["id"], pid, 2)
    workout = await planner.workouts.fetch_with_exercises(wid)
    assert workout["program_id"] == pid
    assert workout["program_day_index"] == 2
    assert workout["program_name"] == "Full Body"
    assert workout["day_name"] == "Day B"
    assert _shape(workout) == [("Deadlift", 1, "top set"), ("Pull-ups", 3, None)]


@pytest.mark.asyncio
async def test_program_day_falls_back_to_template(planner):
    tid = await planner.templates.create("Legacy")
    await planner.templates.add_exercise(tid, "Dips", 2)
    pid = await planner.programs.create("Old Program")
    day_id = await planner.programs.add_day(pid, 0, "Day 1", tid)

    days = await planner.programs.fetch_days(pid)
    assert days[0]["template"]["name"] == "Legacy"

    wid = await planner.create_workout_from_program_day(day_id, pid, 0)
    workout = await planner.workouts.fetch_with_exercises(wid)
    assert _shape(workout) == [("Dips", 2, None)]


@pytest.mark.asyncio
async def test_next_program_day_cycles(planner):
    assert await planner.next_program_day() is None
    pid = await planner.create_program(
        "Cycle",
        days=[
            {"name": "Push", "exercises": [{"name": "Bench Press"}]},
            {"name": "Rest"},
            {"name": "Pull", "exercises": [{"name": "Barbell Row"}]},
        ],
    )
    assert await planner.next_program_day() is None
    await planner.programs.set_active(pid)

    result = await planner.next_program_day()
    assert result["program"]["id"] == pid
    assert result["next_day"]["day_index"] == 0

    for expected_next in (1, 2, 0):
        nxt = result["next_day"]
        wid = await planner.create_workout_from_program_day(
            nxt["id"], pid, nxt["day_index"]
        )
        await planner.workouts.finish(wid)
        result = await planner.next_program_day()
        assert result["next_day"]["day_index"] == expected_next


@pytest.mark.asyncio
async def test_next_program_day_without_days(planner):
    pid = await planner.create_program("Empty")
    await planner.programs.set_active(pid)
    assert await planner.next_program_day() is None


@pytest.mark.asyncio
async def test_set_active_is_exclusive(planner):
    a = await planner.programs.create("A")
    b = await planner.programs.create("B")
    await planner.programs.set_active(a)
    await planner.programs.set_active(b)
    programs = await planner.programs.fetch_all()
    assert [p["id"] for p in programs if p["is_active"]] == [b]
    assert programs[0]["id"] == b
    assert (await planner.programs.fetch_active())["id"] == b

    await planner.programs.deactivate_all()
    assert await planner.programs.fetch_active() is None


@pytest.mark.asyncio
async def test_update_program_replaces_days(planner):
    pid = await planner.create_program(
        "Split",
        days=[
            {"name": "Upper", "exercises": [{"name": "Bench Press"}]},
            {"name": "Lower", "exercises": [{"name": "Squat"}]},
        ],
    )
    old_days = await planner.programs.fetch_days(pid)

    await planner.update_program(
        pid,
        "Split v2",
        "",
        [{"name": "Full", "exercises": [{"name": "Deadlift", "default_sets": 2}]}],
        image_uri="file:///cover.png",
    )
    program = await planner.programs.fetch_by_id(pid)
    assert program["name"] == "Split v2"
    assert program["description"] is None
    assert program["image_uri"] == "file:///cover.png"
    assert [d["name"] for d in program["days"]] == ["Full"]
    assert [
        (e["name"], e["default_sets"]) for e in program["days"][0]["exercises"]
    ] == [("Deadlift", 2)]
    for day in old_days:
        assert await planner.programs.fetch_day(day["id"]) is None
        assert await planner.programs.fetch_day_exercises(day["id"]) == []


@pytest.mark.asyncio
async def test_delete_program_keeps_history(planner):
    pid = await planner.create_program(
        "Temp", days=[{"name": "Only", "exercises": [{"name": "Squat"}]}]
    )
    day = (await planner.programs.fetch_days(pid))[0]
    wid = await planner.create_workout_from_program_day(day["id"], pid, 0)
    await planner.workouts.finish(wid)

    await planner.programs.delete(pid)
    assert await planner.programs.fetch_by_id(pid) is None
    assert await planner.programs.fetch_day_exercises(day["id"]) == []
    workout = await planner.workouts.fetch_detail(wid)
    assert workout is not None
    assert workout["program_id"] is None
