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
    PersonalRecordRepository,
    CardioRepository,
)
from planner_service import PlannerService
from stats_service import StatisticsService
from session_service import ConflictResolution, SessionService, WorkoutConflictError


@pytest.fixture
def session(tmp_path):
    db_file = str(tmp_path / "workout.db")
    workouts = WorkoutRepository(db_file)
    exercises = ExerciseRepository(db_file)
    sets = SetRepository(db_file)
    planner = PlannerService(
        workouts,
        exercises,
        sets,
        TemplateRepository(db_file),
        ProgramRepository(db_file),
    )
    stats = StatisticsService(workouts, PersonalRecordRepository(db_file))
    return SessionService(workouts, sets, planner, stats)


async def _non_empty_workout(session):
    wid = await session.start()
    await session.planner.exercises.add(wid, "Squat")
    return wid


@pytest.mark.asyncio
async def test_leave_deletes_only_empty_workouts(session):
    wid = await session.start()
    assert await session.leave(wid) is True
    assert await session.workouts.fetch_detail(wid) is None

    wid = await _non_empty_workout(session)
    assert await session.leave(wid) is False
    assert await session.workouts.fetch_detail(wid) is not None


@pytest.mark.asyncio
async def test_leave_deletes_cardio_only_workout(session):
    wid = await session.start()
    cardio = CardioRepository(session.workouts.db_path)
    await cardio.add(wid, "running", 900)
    assert await session.leave(wid) is True


@pytest.mark.asyncio
async def test_start_replaces_empty_workout(session):
    first = await session.start()
    second = await session.start()
    assert second != first
    assert await session.workouts.fetch_detail(first) is None
    assert (await session.workouts.fetch_in_progress())["id"] == second


@pytest.mark.asyncio
async def test_start_with_conflict_requires_resolution(session):
    wid = await _non_empty_workout(session)
    with pytest.raises(WorkoutConflictError) as exc:
        await session.start()
    assert exc.value.workout["id"] == wid
    assert await session.start(resolution=ConflictResolution.CONTINUE) == wid


@pytest.mark.asyncio
async def test_finish_resolution_adds_note(session):
    wid = await _non_empty_workout(session)
    new_id = await session.start(resolution=ConflictResolution.FINISH)
    old = await session.workouts.fetch_detail(wid)
    assert old["finished_at"] is not None
    assert old["note"] == SessionService.FINISH_NOTE
    assert (await session.workouts.fetch_in_progress())["id"] == new_id


@pytest.mark.asyncio
async def test_finish_resolution_keeps_existing_note(session):
    wid = await session.start()
    await session.workouts.set_note(wid, "heavy singles")
    await session.start(resolution="finish")
    assert (await session.workouts.fetch_detail(wid))["note"] == "heavy singles"


@pytest.mark.asyncio
async def test_discard_resolution(session):
    wid = await _non_empty_workout(session)
    tid = await session.planner.templates.create("Push")
    await session.planner.templates.add_exercise(tid, "Bench Press", 2)
    new_id = await session.start(template_id=tid, resolution=ConflictResolution.DISCARD)
    assert await session.workouts.fetch_detail(wid) is None
    workout = await session.workouts.fetch_with_exercises(new_id)
    assert [len(e["sets"]) for e in workout["exercises"]] == [2]


@pytest.mark.asyncio
async def test_start_from_program_day(session):
    pid = await session.planner.create_program(
        "Plan", days=[{"name": "A", "exercises": [{"name": "Squat", "default_sets": 1}]}]
    )
    day = (await session.planner.programs.fetch_days(pid))[0]
    wid = await session.start(
        program_day_id=day["id"], program_id=pid, program_day_index=0
    )
    workout = await session.workouts.fetch_with_exercises(wid)
    assert workout["program_id"] == pid
    assert [e["name"] for e in workout["exercises"]] == ["Squat"]


@pytest.mark.asyncio
async def test_update_set_records_pr_once(session):
    wid = await session.start()
    ex_id = await session.planner.exercises.add(wid, "Bench Press")
    set_id = await session.sets.add(ex_id)

    pr = await session.update_set(set_id, 100.0, 5)
    assert pr["estimated_1rm"] == 112.5
    # editing a completed set never adds history
    assert await session.update_set(set_id, 120.0, 5) is None

    other = await session.sets.add(ex_id)
    assert await session.update_set(other, 50.0, 0) is None
    assert await session.update_set(other, 50.0, 5) is None

    third = await session.sets.add(ex_id)
    pr = await session.update_set(third, 110.0, 5)
    assert pr["estimated_1rm"] == pytest.approx(123.8)
    assert await session.update_set(4242, 100.0, 5) is None
