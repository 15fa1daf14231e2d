from __future__ import annotations
import enum
import logging
from typing import Optional

from db import WorkoutRepository, SetRepository
from planner_service import PlannerService
from stats_service import StatisticsService

logger = logging.getLogger(__name__)


class ConflictResolution(str, enum.Enum):
    CONTINUE = "continue"
    FINISH = "finish"
    DISCARD = "discard"


class WorkoutConflictError(RuntimeError):
    """A non-empty workout is in progress and the caller must choose."""

    def __init__(self, workout: dict) -> None:
        super().__init__(f"workout {workout['id']} is in progress and not empty")
        self.workout = workout


class SessionService:
    """Guards the single in-progress workout on behalf of the UI."""

    FINISH_NOTE = "Finished to start new session"

    def __init__(
        self,
        workout_repo: WorkoutRepository,
        set_repo: SetRepository,
        planner: PlannerService,
        stats: StatisticsService,
    ) -> None:
        self.workouts = workout_repo
        self.sets = set_repo
        self.planner = planner
        self.stats = stats

    async def leave(self, workout_id: int) -> bool:
        """Handle back-navigation away from a workout.

        Empty workouts are deleted; returns whether that happened.
        """
        if not await self.workouts.is_empty(workout_id):
            return False
        await self.workouts.delete(workout_id)
        logger.info("Deleted empty workout %s", workout_id)
        return True

    async def _create(
        self,
        template_id: Optional[int],
        program_day_id: Optional[int],
        program_id: Optional[int],
        program_day_index: Optional[int],
    ) -> int:
        if program_day_id is not None:
            return await self.planner.create_workout_from_program_day(
                program_day_id, program_id, program_day_index
            )
        if template_id is not None:
            return await self.planner.create_workout_from_template(
                template_id, program_id, program_day_index
            )
        return await self.workouts.create(program_id, program_day_index)

    async def start(
        self,
        template_id: Optional[int] = None,
        program_day_id: Optional[int] = None,
        program_id: Optional[int] = None,
        program_day_index: Optional[int] = None,
        resolution: Optional[ConflictResolution] = None,
    ) -> int:
        """Start a new workout, resolving any workout still in progress.

        An empty in-progress workout is discarded silently. A non-empty one
        requires ``resolution``; without it ``WorkoutConflictError`` is
        raised so the caller can offer continue, finish or discard.
        """
        active = await self.workouts.fetch_in_progress()
        if active is not None:
            if await self.workouts.is_empty(active["id"]):
                await self.workouts.delete(active["id"])
                logger.info("Replaced empty workout %s", active["id"])
            elif resolution is None:
                raise WorkoutConflictError(active)
            elif resolution == ConflictResolution.CONTINUE:
                return active["id"]
            elif resolution == ConflictResolution.FINISH:
                await self.workouts.finish(active["id"], active["note"] or self.FINISH_NOTE)
            elif resolution == ConflictResolution.DISCARD:
                await self.workouts.delete(active["id"])
            else:
                raise ValueError(f"unknown resolution: {resolution}")
        return await self._create(
            template_id, program_day_id, program_id, program_day_index
        )

    async def update_set(self, set_id: int, weight: float, reps: int) -> Optional[dict]:
        """Update a set and record a PR when it becomes complete.

        Only the transition from placeholder (0/0) to filled-in values is
        checked, so repeated edits of a completed set never add history.
        """
        before = await self.sets.fetch_detail(set_id)
        await self.sets.update(set_id, weight, reps)
        if before is None:
            return None
        was_placeholder = before["weight"] == 0 and before["reps"] == 0
        if not (was_placeholder and weight > 0 and reps > 0):
            return None
        return await self.stats.check_and_record_pr(
            before["exercise_name"], weight, reps, before["workout_id"]
        )
