from __future__ import annotations
import logging
from typing import Iterable, Optional

from db import (
    WorkoutRepository,
    ExerciseRepository,
    SetRepository,
    TemplateRepository,
    ProgramRepository,
)

logger = logging.getLogger(__name__)


class PlannerService:
    """Handles conversion between templates, program days and workouts."""

    def __init__(
        self,
        workout_repo: WorkoutRepository,
        exercise_repo: ExerciseRepository,
        set_repo: SetRepository,
        template_repo: TemplateRepository,
        program_repo: ProgramRepository,
        default_sets: int = 3,
    ) -> None:
        self.workouts = workout_repo
        self.exercises = exercise_repo
        self.sets = set_repo
        self.templates = template_repo
        self.programs = program_repo
        self.default_sets = default_sets

    async def _expand(self, workout_id: int, pattern: Iterable[dict]) -> None:
        for item in pattern:
            ex_id = await self.exercises.add(workout_id, item["name"], item.get("note"))
            for _ in range(int(item["default_sets"])):
                await self.sets.add(ex_id, 0.0, 0)

    async def create_workout_from_template(
        self,
        template_id: int,
        program_id: Optional[int] = None,
        program_day_index: Optional[int] = None,
    ) -> int:
        """Start a workout pre-populated with the template's exercises.

        Each template exercise becomes an exercise holding ``default_sets``
        placeholder sets (weight 0, reps 0). An unknown template still
        yields the freshly created, empty workout.
        """
        workout_id = await self.workouts.create(program_id, program_day_index)
        template = await self.templates.fetch_with_exercises(template_id)
        if template is None:
            return workout_id
        await self._expand(workout_id, template["exercises"])
        return workout_id

    async def save_workout_as_template(self, workout_id: int, name: str) -> int:
        workout = await self.workouts.fetch_with_exercises(workout_id)
        if workout is None:
            raise ValueError("workout not found")
        template_id = await self.templates.create(name)
        for exercise in workout["exercises"]:
            await self.templates.add_exercise(
                template_id,
                exercise["name"],
                len(exercise["sets"]) or self.default_sets,
                exercise["note"],
            )
        return template_id

    async def create_workout_from_program_day(
        self, day_id: int, program_id: int, program_day_index: int
    ) -> int:
        workout_id = await self.workouts.create(program_id, program_day_index)
        exercises = await self.programs.fetch_day_exercises(day_id)
        if exercises:
            await self._expand(workout_id, exercises)
            return workout_id
        # days saved before direct day exercises existed point at a template
        day = await self.programs.fetch_day(day_id)
        if day is not None and day["template_id"]:
            template = await self.templates.fetch_with_exercises(day["template_id"])
            if template is not None:
                await self._expand(workout_id, template["exercises"])
        return workout_id

    async def _insert_days(self, program_id: int, days: Iterable[dict]) -> None:
        for day_index, day in enumerate(days):
            day_id = await self.programs.add_day(
                program_id, day_index, day["name"], day.get("template_id")
            )
            for ex in day.get("exercises", []):
                await self.programs.add_day_exercise(
                    day_id,
                    ex["name"],
                    ex.get("default_sets", self.default_sets),
                    ex.get("note"),
                )

    async def create_program(
        self,
        name: str,
        description: Optional[str] = None,
        days: Iterable[dict] = (),
        image_index: int = -1,
        image_uri: Optional[str] = None,
    ) -> int:
        program_id = await self.programs.create(name, description, image_index, image_uri)
        await self._insert_days(program_id, days)
        return program_id

    async def update_program(
        self,
        program_id: int,
        name: str,
        description: Optional[str],
        days: Iterable[dict],
        image_index: int = -1,
        image_uri: Optional[str] = None,
    ) -> None:
        """Replace the program's fields and its complete day list."""
        await self.programs.update(program_id, name, description, image_index, image_uri)
        await self._insert_days(program_id, days)

    async def next_program_day(self) -> dict | None:
        """Return the active program and the day that follows the last session.

        The cycle restarts at day 0 when no finished workout is tagged with
        the program.
        """
        program = await self.programs.fetch_active()
        if program is None:
            return None
        days = program["days"]
        if not days:
            logger.debug("Active program %s has no days", program["id"])
            return None
        last = await self.workouts.fetch_last_finished(program["id"])
        next_index = 0
        if last is not None and last["program_day_index"] is not None:
            next_index = (last["program_day_index"] + 1) % len(days)
        return {"program": program, "next_day": days[next_index]}
