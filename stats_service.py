from __future__ import annotations
import datetime
import logging
from typing import List, Optional, Dict

from db import (
    WorkoutRepository,
    ProgramRepository,
    PersonalRecordRepository,
    activity_label,
)
from tools import MathTools

logger = logging.getLogger(__name__)


EXERCISE_MUSCLES: Dict[str, tuple[str, str]] = {
    # chest
    "bench press": ("chest", "push"),
    "incline bench press": ("chest", "push"),
    "dumbbell bench press": ("chest", "push"),
    "dumbbell fly": ("chest", "push"),
    "cable fly": ("chest", "push"),
    "push-ups": ("chest", "push"),
    # back
    "deadlift": ("back", "pull"),
    "barbell row": ("back", "pull"),
    "bent over row": ("back", "pull"),
    "pull-ups": ("back", "pull"),
    "chin-ups": ("back", "pull"),
    "lat pulldown": ("back", "pull"),
    "seated row": ("back", "pull"),
    "dumbbell row": ("back", "pull"),
    # shoulders
    "overhead press": ("shoulders", "push"),
    "military press": ("shoulders", "push"),
    "dumbbell shoulder press": ("shoulders", "push"),
    "lateral raise": ("shoulders", "isolation"),
    "front raise": ("shoulders", "isolation"),
    "face pull": ("shoulders", "pull"),
    # legs
    "squat": ("quadriceps", "legs"),
    "back squat": ("quadriceps", "legs"),
    "front squat": ("quadriceps", "legs"),
    "leg press": ("quadriceps", "legs"),
    "leg extension": ("quadriceps", "isolation"),
    "leg curl": ("hamstrings", "isolation"),
    "romanian deadlift": ("hamstrings", "legs"),
    "lunge": ("quadriceps", "legs"),
    "bulgarian split squat": ("quadriceps", "legs"),
    "hip thrust": ("glutes", "legs"),
    "calf raise": ("calves", "isolation"),
    # arms
    "dumbbell curl": ("biceps", "pull"),
    "barbell curl": ("biceps", "pull"),
    "hammer curl": ("biceps", "pull"),
    "tricep pushdown": ("triceps", "push"),
    "tricep extension": ("triceps", "push"),
    "skull crusher": ("triceps", "push"),
    "dips": ("triceps", "push"),
    # core
    "plank": ("core", "isolation"),
    "crunch": ("core", "isolation"),
    "leg raise": ("core", "isolation"),
    "cable crunch": ("core", "isolation"),
}


def muscle_group(exercise_name: str) -> str:
    entry = EXERCISE_MUSCLES.get(exercise_name.strip().lower())
    return entry[0] if entry else "other"


def movement_type(exercise_name: str) -> str:
    entry = EXERCISE_MUSCLES.get(exercise_name.strip().lower())
    return entry[1] if entry else "other"


def _in_clause(ids: List[int]) -> str:
    return ", ".join("?" for _ in ids)


class StatisticsService:
    """Compute workout statistics and maintain personal record history."""

    def __init__(
        self,
        workout_repo: WorkoutRepository,
        pr_repo: PersonalRecordRepository,
        program_repo: ProgramRepository | None = None,
    ) -> None:
        self.workouts = workout_repo
        self.records = pr_repo
        self.programs = program_repo

    @staticmethod
    def _since(days: Optional[int]) -> Optional[str]:
        return MathTools.days_ago(days) if days else None

    # personal records

    async def check_and_record_pr(
        self, exercise_name: str, weight: float, reps: int, workout_id: int
    ) -> Optional[dict]:
        """Record a PR if the set strictly beats the best recorded e1RM.

        Returns the inserted record or ``None``. Ties never re-record.
        """
        if weight <= 0 or reps <= 0:
            return None
        e1rm = MathTools.e1rm(weight, reps)
        best = await self.records.best_e1rm(exercise_name)
        if best is not None and e1rm <= best:
            return None
        achieved_at = datetime.datetime.now(datetime.timezone.utc).isoformat()
        pr_id = await self.records.add(
            exercise_name, weight, reps, e1rm, workout_id, achieved_at
        )
        name = PersonalRecordRepository.normalize(exercise_name)
        logger.info("New PR for %s: %s x %s (e1RM %s)", name, weight, reps, e1rm)
        return {
            "id": pr_id,
            "exercise_name": name,
            "weight": weight,
            "reps": reps,
            "estimated_1rm": e1rm,
            "achieved_at": achieved_at,
            "workout_id": workout_id,
        }

    async def exercise_pr(self, exercise_name: str) -> Optional[dict]:
        return await self.records.fetch_best(exercise_name)

    async def all_prs(self) -> List[dict]:
        return await self.records.fetch_best_per_exercise()

    async def recent_prs(self, days: int = 30) -> List[dict]:
        return await self.records.fetch_since(MathTools.days_ago(days))

    # strength

    async def _strength_workout_ids(self, since: Optional[str] = None) -> List[int]:
        query = (
            "SELECT DISTINCT w.id FROM workouts w "
            "JOIN exercises e ON e.workout_id = w.id "
            "JOIN sets s ON s.exercise_id = e.id "
            "WHERE w.finished_at IS NOT NULL AND s.weight > 0"
        )
        params: tuple = ()
        if since:
            query += " AND w.started_at >= ?"
            params = (since,)
        rows = await self.workouts.fetch_all(query + ";", params)
        return [r["id"] for r in rows]

    async def total_strength_volume(self, days: Optional[int] = None) -> int:
        ids = await self._strength_workout_ids(self._since(days))
        if not ids:
            return 0
        row = await self.workouts.fetch_one(
            "SELECT SUM(s.weight * s.reps) AS volume FROM sets s "
            "JOIN exercises e ON e.id = s.exercise_id "
            f"WHERE e.workout_id IN ({_in_clause(ids)}) AND s.weight > 0;",
            tuple(ids),
        )
        return MathTools.round_half_up(row["volume"] or 0)

    async def strength_workout_count(self, days: Optional[int] = None) -> int:
        return len(await self._strength_workout_ids(self._since(days)))

    async def weekly_strength_workouts(self, weeks: int = 8) -> List[Dict]:
        ids = await self._strength_workout_ids(MathTools.days_ago(weeks * 7))
        if not ids:
            return []
        rows = await self.workouts.fetch_all(
            f"SELECT started_at FROM workouts WHERE id IN ({_in_clause(ids)});",
            tuple(ids),
        )
        counts: Dict[str, int] = {}
        for r in rows:
            week = MathTools.week_start(r["started_at"])
            counts[week] = counts.get(week, 0) + 1
        return [{"week": w, "count": counts[w]} for w in sorted(counts)]

    async def muscle_volume_distribution(self, days: int = 30) -> List[Dict]:
        """Share of strength volume per muscle group, largest first."""
        rows = await self.workouts.fetch_all(
            "SELECT e.name, SUM(s.weight * s.reps) AS volume FROM exercises e "
            "JOIN sets s ON s.exercise_id = e.id "
            "JOIN workouts w ON w.id = e.workout_id "
            "WHERE w.finished_at IS NOT NULL AND w.started_at >= ? AND s.weight > 0 "
            "GROUP BY e.name;",
            (MathTools.days_ago(days),),
        )
        buckets: Dict[str, float] = {}
        total = 0.0
        for r in rows:
            muscle = muscle_group(r["name"])
            buckets[muscle] = buckets.get(muscle, 0.0) + r["volume"]
            total += r["volume"]
        result = [
            {
                "muscle": muscle,
                "volume": MathTools.round_half_up(volume),
                "percentage": MathTools.percentage(volume, total),
            }
            for muscle, volume in buckets.items()
        ]
        return sorted(result, key=lambda x: x["volume"], reverse=True)

    async def e1rm_progression(self, exercise_name: str, days: int = 90) -> List[Dict]:
        """Best e1RM per training day for ``exercise_name``."""
        rows = await self.workouts.fetch_all(
            "SELECT w.started_at, s.weight, s.reps FROM sets s "
            "JOIN exercises e ON e.id = s.exercise_id "
            "JOIN workouts w ON w.id = e.workout_id "
            "WHERE e.name = ? COLLATE NOCASE AND w.finished_at IS NOT NULL "
            "AND w.started_at >= ? AND s.weight > 0 "
            "ORDER BY w.started_at;",
            (exercise_name.strip(), MathTools.days_ago(days)),
        )
        best: Dict[str, float] = {}
        for r in rows:
            day = MathTools.parse_timestamp(r["started_at"]).date().isoformat()
            est = MathTools.e1rm(r["weight"], r["reps"])
            if est > best.get(day, 0):
                best[day] = est
        return [{"date": d, "e1rm": best[d]} for d in sorted(best)]

    async def exercise_names(self) -> List[str]:
        rows = await self.workouts.fetch_all(
            "SELECT DISTINCT name FROM exercises WHERE workout_id IN "
            "(SELECT id FROM workouts WHERE finished_at IS NOT NULL) ORDER BY name;"
        )
        return [r["name"] for r in rows]

    # cardio

    async def _cardio_workout_ids(self, since: Optional[str] = None) -> List[int]:
        query = (
            "SELECT DISTINCT w.id FROM workouts w "
            "JOIN cardio_activities c ON c.workout_id = w.id "
            "WHERE w.finished_at IS NOT NULL"
        )
        params: tuple = ()
        if since:
            query += " AND w.started_at >= ?"
            params = (since,)
        rows = await self.workouts.fetch_all(query + ";", params)
        return [r["id"] for r in rows]

    async def _cardio_sum(self, column: str, days: Optional[int]) -> float:
        ids = await self._cardio_workout_ids(self._since(days))
        if not ids:
            return 0
        row = await self.workouts.fetch_one(
            f"SELECT SUM({column}) AS total FROM cardio_activities "
            f"WHERE workout_id IN ({_in_clause(ids)});",
            tuple(ids),
        )
        return row["total"] or 0

    async def total_cardio_duration(self, days: Optional[int] = None) -> int:
        """Total cardio seconds across qualifying workouts."""
        return int(await self._cardio_sum("duration_seconds", days))

    async def total_cardio_calories(self, days: Optional[int] = None) -> float:
        return await self._cardio_sum("calories_burned", days)

    async def cardio_workout_count(self, days: Optional[int] = None) -> int:
        return len(await self._cardio_workout_ids(self._since(days)))

    async def weekly_cardio_minutes(self, weeks: int = 8) -> List[Dict]:
        ids = await self._cardio_workout_ids(MathTools.days_ago(weeks * 7))
        if not ids:
            return []
        rows = await self.workouts.fetch_all(
            "SELECT w.started_at, c.duration_seconds FROM cardio_activities c "
            "JOIN workouts w ON w.id = c.workout_id "
            f"WHERE w.id IN ({_in_clause(ids)});",
            tuple(ids),
        )
        seconds: Dict[str, int] = {}
        for r in rows:
            week = MathTools.week_start(r["started_at"])
            seconds[week] = seconds.get(week, 0) + (r["duration_seconds"] or 0)
        return [
            {"week": w, "minutes": MathTools.round_half_up(seconds[w] / 60)}
            for w in sorted(seconds)
        ]

    async def cardio_distribution(self, days: int = 30) -> List[Dict]:
        """Share of cardio time per activity type, longest first."""
        ids = await self._cardio_workout_ids(MathTools.days_ago(days))
        if not ids:
            return []
        rows = await self.workouts.fetch_all(
            "SELECT activity_type, SUM(duration_seconds) AS duration "
            f"FROM cardio_activities WHERE workout_id IN ({_in_clause(ids)}) "
            "GROUP BY activity_type;",
            tuple(ids),
        )
        total = sum(r["duration"] or 0 for r in rows)
        result = [
            {
                "type": r["activity_type"],
                "label": activity_label(r["activity_type"]),
                "duration": r["duration"] or 0,
                "percentage": MathTools.percentage(r["duration"] or 0, total),
            }
            for r in rows
        ]
        return sorted(result, key=lambda x: x["duration"], reverse=True)

    # dashboard

    async def workout_streak(self, today: Optional[datetime.date] = None) -> int:
        """Count consecutive training days ending today or yesterday."""
        if today is None:
            today = datetime.datetime.now(datetime.timezone.utc).date()
        rows = await self.workouts.fetch_all(
            "SELECT finished_at FROM workouts WHERE finished_at IS NOT NULL;"
        )
        dates = sorted(
            {MathTools.parse_timestamp(r["finished_at"]).date() for r in rows},
            reverse=True,
        )
        if not dates:
            return 0
        if dates[0] not in (today, today - datetime.timedelta(days=1)):
            return 0
        streak = 1
        for prev, cur in zip(dates, dates[1:]):
            if prev - cur != datetime.timedelta(days=1):
                break
            streak += 1
        return streak

    async def _last_session(self) -> Optional[dict]:
        last = await self.workouts.fetch_last_finished()
        if last is None:
            return None
        workout = await self.workouts.fetch_with_exercises(last["id"])
        if workout is None:
            return None
        start = MathTools.parse_timestamp(workout["started_at"])
        end = MathTools.parse_timestamp(workout["finished_at"])
        volume = MathTools.volume(
            (s["weight"], s["reps"]) for ex in workout["exercises"] for s in ex["sets"]
        )
        return {
            "workout_id": workout["id"],
            "name": workout["note"] or "Workout Session",
            "date": workout["finished_at"],
            "duration": MathTools.round_half_up((end - start).total_seconds() / 60),
            "volume": volume,
            "exercises": len(workout["exercises"]),
        }

    async def dashboard_stats(self, today: Optional[datetime.date] = None) -> Dict:
        """Summary for the home screen.

        With an active program ``sessions_per_week`` is the number of
        non-rest days in its cycle, otherwise the number of workouts
        finished in the last seven days.
        """
        program = await self.programs.fetch_active() if self.programs else None
        if program is not None:
            workout_days = len(
                [d for d in program["days"] if d["exercises"] or d["template_id"]]
            )
            cycle_days = len(program["days"])
            sessions_per_week = workout_days
        else:
            week_ago = (
                datetime.datetime.now(datetime.timezone.utc)
                - datetime.timedelta(days=7)
            ).isoformat()
            row = await self.workouts.fetch_one(
                "SELECT COUNT(*) AS count FROM workouts WHERE finished_at >= ?;",
                (week_ago,),
            )
            sessions_per_week = row["count"] if row else 0
            workout_days = sessions_per_week
            cycle_days = 7
        return {
            "last_session": await self._last_session(),
            "sessions_per_week": sessions_per_week,
            "workout_days": workout_days,
            "cycle_days": cycle_days,
            "streak": await self.workout_streak(today),
        }
