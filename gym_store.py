import logging

from config import APP_VERSION, configure_logging, load_settings
from db import (
    init_storage,
    WorkoutRepository,
    ExerciseRepository,
    SetRepository,
    TemplateRepository,
    ProgramRepository,
    CardioRepository,
    PersonalRecordRepository,
)
from planner_service import PlannerService
from session_service import SessionService
from stats_service import StatisticsService

logger = logging.getLogger(__name__)


class GymStore:
    """Wires storage, repositories and services for one database file."""

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str = "settings.yaml",
        *,
        setup_logging: bool = False,
    ) -> None:
        self.settings = load_settings(yaml_path)
        if setup_logging:
            configure_logging(self.settings.log_level)
        self.db_path = db_path or self.settings.db_path
        self.storage = init_storage(self.db_path)
        self.workouts = WorkoutRepository(self.db_path)
        self.exercises = ExerciseRepository(self.db_path)
        self.sets = SetRepository(self.db_path)
        self.templates = TemplateRepository(self.db_path)
        self.programs = ProgramRepository(self.db_path)
        self.cardio = CardioRepository(self.db_path)
        self.records = PersonalRecordRepository(self.db_path)
        self.planner = PlannerService(
            self.workouts,
            self.exercises,
            self.sets,
            self.templates,
            self.programs,
            default_sets=self.settings.default_sets,
        )
        self.statistics = StatisticsService(
            self.workouts,
            self.records,
            self.programs,
        )
        self.sessions = SessionService(
            self.workouts,
            self.sets,
            self.planner,
            self.statistics,
        )
        logger.debug("Opened gym store %s at %s", APP_VERSION, self.db_path)

    async def recent_workouts(self) -> list[dict]:
        return await self.workouts.fetch_recent(self.settings.recent_workouts_limit)

    async def period_summary(self, days: int | None = None) -> dict:
        """Strength and cardio aggregates over the trailing window."""
        days = days or self.settings.stats_window_days
        stats = self.statistics
        return {
            "days": days,
            "strength_volume": await stats.total_strength_volume(days),
            "strength_workouts": await stats.strength_workout_count(days),
            "cardio_seconds": await stats.total_cardio_duration(days),
            "cardio_workouts": await stats.cardio_workout_count(days),
            "cardio_calories": await stats.total_cardio_calories(days),
            "muscles": await stats.muscle_volume_distribution(days),
            "cardio_mix": await stats.cardio_distribution(days),
            "recent_prs": await stats.recent_prs(days),
        }

    async def weekly_charts(self) -> dict:
        weeks = self.settings.weekly_chart_weeks
        return {
            "strength": await self.statistics.weekly_strength_workouts(weeks),
            "cardio": await self.statistics.weekly_cardio_minutes(weeks),
        }
