from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    db_path: str = "workout.db"
    log_level: str = "INFO"
    default_sets: int = Field(3, ge=0)
    recent_workouts_limit: int = Field(50, gt=0)
    weekly_chart_weeks: int = Field(8, gt=0)
    stats_window_days: int = Field(30, gt=0)


def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
