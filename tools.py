import math
import datetime
from typing import Iterable, Tuple


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    BRZYCKI_NUMERATOR: float = 36.0
    BRZYCKI_DENOMINATOR: float = 37.0
    EPLEY_DIVISOR: float = 30.0
    BRZYCKI_MAX_REPS: int = 10

    @staticmethod
    def round_half_up(value: float, digits: int = 0) -> float:
        """Round ``value`` with exact halves going up, never to even."""
        factor = 10 ** digits
        result = math.floor(value * factor + 0.5) / factor
        return int(result) if digits == 0 else result

    @classmethod
    def e1rm(cls, weight: float, reps: int) -> float:
        """Return the estimated one-rep max for ``weight`` x ``reps``.

        Brzycki is used up to ten reps and Epley above that, both rounded to
        one decimal. Non-positive inputs yield ``0``.
        """
        if reps <= 0 or weight <= 0:
            return 0
        if reps == 1:
            return weight
        if reps > cls.BRZYCKI_MAX_REPS:
            return cls.round_half_up(weight * (1 + reps / cls.EPLEY_DIVISOR), 1)
        return cls.round_half_up(
            weight * (cls.BRZYCKI_NUMERATOR / (cls.BRZYCKI_DENOMINATOR - reps)), 1
        )

    @staticmethod
    def volume(sets: Iterable[Tuple[float, int]]) -> float:
        """Compute training volume as the sum of weight times reps."""
        vol = 0.0
        for weight, reps in sets:
            vol += weight * reps
        return vol

    @staticmethod
    def format_duration(seconds: int) -> str:
        """Format ``seconds`` as ``m:ss`` or ``h:mm:ss``."""
        seconds = int(seconds)
        hrs = seconds // 3600
        mins = (seconds % 3600) // 60
        secs = seconds % 60
        if hrs > 0:
            return f"{hrs}:{mins:02d}:{secs:02d}"
        return f"{mins}:{secs:02d}"

    @staticmethod
    def format_distance(meters: float) -> str:
        """Format ``meters`` as kilometres from 1000 m upwards."""
        if meters >= 1000:
            return f"{meters / 1000:.2f} km"
        return f"{MathTools.round_half_up(meters)} m"

    @staticmethod
    def parse_timestamp(ts: str) -> datetime.datetime:
        """Return ``ts`` as timezone-aware datetime in UTC."""
        if ts.endswith("Z"):
            ts = ts[:-1] + "+00:00"
        dt = datetime.datetime.fromisoformat(ts)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=datetime.timezone.utc)
        return dt.astimezone(datetime.timezone.utc)

    @classmethod
    def week_start(
        cls, value: datetime.date | datetime.datetime | str | None = None
    ) -> str:
        """Return the ISO date of the Monday starting the week of ``value``."""
        if value is None:
            day = datetime.datetime.now(datetime.timezone.utc).date()
        elif isinstance(value, str):
            day = cls.parse_timestamp(value).date()
        elif isinstance(value, datetime.datetime):
            if value.tzinfo is not None:
                value = value.astimezone(datetime.timezone.utc)
            day = value.date()
        else:
            day = value
        return (day - datetime.timedelta(days=day.weekday())).isoformat()

    @staticmethod
    def days_ago(n: int, today: datetime.date | None = None) -> str:
        """Return the ISO timestamp of UTC midnight ``n`` days ago."""
        if today is None:
            today = datetime.datetime.now(datetime.timezone.utc).date()
        day = today - datetime.timedelta(days=n)
        return datetime.datetime.combine(
            day, datetime.time.min, tzinfo=datetime.timezone.utc
        ).isoformat()

    @staticmethod
    def percentage(part: float, total: float) -> int:
        """Return ``part`` as a whole-number percentage of ``total``."""
        if total <= 0:
            return 0
        return MathTools.round_half_up(part / total * 100)
