import sqlite3
import aiosqlite
import os
import datetime
import logging
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional

from config import DB_PATH_ENV
from migrate import apply_migrations

logger = logging.getLogger(__name__)


class WorkoutInProgressError(RuntimeError):
    """Raised when a workout is created while another one is unfinished."""

    def __init__(self, workout_id: int) -> None:
        super().__init__(f"workout {workout_id} is still in progress")
        self.workout_id = workout_id


def utc_now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _blank_to_none(text: Optional[str]) -> Optional[str]:
    if text is None or not text.strip():
        return None
    return text


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "workouts": """CREATE TABLE IF NOT EXISTS workouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    started_at TEXT NOT NULL,
                    finished_at TEXT,
                    note TEXT,
                    program_id INTEGER,
                    program_day_index INTEGER,
                    FOREIGN KEY(program_id) REFERENCES programs(id) ON DELETE SET NULL
                );""",
        "exercises": """CREATE TABLE IF NOT EXISTS exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    order_index INTEGER NOT NULL,
                    note TEXT,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE
                );""",
        "sets": """CREATE TABLE IF NOT EXISTS sets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    exercise_id INTEGER NOT NULL,
                    weight REAL NOT NULL,
                    reps INTEGER NOT NULL,
                    order_index INTEGER NOT NULL,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
        "cardio_activities": """CREATE TABLE IF NOT EXISTS cardio_activities (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    activity_type TEXT NOT NULL,
                    duration_seconds INTEGER NOT NULL DEFAULT 0,
                    distance_meters REAL,
                    calories_burned REAL,
                    avg_heart_rate INTEGER,
                    notes TEXT,
                    order_index INTEGER NOT NULL,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE
                );""",
        "templates": """CREATE TABLE IF NOT EXISTS templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );""",
        "template_exercises": """CREATE TABLE IF NOT EXISTS template_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    template_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    order_index INTEGER NOT NULL,
                    default_sets INTEGER NOT NULL DEFAULT 3,
                    note TEXT,
                    FOREIGN KEY(template_id) REFERENCES templates(id) ON DELETE CASCADE
                );""",
        "programs": """CREATE TABLE IF NOT EXISTS programs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT,
                    created_at TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 0,
                    image_index INTEGER NOT NULL DEFAULT -1,
                    image_uri TEXT
                );""",
        "program_days": """CREATE TABLE IF NOT EXISTS program_days (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    program_id INTEGER NOT NULL,
                    template_id INTEGER,
                    day_index INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    FOREIGN KEY(program_id) REFERENCES programs(id) ON DELETE CASCADE
                );""",
        "program_day_exercises": """CREATE TABLE IF NOT EXISTS program_day_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    program_day_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    order_index INTEGER NOT NULL,
                    default_sets INTEGER NOT NULL DEFAULT 3,
                    note TEXT,
                    FOREIGN KEY(program_day_id) REFERENCES program_days(id) ON DELETE CASCADE
                );""",
        "personal_records": """CREATE TABLE IF NOT EXISTS personal_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    exercise_name TEXT NOT NULL,
                    weight REAL NOT NULL,
                    reps INTEGER NOT NULL,
                    estimated_1rm REAL NOT NULL,
                    achieved_at TEXT NOT NULL,
                    workout_id INTEGER,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE SET NULL
                );""",
    }

    _INDEX_DEFINITIONS = [
        "CREATE INDEX IF NOT EXISTS idx_exercises_workout ON exercises(workout_id);",
        "CREATE INDEX IF NOT EXISTS idx_sets_exercise ON sets(exercise_id);",
        "CREATE INDEX IF NOT EXISTS idx_cardio_workout ON cardio_activities(workout_id);",
        "CREATE INDEX IF NOT EXISTS idx_pr_exercise ON personal_records(exercise_name);",
    ]

    # files whose schema was already created or upgraded by this process
    _prepared_paths: set[str] = set()

    def __init__(self, db_path: str | None = None) -> None:
        self._db_path = db_path or os.environ.get(DB_PATH_ENV) or "workout.db"
        key = os.path.abspath(self._db_path)
        in_memory = self._db_path == ":memory:"
        if in_memory or key not in Database._prepared_paths or not os.path.exists(key):
            self._ensure_schema()
            if not in_memory:
                Database._prepared_paths.add(key)

    @property
    def db_path(self) -> str:
        return self._db_path

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            connection.execute("PRAGMA foreign_keys = ON;")
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, sql in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql)
            added = apply_migrations(conn)
            if added:
                logger.info("Migrated %s: %s", self._db_path, ", ".join(added))
            for sql in self._INDEX_DEFINITIONS:
                conn.execute(sql)

    def _ensure_table(self, conn: sqlite3.Connection, table: str, sql: str) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            logger.debug("Creating table %s", table)
        conn.execute(sql)


def init_storage(db_path: str | None = None) -> Database:
    """Create or upgrade the schema at ``db_path`` and return its handle.

    Unlike plain repository construction this always re-checks the file.
    """
    path = db_path or os.environ.get(DB_PATH_ENV) or "workout.db"
    Database._prepared_paths.discard(os.path.abspath(path))
    return Database(path)


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        conn.row_factory = aiosqlite.Row
        try:
            await conn.execute("PRAGMA foreign_keys = ON;")
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous base repository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[dict]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return [dict(r) for r in rows]

    async def fetch_one(self, query: str, params: Tuple = ()) -> Optional[dict]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            row = await cursor.fetchone()
            return dict(row) if row is not None else None

    async def _reorder(
        self, table: str, parent_column: str, parent_id: int, order: list[int]
    ) -> None:
        async with self._async_connection() as conn:
            cursor = await conn.execute(
                f"SELECT id FROM {table} WHERE {parent_column} = ? ORDER BY order_index;",
                (parent_id,),
            )
            existing = [row[0] for row in await cursor.fetchall()]
            if set(order) != set(existing) or len(order) != len(existing):
                raise ValueError("invalid order")
            for pos, item_id in enumerate(order):
                await conn.execute(
                    f"UPDATE {table} SET order_index = ? WHERE id = ?;",
                    (pos, item_id),
                )


class WorkoutRepository(AsyncBaseRepository):
    """Repository for workout table operations."""

    _SELECT_WITH_PROGRAM = (
        "SELECT w.*, p.name AS program_name, pd.name AS day_name "
        "FROM workouts w "
        "LEFT JOIN programs p ON w.program_id = p.id "
        "LEFT JOIN program_days pd ON w.program_id = pd.program_id "
        "AND w.program_day_index = pd.day_index"
    )

    async def create(
        self,
        program_id: Optional[int] = None,
        program_day_index: Optional[int] = None,
    ) -> int:
        async with self._async_connection() as conn:
            await conn.execute("BEGIN IMMEDIATE;")
            cursor = await conn.execute(
                "SELECT id FROM workouts WHERE finished_at IS NULL "
                "ORDER BY started_at DESC LIMIT 1;"
            )
            active = await cursor.fetchone()
            if active is not None:
                raise WorkoutInProgressError(active[0])
            cursor = await conn.execute(
                "INSERT INTO workouts (started_at, program_id, program_day_index) VALUES (?, ?, ?);",
                (utc_now(), program_id, program_day_index),
            )
            return cursor.lastrowid

    async def finish(self, workout_id: int, note: Optional[str] = None) -> None:
        await self.execute(
            "UPDATE workouts SET finished_at = ?, note = ? WHERE id = ?;",
            (utc_now(), _blank_to_none(note), workout_id),
        )

    async def set_note(self, workout_id: int, note: Optional[str]) -> None:
        await self.execute(
            "UPDATE workouts SET note = ? WHERE id = ?;",
            (_blank_to_none(note), workout_id),
        )

    async def delete(self, workout_id: int) -> None:
        await self.execute("DELETE FROM workouts WHERE id = ?;", (workout_id,))

    async def fetch_detail(self, workout_id: int) -> Optional[dict]:
        return await self.fetch_one(
            "SELECT * FROM workouts WHERE id = ?;", (workout_id,)
        )

    async def fetch_in_progress(self) -> Optional[dict]:
        return await self.fetch_one(
            "SELECT * FROM workouts WHERE finished_at IS NULL "
            "ORDER BY started_at DESC LIMIT 1;"
        )

    async def fetch_last_finished(
        self, program_id: Optional[int] = None
    ) -> Optional[dict]:
        if program_id is None:
            return await self.fetch_one(
                "SELECT * FROM workouts WHERE finished_at IS NOT NULL "
                "ORDER BY finished_at DESC LIMIT 1;"
            )
        return await self.fetch_one(
            "SELECT * FROM workouts WHERE program_id = ? AND finished_at IS NOT NULL "
            "ORDER BY finished_at DESC LIMIT 1;",
            (program_id,),
        )

    async def is_empty(self, workout_id: int) -> bool:
        """Return ``True`` if the workout has no note and no exercises.

        Cardio activities are ignored; a missing workout counts as empty.
        """
        row = await self.fetch_one(
            "SELECT note, (SELECT COUNT(*) FROM exercises WHERE workout_id = w.id) AS exercise_count "
            "FROM workouts w WHERE w.id = ?;",
            (workout_id,),
        )
        if row is None:
            return True
        if row["note"] and row["note"].strip():
            return False
        return row["exercise_count"] == 0

    async def fetch_recent(self, limit: int = 50) -> List[dict]:
        return await self.fetch_all(
            self._SELECT_WITH_PROGRAM
            + " WHERE w.finished_at IS NOT NULL ORDER BY w.finished_at DESC LIMIT ?;",
            (limit,),
        )

    async def fetch_with_exercises(self, workout_id: int) -> Optional[dict]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(
                self._SELECT_WITH_PROGRAM + " WHERE w.id = ?;", (workout_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            workout = dict(row)
            cursor = await conn.execute(
                "SELECT * FROM exercises WHERE workout_id = ? ORDER BY order_index, id;",
                (workout_id,),
            )
            exercises = [dict(r) for r in await cursor.fetchall()]
            cursor = await conn.execute(
                "SELECT s.* FROM sets s JOIN exercises e ON e.id = s.exercise_id "
                "WHERE e.workout_id = ? ORDER BY s.order_index, s.id;",
                (workout_id,),
            )
            sets_by_exercise: dict[int, list[dict]] = {}
            for r in await cursor.fetchall():
                sets_by_exercise.setdefault(r["exercise_id"], []).append(dict(r))
            for ex in exercises:
                ex["sets"] = sets_by_exercise.get(ex["id"], [])
            cursor = await conn.execute(
                "SELECT * FROM cardio_activities WHERE workout_id = ? ORDER BY order_index, id;",
                (workout_id,),
            )
            workout["exercises"] = exercises
            workout["cardio"] = [dict(r) for r in await cursor.fetchall()]
        return workout


class ExerciseRepository(AsyncBaseRepository):
    """Repository for exercise table operations."""

    async def add(self, workout_id: int, name: str, note: Optional[str] = None) -> int:
        return await self.execute(
            "INSERT INTO exercises (workout_id, name, order_index, note) "
            "VALUES (?, ?, (SELECT COUNT(*) FROM exercises WHERE workout_id = ?), ?);",
            (workout_id, name, workout_id, _blank_to_none(note)),
        )

    async def remove(self, exercise_id: int) -> None:
        await self.execute("DELETE FROM exercises WHERE id = ?;", (exercise_id,))

    async def update_note(self, exercise_id: int, note: Optional[str]) -> None:
        await self.execute(
            "UPDATE exercises SET note = ? WHERE id = ?;",
            (_blank_to_none(note), exercise_id),
        )

    async def fetch_for_workout(self, workout_id: int) -> List[dict]:
        return await self.fetch_all(
            "SELECT * FROM exercises WHERE workout_id = ? ORDER BY order_index, id;",
            (workout_id,),
        )

    async def fetch_detail(self, exercise_id: int) -> Optional[dict]:
        return await self.fetch_one(
            "SELECT * FROM exercises WHERE id = ?;", (exercise_id,)
        )

    async def reorder(self, workout_id: int, order: list[int]) -> None:
        await self._reorder("exercises", "workout_id", workout_id, order)


class SetRepository(AsyncBaseRepository):
    """Repository for sets table operations."""

    @staticmethod
    def _validate(weight: float, reps: int) -> None:
        if weight < 0:
            raise ValueError("weight must be non-negative")
        if reps < 0:
            raise ValueError("reps must be non-negative")

    async def add(self, exercise_id: int, weight: float = 0.0, reps: int = 0) -> int:
        self._validate(weight, reps)
        return await self.execute(
            "INSERT INTO sets (exercise_id, weight, reps, order_index) "
            "VALUES (?, ?, ?, (SELECT COUNT(*) FROM sets WHERE exercise_id = ?));",
            (exercise_id, weight, reps, exercise_id),
        )

    async def update(self, set_id: int, weight: float, reps: int) -> None:
        self._validate(weight, reps)
        await self.execute(
            "UPDATE sets SET weight = ?, reps = ? WHERE id = ?;",
            (weight, reps, set_id),
        )

    async def remove(self, set_id: int) -> None:
        await self.execute("DELETE FROM sets WHERE id = ?;", (set_id,))

    async def fetch_for_exercise(self, exercise_id: int) -> List[dict]:
        return await self.fetch_all(
            "SELECT * FROM sets WHERE exercise_id = ? ORDER BY order_index, id;",
            (exercise_id,),
        )

    async def fetch_detail(self, set_id: int) -> Optional[dict]:
        """Return the set joined with its exercise name and workout id."""
        return await self.fetch_one(
            "SELECT s.*, e.name AS exercise_name, e.workout_id "
            "FROM sets s JOIN exercises e ON e.id = s.exercise_id WHERE s.id = ?;",
            (set_id,),
        )

    async def reorder(self, exercise_id: int, order: list[int]) -> None:
        await self._reorder("sets", "exercise_id", exercise_id, order)


class TemplateRepository(AsyncBaseRepository):
    """Repository for workout templates and their exercises."""

    async def create(self, name: str) -> int:
        return await self.execute(
            "INSERT INTO templates (name, created_at) VALUES (?, ?);",
            (name, utc_now()),
        )

    async def add_exercise(
        self,
        template_id: int,
        name: str,
        default_sets: int = 3,
        note: Optional[str] = None,
    ) -> int:
        if default_sets < 0:
            raise ValueError("default_sets must be non-negative")
        return await self.execute(
            "INSERT INTO template_exercises (template_id, name, order_index, default_sets, note) "
            "VALUES (?, ?, (SELECT COUNT(*) FROM template_exercises WHERE template_id = ?), ?, ?);",
            (template_id, name, template_id, default_sets, _blank_to_none(note)),
        )

    async def remove_exercise(self, exercise_id: int) -> None:
        await self.execute(
            "DELETE FROM template_exercises WHERE id = ?;", (exercise_id,)
        )

    async def delete(self, template_id: int) -> None:
        await self.execute("DELETE FROM templates WHERE id = ?;", (template_id,))

    async def fetch_all(self) -> List[dict]:
        return await super().fetch_all(
            "SELECT * FROM templates ORDER BY created_at DESC, id DESC;"
        )

    async def fetch_exercises(self, template_id: int) -> List[dict]:
        return await super().fetch_all(
            "SELECT * FROM template_exercises WHERE template_id = ? ORDER BY order_index, id;",
            (template_id,),
        )

    async def fetch_with_exercises(self, template_id: int) -> Optional[dict]:
        template = await self.fetch_one(
            "SELECT * FROM templates WHERE id = ?;", (template_id,)
        )
        if template is None:
            return None
        template["exercises"] = await self.fetch_exercises(template_id)
        return template


class ProgramRepository(AsyncBaseRepository):
    """Repository for training programs, their days and day exercises."""

    @staticmethod
    def _program(row: dict) -> dict:
        row["is_active"] = bool(row["is_active"])
        return row

    async def create(
        self,
        name: str,
        description: Optional[str] = None,
        image_index: int = -1,
        image_uri: Optional[str] = None,
    ) -> int:
        return await self.execute(
            "INSERT INTO programs (name, description, created_at, is_active, image_index, image_uri) "
            "VALUES (?, ?, ?, 0, ?, ?);",
            (name, _blank_to_none(description), utc_now(), image_index, image_uri or None),
        )

    async def add_day(
        self,
        program_id: int,
        day_index: int,
        name: str,
        template_id: Optional[int] = None,
    ) -> int:
        return await self.execute(
            "INSERT INTO program_days (program_id, day_index, name, template_id) VALUES (?, ?, ?, ?);",
            (program_id, day_index, name, template_id),
        )

    async def add_day_exercise(
        self,
        day_id: int,
        name: str,
        default_sets: int = 3,
        note: Optional[str] = None,
    ) -> int:
        if default_sets < 0:
            raise ValueError("default_sets must be non-negative")
        return await self.execute(
            "INSERT INTO program_day_exercises (program_day_id, name, order_index, default_sets, note) "
            "VALUES (?, ?, (SELECT COUNT(*) FROM program_day_exercises WHERE program_day_id = ?), ?, ?);",
            (day_id, name, day_id, default_sets, _blank_to_none(note)),
        )

    async def update(
        self,
        program_id: int,
        name: str,
        description: Optional[str] = None,
        image_index: int = -1,
        image_uri: Optional[str] = None,
    ) -> None:
        """Update program fields and drop all of its days.

        The caller re-inserts the complete day list afterwards.
        """
        async with self._async_connection() as conn:
            await conn.execute(
                "UPDATE programs SET name = ?, description = ?, image_index = ?, image_uri = ? WHERE id = ?;",
                (name, _blank_to_none(description), image_index, image_uri or None, program_id),
            )
            await self._clear_days(conn, program_id)

    async def delete(self, program_id: int) -> None:
        async with self._async_connection() as conn:
            await self._clear_days(conn, program_id)
            await conn.execute("DELETE FROM programs WHERE id = ?;", (program_id,))

    @staticmethod
    async def _clear_days(conn: aiosqlite.Connection, program_id: int) -> None:
        # day exercises reference days, not programs
        await conn.execute(
            "DELETE FROM program_day_exercises WHERE program_day_id IN "
            "(SELECT id FROM program_days WHERE program_id = ?);",
            (program_id,),
        )
        await conn.execute(
            "DELETE FROM program_days WHERE program_id = ?;", (program_id,)
        )

    async def set_active(self, program_id: int) -> None:
        async with self._async_connection() as conn:
            await conn.execute("BEGIN IMMEDIATE;")
            await conn.execute("UPDATE programs SET is_active = 0;")
            await conn.execute(
                "UPDATE programs SET is_active = 1 WHERE id = ?;", (program_id,)
            )

    async def deactivate_all(self) -> None:
        await self.execute("UPDATE programs SET is_active = 0;")

    async def fetch_all(self) -> List[dict]:
        rows = await super().fetch_all(
            "SELECT * FROM programs ORDER BY is_active DESC, created_at DESC, id DESC;"
        )
        return [self._program(r) for r in rows]

    async def fetch_day(self, day_id: int) -> Optional[dict]:
        return await self.fetch_one(
            "SELECT * FROM program_days WHERE id = ?;", (day_id,)
        )

    async def fetch_day_exercises(self, day_id: int) -> List[dict]:
        return await super().fetch_all(
            "SELECT * FROM program_day_exercises WHERE program_day_id = ? ORDER BY order_index, id;",
            (day_id,),
        )

    async def fetch_days(self, program_id: int) -> List[dict]:
        """Return the program's days in cycle order with exercises attached.

        Days created before direct day exercises existed also carry the
        linked ``template`` row, if any.
        """
        days = await super().fetch_all(
            "SELECT * FROM program_days WHERE program_id = ? ORDER BY day_index ASC;",
            (program_id,),
        )
        for day in days:
            day["exercises"] = await self.fetch_day_exercises(day["id"])
            day["template"] = None
            if day["template_id"]:
                day["template"] = await self.fetch_one(
                    "SELECT * FROM templates WHERE id = ?;", (day["template_id"],)
                )
        return days

    async def fetch_by_id(self, program_id: int) -> Optional[dict]:
        program = await self.fetch_one(
            "SELECT * FROM programs WHERE id = ?;", (program_id,)
        )
        if program is None:
            return None
        program = self._program(program)
        program["days"] = await self.fetch_days(program_id)
        return program

    async def fetch_active(self) -> Optional[dict]:
        program = await self.fetch_one(
            "SELECT * FROM programs WHERE is_active = 1 ORDER BY id LIMIT 1;"
        )
        if program is None:
            return None
        program = self._program(program)
        program["days"] = await self.fetch_days(program["id"])
        return program


CARDIO_ACTIVITIES: list[dict[str, str]] = [
    {"type": "treadmill", "label": "Treadmill", "icon": "walk-outline"},
    {"type": "bike", "label": "Stationary Bike", "icon": "bicycle-outline"},
    {"type": "rowing", "label": "Rowing", "icon": "boat-outline"},
    {"type": "elliptical", "label": "Elliptical", "icon": "fitness-outline"},
    {"type": "stairmaster", "label": "Stairmaster", "icon": "trending-up-outline"},
    {"type": "running", "label": "Running", "icon": "walk-outline"},
    {"type": "cycling", "label": "Cycling", "icon": "bicycle-outline"},
    {"type": "swimming", "label": "Swimming", "icon": "water-outline"},
    {"type": "walking", "label": "Walking", "icon": "footsteps-outline"},
    {"type": "other", "label": "Other", "icon": "ellipsis-horizontal-outline"},
]

CARDIO_TYPES = frozenset(a["type"] for a in CARDIO_ACTIVITIES)


def activity_label(activity_type: str) -> str:
    for activity in CARDIO_ACTIVITIES:
        if activity["type"] == activity_type:
            return activity["label"]
    return activity_type


def activity_icon(activity_type: str) -> str:
    for activity in CARDIO_ACTIVITIES:
        if activity["type"] == activity_type:
            return activity["icon"]
    return "fitness-outline"


class CardioRepository(AsyncBaseRepository):
    """Repository for cardio activities logged within a workout."""

    _UPDATABLE = (
        "activity_type",
        "duration_seconds",
        "distance_meters",
        "calories_burned",
        "avg_heart_rate",
        "notes",
    )

    @staticmethod
    def _check_type(activity_type: str) -> None:
        if activity_type not in CARDIO_TYPES:
            raise ValueError(f"unknown activity type: {activity_type}")

    async def add(
        self,
        workout_id: int,
        activity_type: str,
        duration_seconds: int,
        distance_meters: Optional[float] = None,
        calories_burned: Optional[float] = None,
        avg_heart_rate: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        self._check_type(activity_type)
        return await self.execute(
            "INSERT INTO cardio_activities "
            "(workout_id, activity_type, duration_seconds, distance_meters, calories_burned, avg_heart_rate, notes, order_index) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, (SELECT COUNT(*) FROM cardio_activities WHERE workout_id = ?));",
            (
                workout_id,
                activity_type,
                duration_seconds,
                distance_meters,
                calories_burned,
                avg_heart_rate,
                _blank_to_none(notes),
                workout_id,
            ),
        )

    async def update(self, activity_id: int, **fields) -> None:
        """Write only the provided fields of the activity."""
        unknown = set(fields) - set(self._UPDATABLE)
        if unknown:
            raise ValueError(f"cannot update fields: {', '.join(sorted(unknown))}")
        if "activity_type" in fields:
            self._check_type(fields["activity_type"])
        if "notes" in fields:
            fields["notes"] = _blank_to_none(fields["notes"])
        columns = [c for c in self._UPDATABLE if c in fields]
        if not columns:
            return
        assignments = ", ".join(f"{c} = ?" for c in columns)
        params = [fields[c] for c in columns]
        params.append(activity_id)
        await self.execute(
            f"UPDATE cardio_activities SET {assignments} WHERE id = ?;",
            tuple(params),
        )

    async def adjust(
        self,
        activity_id: int,
        duration_delta: int = 0,
        calories_delta: float = 0,
    ) -> None:
        """Increment duration and calories in place, never below zero."""
        await self.execute(
            "UPDATE cardio_activities SET "
            "duration_seconds = MAX(0, duration_seconds + ?), "
            "calories_burned = CASE WHEN ? = 0 THEN calories_burned "
            "ELSE MAX(0, COALESCE(calories_burned, 0) + ?) END "
            "WHERE id = ?;",
            (duration_delta, calories_delta, calories_delta, activity_id),
        )

    async def remove(self, activity_id: int) -> None:
        await self.execute(
            "DELETE FROM cardio_activities WHERE id = ?;", (activity_id,)
        )

    async def fetch_for_workout(self, workout_id: int) -> List[dict]:
        return await self.fetch_all(
            "SELECT * FROM cardio_activities WHERE workout_id = ? ORDER BY order_index, id;",
            (workout_id,),
        )


class PersonalRecordRepository(AsyncBaseRepository):
    """Append-only history of personal records."""

    @staticmethod
    def normalize(exercise_name: str) -> str:
        return exercise_name.strip().lower()

    async def add(
        self,
        exercise_name: str,
        weight: float,
        reps: int,
        estimated_1rm: float,
        workout_id: Optional[int],
        achieved_at: Optional[str] = None,
    ) -> int:
        return await self.execute(
            "INSERT INTO personal_records (exercise_name, weight, reps, estimated_1rm, achieved_at, workout_id) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (
                self.normalize(exercise_name),
                weight,
                reps,
                estimated_1rm,
                achieved_at or utc_now(),
                workout_id,
            ),
        )

    async def best_e1rm(self, exercise_name: str) -> Optional[float]:
        row = await self.fetch_one(
            "SELECT MAX(estimated_1rm) AS best FROM personal_records "
            "WHERE exercise_name = ? COLLATE NOCASE;",
            (self.normalize(exercise_name),),
        )
        return row["best"] if row else None

    async def fetch_best(self, exercise_name: str) -> Optional[dict]:
        return await self.fetch_one(
            "SELECT * FROM personal_records WHERE exercise_name = ? COLLATE NOCASE "
            "ORDER BY estimated_1rm DESC, achieved_at ASC LIMIT 1;",
            (self.normalize(exercise_name),),
        )

    async def fetch_best_per_exercise(self) -> List[dict]:
        return await self.fetch_all(
            "SELECT pr.* FROM personal_records pr "
            "WHERE pr.id = (SELECT p2.id FROM personal_records p2 "
            "WHERE p2.exercise_name = pr.exercise_name "
            "ORDER BY p2.estimated_1rm DESC, p2.achieved_at ASC, p2.id ASC LIMIT 1) "
            "ORDER BY pr.exercise_name;"
        )

    async def fetch_since(self, since: str) -> List[dict]:
        return await self.fetch_all(
            "SELECT * FROM personal_records WHERE achieved_at >= ? "
            "ORDER BY achieved_at DESC, id DESC;",
            (since,),
        )
