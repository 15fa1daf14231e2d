import logging
import sqlite3
import sys

logger = logging.getLogger(__name__)

# Columns introduced after the first schema revision, keyed by table.
ADDED_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "workouts": [
        ("program_id", "INTEGER"),
        ("program_day_index", "INTEGER"),
    ],
    "programs": [
        ("image_index", "INTEGER NOT NULL DEFAULT -1"),
        ("image_uri", "TEXT"),
    ],
    "cardio_activities": [
        ("calories_burned", "REAL"),
    ],
    "program_days": [
        ("template_id", "INTEGER"),
    ],
}


def table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    cur = conn.execute(f"PRAGMA table_info({table});")
    return [row[1] for row in cur.fetchall()]


def apply_migrations(conn: sqlite3.Connection) -> list[str]:
    """Add any missing columns and return the ``table.column`` names added."""
    added: list[str] = []
    for table, columns in ADDED_COLUMNS.items():
        existing = table_columns(conn, table)
        if not existing:
            continue
        for name, ddl in columns:
            if name in existing:
                continue
            try:
                conn.execute(f"ALTER TABLE {table} ADD COLUMN {name} {ddl};")
            except sqlite3.OperationalError as e:
                logger.warning(
                    "Column migration %s.%s failed or already exists: %s",
                    table,
                    name,
                    e,
                )
                continue
            logger.info("Added column %s.%s", table, name)
            added.append(f"{table}.{name}")
    return added


def migrate(db_path='workout.db'):
    conn = sqlite3.connect(db_path)
    try:
        added = apply_migrations(conn)
        conn.commit()
    finally:
        conn.close()
    return added


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    path = sys.argv[1] if len(sys.argv) > 1 else 'workout.db'
    migrate(path)
