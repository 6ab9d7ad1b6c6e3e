"""SQLite database initialisation

PRAGMA settings + table DDL + indexes, executed through aiosqlite.
"""

import aiosqlite

# tasks table DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    persistent_id       TEXT PRIMARY KEY,
    task_code           TEXT NOT NULL UNIQUE,
    status              TEXT NOT NULL DEFAULT 'PENDING',
    productive_seconds  REAL NOT NULL DEFAULT 0 CHECK (productive_seconds >= 0),
    running_since       TEXT,
    attributes          TEXT NOT NULL DEFAULT '{}',
    closure             TEXT,
    version             INTEGER NOT NULL DEFAULT 0,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
]

# unproductive_events table DDL
_UNPRODUCTIVE_DDL = """
CREATE TABLE IF NOT EXISTS unproductive_events (
    task_id       TEXT NOT NULL,
    seq           INTEGER NOT NULL,
    cause         TEXT NOT NULL,
    observations  TEXT NOT NULL DEFAULT '',
    start_time    TEXT NOT NULL,
    end_time      TEXT,
    duration      REAL NOT NULL DEFAULT 0 CHECK (duration >= 0),

    PRIMARY KEY (task_id, seq),
    FOREIGN KEY (task_id) REFERENCES tasks(persistent_id)
);
"""

_UNPRODUCTIVE_INDEXES = [
    # at most one open interval per task
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_unproductive_one_open "
        "ON unproductive_events(task_id) WHERE end_time IS NULL;"
    ),
]

# events table DDL (audit log)
_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS events (
    event_id        TEXT PRIMARY KEY,
    task_id         TEXT NOT NULL,
    task_seq        INTEGER NOT NULL,
    ts              TEXT NOT NULL,
    type            TEXT NOT NULL,
    schema_version  INTEGER NOT NULL DEFAULT 1,
    actor           TEXT NOT NULL,
    payload         TEXT NOT NULL DEFAULT '{}',
    trace_id        TEXT NOT NULL DEFAULT '',

    FOREIGN KEY (task_id) REFERENCES tasks(persistent_id)
);
"""

_EVENTS_INDEXES = [
    # strictly increasing task_seq within a task
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_events_task_seq ON events(task_id, task_seq);",
    "CREATE INDEX IF NOT EXISTS idx_events_task_ts ON events(task_id, ts);",
]

# downtime taxonomy DDL
_DOWNTIME_CATEGORIES_DDL = """
CREATE TABLE IF NOT EXISTS downtime_categories (
    id    INTEGER PRIMARY KEY AUTOINCREMENT,
    name  TEXT NOT NULL UNIQUE
);
"""

_DOWNTIME_REASONS_DDL = """
CREATE TABLE IF NOT EXISTS downtime_reasons (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    code         TEXT NOT NULL UNIQUE,
    category_id  INTEGER NOT NULL,
    name         TEXT NOT NULL,
    description  TEXT NOT NULL DEFAULT '',
    is_active    INTEGER NOT NULL DEFAULT 1,

    FOREIGN KEY (category_id) REFERENCES downtime_categories(id)
);
"""

_DOWNTIME_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_downtime_reasons_category ON downtime_reasons(category_id);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """Initialise the database: PRAGMAs + tables + indexes

    Args:
        conn: aiosqlite connection
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    for ddl in (
        _TASKS_DDL,
        _UNPRODUCTIVE_DDL,
        _EVENTS_DDL,
        _DOWNTIME_CATEGORIES_DDL,
        _DOWNTIME_REASONS_DDL,
    ):
        await conn.execute(ddl)

    for idx_sql in _TASKS_INDEXES + _UNPRODUCTIVE_INDEXES + _EVENTS_INDEXES + _DOWNTIME_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """Check that WAL mode is active

    Returns:
        True if the journal mode is WAL
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
