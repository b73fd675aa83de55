"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = str(Path.home() / ".daily_dose" / "daily_dose.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS topics (
    id TEXT PRIMARY KEY,
    context_id TEXT,
    name TEXT NOT NULL,
    role_scope TEXT NOT NULL DEFAULT '[]',
    ordering INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS cards (
    id TEXT PRIMARY KEY,
    context_id TEXT,
    topic_id TEXT NOT NULL REFERENCES topics(id),
    title TEXT NOT NULL,
    role_scope TEXT NOT NULL DEFAULT '[]',
    content_blocks TEXT NOT NULL DEFAULT '[]',
    interactions TEXT NOT NULL DEFAULT '[]',
    sources TEXT NOT NULL DEFAULT '[]',
    review_by_date TEXT,
    version INTEGER NOT NULL DEFAULT 1,
    status TEXT NOT NULL DEFAULT 'DRAFT',
    tags TEXT NOT NULL DEFAULT '[]',
    batch_id TEXT
);

CREATE TABLE IF NOT EXISTS card_states (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    context_id TEXT NOT NULL,
    card_id TEXT NOT NULL REFERENCES cards(id),
    box INTEGER NOT NULL DEFAULT 1,
    interval_days INTEGER NOT NULL DEFAULT 1,
    due_at TEXT NOT NULL,
    last_reviewed_at TEXT,
    correct_streak INTEGER NOT NULL DEFAULT 0,
    incorrect_streak INTEGER NOT NULL DEFAULT 0,
    UNIQUE(user_id, context_id, card_id)
);

CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    context_id TEXT NOT NULL,
    card_ids TEXT NOT NULL DEFAULT '[]',
    recall_card_ids TEXT NOT NULL DEFAULT '[]',
    card_results TEXT,
    questions_attempted INTEGER NOT NULL DEFAULT 0,
    correct_count INTEGER NOT NULL DEFAULT 0,
    xp_earned INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS themes (
    id TEXT PRIMARY KEY,
    context_id TEXT,
    name TEXT NOT NULL,
    description TEXT,
    ordering INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS units (
    id TEXT PRIMARY KEY,
    theme_id TEXT NOT NULL REFERENCES themes(id),
    title TEXT NOT NULL,
    description TEXT,
    level TEXT NOT NULL,
    ordering INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS unit_cards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    unit_id TEXT NOT NULL REFERENCES units(id),
    card_id TEXT NOT NULL REFERENCES cards(id),
    ordering INTEGER NOT NULL DEFAULT 0,
    UNIQUE(unit_id, card_id)
);

CREATE TABLE IF NOT EXISTS unit_progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    context_id TEXT NOT NULL,
    unit_id TEXT NOT NULL REFERENCES units(id),
    sessions_completed INTEGER NOT NULL DEFAULT 0,
    correct_count INTEGER NOT NULL DEFAULT 0,
    total_questions INTEGER NOT NULL DEFAULT 0,
    last_session_at TEXT,
    UNIQUE(user_id, context_id, unit_id)
);

CREATE INDEX IF NOT EXISTS idx_sessions_user_completed ON sessions(user_id, context_id, completed_at);
CREATE INDEX IF NOT EXISTS idx_card_states_due ON card_states(user_id, context_id, due_at);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
