"""Load topics, cards and the learning pathway from JSON content files."""
import json
from pathlib import Path

from loguru import logger

from daily_dose.cards import card_from_dict, save_card
from daily_dose.db import get_connection
from daily_dose.models import UnitLevel

CONTENT_DIR = Path(__file__).parent / "content"
SAMPLE_CATALOG = CONTENT_DIR / "sample_catalog.json"


def is_seeded(db_path: str) -> bool:
    """Check whether any cards have been loaded."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM cards").fetchone()[0]
    conn.close()
    return count > 0


def seed_topics(db_path: str, topics: list[dict]) -> None:
    conn = get_connection(db_path)
    for topic in topics:
        conn.execute(
            """INSERT OR REPLACE INTO topics (id, context_id, name, role_scope, ordering, is_active)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (
                topic["id"], topic.get("context_id"), topic["name"],
                json.dumps(topic.get("role_scope", [])), topic.get("ordering", 0),
                int(topic.get("is_active", True)),
            ),
        )
    conn.commit()
    conn.close()


def seed_cards(db_path: str, cards: list[dict]) -> None:
    for data in cards:
        save_card(db_path, card_from_dict(data), data.get("context_id"))


def seed_pathway(db_path: str, themes: list[dict]) -> None:
    """Insert themes, their units, and each unit's ordered card list."""
    conn = get_connection(db_path)
    for theme in themes:
        conn.execute(
            """INSERT OR REPLACE INTO themes (id, context_id, name, description, ordering, is_active)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (
                theme["id"], theme.get("context_id"), theme["name"], theme.get("description", ""),
                theme.get("ordering", 0), int(theme.get("is_active", True)),
            ),
        )
        for unit in theme.get("units", []):
            conn.execute(
                """INSERT OR REPLACE INTO units (id, theme_id, title, description, level, ordering, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    unit["id"], theme["id"], unit["title"], unit.get("description", ""),
                    UnitLevel(unit["level"]).value, unit.get("ordering", 0),
                    int(unit.get("is_active", True)),
                ),
            )
            for position, card_id in enumerate(unit.get("card_ids", [])):
                conn.execute(
                    "INSERT OR IGNORE INTO unit_cards (unit_id, card_id, ordering) VALUES (?, ?, ?)",
                    (unit["id"], card_id, position),
                )
    conn.commit()
    conn.close()


def load_catalog(db_path: str, path: str | Path) -> dict:
    """Load a catalog file. Topics go in first so cards can reference them."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    seed_topics(db_path, data.get("topics", []))
    seed_cards(db_path, data.get("cards", []))
    seed_pathway(db_path, data.get("themes", []))
    counts = {
        "topics": len(data.get("topics", [])),
        "cards": len(data.get("cards", [])),
        "themes": len(data.get("themes", [])),
    }
    logger.info("Loaded catalog {}: {}", Path(path).name, counts)
    return counts


def seed_sample(db_path: str) -> None:
    """Load the bundled sample catalog on first run."""
    if is_seeded(db_path):
        return
    load_catalog(db_path, SAMPLE_CATALOG)
