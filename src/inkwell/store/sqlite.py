"""SQLite storage for project facts and characters."""

import sqlite3
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .models import CharacterProfile, Fact, decode_json, encode_json
from .repository import RepositoryError

FACT_COLUMNS = (
    "id, project_id, key, value, category, keywords, priority, use_count, "
    "last_used_at, content_strategy, searchable, trigger_mode, regex_pattern, created_at"
)
CHARACTER_COLUMNS = (
    "id, project_id, name, role, age, description, traits, background, goals, relationships"
)


class SQLiteRepository:
    """Persistent repository using a local SQLite database.

    List and dict fields (keywords, traits, relationships) are stored as
    JSON text columns. Facts also carry a search_text column holding
    Fact.searchable_text, since SQLite lower() only folds ASCII.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        try:
            conn = self._get_connection()
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor
        except sqlite3.Error as e:
            raise RepositoryError(f"SQLite error: {e}") from e

    def init_db(self) -> None:
        """Create the tables if they don't exist."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS facts (
                id                TEXT PRIMARY KEY,
                project_id        TEXT NOT NULL,
                key               TEXT NOT NULL,
                value             TEXT NOT NULL,
                category          TEXT,
                keywords          TEXT NOT NULL DEFAULT '[]',
                priority          INTEGER NOT NULL DEFAULT 0,
                use_count         INTEGER NOT NULL DEFAULT 0,
                last_used_at      TEXT,
                content_strategy  TEXT NOT NULL DEFAULT 'full',
                searchable        INTEGER NOT NULL DEFAULT 1,
                trigger_mode      TEXT NOT NULL DEFAULT 'auto',
                regex_pattern     TEXT,
                search_text       TEXT NOT NULL DEFAULT '',
                created_at        TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS characters (
                id             TEXT PRIMARY KEY,
                project_id     TEXT NOT NULL,
                name           TEXT NOT NULL,
                role           TEXT,
                age            TEXT,
                description    TEXT,
                traits         TEXT NOT NULL DEFAULT '[]',
                background     TEXT,
                goals          TEXT,
                relationships  TEXT NOT NULL DEFAULT '{}',
                created_at     TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_facts_project ON facts(project_id)")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_characters_project ON characters(project_id)"
        )
        conn.commit()

    def get_facts(self, project_id: str, category: str | None = None) -> list[Fact]:
        sql = f"SELECT {FACT_COLUMNS} FROM facts WHERE project_id = ?"
        params: tuple[Any, ...] = (project_id,)
        if category:
            sql += " AND category = ?"
            params += (category,)
        sql += " ORDER BY priority DESC, use_count DESC, rowid ASC"
        return [self._row_to_fact(row) for row in self._execute(sql, params).fetchall()]

    def search_facts(self, project_id: str, term: str) -> list[Fact]:
        escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        cursor = self._execute(
            f"""
            SELECT {FACT_COLUMNS} FROM facts
            WHERE project_id = ? AND searchable = 1 AND search_text LIKE ? ESCAPE '\\'
            ORDER BY priority DESC, rowid ASC
            """,
            (project_id, f"%{escaped}%"),
        )
        return [self._row_to_fact(row) for row in cursor.fetchall()]

    def get_characters(self, project_id: str) -> list[CharacterProfile]:
        cursor = self._execute(
            f"SELECT {CHARACTER_COLUMNS} FROM characters WHERE project_id = ? ORDER BY rowid",
            (project_id,),
        )
        return [self._row_to_character(row) for row in cursor.fetchall()]

    def get_character(self, character_id: str) -> CharacterProfile | None:
        cursor = self._execute(
            f"SELECT {CHARACTER_COLUMNS} FROM characters WHERE id = ?", (character_id,)
        )
        row = cursor.fetchone()
        return self._row_to_character(row) if row else None

    def get_fact(self, fact_id: str) -> Fact | None:
        cursor = self._execute(f"SELECT {FACT_COLUMNS} FROM facts WHERE id = ?", (fact_id,))
        row = cursor.fetchone()
        return self._row_to_fact(row) if row else None

    def create_fact(self, fact: Fact) -> Fact:
        """Insert a fact and return it with its assigned id."""
        stored = replace(fact, id=f"lore_{uuid.uuid4().hex[:12]}")
        self._execute(
            """
            INSERT INTO facts (id, project_id, key, value, category, keywords, priority,
                               use_count, last_used_at, content_strategy, searchable,
                               trigger_mode, regex_pattern, search_text)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (stored.id, *self._fact_params(stored)),
        )
        assert stored.id is not None
        saved = self.get_fact(stored.id)
        assert saved is not None
        return saved

    def update_fact(self, fact_id: str, **changes: Any) -> Fact:
        """Apply field changes to a fact."""
        fact = self.get_fact(fact_id)
        if fact is None:
            raise RepositoryError(f"Fact not found: {fact_id}")
        updated = replace(fact, **changes)
        self._execute(
            """
            UPDATE facts SET project_id = ?, key = ?, value = ?, category = ?, keywords = ?,
                priority = ?, use_count = ?, last_used_at = ?, content_strategy = ?,
                searchable = ?, trigger_mode = ?, regex_pattern = ?, search_text = ?
            WHERE id = ?
            """,
            self._fact_params(updated) + (fact_id,),
        )
        return updated

    def mark_fact_used(self, fact_id: str) -> Fact:
        """Increment use_count and refresh last_used_at."""
        fact = self.get_fact(fact_id)
        if fact is None:
            raise RepositoryError(f"Fact not found: {fact_id}")
        return self.update_fact(
            fact_id,
            use_count=fact.use_count + 1,
            last_used_at=datetime.now(timezone.utc),
        )

    def create_character(self, profile: CharacterProfile) -> CharacterProfile:
        stored = replace(profile, id=f"char_{uuid.uuid4().hex[:12]}")
        self._execute(
            f"INSERT INTO characters ({CHARACTER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            self._character_params(stored),
        )
        return stored

    def update_character(self, character_id: str, **changes: Any) -> CharacterProfile:
        profile = self.get_character(character_id)
        if profile is None:
            raise RepositoryError(f"Character not found: {character_id}")
        updated = replace(profile, **changes)
        params = self._character_params(updated)
        self._execute(
            """
            UPDATE characters SET project_id = ?, name = ?, role = ?, age = ?, description = ?,
                traits = ?, background = ?, goals = ?, relationships = ?
            WHERE id = ?
            """,
            params[1:] + (character_id,),
        )
        return updated

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _fact_params(self, fact: Fact) -> tuple[Any, ...]:
        return (
            fact.project_id,
            fact.key,
            fact.value,
            fact.category,
            encode_json(list(fact.keywords)),
            fact.priority,
            fact.use_count,
            _format_time(fact.last_used_at),
            fact.content_strategy,
            int(fact.searchable),
            fact.trigger_mode,
            fact.regex_pattern,
            fact.searchable_text,
        )

    def _character_params(self, profile: CharacterProfile) -> tuple[Any, ...]:
        return (
            profile.id,
            profile.project_id,
            profile.name,
            profile.role,
            profile.age,
            profile.description,
            encode_json(list(profile.traits)),
            profile.background,
            profile.goals,
            encode_json(profile.relationships),
        )

    def _row_to_fact(self, row: sqlite3.Row) -> Fact:
        """Convert a database row to a Fact."""
        last_used = row["last_used_at"]
        return Fact(
            id=row["id"],
            project_id=row["project_id"],
            key=row["key"],
            value=row["value"],
            category=row["category"],
            keywords=tuple(decode_json(row["keywords"], [])),
            priority=row["priority"],
            use_count=row["use_count"],
            last_used_at=datetime.fromisoformat(last_used) if last_used else None,
            content_strategy=row["content_strategy"],
            searchable=bool(row["searchable"]),
            trigger_mode=row["trigger_mode"],
            regex_pattern=row["regex_pattern"],
            created_at=row["created_at"],
        )

    def _row_to_character(self, row: sqlite3.Row) -> CharacterProfile:
        """Convert a database row to a CharacterProfile."""
        return CharacterProfile(
            id=row["id"],
            project_id=row["project_id"],
            name=row["name"],
            role=row["role"],
            age=row["age"],
            description=row["description"],
            traits=tuple(decode_json(row["traits"], [])),
            background=row["background"],
            goals=row["goals"],
            relationships=decode_json(row["relationships"], {}),
        )


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
