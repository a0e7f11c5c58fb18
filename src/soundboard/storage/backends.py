"""Entity backing stores for the repository.

The repository owns all invariants (defaults, cascades, cursor clamping); a
backing store only persists rows. Two stores are provided: an in-memory one
for sessions whose state lives in exported profiles, and a SQLite one for
persistence across runs.
"""

import copy
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from ..models import SETTINGS_ID, Settings, SoundClip, Trigger

logger = logging.getLogger(__name__)


class EntityStore(ABC):
    """Row storage for clips, triggers and the settings singleton."""

    @abstractmethod
    def list_clips(self) -> list[SoundClip]: ...

    @abstractmethod
    def get_clip(self, clip_id: int) -> Optional[SoundClip]: ...

    @abstractmethod
    def insert_clip(
        self, name: str, filename: str, format: str, duration: float, size: int, url: str
    ) -> SoundClip: ...

    @abstractmethod
    def delete_clip(self, clip_id: int) -> bool: ...

    @abstractmethod
    def list_triggers(self) -> list[Trigger]: ...

    @abstractmethod
    def get_trigger(self, trigger_id: int) -> Optional[Trigger]: ...

    @abstractmethod
    def insert_trigger(
        self,
        phrase: str,
        sound_clip_ids: list[int],
        case_sensitive: bool,
        enabled: bool,
        current_index: int = 0,
    ) -> Trigger: ...

    @abstractmethod
    def save_trigger(self, trigger: Trigger) -> None: ...

    @abstractmethod
    def delete_trigger(self, trigger_id: int) -> bool: ...

    @abstractmethod
    def load_settings(self) -> Optional[Settings]: ...

    @abstractmethod
    def save_settings(self, settings: Settings) -> None: ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every clip, trigger and the settings row."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group several writes so they apply together or not at all."""

    def close(self) -> None:
        """Release backend resources."""


class MemoryEntityStore(EntityStore):
    """In-memory store; transactions roll back to a snapshot on error."""

    def __init__(self):
        self._clips: dict[int, SoundClip] = {}
        self._triggers: dict[int, Trigger] = {}
        self._settings: Optional[Settings] = None
        self._next_clip_id = 1
        self._next_trigger_id = 1
        self._depth = 0

    def list_clips(self) -> list[SoundClip]:
        return [copy.deepcopy(clip) for clip in self._clips.values()]

    def get_clip(self, clip_id: int) -> Optional[SoundClip]:
        clip = self._clips.get(clip_id)
        return copy.deepcopy(clip) if clip else None

    def insert_clip(self, name, filename, format, duration, size, url) -> SoundClip:
        clip = SoundClip(
            id=self._next_clip_id,
            name=name,
            filename=filename,
            format=format,
            duration=duration,
            size=size,
            url=url,
        )
        self._next_clip_id += 1
        self._clips[clip.id] = clip
        return copy.deepcopy(clip)

    def delete_clip(self, clip_id: int) -> bool:
        return self._clips.pop(clip_id, None) is not None

    def list_triggers(self) -> list[Trigger]:
        return [copy.deepcopy(trigger) for trigger in self._triggers.values()]

    def get_trigger(self, trigger_id: int) -> Optional[Trigger]:
        trigger = self._triggers.get(trigger_id)
        return copy.deepcopy(trigger) if trigger else None

    def insert_trigger(
        self, phrase, sound_clip_ids, case_sensitive, enabled, current_index=0
    ) -> Trigger:
        trigger = Trigger(
            id=self._next_trigger_id,
            phrase=phrase,
            sound_clip_ids=list(sound_clip_ids),
            case_sensitive=case_sensitive,
            enabled=enabled,
            current_index=current_index,
        )
        self._next_trigger_id += 1
        self._triggers[trigger.id] = trigger
        return copy.deepcopy(trigger)

    def save_trigger(self, trigger: Trigger) -> None:
        self._triggers[trigger.id] = copy.deepcopy(trigger)

    def delete_trigger(self, trigger_id: int) -> bool:
        return self._triggers.pop(trigger_id, None) is not None

    def load_settings(self) -> Optional[Settings]:
        return copy.deepcopy(self._settings)

    def save_settings(self, settings: Settings) -> None:
        self._settings = copy.deepcopy(settings)

    def clear(self) -> None:
        self._clips.clear()
        self._triggers.clear()
        self._settings = None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        snapshot = None
        if self._depth == 0:
            snapshot = (
                copy.deepcopy(self._clips),
                copy.deepcopy(self._triggers),
                copy.deepcopy(self._settings),
            )
        self._depth += 1
        try:
            yield
        except BaseException:
            if snapshot is not None:
                self._clips, self._triggers, self._settings = snapshot
                logger.warning("Rolled back in-memory transaction")
            raise
        finally:
            self._depth -= 1


_TRIGGER_TABLE = """
CREATE TABLE IF NOT EXISTS trigger_words (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    phrase TEXT NOT NULL,
    sound_clip_ids TEXT NOT NULL DEFAULT '[]',
    case_sensitive INTEGER NOT NULL DEFAULT 0,
    enabled INTEGER NOT NULL DEFAULT 1,
    current_index INTEGER NOT NULL DEFAULT 0
)"""

_SCHEMA = _TRIGGER_TABLE + """;
CREATE TABLE IF NOT EXISTS sound_clips (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    filename TEXT NOT NULL UNIQUE,
    format TEXT NOT NULL,
    duration REAL NOT NULL,
    size INTEGER NOT NULL,
    url TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY,
    default_response_enabled INTEGER NOT NULL DEFAULT 0,
    default_response_sound_clip_ids TEXT NOT NULL DEFAULT '[]',
    default_response_delay INTEGER NOT NULL DEFAULT 2000,
    default_response_index INTEGER NOT NULL DEFAULT 0
);
"""


class SqliteEntityStore(EntityStore):
    """SQLite-backed store. Clip id lists are kept as JSON arrays."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        if str(path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._depth = 0
        try:
            self._conn.execute("PRAGMA journal_mode=WAL;")
        except sqlite3.DatabaseError:
            pass
        self._migrate()
        logger.info(f"SQLite store opened at {self.path}")

    def _migrate(self):
        columns = {
            row["name"]
            for row in self._conn.execute("PRAGMA table_info(trigger_words)").fetchall()
        }
        if "sound_clip_id" in columns and "sound_clip_ids" not in columns:
            self._migrate_legacy_triggers()
        self._conn.executescript(_SCHEMA)

    def _migrate_legacy_triggers(self):
        """Convert the single ``sound_clip_id`` column into a rotating list."""
        logger.info("Migrating legacy trigger_words table to sound_clip_ids")
        rows = self._conn.execute(
            "SELECT id, phrase, sound_clip_id, case_sensitive, enabled FROM trigger_words"
        ).fetchall()
        self._conn.execute("BEGIN")
        try:
            self._conn.execute("ALTER TABLE trigger_words RENAME TO trigger_words_legacy")
            self._conn.execute(_TRIGGER_TABLE)
            for row in rows:
                self._conn.execute(
                    "INSERT INTO trigger_words(id, phrase, sound_clip_ids, case_sensitive,"
                    " enabled, current_index) VALUES(?,?,?,?,?,0)",
                    (
                        row["id"],
                        row["phrase"],
                        json.dumps([row["sound_clip_id"]]),
                        1 if row["case_sensitive"] else 0,
                        0 if row["enabled"] == 0 else 1,
                    ),
                )
            self._conn.execute("DROP TABLE trigger_words_legacy")
        except sqlite3.DatabaseError:
            self._conn.rollback()
            raise
        self._conn.commit()
        logger.info(f"Migrated {len(rows)} legacy trigger(s)")

    @staticmethod
    def _clip_from_row(row: sqlite3.Row) -> SoundClip:
        return SoundClip(
            id=row["id"],
            name=row["name"],
            filename=row["filename"],
            format=row["format"],
            duration=row["duration"],
            size=row["size"],
            url=row["url"],
        )

    @staticmethod
    def _trigger_from_row(row: sqlite3.Row) -> Trigger:
        return Trigger(
            id=row["id"],
            phrase=row["phrase"],
            sound_clip_ids=[int(i) for i in json.loads(row["sound_clip_ids"])],
            case_sensitive=bool(row["case_sensitive"]),
            enabled=bool(row["enabled"]),
            current_index=row["current_index"],
        )

    def list_clips(self) -> list[SoundClip]:
        rows = self._conn.execute("SELECT * FROM sound_clips ORDER BY id").fetchall()
        return [self._clip_from_row(row) for row in rows]

    def get_clip(self, clip_id: int) -> Optional[SoundClip]:
        row = self._conn.execute("SELECT * FROM sound_clips WHERE id = ?", (clip_id,)).fetchone()
        return self._clip_from_row(row) if row else None

    def insert_clip(self, name, filename, format, duration, size, url) -> SoundClip:
        with self.transaction():
            cur = self._conn.execute(
                "INSERT INTO sound_clips(name, filename, format, duration, size, url)"
                " VALUES(?,?,?,?,?,?)",
                (name, filename, format, duration, size, url),
            )
        return SoundClip(
            id=int(cur.lastrowid),
            name=name,
            filename=filename,
            format=format,
            duration=duration,
            size=size,
            url=url,
        )

    def delete_clip(self, clip_id: int) -> bool:
        with self.transaction():
            cur = self._conn.execute("DELETE FROM sound_clips WHERE id = ?", (clip_id,))
        return cur.rowcount > 0

    def list_triggers(self) -> list[Trigger]:
        rows = self._conn.execute("SELECT * FROM trigger_words ORDER BY id").fetchall()
        return [self._trigger_from_row(row) for row in rows]

    def get_trigger(self, trigger_id: int) -> Optional[Trigger]:
        row = self._conn.execute(
            "SELECT * FROM trigger_words WHERE id = ?", (trigger_id,)
        ).fetchone()
        return self._trigger_from_row(row) if row else None

    def insert_trigger(
        self, phrase, sound_clip_ids, case_sensitive, enabled, current_index=0
    ) -> Trigger:
        with self.transaction():
            cur = self._conn.execute(
                "INSERT INTO trigger_words(phrase, sound_clip_ids, case_sensitive, enabled,"
                " current_index) VALUES(?,?,?,?,?)",
                (
                    phrase,
                    json.dumps(list(sound_clip_ids)),
                    int(case_sensitive),
                    int(enabled),
                    current_index,
                ),
            )
        return Trigger(
            id=int(cur.lastrowid),
            phrase=phrase,
            sound_clip_ids=list(sound_clip_ids),
            case_sensitive=case_sensitive,
            enabled=enabled,
            current_index=current_index,
        )

    def save_trigger(self, trigger: Trigger) -> None:
        with self.transaction():
            self._conn.execute(
                "UPDATE trigger_words SET phrase = ?, sound_clip_ids = ?, case_sensitive = ?,"
                " enabled = ?, current_index = ? WHERE id = ?",
                (
                    trigger.phrase,
                    json.dumps(trigger.sound_clip_ids),
                    int(trigger.case_sensitive),
                    int(trigger.enabled),
                    trigger.current_index,
                    trigger.id,
                ),
            )

    def delete_trigger(self, trigger_id: int) -> bool:
        with self.transaction():
            cur = self._conn.execute("DELETE FROM trigger_words WHERE id = ?", (trigger_id,))
        return cur.rowcount > 0

    def load_settings(self) -> Optional[Settings]:
        row = self._conn.execute("SELECT * FROM settings WHERE id = ?", (SETTINGS_ID,)).fetchone()
        if row is None:
            return None
        return Settings(
            id=row["id"],
            default_response_enabled=bool(row["default_response_enabled"]),
            default_response_sound_clip_ids=[
                int(i) for i in json.loads(row["default_response_sound_clip_ids"])
            ],
            default_response_delay_ms=row["default_response_delay"],
            default_response_index=row["default_response_index"],
        )

    def save_settings(self, settings: Settings) -> None:
        with self.transaction():
            self._conn.execute(
                "INSERT OR REPLACE INTO settings(id, default_response_enabled,"
                " default_response_sound_clip_ids, default_response_delay,"
                " default_response_index) VALUES(?,?,?,?,?)",
                (
                    SETTINGS_ID,
                    int(settings.default_response_enabled),
                    json.dumps(settings.default_response_sound_clip_ids),
                    settings.default_response_delay_ms,
                    settings.default_response_index,
                ),
            )

    def clear(self) -> None:
        with self.transaction():
            self._conn.execute("DELETE FROM trigger_words")
            self._conn.execute("DELETE FROM sound_clips")
            self._conn.execute("DELETE FROM settings")

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._conn.rollback()
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self._conn.commit()

    def close(self) -> None:
        self._conn.close()
        logger.info("SQLite store closed")
