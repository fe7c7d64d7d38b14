import sqlite3
from datetime import datetime
from pathlib import Path

from clipsafe.config import DB_PATH
from clipsafe.models import (
    ClipboardRecord,
    ContentType,
    FileAttachment,
    ImageContent,
    Settings,
    TextContent,
    TextKind,
)


SCHEMA = """
CREATE TABLE IF NOT EXISTS clipboard (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    type         TEXT NOT NULL CHECK(type IN ('text', 'html', 'rtf', 'image', 'files')),
    encrypted    INTEGER NOT NULL DEFAULT 0,
    star         INTEGER,
    created_date TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime'))
);

CREATE TABLE IF NOT EXISTS clipboard_text (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    clipboard_id INTEGER NOT NULL REFERENCES clipboard(id) ON DELETE CASCADE,
    type         TEXT NOT NULL CHECK(type IN ('text', 'html', 'rtf')),
    data         TEXT NOT NULL,
    UNIQUE (clipboard_id, type)
);

CREATE TABLE IF NOT EXISTS clipboard_image (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    clipboard_id INTEGER NOT NULL UNIQUE REFERENCES clipboard(id) ON DELETE CASCADE,
    data         BLOB NOT NULL,
    thumbnail    TEXT,
    extension    TEXT,
    width        INTEGER,
    height       INTEGER,
    size         TEXT
);

CREATE TABLE IF NOT EXISTS clipboard_file (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    clipboard_id INTEGER NOT NULL REFERENCES clipboard(id) ON DELETE CASCADE,
    name         TEXT NOT NULL,
    data         BLOB NOT NULL,
    extension    TEXT,
    mime_type    TEXT,
    size         INTEGER
);

CREATE TABLE IF NOT EXISTS settings (
    id           INTEGER PRIMARY KEY CHECK(id = 1),
    sync         INTEGER NOT NULL DEFAULT 0,
    encryption   INTEGER NOT NULL DEFAULT 0
);

INSERT OR IGNORE INTO settings (id) VALUES (1);

CREATE INDEX IF NOT EXISTS idx_clipboard_encrypted ON clipboard(encrypted);
CREATE INDEX IF NOT EXISTS idx_clipboard_file_parent ON clipboard_file(clipboard_id);
"""


class StorageManager:
    """SQLite-backed clipboard and settings store.

    A record and its sub-content are always written in one transaction, so a
    reader never sees ciphertext children under a plaintext parent or the
    other way round.
    """

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._conn = sqlite3.connect(self._db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self.init_db()

    def init_db(self) -> None:
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def upsert(self, record: ClipboardRecord) -> int:
        """Insert ``record`` or replace the stored row with the same id.

        Sub-content rows are replaced wholesale. Returns the record id.
        """
        with self._conn:
            params = (
                record.content_type.value,
                int(record.encrypted),
                None if record.star is None else int(record.star),
                record.created_date.isoformat(),
            )
            if record.id is None:
                cursor = self._conn.execute(
                    "INSERT INTO clipboard (type, encrypted, star, created_date) VALUES (?, ?, ?, ?)",
                    params,
                )
                record_id = cursor.lastrowid
            else:
                self._conn.execute(
                    """INSERT INTO clipboard (id, type, encrypted, star, created_date)
                       VALUES (?, ?, ?, ?, ?)
                       ON CONFLICT(id) DO UPDATE SET
                           type = excluded.type,
                           encrypted = excluded.encrypted,
                           star = excluded.star,
                           created_date = excluded.created_date""",
                    (record.id, *params),
                )
                record_id = record.id
            self._replace_children(record_id, record)
        return record_id

    def _replace_children(self, record_id: int, record: ClipboardRecord) -> None:
        for table in ("clipboard_text", "clipboard_image", "clipboard_file"):
            self._conn.execute(f"DELETE FROM {table} WHERE clipboard_id = ?", (record_id,))

        for slot in record.text_slots():
            self._conn.execute(
                "INSERT INTO clipboard_text (clipboard_id, type, data) VALUES (?, ?, ?)",
                (record_id, slot.kind.value, slot.data),
            )

        image = record.image
        if image is not None:
            self._conn.execute(
                """INSERT INTO clipboard_image
                   (clipboard_id, data, thumbnail, extension, width, height, size)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (record_id, image.data, image.thumbnail, image.extension,
                 image.width, image.height, image.size),
            )

        for attachment in record.files:
            self._conn.execute(
                """INSERT INTO clipboard_file
                   (clipboard_id, name, data, extension, mime_type, size)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (record_id, attachment.name, attachment.data,
                 attachment.extension, attachment.mime_type, attachment.size),
            )

    def get_record(self, record_id: int) -> ClipboardRecord | None:
        row = self._conn.execute(
            "SELECT * FROM clipboard WHERE id = ?", (record_id,)
        ).fetchone()
        return self._row_to_record(row) if row else None

    def find_encrypted_records(self) -> list[ClipboardRecord]:
        return self._find_by_encrypted(True)

    def find_plaintext_records(self) -> list[ClipboardRecord]:
        return self._find_by_encrypted(False)

    def _find_by_encrypted(self, encrypted: bool) -> list[ClipboardRecord]:
        rows = self._conn.execute(
            "SELECT * FROM clipboard WHERE encrypted = ? ORDER BY created_date, id",
            (int(encrypted),),
        ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def delete_by_id(self, record_id: int) -> None:
        self._conn.execute("DELETE FROM clipboard WHERE id = ?", (record_id,))
        self._conn.commit()

    def count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM clipboard").fetchone()
        return row["cnt"]

    def count_encrypted(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM clipboard WHERE encrypted = 1").fetchone()
        return row["cnt"]

    def get_global_settings(self) -> Settings:
        row = self._conn.execute("SELECT sync, encryption FROM settings WHERE id = 1").fetchone()
        return Settings(sync=bool(row["sync"]), encryption=bool(row["encryption"]))

    def update_settings(self, settings: Settings) -> None:
        self._conn.execute(
            "UPDATE settings SET sync = ?, encryption = ? WHERE id = 1",
            (int(settings.sync), int(settings.encryption)),
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _row_to_record(self, row: sqlite3.Row) -> ClipboardRecord:
        record_id = row["id"]
        record = ClipboardRecord(
            id=record_id,
            content_type=ContentType(row["type"]),
            encrypted=bool(row["encrypted"]),
            created_date=datetime.fromisoformat(row["created_date"]),
            star=None if row["star"] is None else bool(row["star"]),
        )

        for text_row in self._conn.execute(
            "SELECT * FROM clipboard_text WHERE clipboard_id = ?", (record_id,)
        ).fetchall():
            kind = TextKind(text_row["type"])
            setattr(record, kind.value, TextContent(
                id=text_row["id"],
                clipboard_id=record_id,
                kind=kind,
                data=text_row["data"],
            ))

        image_row = self._conn.execute(
            "SELECT * FROM clipboard_image WHERE clipboard_id = ?", (record_id,)
        ).fetchone()
        if image_row:
            record.image = ImageContent(
                id=image_row["id"],
                clipboard_id=record_id,
                data=bytes(image_row["data"]),
                thumbnail=image_row["thumbnail"],
                extension=image_row["extension"],
                width=image_row["width"],
                height=image_row["height"],
                size=image_row["size"],
            )

        record.files = [
            FileAttachment(
                id=f["id"],
                clipboard_id=record_id,
                name=f["name"],
                data=bytes(f["data"]),
                extension=f["extension"],
                mime_type=f["mime_type"],
                size=f["size"],
            )
            for f in self._conn.execute(
                "SELECT * FROM clipboard_file WHERE clipboard_id = ? ORDER BY id", (record_id,)
            ).fetchall()
        ]
        return record
