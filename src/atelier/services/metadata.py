"""
Metadata service for managing portfolio records with DuckDB.

This module owns every read and write against the relational store:

1. Fetching photos together with their tags (deduplicated by photo id)
2. Zero-or-one lookups by content hash and by tag name
3. Creating a photo with its tag associations in one transaction
4. Editing title, description and the tag set of a photo
5. Deleting a photo together with its association rows

Tag creation is an upsert against the UNIQUE constraint on ``tags.name``
rather than a separate lookup followed by an insert, so two uploads that
introduce the same new tag always end up pointing at one tag row.

Usage Examples:
    service = MetadataService("data/atelier.duckdb")

    existing = service.find_photo_by_hash(file_hash)
    if existing is None:
        photo = service.create_photo(Photo.create_new(...), ["beach", "sunset"])

    photos = service.fetch_photos()
"""

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

import duckdb

from ..error_handling import DatabaseError
from ..logging_config import get_logger, log_error, log_performance
from ..models.database import DatabaseManager, get_database_manager
from ..models.photo import Photo, Tag

logger = get_logger(__name__)

_PHOTO_COLUMNS = "p.id, p.image_url, p.public_id, p.title, p.description, p.location, p.taken_at, p.file_hash, p.created_at"


def _to_storage_timestamp(value: datetime | None) -> datetime | None:
    """Aware timestamps are stored as naive UTC; naive ones are stored as given."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _row_to_photo(row: tuple) -> Photo:
    created_at = row[8]
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return Photo(
        id=row[0],
        image_url=row[1],
        public_id=row[2],
        title=row[3],
        description=row[4] or "",
        location=row[5],
        taken_at=row[6],
        file_hash=row[7],
        created_at=created_at,
    )


class MetadataService:
    """
    Service for photo, tag and association records stored in DuckDB.

    Streamlit runs each browser session on its own thread while the DuckDB
    connection is shared, so every statement runs under a re-entrant lock.

    Attributes:
        db_path: Path to the DuckDB file (or ``:memory:``)
    """

    def __init__(self, db_path: str):
        """
        Initialize metadata service.

        Args:
            db_path: DuckDB database path
        """
        self.db_path = db_path
        self._db_manager: DatabaseManager | None = None
        self._lock = threading.RLock()

        logger.info("metadata_service_initialized", db_path=db_path)

    @property
    def db_manager(self) -> DatabaseManager:
        """Get database manager, initializing the schema if needed."""
        if self._db_manager is None:
            try:
                self._db_manager = get_database_manager(self.db_path)
            except RuntimeError as e:
                raise DatabaseError(
                    f"Failed to open database: {e}", code="database_unavailable", original_exception=e
                ) from e
        return self._db_manager

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            if self._db_manager is not None:
                self._db_manager.close()
                self._db_manager = None

    def __enter__(self) -> "MetadataService":
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[duckdb.DuckDBPyConnection]:
        """Run the enclosed statements atomically, rolling back on any error."""
        with self._lock:
            conn = self.db_manager.connect()
            conn.begin()
            try:
                yield conn
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.warning("transaction_rolled_back", operation=operation, error=str(e))
                if isinstance(e, DatabaseError):
                    raise
                raise DatabaseError(
                    f"Failed to {operation.replace('_', ' ')}: {e}",
                    code=f"{operation}_failed",
                    details={"operation": operation},
                    original_exception=e,
                ) from e

    def _query(self, operation: str, sql: str, parameters: tuple = ()) -> list[tuple]:
        with self._lock:
            try:
                return self.db_manager.connect().execute(sql, parameters).fetchall()
            except duckdb.Error as e:
                log_error(e, {"operation": operation})
                raise DatabaseError(
                    f"Failed to {operation.replace('_', ' ')}: {e}",
                    code=f"{operation}_failed",
                    details={"operation": operation},
                    original_exception=e,
                ) from e

    # Reads

    def fetch_photos(self) -> list[Photo]:
        """
        Fetch every photo with its tags, newest ingestion first.

        The join yields one row per photo/tag pair; rows are folded back into
        one Photo per id and duplicate tags on a photo are dropped.

        Returns:
            List of photos with their tags populated
        """
        start_time = time.perf_counter()
        rows = self._query(
            "fetch_photos",
            f"""
            SELECT {_PHOTO_COLUMNS}, t.id, t.name
            FROM photos p
            LEFT JOIN photo_tags pt ON pt.photo_id = p.id
            LEFT JOIN tags t ON t.id = pt.tag_id
            ORDER BY p.created_at DESC, p.id, t.name
            """,
        )

        photos: dict[str, Photo] = {}
        for row in rows:
            photo = photos.get(row[0])
            if photo is None:
                photo = _row_to_photo(row)
                photos[photo.id] = photo
            tag_id, tag_name = row[9], row[10]
            if tag_id is not None and all(tag.id != tag_id for tag in photo.tags):
                photo.tags.append(Tag(id=tag_id, name=tag_name))

        log_performance("fetch_photos", time.perf_counter() - start_time, photo_count=len(photos), row_count=len(rows))
        return list(photos.values())

    def get_photo_by_id(self, photo_id: str) -> Photo | None:
        """Get one photo with its tags, or None."""
        rows = self._query("get_photo", f"SELECT {_PHOTO_COLUMNS} FROM photos p WHERE p.id = ?", (photo_id,))
        if not rows:
            return None

        photo = _row_to_photo(rows[0])
        photo.tags = self._tags_for_photo(photo_id)
        return photo

    def _tags_for_photo(self, photo_id: str) -> list[Tag]:
        rows = self._query(
            "get_photo_tags",
            """
            SELECT t.id, t.name FROM photo_tags pt
            JOIN tags t ON t.id = pt.tag_id
            WHERE pt.photo_id = ?
            ORDER BY t.name
            """,
            (photo_id,),
        )
        return [Tag(id=row[0], name=row[1]) for row in rows]

    def find_photo_by_hash(self, file_hash: str) -> Photo | None:
        """
        Zero-or-one lookup of a stored photo by content hash.

        Returns:
            The existing photo (without tags) or None
        """
        rows = self._query(
            "find_photo_by_hash", f"SELECT {_PHOTO_COLUMNS} FROM photos p WHERE p.file_hash = ? LIMIT 1", (file_hash,)
        )
        return _row_to_photo(rows[0]) if rows else None

    def find_tag_by_name(self, name: str) -> Tag | None:
        """Zero-or-one lookup of a tag by exact name."""
        rows = self._query("find_tag", "SELECT id, name FROM tags WHERE name = ? LIMIT 1", (name,))
        return Tag(id=rows[0][0], name=rows[0][1]) if rows else None

    def get_photos_count(self) -> int:
        rows = self._query("count_photos", "SELECT COUNT(*) FROM photos")
        return int(rows[0][0]) if rows else 0

    # Writes

    def get_or_create_tag(self, name: str) -> Tag:
        """Return the tag with this exact name, creating it if absent."""
        with self._transaction("get_or_create_tag") as conn:
            return self._upsert_tag(conn, name)

    def _upsert_tag(self, conn: duckdb.DuckDBPyConnection, name: str) -> Tag:
        candidate = Tag.create_new(name)
        conn.execute("INSERT INTO tags (id, name) VALUES (?, ?) ON CONFLICT DO NOTHING", (candidate.id, name))
        row = conn.execute("SELECT id, name FROM tags WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise DatabaseError(f"Tag '{name}' missing after upsert", code="tag_upsert_failed")
        if row[0] == candidate.id:
            logger.info("tag_created", tag_id=row[0], name=name)
        return Tag(id=row[0], name=row[1])

    def _attach_tags(self, conn: duckdb.DuckDBPyConnection, photo_id: str, tag_names: list[str]) -> list[Tag]:
        tags: list[Tag] = []
        for name in tag_names:
            tag = self._upsert_tag(conn, name)
            conn.execute(
                "INSERT INTO photo_tags (photo_id, tag_id) VALUES (?, ?) ON CONFLICT DO NOTHING", (photo_id, tag.id)
            )
            if tag not in tags:
                tags.append(tag)
        return tags

    def create_photo(self, photo: Photo, tag_names: list[str] | None = None) -> Photo:
        """
        Persist a new photo and its tag associations atomically.

        Args:
            photo: New photo record (its ``tags`` field is ignored)
            tag_names: Trimmed tag names to attach

        Returns:
            The stored photo with its tags populated

        Raises:
            DatabaseError: If any statement fails; nothing is persisted then
        """
        with self._transaction("create_photo") as conn:
            conn.execute(
                """
                INSERT INTO photos (id, image_url, public_id, title, description, location, taken_at, file_hash, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    photo.id,
                    photo.image_url,
                    photo.public_id,
                    photo.title,
                    photo.description,
                    photo.location,
                    _to_storage_timestamp(photo.taken_at),
                    photo.file_hash,
                    _to_storage_timestamp(photo.created_at),
                ),
            )
            photo.tags = self._attach_tags(conn, photo.id, tag_names or [])

        logger.info("photo_saved", photo_id=photo.id, title=photo.title, tag_count=len(photo.tags))
        return photo

    def update_photo(self, photo_id: str, title: str, description: str, tag_names: list[str]) -> Photo:
        """
        Update the caption fields of a photo and replace its tag set.

        Associations for tags no longer listed are removed and missing ones
        are inserted, all in the same transaction as the caption update.

        Raises:
            DatabaseError: If the photo does not exist or a statement fails
        """
        with self._transaction("update_photo") as conn:
            if conn.execute("SELECT 1 FROM photos WHERE id = ?", (photo_id,)).fetchone() is None:
                raise DatabaseError(
                    f"Photo {photo_id} not found", code="photo_not_found", details={"photo_id": photo_id}
                )

            conn.execute("UPDATE photos SET title = ?, description = ? WHERE id = ?", (title, description, photo_id))

            wanted = {self._upsert_tag(conn, name).id for name in tag_names}
            current = {row[0] for row in conn.execute("SELECT tag_id FROM photo_tags WHERE photo_id = ?", (photo_id,)).fetchall()}

            for tag_id in current - wanted:
                conn.execute("DELETE FROM photo_tags WHERE photo_id = ? AND tag_id = ?", (photo_id, tag_id))
            for tag_id in wanted - current:
                conn.execute("INSERT INTO photo_tags (photo_id, tag_id) VALUES (?, ?)", (photo_id, tag_id))

        logger.info("photo_updated", photo_id=photo_id, tag_count=len(wanted))
        updated = self.get_photo_by_id(photo_id)
        if updated is None:
            raise DatabaseError(f"Photo {photo_id} vanished after update", code="photo_not_found")
        return updated

    def delete_photo(self, photo_id: str) -> bool:
        """
        Delete a photo record and its association rows.

        Returns:
            True if a photo was deleted, False if it did not exist
        """
        with self._transaction("delete_photo") as conn:
            if conn.execute("SELECT 1 FROM photos WHERE id = ?", (photo_id,)).fetchone() is None:
                logger.warning("photo_not_found_for_delete", photo_id=photo_id)
                return False

            conn.execute("DELETE FROM photo_tags WHERE photo_id = ?", (photo_id,))
            conn.execute("DELETE FROM photos WHERE id = ?", (photo_id,))

        logger.info("photo_deleted", photo_id=photo_id)
        return True

    def get_database_info(self) -> dict[str, Any]:
        """Row counts per table, for the sidebar status box."""
        counts = {}
        for table in ("photos", "tags", "photo_tags"):
            rows = self._query("count_rows", f"SELECT COUNT(*) FROM {table}")  # nosec B608
            counts[table] = int(rows[0][0])
        return {"db_path": self.db_path, **counts}


_metadata_services: dict[str, MetadataService] = {}
_metadata_services_lock = threading.Lock()


def get_metadata_service(db_path: str) -> MetadataService:
    """Get the shared MetadataService for a database path."""
    with _metadata_services_lock:
        if db_path not in _metadata_services:
            _metadata_services[db_path] = MetadataService(db_path)
        return _metadata_services[db_path]


def cleanup_metadata_services() -> None:
    """Close and forget every shared MetadataService."""
    with _metadata_services_lock:
        for service in _metadata_services.values():
            service.close()
        _metadata_services.clear()
