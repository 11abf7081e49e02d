"""
Database schema definitions for atelier application.

This module contains SQL schema definitions for photos, tags and the
photo-tag association table.
"""

PHOTOS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS photos (
    id TEXT PRIMARY KEY,
    image_url TEXT NOT NULL,
    public_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    location TEXT,
    taken_at TIMESTAMP,
    file_hash TEXT NOT NULL UNIQUE,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

# Tag names are unique at the storage level so concurrent uploads that
# introduce the same new tag converge on one row.
TAGS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS tags (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);
"""

PHOTO_TAGS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS photo_tags (
    photo_id TEXT NOT NULL,
    tag_id TEXT NOT NULL,
    PRIMARY KEY (photo_id, tag_id)
);
"""

TABLE_SCHEMAS = {
    "photos": PHOTOS_TABLE_SCHEMA,
    "tags": TAGS_TABLE_SCHEMA,
    "photo_tags": PHOTO_TAGS_TABLE_SCHEMA,
}

TABLE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_photos_created_at ON photos(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_photo_tags_tag_id ON photo_tags(tag_id);",
]

REQUIRED_COLUMNS = {
    "photos": {"id", "image_url", "public_id", "title", "description", "location", "taken_at", "file_hash", "created_at"},
    "tags": {"id", "name"},
    "photo_tags": {"photo_id", "tag_id"},
}


def get_schema_statements() -> list[str]:
    """
    Get all database schema creation statements.

    Returns:
        List of SQL statements to create tables and indexes
    """
    return list(TABLE_SCHEMAS.values()) + TABLE_INDEXES


def validate_schema_compatibility() -> bool:
    """
    Validate that the table definitions cover every column the models use.

    Returns:
        True if schema is compatible, False otherwise
    """
    for table, columns in REQUIRED_COLUMNS.items():
        schema_lower = TABLE_SCHEMAS[table].lower()
        if any(column not in schema_lower for column in columns):
            return False
    return True
