"""
Photo and tag models for atelier application.

This module contains the Photo and Tag dataclasses that represent
portfolio records stored in DuckDB.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime


def _parse_timestamp(value: datetime | str | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class Tag:
    """A named label that can be attached to many photos."""

    id: str
    name: str

    @classmethod
    def create_new(cls, name: str) -> "Tag":
        return cls(id=str(uuid.uuid4()), name=name)

    @property
    def display_name(self) -> str:
        """Name with the first letter capitalised, as shown in the filter bar."""
        return self.name[:1].upper() + self.name[1:]

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "Tag":
        return cls(id=data["id"], name=data["name"])


@dataclass
class Photo:
    """
    Represents one photo in the portfolio.

    The binary lives on the image host; this record keeps the hosted URL and
    public identifier, the editable caption fields, the EXIF-derived location
    and capture time, and the SHA-256 content hash used for duplicate detection.
    """

    id: str
    image_url: str
    public_id: str
    title: str
    file_hash: str
    created_at: datetime
    description: str = ""
    location: str | None = None
    taken_at: datetime | None = None
    tags: list[Tag] = field(default_factory=list)

    @classmethod
    def create_new(
        cls,
        image_url: str,
        public_id: str,
        title: str,
        file_hash: str,
        description: str = "",
        location: str | None = None,
        taken_at: datetime | None = None,
        created_at: datetime | None = None,
    ) -> "Photo":
        """
        Create a new Photo with generated ID and current ingestion timestamp.

        Args:
            image_url: Secure URL returned by the image host
            public_id: Public identifier returned by the image host
            title: Display title
            file_hash: SHA-256 hex digest of the uploaded bytes
            description: Free-text caption
            location: Reverse-geocoded "place, country" string
            taken_at: Capture time from EXIF
            created_at: Ingestion time (defaults to now)

        Returns:
            New Photo instance without tags
        """
        return cls(
            id=str(uuid.uuid4()),
            image_url=image_url,
            public_id=public_id,
            title=title,
            file_hash=file_hash,
            description=description,
            location=location,
            taken_at=taken_at,
            created_at=created_at or datetime.now(UTC),
        )

    @property
    def tag_names(self) -> list[str]:
        return [tag.name for tag in self.tags]

    def tags_as_text(self) -> str:
        """Comma-separated tag names, the format used by the edit forms."""
        return ", ".join(self.tag_names)

    def has_tag(self, name: str) -> bool:
        """Case-insensitive tag membership."""
        wanted = name.lower()
        return any(tag.name.lower() == wanted for tag in self.tags)

    def to_dict(self) -> dict:
        """
        Convert Photo to dictionary.

        Returns:
            Dictionary representation with ISO timestamps and nested tags
        """
        return {
            "id": self.id,
            "image_url": self.image_url,
            "public_id": self.public_id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "taken_at": self.taken_at.isoformat() if self.taken_at else None,
            "file_hash": self.file_hash,
            "created_at": self.created_at.isoformat(),
            "tags": [tag.to_dict() for tag in self.tags],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Photo":
        """
        Create Photo from dictionary (e.g., from a database row).

        Timestamps may be ``datetime`` objects or ISO strings.
        """
        created_at = _parse_timestamp(data["created_at"])
        if created_at is None:
            raise ValueError("created_at is required")

        return cls(
            id=data["id"],
            image_url=data["image_url"],
            public_id=data["public_id"],
            title=data.get("title") or "",
            description=data.get("description") or "",
            location=data.get("location"),
            taken_at=_parse_timestamp(data.get("taken_at")),
            file_hash=data["file_hash"],
            created_at=created_at,
            tags=[tag if isinstance(tag, Tag) else Tag.from_dict(tag) for tag in data.get("tags", [])],
        )

    def validate(self) -> bool:
        """
        Validate the Photo instance.

        Returns:
            True if valid, False otherwise
        """
        if not self.id or not self.image_url or not self.public_id:
            return False

        if not self.file_hash or len(self.file_hash) != 64:
            return False

        return True
