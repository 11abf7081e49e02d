"""Gallery sort orders."""

import random
import secrets
from datetime import UTC, datetime
from enum import Enum

from ..models.photo import Photo


class SortKey(str, Enum):
    CAPTURE_DATE = "capture_date"
    INGESTION_DATE = "ingestion_date"
    LOCATION = "location"
    RANDOM = "random"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    SortKey.CAPTURE_DATE: "Date taken",
    SortKey.INGESTION_DATE: "Date added",
    SortKey.LOCATION: "Location",
    SortKey.RANDOM: "Shuffle",
}


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def capture_sort_value(photo: Photo) -> datetime:
    """Capture time, falling back to ingestion time when EXIF had none."""
    return _as_utc(photo.taken_at or photo.created_at)


def new_shuffle_seed() -> int:
    """Seed drawn once each time the shuffle order is selected."""
    return secrets.randbits(32)


def sort_photos(photos: list[Photo], key: SortKey, seed: int | None = None) -> list[Photo]:
    """
    Return the photos in a new list ordered by ``key``.

    Capture and ingestion dates sort newest first. Locations sort
    alphabetically ignoring case, with photos lacking a location last. The
    shuffle order is fully determined by ``seed`` so repeated renders keep it.

    Args:
        photos: Photos to order
        key: Sort key
        seed: Shuffle seed, only used for ``SortKey.RANDOM``

    Returns:
        New sorted list
    """
    if key == SortKey.CAPTURE_DATE:
        return sorted(photos, key=capture_sort_value, reverse=True)

    if key == SortKey.INGESTION_DATE:
        return sorted(photos, key=lambda photo: _as_utc(photo.created_at), reverse=True)

    if key == SortKey.LOCATION:
        return sorted(photos, key=lambda photo: (not photo.location, (photo.location or "").casefold()))

    # Stable starting order so the same seed gives the same shuffle regardless of input order
    shuffled = sorted(photos, key=lambda photo: photo.id)
    random.Random(seed).shuffle(shuffled)  # nosec B311
    return shuffled
