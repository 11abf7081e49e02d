"""Transient per-file upload state."""

from dataclasses import dataclass, field
from enum import Enum


class CandidateStatus(str, Enum):
    """Upload pipeline states for one candidate file."""

    PENDING = "pending"
    HASH_CHECKED = "hash_checked"
    DUPLICATE = "duplicate"
    UPLOADING = "uploading"
    HOST_UPLOADED = "host_uploaded"
    METADATA_EXTRACTED = "metadata_extracted"
    PERSISTED = "persisted"
    FAILED = "failed"


@dataclass
class UploadCandidate:
    """
    A file selected for upload together with its editable metadata.

    ``tags`` is the user-editable comma-separated tag string, pre-filled from
    EXIF keywords when the file was selected.
    """

    filename: str
    data: bytes = field(repr=False)
    title: str = ""
    description: str = ""
    tags: str = ""
    preview: bytes | None = field(default=None, repr=False)
    exif_keywords: list[str] = field(default_factory=list)
    file_hash: str | None = None
    status: CandidateStatus = CandidateStatus.PENDING
    uploaded: bool = False
    duplicate: bool = False
    duplicate_of: str | None = None
    photo_id: str | None = None
    error: str | None = None
    source_id: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_finished(self) -> bool:
        """Uploaded or skipped as a duplicate. Failed candidates can be retried."""
        return self.status in (CandidateStatus.PERSISTED, CandidateStatus.DUPLICATE)

    def reset_for_retry(self) -> None:
        self.status = CandidateStatus.PENDING
        self.file_hash = None
        self.error = None

    def tag_names(self) -> list[str]:
        """Trimmed, non-empty, distinct tag names from the comma-separated tag string."""
        names: list[str] = []
        for part in self.tags.split(","):
            name = part.strip()
            if name and name not in names:
                names.append(name)
        return names

    def resolved_title(self) -> str:
        """Edited title, falling back to the file name."""
        return self.title.strip() or self.filename
