"""
Models module for atelier application.

This module contains data models and schemas:
- Photo, Tag: persisted portfolio records
- Filter: an active gallery narrowing criterion
- UploadCandidate: transient per-file upload state
- DatabaseManager: DuckDB connection and schema management
"""

from .database import DatabaseManager, get_database_manager
from .filter import Filter, FilterType
from .photo import Photo, Tag
from .schema import get_schema_statements, validate_schema_compatibility
from .upload import CandidateStatus, UploadCandidate

__all__ = [
    "Photo",
    "Tag",
    "Filter",
    "FilterType",
    "UploadCandidate",
    "CandidateStatus",
    "DatabaseManager",
    "get_database_manager",
    "get_schema_statements",
    "validate_schema_compatibility",
]
