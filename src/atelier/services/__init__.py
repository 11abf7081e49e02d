"""Services module for atelier application."""

from .auth import AuthService, Session, UserInfo
from .deletion import DeletionClient
from .geocoding import ReverseGeocoder, format_location
from .image_processor import ImageProcessor, compute_file_hash
from .metadata import MetadataService, get_metadata_service
from .storage import StorageService, display_url, thumbnail_url
from .upload import UploadBatchResult, UploadPipeline, build_candidate, clear_completed

__all__ = [
    "AuthService",
    "Session",
    "UserInfo",
    "DeletionClient",
    "ReverseGeocoder",
    "format_location",
    "ImageProcessor",
    "compute_file_hash",
    "MetadataService",
    "get_metadata_service",
    "StorageService",
    "display_url",
    "thumbnail_url",
    "UploadBatchResult",
    "UploadPipeline",
    "build_candidate",
    "clear_completed",
]
