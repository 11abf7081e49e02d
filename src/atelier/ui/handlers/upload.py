"""Upload handlers for atelier application."""

import time
from typing import Any

import streamlit as st

from ...logging_config import get_logger
from ...models.upload import UploadCandidate
from ...services.geocoding import ReverseGeocoder
from ...services.image_processor import ImageProcessor, get_image_processor
from ...services.storage import StorageService
from ...services.upload import UploadBatchResult, UploadPipeline, build_candidate, clear_completed
from .auth import get_settings
from .gallery import get_shared_metadata_service, refresh_portfolio

logger = get_logger(__name__)


@st.cache_resource
def get_shared_image_processor() -> ImageProcessor:
    settings = get_settings()
    return get_image_processor(max_file_size=settings.max_file_size, min_file_size=settings.min_file_size)


def get_upload_pipeline() -> UploadPipeline:
    """
    Build the pipeline from the shared services.

    Raises:
        StorageError: If the image host is not configured
    """
    settings = get_settings()
    return UploadPipeline(
        metadata_service=get_shared_metadata_service(),
        storage_service=StorageService(settings),
        image_processor=get_shared_image_processor(),
        geocoder=ReverseGeocoder(settings),
    )


def initialize_upload_state() -> None:
    """Initialize session state variables for upload management."""
    if "upload_candidates" not in st.session_state:
        st.session_state.upload_candidates = []
    if "selected_file_ids" not in st.session_state:
        st.session_state.selected_file_ids = set()
    if "last_upload_result" not in st.session_state:
        st.session_state.last_upload_result = None
    if "upload_clear_at" not in st.session_state:
        st.session_state.upload_clear_at = None


def add_selected_files(uploaded_files: list[Any]) -> int:
    """
    Turn newly selected files into candidates; files already added are skipped.

    Args:
        uploaded_files: Streamlit UploadedFile objects

    Returns:
        Number of candidates added
    """
    image_processor = get_shared_image_processor()
    added = 0
    for uploaded_file in uploaded_files or []:
        if uploaded_file.file_id in st.session_state.selected_file_ids:
            continue
        st.session_state.selected_file_ids.add(uploaded_file.file_id)

        candidate = build_candidate(uploaded_file.name, uploaded_file.getvalue(), image_processor)
        candidate.source_id = uploaded_file.file_id
        st.session_state.upload_candidates.append(candidate)
        added += 1
        logger.info("upload_candidate_added", filename=candidate.filename, keywords=len(candidate.exif_keywords))
    return added


def remove_candidate(index: int) -> None:
    candidates: list[UploadCandidate] = st.session_state.upload_candidates
    if 0 <= index < len(candidates):
        removed = candidates.pop(index)
        # Allow the same file to be selected again
        st.session_state.selected_file_ids.discard(removed.source_id)
        logger.debug("upload_candidate_removed", filename=removed.filename)


def run_upload(progress_callback: Any = None) -> UploadBatchResult:
    """Upload every pending candidate, then refresh the gallery."""
    pipeline = get_upload_pipeline()
    result = pipeline.process_batch(st.session_state.upload_candidates, progress_callback=progress_callback)

    st.session_state.last_upload_result = result
    if result.successful:
        refresh_portfolio()
        st.session_state.upload_clear_at = time.monotonic() + get_settings().upload_clear_delay
    return result


def clear_completed_if_due() -> bool:
    """
    Drop uploaded candidates once the success marks have been shown long enough.

    Returns:
        True if candidates were cleared
    """
    clear_at = st.session_state.upload_clear_at
    if clear_at is None or time.monotonic() < clear_at:
        return False

    st.session_state.upload_candidates = clear_completed(st.session_state.upload_candidates)
    st.session_state.upload_clear_at = None
    return True


def clear_upload_session_state() -> None:
    """Forget all candidates and results, e.g. when leaving the upload page."""
    st.session_state.upload_candidates = []
    st.session_state.selected_file_ids = set()
    st.session_state.last_upload_result = None
    st.session_state.upload_clear_at = None
