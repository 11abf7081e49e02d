"""Upload page for atelier application."""

import time

import streamlit as st

from ...error_handling import AtelierError
from ...logging_config import get_logger
from ..components.common import render_error_message
from ..components.upload import render_candidate_editor, render_upload_results
from ..handlers.auth import get_settings, is_admin
from ..handlers.upload import (
    add_selected_files,
    clear_completed_if_due,
    get_shared_image_processor,
    initialize_upload_state,
    run_upload,
)

logger = get_logger(__name__)


def render_upload_page() -> None:
    """Render the administrator upload page."""
    if not is_admin():
        st.warning("Sign in to upload photos.")
        return

    initialize_upload_state()
    settings = get_settings()
    max_size_mb = settings.max_file_size / (1024 * 1024)

    st.markdown("### 📤 Upload photos")
    if not settings.image_host_configured:
        render_error_message("Upload Error", "The image host is not configured (CLOUDINARY_CLOUD_NAME / CLOUDINARY_UPLOAD_PRESET).")
        return

    extensions = sorted(ext.lstrip(".") for ext in get_shared_image_processor().SUPPORTED_FORMATS)
    uploaded_files = st.file_uploader(
        "Drag and drop photos here, or click to browse",
        type=extensions,
        accept_multiple_files=True,
        help=f"Supported: {', '.join(extensions).upper()}. Maximum {max_size_mb:.0f}MB per file.",
        key="photo_uploader",
    )
    if uploaded_files:
        add_selected_files(uploaded_files)

    candidates = st.session_state.upload_candidates
    if not candidates:
        st.info("Select one or more photos to start. Keywords embedded in the files pre-fill the tags.")
        return

    for index, candidate in enumerate(candidates):
        render_candidate_editor(candidate, index)

    pending = [candidate for candidate in candidates if not candidate.is_finished]
    if st.button(f"Upload all ({len(pending)})", type="primary", disabled=not pending, use_container_width=True):
        progress = st.progress(0.0, text="Uploading...")

        def update_progress(candidate, index: int, total: int) -> None:
            progress.progress((index + 1) / total, text=f"{candidate.filename}: {candidate.status.value}")

        try:
            result = run_upload(progress_callback=update_progress)
        except AtelierError as e:
            render_error_message("Upload Error", e.user_message, str(e))
            return

        render_upload_results(result)
        if result.successful:
            time.sleep(settings.upload_clear_delay)
            clear_completed_if_due()
            st.rerun()

    elif st.session_state.last_upload_result is not None:
        render_upload_results(st.session_state.last_upload_result)
