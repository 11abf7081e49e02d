"""Upload components for atelier application."""

import streamlit as st

from ...models.upload import CandidateStatus, UploadCandidate
from ...services.upload import UploadBatchResult
from ..handlers.upload import remove_candidate
from .common import format_file_size

_STATUS_BADGES = {
    CandidateStatus.PENDING: "⏳ Ready",
    CandidateStatus.HASH_CHECKED: "🔎 Checked",
    CandidateStatus.UPLOADING: "📤 Uploading",
    CandidateStatus.HOST_UPLOADED: "☁️ Hosted",
    CandidateStatus.METADATA_EXTRACTED: "🧭 Metadata read",
    CandidateStatus.PERSISTED: "✅ Uploaded",
    CandidateStatus.DUPLICATE: "♻️ Duplicate",
    CandidateStatus.FAILED: "❌ Failed",
}


def render_candidate_editor(candidate: UploadCandidate, index: int, disabled: bool = False) -> None:
    """
    Preview and editable title, description and tags for one candidate.

    Edits are written straight back to the candidate so the pipeline sees them.
    """
    with st.container(border=True):
        col1, col2 = st.columns([1, 3])

        with col1:
            if candidate.preview:
                st.image(candidate.preview, use_container_width=True)
            st.caption(f"{candidate.filename} · {format_file_size(candidate.size)}")
            st.markdown(_STATUS_BADGES[candidate.status])

        with col2:
            locked = disabled or candidate.is_finished
            candidate.title = st.text_input(
                "Title", value=candidate.title, placeholder=candidate.filename, key=f"title_{id(candidate)}", disabled=locked
            )
            candidate.description = st.text_area(
                "Description", value=candidate.description, key=f"description_{id(candidate)}", disabled=locked
            )
            candidate.tags = st.text_input(
                "Tags (comma separated)",
                value=candidate.tags,
                key=f"tags_{id(candidate)}",
                disabled=locked,
                help="Pre-filled from the keywords embedded in the file" if candidate.exif_keywords else None,
            )

            if candidate.error:
                if candidate.duplicate:
                    st.warning(candidate.error)
                else:
                    st.error(candidate.error)

            if not locked:
                st.button("Remove", key=f"remove_{id(candidate)}", on_click=remove_candidate, args=(index,))


def render_upload_results(result: UploadBatchResult) -> None:
    """Summary metrics and one line per processed file."""
    col1, col2, col3 = st.columns(3)
    col1.metric("Uploaded", result.successful)
    col2.metric("Duplicates", result.duplicates)
    col3.metric("Failed", result.failed)

    if result.success:
        st.success(result.summary)
    else:
        st.error(result.summary)

    with st.expander("Details", expanded=not result.success):
        for filename, message in result.messages:
            st.write(f"**{filename}**: {message}")
