"""Gallery page for atelier application."""

import streamlit as st

from ...error_handling import AtelierError
from ...logging_config import get_logger
from ..components.common import render_empty_state, render_error_message
from ..components.gallery import (
    render_active_filters,
    render_photo_grid,
    render_search_box,
    render_sort_select,
    render_tag_bar,
    show_lightbox,
)
from ..handlers.auth import is_admin
from ..handlers.gallery import displayed_photos, initialize_gallery_state, load_portfolio
from ..handlers.lightbox import get_lightbox

logger = get_logger(__name__)


def render_gallery_page() -> None:
    """Render the public gallery: search, filters, sort, grid and lightbox."""
    initialize_gallery_state()

    try:
        photos, tags = load_portfolio(st.session_state.gallery_rerun_counter)
    except AtelierError as e:
        logger.error("gallery_page_error", error=str(e))
        render_error_message("Gallery Error", "The portfolio could not be loaded.", str(e))
        return

    if not photos:
        render_empty_state(
            title="No photos yet",
            description="The portfolio is empty. Sign in and upload the first photographs.",
            icon="📷",
        )
        return

    col1, col2 = st.columns([3, 1])
    with col1:
        render_search_box(photos, tags)
    with col2:
        render_sort_select()

    render_active_filters()
    render_tag_bar(photos, tags)
    st.divider()

    shown = displayed_photos(photos)

    lightbox = get_lightbox()
    lightbox.sync([photo.id for photo in shown])

    if not shown:
        st.info("No photos match the current filters.")
        return

    st.caption(f"{len(shown)} of {len(photos)} photos")
    render_photo_grid(shown, is_admin())

    if lightbox.is_open and st.session_state.get("lightbox_visible"):
        st.session_state.lightbox_visible = False
        show_lightbox({photo.id: photo for photo in shown})
