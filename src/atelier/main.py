"""
Main Streamlit application for atelier.

Run with:
    streamlit run src/atelier/main.py
"""

import streamlit as st

from atelier.error_handling import get_error_handler
from atelier.logging_config import configure_structured_logging, get_logger
from atelier.ui.components.common import render_footer, render_header, render_sidebar
from atelier.ui.handlers.auth import initialize_auth_state, is_admin
from atelier.ui.handlers.upload import clear_upload_session_state
from atelier.ui.pages.gallery import render_gallery_page
from atelier.ui.pages.upload import render_upload_page

configure_structured_logging()
logger = get_logger(__name__)


def initialize_session_state() -> None:
    """Initialize session state variables."""
    if "current_page" not in st.session_state:
        st.session_state.current_page = "gallery"

    initialize_auth_state()


def _apply_navigation() -> None:
    next_page = st.session_state.pop("next_page", None)
    if next_page is None:
        return

    if st.session_state.current_page == "upload" and next_page != "upload":
        clear_upload_session_state()
    st.session_state.current_page = next_page


def render_main_content() -> None:
    """Render the main content area based on the current page."""
    current_page = st.session_state.current_page

    if current_page == "upload" and not is_admin():
        st.session_state.current_page = current_page = "gallery"

    if current_page == "upload":
        render_upload_page()
    else:
        render_gallery_page()


def main() -> None:
    """Main application entry point."""
    st.set_page_config(
        page_title="Atelier - Photo Portfolio",
        page_icon="📷",
        layout="wide",
        initial_sidebar_state="expanded",
        menu_items={"Get Help": None, "Report a bug": None, "About": "Atelier - photo portfolio"},
    )

    try:
        initialize_session_state()
        _apply_navigation()

        render_header()
        render_sidebar()

        with st.container():
            render_main_content()

        render_footer()

    except Exception as e:
        logger.error("critical_application_error", error=str(e))
        error_info = get_error_handler().handle_error(e, {"operation": "main_application"})
        st.error(error_info.user_message)

        if st.button("🔄 Reload", type="primary"):
            st.rerun()


if __name__ == "__main__":
    main()
