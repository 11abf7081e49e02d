"""Reusable UI components for atelier application."""

import streamlit as st

from ... import __version__
from ...logging_config import get_logger
from ..handlers.auth import get_auth_service, handle_sign_in, handle_sign_out

logger = get_logger(__name__)

PAGES = {"🖼️ Gallery": "gallery", "📤 Upload": "upload"}


def render_empty_state(title: str, description: str, icon: str = "📭") -> None:
    """
    Render an empty state message.

    Args:
        title: Main title for the empty state
        description: Description text
        icon: Emoji icon to display
    """
    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown(
            f"""
        <div style='text-align: center; padding: 2rem 0;'>
            <div style='font-size: 4rem; margin-bottom: 1rem;'>{icon}</div>
            <h3 style='color: #666; margin-bottom: 1rem;'>{title}</h3>
            <p style='color: #888;'>{description}</p>
        </div>
        """,
            unsafe_allow_html=True,
        )


def render_error_message(error_type: str, message: str, details: str | None = None) -> None:
    """
    Render a standardized error message.

    Args:
        error_type: Type of error (e.g., "Upload Error")
        message: Main error message
        details: Additional error details (optional)
    """
    st.error(f"**{error_type}:** {message}")

    if details:
        with st.expander("🔍 Details"):
            st.code(details)


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Returns:
        str: Formatted file size (e.g., "1.5 MB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def render_header() -> None:
    st.markdown("# 📷 Atelier")
    st.caption("Photographs, places and the stories behind them")
    st.divider()


def render_sidebar() -> None:
    """Render navigation and the sign-in / sign-out box."""
    auth_service = get_auth_service()
    signed_in = auth_service.is_authenticated()

    with st.sidebar:
        st.markdown("### 📷 Atelier")
        st.divider()

        current_page = st.session_state.current_page
        for page_name, page_key in PAGES.items():
            if page_key == "upload" and not signed_in:
                continue
            if st.button(
                page_name,
                key=f"nav_{page_key}",
                use_container_width=True,
                type="primary" if page_key == current_page else "secondary",
            ):
                logger.info("page_navigation", from_page=current_page, to_page=page_key)
                st.session_state.next_page = page_key
                st.rerun()

        st.divider()

        if signed_in:
            user = auth_service.get_current_user()
            st.markdown(f"📧 {user.email if user else 'unknown'}")
            if st.button("Sign out", use_container_width=True):
                handle_sign_out()
                st.rerun()
            return

        st.subheader("🔐 Admin sign-in")
        if auth_service.local_mode:
            st.caption("Development mode: local administrator account")

        with st.form("sign_in_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", use_container_width=True)

        if submitted and handle_sign_in(email, password):
            st.rerun()

        if st.session_state.auth_error:
            st.error(st.session_state.auth_error)


def render_footer() -> None:
    st.divider()
    st.markdown(
        f"""
    <div style='text-align: center; color: #666; font-size: 0.8em;'>
        <strong>Atelier v{__version__}</strong>
    </div>
    """,
        unsafe_allow_html=True,
    )
