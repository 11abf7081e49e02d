"""Authentication handlers for atelier application."""

import streamlit as st

from ...config import Settings, load_settings
from ...error_handling import AtelierError
from ...logging_config import get_logger
from ...services.auth import SIGNED_IN, AuthService, Session

logger = get_logger(__name__)


@st.cache_resource
def get_settings() -> Settings:
    """Settings loaded once per server process."""
    return load_settings()


def get_auth_service() -> AuthService:
    """
    The AuthService for the current browser session.

    Each session gets its own service so signed-in state is never shared
    between visitors.
    """
    if "auth_service" not in st.session_state:
        service = AuthService(get_settings())
        st.session_state.auth_service = service
        st.session_state.auth_unsubscribe = service.on_auth_state_change(_sync_auth_state)
    return st.session_state.auth_service


def _sync_auth_state(event: str, session: Session | None) -> None:
    st.session_state.authenticated = event == SIGNED_IN and session is not None
    st.session_state.user_email = session.user.email if session else None
    logger.info("auth_state_changed", auth_event=event, authenticated=st.session_state.authenticated)


def initialize_auth_state() -> None:
    """Make sure auth keys exist and reflect the current (possibly expired) session."""
    if "authenticated" not in st.session_state:
        st.session_state.authenticated = False
    if "user_email" not in st.session_state:
        st.session_state.user_email = None
    if "auth_error" not in st.session_state:
        st.session_state.auth_error = None

    # Expiry is detected lazily; this emits SIGNED_OUT if the token ran out
    get_auth_service().get_session()


def handle_sign_in(email: str, password: str) -> bool:
    """
    Sign in and record any error for the sidebar.

    Returns:
        True on success
    """
    try:
        get_auth_service().sign_in(email, password)
    except AtelierError as e:
        st.session_state.auth_error = e.user_message
        return False

    st.session_state.auth_error = None
    return True


def handle_sign_out() -> None:
    get_auth_service().sign_out()
    if st.session_state.get("current_page") == "upload":
        st.session_state.current_page = "gallery"


def is_admin() -> bool:
    """True when an administrator is signed in."""
    return get_auth_service().is_authenticated()
