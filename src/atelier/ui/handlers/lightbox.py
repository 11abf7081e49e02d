"""Lightbox cursor over the currently displayed photo list."""

from collections.abc import Callable

import streamlit as st

from ...logging_config import get_logger

logger = get_logger(__name__)

KEY_NEXT = "ArrowRight"
KEY_PREV = "ArrowLeft"
KEY_CLOSE = "Escape"


class LightboxController:
    """
    Either closed, or open at an index into the displayed photo ids.

    ``next`` and ``prev`` wrap around in both directions. When the displayed
    list changes while open, ``sync`` keeps the cursor on the same photo if it
    is still shown and otherwise clamps it into range.
    """

    def __init__(
        self,
        request_fullscreen: Callable[[], None] | None = None,
        exit_fullscreen: Callable[[], None] | None = None,
    ) -> None:
        self._photo_ids: list[str] = []
        self._index: int | None = None
        self._request_fullscreen = request_fullscreen
        self._exit_fullscreen = exit_fullscreen
        self._fullscreen = False

    @property
    def is_open(self) -> bool:
        return self._index is not None

    @property
    def current_index(self) -> int | None:
        return self._index

    @property
    def current_photo_id(self) -> str | None:
        return None if self._index is None else self._photo_ids[self._index]

    @property
    def photo_ids(self) -> list[str]:
        return list(self._photo_ids)

    def open(self, index: int, photo_ids: list[str]) -> None:
        """
        Open at ``index`` of the displayed list and ask for full-screen.

        Raises:
            IndexError: If ``index`` is outside the list
        """
        if not 0 <= index < len(photo_ids):
            raise IndexError(f"Lightbox index {index} out of range for {len(photo_ids)} photos")

        self._photo_ids = list(photo_ids)
        self._index = index
        logger.debug("lightbox_opened", index=index, photo_id=photo_ids[index])

        if self._request_fullscreen is not None:
            try:
                self._request_fullscreen()
                self._fullscreen = True
            except Exception as e:
                logger.warning("fullscreen_request_failed", error=str(e))

    def next(self) -> None:
        if self._index is not None:
            self._index = (self._index + 1) % len(self._photo_ids)

    def prev(self) -> None:
        if self._index is not None:
            self._index = (self._index - 1) % len(self._photo_ids)

    def close(self) -> None:
        if self._index is None:
            return

        if self._fullscreen and self._exit_fullscreen is not None:
            try:
                self._exit_fullscreen()
            except Exception as e:
                logger.warning("fullscreen_exit_failed", error=str(e))
        self._fullscreen = False
        self._index = None
        logger.debug("lightbox_closed")

    def handle_key(self, key: str) -> bool:
        """
        Apply a keyboard binding. Keys are ignored while closed.

        Returns:
            True if the key was handled
        """
        if not self.is_open:
            return False

        if key == KEY_NEXT:
            self.next()
        elif key == KEY_PREV:
            self.prev()
        elif key == KEY_CLOSE:
            self.close()
        else:
            return False
        return True

    def sync(self, photo_ids: list[str]) -> None:
        """Re-anchor the cursor after the displayed list changed."""
        if self._index is None:
            return

        if not photo_ids:
            self.close()
            self._photo_ids = []
            return

        current_id = self._photo_ids[self._index]
        self._photo_ids = list(photo_ids)
        if current_id in self._photo_ids:
            self._index = self._photo_ids.index(current_id)
        else:
            self._index = min(self._index, len(self._photo_ids) - 1)


def get_lightbox() -> LightboxController:
    """The lightbox for the current browser session."""
    if "lightbox" not in st.session_state:
        st.session_state.lightbox = LightboxController()
    return st.session_state.lightbox


def dismiss_lightbox() -> None:
    """Called when the dialog is closed with its own close control or a click outside it."""
    lightbox = get_lightbox()
    if lightbox.is_open:
        logger.debug("lightbox_dismissed", index=lightbox.current_index)
        lightbox.close()
    st.session_state.lightbox_visible = False
