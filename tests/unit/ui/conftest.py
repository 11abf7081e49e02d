"""Configuration for UI unit tests."""

from unittest.mock import patch

import pytest
import streamlit as st


class FakeSessionState(dict):
    """Dict with attribute access, standing in for ``st.session_state``."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __setattr__(self, name, value):
        self[name] = value

    def __delattr__(self, name):
        del self[name]


@pytest.fixture(autouse=True)
def clear_streamlit_caches():
    """Cached resources must not leak between tests."""
    st.cache_data.clear()
    st.cache_resource.clear()
    yield


@pytest.fixture
def session_state():
    state = FakeSessionState()
    with patch("streamlit.session_state", state):
        yield state
