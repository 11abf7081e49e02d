"""Gallery handlers for atelier application."""

import streamlit as st

from ...error_handling import ValidationError
from ...logging_config import get_logger, log_user_action
from ...models.filter import Filter
from ...models.photo import Photo, Tag
from ...services.deletion import DeletionClient
from ...services.metadata import MetadataService, get_metadata_service
from ...utils.filtering import add_filter, apply_filters, collect_tags, remove_filter
from ...utils.sorting import SortKey, new_shuffle_seed, sort_photos
from .auth import get_auth_service, get_settings

logger = get_logger(__name__)


@st.cache_resource
def get_shared_metadata_service() -> MetadataService:
    """The process-wide metadata service for the configured database."""
    return get_metadata_service(get_settings().database_path)


@st.cache_data(ttl=300)
def load_portfolio(rerun_counter: int = 0) -> tuple[list[Photo], list[Tag]]:
    """
    Load every photo with its tags, plus the distinct tags in use.

    Args:
        rerun_counter: Bumped after uploads, edits and deletes to refresh the cache

    Returns:
        tuple: (photos, tags)
    """
    photos = get_shared_metadata_service().fetch_photos()
    tags = sorted(collect_tags(photos), key=lambda tag: tag.name.lower())
    logger.info("portfolio_loaded", photo_count=len(photos), tag_count=len(tags), rerun_counter=rerun_counter)
    return photos, tags


def refresh_portfolio() -> None:
    """Invalidate the cached portfolio so the next render re-fetches it."""
    st.session_state.gallery_rerun_counter = st.session_state.get("gallery_rerun_counter", 0) + 1


def initialize_gallery_state() -> None:
    """Initialize session state variables for the gallery."""
    if "gallery_rerun_counter" not in st.session_state:
        st.session_state.gallery_rerun_counter = 0
    if "active_filters" not in st.session_state:
        st.session_state.active_filters = []
    if "sort_key" not in st.session_state:
        st.session_state.sort_key = SortKey.CAPTURE_DATE
    if "shuffle_seed" not in st.session_state:
        st.session_state.shuffle_seed = None
    if "editing_photo_id" not in st.session_state:
        st.session_state.editing_photo_id = None


def select_filter(criterion: Filter) -> None:
    st.session_state.active_filters = add_filter(st.session_state.active_filters, criterion)
    st.session_state.search_query = ""
    logger.debug("filter_added", type=criterion.type.value, value=criterion.value)


def deselect_filter(criterion: Filter) -> None:
    st.session_state.active_filters = remove_filter(st.session_state.active_filters, criterion)


def reset_filters() -> None:
    st.session_state.active_filters = []


def change_sort_key(key: SortKey) -> None:
    """Switch the sort order; selecting shuffle draws one new seed."""
    if key == SortKey.RANDOM and st.session_state.sort_key != SortKey.RANDOM:
        st.session_state.shuffle_seed = new_shuffle_seed()
    st.session_state.sort_key = key


def displayed_photos(photos: list[Photo]) -> list[Photo]:
    """The filtered and sorted list the grid and lightbox work on."""
    filtered = apply_filters(photos, st.session_state.active_filters)
    return sort_photos(filtered, st.session_state.sort_key, seed=st.session_state.shuffle_seed)


def save_photo_edits(photo_id: str, title: str, description: str, tags_text: str) -> Photo:
    """
    Persist edited caption fields and the tag set of a photo.

    Raises:
        ValidationError: If the title is empty
        DatabaseError: If the update fails
    """
    title = title.strip()
    if not title:
        raise ValidationError("Title is required", code="title_required", user_message="A title is required.")

    tag_names: list[str] = []
    for part in tags_text.split(","):
        name = part.strip()
        if name and name not in tag_names:
            tag_names.append(name)

    photo = get_shared_metadata_service().update_photo(photo_id, title, description.strip(), tag_names)
    user = get_auth_service().get_current_user()
    log_user_action(user.user_id if user else "unknown", "photo_edited", photo_id=photo_id, tag_count=len(tag_names))
    refresh_portfolio()
    return photo


def delete_photo(photo: Photo) -> dict:
    """
    Delete a photo through the backend endpoint and refresh the gallery.

    Raises:
        AuthenticationError: If nobody is signed in
        DeletionError: If the endpoint reports a failure
    """
    result = DeletionClient(get_auth_service(), get_settings()).delete_photo(photo)
    refresh_portfolio()
    return result
