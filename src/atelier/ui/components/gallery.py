"""Gallery components for atelier application."""

import streamlit as st

from ...error_handling import AtelierError
from ...logging_config import get_logger
from ...models.filter import Filter, FilterType
from ...models.photo import Photo, Tag
from ...services.storage import display_url, thumbnail_url
from ...utils.filtering import build_suggestions, is_active, tag_counts
from ...utils.sorting import SortKey
from ..handlers.gallery import (
    change_sort_key,
    delete_photo,
    deselect_filter,
    reset_filters,
    save_photo_edits,
    select_filter,
)
from ..handlers.lightbox import KEY_CLOSE, KEY_NEXT, KEY_PREV, dismiss_lightbox, get_lightbox

logger = get_logger(__name__)

COLS_PER_ROW = 4


def render_search_box(photos: list[Photo], tags: list[Tag]) -> None:
    """Search input with clickable tag and location suggestions."""
    query = st.text_input(
        "Search",
        key="search_query",
        placeholder="Search tags, places or countries",
        label_visibility="collapsed",
    )

    suggestions = build_suggestions(photos, query or "", st.session_state.active_filters, tags=tags)
    if not suggestions:
        return

    cols = st.columns(min(len(suggestions), 4))
    for index, suggestion in enumerate(suggestions):
        icon = "🏷️" if suggestion.type == FilterType.TAG else "📍"
        with cols[index % len(cols)]:
            st.button(
                f"{icon} {suggestion.label} ({suggestion.count})",
                key=f"suggestion_{suggestion.type.value}_{suggestion.value}",
                on_click=select_filter,
                args=(suggestion,),
                use_container_width=True,
            )


def render_active_filters() -> None:
    """Chips for each active filter, plus a clear-all button."""
    filters: list[Filter] = st.session_state.active_filters
    if not filters:
        return

    cols = st.columns(len(filters) + 1)
    for index, criterion in enumerate(filters):
        icon = "🏷️" if criterion.type == FilterType.TAG else "📍"
        with cols[index]:
            st.button(
                f"{icon} {criterion.label} ✕",
                key=f"chip_{index}_{criterion.type.value}_{criterion.value}",
                on_click=deselect_filter,
                args=(criterion,),
            )
    with cols[-1]:
        st.button("Clear all", key="clear_filters", on_click=reset_filters)


def render_tag_bar(photos: list[Photo], tags: list[Tag]) -> None:
    """One button per tag with its photo count; clicking toggles the tag filter."""
    filters: list[Filter] = st.session_state.active_filters
    entries = [(None, len(photos))] + [(tag, count) for tag, count in tag_counts(photos, tags)]

    cols = st.columns(min(len(entries), 8))
    for index, (tag, count) in enumerate(entries):
        with cols[index % len(cols)]:
            if tag is None:
                st.button(
                    f"All ({count})",
                    key="tag_all",
                    on_click=reset_filters,
                    type="primary" if not filters else "secondary",
                    use_container_width=True,
                )
                continue

            criterion = Filter(FilterType.TAG, tag.name, tag.display_name, count)
            selected = is_active(filters, FilterType.TAG, tag.name)
            st.button(
                f"{tag.display_name} ({count})",
                key=f"tag_{tag.id}",
                on_click=deselect_filter if selected else select_filter,
                args=(criterion,),
                type="primary" if selected else "secondary",
                use_container_width=True,
            )


def render_sort_select() -> None:
    keys = list(SortKey)
    choice = st.selectbox(
        "Sort by",
        keys,
        index=keys.index(st.session_state.sort_key),
        format_func=lambda key: key.label,
    )
    if choice != st.session_state.sort_key:
        change_sort_key(choice)


def _open_lightbox(index: int, photo_ids: list[str]) -> None:
    get_lightbox().open(index, photo_ids)
    st.session_state.lightbox_visible = True


def render_photo_grid(photos: list[Photo], is_admin: bool) -> None:
    """
    Render photos in a grid of square thumbnails.

    Args:
        photos: Displayed (filtered and sorted) photos
        is_admin: Whether edit and delete controls are shown
    """
    photo_ids = [photo.id for photo in photos]

    for i in range(0, len(photos), COLS_PER_ROW):
        cols = st.columns(COLS_PER_ROW)
        for j, col in enumerate(cols):
            index = i + j
            if index >= len(photos):
                break
            with col:
                render_photo_card(photos[index], index, photo_ids, is_admin)


def render_photo_card(photo: Photo, index: int, photo_ids: list[str], is_admin: bool) -> None:
    st.image(thumbnail_url(photo.image_url), use_container_width=True)
    st.markdown(f"**{photo.title}**")
    if photo.location:
        st.caption(f"📍 {photo.location}")

    st.button(
        "🔍 View",
        key=f"view_{photo.id}",
        on_click=_open_lightbox,
        args=(index, photo_ids),
        use_container_width=True,
    )

    if is_admin:
        render_admin_controls(photo)


def render_admin_controls(photo: Photo) -> None:
    """Edit form and delete button for one photo."""
    with st.expander("✏️ Edit"):
        with st.form(f"edit_{photo.id}"):
            title = st.text_input("Title", value=photo.title)
            description = st.text_area("Description", value=photo.description)
            tags_text = st.text_input("Tags (comma separated)", value=photo.tags_as_text())
            saved = st.form_submit_button("Save")

        if saved:
            try:
                save_photo_edits(photo.id, title, description, tags_text)
                st.success("Saved")
                st.rerun()
            except AtelierError as e:
                st.error(e.user_message)

        confirm = st.checkbox("Confirm delete", key=f"confirm_delete_{photo.id}")
        if st.button("🗑️ Delete", key=f"delete_{photo.id}", disabled=not confirm, use_container_width=True):
            try:
                delete_photo(photo)
                st.rerun()
            except AtelierError as e:
                st.error(e.user_message)


def _press(key: str) -> None:
    get_lightbox().handle_key(key)
    st.session_state.lightbox_visible = get_lightbox().is_open
    st.rerun()


@st.dialog("Photo", width="large", on_dismiss=dismiss_lightbox)
def show_lightbox(photos_by_id: dict[str, Photo]) -> None:
    """Large view of the current photo with previous/next/close controls."""
    lightbox = get_lightbox()
    photo = photos_by_id.get(lightbox.current_photo_id or "")
    if photo is None:
        return

    st.image(display_url(photo.image_url), use_container_width=True)
    st.markdown(f"### {photo.title}")
    if photo.description:
        st.write(photo.description)

    details = []
    if photo.location:
        details.append(f"📍 {photo.location}")
    shot = photo.taken_at or photo.created_at
    details.append(f"📅 {shot.strftime('%Y-%m-%d')}")
    if photo.tags:
        details.append("🏷️ " + ", ".join(tag.display_name for tag in photo.tags))
    st.caption(" · ".join(details))

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("‹ Previous", use_container_width=True):
            _press(KEY_PREV)
    with col2:
        st.caption(f"{(lightbox.current_index or 0) + 1} / {len(lightbox.photo_ids)}")
        if st.button("× Close", use_container_width=True):
            _press(KEY_CLOSE)
    with col3:
        if st.button("Next ›", use_container_width=True):
            _press(KEY_NEXT)
