"""Tests for gallery handlers."""

from unittest.mock import MagicMock, patch

import pytest

from atelier.error_handling import ValidationError
from atelier.models.filter import Filter, FilterType
from atelier.ui.handlers.gallery import (
    change_sort_key,
    delete_photo,
    deselect_filter,
    displayed_photos,
    initialize_gallery_state,
    refresh_portfolio,
    reset_filters,
    save_photo_edits,
    select_filter,
)
from atelier.utils.sorting import SortKey


@pytest.fixture
def gallery_state(session_state):
    initialize_gallery_state()
    return session_state


class TestGalleryState:
    """Test cases for gallery session state."""

    def test_initialize_defaults(self, gallery_state):
        assert gallery_state.active_filters == []
        assert gallery_state.sort_key == SortKey.CAPTURE_DATE
        assert gallery_state.shuffle_seed is None
        assert gallery_state.gallery_rerun_counter == 0

    def test_initialize_keeps_existing_values(self, session_state):
        session_state.sort_key = SortKey.LOCATION

        initialize_gallery_state()

        assert session_state.sort_key == SortKey.LOCATION

    def test_refresh_bumps_counter(self, gallery_state):
        refresh_portfolio()
        refresh_portfolio()

        assert gallery_state.gallery_rerun_counter == 2


class TestFilterCallbacks:
    """Test cases for filter selection callbacks."""

    def test_select_filter_clears_search(self, gallery_state):
        gallery_state.search_query = "bea"
        beach = Filter(FilterType.TAG, "beach", "Beach", 2)

        select_filter(beach)

        assert gallery_state.active_filters == [beach]
        assert gallery_state.search_query == ""

    def test_deselect_filter(self, gallery_state):
        beach = Filter(FilterType.TAG, "beach", "Beach")
        italy = Filter(FilterType.LOCATION, "Italy", "Italy")
        gallery_state.active_filters = [beach, italy]

        deselect_filter(beach)

        assert gallery_state.active_filters == [italy]

    def test_reset_filters(self, gallery_state):
        gallery_state.active_filters = [Filter(FilterType.TAG, "beach", "Beach")]

        reset_filters()

        assert gallery_state.active_filters == []


class TestSortCallbacks:
    """Test cases for sort selection."""

    @patch("atelier.ui.handlers.gallery.new_shuffle_seed", side_effect=[11, 22])
    def test_seed_drawn_once_per_selection(self, mock_seed, gallery_state):
        """Test that re-selecting shuffle keeps the seed until another order is chosen."""
        change_sort_key(SortKey.RANDOM)
        assert gallery_state.shuffle_seed == 11

        change_sort_key(SortKey.RANDOM)
        assert gallery_state.shuffle_seed == 11

        change_sort_key(SortKey.LOCATION)
        change_sort_key(SortKey.RANDOM)
        assert gallery_state.shuffle_seed == 22
        assert mock_seed.call_count == 2

    def test_displayed_photos_filters_then_sorts(self, gallery_state, make_photo):
        photos = [
            make_photo("Zurich", ["city"], location="Zurich, Switzerland"),
            make_photo("Peak", ["mountain"], location="Cortina, Italy"),
            make_photo("Amalfi", ["city"], location="Amalfi, Italy"),
        ]
        gallery_state.active_filters = [Filter(FilterType.TAG, "city", "City")]
        gallery_state.sort_key = SortKey.LOCATION

        assert [photo.title for photo in displayed_photos(photos)] == ["Amalfi", "Zurich"]

    def test_displayed_photos_shuffle_is_stable(self, gallery_state, make_photo):
        photos = [make_photo(str(i)) for i in range(8)]
        gallery_state.sort_key = SortKey.RANDOM
        gallery_state.shuffle_seed = 7

        assert displayed_photos(photos) == displayed_photos(photos)


class TestPhotoMutations:
    """Test cases for edit and delete handlers."""

    @patch("atelier.ui.handlers.gallery.get_auth_service")
    @patch("atelier.ui.handlers.gallery.get_shared_metadata_service")
    def test_save_photo_edits(self, mock_get_service, mock_get_auth, gallery_state):
        service = MagicMock()
        mock_get_service.return_value = service

        save_photo_edits("photo-1", "  New title ", " Caption ", "beach, sunset, beach, ")

        service.update_photo.assert_called_once_with("photo-1", "New title", "Caption", ["beach", "sunset"])
        assert gallery_state.gallery_rerun_counter == 1

    @patch("atelier.ui.handlers.gallery.get_shared_metadata_service")
    def test_save_photo_edits_requires_title(self, mock_get_service, gallery_state):
        with pytest.raises(ValidationError) as exc_info:
            save_photo_edits("photo-1", "   ", "", "")

        assert exc_info.value.code == "title_required"
        mock_get_service.return_value.update_photo.assert_not_called()

    @patch("atelier.ui.handlers.gallery.get_settings")
    @patch("atelier.ui.handlers.gallery.get_auth_service")
    @patch("atelier.ui.handlers.gallery.DeletionClient")
    def test_delete_photo(self, mock_client_class, mock_get_auth, mock_get_settings, gallery_state, make_photo):
        photo = make_photo("Gone")
        mock_client_class.return_value.delete_photo.return_value = {"success": True, "host_deleted": True}

        result = delete_photo(photo)

        assert result == {"success": True, "host_deleted": True}
        mock_client_class.assert_called_once_with(mock_get_auth.return_value, mock_get_settings.return_value)
        mock_client_class.return_value.delete_photo.assert_called_once_with(photo)
        assert gallery_state.gallery_rerun_counter == 1
