"""Tests for upload handlers."""

from unittest.mock import MagicMock, patch

import pytest

from atelier.models.upload import CandidateStatus, UploadCandidate
from atelier.services.image_processor import ImageProcessor
from atelier.services.upload import UploadBatchResult
from atelier.ui.handlers.upload import (
    add_selected_files,
    clear_completed_if_due,
    clear_upload_session_state,
    initialize_upload_state,
    remove_candidate,
    run_upload,
)


def uploaded_file(file_id: str, name: str, data: bytes) -> MagicMock:
    file = MagicMock()
    file.file_id = file_id
    file.name = name
    file.getvalue.return_value = data
    return file


@pytest.fixture
def upload_state(session_state):
    session_state.gallery_rerun_counter = 0
    initialize_upload_state()
    return session_state


class TestCandidateSelection:
    """Test cases for turning selected files into candidates."""

    @patch("atelier.ui.handlers.upload.get_shared_image_processor", return_value=ImageProcessor())
    def test_add_selected_files(self, mock_processor, upload_state, jpeg_bytes):
        added = add_selected_files([uploaded_file("f1", "a.jpg", jpeg_bytes), uploaded_file("f2", "b.jpg", jpeg_bytes)])

        assert added == 2
        assert [c.filename for c in upload_state.upload_candidates] == ["a.jpg", "b.jpg"]
        assert upload_state.upload_candidates[0].preview == jpeg_bytes

    @patch("atelier.ui.handlers.upload.get_shared_image_processor", return_value=ImageProcessor())
    def test_same_selection_is_not_added_twice(self, mock_processor, upload_state, jpeg_bytes):
        files = [uploaded_file("f1", "a.jpg", jpeg_bytes)]

        add_selected_files(files)
        added = add_selected_files(files)

        assert added == 0
        assert len(upload_state.upload_candidates) == 1

    def test_add_nothing(self, upload_state):
        with patch("atelier.ui.handlers.upload.get_shared_image_processor"):
            assert add_selected_files(None) == 0

    def test_remove_candidate(self, upload_state):
        upload_state.upload_candidates = [UploadCandidate("a.jpg", b"a"), UploadCandidate("b.jpg", b"b")]

        remove_candidate(0)
        remove_candidate(5)

        assert [c.filename for c in upload_state.upload_candidates] == ["b.jpg"]

    @patch("atelier.ui.handlers.upload.get_shared_image_processor", return_value=ImageProcessor())
    def test_removed_file_can_be_selected_again(self, mock_processor, upload_state, jpeg_bytes):
        files = [uploaded_file("f1", "a.jpg", jpeg_bytes)]
        add_selected_files(files)
        upload_state.upload_candidates[0].status = CandidateStatus.FAILED

        remove_candidate(0)

        assert upload_state.selected_file_ids == set()
        assert add_selected_files(files) == 1
        assert upload_state.upload_candidates[0].source_id == "f1"


class TestRunUpload:
    """Test cases for running a batch from the page."""

    @patch("atelier.ui.handlers.upload.time.monotonic", return_value=100.0)
    @patch("atelier.ui.handlers.upload.get_settings")
    @patch("atelier.ui.handlers.upload.get_upload_pipeline")
    def test_successful_batch_schedules_clear(self, mock_pipeline, mock_settings, mock_monotonic, upload_state):
        mock_settings.return_value.upload_clear_delay = 1.0
        result = UploadBatchResult(total=1, successful=1)
        mock_pipeline.return_value.process_batch.return_value = result

        assert run_upload() is result

        assert upload_state.last_upload_result is result
        assert upload_state.upload_clear_at == 101.0
        assert upload_state.gallery_rerun_counter == 1

    @patch("atelier.ui.handlers.upload.get_settings")
    @patch("atelier.ui.handlers.upload.get_upload_pipeline")
    def test_failed_batch_keeps_candidates(self, mock_pipeline, mock_settings, upload_state):
        mock_pipeline.return_value.process_batch.return_value = UploadBatchResult(total=1, failed=1)

        run_upload()

        assert upload_state.upload_clear_at is None
        assert upload_state.gallery_rerun_counter == 0

    def test_clear_completed_when_due(self, upload_state):
        done = UploadCandidate("a.jpg", b"a", uploaded=True, status=CandidateStatus.PERSISTED)
        duplicate = UploadCandidate("b.jpg", b"b", duplicate=True, status=CandidateStatus.DUPLICATE)
        upload_state.upload_candidates = [done, duplicate]
        upload_state.upload_clear_at = 50.0

        with patch("atelier.ui.handlers.upload.time.monotonic", return_value=49.0):
            assert clear_completed_if_due() is False
        with patch("atelier.ui.handlers.upload.time.monotonic", return_value=51.0):
            assert clear_completed_if_due() is True

        assert upload_state.upload_candidates == [duplicate]
        assert upload_state.upload_clear_at is None

    def test_clear_not_scheduled(self, upload_state):
        assert clear_completed_if_due() is False

    def test_clear_upload_session_state(self, upload_state):
        upload_state.upload_candidates = [UploadCandidate("a.jpg", b"a")]
        upload_state.selected_file_ids = {"f1"}

        clear_upload_session_state()

        assert upload_state.upload_candidates == []
        assert upload_state.selected_file_ids == set()
        assert upload_state.last_upload_result is None
