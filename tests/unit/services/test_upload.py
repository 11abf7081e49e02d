"""
Unit tests for the upload pipeline.
"""

from datetime import datetime
from itertools import count
from unittest.mock import MagicMock, patch

import pytest

from atelier.error_handling import DatabaseError, StorageError
from atelier.models.upload import CandidateStatus, UploadCandidate
from atelier.services.image_processor import ExifMetadata, ImageProcessor, compute_file_hash
from atelier.services.storage import HostedImage, StorageService
from atelier.services.upload import UploadBatchResult, UploadPipeline, build_candidate, clear_completed


def hosted_image_factory():
    numbers = count(1)

    def upload_image(data, filename):
        n = next(numbers)
        return HostedImage(
            secure_url=f"https://res.example.test/demo-cloud/image/upload/v1/portfolio/img{n}.jpg",
            public_id=f"portfolio/img{n}",
        )

    return upload_image


class TestBuildCandidate:
    """Test cases for candidate creation at file selection."""

    def test_prefills_tags_and_title_from_exif(self, jpeg_bytes):
        processor = MagicMock(spec=ImageProcessor)
        processor.extract_keywords.return_value = ["beach", "sunset"]
        processor.extract_description.return_value = "Evening at the pier"

        candidate = build_candidate("IMG_1.jpg", jpeg_bytes, processor)

        assert candidate.tags == "beach, sunset"
        assert candidate.title == "Evening at the pier"
        assert candidate.preview == jpeg_bytes
        assert candidate.status == CandidateStatus.PENDING

    def test_without_exif(self, jpeg_bytes):
        candidate = build_candidate("IMG_2.jpg", jpeg_bytes, ImageProcessor())

        assert candidate.tags == ""
        assert candidate.title == ""
        assert candidate.exif_keywords == []


class TestClearCompleted:
    """Test cases for clearing uploaded candidates."""

    def test_keeps_duplicates_and_failures(self):
        uploaded = UploadCandidate("a.jpg", b"a", uploaded=True, status=CandidateStatus.PERSISTED)
        duplicate = UploadCandidate("b.jpg", b"b", duplicate=True, status=CandidateStatus.DUPLICATE)
        failed = UploadCandidate("c.jpg", b"c", status=CandidateStatus.FAILED, error="boom")
        pending = UploadCandidate("d.jpg", b"d")

        assert clear_completed([uploaded, duplicate, failed, pending]) == [duplicate, failed, pending]


class TestUploadBatchResult:
    """Test cases for batch summaries."""

    def test_summary(self):
        result = UploadBatchResult(total=3, successful=1, duplicates=1, failed=1)

        assert result.success is False
        assert result.summary == "Processed 3 files: 1 uploaded, 1 duplicates skipped, 1 failed"


class TestUploadPipeline:
    """Test cases for UploadPipeline."""

    def setup_method(self):
        self.storage = MagicMock(spec=StorageService)
        self.storage.upload_image.side_effect = hosted_image_factory()
        self.processor = ImageProcessor()
        self.geocoder = MagicMock()
        self.geocoder.reverse.return_value = None

    def make_pipeline(self, metadata_service):
        return UploadPipeline(metadata_service, self.storage, self.processor, geocoder=self.geocoder)

    def test_single_upload_persists_photo_with_tags(self, metadata_service, jpeg_bytes):
        candidate = UploadCandidate("IMG_1.jpg", jpeg_bytes, title=" Pier ", description="Dusk", tags="beach, , sunset")

        self.make_pipeline(metadata_service).process_candidate(candidate)

        assert candidate.status == CandidateStatus.PERSISTED
        assert candidate.uploaded is True
        assert candidate.error is None
        photo = metadata_service.get_photo_by_id(candidate.photo_id)
        assert photo.title == "Pier"
        assert photo.description == "Dusk"
        assert photo.public_id == "portfolio/img1"
        assert photo.file_hash == compute_file_hash(jpeg_bytes)
        assert sorted(photo.tag_names) == ["beach", "sunset"]
        assert photo.location is None

    def test_title_falls_back_to_filename(self, metadata_service, jpeg_bytes):
        candidate = UploadCandidate("IMG_7.jpg", jpeg_bytes)

        self.make_pipeline(metadata_service).process_candidate(candidate)

        assert metadata_service.get_photo_by_id(candidate.photo_id).title == "IMG_7.jpg"

    def test_identical_bytes_in_one_batch(self, metadata_service, jpeg_bytes):
        """Test that the second identical file is reported as a duplicate of the first."""
        first = UploadCandidate("first.jpg", jpeg_bytes, title="Harbour")
        second = UploadCandidate("second.jpg", jpeg_bytes, title="Harbour again")

        result = self.make_pipeline(metadata_service).process_batch([first, second])

        assert result.successful == 1
        assert result.duplicates == 1
        assert result.failed == 0
        assert first.uploaded is True
        assert second.duplicate is True
        assert second.uploaded is False
        assert second.duplicate_of == "Harbour"
        assert "Harbour" in second.error
        assert metadata_service.get_photos_count() == 1
        self.storage.upload_image.assert_called_once()

    def test_duplicate_of_existing_photo_skips_host(self, metadata_service, jpeg_bytes):
        pipeline = self.make_pipeline(metadata_service)
        pipeline.process_candidate(UploadCandidate("original.jpg", jpeg_bytes, title="Original"))
        self.storage.upload_image.reset_mock()

        candidate = pipeline.process_candidate(UploadCandidate("copy.jpg", jpeg_bytes))

        assert candidate.status == CandidateStatus.DUPLICATE
        assert candidate.duplicate_of == "Original"
        self.storage.upload_image.assert_not_called()

    def test_failure_is_isolated_to_one_candidate(self, metadata_service, image_factory):
        """Test that one failing file does not stop the rest of the batch."""
        good_one = UploadCandidate("one.jpg", image_factory(color="red"))
        bad = UploadCandidate("notes.txt", b"x" * 500)
        good_two = UploadCandidate("two.jpg", image_factory(color="blue"))
        progress = MagicMock()

        result = self.make_pipeline(metadata_service).process_batch([good_one, bad, good_two], progress)

        assert result.successful == 2
        assert result.failed == 1
        assert bad.status == CandidateStatus.FAILED
        assert "notes.txt" in bad.error
        assert good_two.uploaded is True
        assert progress.call_count == 3
        assert [message[0] for message in result.messages] == ["one.jpg", "notes.txt", "two.jpg"]

    def test_host_failure_marks_candidate_failed(self, metadata_service, jpeg_bytes):
        self.storage.upload_image.side_effect = StorageError(
            "Image host rejected", code="upload_rejected", user_message="Upload of a.jpg failed: quota"
        )
        candidate = UploadCandidate("a.jpg", jpeg_bytes)

        self.make_pipeline(metadata_service).process_candidate(candidate)

        assert candidate.status == CandidateStatus.FAILED
        assert candidate.error == "Upload of a.jpg failed: quota"
        assert metadata_service.get_photos_count() == 0
        self.storage.destroy_image.assert_not_called()

    def test_database_failure_destroys_hosted_image(self, jpeg_bytes):
        """Test that a failed record write removes the already hosted binary."""
        metadata = MagicMock()
        metadata.find_photo_by_hash.return_value = None
        metadata.create_photo.side_effect = DatabaseError("insert failed", code="create_photo_failed")
        candidate = UploadCandidate("a.jpg", jpeg_bytes)

        UploadPipeline(metadata, self.storage, self.processor).process_candidate(candidate)

        assert candidate.status == CandidateStatus.FAILED
        assert candidate.uploaded is False
        self.storage.destroy_image.assert_called_once_with("portfolio/img1")

    def test_failed_compensation_is_logged_not_raised(self, jpeg_bytes):
        metadata = MagicMock()
        metadata.find_photo_by_hash.return_value = None
        metadata.create_photo.side_effect = DatabaseError("insert failed")
        self.storage.destroy_image.side_effect = StorageError("destroy failed")
        candidate = UploadCandidate("a.jpg", jpeg_bytes)

        UploadPipeline(metadata, self.storage, self.processor).process_candidate(candidate)

        assert candidate.status == CandidateStatus.FAILED

    def test_unexpected_error_marks_candidate_failed(self, jpeg_bytes):
        metadata = MagicMock()
        metadata.find_photo_by_hash.side_effect = RuntimeError("connection reset")
        candidate = UploadCandidate("a.jpg", jpeg_bytes)

        UploadPipeline(metadata, self.storage, self.processor).process_candidate(candidate)

        assert candidate.status == CandidateStatus.FAILED
        assert candidate.error == "connection reset"

    def test_gps_coordinates_resolved_to_location(self, metadata_service, jpeg_bytes):
        """Test that EXIF GPS data becomes a "place, country" location."""
        self.geocoder.reverse.return_value = "Rome, Italy"
        candidate = UploadCandidate("rome.jpg", jpeg_bytes)

        with patch.object(self.processor, "extract_gps_coordinates", return_value=(41.9, 12.5)):
            self.make_pipeline(metadata_service).process_candidate(candidate)

        self.geocoder.reverse.assert_called_once_with(41.9, 12.5)
        assert metadata_service.get_photo_by_id(candidate.photo_id).location == "Rome, Italy"

    def test_without_gps_location_is_empty(self, metadata_service, jpeg_bytes):
        candidate = UploadCandidate("plain.jpg", jpeg_bytes)

        self.make_pipeline(metadata_service).process_candidate(candidate)

        self.geocoder.reverse.assert_not_called()
        assert metadata_service.get_photo_by_id(candidate.photo_id).location is None

    def test_geocoder_crash_leaves_location_empty(self, metadata_service, jpeg_bytes):
        self.geocoder.reverse.side_effect = RuntimeError("unexpected")
        candidate = UploadCandidate("rome.jpg", jpeg_bytes)

        with patch.object(self.processor, "extract_gps_coordinates", return_value=(41.9, 12.5)):
            self.make_pipeline(metadata_service).process_candidate(candidate)

        assert candidate.uploaded is True
        assert metadata_service.get_photo_by_id(candidate.photo_id).location is None

    def test_capture_date_stored(self, metadata_service, jpeg_bytes):
        exif = ExifMetadata(taken_at=datetime(2021, 7, 14, 9, 30))
        candidate = UploadCandidate("dated.jpg", jpeg_bytes)

        with patch.object(self.processor, "extract_metadata", return_value=exif):
            self.make_pipeline(metadata_service).process_candidate(candidate)

        assert metadata_service.get_photo_by_id(candidate.photo_id).taken_at == datetime(2021, 7, 14, 9, 30)

    def test_finished_candidates_are_skipped(self, metadata_service, jpeg_bytes):
        done = UploadCandidate("done.jpg", jpeg_bytes, uploaded=True, status=CandidateStatus.PERSISTED)

        result = self.make_pipeline(metadata_service).process_batch([done])

        assert result.total == 0
        self.storage.upload_image.assert_not_called()

    def test_failed_candidate_is_retried(self, metadata_service, jpeg_bytes):
        """Test that a second batch re-attempts candidates that failed before."""
        self.storage.upload_image.side_effect = [
            StorageError("Image host unreachable", code="upload_failed", user_message="Network blip"),
            HostedImage(secure_url="https://res.example.test/demo-cloud/image/upload/v1/p.jpg", public_id="p"),
        ]
        candidate = UploadCandidate("a.jpg", jpeg_bytes, title="Pier")
        pipeline = self.make_pipeline(metadata_service)

        first = pipeline.process_batch([candidate])
        assert first.failed == 1
        assert candidate.status == CandidateStatus.FAILED

        second = pipeline.process_batch([candidate])

        assert second.total == 1
        assert second.successful == 1
        assert candidate.status == CandidateStatus.PERSISTED
        assert candidate.error is None
        assert metadata_service.get_photos_count() == 1

    @pytest.mark.parametrize("tags, expected", [("a, b, a", ["a", "b"]), ("", []), (" , ", [])])
    def test_tag_string_parsing(self, tags, expected):
        assert UploadCandidate("x.jpg", b"", tags=tags).tag_names() == expected
