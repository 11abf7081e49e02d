"""
Upload pipeline for atelier application.

Each candidate file moves through these states:

    pending -> hash_checked -> duplicate
                            -> uploading -> host_uploaded -> metadata_extracted -> persisted

and ends in ``failed`` if any step raises. Candidates are processed strictly
one after another; a duplicate or failure on one candidate is recorded on
that candidate and the batch moves on to the next.

If the record transaction fails after the binary reached the image host, the
hosted copy is destroyed again so no orphan is left behind.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ..error_handling import AtelierError, DuplicatePhotoError, StorageError
from ..logging_config import get_logger, log_error, log_performance
from ..models.photo import Photo
from ..models.upload import CandidateStatus, UploadCandidate
from .geocoding import ReverseGeocoder
from .image_processor import ImageProcessor, compute_file_hash
from .metadata import MetadataService
from .storage import HostedImage, StorageService

logger = get_logger(__name__)

ProgressCallback = Callable[[UploadCandidate, int, int], None]


@dataclass
class UploadBatchResult:
    """Outcome of one batch, with one (filename, message) entry per candidate."""

    total: int = 0
    successful: int = 0
    duplicates: int = 0
    failed: int = 0
    messages: list[tuple[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def summary(self) -> str:
        return (
            f"Processed {self.total} files: {self.successful} uploaded, "
            f"{self.duplicates} duplicates skipped, {self.failed} failed"
        )


def build_candidate(filename: str, data: bytes, image_processor: ImageProcessor) -> UploadCandidate:
    """
    Create an upload candidate when a file is selected.

    The tag string is pre-filled from EXIF keywords and the title from the
    EXIF image description, both left editable.
    """
    keywords = image_processor.extract_keywords(data)
    description = image_processor.extract_description(data)
    return UploadCandidate(
        filename=filename,
        data=data,
        title=description or "",
        tags=", ".join(keywords),
        preview=data,
        exif_keywords=keywords,
    )


def clear_completed(candidates: list[UploadCandidate]) -> list[UploadCandidate]:
    """Drop candidates that were uploaded; duplicates and failures stay visible."""
    return [candidate for candidate in candidates if not candidate.uploaded]


class UploadPipeline:
    """Runs candidate files through duplicate check, hosting, EXIF extraction and persistence."""

    def __init__(
        self,
        metadata_service: MetadataService,
        storage_service: StorageService,
        image_processor: ImageProcessor,
        geocoder: ReverseGeocoder | None = None,
    ) -> None:
        """
        Initialize the upload pipeline.

        Args:
            metadata_service: Relational store access
            storage_service: Image host client
            image_processor: Hashing, validation and EXIF reader
            geocoder: Reverse geocoder; when None locations stay empty
        """
        self.metadata_service = metadata_service
        self.storage_service = storage_service
        self.image_processor = image_processor
        self.geocoder = geocoder

    def process_batch(
        self, candidates: list[UploadCandidate], progress_callback: ProgressCallback | None = None
    ) -> UploadBatchResult:
        """
        Process candidates sequentially; finished candidates are left as they are.

        Args:
            candidates: Candidates in selection order
            progress_callback: Called after each candidate with (candidate, index, total)

        Returns:
            UploadBatchResult summary
        """
        pending = [candidate for candidate in candidates if not candidate.is_finished]
        result = UploadBatchResult(total=len(pending))
        logger.info("batch_upload_started", total_files=len(pending))

        for index, candidate in enumerate(pending):
            self.process_candidate(candidate)

            if candidate.status == CandidateStatus.PERSISTED:
                result.successful += 1
                result.messages.append((candidate.filename, "Uploaded"))
            elif candidate.status == CandidateStatus.DUPLICATE:
                result.duplicates += 1
                result.messages.append((candidate.filename, candidate.error or "Duplicate"))
            else:
                result.failed += 1
                result.messages.append((candidate.filename, candidate.error or "Upload failed"))

            if progress_callback:
                progress_callback(candidate, index, len(pending))

        logger.info(
            "batch_upload_completed",
            total_files=result.total,
            successful=result.successful,
            duplicates=result.duplicates,
            failed=result.failed,
        )
        return result

    def process_candidate(self, candidate: UploadCandidate) -> UploadCandidate:
        """
        Run one candidate through the pipeline. Never raises for pipeline errors.

        Returns:
            The same candidate with its final status, flags and message set
        """
        start_time = time.perf_counter()
        if candidate.status == CandidateStatus.FAILED:
            logger.info("upload_retry", filename=candidate.filename, previous_error=candidate.error)
            candidate.reset_for_retry()
        logger.info("upload_processing_started", filename=candidate.filename, size=candidate.size)

        hosted: HostedImage | None = None
        try:
            self.image_processor.validate_file(candidate.data, candidate.filename)

            candidate.file_hash = compute_file_hash(candidate.data)
            existing = self.metadata_service.find_photo_by_hash(candidate.file_hash)
            candidate.status = CandidateStatus.HASH_CHECKED

            if existing is not None:
                raise DuplicatePhotoError(
                    f"{candidate.filename} is a duplicate of '{existing.title}'",
                    existing_title=existing.title,
                    details={"filename": candidate.filename, "existing_photo_id": existing.id},
                )

            candidate.status = CandidateStatus.UPLOADING
            hosted = self.storage_service.upload_image(candidate.data, candidate.filename)
            candidate.status = CandidateStatus.HOST_UPLOADED

            exif = self.image_processor.extract_metadata(candidate.data)
            location = self._resolve_location(exif.latitude, exif.longitude)
            candidate.status = CandidateStatus.METADATA_EXTRACTED

            photo = Photo.create_new(
                image_url=hosted.secure_url,
                public_id=hosted.public_id,
                title=candidate.resolved_title(),
                file_hash=candidate.file_hash,
                description=candidate.description.strip(),
                location=location,
                taken_at=exif.taken_at,
            )
            self.metadata_service.create_photo(photo, candidate.tag_names())

        except DuplicatePhotoError as e:
            candidate.status = CandidateStatus.DUPLICATE
            candidate.duplicate = True
            candidate.duplicate_of = e.existing_title
            candidate.error = str(e)
            logger.info("duplicate_upload_skipped", filename=candidate.filename, existing_title=e.existing_title)
            return candidate

        except AtelierError as e:
            self._fail(candidate, e, hosted)
            return candidate

        except Exception as e:
            log_error(e, {"operation": "process_candidate", "filename": candidate.filename})
            self._fail(candidate, e, hosted)
            return candidate

        candidate.status = CandidateStatus.PERSISTED
        candidate.uploaded = True
        candidate.photo_id = photo.id
        candidate.error = None
        log_performance(
            "upload_candidate",
            time.perf_counter() - start_time,
            filename=candidate.filename,
            photo_id=photo.id,
            has_location=photo.location is not None,
        )
        return candidate

    def _resolve_location(self, latitude: float | None, longitude: float | None) -> str | None:
        if self.geocoder is None or latitude is None or longitude is None:
            return None
        try:
            return self.geocoder.reverse(latitude, longitude)
        except Exception as e:
            log_error(e, {"operation": "reverse_geocode", "latitude": latitude, "longitude": longitude})
            return None

    def _fail(self, candidate: UploadCandidate, error: Exception, hosted: HostedImage | None) -> None:
        failed_at = candidate.status
        candidate.status = CandidateStatus.FAILED
        candidate.error = error.user_message if isinstance(error, AtelierError) else str(error)
        logger.warning(
            "upload_processing_failed", filename=candidate.filename, failed_at=failed_at.value, error=str(error)
        )

        if hosted is not None:
            self._compensate(hosted, candidate.filename)

    def _compensate(self, hosted: HostedImage, filename: str) -> None:
        """Destroy a hosted image whose record could not be stored."""
        try:
            self.storage_service.destroy_image(hosted.public_id)
            logger.info("orphaned_hosted_image_removed", filename=filename, public_id=hosted.public_id)
        except StorageError as e:
            logger.error("orphaned_hosted_image_left", filename=filename, public_id=hosted.public_id, error=str(e))
