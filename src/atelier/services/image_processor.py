"""Image inspection service: content hashing, validation and EXIF extraction."""

import hashlib
import io
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from PIL import ExifTags, Image, IptcImagePlugin
from pillow_heif import register_heif_opener

from ..error_handling import ImageProcessingError, ValidationError
from ..logging_config import get_logger, log_error

register_heif_opener()

logger = get_logger(__name__)

# EXIF tag ids
_TAG_IMAGE_DESCRIPTION = 0x010E
_TAG_XP_KEYWORDS = 0x9C9E
_GPS_LATITUDE_REF = 1
_GPS_LATITUDE = 2
_GPS_LONGITUDE_REF = 3
_GPS_LONGITUDE = 4

# IPTC (record 2, dataset 25) holds the keyword list
_IPTC_KEYWORDS = (2, 25)


def compute_file_hash(data: bytes) -> str:
    """SHA-256 hex digest of raw file bytes."""
    return hashlib.sha256(data).hexdigest()


def convert_gps_coordinate(values: Any, ref: Any) -> float | None:
    """
    Convert an EXIF (degrees, minutes, seconds) triple to decimal degrees.

    Args:
        values: Three rationals or numbers
        ref: Hemisphere reference, ``N``/``S``/``E``/``W`` (str or bytes)

    Returns:
        Signed decimal degrees, or None when the values are unusable
    """
    if not values or len(values) != 3:
        return None

    try:
        degrees, minutes, seconds = (float(value) for value in values)
    except (TypeError, ValueError, ZeroDivisionError):
        return None

    decimal = degrees + minutes / 60.0 + seconds / 3600.0

    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if isinstance(ref, str) and ref.strip().upper() in ("S", "W"):
        decimal = -decimal

    return round(decimal, 6)


@dataclass
class ExifMetadata:
    """Best-effort EXIF fields. Every field is None/empty when unavailable."""

    taken_at: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None
    keywords: list[str] = field(default_factory=list)
    description: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class ImageProcessor:
    """Service for validating images and reading their EXIF metadata."""

    SUPPORTED_FORMATS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif", ".tif", ".tiff"}

    # Capture date tags in priority order: original capture, creation, generic date-time
    EXIF_DATE_TAGS = [
        "DateTimeOriginal",
        "DateTimeDigitized",
        "DateTime",
    ]

    def __init__(self, max_file_size: int = 50 * 1024 * 1024, min_file_size: int = 100) -> None:
        """
        Initialize the image processor.

        Args:
            max_file_size: Largest accepted file in bytes
            min_file_size: Smallest accepted file in bytes
        """
        self.max_file_size = max_file_size
        self.min_file_size = min_file_size

    def is_supported_format(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.SUPPORTED_FORMATS

    def validate_file(self, image_data: bytes, filename: str) -> None:
        """
        Check format and size limits.

        Raises:
            ValidationError: If the extension is unsupported or the size is out of range
        """
        if not self.is_supported_format(filename):
            raise ValidationError(
                f"Unsupported format for '{filename}'",
                code="unsupported_format",
                user_message=f"'{filename}' is not a supported image type.",
                details={"filename": filename, "supported": sorted(self.SUPPORTED_FORMATS)},
            )

        file_size = len(image_data)

        if file_size < self.min_file_size:
            raise ValidationError(
                f"File '{filename}' is too small ({file_size} bytes). Minimum size: {self.min_file_size} bytes",
                code="file_too_small",
                user_message=f"'{filename}' is too small to be an image.",
                details={"filename": filename, "file_size": file_size, "min_size": self.min_file_size},
            )

        if file_size > self.max_file_size:
            max_size_mb = self.max_file_size / (1024 * 1024)
            raise ValidationError(
                f"File '{filename}' is too large ({file_size / (1024 * 1024):.1f}MB). Maximum size: {max_size_mb:.0f}MB",
                code="file_too_large",
                user_message=f"'{filename}' is larger than {max_size_mb:.0f}MB.",
                details={"filename": filename, "file_size": file_size, "max_size": self.max_file_size},
            )

        logger.debug("file_validation_success", filename=filename, file_size=file_size)

    def get_image_info(self, image_data: bytes) -> dict:
        """
        Get basic image information.

        Raises:
            ImageProcessingError: If image cannot be decoded
        """
        try:
            with Image.open(io.BytesIO(image_data)) as image:
                return {
                    "format": image.format,
                    "mode": image.mode,
                    "width": image.width,
                    "height": image.height,
                }
        except Exception as e:
            raise ImageProcessingError(
                f"Failed to get image info: {e}", code="image_decode_failed", original_exception=e
            ) from e

    def _load_exif(self, image_data: bytes) -> Image.Exif | None:
        with Image.open(io.BytesIO(image_data)) as image:
            exif = image.getexif()
            return exif if exif else None

    def extract_capture_date(self, image_data: bytes) -> datetime | None:
        """
        Extract the capture timestamp from EXIF date fields in priority order.

        Returns:
            Naive wall-clock datetime, or None if absent or unreadable
        """
        try:
            exif = self._load_exif(image_data)
            if exif is None:
                logger.debug("exif_data_not_found")
                return None

            # DateTimeOriginal and DateTimeDigitized live in the Exif sub-IFD
            values: dict[int, Any] = dict(exif)
            values.update(exif.get_ifd(ExifTags.IFD.Exif))

            for tag_name in self.EXIF_DATE_TAGS:
                date_value = self._parse_exif_date(values.get(ExifTags.Base[tag_name].value))
                if date_value:
                    logger.debug("exif_date_extracted", tag_name=tag_name, date_value=date_value.isoformat())
                    return date_value

            return None

        except Exception as e:
            log_error(e, {"operation": "extract_capture_date"})
            return None

    @staticmethod
    def _parse_exif_date(raw: Any) -> datetime | None:
        if not raw:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("ascii", errors="ignore")
        try:
            return datetime.strptime(str(raw).strip("\x00 "), "%Y:%m:%d %H:%M:%S")
        except ValueError:
            logger.debug("exif_date_parse_failed", date_string=raw)
            return None

    def extract_gps_coordinates(self, image_data: bytes) -> tuple[float, float] | None:
        """
        Extract decimal latitude/longitude from the GPS IFD.

        Returns:
            (latitude, longitude) or None when there is no usable GPS block
        """
        try:
            exif = self._load_exif(image_data)
            if exif is None:
                return None

            gps = exif.get_ifd(ExifTags.IFD.GPSInfo)
            if not gps:
                return None

            latitude = convert_gps_coordinate(gps.get(_GPS_LATITUDE), gps.get(_GPS_LATITUDE_REF))
            longitude = convert_gps_coordinate(gps.get(_GPS_LONGITUDE), gps.get(_GPS_LONGITUDE_REF))
            if latitude is None or longitude is None:
                return None

            logger.debug("gps_coordinates_extracted", latitude=latitude, longitude=longitude)
            return latitude, longitude

        except Exception as e:
            log_error(e, {"operation": "extract_gps_coordinates"})
            return None

    def extract_keywords(self, image_data: bytes) -> list[str]:
        """
        Extract keywords from Windows XPKeywords or IPTC keyword fields.

        Returns:
            Keywords in file order without duplicates
        """
        keywords: list[str] = []
        try:
            with Image.open(io.BytesIO(image_data)) as image:
                raw_xp = image.getexif().get(_TAG_XP_KEYWORDS)
                if raw_xp:
                    if isinstance(raw_xp, tuple):
                        raw_xp = bytes(raw_xp)
                    text = raw_xp.decode("utf-16-le", errors="ignore") if isinstance(raw_xp, bytes) else str(raw_xp)
                    keywords.extend(part.strip("\x00 ") for part in text.split(";"))

                iptc = IptcImagePlugin.getiptcinfo(image) or {}
                raw_iptc = iptc.get(_IPTC_KEYWORDS)
                if raw_iptc:
                    if not isinstance(raw_iptc, list):
                        raw_iptc = [raw_iptc]
                    keywords.extend(value.decode("utf-8", errors="ignore").strip() for value in raw_iptc)

        except Exception as e:
            log_error(e, {"operation": "extract_keywords"})
            return []

        unique: list[str] = []
        for keyword in keywords:
            if keyword and keyword not in unique:
                unique.append(keyword)
        return unique

    def extract_description(self, image_data: bytes) -> str | None:
        try:
            exif = self._load_exif(image_data)
            value = exif.get(_TAG_IMAGE_DESCRIPTION) if exif else None
            if isinstance(value, bytes):
                value = value.decode("utf-8", errors="ignore")
            return value.strip("\x00 ") or None if value else None
        except Exception as e:
            log_error(e, {"operation": "extract_description"})
            return None

    def extract_metadata(self, image_data: bytes) -> ExifMetadata:
        """Collect every EXIF-derived field; each one degrades to empty independently."""
        coordinates = self.extract_gps_coordinates(image_data)
        return ExifMetadata(
            taken_at=self.extract_capture_date(image_data),
            latitude=coordinates[0] if coordinates else None,
            longitude=coordinates[1] if coordinates else None,
            keywords=self.extract_keywords(image_data),
            description=self.extract_description(image_data),
        )


def get_image_processor(max_file_size: int = 50 * 1024 * 1024, min_file_size: int = 100) -> ImageProcessor:
    """Create an ImageProcessor with the given size limits."""
    return ImageProcessor(max_file_size=max_file_size, min_file_size=min_file_size)
