"""Image validation, derivative generation and EXIF extraction."""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from PIL import Image, ExifTags, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Register HEIC support if available
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
    HEIC_SUPPORTED = True
except ImportError:
    HEIC_SUPPORTED = False
    logger.debug("pillow-heif not installed; HEIC files will not be supported")


class ImageValidationError(ValueError):
    """Uploaded bytes are not a usable image."""


@dataclass
class ProcessedImage:
    """Original image facts plus encoded derivatives."""

    width: int
    height: int
    format: Optional[str]
    mime_type: str
    extension: str
    exif: Dict[str, Any] = field(default_factory=dict)
    thumbnail: bytes = b""
    card: bytes = b""


class ImageProcessor:
    """Validate images and render their thumbnail and card derivatives."""

    SUPPORTED_FORMATS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".tiff", ".tif"}
    HEIC_FORMATS = {".heic", ".heif"}

    MIME_BY_EXTENSION = {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".webp": "image/webp",
        ".gif": "image/gif",
        ".bmp": "image/bmp",
        ".tiff": "image/tiff",
        ".tif": "image/tiff",
        ".heic": "image/heic",
        ".heif": "image/heif",
    }

    def __init__(
        self,
        thumbnail_size: Tuple[int, int] = (400, 300),
        card_size: Tuple[int, int] = (768, 1024),
        quality: int = 80,
    ):
        self.thumbnail_size = thumbnail_size
        self.card_size = card_size
        self.quality = quality

    def is_supported(self, filename: str, mime_type: Optional[str] = None) -> bool:
        """Check if the file extension (or MIME type) is a supported image."""
        suffix = Path(filename or "").suffix.lower()

        # Check HEIC separately since it requires pillow-heif
        if suffix in self.HEIC_FORMATS:
            return HEIC_SUPPORTED
        if suffix in self.SUPPORTED_FORMATS:
            return True

        mime = (mime_type or "").lower()
        if not suffix and mime.startswith("image/"):
            return mime in set(self.MIME_BY_EXTENSION.values())
        return False

    def load_image(self, data: bytes) -> Image.Image:
        """Load image from bytes, verifying it first."""
        if not data:
            raise ImageValidationError("Empty file")
        try:
            checked = Image.open(io.BytesIO(data))
            checked.verify()
            # verify() leaves the image unusable, so reopen for real work
            image = Image.open(io.BytesIO(data))
            image.load()
        except Image.DecompressionBombError as exc:
            raise ImageValidationError("Image dimensions are too large") from exc
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise ImageValidationError("File is not a valid image") from exc
        return image

    def _render(self, image: Image.Image, size: Tuple[int, int]) -> bytes:
        img = image
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
        fitted = ImageOps.fit(img, size, Image.Resampling.LANCZOS, centering=(0.5, 0.5))
        buffer = io.BytesIO()
        fitted.save(buffer, format="WEBP", quality=self.quality)
        return buffer.getvalue()

    def create_thumbnail(self, image: Image.Image) -> bytes:
        """Centre-crop to the thumbnail size and return WebP bytes."""
        return self._render(image, self.thumbnail_size)

    def create_card(self, image: Image.Image) -> bytes:
        """Centre-crop to the card size and return WebP bytes."""
        return self._render(image, self.card_size)

    def extract_exif(self, image: Image.Image) -> dict:
        """Extract EXIF data as JSON-safe values."""
        exif_data = {}

        try:
            exif = image.getexif()
        except (AttributeError, OSError, ValueError) as exc:
            # Some images carry corrupted EXIF blocks
            logger.warning("Error reading EXIF data: %s", exc)
            return exif_data
        if not exif:
            return exif_data

        for tag_id, value in exif.items():
            tag_name = ExifTags.TAGS.get(tag_id, str(tag_id))
            exif_data[str(tag_name)] = _json_safe(value)

        return exif_data

    def process(self, data: bytes, filename: str, mime_type: Optional[str] = None) -> ProcessedImage:
        """Validate an upload and build its derivatives."""
        if not self.is_supported(filename, mime_type):
            raise ImageValidationError(f"Unsupported file type: {filename}")

        image = self.load_image(data)
        exif = self.extract_exif(image)
        source_format = image.format
        oriented = ImageOps.exif_transpose(image)

        suffix = Path(filename or "").suffix.lower()
        if not suffix and source_format:
            suffix = f".{source_format.lower()}"
        mime = self.MIME_BY_EXTENSION.get(suffix) or mime_type or "application/octet-stream"

        return ProcessedImage(
            width=oriented.width,
            height=oriented.height,
            format=source_format,
            mime_type=mime,
            extension=suffix,
            exif=exif,
            thumbnail=self.create_thumbnail(oriented),
            card=self.create_card(oriented),
        )


def _json_safe(value: Any) -> Any:
    if hasattr(value, "numerator") and hasattr(value, "denominator"):
        # IFDRational type
        if value.denominator != 0:
            return float(value.numerator) / float(value.denominator)
        return float(value.numerator)
    if isinstance(value, bytes):
        return value.replace(b"\x00", b"").decode("utf-8", errors="ignore")
    if isinstance(value, str):
        return value.replace("\x00", "")
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    return str(value)
