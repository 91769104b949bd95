"""
Photo storage - the blob store that turns uploaded photos into URLs.

Firebase Storage in production, an in-process dictionary in mock mode.
Uploads complete before an issue is created; an upload failure aborts
creation with ExternalDependencyError.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import logging
import uuid

from app.core.exceptions import ExternalDependencyError, ValidationError
from app.core.settings import settings

logger = logging.getLogger(__name__)


class PhotoUpload:
    """A photo received from the caller, not yet stored."""

    def __init__(self, filename: str, content_type: str, data: bytes):
        self.filename = filename or "photo"
        self.content_type = content_type or ""
        self.data = data


def make_object_key(filename: str) -> str:
    ext = (filename.rsplit(".", 1)[-1] if "." in filename else "jpg").lower()
    return f"issues/{uuid.uuid4().hex}.{ext}"


def validate_photos(photos: List[PhotoUpload]):
    """
    Raises:
        ValidationError: Too many photos, a non-image content type, or an oversized/empty file
    """
    if len(photos) > settings.MAX_PHOTOS_PER_ISSUE:
        raise ValidationError(f"At most {settings.MAX_PHOTOS_PER_ISSUE} photos per issue")
    for photo in photos:
        if not photo.content_type.startswith("image/"):
            raise ValidationError(f"{photo.filename} is not an image ({photo.content_type or 'unknown type'})")
        if not photo.data:
            raise ValidationError(f"{photo.filename} is empty")
        if len(photo.data) > settings.MAX_PHOTO_BYTES:
            raise ValidationError(f"{photo.filename} exceeds {settings.MAX_PHOTO_BYTES} bytes")


class PhotoStorage(ABC):
    @abstractmethod
    def upload(self, photo: PhotoUpload) -> str:
        """
        Store the photo and return its public URL.

        Raises:
            ExternalDependencyError: The blob store is unavailable
        """
        pass


class InMemoryPhotoStorage(PhotoStorage):
    """Keeps photo bytes in a dictionary and hands out memory:// URLs."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}

    def upload(self, photo: PhotoUpload) -> str:
        key = make_object_key(photo.filename)
        self.blobs[key] = photo.data
        return f"memory://{key}"


class FirebasePhotoStorage(PhotoStorage):
    """Uploads to the configured Firebase Storage bucket as public objects."""

    def __init__(self, bucket_name: Optional[str] = None):
        from app.config.firebase import initialize_firebase_app
        from firebase_admin import storage

        bucket_name = bucket_name or settings.FIREBASE_STORAGE_BUCKET
        if not bucket_name:
            raise RuntimeError(
                "Photo storage initialization FAILED - No storage bucket configured.\n"
                "SOLUTION: Set FIREBASE_STORAGE_BUCKET in your .env file, or set USE_MOCK_DB=true for local development."
            )
        initialize_firebase_app()
        self.bucket = storage.bucket(bucket_name)

    def upload(self, photo: PhotoUpload) -> str:
        key = make_object_key(photo.filename)
        try:
            blob = self.bucket.blob(key)
            blob.upload_from_string(
                photo.data,
                content_type=photo.content_type,
                timeout=settings.PHOTO_UPLOAD_TIMEOUT_SECONDS,
            )
            blob.make_public()
        except Exception as e:
            logger.error(f"Photo upload failed for {photo.filename}: {e}", exc_info=True)
            raise ExternalDependencyError(f"Photo storage unavailable: {e}")
        logger.info(f"Uploaded photo {key}")
        return blob.public_url


_photo_storage: Optional[PhotoStorage] = None


def get_photo_storage() -> PhotoStorage:
    """Get or create the PhotoStorage singleton for the configured backend."""
    global _photo_storage
    if _photo_storage is None:
        if settings.USE_MOCK_DB:
            _photo_storage = InMemoryPhotoStorage()
        else:
            _photo_storage = FirebasePhotoStorage()
    return _photo_storage
