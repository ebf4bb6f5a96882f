"""
Storage Service - image uploads to Supabase Storage
"""
import uuid
import logging
from typing import Optional

from supabase import Client

from innovates.core.config import settings
from innovates.core.database import get_supabase
from innovates.core.exceptions import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
IMAGE_EXTENSIONS = {
    'image/jpeg': 'jpg',
    'image/png': 'png',
    'image/webp': 'webp',
    'image/gif': 'gif',
}


class StorageService:

    def __init__(self, client: Client = None, bucket: str = None):
        self._client = client
        self.bucket = bucket or settings.SUPABASE_IMAGE_BUCKET

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def upload_image(self, folder: str, content: bytes, content_type: Optional[str]) -> str:
        """
        Store an image and return its public URL

        Raises:
            ValidationError: not an accepted image type, empty or larger than 5 MB
            ExternalServiceError: the storage API rejected the upload
        """
        extension = IMAGE_EXTENSIONS.get((content_type or "").lower())
        if extension is None:
            raise ValidationError("Only JPEG, PNG, WebP and GIF images are allowed")
        if not content:
            raise ValidationError("Image file is empty")
        if len(content) > MAX_IMAGE_BYTES:
            raise ValidationError("Image must be 5 MB or smaller")

        path = f"{folder}/{uuid.uuid4().hex}.{extension}"
        bucket = self.client.storage.from_(self.bucket)

        try:
            bucket.upload(path, content, {'content-type': content_type})
        except Exception as e:
            logger.error(f"Upload of {path} to bucket {self.bucket} failed: {e}")
            raise ExternalServiceError("Image upload failed", details=str(e)) from e

        url = bucket.get_public_url(path)
        logger.info(f"Uploaded image {path} ({len(content)} bytes)")
        return url
