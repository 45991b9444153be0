"""
Image storage for catalog and banner uploads.

Images are downscaled with Pillow and written to an S3-compatible bucket
(MinIO locally, S3 or Spaces in production). Object keys look like
``products/1718000000_aurora_hoops.jpg``.
"""
import logging
import os
import time
from io import BytesIO
from typing import NamedTuple

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import ClientError
from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

IMAGE_FOLDERS = ('products', 'categories', 'banners', 'blog')


class NormalizedImage(NamedTuple):
    data: BytesIO
    content_type: str
    extension: str


def check_upload(file: FileStorage, max_size: int, allowed_types=None) -> None:
    """
    Raises:
        ValueError: empty upload, too large, or a type outside ``allowed_types``
    """
    if not file or not file.filename:
        raise ValueError("No image was provided")

    file.seek(0, os.SEEK_END)
    size = file.tell()
    file.seek(0)
    if size > max_size:
        raise ValueError(f"Image is too large. Maximum {max_size / (1024 * 1024):.1f}MB")

    if allowed_types and file.content_type not in allowed_types:
        raise ValueError(f"File type not allowed: {file.content_type}")


def normalize_image(file: FileStorage, max_dimension: int) -> NormalizedImage:
    """
    Fit the image inside a ``max_dimension`` square and re-encode it.
    PNG keeps its format (transparency); anything else becomes JPEG.
    """
    file.seek(0)
    try:
        img = Image.open(file.stream)
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError("The uploaded file is not a valid image") from e

    keep_png = img.format == 'PNG'
    img.thumbnail((max_dimension, max_dimension))

    buffer = BytesIO()
    if keep_png:
        img.save(buffer, format='PNG', optimize=True)
    else:
        img.convert('RGB').save(buffer, format='JPEG', quality=85, optimize=True)
    buffer.seek(0)
    if keep_png:
        return NormalizedImage(buffer, 'image/png', '.png')
    return NormalizedImage(buffer, 'image/jpeg', '.jpg')


def object_key(folder: str, filename: str, now: float = None) -> str:
    if folder not in IMAGE_FOLDERS:
        raise ValueError(f"Unknown image folder: {folder}")
    stem = os.path.splitext(secure_filename(filename or ''))[0].lower() or 'image'
    return f"{folder}/{int(now if now is not None else time.time())}_{stem}"


class ImageStore:
    """Uploads normalized images to the configured bucket."""

    def __init__(self, config):
        self.config = config
        self.bucket = config['S3_BUCKET']
        self.public_url = config['S3_PUBLIC_URL'].rstrip('/')
        self.client = boto3.client(
            's3',
            endpoint_url=config['S3_ENDPOINT'],
            aws_access_key_id=config['S3_ACCESS_KEY'],
            aws_secret_access_key=config['S3_SECRET_KEY'],
            region_name=config['S3_REGION'],
            config=BotoConfig(signature_version='s3v4'),
        )
        self._ensure_bucket()

    def _ensure_bucket(self) -> None:
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') != '404':
                logger.error(f"[STORAGE] Cannot reach bucket '{self.bucket}': {e}")
                raise
            self.client.create_bucket(Bucket=self.bucket)
            logger.info(f"[STORAGE] Bucket '{self.bucket}' created")

    def url_for(self, key: str) -> str:
        return f"{self.public_url}/{self.bucket}/{key}"

    def upload_image(self, file: FileStorage, folder: str) -> str:
        """
        Validate, normalize and upload an image.

        Returns:
            Public URL of the stored image

        Raises:
            ValueError: the upload is not an acceptable image
            ClientError: the bucket rejected the upload
        """
        check_upload(file, self.config.get('MAX_UPLOAD_SIZE', 5 * 1024 * 1024),
                     self.config.get('ALLOWED_MIME_TYPES'))
        image = normalize_image(file, self.config.get('MAX_IMAGE_DIMENSION', 1600))
        key = object_key(folder, file.filename) + image.extension

        self.client.upload_fileobj(
            image.data,
            self.bucket,
            key,
            ExtraArgs={'ContentType': image.content_type, 'ACL': 'public-read'},
        )
        url = self.url_for(key)
        logger.info(f"[STORAGE] Stored {key}")
        return url


_image_store = None


def get_storage_service() -> ImageStore:
    """Lazily create the store on first upload."""
    global _image_store
    if _image_store is None:
        _image_store = ImageStore(current_app.config)
    return _image_store
