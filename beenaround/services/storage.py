import asyncio
import io
import logging
import os
import secrets
import time
from typing import Optional

import aiofiles
import boto3
from botocore.config import Config as BotoConfig
from PIL import Image

from ..config import settings
from ..exceptions import ImageTooLargeError, UnsupportedImageFormatError

# Configure logging
logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "uploads"


class StorageService:
    """Stores uploaded images in S3 or on local disk and returns public URLs.

    Keys look like ``uploads/<epoch-ms>_<random>.<ext>``.
    """

    def __init__(
        self,
        backend: str = "s3",
        bucket: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
        use_path_style: bool = False,
        media_dir: str = "media",
        local_base_url: str = "http://localhost:8000",
    ):
        self.backend = backend
        self.bucket = bucket
        self.region = region or "us-east-1"
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.use_path_style = use_path_style
        self.media_dir = media_dir
        self.local_base_url = local_base_url.rstrip("/")
        if public_base_url:
            self.public_base_url = public_base_url.rstrip("/")
        elif backend == "s3":
            self.public_base_url = f"https://{bucket}.s3.{self.region}.amazonaws.com"
        else:
            self.public_base_url = f"{self.local_base_url}/media"
        self._client = None

    @classmethod
    def from_settings(cls) -> "StorageService":
        return cls(
            backend=settings.storage_backend,
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            public_base_url=settings.s3_public_base_url,
            use_path_style=settings.s3_use_path_style,
            media_dir=settings.local_media_dir,
            local_base_url=settings.local_base_url,
        )

    def _s3(self):
        if self._client is None:
            session = boto3.session.Session(
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
                region_name=self.region,
            )
            self._client = session.client(
                "s3",
                endpoint_url=self.endpoint_url,
                config=BotoConfig(
                    s3={"addressing_style": "path" if self.use_path_style else "auto"}),
            )
        return self._client

    @staticmethod
    def object_key(filename: str) -> str:
        ext = os.path.splitext(filename or "")[1].lower()
        return f"{UPLOAD_PREFIX}/{int(time.time() * 1000)}_{secrets.token_hex(5)}{ext}"

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def key_from_url(self, url: Optional[str]) -> Optional[str]:
        """Object key for a URL we issued, None for anything else."""
        if not url:
            return None
        prefix = f"{self.public_base_url}/"
        if url.startswith(prefix):
            return url[len(prefix):]
        if ".amazonaws.com/" in url:
            return url.split(".amazonaws.com/", 1)[1]
        return None

    async def upload_image(self, filename: str, content: bytes, max_mb: int) -> str:
        _validate_image_or_raise(filename, content, max_mb)
        key = self.object_key(filename)
        if self.backend == "s3":
            await self._put_s3(key, content, _guess_content_type(filename))
        else:
            await self._put_local(key, content)
        return self.public_url(key)

    async def _put_s3(self, key: str, content: bytes, content_type: str) -> None:
        if not self.bucket:
            raise ValueError(
                "S3 bucket is not configured. Set APP_S3_BUCKET.")

        def _upload_to_s3():
            self._s3().put_object(Bucket=self.bucket, Key=key,
                                  Body=content, ContentType=content_type)

        # Run S3 upload in thread pool to avoid blocking event loop
        await asyncio.to_thread(_upload_to_s3)

    async def _put_local(self, key: str, content: bytes) -> None:
        target_path = os.path.join(os.path.abspath(self.media_dir), key)
        os.makedirs(os.path.dirname(target_path), exist_ok=True)
        async with aiofiles.open(target_path, "wb") as f:
            await f.write(content)

    async def delete_by_url(self, url: Optional[str]) -> bool:
        """Best-effort removal of a previously uploaded object."""
        key = self.key_from_url(url)
        if not key:
            return False
        try:
            if self.backend == "s3":
                await asyncio.to_thread(self._s3().delete_object, Bucket=self.bucket, Key=key)
            else:
                root = os.path.abspath(self.media_dir)
                path = os.path.abspath(os.path.join(root, key))
                if os.path.commonpath([root, path]) != root or path == root:
                    logger.warning(f"Refusing to delete outside media dir: {key}")
                    return False
                os.remove(path)
        except FileNotFoundError:
            logger.warning(f"Stored file not found: {key}")
            return False
        except Exception as e:
            logger.error(f"Failed to delete stored file {key}: {e}")
            return False
        return True


def _validate_image_or_raise(filename: str, content: bytes, max_mb: int) -> None:
    if len(content) > int(max_mb) * 1024 * 1024:
        raise ImageTooLargeError(max_mb)
    # Content type by extension must be image
    ctype = _guess_content_type(filename)
    if not ctype.startswith("image/"):
        raise UnsupportedImageFormatError()
    # Attempt to open with Pillow to validate image
    try:
        Image.open(io.BytesIO(content)).verify()
    except Exception:
        raise UnsupportedImageFormatError()


def _guess_content_type(filename: str) -> str:
    ext = os.path.splitext((filename or "").lower())[1]
    return {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".gif": "image/gif",
        ".webp": "image/webp",
    }.get(ext, "application/octet-stream")
