"""
Receipt Hosting Service using Cloudinary

DESIGN DECISION: We use Cloudinary because:
1. Receipts are served straight from its CDN (no file serving in the API)
2. Reliable cloud infrastructure
3. Simple API
4. Free tier sufficient for personal use

This service handles:
1. Checking the upload is a real image within the size limit
2. Staging the bytes in a transient file
3. Uploading to Cloudinary and returning the hosted URL
4. Destroying an uploaded asset when the expense insert fails

CRITICAL: Nothing is uploaded before the bytes are known to be an image.
A failed upload is never retried at request time; the caller reports it.
The SDK calls block, so they run in a worker thread.
"""

import asyncio
import os
import tempfile
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from PIL import Image, UnidentifiedImageError

from expense_tracker.config import get_settings

# Pillow format names for the extensions we accept
_FORMAT_ALIASES = {"jpg": "jpeg"}


class ReceiptError(Exception):
    """Base exception for receipt handling errors."""
    pass


class InvalidReceiptError(ReceiptError):
    """The uploaded file is not an acceptable image."""
    pass


class ReceiptUploadError(ReceiptError):
    """Failed to upload the receipt to Cloudinary."""
    pass


@dataclass(frozen=True)
class HostedReceipt:
    """Where an uploaded receipt lives."""
    url: str
    public_id: str


class CloudinaryReceiptService:
    """
    Service for hosting receipt images on Cloudinary.

    Flow:
    1. Receive raw file bytes
    2. Reject oversized or non-image content
    3. Stage to a transient file and upload
    4. Return the secure URL and public id (needed for compensation)
    """

    def __init__(self):
        self._settings = None
        self._app_settings = get_settings().app
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            self._settings = get_settings().cloudinary
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def check_image(self, image_bytes: bytes) -> str:
        """
        Make sure the bytes are a supported image within the size limit.

        Returns:
            The detected format, lower-cased (e.g. "png")

        Raises:
            InvalidReceiptError: If the file is empty, too large, unreadable
                or of an unsupported format
        """
        if not image_bytes:
            raise InvalidReceiptError("Receipt file is empty")

        max_bytes = self._app_settings.max_upload_size_bytes
        if len(image_bytes) > max_bytes:
            raise InvalidReceiptError(
                f"Receipt exceeds the {self._app_settings.max_upload_size_mb} MB limit"
            )

        try:
            with Image.open(BytesIO(image_bytes)) as img:
                detected = (img.format or "").lower()
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise InvalidReceiptError(f"Receipt is not a readable image: {e}")

        allowed = {
            _FORMAT_ALIASES.get(fmt, fmt)
            for fmt in self._app_settings.supported_formats_list
        }
        if detected not in allowed:
            raise InvalidReceiptError(
                f"Unsupported receipt format '{detected or 'unknown'}'. "
                f"Allowed: {', '.join(self._app_settings.supported_formats_list)}"
            )
        return detected

    def _stage(self, image_bytes: bytes, filename: str) -> str:
        """Write the bytes to a transient file and return its path."""
        os.makedirs(self._app_settings.upload_dir, exist_ok=True)
        suffix = os.path.splitext(filename)[1] or ".img"
        fd, path = tempfile.mkstemp(suffix=suffix, dir=self._app_settings.upload_dir)
        with os.fdopen(fd, "wb") as handle:
            handle.write(image_bytes)
        return path

    async def upload(self, image_bytes: bytes, filename: str) -> HostedReceipt:
        """
        Check and upload a receipt image.

        Args:
            image_bytes: Raw file bytes
            filename: Name the client gave the file

        Returns:
            HostedReceipt with the secure URL and public id

        Raises:
            InvalidReceiptError: If the file is rejected before upload
            ReceiptUploadError: If Cloudinary rejects or fails the upload
        """
        self.check_image(image_bytes)
        self._configure()

        path = self._stage(image_bytes, filename)
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                path,
                folder=self._settings.folder,
                resource_type="image",
            )
        except cloudinary.exceptions.Error as e:
            raise ReceiptUploadError(f"Cloudinary error: {e}")
        except OSError as e:
            raise ReceiptUploadError(f"Failed to upload receipt: {e}")
        finally:
            # The transient copy goes whatever the outcome
            try:
                os.remove(path)
            except OSError:
                pass

        url = result.get("secure_url") or result.get("url")
        public_id = result.get("public_id")
        if not url or not public_id:
            raise ReceiptUploadError("No URL returned from Cloudinary")
        return HostedReceipt(url=url, public_id=public_id)

    async def delete(self, public_id: str) -> bool:
        """
        Destroy a hosted receipt.

        Returns:
            True if Cloudinary reports the asset gone

        Raises:
            ReceiptUploadError: If the destroy call itself fails
        """
        self._configure()
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.destroy, public_id, resource_type="image"
            )
        except cloudinary.exceptions.Error as e:
            raise ReceiptUploadError(f"Cloudinary error: {e}")
        return result.get("result") in ("ok", "not found")
