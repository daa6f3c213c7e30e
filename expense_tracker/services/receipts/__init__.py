"""Receipt hosting services package."""

from expense_tracker.services.receipts.cloudinary_service import (
    CloudinaryReceiptService,
    HostedReceipt,
    InvalidReceiptError,
    ReceiptError,
    ReceiptUploadError,
)

__all__ = [
    "CloudinaryReceiptService",
    "HostedReceipt",
    "InvalidReceiptError",
    "ReceiptError",
    "ReceiptUploadError",
]
