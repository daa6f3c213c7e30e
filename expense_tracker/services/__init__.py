"""Services package."""

from expense_tracker.services.mail import MailDeliveryError, SmtpMailService
from expense_tracker.services.receipts import (
    CloudinaryReceiptService,
    HostedReceipt,
    InvalidReceiptError,
    ReceiptError,
    ReceiptUploadError,
)
from expense_tracker.services.storage import (
    ConnectionError,
    DocumentStoreInterface,
    DuplicateError,
    MongoDocumentStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Mail
    "MailDeliveryError",
    "SmtpMailService",
    # Receipts
    "CloudinaryReceiptService",
    "HostedReceipt",
    "InvalidReceiptError",
    "ReceiptError",
    "ReceiptUploadError",
    # Storage services
    "ConnectionError",
    "DocumentStoreInterface",
    "DuplicateError",
    "MongoDocumentStore",
    "NotFoundError",
    "StorageError",
]
