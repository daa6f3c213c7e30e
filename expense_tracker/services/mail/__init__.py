"""Outbound mail services package."""

from expense_tracker.services.mail.smtp_service import MailDeliveryError, SmtpMailService

__all__ = ["MailDeliveryError", "SmtpMailService"]
