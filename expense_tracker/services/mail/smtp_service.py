"""
Outbound Mail Service over SMTP

Sends the two mails the system needs:
1. A welcome mail after signup (plus an optional admin notification)
2. The password reset link

DESIGN DECISION: Mail is never critical. Callers catch MailDeliveryError,
log it and carry on; a signup or reset request never fails because the
SMTP server is down. There is no retry at request time.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Optional

from expense_tracker.config import get_settings


class MailDeliveryError(Exception):
    """The SMTP server refused or could not be reached."""
    pass


class SmtpMailService:
    """
    Plain-text mail over SMTP with optional STARTTLS and login.

    The blocking SMTP conversation runs in a worker thread so the event
    loop keeps serving requests.
    """

    def __init__(self):
        self._settings = get_settings().mail

    def _build(self, recipient: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _send(self, message: EmailMessage) -> None:
        settings = self._settings
        try:
            with smtplib.SMTP(
                settings.host,
                settings.port,
                timeout=settings.timeout_seconds,
            ) as smtp:
                if settings.use_tls:
                    smtp.starttls()
                if settings.username and settings.password:
                    smtp.login(settings.username, settings.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"Failed to send mail to {message['To']}: {e}")

    async def send(self, recipient: str, subject: str, body: str) -> None:
        """Send one plain-text mail. Raises MailDeliveryError."""
        message = self._build(recipient, subject, body)
        await asyncio.to_thread(self._send, message)

    async def send_welcome(self, user: dict) -> None:
        """
        Greet a new user, and tell the admin address about the signup.

        Raises:
            MailDeliveryError: If the mail to the user could not be sent
        """
        name = f"{user.get('firstName', '')} {user.get('lastName', '')}".strip()
        await self.send(
            user["email"],
            "Welcome to Expense Tracker",
            (
                f"Hello {name or 'there'},\n\n"
                "Your Expense Tracker account has been created. "
                "You can now log in with this email address.\n"
            ),
        )
        if self._settings.admin_address:
            await self.send(
                self._settings.admin_address,
                "New Expense Tracker signup",
                f"{name} <{user['email']}> just created an account.\n",
            )

    async def send_password_reset(
        self,
        user: dict,
        reset_link: str,
        fallback_links: Optional[list[str]] = None,
    ) -> None:
        """
        Mail a password reset link.

        Raises:
            MailDeliveryError: If the mail could not be sent
        """
        lines = [
            f"Hello {user.get('firstName') or 'there'},",
            "",
            "Use the link below to choose a new password:",
            reset_link,
            "",
        ]
        if fallback_links:
            lines.append("If that address does not open, try one of these:")
            lines.extend(fallback_links)
            lines.append("")
        minutes = get_settings().auth.reset_token_minutes
        lines.append(f"The link expires in {minutes} minutes.")
        lines.append("If you did not request this, please ignore this message.")
        await self.send(user["email"], "Reset your Expense Tracker password", "\n".join(lines))
