"""
Authentication & credential recovery flow.

Flow:
1. Signup    -> create user, welcome mail (fire-and-forget)
2. Login     -> case-insensitive lookup, active check, password check
3. Forgot    -> signed 15 minute token, mailed as a reset link
4. Reset     -> verify token, replace password hash

DESIGN DECISION: Login issues no session token. The client keeps the
returned identity and treats its presence as "logged in".

Mail is never part of the outcome: a failed welcome or reset mail is
logged and audited, and the response is the same as if it had been sent.
"""

import asyncio
from typing import Any, Optional

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.auth import (
    InvalidTokenError,
    check_token_unused,
    create_reset_token,
    decode_reset_token,
    hash_password,
    verify_password,
)
from expense_tracker.config import get_settings
from expense_tracker.flows.errors import (
    AuthenticationError,
    NotFoundError,
    ResetTokenError,
)
from expense_tracker.flows.users import UserFlow
from expense_tracker.models import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    RoleName,
)
from expense_tracker.services.mail import MailDeliveryError, SmtpMailService
from expense_tracker.services.storage import ROLES, USERS, DocumentStoreInterface
from expense_tracker.validation import PayloadValidationError, validate_payload


logger = structlog.get_logger(__name__)

NO_ACCOUNT = "No account found with this email. Please check your email or sign up."
ACCOUNT_INACTIVE = "Account is inactive. Please contact administrator."
WRONG_PASSWORD = "Incorrect password. Please try again."
NOT_REGISTERED = "User not found, please register first."
INVALID_TOKEN = "Invalid or expired token. Please request a new password reset."


class AuthFlow:
    """
    Signup, login and password recovery.

    The mail service is optional: without one, mails are skipped and
    reported as not sent.
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        users: Optional[UserFlow] = None,
        mailer: Optional[SmtpMailService] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._users = users or UserFlow(store, audit_logger)
        self._mailer = mailer
        self._audit_logger = audit_logger

    async def _mail_failed(self, kind: str, recipient: str, error: Exception) -> None:
        logger.warning("mail_delivery_failed", kind=kind, recipient=recipient, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_mail_failed(kind, recipient, str(error))

    async def signup(self, payload: Any) -> dict:
        """
        Create an account and send the welcome mail.

        Returns:
            The created user without its password hash
        """
        user = await self._users.create(payload)

        if self._audit_logger:
            await self._audit_logger.log_user_signed_up(user["_id"], user["email"])

        if self._mailer:
            try:
                await self._mailer.send_welcome(user)
            except MailDeliveryError as e:
                await self._mail_failed("welcome", user["email"], e)

        return user

    async def _resolve_role(self, user: dict) -> dict:
        """
        The role a login resolves to, as ``{_id, name}``.

        The configured forced-role identities win over the stored role.
        """
        forced = get_settings().auth.forced_roles.get(user.get("email", "").lower())
        if forced:
            role = await self._store.find_one(ROLES, {"name": forced})
            return {"_id": role["_id"] if role else None, "name": forced}

        role = None
        if user.get("roleId"):
            role = await self._store.get_by_id(ROLES, user["roleId"])
        if role is None:
            return {"_id": user.get("roleId"), "name": RoleName.USER.value}
        return {"_id": role["_id"], "name": role.get("name") or RoleName.USER.value}

    async def login(self, payload: Any) -> dict:
        """
        Verify credentials and return the minimal identity.

        The active flag is checked before the password, so an inactive
        account is refused whatever password is supplied.

        Raises:
            PayloadValidationError: Email or password missing
            AuthenticationError: Unknown email, inactive account or wrong password
        """
        try:
            data = validate_payload(LoginRequest, payload)
        except PayloadValidationError as e:
            raise PayloadValidationError(e.errors, message="Email and password are required")

        user = await self._store.find_one_case_insensitive(USERS, "email", data.email)
        if user is None:
            if self._audit_logger:
                await self._audit_logger.log_login_failed(data.email, "not_found")
            raise AuthenticationError(NO_ACCOUNT)

        if user.get("status") is False:
            if self._audit_logger:
                await self._audit_logger.log_login_failed(data.email, "inactive")
            raise AuthenticationError(ACCOUNT_INACTIVE)

        # bcrypt runs in a worker thread
        if not await asyncio.to_thread(verify_password, data.password, user.get("password", "")):
            if self._audit_logger:
                await self._audit_logger.log_login_failed(data.email, "wrong_password")
            raise AuthenticationError(WRONG_PASSWORD)

        role = await self._resolve_role(user)
        if self._audit_logger:
            await self._audit_logger.log_login_succeeded(user["_id"], role["name"])

        return {
            "_id": user["_id"],
            "email": user["email"],
            "firstName": user.get("firstName"),
            "lastName": user.get("lastName"),
            "roleId": role,
            "status": user.get("status", True),
        }

    def _reset_links(self, token: str, origin: Optional[str]) -> tuple[str, list[str]]:
        app_settings = get_settings().app
        base = (origin or app_settings.frontend_origin).rstrip("/")
        reset_link = f"{base}/resetpassword/{token}"
        fallback_links = [
            f"http://localhost:{port}/resetpassword/{token}"
            for port in app_settings.reset_fallback_ports_list
        ]
        return reset_link, fallback_links

    async def forgot_password(self, payload: Any, origin: Optional[str] = None) -> dict:
        """
        Issue a reset token and mail the link.

        Args:
            payload: ``{email}``
            origin: The requesting page's origin, used as the link base

        Returns:
            ``{resetLink, fallbackLinks, token, emailSent}``

        Raises:
            NotFoundError: No account with that email
        """
        try:
            data = validate_payload(ForgotPasswordRequest, payload)
        except PayloadValidationError as e:
            raise PayloadValidationError(e.errors, message="Email is required.")

        user = await self._store.find_one_case_insensitive(USERS, "email", data.email)
        if user is None:
            raise NotFoundError(NOT_REGISTERED)

        token = create_reset_token(user["_id"], user["email"], password_hash=user.get("password"))
        reset_link, fallback_links = self._reset_links(token, origin)

        email_sent = False
        if self._mailer:
            try:
                await self._mailer.send_password_reset(user, reset_link, fallback_links)
                email_sent = True
            except MailDeliveryError as e:
                await self._mail_failed("password_reset", user["email"], e)

        if self._audit_logger:
            await self._audit_logger.log_password_reset_requested(user["_id"], email_sent)

        return {
            "resetLink": reset_link,
            "fallbackLinks": fallback_links,
            "token": token,
            "emailSent": email_sent,
        }

    async def reset_password(self, payload: Any) -> None:
        """
        Replace a password using a reset token.

        Raises:
            PayloadValidationError: Token or password missing
            ResetTokenError: Bad signature, expired or already used token
            NotFoundError: The token's user no longer exists
        """
        try:
            data = validate_payload(ResetPasswordRequest, payload)
        except PayloadValidationError as e:
            raise PayloadValidationError(e.errors, message="Token and password are required.")

        try:
            claims = decode_reset_token(data.token)
        except InvalidTokenError as e:
            raise ResetTokenError(INVALID_TOKEN, error=str(e))

        user = await self._store.get_by_id(USERS, claims["_id"])
        if user is None:
            raise NotFoundError("User not found.")
        try:
            check_token_unused(claims, user.get("password"))
        except InvalidTokenError as e:
            raise ResetTokenError(INVALID_TOKEN, error=str(e))

        password_hash = await asyncio.to_thread(hash_password, data.password)
        updated = await self._store.update_by_id(USERS, claims["_id"], {"password": password_hash})
        if updated is None:
            raise NotFoundError("User not found.")

        if self._audit_logger:
            await self._audit_logger.log_password_reset(claims["_id"])
