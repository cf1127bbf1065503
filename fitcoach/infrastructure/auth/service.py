"""
Authentication service.

Implements the auth collaborator on top of the identity repository:
sign-in, sign-up, sign-out, coach-side invitations and bearer-token
resolution.

Passwords are hashed with scrypt (cryptography). Session tokens are
random URL-safe strings handed to the client once; only their SHA-256
is stored. Errors are raised as `AuthError` with a message meant to be
shown to the user as-is.
"""

import base64
import hashlib
import logging
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from fitcoach.core.auth.models import Identity, Role
from fitcoach.core.views.models import utcnow
from fitcoach.infrastructure.snowflake.repositories.base import RecordNotFoundError
from fitcoach.infrastructure.snowflake.repositories.identities import (
    IdentityRecord,
    IdentityRepository,
    SessionRecord,
    login_key,
)
from fitcoach.infrastructure.snowflake.repositories.usage_limits import UsageLimitRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
FAILED_SIGN_IN = "failed_sign_in"

_SCRYPT_N = 2 ** 14
_SCRYPT_R = 8
_SCRYPT_P = 1
_KEY_LENGTH = 32


class AuthError(Exception):
    """Raised when an auth operation fails. The message is user-facing."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SignInThrottled(AuthError):
    """Raised when too many sign-ins failed for an email recently."""

    def __init__(self, retry_after: Optional[datetime] = None) -> None:
        super().__init__("Too many sign-in attempts. Please try again later.")
        self.retry_after = retry_after


@dataclass(frozen=True)
class SignInResult:
    identity: Identity
    token: str
    expires_at: datetime


# ---------------------------------------------------------------------------
# Password and token helpers
# ---------------------------------------------------------------------------

def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii")


def hash_password(password: str) -> str:
    """Hash a password as `scrypt$n$r$p$salt$key`."""
    salt = os.urandom(16)
    kdf = Scrypt(salt=salt, length=_KEY_LENGTH, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P)
    key = kdf.derive(password.encode("utf-8"))
    return f"scrypt${_SCRYPT_N}${_SCRYPT_R}${_SCRYPT_P}${_b64(salt)}${_b64(key)}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, n, r, p, salt, key = stored.split("$")
    except ValueError:
        return False
    if scheme != "scrypt":
        return False

    kdf = Scrypt(
        salt=base64.urlsafe_b64decode(salt),
        length=_KEY_LENGTH,
        n=int(n),
        r=int(r),
        p=int(p),
    )
    try:
        kdf.verify(password.encode("utf-8"), base64.urlsafe_b64decode(key))
        return True
    except InvalidKey:
        return False


def token_hash(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _validate_email(email: str) -> str:
    email = email.strip()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise AuthError("Unable to validate email address: invalid format")
    return email


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AuthService:
    """
    The auth collaborator.

    Usage:
        service = AuthService(IdentityRepository(conn), UsageLimitRepository(conn))
        result = service.sign_in("ana@example.com", "secret1")
        identity = service.resolve_token(result.token)
    """

    def __init__(
        self,
        identities: IdentityRepository,
        limits: UsageLimitRepository,
        session_ttl_hours: int = 24,
        failure_limit: int = 5,
        failure_window_hours: int = 1,
    ) -> None:
        self._identities = identities
        self._limits = limits
        self._session_ttl = timedelta(hours=session_ttl_hours)
        self._failure_limit = failure_limit
        self._failure_window_hours = failure_window_hours

    def sign_in(self, email: str, password: str) -> SignInResult:
        """
        Check credentials and open a session.

        Raises:
            SignInThrottled: too many recent failures for this email
            AuthError: unknown email or wrong password (same message for
                both)
        """
        key = login_key(email)
        usage = self._limits.get_current_usage(key, "email", FAILED_SIGN_IN)
        if usage and usage[0] >= self._failure_limit:
            raise SignInThrottled(retry_after=usage[2])

        record = self._identities.get_by_email(email)
        if (
            record is None
            or not record.password_hash
            or not verify_password(password, record.password_hash)
        ):
            self._limits.check_and_increment(
                key,
                "email",
                FAILED_SIGN_IN,
                limit_max=self._failure_limit,
                period_hours=self._failure_window_hours,
            )
            logger.warning("Failed sign-in attempt")
            raise AuthError("Invalid login credentials")

        self._limits.reset_usage(key, "email", FAILED_SIGN_IN)

        token = secrets.token_urlsafe(32)
        expires_at = utcnow() + self._session_ttl
        self._identities.create_session(SessionRecord(
            token_hash=token_hash(token),
            identity_id=record.identity.id,
            expires_at=expires_at,
        ))

        logger.info(
            "Signed in",
            extra={"identity_id": str(record.identity.id), "token_prefix": token[:6]}
        )
        return SignInResult(identity=record.identity, token=token, expires_at=expires_at)

    def sign_up(self, email: str, password: str, full_name: str = "") -> Identity:
        """
        Register an account. Does not sign in.

        An address that was invited by a coach and has no password yet is
        claimed instead: the password is set and the invitation's role
        claim is kept.
        """
        email = _validate_email(email)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
            )

        existing = self._identities.get_by_email(email)
        if existing is not None:
            if existing.password_hash:
                raise AuthError("User already registered")
            try:
                self._identities.set_password_hash(existing.identity.id, hash_password(password))
            except RecordNotFoundError:
                raise AuthError("User not found")
            logger.info(
                "Invitation claimed",
                extra={"identity_id": str(existing.identity.id)}
            )
            return existing.identity

        identity = Identity(id=uuid4(), email=email)
        self._identities.create(IdentityRecord(
            identity=identity,
            password_hash=hash_password(password),
            full_name=full_name,
        ))
        return identity

    def sign_out(self, token: str) -> bool:
        """End the session behind `token`. Returns False if there was none."""
        ended = self._identities.delete_session(token_hash(token))
        if ended:
            logger.info("Signed out", extra={"token_prefix": token[:6]})
        return ended

    def invite(
        self,
        email: str,
        role: Role,
        full_name: str = "",
        phone: str = "",
    ) -> Identity:
        """
        Create an identity on someone else's behalf, with an explicit role.

        The invitee sets a password later by signing up with the same
        address.
        """
        email = _validate_email(email)
        if self._identities.get_by_email(email) is not None:
            raise AuthError("A user with this email address has already been registered")

        identity = Identity(id=uuid4(), email=email, role=role)
        self._identities.create(IdentityRecord(
            identity=identity,
            full_name=full_name,
            phone=phone,
        ))
        return identity

    def resolve_token(self, token: str) -> Optional[Identity]:
        """The identity behind a bearer token, or None if it is unknown or expired."""
        session = self._identities.get_session(token_hash(token))
        if session is None:
            return None

        if session.is_expired():
            self._identities.delete_session(session.token_hash)
            logger.info("Expired session removed", extra={"token_prefix": token[:6]})
            return None

        record = self._identities.get_by_id(session.identity_id)
        return record.identity if record else None
