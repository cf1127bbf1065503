"""
Snowflake repository for identities and session tokens.

Backs the auth service. Two tables:
- `identities`: one row per account, with the scrypt password hash and
  the optional explicit role claim
- `auth_sessions`: one row per signed-in session, keyed by the SHA-256
  of the bearer token (the token itself is never stored)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fitcoach.core.auth.models import Identity, Role
from fitcoach.core.views.models import utcnow

from .base import RecordNotFoundError, SnowflakeRepository, ViewQuery, as_datetime, as_uuid

logger = logging.getLogger(__name__)

IDENTITIES = "identities"
SESSIONS = "auth_sessions"


def login_key(email: str) -> str:
    """Lookup key for an email address. Sign-in is case-insensitive."""
    return email.strip().lower()


@dataclass
class IdentityRecord:
    identity: Identity
    password_hash: Optional[str] = None
    full_name: str = ""
    phone: str = ""
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class SessionRecord:
    token_hash: str
    identity_id: UUID
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at


class IdentityRepository(SnowflakeRepository):

    def get_by_email(self, email: str) -> Optional[IdentityRecord]:
        row = self._select_one(
            ViewQuery(IDENTITIES).where("login", login_key(email))
        )
        return self._build_record(row) if row else None

    def get_by_id(self, identity_id: UUID) -> Optional[IdentityRecord]:
        row = self._select_one(
            ViewQuery(IDENTITIES).where("id", identity_id)
        )
        return self._build_record(row) if row else None

    def create(self, record: IdentityRecord) -> None:
        identity = record.identity
        self._insert(IDENTITIES, {
            "id": identity.id,
            "email": identity.email,
            "login": login_key(identity.email),
            "role": identity.role.value if identity.role else None,
            "password_hash": record.password_hash,
            "full_name": record.full_name,
            "phone": record.phone,
            "created_at": record.created_at,
        })
        logger.info(
            "Identity created",
            extra={"identity_id": str(identity.id), "has_role_claim": identity.role is not None}
        )

    def set_password_hash(self, identity_id: UUID, password_hash: str) -> None:
        updated = self._update(
            IDENTITIES,
            {"password_hash": password_hash},
            {"id": identity_id},
        )
        if not updated:
            raise RecordNotFoundError(f"Identity {identity_id} not found")

    # -----------------------------------------------------------------------
    # Sessions
    # -----------------------------------------------------------------------

    def create_session(self, session: SessionRecord) -> None:
        self._insert(SESSIONS, {
            "token_hash": session.token_hash,
            "identity_id": session.identity_id,
            "expires_at": session.expires_at,
            "created_at": utcnow(),
        })

    def get_session(self, token_hash: str) -> Optional[SessionRecord]:
        row = self._select_one(
            ViewQuery(SESSIONS).where("token_hash", token_hash)
        )
        if row is None:
            return None
        return SessionRecord(
            token_hash=row["token_hash"],
            identity_id=as_uuid(row["identity_id"]),
            expires_at=as_datetime(row["expires_at"]),
        )

    def delete_session(self, token_hash: str) -> bool:
        return self._delete(SESSIONS, {"token_hash": token_hash}) > 0

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _build_record(self, row: dict[str, Any]) -> IdentityRecord:
        role = row.get("role")
        record = IdentityRecord(
            identity=Identity(
                id=as_uuid(row["id"]),
                email=row.get("email") or "",
                role=Role(role) if role else None,
            ),
            password_hash=row.get("password_hash"),
            full_name=row.get("full_name") or "",
            phone=row.get("phone") or "",
        )
        created_at = as_datetime(row.get("created_at"))
        if created_at is not None:
            record.created_at = created_at
        return record
