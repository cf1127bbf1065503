"""
Role resolution.

An explicit role claim from the identity provider always wins. Identities
without a claim fall back to the legacy email heuristic: an address that
contains one of the coach markers (case-sensitive) belongs to a coach.
"""

from typing import Iterable, Optional

from .models import Identity, Role

DEFAULT_COACH_MARKERS = ("coach", "admin")


def role_from_email(email: str, markers: Iterable[str] = DEFAULT_COACH_MARKERS) -> Role:
    """Apply the substring heuristic to an email address."""
    if any(marker and marker in email for marker in markers):
        return Role.COACH
    return Role.CLIENT


def resolve_role(
    identity: Optional[Identity],
    markers: Iterable[str] = DEFAULT_COACH_MARKERS,
) -> Role:
    """
    Derive the role of an identity.

    Total: an absent identity (not loaded yet, or signed out) is a client.
    """
    if identity is None:
        return Role.CLIENT
    if identity.role is not None:
        return identity.role
    return role_from_email(identity.email, markers)
