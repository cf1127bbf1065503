"""
Identity models for the coaching application.

The identity is owned by the auth collaborator. We only observe it: it
appears on sign-in, lives for the session and disappears on sign-out.
Nothing here knows how identities are stored or transmitted.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID


class Role(Enum):
    """Which side of the application an identity sees."""
    COACH = "coach"
    CLIENT = "client"


@dataclass(frozen=True)
class Identity:
    """
    The authenticated user's session record.

    `role` is the explicit claim issued by the identity provider. It is
    optional because identities created through plain sign-up carry none,
    in which case the role is derived from the email (see roles.py). An
    empty email is kept as is and never matches a coach marker.
    """
    id: UUID
    email: str
    role: Optional[Role] = None


@dataclass(frozen=True)
class AuthSnapshot:
    """
    The observable `{identity, loading}` pair at one instant.

    Frozen because a snapshot is a value: consumers receive a new one on
    every change instead of watching a shared mutable holder.
    """
    identity: Optional[Identity] = None
    loading: bool = False

    @property
    def is_authenticated(self) -> bool:
        return not self.loading and self.identity is not None

    @classmethod
    def pending(cls) -> "AuthSnapshot":
        """Snapshot before the auth collaborator has answered."""
        return cls(identity=None, loading=True)

    @classmethod
    def signed_out(cls) -> "AuthSnapshot":
        return cls(identity=None, loading=False)

    @classmethod
    def signed_in(cls, identity: Identity) -> "AuthSnapshot":
        return cls(identity=identity, loading=False)


@dataclass(frozen=True)
class AuthFormLabels:
    """Display text for one mode of the sign-in/sign-up form."""
    title: str
    description: str
    submit_label: str
    pending_label: str
    toggle_label: str


class AuthFormMode(Enum):
    """The two sub-modes of the unauthenticated form."""
    SIGN_IN = "sign_in"
    SIGN_UP = "sign_up"

    def toggled(self) -> "AuthFormMode":
        if self is AuthFormMode.SIGN_IN:
            return AuthFormMode.SIGN_UP
        return AuthFormMode.SIGN_IN

    @property
    def labels(self) -> AuthFormLabels:
        return _FORM_LABELS[self]


_FORM_LABELS = {
    AuthFormMode.SIGN_IN: AuthFormLabels(
        title="Sign in",
        description="Sign in to your coaching space",
        submit_label="Sign in",
        pending_label="Loading...",
        toggle_label="No account yet? Sign up",
    ),
    AuthFormMode.SIGN_UP: AuthFormLabels(
        title="Sign up",
        description="Create your coaching account",
        submit_label="Sign up",
        pending_label="Loading...",
        toggle_label="Already have an account? Sign in",
    ),
}
