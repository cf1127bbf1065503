"""
Identity, role resolution and authentication-gated routing.
"""

from .models import AuthFormMode, AuthSnapshot, Identity, Role
from .roles import resolve_role
from .router import (
    RouteDecision,
    RouterState,
    navigation_menu,
    resolve_route,
    resolve_router_state,
)
from .session import IdentityObserver, SessionController

__all__ = [
    "AuthFormMode",
    "AuthSnapshot",
    "Identity",
    "Role",
    "resolve_role",
    "RouteDecision",
    "RouterState",
    "navigation_menu",
    "resolve_route",
    "resolve_router_state",
    "IdentityObserver",
    "SessionController",
]
