"""
FastAPI dependency injection.

Dependencies provide instances of services, repositories, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Configuration is centralized
- Resource lifecycle (connections) is managed properly

The identity of the caller is resolved here too. Each request gets its
own `AuthSnapshot` built from the bearer token; nothing about the caller
is kept in module state.
"""

import logging
from typing import Annotated, Generator, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import Settings, get_settings
from ..core.auth.models import AuthSnapshot, Identity
from ..core.auth.router import RouterState, resolve_router_state
from ..core.views.client import ClientViews
from ..core.views.coach import CoachViews
from ..infrastructure.auth.service import AuthService
from ..infrastructure.snowflake.client import (
    MockSnowflakeConnection,
    create_snowflake_connection,
)
from ..infrastructure.snowflake.repositories import (
    ClientViewRepository,
    CoachViewRepository,
    GoalRepository,
    IdentityRepository,
    SnowflakeConfig,
    UsageLimitRepository,
)
from ..infrastructure.snowflake.repositories.base import SnowflakeConnection

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Global mock connection (shared across requests so data persists)
_mock_snowflake_connection: Optional[MockSnowflakeConnection] = None


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

def get_shared_mock_connection() -> MockSnowflakeConnection:
    global _mock_snowflake_connection

    if _mock_snowflake_connection is None:
        _mock_snowflake_connection = MockSnowflakeConnection()
        logger.info("Created shared mock Snowflake connection")
    return _mock_snowflake_connection


def get_connection(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide a Snowflake connection for the request.

    This is a generator function (yields instead of returns) because
    we need to manage the connection lifecycle; FastAPI closes it after
    the response is sent.

    In mock mode, we reuse the same connection across requests
    so that data persists during the testing session.
    """
    if settings.snowflake_mock_mode:
        logger.debug("Using shared mock Snowflake connection")
        yield get_shared_mock_connection()
        return

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    with create_snowflake_connection(config=config) as conn:
        yield conn


ConnectionDep = Annotated[SnowflakeConnection, Depends(get_connection)]


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_auth_service(
    connection: ConnectionDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthService:
    return AuthService(
        identities=IdentityRepository(connection),
        limits=UsageLimitRepository(connection),
        session_ttl_hours=settings.session_ttl_hours,
        failure_limit=settings.sign_in_failure_limit,
        failure_window_hours=settings.sign_in_failure_window_hours,
    )


def get_client_views(
    connection: ConnectionDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ClientViews:
    return ClientViews(
        source=ClientViewRepository(connection),
        goals=GoalRepository(connection),
        timeout_seconds=settings.view_fetch_timeout_seconds,
    )


def get_coach_views(
    connection: ConnectionDep,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CoachViews:
    return CoachViews(
        source=CoachViewRepository(connection),
        inviter=auth_service,
        timeout_seconds=settings.view_fetch_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Optional[str]:
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials


def get_auth_snapshot(
    token: Annotated[Optional[str], Depends(get_bearer_token)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthSnapshot:
    """
    The caller's `{identity, loading}` pair.

    Token resolution finishes before the handler runs, so a request never
    observes the loading state. Unknown or expired tokens read as signed
    out.
    """
    if token is None:
        return AuthSnapshot.signed_out()

    identity = auth_service.resolve_token(token)
    if identity is None:
        logger.info("Unknown or expired bearer token", extra={"token_prefix": token[:6]})
        return AuthSnapshot.signed_out()
    return AuthSnapshot.signed_in(identity)


CurrentSnapshot = Annotated[AuthSnapshot, Depends(get_auth_snapshot)]


def require_identity(snapshot: CurrentSnapshot) -> Identity:
    if not snapshot.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return snapshot.identity


def _require_state(
    snapshot: AuthSnapshot,
    settings: Settings,
    expected: RouterState,
) -> Identity:
    identity = require_identity(snapshot)
    state = resolve_router_state(snapshot, settings.coach_email_markers_list)
    if state is not expected:
        # The other role's route tree does not exist for this caller
        logger.warning(
            "Route tree not available for role",
            extra={"identity_id": str(identity.id), "state": state.value},
        )
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not found",
        )
    return identity


def require_client(
    snapshot: CurrentSnapshot,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Identity:
    return _require_state(snapshot, settings, RouterState.AUTHENTICATED_CLIENT)


def require_coach(
    snapshot: CurrentSnapshot,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Identity:
    return _require_state(snapshot, settings, RouterState.AUTHENTICATED_COACH)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
BearerToken = Annotated[Optional[str], Depends(get_bearer_token)]
CurrentIdentity = Annotated[Identity, Depends(require_identity)]
ClientIdentity = Annotated[Identity, Depends(require_client)]
CoachIdentity = Annotated[Identity, Depends(require_coach)]
ClientViewsDep = Annotated[ClientViews, Depends(get_client_views)]
CoachViewsDep = Annotated[CoachViews, Depends(get_coach_views)]
