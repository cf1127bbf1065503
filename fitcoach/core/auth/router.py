"""
Authentication-gated route selection.

The router answers one question: given the current identity snapshot and a
requested path, what should be shown? The answer depends on four states:

- loading: the auth collaborator hasn't answered yet, show a spinner
- unauthenticated: show the sign-in/sign-up form, whatever the path
- authenticated-coach / authenticated-client: only that role's route tree
  is navigable, the root redirects to the tree's landing page and anything
  else renders not-found

Everything here is a pure function of its inputs. The reactive part (what
happens when the identity changes) lives in session.py.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .models import AuthFormMode, AuthSnapshot, Role
from .roles import DEFAULT_COACH_MARKERS, resolve_role


class RouterState(Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_COACH = "authenticated-coach"
    AUTHENTICATED_CLIENT = "authenticated-client"


# View names the front end knows how to render outside a route tree
LOADING_VIEW = "loading"
AUTH_FORM_VIEW = "auth_form"
NOT_FOUND_VIEW = "not_found"


@dataclass(frozen=True)
class RouteSpec:
    """
    One entry of a route tree.

    Patterns use `{name}` placeholders for single path segments, e.g.
    `/coach/client/{client_id}`.
    """
    pattern: str
    view: str

    @property
    def segments(self) -> list[str]:
        return _split(self.pattern)

    def match(self, path: str) -> Optional[dict[str, str]]:
        """Return captured params if `path` matches, else None."""
        wanted = self.segments
        actual = _split(path)
        if len(wanted) != len(actual):
            return None

        params: dict[str, str] = {}
        for expected, value in zip(wanted, actual):
            if expected.startswith("{") and expected.endswith("}"):
                if not value:
                    return None
                params[expected[1:-1]] = value
            elif expected != value:
                return None
        return params


@dataclass(frozen=True)
class RouteTree:
    """All routes reachable by one role, plus where `/` leads."""
    role: Role
    prefix: str
    landing: str
    routes: tuple[RouteSpec, ...]

    def match(self, path: str) -> Optional[tuple[RouteSpec, dict[str, str]]]:
        for spec in self.routes:
            params = spec.match(path)
            if params is not None:
                return spec, params
        return None

    def owns(self, path: str) -> bool:
        """Whether `path` sits under this tree's prefix."""
        normalized = normalize_path(path)
        return normalized == self.prefix or normalized.startswith(self.prefix + "/")


COACH_ROUTES = RouteTree(
    role=Role.COACH,
    prefix="/coach",
    landing="/coach",
    routes=(
        RouteSpec("/coach", "coach_dashboard"),
        RouteSpec("/coach/client/{client_id}", "client_profile"),
        RouteSpec("/coach/clients", "client_management"),
        RouteSpec("/coach/schedule", "schedule"),
    ),
)

CLIENT_ROUTES = RouteTree(
    role=Role.CLIENT,
    prefix="/client",
    landing="/client",
    routes=(
        RouteSpec("/client", "client_dashboard"),
        RouteSpec("/client/session/{session_id}", "session_view"),
        RouteSpec("/client/feedback", "feedback_form"),
        RouteSpec("/client/wellness", "wellness_form"),
        RouteSpec("/client/history", "history"),
        RouteSpec("/client/statistics", "statistics"),
        RouteSpec("/client/goals", "goals"),
    ),
)

ROUTE_TREES = {
    Role.COACH: COACH_ROUTES,
    Role.CLIENT: CLIENT_ROUTES,
}


@dataclass(frozen=True)
class MenuEntry:
    label: str
    path: str
    description: str


NAVIGATION_MENUS = {
    Role.CLIENT: (
        MenuEntry("Dashboard", "/client", "Overview"),
        MenuEntry("History", "/client/history", "Past sessions"),
        MenuEntry("Statistics", "/client/statistics", "Progress"),
        MenuEntry("Goals", "/client/goals", "My goals"),
        MenuEntry("Feedback", "/client/feedback", "Session feedback"),
        MenuEntry("Wellness", "/client/wellness", "Daily check-in"),
    ),
    Role.COACH: (
        MenuEntry("Dashboard", "/coach", "Overview"),
        MenuEntry("Clients", "/coach/clients", "Client management"),
        MenuEntry("Schedule", "/coach/schedule", "Scheduled sessions"),
    ),
}


@dataclass(frozen=True)
class RouteDecision:
    """
    What to render for a path.

    `path` is the effective path after any redirect; `redirect_to` is set
    only when it differs from the requested one, so the front end can
    replace its history entry.
    """
    state: RouterState
    view: str
    path: str
    params: dict[str, str] = field(default_factory=dict)
    redirect_to: Optional[str] = None
    auth_form: Optional[AuthFormMode] = None

    @property
    def renders_route_content(self) -> bool:
        return self.view not in (LOADING_VIEW, AUTH_FORM_VIEW, NOT_FOUND_VIEW)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def normalize_path(path: str) -> str:
    """Drop query string, fragment and trailing slash; keep a leading slash."""
    path = (path or "/").split("#", 1)[0].split("?", 1)[0].strip()
    if not path.startswith("/"):
        path = "/" + path
    while len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def resolve_router_state(
    snapshot: AuthSnapshot,
    markers: Iterable[str] = DEFAULT_COACH_MARKERS,
) -> RouterState:
    """Exactly one state for every (loading, identity, role) combination."""
    if snapshot.loading:
        return RouterState.LOADING
    if snapshot.identity is None:
        return RouterState.UNAUTHENTICATED
    if resolve_role(snapshot.identity, markers) is Role.COACH:
        return RouterState.AUTHENTICATED_COACH
    return RouterState.AUTHENTICATED_CLIENT


def route_tree_for(state: RouterState) -> Optional[RouteTree]:
    if state is RouterState.AUTHENTICATED_COACH:
        return COACH_ROUTES
    if state is RouterState.AUTHENTICATED_CLIENT:
        return CLIENT_ROUTES
    return None


def resolve_route(
    snapshot: AuthSnapshot,
    path: str,
    auth_mode: AuthFormMode = AuthFormMode.SIGN_IN,
    markers: Iterable[str] = DEFAULT_COACH_MARKERS,
) -> RouteDecision:
    """Select the view for `path` under the given identity snapshot."""
    state = resolve_router_state(snapshot, markers)
    requested = normalize_path(path)

    if state is RouterState.LOADING:
        return RouteDecision(state=state, view=LOADING_VIEW, path=requested)

    if state is RouterState.UNAUTHENTICATED:
        return RouteDecision(
            state=state,
            view=AUTH_FORM_VIEW,
            path=requested,
            auth_form=auth_mode,
        )

    tree = route_tree_for(state)
    effective = tree.landing if requested == "/" else requested

    matched = tree.match(effective)
    if matched is None:
        return RouteDecision(state=state, view=NOT_FOUND_VIEW, path=effective)

    spec, params = matched
    return RouteDecision(
        state=state,
        view=spec.view,
        path=effective,
        params=params,
        redirect_to=effective if effective != requested else None,
    )


def navigation_menu(role: Role) -> tuple[MenuEntry, ...]:
    return NAVIGATION_MENUS[role]


def _split(path: str) -> list[str]:
    normalized = normalize_path(path)
    if normalized == "/":
        return []
    return normalized[1:].split("/")
