"""
Navigation endpoint.

Tells the front end what to render for a path: the router state, the
view key, route parameters, an optional redirect, and the navigation
menu of the caller's route tree.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from ...core.auth.models import AuthFormMode, Role
from ...core.auth.router import RouterState, navigation_menu, resolve_route
from ..dependencies import CurrentSnapshot, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()

_MENU_ROLES = {
    RouterState.AUTHENTICATED_COACH: Role.COACH,
    RouterState.AUTHENTICATED_CLIENT: Role.CLIENT,
}


class MenuEntryModel(BaseModel):
    label: str
    path: str
    description: str


class NavigationResponse(BaseModel):
    state: str = Field(description="loading, unauthenticated, authenticated-coach or authenticated-client")
    view: str = Field(description="View key to render")
    path: str = Field(description="Effective path after redirects")
    params: dict[str, str] = Field(default_factory=dict, description="Route parameters")
    redirect_to: Optional[str] = Field(None, description="Set when the requested path was redirected")
    auth_form: Optional[str] = Field(None, description="Form mode when the auth form is shown")
    menu: list[MenuEntryModel] = Field(default_factory=list, description="Navigation menu for the role")


@router.get(
    "",
    response_model=NavigationResponse,
    summary="Resolve a path for the current identity",
)
def navigate(
    snapshot: CurrentSnapshot,
    settings: SettingsDep,
    path: str = Query("/", description="Path the user is navigating to"),
    mode: AuthFormMode = Query(AuthFormMode.SIGN_IN, description="Auth form mode when signed out"),
) -> NavigationResponse:
    decision = resolve_route(snapshot, path, mode, settings.coach_email_markers_list)

    role = _MENU_ROLES.get(decision.state)
    menu = navigation_menu(role) if role else ()

    logger.debug(
        "Route resolved",
        extra={"state": decision.state.value, "view": decision.view, "path": decision.path},
    )
    return NavigationResponse(
        state=decision.state.value,
        view=decision.view,
        path=decision.path,
        params=dict(decision.params),
        redirect_to=decision.redirect_to,
        auth_form=decision.auth_form.value if decision.auth_form else None,
        menu=[
            MenuEntryModel(label=entry.label, path=entry.path, description=entry.description)
            for entry in menu
        ],
    )
