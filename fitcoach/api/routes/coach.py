"""
Coach route tree endpoints.

Dashboard, client management (search, invite), one client's profile and
the weekly schedule. Only identities resolved to the coach role reach
these handlers; everyone else gets a 404.
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from ...core.views.coach import ClientInvitation, ScheduleFilter
from ..dependencies import CoachIdentity, CoachViewsDep
from ..schemas import ViewResponse, present

logger = logging.getLogger(__name__)

router = APIRouter()


class InviteClientRequest(BaseModel):
    """A new client to invite, optionally starting on a programme."""
    email: str = Field(description="Client's email address", min_length=3, max_length=320)
    full_name: str = Field("", max_length=200)
    phone: str = Field("", max_length=50)
    programme_id: Optional[UUID] = Field(None, description="Programme to assign right away")


@router.get("/dashboard", response_model=ViewResponse, summary="Clients overview")
async def dashboard(identity: CoachIdentity, views: CoachViewsDep) -> ViewResponse:
    return present(await views.dashboard(identity))


@router.get("/clients", response_model=ViewResponse, summary="Client management")
async def clients(
    identity: CoachIdentity,
    views: CoachViewsDep,
    search: str = Query("", max_length=200, description="Matches email, name or programme"),
) -> ViewResponse:
    return present(await views.client_management(identity, search))


@router.post(
    "/clients",
    response_model=ViewResponse,
    summary="Invite a client",
)
async def invite_client(
    request: InviteClientRequest,
    identity: CoachIdentity,
    views: CoachViewsDep,
) -> ViewResponse:
    try:
        invitation = ClientInvitation(**request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return present(await views.invite_client(identity, invitation))


@router.get("/clients/{client_id}", response_model=ViewResponse, summary="Client profile")
async def client_profile(
    client_id: UUID,
    identity: CoachIdentity,
    views: CoachViewsDep,
) -> ViewResponse:
    return present(await views.client_profile(identity, client_id))


@router.get("/schedule", response_model=ViewResponse, summary="Weekly schedule")
async def schedule(
    identity: CoachIdentity,
    views: CoachViewsDep,
    week_of: Optional[date] = Query(None, description="Any day of the week to show; defaults to today"),
    status_filter: ScheduleFilter = Query(
        ScheduleFilter.ALL,
        alias="status",
        description="all, scheduled, started, completed or cancelled",
    ),
) -> ViewResponse:
    result = await views.schedule(identity, week_of, status_filter)
    return present(
        result,
        previous_week=result.data.previous_week,
        next_week=result.data.next_week,
    )
