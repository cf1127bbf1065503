"""
Client route tree endpoints.

One GET per page of the /client tree, plus the form submissions. Every
response is a `ViewResponse`: the page payload (or its empty state),
notifications and an optional redirect. Only identities resolved to the
client role reach these handlers; everyone else gets a 404.
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from ...core.views.client import HistoryFilter, wellness_level
from ...core.views.models import (
    FeedbackEntry,
    Goal,
    GoalCategory,
    GoalStatus,
    WellnessEntry,
)
from ..dependencies import ClientIdentity, ClientViewsDep
from ..schemas import ViewResponse, present

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------

class FeedbackRequest(BaseModel):
    """Feedback on one exercise of a recent session."""
    session_id: UUID = Field(description="Session the feedback is about")
    exercise_name: str = Field(description="Exercise name", min_length=1, max_length=200)
    weight: Optional[float] = Field(None, ge=0, description="Weight used (kg)")
    reps: Optional[int] = Field(None, ge=0, description="Repetitions done")
    rpe: Optional[int] = Field(None, ge=1, le=10, description="Rate of perceived exertion, 1-10")
    comments: str = Field("", max_length=2000, description="Free-form comments")


class WellnessRequest(BaseModel):
    """Daily wellness check-in. Fatigue, stress and soreness: higher is worse."""
    sleep_hours: float = Field(7.0, ge=0, le=12, multiple_of=0.5, description="Hours slept")
    fatigue_level: int = Field(5, ge=1, le=10)
    stress_level: int = Field(5, ge=1, le=10)
    soreness_level: int = Field(3, ge=1, le=10)
    notes: str = Field("", max_length=2000)


class GoalRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    category: GoalCategory = GoalCategory.GENERAL
    target_value: float = Field(gt=0, description="Value to reach")
    current_value: float = Field(0, ge=0, description="Progress so far")
    unit: str = Field("", max_length=50, description="Unit of the values (kg, km, ...)")
    target_date: Optional[date] = Field(None, description="Deadline, if any")
    status: GoalStatus = GoalStatus.ACTIVE


class ProgressRequest(BaseModel):
    value: float = Field(ge=0, description="New current value")


def _invalid(e: ValueError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=str(e),
    )


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

@router.get("/dashboard", response_model=ViewResponse, summary="Next session")
async def dashboard(identity: ClientIdentity, views: ClientViewsDep) -> ViewResponse:
    return present(await views.dashboard(identity))


@router.get("/sessions/{session_id}", response_model=ViewResponse, summary="One session and its exercises")
async def session_view(
    session_id: UUID,
    identity: ClientIdentity,
    views: ClientViewsDep,
) -> ViewResponse:
    return present(await views.session(identity, session_id))


@router.get("/feedback", response_model=ViewResponse, summary="Feedback form")
async def feedback_form(identity: ClientIdentity, views: ClientViewsDep) -> ViewResponse:
    return present(await views.feedback_form(identity))


@router.post("/feedback", response_model=ViewResponse, summary="Submit feedback")
async def submit_feedback(
    request: FeedbackRequest,
    identity: ClientIdentity,
    views: ClientViewsDep,
) -> ViewResponse:
    try:
        entry = FeedbackEntry(user_id=identity.id, **request.model_dump())
    except ValueError as e:
        raise _invalid(e)
    return present(await views.submit_feedback(entry))


@router.get("/wellness", response_model=ViewResponse, summary="Wellness form")
async def wellness_form(identity: ClientIdentity, views: ClientViewsDep) -> ViewResponse:
    result = views.wellness_form(identity)
    defaults = result.data.defaults
    return present(
        result,
        levels={
            "sleep": wellness_level(defaults.sleep_hours),
            "fatigue": wellness_level(defaults.fatigue_level, reverse=True),
            "stress": wellness_level(defaults.stress_level, reverse=True),
            "soreness": wellness_level(defaults.soreness_level, reverse=True),
        },
    )


@router.post("/wellness", response_model=ViewResponse, summary="Submit a wellness check-in")
async def submit_wellness(
    request: WellnessRequest,
    identity: ClientIdentity,
    views: ClientViewsDep,
) -> ViewResponse:
    try:
        entry = WellnessEntry(user_id=identity.id, **request.model_dump())
    except ValueError as e:
        raise _invalid(e)
    return present(await views.submit_wellness(entry))


@router.get("/history", response_model=ViewResponse, summary="Session history")
async def history(
    identity: ClientIdentity,
    views: ClientViewsDep,
    history_filter: HistoryFilter = Query(
        HistoryFilter.ALL,
        alias="filter",
        description="all, completed or started",
    ),
) -> ViewResponse:
    return present(await views.history(identity, history_filter))


@router.get("/statistics", response_model=ViewResponse, summary="Statistics and charts")
async def statistics(identity: ClientIdentity, views: ClientViewsDep) -> ViewResponse:
    return present(await views.statistics(identity))


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

@router.get("/goals", response_model=ViewResponse, summary="Personal goals")
async def goals(identity: ClientIdentity, views: ClientViewsDep) -> ViewResponse:
    result = await views.goals(identity)
    return present(result, achieved=result.data.achieved)


@router.post(
    "/goals",
    response_model=ViewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a goal",
)
async def create_goal(
    request: GoalRequest,
    identity: ClientIdentity,
    views: ClientViewsDep,
) -> ViewResponse:
    goal = Goal(user_id=identity.id, **request.model_dump())
    try:
        return present(await views.save_goal(goal))
    except ValueError as e:
        raise _invalid(e)


@router.put("/goals/{goal_id}", response_model=ViewResponse, summary="Update a goal")
async def update_goal(
    goal_id: UUID,
    request: GoalRequest,
    identity: ClientIdentity,
    views: ClientViewsDep,
) -> ViewResponse:
    goal = Goal(id=goal_id, user_id=identity.id, **request.model_dump())
    try:
        return present(await views.save_goal(goal, existing=True))
    except ValueError as e:
        raise _invalid(e)


@router.patch("/goals/{goal_id}/progress", response_model=ViewResponse, summary="Record progress")
async def update_goal_progress(
    goal_id: UUID,
    request: ProgressRequest,
    identity: ClientIdentity,
    views: ClientViewsDep,
) -> ViewResponse:
    return present(await views.update_goal_progress(identity, goal_id, request.value))


@router.delete("/goals/{goal_id}", response_model=ViewResponse, summary="Delete a goal")
async def delete_goal(
    goal_id: UUID,
    identity: ClientIdentity,
    views: ClientViewsDep,
) -> ViewResponse:
    return present(await views.delete_goal(identity, goal_id))
