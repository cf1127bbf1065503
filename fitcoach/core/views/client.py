"""
Client-side views.

Each method corresponds to one page of the client route tree. A method
mounts a `ViewScope`, fetches what the page needs from the data sources,
and returns a `ViewResult` whose data is always renderable: fetch failures
become notifications and fall back to the page's empty state.

This module only knows the data sources through Protocols, so it can be
exercised with in-memory fakes.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol
from uuid import UUID

from ..auth.models import Identity
from .lifetime import ViewScope, gather_named
from .models import (
    ExerciseStat,
    FeedbackEntry,
    Goal,
    GoalProgress,
    HistoryEntry,
    Level,
    NextSession,
    ProgressPoint,
    RecentSession,
    SessionDetail,
    SessionStatus,
    UserStatistics,
    WellnessEntry,
    session_status_labels,
)
from .notifications import error, success
from .results import ViewResult

logger = logging.getLogger(__name__)

CLIENT_HOME = "/client"


# ---------------------------------------------------------------------------
# Protocols (data sources)
# ---------------------------------------------------------------------------

class ClientViewSource(Protocol):
    """Reads and writes backing the client pages."""

    def next_session(self, user_id: UUID) -> Optional[NextSession]: ...
    def session_detail(self, session_id: UUID) -> Optional[SessionDetail]: ...
    def recent_sessions(self, user_id: UUID, limit: int = 10) -> list[RecentSession]: ...
    def history(self, user_id: UUID, limit: int = 50) -> list[HistoryEntry]: ...
    def statistics(self, user_id: UUID) -> Optional[UserStatistics]: ...
    def progress(self, user_id: UUID, limit: int = 30) -> list[ProgressPoint]: ...
    def exercise_stats(self, user_id: UUID, limit: int = 10) -> list[ExerciseStat]: ...
    def insert_feedback(self, entry: FeedbackEntry) -> UUID: ...
    def insert_wellness(self, entry: WellnessEntry) -> UUID: ...


class GoalStore(Protocol):
    def list_goals(self, user_id: UUID) -> list[Goal]: ...
    def create_goal(self, goal: Goal) -> UUID: ...
    def update_goal(self, goal: Goal) -> bool: ...
    def update_progress(self, user_id: UUID, goal_id: UUID, value: float) -> bool: ...
    def delete_goal(self, user_id: UUID, goal_id: UUID) -> bool: ...


# ---------------------------------------------------------------------------
# Scales and labels
# ---------------------------------------------------------------------------

def rpe_label(rpe: int) -> str:
    """How hard an RPE value feels, as shown next to the 1-10 picker."""
    if rpe <= 3:
        return "Easy"
    if rpe <= 6:
        return "Moderate"
    if rpe <= 8:
        return "Hard"
    return "Very hard"


RPE_SCALE = [(value, rpe_label(value)) for value in range(1, 11)]


def wellness_level(value: float, reverse: bool = False) -> Level:
    """
    Rate a value entered in the wellness form.

    Normal scales (sleep) are good when high; reversed scales (fatigue,
    stress, soreness) are good when low.
    """
    if reverse:
        if value <= 3:
            return Level.GOOD
        if value <= 6:
            return Level.WARNING
        return Level.BAD
    if value <= 3:
        return Level.BAD
    if value <= 6:
        return Level.WARNING
    return Level.GOOD


class HistoryFilter(Enum):
    ALL = "all"
    COMPLETED = "completed"
    STARTED = "started"

    def accepts(self, entry: HistoryEntry) -> bool:
        if self is HistoryFilter.ALL:
            return True
        return entry.status.value == self.value


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

@dataclass
class ClientDashboard:
    next_session: Optional[NextSession] = None


@dataclass
class FeedbackForm:
    recent_sessions: list[RecentSession] = field(default_factory=list)
    rpe_scale: list[tuple[int, str]] = field(default_factory=lambda: list(RPE_SCALE))


@dataclass
class WellnessForm:
    """Initial values and bounds of the wellness sliders."""
    defaults: WellnessEntry
    sleep_range: tuple[float, float, float] = (0.0, 12.0, 0.5)
    scale_range: tuple[int, int, int] = (1, 10, 1)


def history_counts(entries: list[HistoryEntry]) -> dict[str, int]:
    """Entries per status, as shown on the history filter tabs."""
    return {
        status.value: sum(1 for e in entries if e.status is status)
        for status in (SessionStatus.COMPLETED, SessionStatus.STARTED, SessionStatus.SCHEDULED)
    }


@dataclass
class History:
    """
    The history page after filtering.

    `total` and `counts` label the filter tabs, so they cover every loaded
    entry whatever filter is active.
    """
    entries: list[HistoryEntry] = field(default_factory=list)
    filter: HistoryFilter = HistoryFilter.ALL
    total: int = 0
    counts: dict[str, int] = field(default_factory=dict)
    status_labels: dict[str, str] = field(default_factory=session_status_labels)


@dataclass
class Statistics:
    summary: UserStatistics = field(default_factory=UserStatistics)
    progress: list[ProgressPoint] = field(default_factory=list)
    exercises: list[ExerciseStat] = field(default_factory=list)


@dataclass
class GoalView:
    goal: Goal
    progress_percent: float
    progress_status: GoalProgress


@dataclass
class Goals:
    goals: list[GoalView] = field(default_factory=list)

    @property
    def achieved(self) -> int:
        return sum(1 for g in self.goals if g.progress_status is GoalProgress.ACHIEVED)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class ClientViews:
    """
    The pages of the client route tree.

    Stateless between calls: every call is one mount of a page, with its
    own scope, its own fetches and its own fallback state.
    """

    def __init__(
        self,
        source: ClientViewSource,
        goals: GoalStore,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._source = source
        self._goals = goals
        self._timeout = timeout_seconds

    def _scope(self, view: str) -> ViewScope:
        return ViewScope(view, timeout_seconds=self._timeout)

    async def dashboard(self, identity: Identity) -> ViewResult[ClientDashboard]:
        async with self._scope("client_dashboard") as scope:
            next_session = await scope.fetch(
                "next_session",
                self._source.next_session,
                identity.id,
                error_message="Could not load your next session",
            )
        return ViewResult(
            view="client_dashboard",
            data=ClientDashboard(next_session=next_session),
            notifications=scope.notifications,
        )

    async def session(
        self,
        identity: Identity,
        session_id: UUID,
    ) -> ViewResult[Optional[SessionDetail]]:
        """
        A session and its exercises.

        Sessions that don't exist, fail to load or belong to another
        user's programme send the client back to the dashboard.
        """
        async with self._scope("session_view") as scope:
            detail = await scope.fetch(
                "session_detail",
                self._source.session_detail,
                session_id,
                error_message="Could not load this session",
            )

        notifications = scope.notifications
        if detail is not None and not detail.is_owned_by(identity.id):
            logger.warning(
                "Session access denied",
                extra={"session_id": str(session_id), "user_id": str(identity.id)},
            )
            notifications.append(error("Unauthorized access"))
            detail = None

        return ViewResult(
            view="session_view",
            data=detail,
            notifications=notifications,
            redirect_to=None if detail is not None else CLIENT_HOME,
        )

    async def feedback_form(self, identity: Identity) -> ViewResult[FeedbackForm]:
        async with self._scope("feedback_form") as scope:
            recent = await scope.fetch(
                "recent_sessions",
                self._source.recent_sessions,
                identity.id,
                10,
                fallback=list,
                error_message="Could not load your recent sessions",
            )
        return ViewResult(
            view="feedback_form",
            data=FeedbackForm(recent_sessions=recent),
            notifications=scope.notifications,
        )

    async def submit_feedback(self, entry: FeedbackEntry) -> ViewResult[Optional[UUID]]:
        async with self._scope("feedback_form") as scope:
            feedback_id = await scope.fetch(
                "insert_feedback",
                self._source.insert_feedback,
                entry,
            )
        return self._submission(
            "feedback_form",
            feedback_id,
            scope,
            success("Feedback saved", "Your feedback has been recorded."),
        )

    def wellness_form(self, identity: Identity) -> ViewResult[WellnessForm]:
        """The wellness form needs no data, only its defaults."""
        return ViewResult(
            view="wellness_form",
            data=WellnessForm(defaults=WellnessEntry(user_id=identity.id)),
        )

    async def submit_wellness(self, entry: WellnessEntry) -> ViewResult[Optional[UUID]]:
        async with self._scope("wellness_form") as scope:
            log_id = await scope.fetch(
                "insert_wellness",
                self._source.insert_wellness,
                entry,
            )
        return self._submission(
            "wellness_form",
            log_id,
            scope,
            success("Check-in saved", "Your wellness data has been recorded."),
        )

    async def history(
        self,
        identity: Identity,
        history_filter: HistoryFilter = HistoryFilter.ALL,
    ) -> ViewResult[History]:
        async with self._scope("history") as scope:
            entries = await scope.fetch(
                "history",
                self._source.history,
                identity.id,
                50,
                fallback=list,
                error_message="Could not load your history",
            )
        return ViewResult(
            view="history",
            data=History(
                entries=[e for e in entries if history_filter.accepts(e)],
                filter=history_filter,
                total=len(entries),
                counts=history_counts(entries),
            ),
            notifications=scope.notifications,
        )

    async def statistics(self, identity: Identity) -> ViewResult[Statistics]:
        message = "Could not load your statistics"
        async with self._scope("statistics") as scope:
            summary, progress, exercises = await gather_named(scope, [
                ("statistics", self._source.statistics, (identity.id,), None, message),
                ("progress", self._source.progress, (identity.id, 30), list, message),
                ("exercise_stats", self._source.exercise_stats, (identity.id, 10), list, message),
            ])
        return ViewResult(
            view="statistics",
            data=Statistics(
                summary=summary or UserStatistics(),
                progress=progress,
                exercises=exercises,
            ),
            notifications=scope.notifications,
        )

    # -----------------------------------------------------------------------
    # Goals
    # -----------------------------------------------------------------------

    async def goals(self, identity: Identity) -> ViewResult[Goals]:
        async with self._scope("goals") as scope:
            goals = await scope.fetch(
                "goals",
                self._goals.list_goals,
                identity.id,
                fallback=list,
                error_message="Could not load your goals",
            )
        return ViewResult(
            view="goals",
            data=Goals(goals=[
                GoalView(
                    goal=goal,
                    progress_percent=goal.progress_percent,
                    progress_status=goal.progress_status(),
                )
                for goal in goals
            ]),
            notifications=scope.notifications,
        )

    async def save_goal(self, goal: Goal, existing: bool = False) -> ViewResult[Optional[UUID]]:
        """Create a goal, or update it when `existing` is set."""
        goal.validate()
        async with self._scope("goals") as scope:
            if existing:
                updated = await scope.fetch(
                    "update_goal",
                    self._goals.update_goal,
                    goal,
                    fallback=False,
                    error_message="Could not save the goal",
                )
                saved_id = goal.id if updated else None
            else:
                saved_id = await scope.fetch(
                    "create_goal",
                    self._goals.create_goal,
                    goal,
                    error_message="Could not save the goal",
                )

        if saved_id is None and not scope.notifications:
            scope.notify(error("Goal not found"))

        notice = (
            success("Goal updated", "Your goal has been updated.")
            if existing else
            success("Goal created", "Your new goal has been created.")
        )
        return self._submission("goals", saved_id, scope, notice, redirect=False)

    async def update_goal_progress(
        self,
        identity: Identity,
        goal_id: UUID,
        value: float,
    ) -> ViewResult[Optional[UUID]]:
        if value < 0:
            raise ValueError("Goal progress cannot be negative")
        async with self._scope("goals") as scope:
            updated = await scope.fetch(
                "update_progress",
                self._goals.update_progress,
                identity.id,
                goal_id,
                value,
                fallback=False,
                error_message="Could not update progress",
            )
        if not updated and not scope.notifications:
            scope.notify(error("Goal not found"))
        return self._submission(
            "goals",
            goal_id if updated else None,
            scope,
            success("Progress updated", "Your progress has been recorded."),
            redirect=False,
        )

    async def delete_goal(self, identity: Identity, goal_id: UUID) -> ViewResult[Optional[UUID]]:
        async with self._scope("goals") as scope:
            deleted = await scope.fetch(
                "delete_goal",
                self._goals.delete_goal,
                identity.id,
                goal_id,
                fallback=False,
                error_message="Could not delete the goal",
            )
        if not deleted and not scope.notifications:
            scope.notify(error("Goal not found"))
        return self._submission(
            "goals",
            goal_id if deleted else None,
            scope,
            success("Goal deleted", "The goal has been deleted."),
            redirect=False,
        )

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _submission(
        self,
        view: str,
        record_id: Optional[UUID],
        scope: ViewScope,
        notice,
        redirect: bool = True,
    ) -> ViewResult[Optional[UUID]]:
        """Shape the result of a form submission."""
        if record_id is None:
            return ViewResult(view=view, data=None, notifications=scope.notifications)
        return ViewResult(
            view=view,
            data=record_id,
            notifications=[notice],
            redirect_to=CLIENT_HOME if redirect else None,
        )
