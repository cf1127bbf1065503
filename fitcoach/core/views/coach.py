"""
Coach-side views.

The coach sees an overview of their clients, manages them (search, invite,
assign a programme), drills into one client's profile, and plans the week
on a seven-day schedule.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Optional, Protocol
from uuid import UUID

from ..auth.models import Identity, Role
from .lifetime import ViewScope, gather_named
from .models import (
    ClientDetails,
    ClientOverview,
    ClientProgressPoint,
    ClientSessionEntry,
    Level,
    ManagedClient,
    Programme,
    ProgrammeAssignment,
    ScheduledSession,
    SessionStatus,
    WellnessEntry,
    session_status_labels,
    utcnow,
)
from .notifications import error, success
from .results import ViewResult

logger = logging.getLogger(__name__)

COACH_HOME = "/coach"


# ---------------------------------------------------------------------------
# Protocols (collaborators)
# ---------------------------------------------------------------------------

class CoachViewSource(Protocol):
    """Reads and writes backing the coach pages."""

    def dashboard(self, coach_id: UUID) -> list[ClientOverview]: ...
    def clients(self, coach_id: UUID) -> list[ManagedClient]: ...
    def programmes(self, coach_id: UUID) -> list[Programme]: ...
    def client_details(self, coach_id: UUID, client_id: UUID) -> Optional[ClientDetails]: ...
    def client_sessions(self, client_id: UUID, limit: int = 20) -> list[ClientSessionEntry]: ...
    def client_wellness(self, client_id: UUID, limit: int = 30) -> list[WellnessEntry]: ...
    def client_progress(self, client_id: UUID, limit: int = 30) -> list[ClientProgressPoint]: ...
    def schedule(self, coach_id: UUID, start: datetime, end: datetime) -> list[ScheduledSession]: ...
    def assign_programme(self, assignment: ProgrammeAssignment) -> UUID: ...


class ClientInviter(Protocol):
    """The part of the auth collaborator that creates identities for others."""

    def invite(
        self,
        email: str,
        role: Role,
        full_name: str = "",
        phone: str = "",
    ) -> Identity: ...


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------

def profile_wellness_level(value: float, reverse: bool = False) -> Level:
    """
    Rate a logged wellness value on the client profile.

    The profile is stricter than the entry form: a normal scale needs 7 to
    be good, a reversed scale turns bad only above 7.
    """
    if reverse:
        if value <= 3:
            return Level.GOOD
        if value <= 7:
            return Level.WARNING
        return Level.BAD
    if value >= 7:
        return Level.GOOD
    if value >= 4:
        return Level.WARNING
    return Level.BAD


def week_bounds(reference: date) -> tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59:59.999999 (UTC) of the reference week."""
    monday = reference - timedelta(days=reference.weekday())
    start = datetime.combine(monday, time.min, tzinfo=timezone.utc)
    end = datetime.combine(monday + timedelta(days=6), time.max, tzinfo=timezone.utc)
    return start, end


class ScheduleFilter(Enum):
    ALL = "all"
    SCHEDULED = "scheduled"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def accepts(self, session: ScheduledSession) -> bool:
        if self is ScheduleFilter.ALL:
            return True
        return session.status.value == self.value


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

@dataclass
class DashboardStats:
    total_clients: int = 0
    active_sessions: int = 0
    completed_sessions: int = 0


@dataclass
class CoachDashboard:
    clients: list[ClientOverview] = field(default_factory=list)
    stats: DashboardStats = field(default_factory=DashboardStats)


@dataclass
class ClientManagement:
    clients: list[ManagedClient] = field(default_factory=list)
    programmes: list[Programme] = field(default_factory=list)
    search: str = ""
    total: int = 0


@dataclass
class ClientInvitation:
    email: str
    full_name: str = ""
    phone: str = ""
    programme_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        if "@" not in self.email:
            raise ValueError("A valid email is required")


@dataclass
class WellnessRow:
    entry: WellnessEntry
    sleep: Level
    fatigue: Level
    stress: Level
    soreness: Level

    @classmethod
    def rate(cls, entry: WellnessEntry) -> "WellnessRow":
        return cls(
            entry=entry,
            sleep=profile_wellness_level(entry.sleep_hours),
            fatigue=profile_wellness_level(entry.fatigue_level, reverse=True),
            stress=profile_wellness_level(entry.stress_level, reverse=True),
            soreness=profile_wellness_level(entry.soreness_level, reverse=True),
        )


@dataclass
class ClientProfile:
    details: ClientDetails
    sessions: list[ClientSessionEntry] = field(default_factory=list)
    wellness: list[WellnessRow] = field(default_factory=list)
    progress: list[ClientProgressPoint] = field(default_factory=list)


@dataclass
class ScheduleDay:
    day: date
    is_today: bool
    sessions: list[ScheduledSession] = field(default_factory=list)


@dataclass
class WeekSchedule:
    week_start: datetime
    week_end: datetime
    days: list[ScheduleDay]
    filter: ScheduleFilter = ScheduleFilter.ALL
    summary: dict[str, int] = field(default_factory=dict)
    status_labels: dict[str, str] = field(default_factory=session_status_labels)

    @property
    def previous_week(self) -> date:
        return (self.week_start - timedelta(weeks=1)).date()

    @property
    def next_week(self) -> date:
        return (self.week_start + timedelta(weeks=1)).date()


def build_week_schedule(
    sessions: list[ScheduledSession],
    reference: date,
    schedule_filter: ScheduleFilter = ScheduleFilter.ALL,
    today: Optional[date] = None,
) -> WeekSchedule:
    """Lay the week's sessions out on a Monday-first, seven-column grid."""
    start, end = week_bounds(reference)
    today = today or utcnow().date()
    visible = [s for s in sessions if schedule_filter.accepts(s)]

    days = []
    for offset in range(7):
        day = start.date() + timedelta(days=offset)
        days.append(ScheduleDay(
            day=day,
            is_today=day == today,
            sessions=sorted(
                (s for s in visible if s.session_date.date() == day),
                key=lambda s: s.session_date,
            ),
        ))

    summary = {"total": len(visible)}
    for status in (SessionStatus.COMPLETED, SessionStatus.STARTED, SessionStatus.SCHEDULED):
        summary[status.value] = sum(1 for s in sessions if s.status is status)

    return WeekSchedule(
        week_start=start,
        week_end=end,
        days=days,
        filter=schedule_filter,
        summary=summary,
    )


def dashboard_stats(clients: list[ClientOverview], now: Optional[datetime] = None) -> DashboardStats:
    """A client is active while their next session is still ahead."""
    now = now or utcnow()
    active = sum(
        1 for client in clients
        if client.next_session_date is not None and client.next_session_date >= now
    )
    return DashboardStats(
        total_clients=len(clients),
        active_sessions=active,
        completed_sessions=len(clients) - active,
    )


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class CoachViews:
    """The pages of the coach route tree."""

    def __init__(
        self,
        source: CoachViewSource,
        inviter: ClientInviter,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._source = source
        self._inviter = inviter
        self._timeout = timeout_seconds

    def _scope(self, view: str) -> ViewScope:
        return ViewScope(view, timeout_seconds=self._timeout)

    async def dashboard(self, identity: Identity) -> ViewResult[CoachDashboard]:
        async with self._scope("coach_dashboard") as scope:
            clients = await scope.fetch(
                "dashboard",
                self._source.dashboard,
                identity.id,
                fallback=list,
                error_message="Could not load your clients",
            )
        return ViewResult(
            view="coach_dashboard",
            data=CoachDashboard(clients=clients, stats=dashboard_stats(clients)),
            notifications=scope.notifications,
        )

    async def client_management(
        self,
        identity: Identity,
        search: str = "",
    ) -> ViewResult[ClientManagement]:
        message = "Could not load your data"
        async with self._scope("client_management") as scope:
            clients, programmes = await gather_named(scope, [
                ("clients", self._source.clients, (identity.id,), list, message),
                ("programmes", self._source.programmes, (identity.id,), list, message),
            ])
        return ViewResult(
            view="client_management",
            data=ClientManagement(
                clients=[c for c in clients if c.matches(search)],
                programmes=programmes,
                search=search,
                total=len(clients),
            ),
            notifications=scope.notifications,
        )

    async def invite_client(
        self,
        identity: Identity,
        invitation: ClientInvitation,
    ) -> ViewResult[Optional[UUID]]:
        """
        Invite a new client and, optionally, start them on a programme.

        The invited identity always carries an explicit client role claim,
        whatever its email looks like.
        """
        async with self._scope("client_management") as scope:
            invited = await scope.fetch(
                "invite",
                self._inviter.invite,
                invitation.email,
                Role.CLIENT,
                invitation.full_name,
                invitation.phone,
            )
            if invited is not None and invitation.programme_id is not None:
                assigned = await scope.fetch(
                    "assign_programme",
                    self._source.assign_programme,
                    ProgrammeAssignment(
                        user_id=invited.id,
                        programme_id=invitation.programme_id,
                        assigned_by=identity.id,
                    ),
                )
                if assigned is None:
                    invited = None

        if invited is None:
            return ViewResult(
                view="client_management",
                data=None,
                notifications=scope.notifications,
            )

        logger.info(
            "Client invited",
            extra={"coach_id": str(identity.id), "client_id": str(invited.id)},
        )
        return ViewResult(
            view="client_management",
            data=invited.id,
            notifications=[success(
                "Client added",
                "The client has been invited"
                + (" and assigned to the programme" if invitation.programme_id else ""),
            )],
        )

    async def client_profile(
        self,
        identity: Identity,
        client_id: UUID,
    ) -> ViewResult[Optional[ClientProfile]]:
        """
        Everything a coach sees about one client.

        The details row doubles as the access check: a client who isn't
        coached by this coach has no row, and the coach is sent back to the
        dashboard.
        """
        failure = "Could not load the client's data"
        async with self._scope("client_profile") as scope:
            details = await scope.fetch(
                "client_details",
                self._source.client_details,
                identity.id,
                client_id,
                error_message=failure,
            )
            if details is None:
                if not scope.notifications:
                    scope.notify(error(failure))
                return ViewResult(
                    view="client_profile",
                    data=None,
                    notifications=scope.notifications,
                    redirect_to=COACH_HOME,
                )

            sessions, wellness, progress = await gather_named(scope, [
                ("client_sessions", self._source.client_sessions, (client_id, 20), list, failure),
                ("client_wellness", self._source.client_wellness, (client_id, 30), list, failure),
                ("client_progress", self._source.client_progress, (client_id, 30), list, failure),
            ])

        return ViewResult(
            view="client_profile",
            data=ClientProfile(
                details=details,
                sessions=sessions,
                wellness=[WellnessRow.rate(entry) for entry in wellness],
                progress=progress,
            ),
            notifications=scope.notifications,
        )

    async def schedule(
        self,
        identity: Identity,
        reference: Optional[date] = None,
        schedule_filter: ScheduleFilter = ScheduleFilter.ALL,
    ) -> ViewResult[WeekSchedule]:
        reference = reference or utcnow().date()
        start, end = week_bounds(reference)
        async with self._scope("schedule") as scope:
            sessions = await scope.fetch(
                "schedule",
                self._source.schedule,
                identity.id,
                start,
                end,
                fallback=list,
                error_message="Could not load the schedule",
            )
        return ViewResult(
            view="schedule",
            data=build_week_schedule(sessions, reference, schedule_filter),
            notifications=scope.notifications,
        )
