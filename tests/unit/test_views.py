"""
Unit tests for the client and coach views.

The views only know their data sources through Protocols, so these tests
use small in-memory fakes. A fake can be switched to failing mode to check
that every view falls back to its empty state with a notification.
"""

import asyncio
from datetime import date, datetime, timezone
from uuid import UUID, uuid4

import pytest

from fitcoach.core.auth.models import Identity, Role
from fitcoach.core.views.client import ClientViews, HistoryFilter
from fitcoach.core.views.coach import ClientInvitation, CoachViews, ScheduleFilter
from fitcoach.core.views.models import (
    ClientDetails,
    ClientOverview,
    FeedbackEntry,
    Goal,
    GoalProgress,
    HistoryEntry,
    Level,
    ManagedClient,
    NextSession,
    Programme,
    ScheduledSession,
    SessionDetail,
    SessionStatus,
    UserStatistics,
    WellnessEntry,
)
from fitcoach.core.views.notifications import NotificationVariant

CLIENT = Identity(id=uuid4(), email="ana@example.com")
COACH = Identity(id=uuid4(), email="coach@example.com")


class Broken(RuntimeError):
    pass


def _fail_if(flag: bool) -> None:
    if flag:
        raise Broken("warehouse unavailable")


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeClientSource:

    def __init__(self) -> None:
        self.failing = False
        self.sessions: dict[UUID, SessionDetail] = {}
        self.history_entries: list[HistoryEntry] = []
        self.feedback: list[FeedbackEntry] = []
        self.wellness: list[WellnessEntry] = []

    def next_session(self, user_id):
        _fail_if(self.failing)
        return NextSession(id=uuid4(), session_name="Legs", programme_name="Base", week_number=2)

    def session_detail(self, session_id):
        _fail_if(self.failing)
        return self.sessions.get(session_id)

    def recent_sessions(self, user_id, limit=10):
        _fail_if(self.failing)
        return []

    def history(self, user_id, limit=50):
        _fail_if(self.failing)
        return list(self.history_entries)

    def statistics(self, user_id):
        _fail_if(self.failing)
        return UserStatistics(total_sessions=4, completed_sessions=3)

    def progress(self, user_id, limit=30):
        _fail_if(self.failing)
        return []

    def exercise_stats(self, user_id, limit=10):
        _fail_if(self.failing)
        return []

    def insert_feedback(self, entry):
        _fail_if(self.failing)
        self.feedback.append(entry)
        return entry.id

    def insert_wellness(self, entry):
        _fail_if(self.failing)
        self.wellness.append(entry)
        return entry.id


class FakeGoalStore:

    def __init__(self) -> None:
        self.failing = False
        self.goals: dict[UUID, Goal] = {}

    def list_goals(self, user_id):
        _fail_if(self.failing)
        return [g for g in self.goals.values() if g.user_id == user_id]

    def create_goal(self, goal):
        _fail_if(self.failing)
        self.goals[goal.id] = goal
        return goal.id

    def update_goal(self, goal):
        existing = self.goals.get(goal.id)
        if existing is None or existing.user_id != goal.user_id:
            return False
        self.goals[goal.id] = goal
        return True

    def update_progress(self, user_id, goal_id, value):
        goal = self.goals.get(goal_id)
        if goal is None or goal.user_id != user_id:
            return False
        goal.current_value = value
        return True

    def delete_goal(self, user_id, goal_id):
        goal = self.goals.get(goal_id)
        if goal is None or goal.user_id != user_id:
            return False
        del self.goals[goal_id]
        return True


class FakeCoachSource:

    def __init__(self) -> None:
        self.failing = False
        self.coached: dict[UUID, ClientDetails] = {}
        self.assignments = []
        self.sessions: list[ScheduledSession] = []

    def dashboard(self, coach_id):
        _fail_if(self.failing)
        return [ClientOverview(id=uuid4(), email="ana@example.com")]

    def clients(self, coach_id):
        _fail_if(self.failing)
        return [
            ManagedClient(id=uuid4(), email="ana@example.com", full_name="Ana"),
            ManagedClient(id=uuid4(), email="bo@example.com", full_name="Bo"),
        ]

    def programmes(self, coach_id):
        return [Programme(id=uuid4(), name="Base")]

    def client_details(self, coach_id, client_id):
        _fail_if(self.failing)
        return self.coached.get(client_id)

    def client_sessions(self, client_id, limit=20):
        return []

    def client_wellness(self, client_id, limit=30):
        return [WellnessEntry(user_id=client_id, sleep_hours=8, fatigue_level=8)]

    def client_progress(self, client_id, limit=30):
        return []

    def schedule(self, coach_id, start, end):
        _fail_if(self.failing)
        return [s for s in self.sessions if start <= s.session_date <= end]

    def assign_programme(self, assignment):
        _fail_if(self.failing)
        self.assignments.append(assignment)
        return uuid4()


class FakeInviter:

    def __init__(self) -> None:
        self.invited = []

    def invite(self, email, role, full_name="", phone=""):
        if any(i.email == email for i in self.invited):
            raise ValueError("A user with this email address has already been registered")
        identity = Identity(id=uuid4(), email=email, role=role)
        self.invited.append(identity)
        return identity


@pytest.fixture
def client_source():
    return FakeClientSource()


@pytest.fixture
def goal_store():
    return FakeGoalStore()


@pytest.fixture
def client_views(client_source, goal_store):
    return ClientViews(client_source, goal_store)


@pytest.fixture
def coach_source():
    return FakeCoachSource()


@pytest.fixture
def inviter():
    return FakeInviter()


@pytest.fixture
def coach_views(coach_source, inviter):
    return CoachViews(coach_source, inviter)


# ---------------------------------------------------------------------------
# Client View Tests
# ---------------------------------------------------------------------------

class TestClientDashboard:

    def test_shows_next_session(self, client_views):
        result = asyncio.run(client_views.dashboard(CLIENT))
        assert result.ok
        assert result.data.next_session.session_name == "Legs"

    def test_failure_falls_back_to_empty_state(self, client_views, client_source):
        """
        Given the warehouse is down
        When the dashboard loads
        Then it renders without a next session and says why
        """
        client_source.failing = True

        result = asyncio.run(client_views.dashboard(CLIENT))

        assert result.data.next_session is None
        assert not result.ok
        assert result.notifications[0].description == "Could not load your next session"


class TestSessionView:

    def test_owner_sees_session(self, client_views, client_source):
        session_id = uuid4()
        client_source.sessions[session_id] = SessionDetail(
            id=session_id, session_name="Legs", owner_id=CLIENT.id,
        )

        result = asyncio.run(client_views.session(CLIENT, session_id))

        assert result.data.session_name == "Legs"
        assert result.redirect_to is None

    def test_other_users_session_is_refused(self, client_views, client_source):
        session_id = uuid4()
        client_source.sessions[session_id] = SessionDetail(
            id=session_id, session_name="Legs", owner_id=uuid4(),
        )

        result = asyncio.run(client_views.session(CLIENT, session_id))

        assert result.data is None
        assert result.redirect_to == "/client"
        assert result.notifications[0].description == "Unauthorized access"

    def test_missing_session_redirects_home(self, client_views):
        result = asyncio.run(client_views.session(CLIENT, uuid4()))
        assert result.data is None
        assert result.redirect_to == "/client"


class TestClientForms:

    def test_feedback_form_has_rpe_scale(self, client_views):
        result = asyncio.run(client_views.feedback_form(CLIENT))
        assert result.data.recent_sessions == []
        assert result.data.rpe_scale[0] == (1, "Easy")
        assert len(result.data.rpe_scale) == 10

    def test_feedback_submission_redirects(self, client_views, client_source):
        entry = FeedbackEntry(session_id=uuid4(), user_id=CLIENT.id, exercise_name="Squat", rpe=7)

        result = asyncio.run(client_views.submit_feedback(entry))

        assert result.data == entry.id
        assert result.redirect_to == "/client"
        assert result.notifications[0].title == "Feedback saved"
        assert client_source.feedback == [entry]

    def test_failed_submission_stays_on_form(self, client_views, client_source):
        client_source.failing = True
        entry = WellnessEntry(user_id=CLIENT.id)

        result = asyncio.run(client_views.submit_wellness(entry))

        assert result.data is None
        assert result.redirect_to is None
        assert result.notifications[0].variant is NotificationVariant.DESTRUCTIVE

    def test_wellness_form_defaults(self, client_views):
        result = client_views.wellness_form(CLIENT)
        assert result.data.defaults.user_id == CLIENT.id
        assert result.data.sleep_range == (0.0, 12.0, 0.5)


class TestHistory:

    def _entry(self, status):
        return HistoryEntry(
            id=uuid4(),
            session_name="Legs",
            programme_name="Base",
            week_number=1,
            session_date=datetime(2024, 3, 1, tzinfo=timezone.utc),
            status=status,
        )

    def test_filter_keeps_total(self, client_views, client_source):
        client_source.history_entries = [
            self._entry(SessionStatus.COMPLETED),
            self._entry(SessionStatus.STARTED),
            self._entry(SessionStatus.COMPLETED),
        ]

        result = asyncio.run(client_views.history(CLIENT, HistoryFilter.COMPLETED))

        assert len(result.data.entries) == 2
        assert result.data.total == 3

    def test_tab_counts_ignore_active_filter(self, client_views, client_source):
        """
        Given two completed sessions and one in progress
        When the client shows only sessions in progress
        Then every tab still counts all loaded sessions
        """
        client_source.history_entries = [
            self._entry(SessionStatus.COMPLETED),
            self._entry(SessionStatus.STARTED),
            self._entry(SessionStatus.COMPLETED),
        ]

        result = asyncio.run(client_views.history(CLIENT, HistoryFilter.STARTED))

        assert len(result.data.entries) == 1
        assert result.data.counts == {"completed": 2, "started": 1, "scheduled": 0}
        assert result.data.status_labels["started"] == "In progress"


class TestStatistics:

    def test_loads_all_parts(self, client_views):
        result = asyncio.run(client_views.statistics(CLIENT))
        assert result.data.summary.total_sessions == 4
        assert result.ok

    def test_failure_gives_zeroed_summary_and_one_notification(self, client_views, client_source):
        client_source.failing = True

        result = asyncio.run(client_views.statistics(CLIENT))

        assert result.data.summary == UserStatistics()
        assert result.data.progress == []
        assert len(result.notifications) == 1


class TestGoals:

    def test_create_and_list(self, client_views, goal_store):
        goal = Goal(user_id=CLIENT.id, title="Squat 100kg", target_value=100, current_value=100)

        created = asyncio.run(client_views.save_goal(goal))
        listed = asyncio.run(client_views.goals(CLIENT))

        assert created.data == goal.id
        assert created.redirect_to is None
        assert created.notifications[0].title == "Goal created"
        assert listed.data.goals[0].progress_status is GoalProgress.ACHIEVED
        assert listed.data.achieved == 1

    def test_invalid_goal_is_rejected_before_saving(self, client_views, goal_store):
        with pytest.raises(ValueError):
            asyncio.run(client_views.save_goal(Goal(user_id=CLIENT.id, title="", target_value=5)))
        assert goal_store.goals == {}

    def test_update_someone_elses_goal(self, client_views, goal_store):
        """Updates are scoped to the owner; another user's goal reads as missing."""
        other = Goal(user_id=uuid4(), title="Run", target_value=10)
        goal_store.goals[other.id] = other

        result = asyncio.run(client_views.update_goal_progress(CLIENT, other.id, 5))

        assert result.data is None
        assert result.notifications[0].description == "Goal not found"
        assert other.current_value == 0

    def test_progress_and_delete(self, client_views, goal_store):
        goal = Goal(user_id=CLIENT.id, title="Run", target_value=10)
        goal_store.goals[goal.id] = goal

        progressed = asyncio.run(client_views.update_goal_progress(CLIENT, goal.id, 4))
        deleted = asyncio.run(client_views.delete_goal(CLIENT, goal.id))

        assert progressed.data == goal.id
        assert deleted.notifications[0].title == "Goal deleted"
        assert goal_store.goals == {}

    def test_negative_progress_rejected(self, client_views):
        with pytest.raises(ValueError):
            asyncio.run(client_views.update_goal_progress(CLIENT, uuid4(), -1))


# ---------------------------------------------------------------------------
# Coach View Tests
# ---------------------------------------------------------------------------

class TestCoachDashboard:

    def test_stats(self, coach_views):
        result = asyncio.run(coach_views.dashboard(COACH))
        assert result.data.stats.total_clients == 1

    def test_failure(self, coach_views, coach_source):
        coach_source.failing = True
        result = asyncio.run(coach_views.dashboard(COACH))
        assert result.data.clients == []
        assert result.data.stats.total_clients == 0
        assert not result.ok


class TestClientManagement:

    def test_search_filters_but_total_counts_all(self, coach_views):
        result = asyncio.run(coach_views.client_management(COACH, "bo"))
        assert [c.full_name for c in result.data.clients] == ["Bo"]
        assert result.data.total == 2
        assert len(result.data.programmes) == 1

    def test_invite_carries_client_claim(self, coach_views, inviter):
        """
        Given an invitation for an address that contains 'coach'
        When the coach invites it
        Then the new identity still carries an explicit client claim
        """
        result = asyncio.run(coach_views.invite_client(
            COACH, ClientInvitation(email="coach.fan@example.com"),
        ))

        assert result.ok
        assert inviter.invited[0].role is Role.CLIENT
        assert result.notifications[0].description == "The client has been invited"

    def test_invite_with_programme(self, coach_views, coach_source):
        programme_id = uuid4()

        result = asyncio.run(coach_views.invite_client(
            COACH, ClientInvitation(email="new@example.com", programme_id=programme_id),
        ))

        assignment = coach_source.assignments[0]
        assert assignment.programme_id == programme_id
        assert assignment.assigned_by == COACH.id
        assert assignment.user_id == result.data
        assert result.notifications[0].description.endswith("assigned to the programme")

    def test_duplicate_invite_reports_error(self, coach_views):
        invitation = ClientInvitation(email="ana@example.com")
        asyncio.run(coach_views.invite_client(COACH, invitation))

        result = asyncio.run(coach_views.invite_client(COACH, invitation))

        assert result.data is None
        assert "already been registered" in result.notifications[0].description


class TestClientProfile:

    def test_profile_rates_wellness(self, coach_views, coach_source):
        client_id = uuid4()
        coach_source.coached[client_id] = ClientDetails(id=client_id, email="ana@example.com")

        result = asyncio.run(coach_views.client_profile(COACH, client_id))

        row = result.data.wellness[0]
        assert row.sleep is Level.GOOD
        assert row.fatigue is Level.BAD
        assert result.redirect_to is None

    def test_client_of_another_coach_redirects(self, coach_views):
        result = asyncio.run(coach_views.client_profile(COACH, uuid4()))
        assert result.data is None
        assert result.redirect_to == "/coach"
        assert result.notifications[0].description == "Could not load the client's data"


class TestSchedule:

    def test_week_of_reference(self, coach_views, coach_source):
        coach_source.sessions = [
            ScheduledSession(
                id=uuid4(),
                session_name="Legs",
                client_email="ana@example.com",
                session_date=datetime(2024, 3, 12, 10, tzinfo=timezone.utc),
            ),
            ScheduledSession(
                id=uuid4(),
                session_name="Arms",
                client_email="ana@example.com",
                session_date=datetime(2024, 3, 19, 10, tzinfo=timezone.utc),
            ),
        ]

        result = asyncio.run(coach_views.schedule(COACH, date(2024, 3, 14), ScheduleFilter.ALL))

        assert result.data.summary["total"] == 1
        assert result.data.days[1].sessions[0].session_name == "Legs"

    def test_failure_gives_empty_week(self, coach_views, coach_source):
        coach_source.failing = True
        result = asyncio.run(coach_views.schedule(COACH, date(2024, 3, 14)))
        assert len(result.data.days) == 7
        assert result.data.summary["total"] == 0
        assert result.notifications[0].description == "Could not load the schedule"
