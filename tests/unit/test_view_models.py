"""
Unit tests for the view models and the values derived from them.

These tests verify the domain logic without touching external services
(no database, no network).
"""

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from fitcoach.core.views.client import HistoryFilter, rpe_label, wellness_level
from fitcoach.core.views.coach import (
    ClientInvitation,
    ScheduleFilter,
    build_week_schedule,
    dashboard_stats,
    profile_wellness_level,
    week_bounds,
)
from fitcoach.core.views.models import (
    ClientOverview,
    FeedbackEntry,
    Goal,
    GoalProgress,
    GoalStatus,
    HistoryEntry,
    Level,
    ManagedClient,
    ScheduledSession,
    SessionDetail,
    SessionStatus,
    WellnessEntry,
)

USER = uuid4()


def _session(day: datetime, status=SessionStatus.SCHEDULED) -> ScheduledSession:
    return ScheduledSession(
        id=uuid4(),
        session_name="Upper body",
        client_email="ana@example.com",
        session_date=day,
        status=status,
    )


# ---------------------------------------------------------------------------
# Goal Tests
# ---------------------------------------------------------------------------

class TestGoal:

    def test_progress_percent(self):
        goal = Goal(user_id=USER, title="Squat 100kg", target_value=100, current_value=40)
        assert goal.progress_percent == 40.0

    def test_progress_percent_is_capped(self):
        goal = Goal(user_id=USER, title="Run", target_value=10, current_value=25)
        assert goal.progress_percent == 100.0

    def test_reached_target_is_achieved(self):
        goal = Goal(user_id=USER, title="Run", target_value=10, current_value=10)
        assert goal.progress_status() is GoalProgress.ACHIEVED

    def test_completed_status_is_achieved(self):
        goal = Goal(user_id=USER, title="Run", target_value=10, status=GoalStatus.COMPLETED)
        assert goal.progress_status() is GoalProgress.ACHIEVED

    def test_past_target_date_is_expired(self):
        goal = Goal(
            user_id=USER,
            title="Run",
            target_value=10,
            current_value=3,
            target_date=date(2024, 1, 31),
        )
        assert goal.progress_status(today=date(2024, 2, 1)) is GoalProgress.EXPIRED
        assert goal.progress_status(today=date(2024, 1, 31)) is GoalProgress.IN_PROGRESS

    @pytest.mark.parametrize("kwargs, message", [
        ({"title": " ", "target_value": 10}, "title"),
        ({"title": "Run", "target_value": 0}, "positive"),
        ({"title": "Run", "target_value": 10, "current_value": -1}, "negative"),
    ])
    def test_validate(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            Goal(user_id=USER, **kwargs).validate()


# ---------------------------------------------------------------------------
# Write Model Validation Tests
# ---------------------------------------------------------------------------

class TestFeedbackEntry:

    def test_valid_entry(self):
        entry = FeedbackEntry(session_id=uuid4(), user_id=USER, exercise_name="Squat", rpe=8)
        assert entry.rpe == 8

    @pytest.mark.parametrize("kwargs", [
        {"exercise_name": ""},
        {"exercise_name": "Squat", "rpe": 11},
        {"exercise_name": "Squat", "rpe": 0},
        {"exercise_name": "Squat", "weight": -5},
        {"exercise_name": "Squat", "reps": -1},
    ])
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(ValueError):
            FeedbackEntry(session_id=uuid4(), user_id=USER, **kwargs)


class TestWellnessEntry:

    def test_defaults(self):
        entry = WellnessEntry(user_id=USER)
        assert (entry.sleep_hours, entry.fatigue_level, entry.stress_level, entry.soreness_level) == (7.0, 5, 5, 3)

    def test_half_hour_steps(self):
        assert WellnessEntry(user_id=USER, sleep_hours=7.5).sleep_hours == 7.5
        with pytest.raises(ValueError, match="half-hour"):
            WellnessEntry(user_id=USER, sleep_hours=7.25)

    @pytest.mark.parametrize("kwargs", [
        {"sleep_hours": 13},
        {"sleep_hours": -1},
        {"fatigue_level": 0},
        {"stress_level": 11},
    ])
    def test_rejects_out_of_range(self, kwargs):
        with pytest.raises(ValueError):
            WellnessEntry(user_id=USER, **kwargs)


# ---------------------------------------------------------------------------
# Scales Tests
# ---------------------------------------------------------------------------

class TestScales:

    @pytest.mark.parametrize("rpe, label", [
        (1, "Easy"), (3, "Easy"), (4, "Moderate"), (6, "Moderate"),
        (7, "Hard"), (8, "Hard"), (9, "Very hard"), (10, "Very hard"),
    ])
    def test_rpe_labels(self, rpe, label):
        assert rpe_label(rpe) == label

    @pytest.mark.parametrize("value, expected", [
        (3, Level.BAD), (4, Level.WARNING), (6, Level.WARNING), (7, Level.GOOD),
    ])
    def test_form_level_normal_scale(self, value, expected):
        assert wellness_level(value) is expected

    @pytest.mark.parametrize("value, expected", [
        (3, Level.GOOD), (6, Level.WARNING), (7, Level.BAD),
    ])
    def test_form_level_reversed_scale(self, value, expected):
        assert wellness_level(value, reverse=True) is expected

    def test_profile_is_stricter_than_form(self):
        """
        Given a fatigue of 7
        When rated on the form and on the coach's profile view
        Then the form says bad and the profile still says warning
        """
        assert wellness_level(7, reverse=True) is Level.BAD
        assert profile_wellness_level(7, reverse=True) is Level.WARNING
        assert profile_wellness_level(8, reverse=True) is Level.BAD

    @pytest.mark.parametrize("value, expected", [
        (3.5, Level.BAD), (4, Level.WARNING), (6.5, Level.WARNING), (7, Level.GOOD),
    ])
    def test_profile_normal_scale(self, value, expected):
        assert profile_wellness_level(value) is expected


# ---------------------------------------------------------------------------
# Filters and Search Tests
# ---------------------------------------------------------------------------

class TestFilters:

    def _entry(self, status):
        return HistoryEntry(
            id=uuid4(),
            session_name="Legs",
            programme_name="Base",
            week_number=1,
            session_date=None,
            status=status,
        )

    def test_history_filter(self):
        completed = self._entry(SessionStatus.COMPLETED)
        started = self._entry(SessionStatus.STARTED)
        assert HistoryFilter.ALL.accepts(started)
        assert HistoryFilter.COMPLETED.accepts(completed)
        assert not HistoryFilter.COMPLETED.accepts(started)

    def test_client_search_is_case_insensitive(self):
        client = ManagedClient(
            id=uuid4(),
            email="ana@example.com",
            full_name="Ana Lopez",
            programme_name="Strength Base",
        )
        assert client.matches("LOPEZ")
        assert client.matches("strength")
        assert client.matches("")
        assert not client.matches("marathon")

    def test_search_skips_missing_fields(self):
        client = ManagedClient(id=uuid4(), email="bo@example.com")
        assert not client.matches("base")

    def test_invitation_needs_email(self):
        with pytest.raises(ValueError, match="valid email"):
            ClientInvitation(email="not-an-email")

    def test_session_ownership(self):
        detail = SessionDetail(id=uuid4(), session_name="Legs", owner_id=USER)
        assert detail.is_owned_by(USER)
        assert not detail.is_owned_by(uuid4())
        assert not SessionDetail(id=uuid4(), session_name="Legs").is_owned_by(USER)


# ---------------------------------------------------------------------------
# Schedule and Dashboard Tests
# ---------------------------------------------------------------------------

class TestWeekSchedule:

    def test_week_bounds_start_on_monday(self):
        start, end = week_bounds(date(2024, 3, 14))  # a Thursday
        assert start == datetime(2024, 3, 11, tzinfo=timezone.utc)
        assert end.date() == date(2024, 3, 17)
        assert end.hour == 23 and end.minute == 59

    def test_sessions_land_on_their_day(self):
        monday = datetime(2024, 3, 11, 9, tzinfo=timezone.utc)
        sessions = [
            _session(monday + timedelta(days=2, hours=8)),
            _session(monday + timedelta(days=2)),
            _session(monday + timedelta(days=6)),
        ]

        week = build_week_schedule(sessions, date(2024, 3, 13), today=date(2024, 3, 13))

        assert week.days[0].day == date(2024, 3, 11)
        assert len(week.days) == 7
        wednesday = week.days[2]
        assert wednesday.is_today
        assert [s.session_date.hour for s in wednesday.sessions] == [9, 17]
        assert len(week.days[6].sessions) == 1

    def test_filter_and_summary(self):
        """The summary counts all of the week's sessions; total counts the visible ones."""
        monday = datetime(2024, 3, 11, 9, tzinfo=timezone.utc)
        sessions = [
            _session(monday, SessionStatus.COMPLETED),
            _session(monday, SessionStatus.COMPLETED),
            _session(monday, SessionStatus.SCHEDULED),
            _session(monday, SessionStatus.CANCELLED),
        ]

        week = build_week_schedule(sessions, monday.date(), ScheduleFilter.COMPLETED)

        assert week.summary == {"total": 2, "completed": 2, "started": 0, "scheduled": 1}
        assert sum(len(d.sessions) for d in week.days) == 2

    def test_week_navigation(self):
        week = build_week_schedule([], date(2024, 3, 13))
        assert week.previous_week == date(2024, 3, 4)
        assert week.next_week == date(2024, 3, 18)


class TestDashboardStats:

    def test_active_means_next_session_ahead(self):
        now = datetime(2024, 3, 11, 12, tzinfo=timezone.utc)
        clients = [
            ClientOverview(id=uuid4(), email="a@example.com", next_session_date=now + timedelta(days=1)),
            ClientOverview(id=uuid4(), email="b@example.com", next_session_date=now - timedelta(days=1)),
            ClientOverview(id=uuid4(), email="c@example.com"),
        ]

        stats = dashboard_stats(clients, now=now)

        assert stats.total_clients == 3
        assert stats.active_sessions == 1
        assert stats.completed_sessions == 2

    def test_no_clients(self):
        stats = dashboard_stats([])
        assert (stats.total_clients, stats.active_sessions, stats.completed_sessions) == (0, 0, 0)
