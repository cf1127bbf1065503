"""
Domain models for the coaching views.

Every entity here is owned by the external data collaborator: sessions,
exercises, programmes, goals, wellness logs and feedback all live in its
tables and pre-built views. These classes are our read/write shapes for
those rows, named in our terms rather than the warehouse's.

Models that we write (feedback, wellness, goals) validate themselves on
construction. Read models trust the warehouse.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(Enum):
    SCHEDULED = "scheduled"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return _SESSION_STATUS_LABELS[self]


_SESSION_STATUS_LABELS = {
    SessionStatus.SCHEDULED: "Scheduled",
    SessionStatus.STARTED: "In progress",
    SessionStatus.COMPLETED: "Completed",
    SessionStatus.CANCELLED: "Cancelled",
}


def session_status_labels() -> dict[str, str]:
    """Display label of every session status, keyed by stored value."""
    return {status.value: status.label for status in SessionStatus}


class GoalCategory(Enum):
    STRENGTH = "strength"
    ENDURANCE = "endurance"
    WEIGHT = "weight"
    GENERAL = "general"


class GoalStatus(Enum):
    """Stored status of a goal."""
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class GoalProgress(Enum):
    """Displayed status of a goal, derived from values and dates."""
    ACHIEVED = "achieved"
    EXPIRED = "expired"
    IN_PROGRESS = "in_progress"


class ClientStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PAUSED = "paused"


class Level(Enum):
    """Traffic-light rating for wellness values."""
    GOOD = "good"
    WARNING = "warning"
    BAD = "bad"


# ---------------------------------------------------------------------------
# Client-side read models
# ---------------------------------------------------------------------------

@dataclass
class NextSession:
    """The upcoming session shown on the client dashboard."""
    id: UUID
    session_name: str
    programme_name: str
    week_number: int
    session_date: Optional[datetime] = None
    exercise_count: int = 0


@dataclass
class SessionExercise:
    id: UUID
    sets: int = 0
    reps: str = ""
    exercise_name: str = "Exercise"
    muscle_group: str = "General"
    video_url: Optional[str] = None
    tempo: Optional[str] = None
    rest_time: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class SessionDetail:
    """
    A session with its exercises.

    `owner_id` is the user the session's programme belongs to. A client may
    only open sessions from their own programme.
    """
    id: UUID
    session_name: str
    programme_name: str = "Programme"
    week_number: int = 1
    owner_id: Optional[UUID] = None
    exercises: list[SessionExercise] = field(default_factory=list)

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.owner_id is not None and self.owner_id == user_id


@dataclass
class RecentSession:
    """A recent session offered in the feedback form."""
    id: UUID
    session_name: str
    programme_name: str = "Programme"
    session_date: Optional[datetime] = None


@dataclass
class HistoryEntry:
    id: UUID
    session_name: str
    programme_name: str
    week_number: int
    session_date: Optional[datetime]
    status: SessionStatus = SessionStatus.SCHEDULED
    completed_at: Optional[datetime] = None
    exercise_count: int = 0
    total_sets: int = 0
    total_reps: int = 0
    duration_minutes: Optional[int] = None


@dataclass
class UserStatistics:
    """Aggregates from the statistics view. All zero when nothing is logged."""
    total_sessions: int = 0
    completed_sessions: int = 0
    total_exercises: int = 0
    total_sets: int = 0
    total_reps: int = 0
    average_session_duration: float = 0.0
    completion_rate: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0


@dataclass
class ProgressPoint:
    """One point of the client's progress chart."""
    date: date
    sessions: int = 0
    duration: float = 0.0
    exercises: int = 0


@dataclass
class ExerciseStat:
    exercise_name: str
    total_sets: int = 0
    total_reps: int = 0
    frequency: int = 0


# ---------------------------------------------------------------------------
# Client-side write models
# ---------------------------------------------------------------------------

@dataclass
class Goal:
    """
    A personal goal with a numeric target.

    Goals are read and written, but only validated on write (see
    `validate`): older rows in the warehouse may not satisfy today's rules.
    """
    user_id: UUID
    title: str
    target_value: float
    id: UUID = field(default_factory=uuid4)
    description: str = ""
    category: GoalCategory = GoalCategory.GENERAL
    current_value: float = 0.0
    unit: str = ""
    target_date: Optional[date] = None
    status: GoalStatus = GoalStatus.ACTIVE
    created_at: datetime = field(default_factory=utcnow)

    def validate(self) -> None:
        if not self.title.strip():
            raise ValueError("Goal title cannot be empty")
        if self.target_value <= 0:
            raise ValueError("Goal target must be positive")
        if self.current_value < 0:
            raise ValueError("Goal progress cannot be negative")

    @property
    def progress_percent(self) -> float:
        """Share of the target reached, capped at 100."""
        if self.target_value <= 0:
            return 0.0
        return min(self.current_value / self.target_value * 100, 100.0)

    def progress_status(self, today: Optional[date] = None) -> GoalProgress:
        if self.status is GoalStatus.COMPLETED or self.current_value >= self.target_value:
            return GoalProgress.ACHIEVED
        today = today or utcnow().date()
        if self.target_date is not None and self.target_date < today:
            return GoalProgress.EXPIRED
        return GoalProgress.IN_PROGRESS


@dataclass
class FeedbackEntry:
    """A client's feedback on one exercise of a session."""
    session_id: UUID
    user_id: UUID
    exercise_name: str
    weight: Optional[float] = None
    reps: Optional[int] = None
    rpe: Optional[int] = None
    comments: str = ""
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.exercise_name.strip():
            raise ValueError("Exercise name cannot be empty")
        if self.weight is not None and self.weight < 0:
            raise ValueError("Weight cannot be negative")
        if self.reps is not None and self.reps < 0:
            raise ValueError("Reps cannot be negative")
        if self.rpe is not None and not 1 <= self.rpe <= 10:
            raise ValueError("RPE must be between 1 and 10")


@dataclass
class WellnessEntry:
    """
    A daily wellness check-in.

    Sleep is in hours (half-hour steps); the other values are 1-10 scales
    where higher means worse.
    """
    user_id: UUID
    sleep_hours: float = 7.0
    fatigue_level: int = 5
    stress_level: int = 5
    soreness_level: int = 3
    notes: str = ""
    logged_at: datetime = field(default_factory=utcnow)
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if not 0 <= self.sleep_hours <= 12:
            raise ValueError("Sleep hours must be between 0 and 12")
        if (self.sleep_hours * 2) != int(self.sleep_hours * 2):
            raise ValueError("Sleep hours must be in half-hour steps")
        for name in ("fatigue_level", "stress_level", "soreness_level"):
            value = getattr(self, name)
            if not 1 <= value <= 10:
                raise ValueError(f"{name} must be between 1 and 10")


# ---------------------------------------------------------------------------
# Coach-side models
# ---------------------------------------------------------------------------

@dataclass
class ClientOverview:
    """One row of the coach dashboard."""
    id: UUID
    email: str
    programme_name: Optional[str] = None
    current_week: Optional[int] = None
    next_session_date: Optional[datetime] = None
    completion_rate: float = 0.0


@dataclass
class ManagedClient:
    id: UUID
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    programme_name: Optional[str] = None
    current_week: Optional[int] = None
    completion_rate: float = 0.0
    total_sessions: int = 0
    completed_sessions: int = 0
    last_session_date: Optional[datetime] = None
    status: ClientStatus = ClientStatus.INACTIVE

    def matches(self, term: str) -> bool:
        """Case-insensitive search over email, name and programme."""
        needle = term.strip().lower()
        if not needle:
            return True
        haystacks = (self.email, self.full_name, self.programme_name)
        return any(needle in value.lower() for value in haystacks if value)


@dataclass
class Programme:
    id: UUID
    name: str
    description: Optional[str] = None
    duration_weeks: int = 0


@dataclass
class ProgrammeAssignment:
    user_id: UUID
    programme_id: UUID
    assigned_by: UUID
    start_date: datetime = field(default_factory=utcnow)


@dataclass
class ClientDetails:
    id: UUID
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    programme_name: Optional[str] = None
    current_week: Optional[int] = None
    next_session_date: Optional[datetime] = None
    completion_rate: float = 0.0
    total_sessions: int = 0
    completed_sessions: int = 0
    current_streak: int = 0


@dataclass
class ClientSessionEntry:
    id: UUID
    session_name: str
    session_date: Optional[datetime] = None
    status: SessionStatus = SessionStatus.SCHEDULED
    completed_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None


@dataclass
class ClientProgressPoint:
    date: date
    sessions: int = 0
    completion_rate: float = 0.0


@dataclass
class ScheduledSession:
    """One session on the coach's weekly schedule."""
    id: UUID
    session_name: str
    client_email: str
    session_date: datetime
    status: SessionStatus = SessionStatus.SCHEDULED
    client_name: Optional[str] = None
    programme_name: str = ""
    week_number: int = 1
