"""
Snowflake repository for the client pages.

Reads come from per-page views; the warehouse keeps its own column names
(seance_name, semaine_number, ...) and this module maps them onto the
domain models. Writes go to the `feedbacks` and `wellness_logs` tables.
"""

import logging
from typing import Any, Optional
from uuid import UUID

from fitcoach.core.views.models import (
    ExerciseStat,
    FeedbackEntry,
    HistoryEntry,
    NextSession,
    ProgressPoint,
    RecentSession,
    SessionDetail,
    SessionExercise,
    SessionStatus,
    UserStatistics,
    WellnessEntry,
)

from .base import SnowflakeRepository, ViewQuery, as_date, as_datetime, as_uuid

logger = logging.getLogger(__name__)


def session_status(value: Any) -> SessionStatus:
    try:
        return SessionStatus(str(value).lower())
    except ValueError:
        return SessionStatus.SCHEDULED


class ClientViewRepository(SnowflakeRepository):
    """
    Data access for everything under /client.

    Every read is scoped to one user id; the views themselves do no access
    control beyond that filter.
    """

    def next_session(self, user_id: UUID) -> Optional[NextSession]:
        row = self._select_one(
            ViewQuery("client_next_seance_view").where("user_id", user_id)
        )
        if row is None:
            return None
        return NextSession(
            id=as_uuid(row["id"]),
            session_name=row.get("seance_name") or "",
            programme_name=row.get("programme_name") or "",
            week_number=row.get("semaine_number") or 1,
            session_date=as_datetime(row.get("seance_date")),
            exercise_count=row.get("exercise_count") or 0,
        )

    def session_detail(self, session_id: UUID) -> Optional[SessionDetail]:
        """
        Load a session and its exercises.

        Returns None when the session doesn't exist. Ownership is reported
        through `owner_id`, not enforced here.
        """
        row = self._select_one(
            ViewQuery("seance_detail_view").where("id", session_id)
        )
        if row is None:
            return None

        exercises = self._select(
            ViewQuery("seance_exercise_view").where("seance_id", session_id)
        )

        return SessionDetail(
            id=as_uuid(row["id"]),
            session_name=row.get("seance_name") or "",
            programme_name=row.get("programme_name") or "Programme",
            week_number=row.get("semaine_number") or 1,
            owner_id=as_uuid(row.get("programme_user_id")),
            exercises=[
                SessionExercise(
                    id=as_uuid(exercise["id"]),
                    sets=exercise.get("sets") or 0,
                    reps=str(exercise.get("reps") or ""),
                    exercise_name=exercise.get("exercise_name") or "Exercise",
                    muscle_group=exercise.get("muscle_group") or "General",
                    video_url=exercise.get("video_url"),
                    tempo=exercise.get("tempo"),
                    rest_time=exercise.get("rest_time"),
                    notes=exercise.get("notes"),
                )
                for exercise in exercises
            ],
        )

    def recent_sessions(self, user_id: UUID, limit: int = 10) -> list[RecentSession]:
        rows = self._select(
            ViewQuery("client_recent_seance_view")
            .where("user_id", user_id)
            .order_by("seance_date", descending=True)
            .limit(limit)
        )
        return [
            RecentSession(
                id=as_uuid(row["id"]),
                session_name=row.get("seance_name") or "",
                programme_name=row.get("programme_name") or "Programme",
                session_date=as_datetime(row.get("seance_date")),
            )
            for row in rows
        ]

    def history(self, user_id: UUID, limit: int = 50) -> list[HistoryEntry]:
        rows = self._select(
            ViewQuery("session_history_view")
            .where("user_id", user_id)
            .order_by("seance_date", descending=True)
            .limit(limit)
        )
        return [
            HistoryEntry(
                id=as_uuid(row["id"]),
                session_name=row.get("seance_name") or "",
                programme_name=row.get("programme_name") or "",
                week_number=row.get("semaine_number") or 1,
                session_date=as_datetime(row.get("seance_date")),
                status=session_status(row.get("status")),
                completed_at=as_datetime(row.get("completed_at")),
                exercise_count=row.get("exercise_count") or 0,
                total_sets=row.get("total_sets") or 0,
                total_reps=row.get("total_reps") or 0,
                duration_minutes=row.get("duration_minutes"),
            )
            for row in rows
        ]

    def statistics(self, user_id: UUID) -> Optional[UserStatistics]:
        row = self._select_one(
            ViewQuery("user_statistics_view").where("user_id", user_id)
        )
        if row is None:
            return None
        return UserStatistics(
            total_sessions=row.get("total_sessions") or 0,
            completed_sessions=row.get("completed_sessions") or 0,
            total_exercises=row.get("total_exercises") or 0,
            total_sets=row.get("total_sets") or 0,
            total_reps=row.get("total_reps") or 0,
            average_session_duration=float(row.get("average_session_duration") or 0),
            completion_rate=float(row.get("completion_rate") or 0),
            current_streak=row.get("current_streak") or 0,
            longest_streak=row.get("longest_streak") or 0,
        )

    def progress(self, user_id: UUID, limit: int = 30) -> list[ProgressPoint]:
        rows = self._select(
            ViewQuery("progress_chart_view")
            .where("user_id", user_id)
            .order_by("date")
            .limit(limit)
        )
        return [
            ProgressPoint(
                date=as_date(row["date"]),
                sessions=row.get("sessions") or 0,
                duration=float(row.get("duration") or 0),
                exercises=row.get("exercises") or 0,
            )
            for row in rows
        ]

    def exercise_stats(self, user_id: UUID, limit: int = 10) -> list[ExerciseStat]:
        rows = self._select(
            ViewQuery("exercise_statistics_view")
            .where("user_id", user_id)
            .order_by("frequency", descending=True)
            .limit(limit)
        )
        return [
            ExerciseStat(
                exercise_name=row.get("exercise_name") or "",
                total_sets=row.get("total_sets") or 0,
                total_reps=row.get("total_reps") or 0,
                frequency=row.get("frequency") or 0,
            )
            for row in rows
        ]

    def insert_feedback(self, entry: FeedbackEntry) -> UUID:
        self._insert("feedbacks", {
            "id": entry.id,
            "seance_id": entry.session_id,
            "user_id": entry.user_id,
            "exercise_name": entry.exercise_name,
            "weight": entry.weight,
            "reps": entry.reps,
            "rpe": entry.rpe,
            "comments": entry.comments,
            "created_at": entry.created_at,
        })
        logger.info(
            "Feedback saved",
            extra={"feedback_id": str(entry.id), "session_id": str(entry.session_id)}
        )
        return entry.id

    def insert_wellness(self, entry: WellnessEntry) -> UUID:
        self._insert("wellness_logs", {
            "id": entry.id,
            "user_id": entry.user_id,
            "sleep_hours": entry.sleep_hours,
            "fatigue_level": entry.fatigue_level,
            "stress_level": entry.stress_level,
            "soreness_level": entry.soreness_level,
            "notes": entry.notes,
            "logged_at": entry.logged_at,
            "created_at": entry.logged_at,
        })
        logger.info("Wellness entry saved", extra={"wellness_id": str(entry.id)})
        return entry.id
