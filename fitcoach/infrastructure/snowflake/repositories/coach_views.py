"""
Snowflake repository for the coach pages.

The coach-facing views already join clients to their coach, so scoping a
read to "my clients" is a `coach_id` filter. Per-client reads (history,
wellness, progress) are only issued after `client_details` has confirmed
the coach/client link.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from fitcoach.core.views.models import (
    ClientDetails,
    ClientOverview,
    ClientProgressPoint,
    ClientSessionEntry,
    ClientStatus,
    ManagedClient,
    Programme,
    ProgrammeAssignment,
    ScheduledSession,
    WellnessEntry,
)

from .base import SnowflakeRepository, ViewQuery, as_date, as_datetime, as_uuid
from .client_views import session_status

logger = logging.getLogger(__name__)


def _client_status(value) -> ClientStatus:
    try:
        return ClientStatus(str(value).lower())
    except ValueError:
        return ClientStatus.INACTIVE


class CoachViewRepository(SnowflakeRepository):
    """Data access for everything under /coach."""

    def dashboard(self, coach_id: UUID) -> list[ClientOverview]:
        rows = self._select(
            ViewQuery("coach_dashboard_view").where("coach_id", coach_id)
        )
        return [
            ClientOverview(
                id=as_uuid(row["id"]),
                email=row.get("email") or "",
                programme_name=row.get("programme_name"),
                current_week=row.get("current_week"),
                next_session_date=as_datetime(row.get("next_session_date")),
                completion_rate=float(row.get("completion_rate") or 0),
            )
            for row in rows
        ]

    def clients(self, coach_id: UUID) -> list[ManagedClient]:
        rows = self._select(
            ViewQuery("coach_clients_view")
            .where("coach_id", coach_id)
            .order_by("created_at", descending=True)
        )
        return [
            ManagedClient(
                id=as_uuid(row["id"]),
                email=row.get("email") or "",
                full_name=row.get("full_name"),
                phone=row.get("phone"),
                programme_name=row.get("programme_name"),
                current_week=row.get("current_week"),
                completion_rate=float(row.get("completion_rate") or 0),
                total_sessions=row.get("total_sessions") or 0,
                completed_sessions=row.get("completed_sessions") or 0,
                last_session_date=as_datetime(row.get("last_session_date")),
                status=_client_status(row.get("status")),
            )
            for row in rows
        ]

    def programmes(self, coach_id: UUID) -> list[Programme]:
        rows = self._select(
            ViewQuery("programmes").where("coach_id", coach_id).order_by("name")
        )
        return [
            Programme(
                id=as_uuid(row["id"]),
                name=row.get("name") or "",
                description=row.get("description"),
                duration_weeks=row.get("duration_weeks") or 0,
            )
            for row in rows
        ]

    def client_details(self, coach_id: UUID, client_id: UUID) -> Optional[ClientDetails]:
        """Details of one client, or None if they aren't coached by `coach_id`."""
        row = self._select_one(
            ViewQuery("coach_client_details_view")
            .where("coach_id", coach_id)
            .where("client_id", client_id)
        )
        if row is None:
            return None
        return ClientDetails(
            id=as_uuid(row["client_id"]),
            email=row.get("email") or "",
            full_name=row.get("full_name"),
            phone=row.get("phone"),
            date_of_birth=as_date(row.get("date_of_birth")),
            height=row.get("height"),
            weight=row.get("weight"),
            programme_name=row.get("programme_name"),
            current_week=row.get("current_week"),
            next_session_date=as_datetime(row.get("next_session_date")),
            completion_rate=float(row.get("completion_rate") or 0),
            total_sessions=row.get("total_sessions") or 0,
            completed_sessions=row.get("completed_sessions") or 0,
            current_streak=row.get("current_streak") or 0,
        )

    def client_sessions(self, client_id: UUID, limit: int = 20) -> list[ClientSessionEntry]:
        rows = self._select(
            ViewQuery("client_session_history_view")
            .where("user_id", client_id)
            .order_by("seance_date", descending=True)
            .limit(limit)
        )
        return [
            ClientSessionEntry(
                id=as_uuid(row["id"]),
                session_name=row.get("seance_name") or "",
                session_date=as_datetime(row.get("seance_date")),
                status=session_status(row.get("status")),
                completed_at=as_datetime(row.get("completed_at")),
                duration_minutes=row.get("duration_minutes"),
            )
            for row in rows
        ]

    def client_wellness(self, client_id: UUID, limit: int = 30) -> list[WellnessEntry]:
        rows = self._select(
            ViewQuery("wellness_logs")
            .where("user_id", client_id)
            .order_by("created_at", descending=True)
            .limit(limit)
        )
        entries = []
        for row in rows:
            try:
                entries.append(WellnessEntry(
                    id=as_uuid(row["id"]),
                    user_id=as_uuid(row["user_id"]),
                    sleep_hours=float(row.get("sleep_hours") or 0),
                    fatigue_level=row.get("fatigue_level") or 1,
                    stress_level=row.get("stress_level") or 1,
                    soreness_level=row.get("soreness_level") or 1,
                    notes=row.get("notes") or "",
                    logged_at=as_datetime(row.get("logged_at") or row.get("created_at")),
                ))
            except ValueError as e:
                # Rows written before today's validation rules
                logger.warning(
                    "Skipping invalid wellness row",
                    extra={"wellness_id": str(row.get("id")), "error": str(e)}
                )
        return entries

    def client_progress(self, client_id: UUID, limit: int = 30) -> list[ClientProgressPoint]:
        rows = self._select(
            ViewQuery("client_progress_chart_view")
            .where("user_id", client_id)
            .order_by("date")
            .limit(limit)
        )
        return [
            ClientProgressPoint(
                date=as_date(row["date"]),
                sessions=row.get("sessions") or 0,
                completion_rate=float(row.get("completion_rate") or 0),
            )
            for row in rows
        ]

    def schedule(self, coach_id: UUID, start: datetime, end: datetime) -> list[ScheduledSession]:
        rows = self._select(
            ViewQuery("coach_schedule_view")
            .where("coach_id", coach_id)
            .where("seance_date", start, op=">=")
            .where("seance_date", end, op="<=")
            .order_by("seance_date")
        )
        return [
            ScheduledSession(
                id=as_uuid(row["id"]),
                session_name=row.get("seance_name") or "",
                client_email=row.get("client_email") or "",
                client_name=row.get("client_name"),
                session_date=as_datetime(row["seance_date"]),
                status=session_status(row.get("status")),
                programme_name=row.get("programme_name") or "",
                week_number=row.get("semaine_number") or 1,
            )
            for row in rows
        ]

    def assign_programme(self, assignment: ProgrammeAssignment) -> UUID:
        assignment_id = uuid4()
        self._insert("user_programmes", {
            "id": assignment_id,
            "user_id": assignment.user_id,
            "programme_id": assignment.programme_id,
            "assigned_by": assignment.assigned_by,
            "start_date": assignment.start_date,
        })
        logger.info(
            "Programme assigned",
            extra={
                "user_id": str(assignment.user_id),
                "programme_id": str(assignment.programme_id),
            }
        )
        return assignment_id
