"""
Snowflake repository for personal goals (`user_goals`).

Every write is filtered on both the goal id and the owner's user id, so a
client can never touch someone else's goal: the statement simply matches
no row.
"""

import logging
from typing import Any
from uuid import UUID

from fitcoach.core.views.models import Goal, GoalCategory, GoalStatus

from .base import SnowflakeRepository, ViewQuery, as_date, as_datetime, as_uuid

logger = logging.getLogger(__name__)

TABLE = "user_goals"


def _goal_values(goal: Goal) -> dict[str, Any]:
    return {
        "title": goal.title,
        "description": goal.description,
        "category": goal.category,
        "target_value": goal.target_value,
        "current_value": goal.current_value,
        "unit": goal.unit,
        "target_date": goal.target_date,
        "status": goal.status,
    }


class GoalRepository(SnowflakeRepository):

    def list_goals(self, user_id: UUID) -> list[Goal]:
        rows = self._select(
            ViewQuery(TABLE)
            .where("user_id", user_id)
            .order_by("created_at", descending=True)
        )
        return [self._build_goal(row) for row in rows]

    def create_goal(self, goal: Goal) -> UUID:
        self._insert(TABLE, {
            "id": goal.id,
            "user_id": goal.user_id,
            **_goal_values(goal),
            "created_at": goal.created_at,
        })
        logger.info("Goal created", extra={"goal_id": str(goal.id)})
        return goal.id

    def update_goal(self, goal: Goal) -> bool:
        updated = self._update(
            TABLE,
            _goal_values(goal),
            {"id": goal.id, "user_id": goal.user_id},
        )
        return updated > 0

    def update_progress(self, user_id: UUID, goal_id: UUID, value: float) -> bool:
        updated = self._update(
            TABLE,
            {"current_value": value},
            {"id": goal_id, "user_id": user_id},
        )
        return updated > 0

    def delete_goal(self, user_id: UUID, goal_id: UUID) -> bool:
        deleted = self._delete(TABLE, {"id": goal_id, "user_id": user_id})
        if deleted:
            logger.info("Goal deleted", extra={"goal_id": str(goal_id)})
        return deleted > 0

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _build_goal(self, row: dict[str, Any]) -> Goal:
        try:
            category = GoalCategory(row.get("category") or "general")
        except ValueError:
            category = GoalCategory.GENERAL
        try:
            status = GoalStatus(row.get("status") or "active")
        except ValueError:
            status = GoalStatus.ACTIVE

        goal = Goal(
            id=as_uuid(row["id"]),
            user_id=as_uuid(row["user_id"]),
            title=row.get("title") or "",
            target_value=float(row.get("target_value") or 0),
            description=row.get("description") or "",
            category=category,
            current_value=float(row.get("current_value") or 0),
            unit=row.get("unit") or "",
            target_date=as_date(row.get("target_date")),
            status=status,
        )
        created_at = as_datetime(row.get("created_at"))
        if created_at is not None:
            goal.created_at = created_at
        return goal
