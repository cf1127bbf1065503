"""
Usage limit repository for rate limiting.

Tracks how often something happened for an identifier within a fixed
period. The auth service uses it to throttle repeated failed sign-ins
for the same email address.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional
from uuid import uuid4

from .base import SnowflakeRepository, ViewQuery, as_datetime

logger = logging.getLogger(__name__)

IdentifierType = Literal["email", "ip_address"]

TABLE = "usage_limits"


def period_bounds(now: datetime, period_hours: int) -> tuple[datetime, datetime]:
    """
    Fixed window containing `now`.

    Windows are aligned to midnight UTC: with a 1-hour period the window is
    the current clock hour, with 24 it is the current day.
    """
    day_start = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    if period_hours >= 24:
        start = day_start
    else:
        bucket = now.astimezone(timezone.utc).hour // period_hours
        start = day_start + timedelta(hours=bucket * period_hours)
    return start, start + timedelta(hours=period_hours)


class UsageLimitRepository(SnowflakeRepository):
    """
    Repository for managing usage limits and rate limiting.

    Uses Snowflake for storage, so counts persist across server restarts
    and across workers.
    """

    def check_and_increment(
        self,
        identifier: str,
        identifier_type: IdentifierType,
        resource_type: str,
        limit_max: int,
        period_hours: int = 1,
    ) -> tuple[bool, int, int]:
        """
        Check if the identifier is within limits, and increment usage if so.

        Args:
            identifier: Email address or IP address
            identifier_type: Either 'email' or 'ip_address'
            resource_type: What's being counted (e.g., 'failed_sign_in')
            limit_max: Maximum uses allowed in the period
            period_hours: Length of period in hours

        Returns:
            Tuple of (allowed: bool, current_count: int, limit_max: int)
        """
        try:
            period_start, period_end = period_bounds(datetime.now(timezone.utc), period_hours)

            record = self._select_one(
                ViewQuery(TABLE)
                .where("identifier", identifier)
                .where("identifier_type", identifier_type)
                .where("resource_type", resource_type)
                .where("period_start", period_start)
            )

            if record:
                current_count = record["usage_count"]

                if current_count >= limit_max:
                    logger.warning(
                        "Rate limit exceeded",
                        extra={
                            "identifier_type": identifier_type,
                            "resource_type": resource_type,
                            "current_count": current_count,
                            "limit_max": limit_max
                        }
                    )
                    return False, current_count, limit_max

                new_count = current_count + 1
                self._update(
                    TABLE,
                    {"usage_count": new_count, "updated_at": datetime.now(timezone.utc)},
                    {"limit_id": record["limit_id"]},
                )
                logger.info(
                    "Usage incremented",
                    extra={
                        "resource_type": resource_type,
                        "count": new_count,
                        "limit": limit_max
                    }
                )
                return True, new_count, limit_max

            self._insert(TABLE, {
                "limit_id": str(uuid4()),
                "identifier": identifier,
                "identifier_type": identifier_type,
                "resource_type": resource_type,
                "usage_count": 1,
                "limit_max": limit_max,
                "period_start": period_start,
                "period_end": period_end,
            })
            logger.info(
                "Usage limit record created",
                extra={"resource_type": resource_type, "limit": limit_max}
            )
            return True, 1, limit_max

        except Exception as e:
            logger.error(
                "Failed to check/increment usage limit",
                extra={"resource_type": resource_type, "error": str(e)}
            )
            # Fail open
            return True, 0, limit_max

    def get_current_usage(
        self,
        identifier: str,
        identifier_type: IdentifierType,
        resource_type: str,
    ) -> Optional[tuple[int, int, datetime]]:
        """
        Get current usage for an identifier without incrementing.

        Returns:
            Tuple of (current_count, limit_max, period_end) or None if no usage
        """
        record = self._select_one(
            ViewQuery(TABLE)
            .where("identifier", identifier)
            .where("identifier_type", identifier_type)
            .where("resource_type", resource_type)
            .where("period_end", datetime.now(timezone.utc), op=">")
            .order_by("period_start", descending=True)
        )
        if record:
            return record["usage_count"], record["limit_max"], as_datetime(record["period_end"])
        return None

    def reset_usage(
        self,
        identifier: str,
        identifier_type: IdentifierType,
        resource_type: str,
    ) -> None:
        """Forget all usage for an identifier (after a successful sign-in)."""
        deleted = self._delete(TABLE, {
            "identifier": identifier,
            "identifier_type": identifier_type,
            "resource_type": resource_type,
        })
        if deleted:
            logger.info(
                "Usage limit reset",
                extra={"identifier_type": identifier_type, "resource_type": resource_type}
            )
