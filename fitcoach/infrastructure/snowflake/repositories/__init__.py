"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .base import DataQueryError, RecordNotFoundError, SnowflakeConfig, ViewQuery
from .client_views import ClientViewRepository
from .coach_views import CoachViewRepository
from .goals import GoalRepository
from .identities import IdentityRecord, IdentityRepository, SessionRecord
from .usage_limits import UsageLimitRepository

__all__ = [
    "DataQueryError",
    "RecordNotFoundError",
    "SnowflakeConfig",
    "ViewQuery",
    "ClientViewRepository",
    "CoachViewRepository",
    "GoalRepository",
    "IdentityRecord",
    "IdentityRepository",
    "SessionRecord",
    "UsageLimitRepository",
]
