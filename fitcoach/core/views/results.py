"""
The envelope every view returns.
"""

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from .notifications import Notification, NotificationVariant

T = TypeVar("T")


@dataclass
class ViewResult(Generic[T]):
    """
    A view's data plus what the user should be told about it.

    `data` always holds something renderable: when a fetch fails it is the
    view's empty/default state and `notifications` says why. `redirect_to`
    asks the front end to leave the view (after a form submission, or when
    the requested record isn't accessible).
    """
    view: str
    data: T
    notifications: list[Notification] = field(default_factory=list)
    redirect_to: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not any(n.variant is NotificationVariant.DESTRUCTIVE for n in self.notifications)
