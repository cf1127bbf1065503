"""
Dismissible notifications attached to view payloads.

Failures from the auth and data collaborators never break a view. They are
reported to the user as a notification while the view falls back to its
empty state.
"""

from dataclasses import dataclass
from enum import Enum


class NotificationVariant(Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT
    dismissible: bool = True


def success(title: str, description: str) -> Notification:
    return Notification(title=title, description=description)


def error(description: str, title: str = "Error") -> Notification:
    return Notification(
        title=title,
        description=description,
        variant=NotificationVariant.DESTRUCTIVE,
    )
