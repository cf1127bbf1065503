"""
Response models shared by the view routes.

Every page endpoint answers with the same envelope: the view key, its
data, the notifications to show and an optional redirect. The data is
the view's dataclass payload, encoded with FastAPI's jsonable_encoder
(enums become their values, UUIDs and dates become strings).
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from ..core.auth.models import Identity
from ..core.views.notifications import Notification
from ..core.views.results import ViewResult


class NotificationModel(BaseModel):
    """A dismissible message for the user."""
    title: str = Field(description="Short heading")
    description: str = Field(description="Message body")
    variant: str = Field(description="'default' or 'destructive'")
    dismissible: bool = Field(True, description="Whether the user can close it")

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationModel":
        return cls(
            title=notification.title,
            description=notification.description,
            variant=notification.variant.value,
            dismissible=notification.dismissible,
        )


class ViewResponse(BaseModel):
    """What a page (or a form submission) hands back to the front end."""
    view: str = Field(description="Key of the view that produced this payload")
    data: Any = Field(None, description="View payload; its empty state when a fetch failed")
    notifications: list[NotificationModel] = Field(
        default_factory=list,
        description="Messages to show, in order",
    )
    redirect_to: Optional[str] = Field(
        None,
        description="Path the front end should navigate to, if any",
    )


class IdentityModel(BaseModel):
    id: str = Field(description="Identity id")
    email: str = Field(description="Email address")
    role_claim: Optional[str] = Field(
        None,
        description="Explicit role claim, when the identity provider issued one",
    )

    @classmethod
    def from_domain(cls, identity: Identity) -> "IdentityModel":
        return cls(
            id=str(identity.id),
            email=identity.email,
            role_claim=identity.role.value if identity.role else None,
        )


def present(result: ViewResult, **extra: Any) -> ViewResponse:
    """
    Encode a view result.

    `extra` adds derived fields (properties the dataclass encoder does not
    see) next to the payload's own fields.
    """
    data = jsonable_encoder(result.data)
    if extra and isinstance(data, dict):
        data.update(jsonable_encoder(extra))
    return ViewResponse(
        view=result.view,
        data=data,
        notifications=[NotificationModel.from_domain(n) for n in result.notifications],
        redirect_to=result.redirect_to,
    )
