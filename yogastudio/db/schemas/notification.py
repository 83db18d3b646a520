from datetime import datetime
from pydantic import Field

from ..models.notification import NotificationType
from .common import CamelModel


class NotificationCreate(CamelModel):
    recipient_id: int | None = Field(default=None, alias="recipient")
    type: NotificationType = NotificationType.info
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    link: str | None = None


class Notification(CamelModel):
    id: int
    recipient_id: int
    type: NotificationType
    title: str
    message: str
    link: str | None = None
    read: bool
    created_at: datetime | None = None
