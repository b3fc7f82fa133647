"""SQLAlchemy models."""

from app.models.click_event import ClickEvent
from app.models.user import User

__all__ = [
    "User",
    "ClickEvent",
]
