"""Actors and page references passed explicitly into every gate and predicate."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class Actor(BaseModel):
    """A platform user or the automated sanctions agent."""

    name: str
    is_registered: bool = True
    edit_count: int = 0
    registered_at: datetime | None = None
    is_blocked: bool = False


class PageRef(BaseModel):
    """A wiki page as seen by the notification hooks."""

    title: str
