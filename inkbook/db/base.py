# inkbook/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models of the scheduling engine.
    """
    pass


# Import ORM models so that Base.metadata is aware of them
# This import should stay at the bottom to avoid circular dependencies.
from inkbook.models.artist import Artist, Location  # noqa: E402,F401
from inkbook.models.client import Client  # noqa: E402,F401
from inkbook.models.booking import Project, SessionRecord  # noqa: E402,F401
from inkbook.models.calendar_event import CalendarEventRecord  # noqa: E402,F401
