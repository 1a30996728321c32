# inkbook/models/booking.py
from sqlalchemy import (
    Column,
    Date,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship

from inkbook.db.base import Base


class Project(Base):
    """
    One booking request: the shared title, deposit and notes for every
    session created from a single manual booking.
    """

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(
        Integer,
        ForeignKey("artists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client_id = Column(
        Integer,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title = Column(String(255), nullable=False)
    deposit_amount = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)

    sessions = relationship(
        "SessionRecord",
        back_populates="project",
        order_by="SessionRecord.date",
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} artist_id={self.artist_id} title={self.title!r}>"


class SessionRecord(Base):
    """
    A committed session on a single date. The end time is never stored; it
    is always start_time + duration.
    """

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    duration = Column(Integer, nullable=False)
    location_id = Column(
        Integer,
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
    )
    session_rate = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)
    source = Column(String(32), nullable=False, default="manual")

    project = relationship("Project", back_populates="sessions")

    def __repr__(self) -> str:
        return (
            f"<SessionRecord id={self.id} project_id={self.project_id} "
            f"date={self.date} start={self.start_time}>"
        )
