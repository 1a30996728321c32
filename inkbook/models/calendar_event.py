# inkbook/models/calendar_event.py
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
)

from inkbook.db.base import Base


class CalendarEventRecord(Base):
    """
    Stored form of every non-session calendar event (block-times,
    unavailable days, spot conventions, quick appointments, book-offs and
    temp changes). Repeating rows are templates; occurrences are derived.
    """

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(
        Integer,
        ForeignKey("artists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False, default="")
    source = Column(String(32), nullable=False, index=True)

    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    location_id = Column(
        Integer,
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_repeat = Column(Boolean, nullable=False, default=False)
    repeat_type = Column(String(16), nullable=True)
    repeat_duration = Column(Integer, nullable=True)
    repeat_duration_unit = Column(String(16), nullable=True)

    # {"2025-05-02": {"start_time": "12:00", "end_time": "20:00"}, ...}
    daily_hours = Column(JSON, nullable=True)
    # {"work_days": [...], "start_times": {...}, "end_times": {...}}
    business_hours = Column(JSON, nullable=True)

    notes = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<CalendarEventRecord id={self.id} source={self.source} "
            f"start={self.start_date} end={self.end_date} repeat={self.is_repeat}>"
        )
