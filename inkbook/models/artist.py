# inkbook/models/artist.py
from sqlalchemy import JSON, Boolean, Column, Date, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from inkbook.db.base import Base


class Artist(Base):
    """
    Artist account as far as scheduling is concerned: identity plus the
    `flow` settings (break time, working days and hours).
    """

    __tablename__ = "artists"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)

    # {"break_time": 15, "work_days": ["tue", ...], "start_times": {...}, "end_times": {...}}
    flow = Column(JSON, nullable=True)

    locations = relationship(
        "Location",
        back_populates="artist",
        order_by="Location.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Artist id={self.id} name={self.full_name!r}>"


class Location(Base):
    """
    A studio the artist books sessions at. Temporary locations (guest
    spots) carry an `end_at` after which they are no longer bookable.
    """

    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(
        Integer,
        ForeignKey("artists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False, default="")
    address = Column(String(512), nullable=True)
    is_main_studio = Column(Boolean, nullable=False, default=False)
    end_at = Column(Date, nullable=True)

    artist = relationship("Artist", back_populates="locations")

    def __repr__(self) -> str:
        return f"<Location id={self.id} artist_id={self.artist_id} end_at={self.end_at}>"
