# inkbook/models/client.py
from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint

from inkbook.db.base import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(
        Integer,
        ForeignKey("artists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone_number = Column(String(64), nullable=False)

    __table_args__ = (
        UniqueConstraint("artist_id", "email", name="uq_clients_artist_email"),
    )

    def __repr__(self) -> str:
        return f"<Client id={self.id} artist_id={self.artist_id} email={self.email!r}>"
