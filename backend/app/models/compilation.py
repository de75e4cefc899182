"""
Curated event compilations. Membership lives in compilation_events, so an
event can appear in any number of compilations.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table

from app.db.base import Base

compilation_events = Table(
    "compilation_events",
    Base.metadata,
    Column("compilation_id", Integer, ForeignKey("compilations.id", ondelete="CASCADE"), primary_key=True),
    Column("event_id", Integer, ForeignKey("events.id", ondelete="RESTRICT"), primary_key=True),
)


class Compilation(Base):
    __tablename__ = "compilations"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(50), nullable=False)
    pinned = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Compilation(id={self.id}, title={self.title}, pinned={self.pinned})>"
