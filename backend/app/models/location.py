from sqlalchemy import Column, Float, Integer

from app.db.base import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    lat = Column(Float, nullable=False)
    lon = Column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, lat={self.lat}, lon={self.lon})>"
