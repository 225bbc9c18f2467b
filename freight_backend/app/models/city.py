"""
City database model.

Door-to-door-interior deliveries are charged by the distance to the city.
"""

from sqlalchemy import Column, Integer, String, Float
from freight_backend.app.db.session import Base


class City(Base):
    __tablename__ = "cities"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    state = Column(String(100), nullable=True)

    # Road distance from the carrier's base, in kilometers
    distance_km = Column(Float, nullable=True)

    def __repr__(self):
        return f"<City(id={self.id}, name='{self.name}', distance_km={self.distance_km})>"
