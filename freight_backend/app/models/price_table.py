"""
Price Table database model.

Stores a client-assignable bundle of rate constants. Rows written before the
nested layout existed carry their rates in flat columns, kept here in
`legacy_rates`; normalization merges both shapes at load time.
"""

from typing import Any, Dict
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON
from sqlalchemy.sql import func
from freight_backend.app.db.session import Base


class PriceTable(Base):
    """
    Price Table model.

    Created and edited by administrators; read-only to the rating engine.
    Referenced by zero or more clients through `Client.price_table_id`.
    """
    __tablename__ = "price_tables"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identity
    name = Column(String(200), nullable=False)
    description = Column(String(500), nullable=True)

    # Nested rate sections (JSON objects)
    minimum_rate = Column(JSON, nullable=True)
    excess_weight = Column(JSON, nullable=True)
    door_to_door = Column(JSON, nullable=True)
    insurance = Column(JSON, nullable=True)

    # Flat historical fields (fortaleza_normal_min_rate, ...)
    legacy_rates = Column(JSON, nullable=True)

    # Adjustments
    default_discount = Column(Float, nullable=True)
    multiplier = Column(Float, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def to_rate_source(self) -> Dict[str, Any]:
        """Raw mapping in the shape accepted by `normalize_rate_table`."""
        source = dict(self.legacy_rates or {})
        source.update({
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "minimum_rate": self.minimum_rate,
            "excess_weight": self.excess_weight,
            "door_to_door": self.door_to_door,
            "insurance": self.insurance,
            "default_discount": self.default_discount,
            "multiplier": self.multiplier,
        })
        return source

    def __repr__(self):
        return f"<PriceTable(id={self.id}, name='{self.name}')>"
