"""
Delivery database model.

A delivery is one priced shipment for a client, identified to staff by its
minute number.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from freight_backend.app.db.session import Base
from freight_backend.app.models.rating_enums import ServiceCategory, CargoCategory


class Delivery(Base):
    """
    Delivery model.

    `minute_number` is unique per client only by convention: re-issued
    documents legitimately reuse it, so there is no unique constraint.
    """
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identification
    minute_number = Column(String(50), nullable=True, index=True)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=False, index=True)

    # Receiver
    receiver = Column(String(200), nullable=True)
    packages = Column(Integer, nullable=False, default=1)

    # Pricing inputs
    weight_kg = Column(Float, nullable=False)
    service_category = Column(Enum(ServiceCategory), default=ServiceCategory.STANDARD, nullable=False)
    cargo_category = Column(Enum(CargoCategory), default=CargoCategory.STANDARD, nullable=False)
    declared_value = Column(Float, nullable=True)
    city_id = Column(Integer, ForeignKey('cities.id'), nullable=True)

    # Priced result (displayed value at submission)
    total_freight = Column(Float, nullable=False, default=0.0)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Delivery(id={self.id}, minute='{self.minute_number}', client_id={self.client_id}, freight={self.total_freight})>"
