"""
Delivery Pydantic schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from freight_backend.app.models.rating_enums import ServiceCategory, CargoCategory


class DeliveryResponse(BaseModel):
    """Schema for delivery response."""
    id: int
    minute_number: Optional[str]
    client_id: int
    receiver: Optional[str]
    packages: int
    weight_kg: float
    service_category: ServiceCategory
    cargo_category: CargoCategory
    declared_value: Optional[float]
    city_id: Optional[int]
    total_freight: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MinuteCheckResponse(BaseModel):
    minute_number: str
    client_id: int
    exclude_id: Optional[int] = None
    exists: bool
