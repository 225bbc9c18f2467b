"""
Price table Pydantic schemas.

Tables are accepted in the nested layout, the flat historical layout or a
mix of both; responses always carry the normalized table.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional, List
from freight_backend.app.domain.rating.types import RateTable


class PriceTableCreate(BaseModel):
    """
    Schema for storing a price table.

    `legacy_rates` holds flat fields such as `fortaleza_normal_min_rate`.
    Nested sections may be objects or JSON-encoded strings.
    """
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    minimum_rate: Optional[Any] = None
    excess_weight: Optional[Any] = None
    door_to_door: Optional[Any] = None
    insurance: Optional[Any] = None
    legacy_rates: Optional[Dict[str, Any]] = None
    default_discount: Optional[float] = None
    multiplier: Optional[float] = None


class PriceTableResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    rate_table: RateTable
    created_at: datetime
    updated_at: datetime


class PriceTableListResponse(BaseModel):
    price_tables: List[PriceTableResponse]
    total: int
