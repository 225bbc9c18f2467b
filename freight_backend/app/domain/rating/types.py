"""
Rating domain types.

RateTable is the canonical (normalized) price table the resolver reads.
RatingRequest is built fresh for every computation and never persisted.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from freight_backend.app.models.rating_enums import (
    ServiceCategory, WeightRateClass, CargoCategory, RatingSignal
)


class DoorToDoorRates(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate_per_km: float = 0.0
    max_weight: float = 100.0


class InsuranceRates(BaseModel):
    model_config = ConfigDict(frozen=True)

    standard_rate: float = 0.01
    perishable_rate: Optional[float] = None


class RateTable(BaseModel):
    """
    Canonical price table.

    Built only through `normalize_rate_table`, which guarantees a rate for
    every service category and weight class, non-negative rates, a discount
    within 0..100 and a positive multiplier.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str = ""
    description: Optional[str] = None

    minimum_rate: Dict[ServiceCategory, float]
    excess_weight_rate: Dict[WeightRateClass, float]
    door_to_door: DoorToDoorRates = DoorToDoorRates()
    insurance: InsuranceRates = InsuranceRates()

    discount_percent: float = 0.0
    multiplier: float = 1.0


class RatingRequest(BaseModel):
    """Everything the resolver needs about one shipment."""
    model_config = ConfigDict(frozen=True)

    service_category: ServiceCategory = ServiceCategory.STANDARD
    cargo_category: CargoCategory = CargoCategory.STANDARD
    weight_kg: float
    declared_value: Optional[float] = None
    city_distance_km: Optional[float] = None
    additional_service_charges: List[float] = Field(default_factory=list)
    has_collection: bool = False
    has_delivery: bool = True


class CityDistance(BaseModel):
    model_config = ConfigDict(frozen=True)

    city_id: int
    distance_km: float


class FreightQuote(BaseModel):
    """Calculator output: the amount to show plus non-blocking signals."""
    amount: float
    rate_table_id: Optional[int] = None
    used_fallback: bool = False
    signals: List[RatingSignal] = Field(default_factory=list)
