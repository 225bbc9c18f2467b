"""
Freight quote Pydantic schemas.

Pricing numbers are left unconstrained here; the rating engine rejects
malformed values with its own error code.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from freight_backend.app.models.rating_enums import ServiceCategory, CargoCategory, RatingSignal


class PackageMeasurement(BaseModel):
    """One package line of a multi-package quote."""
    width: float = Field(..., gt=0, description="Width in centimeters")
    length: float = Field(..., gt=0, description="Length in centimeters")
    height: float = Field(..., gt=0, description="Height in centimeters")
    weight: float = Field(..., ge=0, description="Real weight in kilograms")
    quantity: int = Field(default=1, ge=1, description="Number of identical packages")


class AdditionalService(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    value: float


class QuoteRequest(BaseModel):
    """
    Schema for a freight quote.

    Either `weight_kg` or `packages` must be given; with packages the rated
    weight is the sum of each package's larger of real and cubic weight.
    """
    client_id: int
    service_category: ServiceCategory = ServiceCategory.STANDARD
    cargo_category: CargoCategory = CargoCategory.STANDARD
    weight_kg: Optional[float] = None
    packages: List[PackageMeasurement] = Field(default_factory=list)
    declared_value: Optional[float] = None
    city_id: Optional[int] = None
    city_distance_km: Optional[float] = None
    additional_services: List[AdditionalService] = Field(default_factory=list)
    has_collection: bool = False
    has_delivery: bool = True

    @model_validator(mode="after")
    def weight_or_packages(self):
        if self.weight_kg is None and not self.packages:
            raise ValueError("Either weight_kg or packages is required")
        return self


class FreightQuoteResponse(BaseModel):
    """Schema for a freight quote response."""
    client_id: int
    rated_weight_kg: float
    amount: float
    rate_table_id: Optional[int] = None
    used_fallback: bool
    signals: List[RatingSignal]
