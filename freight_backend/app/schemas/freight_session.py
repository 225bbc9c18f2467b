"""
Freight session Pydantic schemas.

A freight session is the server side of one open delivery form.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Union
from freight_backend.app.models.rating_enums import (
    ServiceCategory, CargoCategory, RatingSignal, ReconciliationPhase
)
from freight_backend.app.schemas.delivery import DeliveryResponse


class FreightSessionOpen(BaseModel):
    """
    Schema for opening a freight session.

    With `delivery_id` the session edits that delivery and starts from its
    stored values; the remaining fields are ignored.
    """
    delivery_id: Optional[int] = None
    client_id: Optional[int] = None
    weight_kg: Optional[float] = None
    service_category: ServiceCategory = ServiceCategory.STANDARD
    cargo_category: CargoCategory = CargoCategory.STANDARD
    declared_value: Optional[float] = None
    city_id: Optional[int] = None


class PricingInputsUpdate(BaseModel):
    """
    Form field changes. Only the fields sent are applied.

    Non-pricing fields are accepted so a form can send every edit; they
    never trigger a computation.
    """
    client_id: Optional[int] = None
    weight_kg: Optional[float] = None
    service_category: Optional[ServiceCategory] = None
    cargo_category: Optional[CargoCategory] = None
    declared_value: Optional[float] = None
    city_id: Optional[int] = None
    receiver: Optional[str] = None
    packages: Optional[int] = None


class ManualFreightEdit(BaseModel):
    """Raw text (or number) typed into the freight field."""
    value: Union[str, float, None] = None


class PricingInputsResponse(BaseModel):
    client_id: Optional[int]
    weight_kg: Optional[float]
    service_category: ServiceCategory
    cargo_category: CargoCategory
    declared_value: Optional[float]
    city_id: Optional[int]


class FreightSessionResponse(BaseModel):
    """Schema for the state of a freight session."""
    session_id: str
    delivery_id: Optional[int]
    phase: ReconciliationPhase
    inputs: PricingInputsResponse
    displayed: Optional[float]
    last_computed: Optional[float]
    manually_overridden: bool
    used_fallback: bool = False
    signals: List[RatingSignal] = Field(default_factory=list)
    accepted: Optional[bool] = None


class DeliverySubmit(BaseModel):
    minute_number: Optional[str] = Field(None, max_length=50)
    receiver: Optional[str] = Field(None, max_length=200)
    packages: int = Field(default=1, ge=1)
    confirm_duplicate: bool = False


class DeliverySubmitResponse(BaseModel):
    status: str
    duplicate_minute: bool
    message: str
    delivery: Optional[DeliveryResponse] = None
