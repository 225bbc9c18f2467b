"""
Freight Reconciliation.

Decides, for one open delivery form, whether the displayed freight follows
the calculator or keeps a value typed by staff.

Phases:
    IDLE             -> not open (before `open`, after `submit` / `close`)
    AUTO_COMPUTING   -> every pricing-relevant change recomputes `displayed`
    MANUAL_OVERRIDE  -> `displayed` holds a typed value; changes never touch it

Transitions:
    open                       IDLE -> AUTO_COMPUTING
    manual_edit                AUTO_COMPUTING | MANUAL_OVERRIDE -> MANUAL_OVERRIDE
    recalculate                AUTO_COMPUTING | MANUAL_OVERRIDE -> AUTO_COMPUTING
    submit / close             any open phase -> IDLE

Computations carry a generation number. A result whose generation is no
longer current (a newer computation started, a manual edit happened or the
session closed meanwhile) is discarded on arrival.
"""

import asyncio
import logging
import math
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from freight_backend.app.core.exceptions import InvalidRatingInputError, ReconciliationStateError
from freight_backend.app.domain.deliveries.store import DeliveryRecord, DeliveryStore
from freight_backend.app.domain.rating.calculator import FreightCalculator
from freight_backend.app.domain.rating.types import FreightQuote, RatingRequest
from freight_backend.app.models.rating_enums import CargoCategory, ReconciliationPhase, ServiceCategory

logger = logging.getLogger("freight.reconciliation")

PRICING_FIELDS = frozenset({
    "client_id",
    "weight_kg",
    "service_category",
    "cargo_category",
    "declared_value",
    "city_id",
})


class PricingInputs(BaseModel):
    """The form fields that feed a RatingRequest."""
    client_id: Optional[int] = None
    weight_kg: Optional[float] = None
    service_category: ServiceCategory = ServiceCategory.STANDARD
    cargo_category: CargoCategory = CargoCategory.STANDARD
    declared_value: Optional[float] = None
    city_id: Optional[int] = None

    def is_complete(self) -> bool:
        return self.client_id is not None and self.weight_kg is not None

    def to_rating_request(self) -> RatingRequest:
        return RatingRequest(
            service_category=self.service_category,
            cargo_category=self.cargo_category,
            weight_kg=self.weight_kg,
            declared_value=self.declared_value,
        )


class ReconciliationState(BaseModel):
    last_computed: Optional[float] = None
    displayed: Optional[float] = None
    manually_overridden: bool = False


def parse_freight_text(text: Union[str, float, int, None]) -> Optional[float]:
    """
    Parse a typed freight value.

    Accepts a comma as decimal separator ("48,50"). Returns None for
    anything that is not a finite, non-negative number.
    """
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        value = float(text)
    else:
        cleaned = text.strip()
        if "," in cleaned and "." not in cleaned:
            cleaned = cleaned.replace(",", ".")
        try:
            value = float(cleaned)
        except ValueError:
            return None
    if math.isnan(value) or math.isinf(value) or value < 0:
        return None
    return value


def check_pricing_inputs(inputs: PricingInputs) -> None:
    """Raise InvalidRatingInputError for NaN, infinite or negative weight / declared value."""
    for field in ("weight_kg", "declared_value"):
        value = getattr(inputs, field)
        if value is None:
            continue
        if math.isnan(value) or math.isinf(value):
            raise InvalidRatingInputError(field, value, "must be a finite number")
        if value < 0:
            raise InvalidRatingInputError(field, value, "must not be negative")


class FreightReconciliation:
    """
    Reconciliation session for one delivery form.

    Args:
        calculator: Calculator bound to this session's plan snapshot
        inputs: Initial pricing inputs
        record_id: Persisted delivery being edited, None for a new one
        persisted_minute: Minute number stored on that delivery; the stored
            client is taken from the initial inputs
        debounce_seconds: Delay before the first automatic computation
    """

    def __init__(
        self,
        calculator: FreightCalculator,
        inputs: PricingInputs,
        record_id: Optional[int] = None,
        persisted_minute: Optional[str] = None,
        debounce_seconds: float = 0.0,
    ):
        check_pricing_inputs(inputs)
        self.calculator = calculator
        self.inputs = inputs
        self.record_id = record_id
        self.persisted_minute = persisted_minute
        self.persisted_client_id = inputs.client_id if record_id is not None else None
        self.debounce_seconds = debounce_seconds

        self.phase = ReconciliationPhase.IDLE
        self.state = ReconciliationState()
        self.last_quote: Optional[FreightQuote] = None
        self._generation = 0

    @property
    def displayed(self) -> Optional[float]:
        return self.state.displayed

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def open(self, persisted_freight: Optional[float] = None) -> ReconciliationState:
        """
        Open the form.

        A persisted freight above zero is shown as is; otherwise one
        computation runs after the debounce delay.
        """
        if self.phase != ReconciliationPhase.IDLE:
            raise ReconciliationStateError("Freight session is already open", self.phase.value)

        self.phase = ReconciliationPhase.AUTO_COMPUTING
        if persisted_freight is not None and persisted_freight > 0:
            self.state.displayed = persisted_freight
            return self.state

        self._generation += 1
        generation = self._generation
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
        if generation == self._generation:
            await self._recompute()
        return self.state

    async def on_fields_changed(self, **changes: Any) -> ReconciliationState:
        """
        Apply form field changes.

        Non-pricing fields (receiver, packages, ...) are ignored. Invalid
        pricing values raise InvalidRatingInputError and leave the inputs
        as they were.
        """
        self._require_open()

        relevant = {field: value for field, value in changes.items() if field in PRICING_FIELDS}
        if not relevant:
            return self.state

        try:
            candidate = PricingInputs.model_validate({**self.inputs.model_dump(), **relevant})
        except ValidationError as exc:
            error = exc.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "inputs"
            raise InvalidRatingInputError(field, relevant.get(field), error["msg"]) from exc
        check_pricing_inputs(candidate)
        self.inputs = candidate

        if self.phase == ReconciliationPhase.AUTO_COMPUTING:
            await self._recompute()
        else:
            logger.debug("Manual freight kept after field change", extra={"fields": sorted(relevant)})
        return self.state

    def manual_edit(self, text: Union[str, float, int, None]) -> bool:
        """
        Direct edit of the displayed freight.

        Always enters MANUAL_OVERRIDE. Returns False, leaving `displayed`
        unchanged, when the text is not a valid amount.
        """
        self._require_open()

        self.phase = ReconciliationPhase.MANUAL_OVERRIDE
        self.state.manually_overridden = True
        self._generation += 1

        value = parse_freight_text(text)
        if value is None:
            logger.info("Ignoring invalid manual freight", extra={"text": str(text)})
            return False
        self.state.displayed = value
        return True

    async def recalculate(self) -> ReconciliationState:
        """Drop any manual value and compute once, whatever the current phase."""
        self._require_open()

        self.phase = ReconciliationPhase.AUTO_COMPUTING
        self.state.manually_overridden = False
        await self._recompute()
        return self.state

    async def submit(self, store: DeliveryStore, **details: Any) -> DeliveryRecord:
        """
        Persist the delivery with the displayed freight and close the session.

        Args:
            store: Delivery persistence
            **details: Non-pricing delivery fields (minute_number, receiver, packages)

        Raises:
            InvalidRatingInputError: Client or weight still missing
            ReconciliationStateError: No freight value to persist
        """
        self._require_open()
        if self.inputs.client_id is None:
            raise InvalidRatingInputError("client_id", None, "value is required")
        if self.inputs.weight_kg is None:
            raise InvalidRatingInputError("weight_kg", None, "value is required")
        if self.state.displayed is None:
            raise ReconciliationStateError("No freight value to submit", self.phase.value)

        record = DeliveryRecord(
            id=self.record_id,
            **self.inputs.model_dump(),
            **details,
            total_freight=self.state.displayed,
        )
        saved = await store.save(record)
        logger.info(
            "Delivery freight persisted",
            extra={
                "delivery_id": saved.id,
                "total_freight": saved.total_freight,
                "manual": self.state.manually_overridden,
            }
        )
        self.record_id = saved.id
        self.close()
        return saved

    def close(self) -> None:
        """Leave the session; any computation still in flight is discarded."""
        self._generation += 1
        self.phase = ReconciliationPhase.IDLE

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if self.phase == ReconciliationPhase.IDLE:
            raise ReconciliationStateError("Freight session is not open", self.phase.value)

    async def _recompute(self) -> Optional[FreightQuote]:
        self._generation += 1
        generation = self._generation

        inputs = self.inputs
        if not inputs.is_complete():
            return None

        quote = await self.calculator.calculate(
            inputs.client_id,
            inputs.to_rating_request(),
            city_id=inputs.city_id,
        )

        if generation != self._generation or self.phase != ReconciliationPhase.AUTO_COMPUTING:
            logger.info(
                "Discarding stale freight computation",
                extra={"client_id": inputs.client_id, "amount": quote.amount}
            )
            return None

        self.last_quote = quote
        self.state.last_computed = quote.amount
        self.state.displayed = quote.amount
        return quote
