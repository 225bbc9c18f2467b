"""
Delivery Session API Endpoints.

Server side of the delivery form. A session keeps the displayed freight in
step with the pricing fields until staff type a value of their own, after
which only an explicit recalculation replaces it.

Flow:
1. POST   /delivery-sessions                    open (new or existing delivery)
2. PATCH  /delivery-sessions/{id}/inputs        field changes
3. PUT    /delivery-sessions/{id}/freight       manual freight value
4. POST   /delivery-sessions/{id}/recalculate   back to the computed value
5. POST   /delivery-sessions/{id}/submit        duplicate check, then save
6. DELETE /delivery-sessions/{id}               abandon the form
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Response, status
from freight_backend.app.core.dependencies import (
    get_city_lookup,
    get_delivery_store,
    get_freight_sessions,
    get_plan_lookup,
    get_reconciliation_debounce,
)
from freight_backend.app.core.exceptions import ResourceNotFoundError
from freight_backend.app.domain.deliveries.reconciliation import FreightReconciliation, PricingInputs
from freight_backend.app.domain.deliveries.store import SqlDeliveryStore
from freight_backend.app.domain.deliveries.submission import DeliveryDraft, SubmissionStatus, submit_delivery
from freight_backend.app.domain.rating.calculator import FreightCalculator
from freight_backend.app.domain.rating.lookups import SnapshotPlanLookup, SqlCityLookup, SqlClientPlanLookup
from freight_backend.app.schemas.freight_session import (
    FreightSessionOpen,
    PricingInputsUpdate,
    ManualFreightEdit,
    FreightSessionResponse,
    PricingInputsResponse,
    DeliverySubmit,
    DeliverySubmitResponse,
)
from freight_backend.app.services.freight_sessions import FreightSessionRegistry

router = APIRouter(prefix="/delivery-sessions", tags=["Delivery Sessions"])


def _session_response(session_id: str, session: FreightReconciliation, accepted: Optional[bool] = None) -> FreightSessionResponse:
    quote = session.last_quote
    return FreightSessionResponse(
        session_id=session_id,
        delivery_id=session.record_id,
        phase=session.phase,
        inputs=PricingInputsResponse(**session.inputs.model_dump()),
        displayed=session.state.displayed,
        last_computed=session.state.last_computed,
        manually_overridden=session.state.manually_overridden,
        used_fallback=quote.used_fallback if quote else False,
        signals=quote.signals if quote else [],
        accepted=accepted,
    )


@router.post("", response_model=FreightSessionResponse, status_code=status.HTTP_201_CREATED)
async def open_session(
    open_data: FreightSessionOpen,
    plan_lookup: SqlClientPlanLookup = Depends(get_plan_lookup),
    city_lookup: SqlCityLookup = Depends(get_city_lookup),
    store: SqlDeliveryStore = Depends(get_delivery_store),
    sessions: FreightSessionRegistry = Depends(get_freight_sessions),
    debounce_seconds: float = Depends(get_reconciliation_debounce)
):
    """
    Open a freight session.

    For an existing delivery with a stored freight above zero, that value is
    shown as is; otherwise the freight is computed once.
    """
    persisted_freight = None
    persisted_minute = None
    if open_data.delivery_id is not None:
        record = await store.get(open_data.delivery_id)
        if record is None:
            raise ResourceNotFoundError("Delivery", open_data.delivery_id)
        inputs = PricingInputs(**record.model_dump(include=set(PricingInputs.model_fields)))
        persisted_freight = record.total_freight
        persisted_minute = record.minute_number
    else:
        inputs = PricingInputs(**open_data.model_dump(exclude={"delivery_id"}))

    # One plan snapshot per session
    calculator = FreightCalculator(SnapshotPlanLookup(plan_lookup), city_lookup)
    session = FreightReconciliation(
        calculator,
        inputs,
        record_id=open_data.delivery_id,
        persisted_minute=persisted_minute,
        debounce_seconds=debounce_seconds,
    )
    await session.open(persisted_freight=persisted_freight)
    session_id = sessions.register(session)

    return _session_response(session_id, session)


@router.get("/{session_id}", response_model=FreightSessionResponse)
async def get_session(
    session_id: str = Path(..., description="Freight session ID"),
    sessions: FreightSessionRegistry = Depends(get_freight_sessions)
):
    return _session_response(session_id, sessions.get(session_id))


@router.patch("/{session_id}/inputs", response_model=FreightSessionResponse)
async def update_inputs(
    changes: PricingInputsUpdate,
    session_id: str = Path(..., description="Freight session ID"),
    sessions: FreightSessionRegistry = Depends(get_freight_sessions)
):
    """
    Apply form field changes.

    Recomputes only while the freight is automatic and only for pricing
    fields; a manually entered freight is never touched.
    """
    session = sessions.get(session_id)
    await session.on_fields_changed(**changes.model_dump(exclude_unset=True))
    return _session_response(session_id, session)


@router.put("/{session_id}/freight", response_model=FreightSessionResponse)
async def edit_freight(
    edit: ManualFreightEdit,
    session_id: str = Path(..., description="Freight session ID"),
    sessions: FreightSessionRegistry = Depends(get_freight_sessions)
):
    """
    Enter a freight value by hand.

    The session switches to manual mode even if the text is not a number;
    `accepted` tells whether the displayed value changed.
    """
    session = sessions.get(session_id)
    accepted = session.manual_edit(edit.value)
    return _session_response(session_id, session, accepted=accepted)


@router.post("/{session_id}/recalculate", response_model=FreightSessionResponse)
async def recalculate(
    session_id: str = Path(..., description="Freight session ID"),
    sessions: FreightSessionRegistry = Depends(get_freight_sessions)
):
    session = sessions.get(session_id)
    await session.recalculate()
    return _session_response(session_id, session)


@router.post("/{session_id}/submit", response_model=DeliverySubmitResponse)
async def submit(
    submit_data: DeliverySubmit,
    response: Response,
    session_id: str = Path(..., description="Freight session ID"),
    store: SqlDeliveryStore = Depends(get_delivery_store),
    sessions: FreightSessionRegistry = Depends(get_freight_sessions)
):
    """
    Save the delivery with the displayed freight.

    Returns 200 with CONFIRMATION_REQUIRED when another delivery of the
    client uses the minute number; resubmit with `confirm_duplicate` to save.
    Returns 201 with SAVED once persisted, which also closes the session.
    """
    session = sessions.get(session_id)
    draft = DeliveryDraft(**submit_data.model_dump(exclude={"confirm_duplicate"}))

    result = await submit_delivery(session, store, draft, confirm_duplicate=submit_data.confirm_duplicate)

    if result.status == SubmissionStatus.CONFIRMATION_REQUIRED:
        return DeliverySubmitResponse(
            status=result.status.value,
            duplicate_minute=True,
            message=f"Minute number '{draft.minute_number}' is already used by this client. Confirm to save anyway.",
        )

    sessions.discard(session_id)
    response.status_code = status.HTTP_201_CREATED
    return DeliverySubmitResponse(
        status=result.status.value,
        duplicate_minute=result.duplicate_minute,
        message="Delivery saved",
        delivery=result.delivery.model_dump(),
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str = Path(..., description="Freight session ID"),
    sessions: FreightSessionRegistry = Depends(get_freight_sessions)
):
    """Abandon the form; a computation still in flight is discarded."""
    sessions.get(session_id)
    sessions.discard(session_id)
