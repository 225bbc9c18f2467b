"""
Delivery API Endpoints.

Read access to persisted deliveries and the duplicate-minute check used by
the delivery form before submitting.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Query
from freight_backend.app.core.dependencies import get_delivery_store
from freight_backend.app.core.exceptions import ResourceNotFoundError
from freight_backend.app.domain.deliveries.duplicate_guard import DuplicateMinuteGuard
from freight_backend.app.domain.deliveries.store import SqlDeliveryStore
from freight_backend.app.schemas.delivery import DeliveryResponse, MinuteCheckResponse

router = APIRouter(prefix="/deliveries", tags=["Deliveries"])


@router.get("/minute-check", response_model=MinuteCheckResponse)
async def check_minute_number(
    minute_number: str = Query(..., description="Minute number to check"),
    client_id: int = Query(..., description="Client ID"),
    exclude_id: Optional[int] = Query(None, description="Delivery being edited"),
    store: SqlDeliveryStore = Depends(get_delivery_store)
):
    """
    Whether another delivery of the client already uses this minute number.

    A hit is a prompt for confirmation, not a rejection.
    """
    exists = await DuplicateMinuteGuard(store).exists(minute_number, client_id, exclude_id)
    return MinuteCheckResponse(
        minute_number=minute_number,
        client_id=client_id,
        exclude_id=exclude_id,
        exists=exists,
    )


@router.get("/{delivery_id}", response_model=DeliveryResponse)
async def get_delivery(
    delivery_id: int = Path(..., description="Delivery ID"),
    store: SqlDeliveryStore = Depends(get_delivery_store)
):
    record = await store.get(delivery_id)
    if record is None:
        raise ResourceNotFoundError("Delivery", delivery_id)
    return record
