"""
Delivery Submission.

Final step of a delivery form: duplicate-minute confirmation, then
persistence of the displayed freight through the reconciliation session.
"""

import enum
import logging
from typing import Optional

from pydantic import BaseModel

from freight_backend.app.domain.deliveries.duplicate_guard import DuplicateMinuteGuard
from freight_backend.app.domain.deliveries.reconciliation import FreightReconciliation
from freight_backend.app.domain.deliveries.store import DeliveryRecord, DeliveryStore

logger = logging.getLogger("freight.deliveries")


class SubmissionStatus(str, enum.Enum):
    SAVED = "SAVED"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"


class DeliveryDraft(BaseModel):
    """Non-pricing fields of the delivery form."""
    minute_number: Optional[str] = None
    receiver: Optional[str] = None
    packages: int = 1


class SubmissionResult(BaseModel):
    status: SubmissionStatus
    delivery: Optional[DeliveryRecord] = None
    duplicate_minute: bool = False


def _needs_minute_check(session: FreightReconciliation, minute_number: Optional[str]) -> bool:
    if session.record_id is None:
        return True
    if session.inputs.client_id != session.persisted_client_id:
        return True
    return (minute_number or "").strip() != (session.persisted_minute or "").strip()


async def submit_delivery(
    session: FreightReconciliation,
    store: DeliveryStore,
    draft: DeliveryDraft,
    confirm_duplicate: bool = False,
) -> SubmissionResult:
    """
    Submit a delivery form.

    New deliveries are always checked for a duplicate minute number; edited
    ones only when the minute number or the client changed. A duplicate asks for
    confirmation and leaves the session open; with `confirm_duplicate` the
    delivery is saved anyway.
    """
    duplicate = False
    if _needs_minute_check(session, draft.minute_number):
        guard = DuplicateMinuteGuard(store)
        duplicate = await guard.exists(draft.minute_number, session.inputs.client_id, session.record_id)

    if duplicate and not confirm_duplicate:
        logger.info(
            "Duplicate minute number needs confirmation",
            extra={"minute_number": draft.minute_number, "client_id": session.inputs.client_id}
        )
        return SubmissionResult(status=SubmissionStatus.CONFIRMATION_REQUIRED, duplicate_minute=True)

    saved = await session.submit(store, **draft.model_dump())
    return SubmissionResult(status=SubmissionStatus.SAVED, delivery=saved, duplicate_minute=duplicate)
