"""
Duplicate Minute Guard.

A minute number identifies a delivery within one client's history. Reusing
it is allowed (re-issued documents) but must be confirmed by the user, so
the guard only answers the question and never rejects anything itself.
"""

from typing import Optional

from freight_backend.app.domain.deliveries.store import DeliveryStore


class DuplicateMinuteGuard:

    def __init__(self, store: DeliveryStore):
        self.store = store

    async def exists(self, minute_number: Optional[str], client_id: int, exclude_record_id: Optional[int] = None) -> bool:
        """
        True when another persisted delivery of `client_id` carries `minute_number`.

        The record being edited (`exclude_record_id`) never matches itself.
        A blank minute number is never a duplicate.
        """
        if not minute_number or not minute_number.strip():
            return False
        return await self.store.exists_minute(minute_number.strip(), client_id, exclude_record_id)
