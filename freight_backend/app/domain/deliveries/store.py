"""
Delivery Store.

Persistence boundary for priced deliveries: the read path used by the
duplicate-minute guard and the write path that receives the final freight.
"""

from datetime import datetime
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from freight_backend.app.domain.rating.resolver import d, round_cents
from freight_backend.app.models.delivery import Delivery
from freight_backend.app.models.rating_enums import CargoCategory, ServiceCategory


class DeliveryRecord(BaseModel):
    """A delivery as handed to and read back from the store."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    minute_number: Optional[str] = None
    client_id: int
    receiver: Optional[str] = None
    packages: int = 1
    weight_kg: float
    service_category: ServiceCategory = ServiceCategory.STANDARD
    cargo_category: CargoCategory = CargoCategory.STANDARD
    declared_value: Optional[float] = None
    city_id: Optional[int] = None
    total_freight: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeliveryStore(Protocol):
    async def exists_minute(self, minute_number: str, client_id: int, exclude_id: Optional[int] = None) -> bool:
        ...

    async def get(self, record_id: int) -> Optional[DeliveryRecord]:
        ...

    async def save(self, record: DeliveryRecord) -> DeliveryRecord:
        ...


class SqlDeliveryStore:
    """DeliveryStore over the `deliveries` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists_minute(self, minute_number: str, client_id: int, exclude_id: Optional[int] = None) -> bool:
        query = select(func.count(Delivery.id)).where(
            Delivery.minute_number == minute_number.strip(),
            Delivery.client_id == client_id,
        )
        if exclude_id is not None:
            query = query.where(Delivery.id != exclude_id)

        result = await self.db.execute(query)
        return result.scalar_one() > 0

    async def get(self, record_id: int) -> Optional[DeliveryRecord]:
        delivery = await self.db.get(Delivery, record_id)
        if delivery is None:
            return None
        return DeliveryRecord.model_validate(delivery)

    async def save(self, record: DeliveryRecord) -> DeliveryRecord:
        """
        Insert or update a delivery.

        `total_freight` is stored rounded half-up to cents, so reloading
        returns the same value to 2 decimals.
        """
        delivery = None
        if record.id is not None:
            delivery = await self.db.get(Delivery, record.id)
        if delivery is None:
            delivery = Delivery()
            self.db.add(delivery)

        minute_number = record.minute_number.strip() if record.minute_number else None
        delivery.minute_number = minute_number or None
        delivery.client_id = record.client_id
        delivery.receiver = record.receiver
        delivery.packages = record.packages
        delivery.weight_kg = record.weight_kg
        delivery.service_category = record.service_category
        delivery.cargo_category = record.cargo_category
        delivery.declared_value = record.declared_value
        delivery.city_id = record.city_id
        delivery.total_freight = float(round_cents(d(record.total_freight)))

        await self.db.commit()
        await self.db.refresh(delivery)
        return DeliveryRecord.model_validate(delivery)
