"""
Price Table API Endpoints.

Administrators store price tables in any supported layout; reads return the
normalized table the rating engine will use.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from freight_backend.app.db.session import get_db
from freight_backend.app.models.price_table import PriceTable
from freight_backend.app.domain.rating.normalization import normalize_rate_table
from freight_backend.app.schemas.price_table import PriceTableCreate, PriceTableResponse, PriceTableListResponse
from freight_backend.app.core.exceptions import ResourceNotFoundError

router = APIRouter(prefix="/price-tables", tags=["Price Tables"])


def _to_response(price_table: PriceTable) -> PriceTableResponse:
    return PriceTableResponse(
        id=price_table.id,
        name=price_table.name,
        description=price_table.description,
        rate_table=normalize_rate_table(price_table.to_rate_source()),
        created_at=price_table.created_at,
        updated_at=price_table.updated_at,
    )


@router.post("", response_model=PriceTableResponse, status_code=status.HTTP_201_CREATED)
async def create_price_table(
    table_data: PriceTableCreate,
    db: AsyncSession = Depends(get_db)
):
    """Store a price table as received (nested, flat or mixed)."""
    price_table = PriceTable(**table_data.model_dump())

    db.add(price_table)
    await db.commit()
    await db.refresh(price_table)

    return _to_response(price_table)


@router.get("", response_model=PriceTableListResponse)
async def list_price_tables(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """List price tables, normalized."""
    total = (await db.execute(select(func.count(PriceTable.id)))).scalar_one()

    result = await db.execute(
        select(PriceTable)
        .order_by(PriceTable.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    price_tables = result.scalars().all()

    return PriceTableListResponse(
        price_tables=[_to_response(table) for table in price_tables],
        total=total,
    )


@router.get("/{table_id}", response_model=PriceTableResponse)
async def get_price_table(
    table_id: int = Path(..., description="Price table ID"),
    db: AsyncSession = Depends(get_db)
):
    price_table = await db.get(PriceTable, table_id)
    if not price_table:
        raise ResourceNotFoundError("Price table", table_id)
    return _to_response(price_table)
