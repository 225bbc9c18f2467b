"""
Database seeding script for a demonstration price table.

Creates one price table (nested layout with a few flat historical fields),
two clients (one with the table, one without) and two interior cities.
Run this script after database is set up but before first use.
"""

import asyncio

from sqlalchemy import select

from freight_backend.app.db.session import AsyncSessionLocal, engine, Base
from freight_backend.app.models.price_table import PriceTable
from freight_backend.app.models.client import Client
from freight_backend.app.models.city import City


async def seed_rates():
    """
    Seed demonstration pricing data.

    Creates:
    - 1 price table "Contrato Padrão"
    - 1 client with the table, 1 client without
    - 2 cities with road distances
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting rate seeding...")

        result = await db.execute(
            select(PriceTable).where(PriceTable.name == "Contrato Padrão")
        )
        if result.scalar_one_or_none():
            print("ℹ️  Demonstration price table already exists, skipping seeding")
            return

        price_table = PriceTable(
            name="Contrato Padrão",
            description="Demonstration table",
            minimum_rate={
                "standard": 36.0,
                "emergency": 55.0,
                "saturday": 60.0,
                "exclusive": 120.0,
                "difficultAccess": 48.0,
                "metropolitanRegion": 42.0,
                "sundayHoliday": 80.0,
                "normalBiological": 45.0,
                "infectiousBiological": 65.0,
                "trackedVehicle": 250.0,
                "doorToDoorInterior": 200.0,
                "reshipment": 30.0,
            },
            excess_weight={"standard": 0.55, "premium": 0.85, "biological": 0.75, "reshipment": 0.40},
            door_to_door={"ratePerKm": 2.40, "maxWeight": 100},
            insurance={"standardRate": 0.01, "perishableRate": 0.015},
            # Older column kept for reference; nested values win
            legacy_rates={"fortaleza_normal_min_rate": 36.0},
        )
        db.add(price_table)
        await db.flush()

        db.add(Client(name="Laboratório Central", price_table_id=price_table.id))
        print("✅ Created client 'Laboratório Central' with the demonstration table")

        db.add(Client(name="Cliente Avulso", price_table_id=None))
        print("✅ Created client 'Cliente Avulso' without a table (fallback pricing)")

        db.add(City(name="Maranguape", state="CE", distance_km=27.0))
        db.add(City(name="Quixadá", state="CE", distance_km=168.0))
        print("✅ Created 2 interior cities")

        await db.commit()

        print("\n🎉 Rate seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_rates())
