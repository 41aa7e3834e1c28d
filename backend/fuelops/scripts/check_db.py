"""Print row counts for the main tables and the newest fuel requests."""

import asyncio

from sqlalchemy import select, func

from fuelops.core.database import get_db
from fuelops.models.tables import Site, FuelingHistory, FuelRequest, Dispersion, Deviation


async def check_db():
    async for session in get_db():
        try:
            for model in (Site, FuelingHistory, FuelRequest, Dispersion, Deviation):
                count_result = await session.execute(select(func.count()).select_from(model))
                print(f"{model.__tablename__}: {count_result.scalar()}")

            result = await session.execute(select(FuelRequest).order_by(FuelRequest.id.desc()).limit(5))
            tickets = result.scalars().all()
            if tickets:
                print("\nLatest fuel requests:")
                for t in tickets:
                    print(f"ID: {t.id}, Site: {t.site_id}, Status: {t.ticket_status}, Fuel: {t.fuel}")
            else:
                print("No fuel requests found in database")
        finally:
            await session.close()
        break


if __name__ == "__main__":
    asyncio.run(check_db())
