# scripts/seed.py
import asyncio
import random

from carrental.db.base import Base
from carrental.db.session import AsyncSessionLocal, engine
from carrental.db.crud_users import create_user, get_user_by_email
from carrental.db.crud_cars import create_car

MAKES = [("Toyota", "Corolla", "compact"), ("Honda", "CR-V", "suv"), ("BMW", "3 Series", "luxury"),
         ("Ford", "Transit", "van"), ("Mazda", "MX-5", "convertible"), ("Kia", "Picanto", "economy")]
CITIES = [("Austin", "TX", "USA"), ("Denver", "CO", "USA"), ("Seattle", "WA", "USA")]


async def seed():
    # create tables (if migrations not run)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        if not await get_user_by_email(db, "admin@example.com"):
            await create_user(db, name="Admin", email="admin@example.com", password="password", role="admin")

        owners = []
        for i in range(3):
            email = f"owner{i}@example.com"
            owner = await get_user_by_email(db, email)
            if not owner:
                owner = await create_user(db, name=f"Owner {i}", email=email, password="password", role="owner")
            owners.append(owner)

        for i in range(12):
            make, model, category = random.choice(MAKES)
            city, state, country = random.choice(CITIES)
            daily = 40 + 10 * i
            await create_car(
                db,
                owner_id=random.choice(owners).id,
                make=make, model=model, year=2018 + i % 6, color="White",
                category=category, transmission="automatic", fuel_type="petrol",
                seats=5, doors=4, license_plate=f"SEED{i:03d}", mileage=10000 * (i + 1),
                address=f"{100 + i} Main St", city=city, state=state, country=country,
                hourly_rate=round(daily / 8, 2), daily_rate=daily, weekly_rate=daily * 6,
                currency="USD",
            )
        print("Seed complete")

if __name__ == "__main__":
    asyncio.run(seed())
