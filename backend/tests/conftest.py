import itertools
import os
from datetime import date, datetime
from decimal import Decimal

# must be set before carrental.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carrental.core.security import get_password_hash
from carrental.db.base import Base
from carrental.db.models import Booking, Car, User
from carrental.schemas.booking import BookingCreate

# fixed clock for service tests
NOW = datetime(2030, 1, 1, 9, 0)

_plates = itertools.count(1)
_emails = itertools.count(1)

PASSWORD = "password1"
_PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def file_engine(tmp_path):
    """File-backed database: every session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cars.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def separate_sessions(file_engine):
    return sessionmaker(bind=file_engine, class_=AsyncSession, expire_on_commit=False)


async def new_user(db, role="user", name=None) -> User:
    n = next(_emails)
    user = User(
        name=name or f"{role.title()} {n}",
        email=f"{role}{n}@example.com",
        phone="5550000",
        hashed_password=_PASSWORD_HASH,
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def renter(db):
    return await new_user(db, "user", "Renter")


@pytest.fixture
async def other_user(db):
    return await new_user(db, "user", "Stranger")


@pytest.fixture
async def owner(db):
    return await new_user(db, "owner", "Owner")


@pytest.fixture
async def admin(db):
    return await new_user(db, "admin", "Admin")


async def new_car(db, owner, **overrides) -> Car:
    data = dict(
        owner_id=owner.id,
        make="Toyota",
        model="Corolla",
        year=2022,
        color="White",
        category="compact",
        transmission="automatic",
        fuel_type="petrol",
        seats=5,
        doors=4,
        license_plate=f"TST{next(_plates):04d}",
        mileage=1000,
        address="1 Main St",
        city="Austin",
        state="TX",
        country="USA",
        hourly_rate=Decimal("10"),
        daily_rate=Decimal("100"),
        weekly_rate=Decimal("600"),
        currency="USD",
    )
    data.update(overrides)
    car = Car(**data)
    db.add(car)
    await db.commit()
    await db.refresh(car)
    return car


@pytest.fixture
def make_car(db, owner):
    async def _make(**overrides) -> Car:
        return await new_car(db, owner, **overrides)

    return _make


@pytest.fixture
async def car(make_car):
    return await make_car()


def location(**overrides) -> dict:
    loc = {"address": "1 Main St", "city": "Austin", "state": "TX", "country": "USA"}
    loc.update(overrides)
    return loc


def booking_payload(car_id, start=date(2030, 1, 10), end=date(2030, 1, 12),
                    start_time="10:00", end_time="10:00", **overrides) -> BookingCreate:
    data = {
        "carId": car_id,
        "startDate": start,
        "endDate": end,
        "startTime": start_time,
        "endTime": end_time,
        "pickupLocation": location(),
        "dropoffLocation": location(),
        "paymentMethod": "credit-card",
        "driverDetails": {"licenseNumber": "D1234567", "licenseExpiry": "2035-01-01"},
        "insuranceType": "basic",
    }
    data.update(overrides)
    return BookingCreate.model_validate(data)


async def add_booking(db, car, user, start, end, status="pending") -> Booking:
    """Insert a booking row directly, with the payloads its status requires."""
    stamp = NOW.isoformat()
    booking = Booking(
        user_id=user.id,
        car_id=car.id,
        start_date=start,
        end_date=end,
        start_time=datetime.strptime("10:00", "%H:%M").time(),
        end_time=datetime.strptime("10:00", "%H:%M").time(),
        duration_hours=max(1, (end - start).days * 24),
        duration_days=max(1, (end - start).days),
        pickup_location=location(),
        dropoff_location=location(),
        driver_details={"license_number": "D1", "license_expiry": "2035-01-01"},
        payment_method="cash",
        base_price=Decimal("100"),
        total_price=Decimal("100"),
        currency="USD",
        status=status,
    )
    if status in ("active", "completed"):
        booking.start_record = {"mileage": 1000, "fuel_level": "full", "inspected_at": stamp}
    if status == "completed":
        booking.completion = {"mileage": 1200, "fuel_level": "full", "damages": [], "inspected_at": stamp}
    if status == "cancelled":
        booking.cancellation = {
            "reason": "test", "cancelled_at": stamp, "cancelled_by": user.id, "refund_amount": "0.00",
        }
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


@pytest.fixture
async def client(session_factory):
    from httpx import ASGITransport, AsyncClient

    from carrental.db.session import get_db
    from carrental.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def auth(user) -> dict:
    from carrental.core.security import create_access_token

    token = create_access_token({"user_id": user.id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}
