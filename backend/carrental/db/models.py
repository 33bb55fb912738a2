# carrental/db/models.py

from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Date,
    Time,
    Text,
    ForeignKey,
    Numeric,
    Boolean,
    Float,
    JSON,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from carrental.db.base import Base


ROLES = ("user", "owner", "admin")

CAR_CATEGORIES = (
    "economy",
    "compact",
    "midsize",
    "fullsize",
    "luxury",
    "suv",
    "van",
    "convertible",
    "sports",
)
CAR_STATUSES = ("active", "inactive", "maintenance", "rented")
CURRENCIES = ("USD", "EUR", "INR")

BOOKING_STATUSES = ("pending", "confirmed", "active", "completed", "cancelled", "no-show")
# statuses that hold the car; terminal ones never conflict
BLOCKING_STATUSES = ("pending", "confirmed", "active")
TERMINAL_STATUSES = ("completed", "cancelled", "no-show")

PAYMENT_STATUSES = ("unpaid", "paid", "refunded", "partially-refunded")
PAYMENT_METHODS = ("credit-card", "debit-card", "paypal", "cash", "bank-transfer")
FUEL_LEVELS = ("empty", "quarter", "half", "three-quarter", "full")


def _sql_in(values) -> str:
    return ", ".join(f"'{v}'" for v in values)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=True)

    # DB column name: password_hash
    # Python attribute: hashed_password
    hashed_password = Column("password_hash", String(255), nullable=False)

    # "user" | "owner" | "admin"
    role = Column(String(20), nullable=False, default="user")
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    cars = relationship("Car", back_populates="owner", passive_deletes=True)
    bookings = relationship(
        "Booking",
        back_populates="user",
        foreign_keys="Booking.user_id",
        passive_deletes=True,
    )


class Car(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, index=True)

    owner_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    make = Column(String(100), nullable=False, index=True)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    color = Column(String(50), nullable=False)
    category = Column(String(20), nullable=False, index=True)
    transmission = Column(String(20), nullable=False)
    fuel_type = Column(String(20), nullable=False)
    seats = Column(Integer, nullable=False)
    doors = Column(Integer, nullable=False)
    features = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)
    license_plate = Column(String(20), unique=True, nullable=False)
    mileage = Column(Integer, nullable=False, default=0)

    # location
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    state = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)

    # rate card
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    daily_rate = Column(Numeric(10, 2), nullable=False, index=True)
    weekly_rate = Column(Numeric(10, 2), nullable=True)
    monthly_rate = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")

    is_available = Column(Boolean, nullable=False, default=True, index=True)
    # "active" | "inactive" | "maintenance" | "rented"
    status = Column(String(20), nullable=False, default="active")

    rating_average = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)
    total_bookings = Column(Integer, nullable=False, default=0)

    # bumped by every availability-dependent booking write (compare-and-set)
    booking_version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.now, nullable=False)

    owner = relationship("User", back_populates="cars")

    unavailable_periods = relationship(
        "CarUnavailablePeriod",
        back_populates="car",
        cascade="all,delete-orphan",
        passive_deletes=True,
        order_by="CarUnavailablePeriod.start_date",
    )

    bookings = relationship("Booking", back_populates="car", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(f"category IN ({_sql_in(CAR_CATEGORIES)})", name="ck_car_category"),
        CheckConstraint(f"status IN ({_sql_in(CAR_STATUSES)})", name="ck_car_status"),
        CheckConstraint(f"currency IN ({_sql_in(CURRENCIES)})", name="ck_car_currency"),
        CheckConstraint("hourly_rate >= 0 AND daily_rate >= 0", name="ck_car_rates"),
        CheckConstraint("rating_count >= 0", name="ck_car_rating_count"),
    )


class CarUnavailablePeriod(Base):
    __tablename__ = "car_unavailable_periods"

    id = Column(Integer, primary_key=True, index=True)
    car_id = Column(
        Integer,
        ForeignKey("cars.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # "blackout" | "maintenance"
    kind = Column(String(20), nullable=False, default="blackout")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False)

    car = relationship("Car", back_populates="unavailable_periods")

    __table_args__ = (
        CheckConstraint("kind IN ('blackout', 'maintenance')", name="ck_period_kind"),
        CheckConstraint("end_date >= start_date", name="ck_period_dates"),
    )


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    car_id = Column(
        Integer,
        ForeignKey("cars.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    duration_hours = Column(Integer, nullable=False)
    duration_days = Column(Integer, nullable=False)

    pickup_location = Column(JSON, nullable=False)
    dropoff_location = Column(JSON, nullable=False)
    driver_details = Column(JSON, nullable=False)
    payment_method = Column(String(20), nullable=False)
    special_requests = Column(String(500), nullable=True)

    insurance_type = Column(String(20), nullable=False, default="basic")

    base_price = Column(Numeric(10, 2), nullable=False)
    insurance_cost = Column(Numeric(10, 2), nullable=False, default=0)
    taxes = Column(Numeric(10, 2), nullable=False, default=0)
    fees = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="unpaid")

    # State payloads. Each one is only present in the statuses allowed by
    # the check constraints below.
    start_record = Column(JSON(none_as_null=True), nullable=True)
    completion = Column(JSON(none_as_null=True), nullable=True)
    cancellation = Column(JSON(none_as_null=True), nullable=True)
    rating = Column(JSON(none_as_null=True), nullable=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    user = relationship("User", back_populates="bookings", foreign_keys=[user_id])
    car = relationship("Car", back_populates="bookings")

    @property
    def state(self) -> dict:
        """Status plus only the payloads that exist in that status."""
        state = {"status": self.status}
        if self.start_record is not None:
            state["start"] = self.start_record
        if self.completion is not None:
            state["completion"] = self.completion
        if self.rating is not None:
            state["rating"] = self.rating
        if self.cancellation is not None:
            state["cancellation"] = self.cancellation
        return state

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.start_date, self.start_time)

    __table_args__ = (
        Index("ix_bookings_car_dates", "car_id", "start_date", "end_date"),
        Index("ix_bookings_user_status", "user_id", "status"),
        CheckConstraint(f"status IN ({_sql_in(BOOKING_STATUSES)})", name="ck_booking_status"),
        CheckConstraint(
            f"payment_status IN ({_sql_in(PAYMENT_STATUSES)})",
            name="ck_booking_payment_status",
        ),
        CheckConstraint("end_date >= start_date", name="ck_booking_dates"),
        CheckConstraint("duration_hours >= 1 AND duration_hours <= 720", name="ck_booking_duration"),
        CheckConstraint("total_price >= 0", name="ck_booking_total"),
        CheckConstraint(
            "(status = 'cancelled') = (cancellation IS NOT NULL)",
            name="ck_booking_cancellation_state",
        ),
        CheckConstraint(
            "(status = 'completed') = (completion IS NOT NULL)",
            name="ck_booking_completion_state",
        ),
        CheckConstraint(
            "(status IN ('active', 'completed')) = (start_record IS NOT NULL)",
            name="ck_booking_start_state",
        ),
        CheckConstraint(
            "rating IS NULL OR status = 'completed'",
            name="ck_booking_rating_state",
        ),
    )
