# backend/carrental/schemas/car.py
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from carrental.schemas.booking import CAMEL, CAMEL_ORM

Category = Literal[
    "economy",
    "compact",
    "midsize",
    "fullsize",
    "luxury",
    "suv",
    "van",
    "convertible",
    "sports",
]
Currency = Literal["USD", "EUR", "INR"]
CarStatus = Literal["active", "inactive", "maintenance", "rented"]


class OwnerInfo(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None

    model_config = {"from_attributes": True}


class RateCardIn(BaseModel):
    hourly: float = Field(..., ge=0)
    daily: float = Field(..., ge=0)
    weekly: Optional[float] = Field(None, ge=0)
    monthly: Optional[float] = Field(None, ge=0)
    currency: Currency = "USD"


class UnavailablePeriodIn(BaseModel):
    kind: Literal["blackout", "maintenance"] = "blackout"
    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=255)

    model_config = CAMEL

    @model_validator(mode="after")
    def _ordered(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self


class UnavailablePeriodOut(BaseModel):
    id: int
    kind: str
    start_date: date
    end_date: date
    reason: Optional[str] = None

    model_config = CAMEL_ORM


class CarBase(BaseModel):
    id: int
    owner_id: int
    make: str
    model: str
    year: int
    color: str
    category: str
    transmission: str
    fuel_type: str
    seats: int
    doors: int
    features: List[str]
    images: List[str]
    license_plate: str
    mileage: int
    address: str
    city: str
    state: str
    country: str
    hourly_rate: float
    daily_rate: float
    weekly_rate: Optional[float] = None
    monthly_rate: Optional[float] = None
    currency: str
    is_available: bool
    status: str
    rating_average: float
    rating_count: int
    total_bookings: int

    model_config = CAMEL_ORM


class CarDetail(CarBase):
    owner: OwnerInfo
    unavailable_periods: List[UnavailablePeriodOut]


class CarCreate(BaseModel):
    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: int = Field(..., ge=1990)
    color: str
    category: Category
    transmission: Literal["manual", "automatic"]
    fuel_type: Literal["petrol", "diesel", "electric", "hybrid"]
    seats: int = Field(..., ge=2, le=15)
    doors: int = Field(..., ge=2, le=6)
    features: List[str] = []
    images: List[str] = []
    license_plate: str = Field(..., min_length=1)
    mileage: int = Field(0, ge=0)
    address: str
    city: str
    state: str
    country: str
    pricing: RateCardIn

    model_config = CAMEL


class CarAvailabilityUpdate(BaseModel):
    is_available: Optional[bool] = None
    status: Optional[CarStatus] = None

    model_config = CAMEL
