# backend/carrental/schemas/booking.py
from datetime import date, datetime, time
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_serializer
from pydantic.alias_generators import to_camel

InsuranceType = Literal["basic", "comprehensive", "premium"]
PaymentMethod = Literal["credit-card", "debit-card", "paypal", "cash", "bank-transfer"]
FuelLevel = Literal["empty", "quarter", "half", "three-quarter", "full"]

# camelCase on the wire, snake_case in Python; both accepted on input
CAMEL = {"alias_generator": to_camel, "populate_by_name": True}
CAMEL_ORM = {**CAMEL, "from_attributes": True}


class Coordinates(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class Location(BaseModel):
    # required fields default to "" so the service can report every missing
    # one in a single errors list
    address: str = ""
    city: str = ""
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = ""
    coordinates: Optional[Coordinates] = None

    model_config = CAMEL


class EmergencyContact(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None


class DriverDetails(BaseModel):
    license_number: Optional[str] = None
    license_expiry: Optional[date] = None
    emergency_contact: Optional[EmergencyContact] = None

    model_config = CAMEL


class BookingEstimateRequest(BaseModel):
    car_id: int
    start_date: date
    end_date: date
    start_time: str
    end_time: str
    insurance_type: InsuranceType = "basic"

    model_config = CAMEL


class BookingCreate(BookingEstimateRequest):
    pickup_location: Location = Field(default_factory=Location)
    dropoff_location: Location = Field(default_factory=Location)
    payment_method: PaymentMethod
    special_requests: Optional[str] = Field(None, max_length=500)
    driver_details: DriverDetails = Field(default_factory=DriverDetails)


class BookingUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    pickup_location: Optional[Location] = None
    dropoff_location: Optional[Location] = None
    payment_method: Optional[PaymentMethod] = None
    special_requests: Optional[str] = Field(None, max_length=500)
    driver_details: Optional[DriverDetails] = None

    model_config = CAMEL


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingStart(BaseModel):
    mileage: Optional[int] = Field(None, ge=0)
    fuel_level: FuelLevel = "full"
    inspection: Optional[str] = None

    model_config = CAMEL


class Damage(BaseModel):
    description: str
    cost: Optional[float] = Field(None, ge=0)
    images: List[str] = []


class BookingComplete(BaseModel):
    mileage: Optional[int] = Field(None, ge=0)
    fuel_level: Optional[FuelLevel] = None
    inspection: Optional[str] = None
    damages: List[Damage] = []

    model_config = CAMEL


class BookingRate(BaseModel):
    # range is checked by the service so missing and out-of-range ratings
    # come back in the same errors list
    car_rating: Optional[int] = None
    service_rating: Optional[int] = None
    comment: Optional[str] = Field(None, max_length=1000)

    model_config = CAMEL


# ---------------------------
# Booking state (tagged by status)
# ---------------------------

class StartRecord(BaseModel):
    mileage: Optional[int] = None
    fuel_level: Optional[str] = None
    notes: Optional[str] = None
    inspector_id: Optional[int] = None
    inspected_at: datetime

    model_config = CAMEL


class CompletionRecord(BaseModel):
    mileage: Optional[int] = None
    fuel_level: Optional[str] = None
    notes: Optional[str] = None
    damages: List[Damage] = []
    inspector_id: Optional[int] = None
    inspected_at: datetime

    model_config = CAMEL


class CancellationRecord(BaseModel):
    reason: str
    cancelled_at: datetime
    cancelled_by: int
    refund_amount: float

    model_config = CAMEL


class RatingRecord(BaseModel):
    car_rating: int
    service_rating: int
    comment: Optional[str] = None
    rated_at: datetime

    model_config = CAMEL


class PendingState(BaseModel):
    status: Literal["pending"]


class ConfirmedState(BaseModel):
    status: Literal["confirmed"]


class ActiveState(BaseModel):
    status: Literal["active"]
    start: StartRecord


class CompletedState(BaseModel):
    status: Literal["completed"]
    start: StartRecord
    completion: CompletionRecord
    rating: Optional[RatingRecord] = None


class CancelledState(BaseModel):
    status: Literal["cancelled"]
    cancellation: CancellationRecord


class NoShowState(BaseModel):
    status: Literal["no-show"]


BookingState = Annotated[
    Union[
        PendingState,
        ConfirmedState,
        ActiveState,
        CompletedState,
        CancelledState,
        NoShowState,
    ],
    Field(discriminator="status"),
]


class BookingOut(BaseModel):
    id: int
    car_id: int
    user_id: int
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    duration_hours: int
    duration_days: int
    pickup_location: Location
    dropoff_location: Location
    driver_details: DriverDetails
    payment_method: str
    special_requests: Optional[str] = None
    insurance_type: str
    base_price: float
    insurance_cost: float
    taxes: float
    fees: float
    discount: float
    total_price: float
    currency: str
    status: str
    payment_status: str
    state: BookingState
    created_at: datetime

    model_config = CAMEL_ORM

    @field_serializer("start_time", "end_time")
    def _hh_mm(self, value: time) -> str:
        return value.strftime("%H:%M")


class PriceOut(BaseModel):
    base_price: float
    insurance_cost: float
    taxes: float
    fees: float
    discount: float
    total_price: float
    currency: str
    insurance_type: str
    breakdown: dict

    model_config = CAMEL_ORM


class DurationOut(BaseModel):
    hours: int
    days: int

    model_config = {"from_attributes": True}
