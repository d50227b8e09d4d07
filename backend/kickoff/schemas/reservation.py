from datetime import date, datetime, time

from pydantic import BaseModel

from ..enums import ReservationType


class ReserveRequest(BaseModel):
    slot_id: str


class ReservationPublic(BaseModel):
    id: str
    user_id: str
    field_id: str
    slot_date: date
    start_time: time
    end_time: time
    booking_type: ReservationType
    session_id: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReservationSummary(BaseModel):
    id: str
    slot_date: date
    start_time: time
    end_time: time
    booking_type: ReservationType
    status: str = "confirmed"
    user_name: str | None = None
    field_name: str | None = None
    price_per_hour: float | None = None


class ReserveResponse(BaseModel):
    message: str
    reservation: ReservationPublic
