from datetime import date, time
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from ..enums import ReservationType
from .common import encode_image


class FieldCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    location: str = Field(min_length=1)
    price_per_hour: float = Field(gt=0)
    # Base64 payload, optionally a data URL.
    image: str | None = None


class FieldPublic(BaseModel):
    id: str
    name: str
    description: str | None
    location: str
    price_per_hour: float
    image: str | None = None

    class Config:
        from_attributes = True

    @field_validator("image", mode="before")
    @classmethod
    def encode_blob(cls, value):
        return encode_image(value)


class SlotWindow(BaseModel):
    start: time
    end: time

    @model_validator(mode="after")
    def validate_window(self) -> "SlotWindow":
        if self.end <= self.start:
            raise ValueError("A slot must end after it starts.")
        return self


class SlotBatchCreate(BaseModel):
    field_id: str
    slot_date: date
    slots: List[SlotWindow] = Field(min_length=1)


class SlotUpdate(BaseModel):
    field_id: str
    slot_date: date
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def validate_window(self) -> "SlotUpdate":
        if self.end_time <= self.start_time:
            raise ValueError("A slot must end after it starts.")
        return self


class SlotPublic(BaseModel):
    id: str
    field_id: str
    slot_date: date
    start_time: time
    end_time: time
    is_reserved: bool
    reservation_type: ReservationType | None = None
    holder_user_id: str | None = None

    class Config:
        from_attributes = True


class AdminSlotPublic(SlotPublic):
    user_name: str | None = None
    field_name: str | None = None
    field_price: float | None = None


class SlotBatchResponse(BaseModel):
    message: str
    slots: List[SlotPublic]
