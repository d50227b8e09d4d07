from datetime import date, datetime, time
from typing import List

from pydantic import BaseModel, Field, field_validator

from ..enums import BookingType, SessionStatus, TeamDesignation
from .common import encode_image


class SessionInitiate(BaseModel):
    field_id: str
    slot_date: date
    start_time: time | None = None
    end_time: time | None = None
    booking_type: BookingType


class SessionJoin(BaseModel):
    invitation_code: str = Field(min_length=1)
    team_designation: TeamDesignation


class SessionCodeRequest(BaseModel):
    invitation_code: str = Field(min_length=1)


class RemovePlayerRequest(BaseModel):
    invitation_code: str = Field(min_length=1)
    target_user_id: str


class SubmitMatchmakingRequest(BaseModel):
    invitation_code: str = Field(min_length=1)
    current_players: int = Field(ge=0)


class InitiateResponse(BaseModel):
    invitation_code: str
    session_id: str


class SessionPublic(BaseModel):
    id: str
    invitation_code: str
    creator_id: str
    booking_type: BookingType
    field_id: str
    slot_date: date
    start_time: time | None = None
    end_time: time | None = None
    status: SessionStatus
    created_at: datetime

    class Config:
        from_attributes = True


class SessionMemberPublic(BaseModel):
    id: str
    session_id: str
    user_id: str
    player_name: str
    team_designation: TeamDesignation


class SessionFieldSummary(BaseModel):
    name: str
    location: str
    price_per_hour: float
    image: str | None = None

    @field_validator("image", mode="before")
    @classmethod
    def encode_blob(cls, value):
        return encode_image(value)


class SessionDetails(BaseModel):
    session: SessionPublic
    field: SessionFieldSummary
    members: List[SessionMemberPublic]


class ConfirmBookingResponse(BaseModel):
    message: str
    reservation_id: str


class SubmitMatchmakingResponse(BaseModel):
    message: str
    request_id: str
    players_needed: int
