from datetime import date, datetime, time
from typing import List

from pydantic import BaseModel, model_validator

from ..enums import RequestStatus, RequestType


class DirectMatchmakingCreate(BaseModel):
    field_id: str
    slot_id: str | None = None
    slot_date: date | None = None
    request_type: RequestType = RequestType.PLAYERS_LOOKING_FOR_TEAM

    @model_validator(mode="after")
    def require_day(self) -> "DirectMatchmakingCreate":
        if not self.slot_id and not self.slot_date:
            raise ValueError("Either slot_id or slot_date is required.")
        return self


class MatchmakingRequestPublic(BaseModel):
    id: str
    user_id: str
    field_id: str
    slot_date: date
    start_time: time | None = None
    end_time: time | None = None
    request_type: RequestType
    status: RequestStatus
    players_needed: int
    created_at: datetime

    class Config:
        from_attributes = True


class MatchmakingEntry(BaseModel):
    id: str
    user_id: str
    user_name: str
    field_id: str
    field_name: str
    slot_date: date
    request_type: RequestType
    status: RequestStatus
    players_needed: int


class MatchSuggestion(BaseModel):
    player_request_id: str
    player_id: str
    player_name: str
    team_request_id: str
    team_user_id: str
    team_user_name: str
    team_phone_number: str | None = None
    team_players_needed: int
    field_id: str
    field_name: str
    slot_date: date


class CategorizedMatchmaking(BaseModel):
    team_looking_for_players: List[MatchmakingEntry]
    team_vs_team: List[MatchmakingEntry]
    players_looking_for_team: List[MatchmakingEntry]
    potential_matches: List[MatchSuggestion]


class SubmitDirectResponse(BaseModel):
    message: str
    request_id: str


class ApprovalResponse(BaseModel):
    message: str
    request_id: str
    slot_id: str
