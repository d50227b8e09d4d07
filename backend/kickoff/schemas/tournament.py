from datetime import date, datetime
from typing import List

from pydantic import BaseModel, Field, field_validator

from ..enums import TournamentTeamStatus
from .common import encode_image


class TournamentCreate(BaseModel):
    name: str = Field(min_length=1)
    field_id: str
    tournament_date: date
    prize: str = Field(min_length=1)
    description: str | None = None
    image: str | None = None


class TournamentPublic(BaseModel):
    id: str
    name: str
    field_id: str
    tournament_date: date
    prize: str
    description: str | None = None
    image: str | None = None
    field_name: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True

    @field_validator("image", mode="before")
    @classmethod
    def encode_blob(cls, value):
        return encode_image(value)


class TeamCreateRequest(BaseModel):
    tournament_id: str
    team_name: str = Field(min_length=1, max_length=100)
    creator_name: str | None = None


class TeamJoinRequest(BaseModel):
    invitation_code: str = Field(min_length=1)
    user_name: str | None = None


class TeamRemovePlayerRequest(BaseModel):
    invitation_code: str = Field(min_length=1)
    target_user_id: str


class TeamConfirmRequest(BaseModel):
    invitation_code: str = Field(min_length=1)
    tournament_id: str


class TournamentTeamPublic(BaseModel):
    id: str
    tournament_id: str
    team_name: str
    captain_id: str
    invitation_code: str
    status: TournamentTeamStatus
    registration_date: datetime

    class Config:
        from_attributes = True


class TournamentTeamMemberPublic(BaseModel):
    user_id: str
    user_name: str
    is_captain: bool
    joined_at: datetime

    class Config:
        from_attributes = True


class TeamCreateResponse(BaseModel):
    team: TournamentTeamPublic
    invitation_code: str
    created: bool


class TeamDetails(BaseModel):
    team: TournamentTeamPublic
    tournament: TournamentPublic
    players: List[TournamentTeamMemberPublic]


class TeamListEntry(BaseModel):
    team_name: str
    captain_name: str
    registration_date: datetime
    status: TournamentTeamStatus
    invitation_code: str
    member_count: int


class TournamentTeamsResponse(BaseModel):
    tournament: TournamentPublic
    teams: List[TeamListEntry]


class RegistrationResponse(BaseModel):
    message: str
    team_id: str
    team_name: str
