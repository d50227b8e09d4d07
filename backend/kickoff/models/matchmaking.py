from datetime import date, datetime, time, timezone
from uuid import uuid4

from sqlmodel import Field, SQLModel

from ..enums import RequestStatus, RequestType


class MatchmakingRequest(SQLModel, table=True):
    __tablename__ = "matchmaking_requests"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    field_id: str = Field(foreign_key="fields.id", ondelete="CASCADE", index=True)
    slot_date: date = Field(index=True)
    # Day-level requests leave the times empty.
    start_time: time | None = Field(default=None)
    end_time: time | None = Field(default=None)
    request_type: RequestType
    status: RequestStatus = Field(default=RequestStatus.PENDING)
    version: int = Field(default=0)
    players_needed: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
