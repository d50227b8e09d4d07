from datetime import date, datetime, time, timezone
from uuid import uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..enums import BookingType, SessionStatus, TeamDesignation


class TeamSession(SQLModel, table=True):
    __tablename__ = "team_sessions"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    invitation_code: str = Field(index=True, unique=True)
    creator_id: str = Field(foreign_key="users.id", ondelete="CASCADE")
    booking_type: BookingType
    field_id: str = Field(foreign_key="fields.id", ondelete="CASCADE", index=True)
    slot_date: date
    start_time: time | None = Field(default=None)
    end_time: time | None = Field(default=None)
    status: SessionStatus = Field(default=SessionStatus.ACTIVE)
    version: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TeamMember(SQLModel, table=True):
    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("session_id", "user_id", name="uq_team_members_session_user"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    session_id: str = Field(foreign_key="team_sessions.id", ondelete="CASCADE", index=True)
    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    team_designation: TeamDesignation
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
