from datetime import date, datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, LargeBinary, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..enums import TournamentTeamStatus


class Tournament(SQLModel, table=True):
    __tablename__ = "tournaments"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str
    field_id: str = Field(foreign_key="fields.id", ondelete="RESTRICT")
    tournament_date: date
    prize: str
    description: str | None = Field(default=None)
    image: bytes | None = Field(
        default=None,
        sa_column=Column(LargeBinary, nullable=True),
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TournamentTeam(SQLModel, table=True):
    __tablename__ = "tournament_teams"
    __table_args__ = (
        UniqueConstraint("tournament_id", "captain_id", name="uq_tournament_teams_captain"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    tournament_id: str = Field(foreign_key="tournaments.id", ondelete="CASCADE", index=True)
    team_name: str
    captain_id: str = Field(foreign_key="users.id", ondelete="RESTRICT")
    invitation_code: str = Field(index=True, unique=True)
    status: TournamentTeamStatus = Field(default=TournamentTeamStatus.FORMING)
    version: int = Field(default=0)
    registration_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TournamentTeamMember(SQLModel, table=True):
    __tablename__ = "tournament_team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_tournament_team_members_user"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    team_id: str = Field(foreign_key="tournament_teams.id", ondelete="CASCADE", index=True)
    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    user_name: str
    is_captain: bool = Field(default=False)
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
