from datetime import date, datetime, time, timezone
from uuid import uuid4

from sqlmodel import Field, SQLModel

from ..enums import ReservationType


class Reservation(SQLModel, table=True):
    __tablename__ = "reservations"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    field_id: str = Field(foreign_key="fields.id", ondelete="CASCADE", index=True)
    slot_date: date
    start_time: time
    end_time: time
    booking_type: ReservationType
    session_id: str | None = Field(default=None, foreign_key="team_sessions.id", ondelete="SET NULL")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
