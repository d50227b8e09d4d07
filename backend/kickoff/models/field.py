from datetime import date, time
from uuid import uuid4

from sqlalchemy import Column, LargeBinary
from sqlmodel import Field, SQLModel

from ..enums import ReservationType


class FootballField(SQLModel, table=True):
    __tablename__ = "fields"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str
    description: str | None = Field(default=None)
    location: str
    price_per_hour: float
    # Bumped by lock_for_write.
    version: int = Field(default=0)
    image: bytes | None = Field(
        default=None,
        sa_column=Column(LargeBinary, nullable=True),
    )


class AvailabilitySlot(SQLModel, table=True):
    """A bookable interval on one field.

    When ``is_reserved`` is set the slot has exactly one holder and a
    reservation type; a free slot has neither.
    """

    __tablename__ = "availability_slots"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    field_id: str = Field(foreign_key="fields.id", ondelete="CASCADE", index=True)
    slot_date: date = Field(index=True)
    start_time: time
    end_time: time
    is_reserved: bool = Field(default=False)
    reservation_type: ReservationType | None = Field(default=None)
    holder_user_id: str | None = Field(default=None, foreign_key="users.id", ondelete="RESTRICT")
