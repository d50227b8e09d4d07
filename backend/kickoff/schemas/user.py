from datetime import date, datetime

from pydantic import BaseModel


class UserPublic(BaseModel):
    id: str
    name: str
    email: str
    phone_number: str | None = None
    birthdate: date | None = None
    gender: str | None = None
    is_admin: bool
    created_at: datetime

    class Config:
        from_attributes = True


class BirthdayEntry(BaseModel):
    id: str
    name: str
    email: str
    phone_number: str | None = None
    birthdate: date
    gender: str | None = None
    next_birthday: date
