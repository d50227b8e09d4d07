import logging
from datetime import date, timedelta
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..errors import NotFound
from ..models import User
from ..schemas.user import BirthdayEntry

logger = logging.getLogger(__name__)

UPCOMING_BIRTHDAY_DAYS = 7


def next_birthday(birthdate: date, today: date) -> date:
    """The first anniversary of ``birthdate`` on or after ``today``.

    A 29 February birthday falls on 28 February in common years.
    """

    def in_year(year: int) -> date:
        try:
            return birthdate.replace(year=year)
        except ValueError:
            return date(year, 2, 28)

    upcoming = in_year(today.year)
    if upcoming < today:
        upcoming = in_year(today.year + 1)
    return upcoming


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_user(self, user_id: str) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFound("User not found.")
        return user

    async def upcoming_birthdays(
        self,
        today: date,
        days: int = UPCOMING_BIRTHDAY_DAYS,
    ) -> list[BirthdayEntry]:
        """Users whose birthday is between ``today`` and ``days`` days later.

        Both ends are included. Entries come soonest first, so a window that
        crosses the new year lists December before January.
        """
        last_day = today + timedelta(days=days)
        users: Sequence[User] = (
            await self.session.execute(select(User).where(User.birthdate.is_not(None)))
        ).scalars().all()

        entries = []
        for user in users:
            upcoming = next_birthday(user.birthdate, today)
            if upcoming <= last_day:
                entries.append(
                    BirthdayEntry(
                        id=user.id,
                        name=user.name,
                        email=user.email,
                        phone_number=user.phone_number,
                        birthdate=user.birthdate,
                        gender=user.gender,
                        next_birthday=upcoming,
                    )
                )
        entries.sort(key=lambda entry: (entry.next_birthday, entry.name))
        logger.debug("%s birthdays between %s and %s", len(entries), today, last_day)
        return entries
