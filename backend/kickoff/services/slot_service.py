import logging
from datetime import date, time
from typing import Sequence

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import select

from ..database import atomic, lock_first, lock_for_write, lock_one
from ..enums import RequestStatus, ReservationType
from ..errors import Conflict, NotFound, Unavailable
from ..models import AvailabilitySlot, FootballField, MatchmakingRequest, Reservation, User
from ..schemas.field import AdminSlotPublic, SlotUpdate, SlotWindow
from ..schemas.reservation import ReservationSummary

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "Failed to reserve the slot. It may already be taken."


async def claim_slot(
    session: AsyncSession,
    slot: AvailabilitySlot,
    *,
    holder_id: str,
    reservation_type: ReservationType,
) -> bool:
    """Flip a free slot to reserved inside the caller's transaction.

    The update only matches a slot that is still free and still covers the
    interval the caller read; ``False`` means another transaction reserved or
    moved it first.
    """
    statement = (
        update(AvailabilitySlot)
        .where(
            AvailabilitySlot.id == slot.id,
            AvailabilitySlot.is_reserved.is_(False),
            AvailabilitySlot.field_id == slot.field_id,
            AvailabilitySlot.slot_date == slot.slot_date,
            AvailabilitySlot.start_time == slot.start_time,
            AvailabilitySlot.end_time == slot.end_time,
        )
        .values(
            is_reserved=True,
            holder_user_id=holder_id,
            reservation_type=reservation_type,
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(statement)
    if result.rowcount != 1:
        return False

    set_committed_value(slot, "is_reserved", True)
    set_committed_value(slot, "holder_user_id", holder_id)
    set_committed_value(slot, "reservation_type", reservation_type)
    return True


def _overlaps(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    return start_a < end_b and start_b < end_a


class SlotReservationService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def reserve_direct(self, *, user_id: str, slot_id: str) -> Reservation:
        async with atomic(self.session):
            slot = await lock_one(
                self.session,
                select(AvailabilitySlot).where(AvailabilitySlot.id == slot_id),
            )
            if slot is None:
                raise NotFound("Selected slot not found.")
            if slot.is_reserved:
                raise Conflict(SLOT_TAKEN_MESSAGE)

            claimed = await claim_slot(
                self.session,
                slot,
                holder_id=user_id,
                reservation_type=ReservationType.FULL_FIELD,
            )
            if not claimed:
                raise Conflict(SLOT_TAKEN_MESSAGE)

            reservation = Reservation(
                user_id=user_id,
                field_id=slot.field_id,
                slot_date=slot.slot_date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                booking_type=ReservationType.FULL_FIELD,
            )
            self.session.add(reservation)

        logger.info("Slot %s reserved by user %s (reservation %s)", slot_id, user_id, reservation.id)
        return reservation

    async def release(self, reservation_id: str) -> AvailabilitySlot:
        """Delete a reservation and free the slot it holds."""
        async with atomic(self.session):
            reservation = await lock_one(
                self.session,
                select(Reservation).where(Reservation.id == reservation_id),
            )
            if reservation is None:
                raise NotFound("Reservation not found.")
            # The delete gates the release: a concurrent release of the same
            # reservation matches no row here.
            deleted = await self.session.execute(
                delete(Reservation)
                .where(Reservation.id == reservation_id)
                .execution_options(synchronize_session=False)
            )
            if deleted.rowcount != 1:
                raise NotFound("Reservation not found.")

            slot = await lock_first(
                self.session,
                select(AvailabilitySlot)
                .where(
                    AvailabilitySlot.field_id == reservation.field_id,
                    AvailabilitySlot.slot_date == reservation.slot_date,
                    AvailabilitySlot.start_time == reservation.start_time,
                    AvailabilitySlot.end_time == reservation.end_time,
                    AvailabilitySlot.is_reserved.is_(True),
                )
                .order_by(AvailabilitySlot.id),
            )
            if slot is None:
                raise Conflict("Availability slot not found or already free.")

            slot.is_reserved = False
            slot.holder_user_id = None
            slot.reservation_type = None
            self.session.add(slot)
            self.session.expunge(reservation)

        logger.info("Reservation %s released, slot %s is free again", reservation_id, slot.id)
        return slot

    async def approve_matchmaking(self, request_id: str) -> tuple[MatchmakingRequest, AvailabilitySlot]:
        """Approve a pending request by reserving a free slot for its owner.

        A request with a start time needs that exact slot; a day-level request
        takes the earliest free slot of the day.
        """
        async with atomic(self.session):
            request = None
            if await lock_for_write(self.session, MatchmakingRequest, MatchmakingRequest.id == request_id):
                request = await lock_one(
                    self.session,
                    select(MatchmakingRequest).where(MatchmakingRequest.id == request_id),
                )
            if request is None:
                raise NotFound("Matchmaking request not found.")
            if request.status != RequestStatus.PENDING:
                raise Conflict(f"Matchmaking request is already {request.status.value}.")

            statement = select(AvailabilitySlot).where(
                AvailabilitySlot.field_id == request.field_id,
                AvailabilitySlot.slot_date == request.slot_date,
                AvailabilitySlot.is_reserved.is_(False),
            )
            if request.start_time is not None:
                statement = statement.where(AvailabilitySlot.start_time == request.start_time)
            statement = statement.order_by(AvailabilitySlot.start_time, AvailabilitySlot.id)

            slot = await lock_first(self.session, statement, nowait=True)
            if slot is None:
                raise Unavailable("The corresponding slot is no longer available or already reserved.")

            reservation_type = ReservationType(request.request_type.value)
            claimed = await claim_slot(
                self.session,
                slot,
                holder_id=request.user_id,
                reservation_type=reservation_type,
            )
            if not claimed:
                raise Unavailable("The corresponding slot is no longer available or already reserved.")

            request.status = RequestStatus.APPROVED
            self.session.add(request)
            self.session.add(
                Reservation(
                    user_id=request.user_id,
                    field_id=slot.field_id,
                    slot_date=slot.slot_date,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    booking_type=reservation_type,
                )
            )

        logger.info("Matchmaking request %s approved on slot %s", request_id, slot.id)
        return request, slot

    async def add_slots(
        self,
        *,
        field_id: str,
        slot_date: date,
        windows: Sequence[SlotWindow],
    ) -> list[AvailabilitySlot]:
        async with atomic(self.session):
            # Slot writers on one field queue here before the overlap check.
            if not await lock_for_write(self.session, FootballField, FootballField.id == field_id):
                raise NotFound("Field not found.")

            taken = await self._taken_windows(field_id, slot_date)
            created: list[AvailabilitySlot] = []
            for window in windows:
                if any(_overlaps(window.start, window.end, start, end) for start, end in taken):
                    raise Conflict(
                        f"Slot {window.start:%H:%M}-{window.end:%H:%M} overlaps an existing slot."
                    )
                taken.append((window.start, window.end))
                slot = AvailabilitySlot(
                    field_id=field_id,
                    slot_date=slot_date,
                    start_time=window.start,
                    end_time=window.end,
                )
                self.session.add(slot)
                created.append(slot)

        logger.info("Added %s slots to field %s on %s", len(created), field_id, slot_date)
        return created

    async def update_slot(self, slot_id: str, payload: SlotUpdate) -> AvailabilitySlot:
        """Move a free slot, possibly to another field or day.

        The new interval must not overlap any other slot at its destination.
        """
        async with atomic(self.session):
            if not await lock_for_write(self.session, FootballField, FootballField.id == payload.field_id):
                raise NotFound("Field not found.")

            slot = await lock_one(
                self.session,
                select(AvailabilitySlot).where(AvailabilitySlot.id == slot_id),
            )
            if slot is None:
                raise NotFound("Availability slot not found.")
            if slot.is_reserved:
                raise Conflict("Cannot update a reserved slot.")

            taken = await self._taken_windows(payload.field_id, payload.slot_date, exclude_id=slot_id)
            if any(_overlaps(payload.start_time, payload.end_time, start, end) for start, end in taken):
                raise Conflict(
                    f"Slot {payload.start_time:%H:%M}-{payload.end_time:%H:%M} overlaps an existing slot."
                )

            slot.field_id = payload.field_id
            slot.slot_date = payload.slot_date
            slot.start_time = payload.start_time
            slot.end_time = payload.end_time
            self.session.add(slot)
        return slot

    async def delete_slot(self, slot_id: str) -> None:
        async with atomic(self.session):
            slot = await lock_one(
                self.session,
                select(AvailabilitySlot).where(AvailabilitySlot.id == slot_id),
            )
            if slot is None:
                raise NotFound("Availability slot not found.")
            if slot.is_reserved:
                raise Conflict("Cannot delete a reserved slot.")

            result = await self.session.execute(
                delete(AvailabilitySlot)
                .where(AvailabilitySlot.id == slot_id, AvailabilitySlot.is_reserved.is_(False))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise Conflict("Cannot delete a reserved slot.")
            self.session.expunge(slot)

    async def _taken_windows(
        self,
        field_id: str,
        slot_date: date,
        *,
        exclude_id: str | None = None,
    ) -> list[tuple[time, time]]:
        statement = select(AvailabilitySlot.start_time, AvailabilitySlot.end_time).where(
            AvailabilitySlot.field_id == field_id,
            AvailabilitySlot.slot_date == slot_date,
        )
        if exclude_id:
            statement = statement.where(AvailabilitySlot.id != exclude_id)
        rows = (await self.session.execute(statement)).all()
        return [(start, end) for start, end in rows]

    async def list_free_slots(self, *, field_id: str, slot_date: date) -> Sequence[AvailabilitySlot]:
        statement = (
            select(AvailabilitySlot)
            .where(
                AvailabilitySlot.field_id == field_id,
                AvailabilitySlot.slot_date == slot_date,
                AvailabilitySlot.is_reserved.is_(False),
            )
            .order_by(AvailabilitySlot.start_time)
        )
        result = await self.session.execute(statement)
        return result.scalars().all()

    async def list_slots(
        self,
        *,
        field_id: str | None = None,
        slot_date: date | None = None,
    ) -> list[AdminSlotPublic]:
        statement = (
            select(AvailabilitySlot, User.name, FootballField.name, FootballField.price_per_hour)
            .outerjoin(User, User.id == AvailabilitySlot.holder_user_id)
            .outerjoin(FootballField, FootballField.id == AvailabilitySlot.field_id)
        )
        if field_id:
            statement = statement.where(AvailabilitySlot.field_id == field_id)
        if slot_date:
            statement = statement.where(AvailabilitySlot.slot_date == slot_date)
        statement = statement.order_by(AvailabilitySlot.slot_date.desc(), AvailabilitySlot.start_time)

        rows = (await self.session.execute(statement)).all()
        slots: list[AdminSlotPublic] = []
        for slot, user_name, field_name, field_price in rows:
            payload = slot.model_dump()
            payload.update(user_name=user_name, field_name=field_name, field_price=field_price)
            slots.append(AdminSlotPublic.model_validate(payload))
        return slots

    async def list_reservations(self, *, user_id: str | None = None) -> list[ReservationSummary]:
        statement = (
            select(Reservation, User.name, FootballField.name, FootballField.price_per_hour)
            .join(User, User.id == Reservation.user_id)
            .join(FootballField, FootballField.id == Reservation.field_id)
        )
        if user_id:
            statement = statement.where(Reservation.user_id == user_id)
        statement = statement.order_by(Reservation.slot_date.desc(), Reservation.start_time.desc())

        rows = (await self.session.execute(statement)).all()
        return [
            ReservationSummary(
                id=reservation.id,
                slot_date=reservation.slot_date,
                start_time=reservation.start_time,
                end_time=reservation.end_time,
                booking_type=reservation.booking_type,
                user_name=user_name,
                field_name=field_name,
                price_per_hour=price,
            )
            for reservation, user_name, field_name, price in rows
        ]
