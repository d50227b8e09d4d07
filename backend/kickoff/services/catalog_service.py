import base64
import binascii
import logging
from typing import Sequence

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..database import atomic, lock_one
from ..errors import Conflict, InvalidRequest, NotFound
from ..models import FootballField, Tournament
from ..schemas.field import FieldCreate
from ..schemas.tournament import TournamentCreate, TournamentPublic

logger = logging.getLogger(__name__)


def decode_image(value: str | None) -> bytes | None:
    """Decode a base64 image, accepting ``data:<mime>;base64,`` prefixes."""
    if not value:
        return None
    payload = value.split(",", 1)[1] if value.startswith("data:") else value
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequest("Image must be base64 encoded.") from exc


class CatalogService:
    """Fields and tournaments as managed by administrators."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_fields(self) -> Sequence[FootballField]:
        result = await self.session.execute(select(FootballField).order_by(FootballField.name))
        return result.scalars().all()

    async def get_field(self, field_id: str) -> FootballField:
        field = await self.session.get(FootballField, field_id)
        if field is None:
            raise NotFound("Field not found.")
        return field

    async def create_field(self, payload: FieldCreate) -> FootballField:
        image = decode_image(payload.image)
        async with atomic(self.session):
            field = FootballField(
                name=payload.name,
                description=payload.description,
                location=payload.location,
                price_per_hour=payload.price_per_hour,
                image=image,
            )
            self.session.add(field)
        logger.info("Field %s (%s) created", field.id, field.name)
        return field

    async def update_field(self, field_id: str, payload: FieldCreate) -> FootballField:
        image = decode_image(payload.image)
        async with atomic(self.session):
            field = await lock_one(self.session, select(FootballField).where(FootballField.id == field_id))
            if field is None:
                raise NotFound("Field not found.")
            field.name = payload.name
            field.description = payload.description
            field.location = payload.location
            field.price_per_hour = payload.price_per_hour
            # Omitting the image keeps the stored one.
            if image is not None:
                field.image = image
            self.session.add(field)
        return field

    async def delete_field(self, field_id: str) -> None:
        async with atomic(self.session):
            field = await lock_one(self.session, select(FootballField).where(FootballField.id == field_id))
            if field is None:
                raise NotFound("Field not found.")
            statement = select(func.count(Tournament.id)).where(Tournament.field_id == field_id)
            if (await self.session.execute(statement)).scalar():
                raise Conflict("Field is used by a tournament and cannot be deleted.")
            await self.session.delete(field)
        logger.info("Field %s deleted", field_id)

    async def list_tournaments(self) -> list[TournamentPublic]:
        statement = (
            select(Tournament, FootballField.name)
            .join(FootballField, FootballField.id == Tournament.field_id)
            .order_by(Tournament.tournament_date, Tournament.created_at)
        )
        return [
            self._tournament_payload(tournament, field_name)
            for tournament, field_name in (await self.session.execute(statement)).all()
        ]

    async def get_tournament(self, tournament_id: str) -> TournamentPublic:
        statement = (
            select(Tournament, FootballField.name)
            .join(FootballField, FootballField.id == Tournament.field_id)
            .where(Tournament.id == tournament_id)
        )
        row = (await self.session.execute(statement)).first()
        if row is None:
            raise NotFound("Tournament not found.")
        return self._tournament_payload(*row)

    async def create_tournament(self, payload: TournamentCreate) -> TournamentPublic:
        image = decode_image(payload.image)
        async with atomic(self.session):
            field = await self.session.get(FootballField, payload.field_id)
            if field is None:
                raise NotFound("Field not found.")
            tournament = Tournament(
                name=payload.name,
                field_id=payload.field_id,
                tournament_date=payload.tournament_date,
                prize=payload.prize,
                description=payload.description,
                image=image,
            )
            self.session.add(tournament)
        logger.info("Tournament %s created on field %s", tournament.id, field.id)
        return self._tournament_payload(tournament, field.name)

    async def delete_tournament(self, tournament_id: str) -> None:
        async with atomic(self.session):
            tournament = await lock_one(self.session, select(Tournament).where(Tournament.id == tournament_id))
            if tournament is None:
                raise NotFound("Tournament not found.")
            await self.session.delete(tournament)
        logger.info("Tournament %s deleted", tournament_id)

    @staticmethod
    def _tournament_payload(tournament: Tournament, field_name: str) -> TournamentPublic:
        payload = TournamentPublic.model_validate(tournament)
        payload.field_name = field_name
        return payload
