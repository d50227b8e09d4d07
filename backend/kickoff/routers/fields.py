from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..schemas.field import FieldPublic, SlotPublic
from ..services.catalog_service import CatalogService
from ..services.slot_service import SlotReservationService

router = APIRouter(prefix="/fields", tags=["fields"])


@router.get("", response_model=list[FieldPublic])
async def list_fields(session: AsyncSession = Depends(get_session)):
    fields = await CatalogService(session).list_fields()
    return [FieldPublic.model_validate(field) for field in fields]


@router.get("/{field_id}", response_model=FieldPublic)
async def get_field(field_id: str, session: AsyncSession = Depends(get_session)):
    field = await CatalogService(session).get_field(field_id)
    return FieldPublic.model_validate(field)


@router.get("/{field_id}/availability", response_model=list[SlotPublic])
async def list_free_slots(
    field_id: str,
    slot_date: date = Query(alias="date"),
    session: AsyncSession = Depends(get_session),
):
    await CatalogService(session).get_field(field_id)
    slots = await SlotReservationService(session).list_free_slots(field_id=field_id, slot_date=slot_date)
    return [SlotPublic.model_validate(slot) for slot in slots]
