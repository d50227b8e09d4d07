from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..schemas.tournament import TournamentPublic, TournamentTeamsResponse
from ..services.catalog_service import CatalogService
from ..services.tournament_team_service import TournamentTeamService

router = APIRouter(prefix="/tournaments", tags=["tournaments"])


@router.get("", response_model=list[TournamentPublic])
async def list_tournaments(session: AsyncSession = Depends(get_session)):
    return await CatalogService(session).list_tournaments()


@router.get("/{tournament_id}", response_model=TournamentPublic)
async def get_tournament(tournament_id: str, session: AsyncSession = Depends(get_session)):
    return await CatalogService(session).get_tournament(tournament_id)


@router.get("/{tournament_id}/teams", response_model=TournamentTeamsResponse)
async def list_tournament_teams(tournament_id: str, session: AsyncSession = Depends(get_session)):
    return await TournamentTeamService(session).list_teams(tournament_id)
