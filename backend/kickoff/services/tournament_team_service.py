import logging
import secrets
from typing import Optional

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..database import atomic, lock_for_write, lock_one
from ..enums import TournamentTeamStatus
from ..errors import (
    AlreadyMember,
    Conflict,
    Forbidden,
    Full,
    InsufficientPlayers,
    InvalidRequest,
    NotFound,
)
from ..models import FootballField, Tournament, TournamentTeam, TournamentTeamMember, User
from ..schemas.tournament import (
    TeamDetails,
    TeamListEntry,
    TournamentPublic,
    TournamentTeamMemberPublic,
    TournamentTeamPublic,
    TournamentTeamsResponse,
)

logger = logging.getLogger(__name__)

MAX_TEAM_SIZE = 8
MIN_TEAM_SIZE = 6


class TournamentTeamService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _generate_code(self) -> str:
        return secrets.token_hex(16)

    async def create(
        self,
        *,
        tournament_id: str,
        team_name: str,
        captain_id: str,
        captain_name: str,
    ) -> tuple[TournamentTeam, bool]:
        """Create a forming team with its captain as first member.

        A captain owns at most one team per tournament: when one exists it is
        returned unchanged and the second element of the result is ``False``.
        """
        try:
            async with atomic(self.session):
                tournament = await self.session.get(Tournament, tournament_id)
                if tournament is None:
                    raise NotFound("Tournament not found.")

                existing = await self._captain_team(tournament_id, captain_id)
                if existing is not None:
                    return existing, False

                team = TournamentTeam(
                    tournament_id=tournament_id,
                    team_name=team_name,
                    captain_id=captain_id,
                    invitation_code=self._generate_code(),
                )
                self.session.add(team)
                await self.session.flush()
                self.session.add(
                    TournamentTeamMember(
                        team_id=team.id,
                        user_id=captain_id,
                        user_name=captain_name,
                        is_captain=True,
                    )
                )
        except Conflict:
            # A concurrent create by the same captain won the unique constraint.
            existing = await self._captain_team(tournament_id, captain_id)
            if existing is None:
                raise
            return existing, False

        logger.info("Tournament team %s created for tournament %s by %s", team.id, tournament_id, captain_id)
        return team, True

    async def join(self, *, invitation_code: str, user_id: str, user_name: str) -> TournamentTeamMember:
        async with atomic(self.session):
            team = await self._lock_by_code(invitation_code)
            if team.status != TournamentTeamStatus.FORMING:
                raise Conflict("Team is no longer accepting members.")

            existing_stmt = select(TournamentTeamMember.id).where(
                TournamentTeamMember.team_id == team.id,
                TournamentTeamMember.user_id == user_id,
            )
            if (await self.session.execute(existing_stmt)).scalar_one_or_none():
                raise AlreadyMember("User already in team.")

            if await self._member_count(team.id) >= MAX_TEAM_SIZE:
                raise Full(f"Team is full (max {MAX_TEAM_SIZE} players).")

            member = TournamentTeamMember(team_id=team.id, user_id=user_id, user_name=user_name)
            self.session.add(member)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise AlreadyMember("User already in team.") from exc

        return member

    async def remove_player(self, *, invitation_code: str, acting_user_id: str, target_user_id: str) -> None:
        async with atomic(self.session):
            team = await self._lock_by_code(invitation_code)
            if team.captain_id != acting_user_id:
                raise Forbidden("Only the captain can remove players.")
            if target_user_id == team.captain_id:
                raise InvalidRequest("The captain cannot be removed.")
            if team.status != TournamentTeamStatus.FORMING:
                raise Conflict("The roster of a registered team is locked.")

            result = await self.session.execute(
                delete(TournamentTeamMember).where(
                    TournamentTeamMember.team_id == team.id,
                    TournamentTeamMember.user_id == target_user_id,
                    TournamentTeamMember.is_captain.is_(False),
                )
            )
            if result.rowcount == 0:
                raise NotFound("Player not found in this team.")

    async def confirm_registration(
        self,
        *,
        invitation_code: str,
        tournament_id: str,
        captain_id: str,
    ) -> TournamentTeam:
        async with atomic(self.session):
            try:
                team = await self._lock_by_code(invitation_code, TournamentTeam.tournament_id == tournament_id)
            except NotFound as exc:
                raise NotFound("Team not found for this tournament.") from exc
            if team.captain_id != captain_id:
                raise Forbidden("Only the captain can confirm the registration.")
            if team.status == TournamentTeamStatus.REGISTERED:
                raise Conflict("Team is already registered.")

            member_count = await self._member_count(team.id)
            if member_count < MIN_TEAM_SIZE:
                raise InsufficientPlayers(
                    f"Team needs at least {MIN_TEAM_SIZE} members to register (has {member_count})."
                )

            team.status = TournamentTeamStatus.REGISTERED
            self.session.add(team)

        logger.info("Tournament team %s registered for tournament %s", team.id, tournament_id)
        return team

    async def details(self, invitation_code: str) -> TeamDetails:
        statement = (
            select(TournamentTeam, Tournament, FootballField.name)
            .join(Tournament, Tournament.id == TournamentTeam.tournament_id)
            .join(FootballField, FootballField.id == Tournament.field_id)
            .where(TournamentTeam.invitation_code == invitation_code)
        )
        row = (await self.session.execute(statement)).first()
        if row is None:
            raise NotFound("Invalid invitation code.")
        team, tournament, field_name = row

        members_stmt = (
            select(TournamentTeamMember)
            .where(TournamentTeamMember.team_id == team.id)
            .order_by(TournamentTeamMember.is_captain.desc(), TournamentTeamMember.joined_at)
        )
        members = (await self.session.execute(members_stmt)).scalars().all()

        tournament_payload = TournamentPublic.model_validate(tournament)
        tournament_payload.field_name = field_name
        return TeamDetails(
            team=TournamentTeamPublic.model_validate(team),
            tournament=tournament_payload,
            players=[TournamentTeamMemberPublic.model_validate(member) for member in members],
        )

    async def list_teams(self, tournament_id: str) -> TournamentTeamsResponse:
        tournament = await self.session.get(Tournament, tournament_id)
        if tournament is None:
            raise NotFound("Tournament not found.")

        member_counts = (
            select(TournamentTeamMember.team_id, func.count(TournamentTeamMember.id).label("member_count"))
            .group_by(TournamentTeamMember.team_id)
            .subquery()
        )
        statement = (
            select(TournamentTeam, User.name, func.coalesce(member_counts.c.member_count, 0))
            .join(User, User.id == TournamentTeam.captain_id)
            .outerjoin(member_counts, member_counts.c.team_id == TournamentTeam.id)
            .where(TournamentTeam.tournament_id == tournament_id)
            .order_by(TournamentTeam.registration_date)
        )
        teams = [
            TeamListEntry(
                team_name=team.team_name,
                captain_name=captain_name,
                registration_date=team.registration_date,
                status=team.status,
                invitation_code=team.invitation_code,
                member_count=member_count,
            )
            for team, captain_name, member_count in (await self.session.execute(statement)).all()
        ]
        return TournamentTeamsResponse(tournament=TournamentPublic.model_validate(tournament), teams=teams)

    async def _lock_by_code(self, invitation_code: str, *criteria) -> TournamentTeam:
        """Lock a team before its roster or status is read.

        Member counts and status checks made afterwards hold until commit, so
        concurrent joins cannot push a roster past ``MAX_TEAM_SIZE``.
        """
        match = (TournamentTeam.invitation_code == invitation_code, *criteria)
        team = None
        if await lock_for_write(self.session, TournamentTeam, *match):
            team = await lock_one(self.session, select(TournamentTeam).where(*match))
        if team is None:
            raise NotFound("Invalid invitation code.")
        return team

    async def _captain_team(self, tournament_id: str, captain_id: str) -> Optional[TournamentTeam]:
        statement = select(TournamentTeam).where(
            TournamentTeam.tournament_id == tournament_id,
            TournamentTeam.captain_id == captain_id,
        )
        return (await self.session.execute(statement)).scalar_one_or_none()

    async def _member_count(self, team_id: str) -> int:
        statement = select(func.count(TournamentTeamMember.id)).where(TournamentTeamMember.team_id == team_id)
        return (await self.session.execute(statement)).scalar() or 0
