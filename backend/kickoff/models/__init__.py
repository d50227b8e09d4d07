from .user import User
from .field import FootballField, AvailabilitySlot
from .reservation import Reservation
from .team_session import TeamSession, TeamMember
from .matchmaking import MatchmakingRequest
from .tournament import Tournament, TournamentTeam, TournamentTeamMember

__all__ = [
    "User",
    "FootballField",
    "AvailabilitySlot",
    "Reservation",
    "TeamSession",
    "TeamMember",
    "MatchmakingRequest",
    "Tournament",
    "TournamentTeam",
    "TournamentTeamMember",
]
