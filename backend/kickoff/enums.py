from enum import Enum


class ReservationType(str, Enum):
    FULL_FIELD = "full_field"
    TWO_TEAMS_READY = "two_teams_ready"
    TEAM_VS_TEAM = "team_vs_team"
    TEAM_LOOKING_FOR_PLAYERS = "team_looking_for_players"
    PLAYERS_LOOKING_FOR_TEAM = "players_looking_for_team"


class BookingType(str, Enum):
    TWO_TEAMS_READY = "two_teams_ready"
    TEAM_VS_TEAM = "team_vs_team"
    TEAM_LOOKING_FOR_PLAYERS = "team_looking_for_players"
    PLAYERS_LOOKING_FOR_TEAM = "players_looking_for_team"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TeamDesignation(str, Enum):
    A = "A"
    B = "B"
    SINGLE = "single"


class RequestType(str, Enum):
    TEAM_VS_TEAM = "team_vs_team"
    TEAM_LOOKING_FOR_PLAYERS = "team_looking_for_players"
    PLAYERS_LOOKING_FOR_TEAM = "players_looking_for_team"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TournamentTeamStatus(str, Enum):
    FORMING = "forming"
    REGISTERED = "registered"
