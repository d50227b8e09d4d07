from .auth import RegisterRequest, LoginRequest, Token
from .user import UserPublic
from .common import MessageResponse
from .field import (
    FieldCreate,
    FieldPublic,
    SlotWindow,
    SlotBatchCreate,
    SlotUpdate,
    SlotPublic,
    AdminSlotPublic,
)
from .reservation import ReserveRequest, ReservationPublic, ReservationSummary, ReserveResponse
from .team_session import (
    SessionInitiate,
    SessionJoin,
    SessionCodeRequest,
    RemovePlayerRequest,
    SubmitMatchmakingRequest,
    InitiateResponse,
    SessionDetails,
)
from .matchmaking import (
    DirectMatchmakingCreate,
    MatchmakingRequestPublic,
    MatchSuggestion,
    CategorizedMatchmaking,
)
from .tournament import (
    TournamentCreate,
    TournamentPublic,
    TeamCreateRequest,
    TeamJoinRequest,
    TeamRemovePlayerRequest,
    TeamConfirmRequest,
    TeamDetails,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "Token",
    "UserPublic",
    "MessageResponse",
    "FieldCreate",
    "FieldPublic",
    "SlotWindow",
    "SlotBatchCreate",
    "SlotUpdate",
    "SlotPublic",
    "AdminSlotPublic",
    "ReserveRequest",
    "ReservationPublic",
    "ReservationSummary",
    "ReserveResponse",
    "SessionInitiate",
    "SessionJoin",
    "SessionCodeRequest",
    "RemovePlayerRequest",
    "SubmitMatchmakingRequest",
    "InitiateResponse",
    "SessionDetails",
    "DirectMatchmakingCreate",
    "MatchmakingRequestPublic",
    "MatchSuggestion",
    "CategorizedMatchmaking",
    "TournamentCreate",
    "TournamentPublic",
    "TeamCreateRequest",
    "TeamJoinRequest",
    "TeamRemovePlayerRequest",
    "TeamConfirmRequest",
    "TeamDetails",
]
