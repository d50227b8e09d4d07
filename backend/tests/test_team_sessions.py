import asyncio
from datetime import date, time

import pytest
from sqlmodel import select

from kickoff.database import async_session_factory
from kickoff.enums import BookingType, RequestStatus, RequestType, SessionStatus, TeamDesignation
from kickoff.errors import (
    AlreadyMember,
    Conflict,
    Forbidden,
    Full,
    InsufficientPlayers,
    Internal,
    InvalidRequest,
    NotFound,
)
from kickoff.models import AvailabilitySlot, MatchmakingRequest, Reservation, TeamMember, TeamSession
from kickoff.schemas.team_session import SessionInitiate
from kickoff.services.slot_service import SlotReservationService
from kickoff.services.team_session_service import TeamSessionService, players_needed_for

SLOT_DATE = date(2025, 2, 15)


async def _open(creator, field, booking_type, **times):
    payload = SessionInitiate(field_id=field.id, slot_date=SLOT_DATE, booking_type=booking_type, **times)
    async with async_session_factory() as own_session:
        return await TeamSessionService(own_session).initiate(creator_id=creator.id, payload=payload)


async def _two_teams_session(session, make_user, field, team_a=6, team_b=6):
    creator = await make_user("Captain")
    team_session = await _open(
        creator,
        field,
        BookingType.TWO_TEAMS_READY,
        start_time=time(18, 0),
        end_time=time(19, 0),
    )
    service = TeamSessionService(session)
    for index in range(team_a - 1):
        player = await make_user(f"A{index}")
        await service.join(invitation_code=team_session.invitation_code, user_id=player.id, team_designation=TeamDesignation.A)
    for index in range(team_b):
        player = await make_user(f"B{index}")
        await service.join(invitation_code=team_session.invitation_code, user_id=player.id, team_designation=TeamDesignation.B)
    return creator, team_session


async def _stored_session(session_id):
    async with async_session_factory() as check:
        return await check.get(TeamSession, session_id)


async def test_initiate_two_teams_requires_times(session, make_user, make_field):
    creator = await make_user()
    field = await make_field()
    with pytest.raises(InvalidRequest):
        await _open(creator, field, BookingType.TWO_TEAMS_READY)


async def test_initiate_unknown_field_is_not_found(session, make_user):
    creator = await make_user()
    payload = SessionInitiate(field_id="missing", slot_date=SLOT_DATE, booking_type=BookingType.TEAM_VS_TEAM)
    with pytest.raises(NotFound):
        await TeamSessionService(session).initiate(creator_id=creator.id, payload=payload)


async def test_initiate_on_reserved_slot_conflicts(session, make_user, make_field, make_slot):
    creator = await make_user()
    other = await make_user()
    field = await make_field()
    slot = await make_slot(field)
    await SlotReservationService(session).reserve_direct(user_id=other.id, slot_id=slot.id)

    with pytest.raises(Conflict):
        await _open(
            creator,
            field,
            BookingType.TWO_TEAMS_READY,
            start_time=time(18, 0),
            end_time=time(19, 0),
        )


async def test_initiate_adds_creator_with_designation(session, make_user, make_field, make_slot):
    creator = await make_user("Creator")
    field = await make_field()
    await make_slot(field)

    timed = await _open(
        creator,
        field,
        BookingType.TWO_TEAMS_READY,
        start_time=time(18, 0),
        end_time=time(19, 0),
    )
    untimed = await _open(
        creator,
        field,
        BookingType.TEAM_LOOKING_FOR_PLAYERS,
        start_time=time(18, 0),
        end_time=time(19, 0),
    )

    assert timed.invitation_code != untimed.invitation_code
    assert untimed.start_time is None and untimed.end_time is None

    timed_details = await TeamSessionService(session).details(timed.invitation_code)
    assert [(m.player_name, m.team_designation) for m in timed_details.members] == [("Creator", TeamDesignation.A)]
    untimed_details = await TeamSessionService(session).details(untimed.invitation_code)
    assert untimed_details.members[0].team_designation == TeamDesignation.SINGLE
    assert untimed_details.field.name == field.name


async def test_join_twice_is_already_member(session, make_user, make_field):
    creator = await make_user()
    player = await make_user()
    team_session = await _open(creator, await make_field(), BookingType.TEAM_VS_TEAM)
    service = TeamSessionService(session)

    await service.join(invitation_code=team_session.invitation_code, user_id=player.id, team_designation=TeamDesignation.SINGLE)
    with pytest.raises(AlreadyMember):
        await service.join(
            invitation_code=team_session.invitation_code,
            user_id=player.id,
            team_designation=TeamDesignation.SINGLE,
        )
    assert issubclass(AlreadyMember, Conflict)


async def test_join_unknown_code_is_not_found(session, make_user):
    player = await make_user()
    with pytest.raises(NotFound):
        await TeamSessionService(session).join(
            invitation_code="nope",
            user_id=player.id,
            team_designation=TeamDesignation.SINGLE,
        )


async def test_join_rejects_wrong_designation(session, make_user, make_field, make_slot):
    field = await make_field()
    await make_slot(field)
    creator = await make_user()
    player = await make_user()
    timed = await _open(creator, field, BookingType.TWO_TEAMS_READY, start_time=time(18, 0), end_time=time(19, 0))
    untimed = await _open(creator, field, BookingType.TEAM_VS_TEAM)
    service = TeamSessionService(session)

    with pytest.raises(InvalidRequest):
        await service.join(invitation_code=timed.invitation_code, user_id=player.id, team_designation=TeamDesignation.SINGLE)
    with pytest.raises(InvalidRequest):
        await service.join(invitation_code=untimed.invitation_code, user_id=player.id, team_designation=TeamDesignation.B)


async def test_team_looking_for_players_caps_at_five_singles(session, make_user, make_field):
    creator = await make_user("Creator")
    team_session = await _open(creator, await make_field(), BookingType.TEAM_LOOKING_FOR_PLAYERS)
    service = TeamSessionService(session)

    # The creator is the first single member; four more fill the squad.
    for index in range(4):
        player = await make_user(f"P{index}")
        await service.join(
            invitation_code=team_session.invitation_code,
            user_id=player.id,
            team_designation=TeamDesignation.SINGLE,
        )

    sixth = await make_user("Sixth")
    with pytest.raises(Full):
        await service.join(
            invitation_code=team_session.invitation_code,
            user_id=sixth.id,
            team_designation=TeamDesignation.SINGLE,
        )
    details = await service.details(team_session.invitation_code)
    assert len(details.members) == 5


async def test_concurrent_joins_never_exceed_five_singles(session, make_user, make_field):
    creator = await make_user("Creator")
    team_session = await _open(creator, await make_field(), BookingType.TEAM_LOOKING_FOR_PLAYERS)
    service = TeamSessionService(session)
    for index in range(3):
        player = await make_user(f"P{index}")
        await service.join(
            invitation_code=team_session.invitation_code,
            user_id=player.id,
            team_designation=TeamDesignation.SINGLE,
        )
    latecomers = [await make_user(f"Late{index}") for index in range(4)]

    async def attempt(user):
        async with async_session_factory() as own_session:
            return await TeamSessionService(own_session).join(
                invitation_code=team_session.invitation_code,
                user_id=user.id,
                team_designation=TeamDesignation.SINGLE,
            )

    results = await asyncio.gather(*(attempt(user) for user in latecomers), return_exceptions=True)

    assert len([result for result in results if isinstance(result, TeamMember)]) == 1
    assert len([result for result in results if isinstance(result, Full)]) == 3
    async with async_session_factory() as check:
        members = (
            await check.execute(select(TeamMember).where(TeamMember.session_id == team_session.id))
        ).scalars().all()
    assert len(members) == 5


async def test_concurrent_matchmaking_submits_complete_once(make_user, make_field):
    creator = await make_user("Creator")
    team_session = await _open(creator, await make_field(), BookingType.TEAM_LOOKING_FOR_PLAYERS)

    async def attempt():
        async with async_session_factory() as own_session:
            return await TeamSessionService(own_session).submit_matchmaking(
                invitation_code=team_session.invitation_code,
                acting_user_id=creator.id,
                current_players=3,
            )

    results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

    assert len([result for result in results if isinstance(result, MatchmakingRequest)]) == 1
    assert len([result for result in results if isinstance(result, NotFound)]) == 1
    async with async_session_factory() as check:
        assert len((await check.execute(select(MatchmakingRequest))).scalars().all()) == 1
    assert (await _stored_session(team_session.id)).status == SessionStatus.COMPLETED


async def test_cancel_racing_submit_leaves_one_outcome(make_user, make_field):
    creator = await make_user("Creator")
    team_session = await _open(creator, await make_field(), BookingType.TEAM_LOOKING_FOR_PLAYERS)

    async def submit():
        async with async_session_factory() as own_session:
            return await TeamSessionService(own_session).submit_matchmaking(
                invitation_code=team_session.invitation_code,
                acting_user_id=creator.id,
                current_players=3,
            )

    async def cancel():
        async with async_session_factory() as own_session:
            return await TeamSessionService(own_session).cancel(
                invitation_code=team_session.invitation_code,
                acting_user_id=creator.id,
            )

    results = await asyncio.gather(submit(), cancel(), return_exceptions=True)

    assert len([result for result in results if isinstance(result, NotFound)]) == 1
    async with async_session_factory() as check:
        requests = (await check.execute(select(MatchmakingRequest))).scalars().all()
    stored = await _stored_session(team_session.id)
    if isinstance(results[0], MatchmakingRequest):
        assert stored.status == SessionStatus.COMPLETED
        assert len(requests) == 1
    else:
        assert stored.status == SessionStatus.CANCELLED
        assert requests == []


async def test_remove_player_rules(session, make_user, make_field):
    creator = await make_user()
    player = await make_user()
    outsider = await make_user()
    team_session = await _open(creator, await make_field(), BookingType.TEAM_VS_TEAM)
    service = TeamSessionService(session)
    code = team_session.invitation_code
    await service.join(invitation_code=code, user_id=player.id, team_designation=TeamDesignation.SINGLE)

    with pytest.raises(Forbidden):
        await service.remove_player(invitation_code=code, acting_user_id=player.id, target_user_id=creator.id)
    with pytest.raises(InvalidRequest):
        await service.remove_player(invitation_code=code, acting_user_id=creator.id, target_user_id=creator.id)
    with pytest.raises(NotFound):
        await service.remove_player(invitation_code=code, acting_user_id=creator.id, target_user_id=outsider.id)

    await service.remove_player(invitation_code=code, acting_user_id=creator.id, target_user_id=player.id)
    details = await service.details(code)
    assert [m.user_id for m in details.members] == [creator.id]


async def test_confirm_booking_needs_six_per_side(session, make_user, make_field, make_slot):
    field = await make_field()
    slot = await make_slot(field)
    creator, team_session = await _two_teams_session(session, make_user, field, team_a=5, team_b=6)

    with pytest.raises(InsufficientPlayers):
        await TeamSessionService(session).confirm_booking(
            invitation_code=team_session.invitation_code,
            acting_user_id=creator.id,
        )

    assert (await _stored_session(team_session.id)).status == SessionStatus.ACTIVE
    async with async_session_factory() as check:
        assert not (await check.get(AvailabilitySlot, slot.id)).is_reserved


async def test_confirm_booking_with_full_sides_reserves_slot(session, make_user, make_field, make_slot):
    field = await make_field()
    slot = await make_slot(field)
    creator, team_session = await _two_teams_session(session, make_user, field)

    reservation = await TeamSessionService(session).confirm_booking(
        invitation_code=team_session.invitation_code,
        acting_user_id=creator.id,
    )

    assert reservation.session_id == team_session.id
    assert reservation.user_id == creator.id
    assert (await _stored_session(team_session.id)).status == SessionStatus.COMPLETED
    async with async_session_factory() as check:
        stored_slot = await check.get(AvailabilitySlot, slot.id)
        assert stored_slot.is_reserved
        assert stored_slot.holder_user_id == creator.id


async def test_confirm_booking_only_by_creator(session, make_user, make_field, make_slot):
    field = await make_field()
    await make_slot(field)
    _, team_session = await _two_teams_session(session, make_user, field)
    stranger = await make_user()

    with pytest.raises(Forbidden):
        await TeamSessionService(session).confirm_booking(
            invitation_code=team_session.invitation_code,
            acting_user_id=stranger.id,
        )


async def test_confirm_booking_on_taken_slot_keeps_session_active(session, make_user, make_field, make_slot):
    field = await make_field()
    slot = await make_slot(field)
    creator, team_session = await _two_teams_session(session, make_user, field)
    rival = await make_user("Rival")
    await SlotReservationService(session).reserve_direct(user_id=rival.id, slot_id=slot.id)

    with pytest.raises(Conflict):
        await TeamSessionService(session).confirm_booking(
            invitation_code=team_session.invitation_code,
            acting_user_id=creator.id,
        )

    assert (await _stored_session(team_session.id)).status == SessionStatus.ACTIVE
    async with async_session_factory() as check:
        reservations = (await check.execute(select(Reservation))).scalars().all()
    assert [r.user_id for r in reservations] == [rival.id]


async def test_failure_while_completing_rolls_back_everything(session, make_user, make_field, make_slot, monkeypatch):
    field = await make_field()
    slot = await make_slot(field)
    creator, team_session = await _two_teams_session(session, make_user, field)

    async def failing_complete(self, team_session):
        await self.session.flush()
        raise Internal("forced failure")

    monkeypatch.setattr(TeamSessionService, "_complete", failing_complete)

    with pytest.raises(Internal):
        await TeamSessionService(session).confirm_booking(
            invitation_code=team_session.invitation_code,
            acting_user_id=creator.id,
        )

    assert (await _stored_session(team_session.id)).status == SessionStatus.ACTIVE
    async with async_session_factory() as check:
        assert (await check.execute(select(Reservation))).scalars().all() == []
        stored_slot = await check.get(AvailabilitySlot, slot.id)
        assert not stored_slot.is_reserved
        assert stored_slot.holder_user_id is None


async def test_failed_matchmaking_submit_leaves_no_request(session, make_user, make_field, monkeypatch):
    creator = await make_user()
    team_session = await _open(creator, await make_field(), BookingType.TEAM_VS_TEAM)

    async def failing_complete(self, team_session):
        await self.session.flush()
        raise Internal("forced failure")

    monkeypatch.setattr(TeamSessionService, "_complete", failing_complete)

    with pytest.raises(Internal):
        await TeamSessionService(session).submit_matchmaking(
            invitation_code=team_session.invitation_code,
            acting_user_id=creator.id,
            current_players=6,
        )

    assert (await _stored_session(team_session.id)).status == SessionStatus.ACTIVE
    async with async_session_factory() as check:
        assert (await check.execute(select(MatchmakingRequest))).scalars().all() == []


async def test_submit_three_players_needs_two_more(session, make_user, make_field):
    creator = await make_user()
    field = await make_field()
    team_session = await _open(creator, field, BookingType.TEAM_LOOKING_FOR_PLAYERS)
    service = TeamSessionService(session)
    for index in range(2):
        player = await make_user(f"P{index}")
        await service.join(
            invitation_code=team_session.invitation_code,
            user_id=player.id,
            team_designation=TeamDesignation.SINGLE,
        )

    request = await service.submit_matchmaking(
        invitation_code=team_session.invitation_code,
        acting_user_id=creator.id,
        current_players=3,
    )

    assert request.players_needed == 2
    assert request.request_type == RequestType.TEAM_LOOKING_FOR_PLAYERS
    assert request.status == RequestStatus.PENDING
    assert request.start_time is None and request.end_time is None
    assert request.slot_date == SLOT_DATE
    assert request.field_id == field.id
    assert (await _stored_session(team_session.id)).status == SessionStatus.COMPLETED

    # A completed session accepts no further actions.
    late = await make_user()
    with pytest.raises(NotFound):
        await service.join(
            invitation_code=team_session.invitation_code,
            user_id=late.id,
            team_designation=TeamDesignation.SINGLE,
        )


async def test_submit_below_minimum_is_insufficient(session, make_user, make_field):
    creator = await make_user()
    team_session = await _open(creator, await make_field(), BookingType.TEAM_VS_TEAM)

    with pytest.raises(InsufficientPlayers):
        await TeamSessionService(session).submit_matchmaking(
            invitation_code=team_session.invitation_code,
            acting_user_id=creator.id,
            current_players=5,
        )
    assert (await _stored_session(team_session.id)).status == SessionStatus.ACTIVE


async def test_two_teams_ready_cannot_enter_matchmaking(session, make_user, make_field, make_slot):
    field = await make_field()
    await make_slot(field)
    creator = await make_user()
    team_session = await _open(creator, field, BookingType.TWO_TEAMS_READY, start_time=time(18, 0), end_time=time(19, 0))

    with pytest.raises(InvalidRequest):
        await TeamSessionService(session).submit_matchmaking(
            invitation_code=team_session.invitation_code,
            acting_user_id=creator.id,
            current_players=12,
        )


async def test_cancel_closes_session(session, make_user, make_field):
    creator = await make_user()
    player = await make_user()
    team_session = await _open(creator, await make_field(), BookingType.TEAM_VS_TEAM)
    service = TeamSessionService(session)

    with pytest.raises(Forbidden):
        await service.cancel(invitation_code=team_session.invitation_code, acting_user_id=player.id)
    await service.cancel(invitation_code=team_session.invitation_code, acting_user_id=creator.id)

    assert (await _stored_session(team_session.id)).status == SessionStatus.CANCELLED
    with pytest.raises(NotFound):
        await service.details(team_session.invitation_code)


@pytest.mark.parametrize(
    ("booking_type", "current", "expected"),
    [
        (BookingType.TEAM_VS_TEAM, 6, 6),
        (BookingType.TEAM_VS_TEAM, 12, 0),
        (BookingType.TEAM_LOOKING_FOR_PLAYERS, 3, 2),
        (BookingType.TEAM_LOOKING_FOR_PLAYERS, 7, 0),
    ],
)
def test_players_needed_for(booking_type, current, expected):
    assert players_needed_for(booking_type, current) == expected
