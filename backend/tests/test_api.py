from datetime import time

from kickoff.config import get_settings
from kickoff.security import create_access_token

API = get_settings().api_prefix


async def test_healthcheck(async_client):
    response = await async_client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_register_then_login(async_client):
    payload = {"name": "Dana", "email": "Dana@Example.com", "password": "secret123", "phone_number": "0101234567"}
    registered = await async_client.post(f"{API}/auth/register", json=payload)
    assert registered.status_code == 201
    assert registered.json()["user"]["email"] == "dana@example.com"

    duplicate = await async_client.post(f"{API}/auth/register", json=payload)
    assert duplicate.status_code == 409
    assert "error" in duplicate.json()

    login = await async_client.post(f"{API}/auth/login", json={"email": "dana@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = await async_client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["name"] == "Dana"


async def test_login_with_wrong_password_is_unauthorized(async_client, make_user):
    user = await make_user(email="sam@example.com")
    response = await async_client.post(f"{API}/auth/login", json={"email": user.email, "password": "wrong-pass"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password."}


async def test_missing_token_is_unauthorized(async_client):
    response = await async_client.post(f"{API}/reservations", json={"slot_id": "anything"})
    assert response.status_code == 401
    assert set(response.json()) == {"error"}


async def test_invalid_token_is_unauthorized(async_client):
    response = await async_client.get(f"{API}/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_token_accepted_from_query_and_body(async_client, make_user):
    user = await make_user("Query")
    token, _ = create_access_token(user.id)

    by_query = await async_client.get(f"{API}/users/me", params={"token": token})
    assert by_query.status_code == 200
    assert by_query.json()["id"] == user.id

    by_body = await async_client.post(f"{API}/reservations", json={"slot_id": "missing", "token": token})
    assert by_body.status_code == 404


async def test_validation_errors_use_error_body(async_client, make_user, auth_headers):
    user = await make_user()
    response = await async_client.post(f"{API}/reservations", json={}, headers=auth_headers(user))
    assert response.status_code == 400
    assert "slot_id" in response.json()["error"]


async def test_admin_routes_require_admin(async_client, make_user, auth_headers):
    player = await make_user()
    admin = await make_user(is_admin=True)

    forbidden = await async_client.get(f"{API}/admin/analytics", headers=auth_headers(player))
    assert forbidden.status_code == 403
    assert "error" in forbidden.json()

    anonymous = await async_client.get(f"{API}/admin/analytics")
    assert anonymous.status_code == 401

    allowed = await async_client.get(f"{API}/admin/analytics", headers=auth_headers(admin))
    assert allowed.status_code == 200


async def test_reserve_same_slot_twice(async_client, make_user, make_field, make_slot, auth_headers):
    first = await make_user("A")
    second = await make_user("B")
    field = await make_field()
    slot = await make_slot(field, start=time(18, 0), end=time(19, 0))

    booked = await async_client.post(f"{API}/reservations", json={"slot_id": slot.id}, headers=auth_headers(first))
    assert booked.status_code == 201
    assert booked.json()["reservation"]["booking_type"] == "full_field"

    taken = await async_client.post(f"{API}/reservations", json={"slot_id": slot.id}, headers=auth_headers(second))
    assert taken.status_code == 409
    assert taken.json() == {"error": "Failed to reserve the slot. It may already be taken."}

    free = await async_client.get(f"{API}/fields/{field.id}/availability", params={"date": "2025-02-15"})
    assert free.status_code == 200
    assert free.json() == []

    mine = await async_client.get(f"{API}/users/me/reservations", headers=auth_headers(first))
    assert [r["start_time"] for r in mine.json()] == ["18:00:00"]


async def test_admin_schedule_and_release_flow(async_client, make_user, auth_headers):
    admin = await make_user("Admin", is_admin=True)
    player = await make_user("Player")
    headers = auth_headers(admin)

    created = await async_client.post(
        f"{API}/admin/fields",
        json={"name": "River Pitch", "location": "Harbor", "price_per_hour": 250, "image": "data:image/png;base64,aGVsbG8="},
        headers=headers,
    )
    assert created.status_code == 201
    field = created.json()
    assert field["image"] == "aGVsbG8="

    slots = await async_client.post(
        f"{API}/admin/availability",
        json={"field_id": field["id"], "slot_date": "2025-02-15", "slots": [{"start": "18:00", "end": "19:00"}]},
        headers=headers,
    )
    assert slots.status_code == 201
    slot_id = slots.json()["slots"][0]["id"]

    booked = await async_client.post(f"{API}/reservations", json={"slot_id": slot_id}, headers=auth_headers(player))
    reservation_id = booked.json()["reservation"]["id"]

    listed = await async_client.get(f"{API}/admin/reservations", headers=headers)
    assert [(r["user_name"], r["field_name"]) for r in listed.json()] == [("Player", "River Pitch")]

    analytics = await async_client.get(f"{API}/admin/analytics", headers=headers)
    assert analytics.json()["total_earnings"] == 250.0

    released = await async_client.put(f"{API}/admin/reservations/{reservation_id}/cancel", headers=headers)
    assert released.status_code == 200
    again = await async_client.put(f"{API}/admin/reservations/{reservation_id}/reject", headers=headers)
    assert again.status_code == 404

    free = await async_client.get(f"{API}/fields/{field['id']}/availability", params={"date": "2025-02-15"})
    assert [s["id"] for s in free.json()] == [slot_id]


async def test_bad_field_image_is_rejected(async_client, make_user, auth_headers):
    admin = await make_user(is_admin=True)
    response = await async_client.post(
        f"{API}/admin/fields",
        json={"name": "Broken", "location": "Nowhere", "price_per_hour": 100, "image": "***"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


async def test_field_with_tournament_cannot_be_deleted(async_client, make_user, make_field, make_tournament, auth_headers):
    admin = await make_user(is_admin=True)
    field = await make_field()
    await make_tournament(field)

    response = await async_client.delete(f"{API}/admin/fields/{field.id}", headers=auth_headers(admin))
    assert response.status_code == 409


async def test_team_building_over_http(async_client, make_user, make_field, auth_headers):
    creator = await make_user("Creator")
    field = await make_field()
    joiners = [await make_user(f"P{index}") for index in range(2)]

    initiated = await async_client.post(
        f"{API}/team-building/initiate",
        json={"field_id": field.id, "slot_date": "2025-02-15", "booking_type": "team_looking_for_players"},
        headers=auth_headers(creator),
    )
    assert initiated.status_code == 201
    code = initiated.json()["invitation_code"]

    for joiner in joiners:
        joined = await async_client.post(
            f"{API}/team-building/join",
            json={"invitation_code": code, "team_designation": "single"},
            headers=auth_headers(joiner),
        )
        assert joined.status_code == 200

    details = await async_client.get(f"{API}/team-building/{code}")
    assert [m["player_name"] for m in details.json()["members"]] == ["Creator", "P0", "P1"]

    stranger = await async_client.post(
        f"{API}/team-building/submit-matchmaking",
        json={"invitation_code": code, "current_players": 3},
        headers=auth_headers(joiners[0]),
    )
    assert stranger.status_code == 403

    submitted = await async_client.post(
        f"{API}/team-building/submit-matchmaking",
        json={"invitation_code": code, "current_players": 3},
        headers=auth_headers(creator),
    )
    assert submitted.status_code == 200
    assert submitted.json()["players_needed"] == 2

    gone = await async_client.get(f"{API}/team-building/{code}")
    assert gone.status_code == 404


async def test_matchmaking_approval_over_http(async_client, make_user, make_field, make_slot, auth_headers):
    admin = await make_user(is_admin=True)
    solo = await make_user("Solo")
    field = await make_field()
    slot = await make_slot(field)

    submitted = await async_client.post(
        f"{API}/matchmaking",
        json={"field_id": field.id, "slot_id": slot.id},
        headers=auth_headers(solo),
    )
    assert submitted.status_code == 201
    request_id = submitted.json()["request_id"]

    missing_day = await async_client.post(f"{API}/matchmaking", json={"field_id": field.id}, headers=auth_headers(solo))
    assert missing_day.status_code == 400

    categorized = await async_client.get(f"{API}/admin/matchmaking/categorized", headers=auth_headers(admin))
    assert [e["id"] for e in categorized.json()["players_looking_for_team"]] == [request_id]

    approved = await async_client.post(
        f"{API}/admin/matchmaking-requests/{request_id}/approve",
        headers=auth_headers(admin),
    )
    assert approved.status_code == 200
    assert approved.json()["slot_id"] == slot.id

    rejected = await async_client.post(
        f"{API}/admin/matchmaking-requests/{request_id}/reject",
        headers=auth_headers(admin),
    )
    assert rejected.status_code == 409


async def test_tournament_signup_over_http(async_client, make_user, make_field, make_tournament, auth_headers):
    captain = await make_user("Captain")
    tournament = await make_tournament(await make_field())

    created = await async_client.post(
        f"{API}/team-signup/create",
        json={"tournament_id": tournament.id, "team_name": "Lions"},
        headers=auth_headers(captain),
    )
    assert created.status_code == 201
    assert created.json()["created"] is True
    code = created.json()["invitation_code"]

    repeated = await async_client.post(
        f"{API}/team-signup/create",
        json={"tournament_id": tournament.id, "team_name": "Tigers"},
        headers=auth_headers(captain),
    )
    assert repeated.status_code == 200
    assert repeated.json()["invitation_code"] == code
    assert repeated.json()["created"] is False

    for index in range(5):
        player = await make_user(f"P{index}")
        joined = await async_client.post(
            f"{API}/team-signup/join",
            json={"invitation_code": code},
            headers=auth_headers(player),
        )
        assert joined.status_code == 200

    confirmed = await async_client.post(
        f"{API}/team-signup/confirm",
        json={"invitation_code": code, "tournament_id": tournament.id},
        headers=auth_headers(captain),
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["team_name"] == "Lions"

    teams = await async_client.get(f"{API}/tournaments/{tournament.id}/teams")
    assert teams.json()["teams"][0]["status"] == "registered"
    assert teams.json()["teams"][0]["member_count"] == 6

    listing = await async_client.get(f"{API}/tournaments")
    assert [t["name"] for t in listing.json()] == ["Winter Cup"]
