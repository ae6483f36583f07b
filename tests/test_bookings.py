import uuid
from datetime import datetime, timedelta

from app.crud import crud_booking
from app.models import BookingStatus
from app.utils.dates import utcnow

from tests.conftest import auth_headers, create_booking, make_token


def future_slot(days=2, hours=2):
    start = utcnow().replace(microsecond=0) + timedelta(days=days)
    return start, start + timedelta(hours=hours)


def booking_payload(room, start, end, **extra):
    return {"room_id": str(room.id), "start_time": start.isoformat(), "end_time": end.isoformat(), **extra}


# --- creation ---

async def test_create_booking_notifies_admins(client, dispatcher, user, admin, room):
    start, end = future_slot()

    response = await client.post(
        "/api/bookings",
        json=booking_payload(room, start, end, event_description="Book club", guest_count=12),
        headers=auth_headers(user),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Booking requested"
    assert body["booking"]["status"] == "pending"
    assert body["booking"]["version"] == 1
    assert body["booking"]["room"]["name"] == "Meeting Room"
    assert body["booking"]["user"]["email"] == user.email
    assert [(m.to, m.subject) for m in dispatcher.messages] == [(admin.email, "New Booking Request")]


async def test_create_booking_requires_authentication(client, room):
    start, end = future_slot()

    response = await client.post("/api/bookings", json=booking_payload(room, start, end))

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Not authenticated", "details": None}


async def test_end_before_start_is_rejected(client, user, room):
    start, end = future_slot()

    response = await client.post("/api/bookings", json=booking_payload(room, end, start), headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


async def test_timestamp_without_offset_is_read_as_utc(client, user, room):
    start, end = future_slot()
    payload = booking_payload(room, start, end)
    payload["start_time"] = start.replace(tzinfo=None).isoformat()

    response = await client.post("/api/bookings", json=payload, headers=auth_headers(user))

    assert response.status_code == 201
    booking = response.json()["booking"]
    stored = datetime.fromisoformat(booking["end_time"]) - datetime.fromisoformat(booking["start_time"])
    assert stored == timedelta(hours=2)


async def test_mixed_offsets_with_inverted_range_are_rejected(client, user, room):
    start, end = future_slot()
    payload = booking_payload(room, start, end)
    payload["start_time"] = end.replace(tzinfo=None).isoformat()
    payload["end_time"] = start.isoformat()

    response = await client.post("/api/bookings", json=payload, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


async def test_start_in_the_past_is_rejected(client, user, room):
    start = utcnow() - timedelta(hours=3)

    response = await client.post(
        "/api/bookings", json=booking_payload(room, start, start + timedelta(hours=1)), headers=auth_headers(user)
    )

    assert response.status_code == 400


async def test_guest_count_above_capacity_is_rejected(client, user, room):
    start, end = future_slot()

    response = await client.post(
        "/api/bookings", json=booking_payload(room, start, end, guest_count=21), headers=auth_headers(user)
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Guest count exceeds room capacity (20)"


async def test_overlap_with_approved_booking_conflicts(client, db, user, other_user, room):
    start, end = future_slot()
    existing = await create_booking(db, other_user, room, status=BookingStatus.APPROVED, start_time=start, end_time=end)

    response = await client.post(
        "/api/bookings",
        json=booking_payload(room, start + timedelta(minutes=30), end + timedelta(hours=1)),
        headers=auth_headers(user),
    )

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "Room is already booked for the requested time"
    assert [c["id"] for c in body["details"]["conflicts"]] == [str(existing.id)]


async def test_pending_bookings_do_not_block_the_slot(client, db, user, other_user, room):
    start, end = future_slot()
    await create_booking(db, other_user, room, status=BookingStatus.PENDING, start_time=start, end_time=end)

    response = await client.post("/api/bookings", json=booking_payload(room, start, end), headers=auth_headers(user))

    assert response.status_code == 201


async def test_unknown_room(client, user):
    start, end = future_slot()
    payload = {"room_id": str(uuid.uuid4()), "start_time": start.isoformat(), "end_time": end.isoformat()}

    response = await client.post("/api/bookings", json=payload, headers=auth_headers(user))

    assert response.status_code == 404


# --- listing and detail ---

async def test_requesters_see_only_their_bookings(client, db, user, other_user, admin, room):
    mine = await create_booking(db, user, room)
    await create_booking(db, other_user, room)

    own = (await client.get("/api/bookings", headers=auth_headers(user))).json()
    everyone = (await client.get("/api/bookings", headers=auth_headers(admin))).json()

    assert [b["id"] for b in own["bookings"]] == [str(mine.id)]
    assert own["totalCount"] == 1
    assert everyone["totalCount"] == 2


async def test_list_bookings_filters_by_status(client, db, user, admin, room):
    await create_booking(db, user, room, status=BookingStatus.PENDING)
    approved = await create_booking(db, user, room, status=BookingStatus.APPROVED)

    response = await client.get("/api/bookings", params={"status": "approved"}, headers=auth_headers(admin))

    assert [b["id"] for b in response.json()["bookings"]] == [str(approved.id)]


async def test_list_bookings_rejects_unknown_status(client, user):
    response = await client.get("/api/bookings", params={"status": "lost"}, headers=auth_headers(user))

    assert response.status_code == 400


async def test_someone_elses_booking_is_not_found(client, db, user, other_user, admin, room):
    booking = await create_booking(db, other_user, room)

    as_user = await client.get(f"/api/bookings/{booking.id}", headers=auth_headers(user))
    as_admin = await client.get(f"/api/bookings/{booking.id}", headers=auth_headers(admin))

    assert as_user.status_code == 404
    assert as_admin.status_code == 200
    assert as_admin.json()["user"]["email"] == other_user.email


# --- status changes ---

async def test_status_change_requires_admin(client, db, user, room):
    booking = await create_booking(db, user, room)

    response = await client.post(
        f"/api/bookings/{booking.id}/status", json={"status": "approved"}, headers=auth_headers(user)
    )

    assert response.status_code == 403
    assert (await crud_booking.get_booking(db, booking.id)).status == BookingStatus.PENDING


async def test_admin_approves_booking(client, db, dispatcher, user, admin, room):
    booking = await create_booking(db, user, room)

    response = await client.post(
        f"/api/bookings/{booking.id}/status", json={"status": "approved"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Booking status updated successfully"
    assert body["booking"]["status"] == "approved"
    assert body["booking"]["version"] == 2
    assert [(m.to, m.subject) for m in dispatcher.messages] == [(user.email, "Booking Approved")]


async def test_patch_rejects_booking_with_matching_version(client, db, dispatcher, user, admin, room):
    booking = await create_booking(db, user, room)

    response = await client.patch(
        f"/api/bookings/{booking.id}/status", json={"status": "rejected", "version": 1}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "rejected"
    assert [m.subject for m in dispatcher.messages] == ["Booking Rejected"]


async def test_stale_version_conflicts(client, db, user, admin, room):
    booking = await create_booking(db, user, room)

    response = await client.patch(
        f"/api/bookings/{booking.id}/status", json={"status": "approved", "version": 3}, headers=auth_headers(admin)
    )

    assert response.status_code == 409
    assert (await crud_booking.get_booking(db, booking.id)).status == BookingStatus.PENDING


async def test_illegal_transition_conflicts(client, db, dispatcher, user, admin, room):
    booking = await create_booking(db, user, room, status=BookingStatus.REJECTED)

    response = await client.post(
        f"/api/bookings/{booking.id}/status", json={"status": "approved"}, headers=auth_headers(admin)
    )

    assert response.status_code == 409
    assert response.json()["details"] == {"current": "rejected", "requested": "approved"}
    assert dispatcher.messages == []


async def test_unknown_status_value_is_rejected(client, db, user, admin, room):
    booking = await create_booking(db, user, room)

    response = await client.post(
        f"/api/bookings/{booking.id}/status", json={"status": "archived"}, headers=auth_headers(admin)
    )

    assert response.status_code == 400


async def test_status_change_for_unknown_booking(client, admin):
    response = await client.post(
        f"/api/bookings/{uuid.uuid4()}/status", json={"status": "approved"}, headers=auth_headers(admin)
    )

    assert response.status_code == 404
    assert response.json()["error"] == "Booking not found"


async def test_requester_cancels_pending_booking(client, db, user, room):
    booking = await create_booking(db, user, room)

    response = await client.delete(f"/api/bookings/{booking.id}", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["message"] == "Booking cancelled"
    assert response.json()["booking"]["status"] == "cancelled"


# --- tours ---

async def test_tour_booking_uses_tour_duration_and_venue(client, dispatcher, user, admin, tour):
    start = utcnow().replace(microsecond=0) + timedelta(days=3)

    response = await client.post(
        "/api/tour-booking",
        json={"tour_id": str(tour.id), "start_time": start.isoformat(), "guest_count": 4},
        headers=auth_headers(user),
    )

    assert response.status_code == 201
    booking = response.json()["booking"]
    assert booking["is_tour"] is True
    assert booking["tour_id"] == str(tour.id)
    assert booking["room_id"] == str(tour.room_id)
    assert booking["event_description"] == "Library Heritage Tour - Standard tour booking"
    assert booking["notes"] == "Tour booking with Dr. Sarah Johnson guide"
    duration = datetime.fromisoformat(booking["end_time"]) - datetime.fromisoformat(booking["start_time"])
    assert duration == timedelta(minutes=90)
    assert [m.subject for m in dispatcher.messages] == ["New Tour Booking Request"]


async def test_tour_booking_over_participant_limit(client, user, tour):
    start = utcnow() + timedelta(days=3)

    response = await client.post(
        "/api/tour-booking",
        json={"tour_id": str(tour.id), "start_time": start.isoformat(), "guest_count": 16},
        headers=auth_headers(user),
    )

    assert response.status_code == 400


# --- profile and admin ---

async def test_first_request_creates_profile_from_token(client):
    subject = uuid.uuid4()
    token = make_token(subject, "newcomer@library.edu", full_name="Nora Newcomer", institution="City College")

    response = await client.get("/api/profile/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == str(subject)
    assert body["full_name"] == "Nora Newcomer"
    assert body["institution"] == "City College"
    assert body["role"] == "user"


async def test_update_profile(client, user):
    response = await client.patch("/api/profile/me", json={"phone": "555-0100"}, headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["phone"] == "555-0100"
    assert response.json()["full_name"] == "Rita Reader"


async def test_admin_stats(client, db, user, admin, room):
    await create_booking(db, user, room, status=BookingStatus.PENDING)
    await create_booking(db, user, room, status=BookingStatus.APPROVED)

    response = await client.get("/api/admin/stats", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["by_status"]["pending"] == 1
    assert body["by_status"]["approved"] == 1
    assert body["by_status"]["cancelled"] == 0
    assert body["by_room"] == [{"room_id": str(room.id), "room_name": "Meeting Room", "total": 2}]


async def test_admin_stats_forbidden_for_requesters(client, user):
    response = await client.get("/api/admin/stats", headers=auth_headers(user))

    assert response.status_code == 403
