import uuid
from datetime import timedelta

import pytest

from app.core.exceptions import Conflict, IllegalTransition, NotFound
from app.crud import crud_booking
from app.models import BookingStatus
from app.services import booking_workflow
from app.services.booking_workflow import ALLOWED_TRANSITIONS, can_transition
from app.utils.dates import utcnow

from tests.conftest import FakeDispatcher, create_booking

EXPECTED_TRANSITIONS = {
    (BookingStatus.PENDING, BookingStatus.APPROVED),
    (BookingStatus.PENDING, BookingStatus.REJECTED),
    (BookingStatus.PENDING, BookingStatus.CANCELLED),
    (BookingStatus.APPROVED, BookingStatus.COMPLETED),
    (BookingStatus.APPROVED, BookingStatus.CANCELLED),
}


class ExplodingDispatcher:
    def enqueue(self, message):
        raise RuntimeError("queue unavailable")


def test_transition_table():
    assert set(ALLOWED_TRANSITIONS) == set(BookingStatus)
    for current in BookingStatus:
        for target in BookingStatus:
            assert can_transition(current, target) == ((current, target) in EXPECTED_TRANSITIONS)


async def test_approve_notifies_requester(db, user, room):
    booking = await create_booking(db, user, room)
    dispatcher = FakeDispatcher()

    updated = await booking_workflow.transition(db, booking.id, BookingStatus.APPROVED, dispatcher=dispatcher)

    assert updated.status == BookingStatus.APPROVED
    assert updated.version == 2
    assert updated.room.name == "Meeting Room"
    assert updated.user.email == user.email
    assert len(dispatcher.messages) == 1
    assert dispatcher.messages[0].to == user.email
    assert dispatcher.messages[0].subject == "Booking Approved"


async def test_reject_notifies_requester(db, user, room):
    booking = await create_booking(db, user, room)
    dispatcher = FakeDispatcher()

    await booking_workflow.transition(db, booking.id, BookingStatus.REJECTED, dispatcher=dispatcher)

    assert [m.subject for m in dispatcher.messages] == ["Booking Rejected"]


async def test_completion_sends_no_notification(db, user, room):
    booking = await create_booking(db, user, room, status=BookingStatus.APPROVED)
    dispatcher = FakeDispatcher()

    updated = await booking_workflow.transition(db, booking.id, BookingStatus.COMPLETED, dispatcher=dispatcher)

    assert updated.status == BookingStatus.COMPLETED
    assert dispatcher.messages == []


@pytest.mark.parametrize(
    "current,target",
    [
        (BookingStatus.REJECTED, BookingStatus.APPROVED),
        (BookingStatus.COMPLETED, BookingStatus.PENDING),
        (BookingStatus.CANCELLED, BookingStatus.APPROVED),
        (BookingStatus.PENDING, BookingStatus.PENDING),
        (BookingStatus.PENDING, BookingStatus.COMPLETED),
    ],
)
async def test_illegal_transition_leaves_booking_untouched(db, user, room, current, target):
    booking = await create_booking(db, user, room, status=current)
    dispatcher = FakeDispatcher()

    with pytest.raises(IllegalTransition) as exc_info:
        await booking_workflow.transition(db, booking.id, target, dispatcher=dispatcher)

    assert exc_info.value.details == {"current": current.value, "requested": target.value}
    stored = await crud_booking.get_booking(db, booking.id)
    assert stored.status == current
    assert stored.version == 1
    assert dispatcher.messages == []


async def test_unknown_booking(db):
    with pytest.raises(NotFound):
        await booking_workflow.transition(db, uuid.uuid4(), BookingStatus.APPROVED, dispatcher=None)


async def test_expected_version_mismatch(db, user, room):
    booking = await create_booking(db, user, room)

    with pytest.raises(Conflict):
        await booking_workflow.transition(
            db, booking.id, BookingStatus.APPROVED, dispatcher=None, expected_version=5
        )

    stored = await crud_booking.get_booking(db, booking.id)
    assert stored.status == BookingStatus.PENDING


async def test_stale_writer_loses(session_factory, user, room, db):
    booking = await create_booking(db, user, room)

    async with session_factory() as stale_session:
        stale = await crud_booking.get_booking(stale_session, booking.id)

        async with session_factory() as winner_session:
            await booking_workflow.transition(winner_session, booking.id, BookingStatus.APPROVED, dispatcher=None)

        with pytest.raises(Conflict):
            await booking_workflow._apply(stale_session, stale, BookingStatus.REJECTED)

    stored = await crud_booking.get_booking(db, booking.id)
    assert stored.status == BookingStatus.APPROVED
    assert stored.version == 2


async def test_enqueue_failure_does_not_fail_transition(db, user, room):
    booking = await create_booking(db, user, room)

    updated = await booking_workflow.transition(
        db, booking.id, BookingStatus.APPROVED, dispatcher=ExplodingDispatcher()
    )

    assert updated.status == BookingStatus.APPROVED


async def test_sweep_completes_only_expired_approved(db, user, room):
    now = utcnow()
    expired = await create_booking(
        db, user, room, status=BookingStatus.APPROVED,
        start_time=now - timedelta(hours=3), end_time=now - timedelta(hours=1),
    )
    running = await create_booking(
        db, user, room, status=BookingStatus.APPROVED,
        start_time=now - timedelta(hours=1), end_time=now + timedelta(hours=1),
    )
    stale_pending = await create_booking(
        db, user, room, status=BookingStatus.PENDING,
        start_time=now - timedelta(hours=3), end_time=now - timedelta(hours=1),
    )

    completed = await booking_workflow.sweep_expired_approved(db, [expired, running, stale_pending], now=now)

    assert [b.id for b in completed] == [expired.id]
    assert (await crud_booking.get_booking(db, running.id)).status == BookingStatus.APPROVED
    assert (await crud_booking.get_booking(db, stale_pending.id)).status == BookingStatus.PENDING


async def test_sweep_skips_bookings_changed_concurrently(session_factory, db, user, room):
    now = utcnow()
    booking = await create_booking(
        db, user, room, status=BookingStatus.APPROVED,
        start_time=now - timedelta(hours=3), end_time=now - timedelta(hours=1),
    )

    async with session_factory() as sweep_session:
        candidates = await crud_booking.get_expired_approved(sweep_session, now)

        async with session_factory() as admin_session:
            await booking_workflow.transition(admin_session, booking.id, BookingStatus.CANCELLED, dispatcher=None)

        completed = await booking_workflow.sweep_expired_approved(sweep_session, candidates, now=now)

    assert completed == []
    assert (await crud_booking.get_booking(db, booking.id)).status == BookingStatus.CANCELLED


async def test_run_expiry_sweep_queries_store(db, user, room):
    now = utcnow()
    expired = await create_booking(
        db, user, room, status=BookingStatus.APPROVED,
        start_time=now - timedelta(days=2), end_time=now - timedelta(days=1),
    )
    await create_booking(db, user, room, status=BookingStatus.APPROVED)

    completed = await booking_workflow.run_expiry_sweep(db, now=now)

    assert [b.id for b in completed] == [expired.id]
    assert completed[0].status == BookingStatus.COMPLETED


async def test_cancel_own_pending_booking(db, user, room):
    booking = await create_booking(db, user, room)

    cancelled = await booking_workflow.cancel_own_booking(db, booking.id, user)

    assert cancelled.status == BookingStatus.CANCELLED


async def test_cannot_cancel_someone_elses_booking(db, user, other_user, room):
    booking = await create_booking(db, user, room)

    with pytest.raises(NotFound):
        await booking_workflow.cancel_own_booking(db, booking.id, other_user)


async def test_cannot_cancel_approved_booking(db, user, room):
    booking = await create_booking(db, user, room, status=BookingStatus.APPROVED)

    with pytest.raises(IllegalTransition):
        await booking_workflow.cancel_own_booking(db, booking.id, user)
