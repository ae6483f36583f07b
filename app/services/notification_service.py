"""
Outbound email notifications.

Status changes and new requests produce ``EmailNotification`` messages that
are handed to a ``NotificationDispatcher``. The dispatcher owns a bounded
queue and a worker task that starts one delivery task per message, so a
recipient whose relay keeps failing only occupies its own slot while it
retries. Request handlers only ever enqueue.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Set

from fastapi.concurrency import run_in_threadpool

from app.core.config import settings
from app.models import Booking, BookingStatus, Profile
from app.utils.dates import as_utc
from app.utils.email import BookingEmailDetails, booking_decision_html, new_booking_html, send_email

logger = logging.getLogger(__name__)

EmailSender = Callable[[str, str, str], None]


@dataclass(frozen=True)
class EmailNotification:
    to: str
    subject: str
    html: str


class NotificationDispatcher:
    def __init__(
        self,
        sender: EmailSender = send_email,
        *,
        max_queue_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._sender = sender
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size or settings.NOTIFICATION_QUEUE_SIZE)
        self._slots = asyncio.Semaphore(max_concurrency or settings.NOTIFICATION_CONCURRENCY)
        self.max_attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS
        self.backoff_seconds = settings.NOTIFICATION_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self.timeout_seconds = timeout_seconds or settings.EMAIL_TIMEOUT_SECONDS
        self._worker: Optional[asyncio.Task] = None
        self._deliveries: Set[asyncio.Task] = set()
        self._sent = 0
        self._failed = 0
        self._dropped = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def enqueue(self, message: EmailNotification) -> bool:
        """Queue a message without waiting. Returns False when it was dropped."""
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(f"Notification queue full; dropping email to {message.to} ('{message.subject}')")
            return False
        logger.debug(f"Queued email to {message.to} ('{message.subject}')")
        return True

    async def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.info("Notification dispatcher started.")

    async def stop(self, drain_timeout: float = 5.0) -> None:
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Stopping notification dispatcher with {self._queue.qsize()} message(s) undelivered.")
        self._worker.cancel()
        for task in self._deliveries:
            task.cancel()
        await asyncio.gather(self._worker, *self._deliveries, return_exceptions=True)
        self._worker = None
        logger.info("Notification dispatcher stopped.")

    async def join(self) -> None:
        """Wait until every queued message has been handled."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            await self._slots.acquire()
            task = asyncio.create_task(self._deliver_queued(message))
            self._deliveries.add(task)
            task.add_done_callback(self._deliveries.discard)

    async def _deliver_queued(self, message: EmailNotification) -> None:
        try:
            await self.deliver(message)
        finally:
            self._slots.release()
            self._queue.task_done()

    async def deliver(self, message: EmailNotification) -> bool:
        """Send one message, retrying with exponential backoff."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                await asyncio.wait_for(
                    run_in_threadpool(self._sender, message.to, message.subject, message.html),
                    timeout=self.timeout_seconds,
                )
                self._sent += 1
                return True
            except Exception as e:
                if attempt == self.max_attempts:
                    self._failed += 1
                    logger.error(
                        f"Giving up on email to {message.to} ('{message.subject}') after {attempt} attempt(s): {e!r}"
                    )
                    return False
                delay = self.backoff_seconds * 2 ** (attempt - 1)
                logger.warning(
                    f"Email to {message.to} failed on attempt {attempt}/{self.max_attempts}: {e!r}. "
                    f"Retrying in {delay:.1f}s."
                )
                await asyncio.sleep(delay)
        return False

    def stats(self) -> dict:
        return {
            "sent": self._sent,
            "failed": self._failed,
            "dropped": self._dropped,
            "queued": self._queue.qsize(),
            "in_flight": len(self._deliveries),
        }


def _format_time(booking: Booking) -> str:
    start = as_utc(booking.start_time).strftime("%Y-%m-%d %H:%M")
    end = as_utc(booking.end_time).strftime("%Y-%m-%d %H:%M")
    return f"{start} - {end} UTC"


def _email_details(booking: Booking) -> BookingEmailDetails:
    room_name = booking.room.name if booking.room else "Unknown Room"
    if booking.tour is not None:
        room_name = f"{booking.tour.name} ({room_name})"
    user_name = "Unknown User"
    if booking.user is not None:
        user_name = booking.user.full_name or booking.user.email
    return BookingEmailDetails(room_name=room_name, time=_format_time(booking), user_name=user_name)


def approval_notification(booking: Booking) -> Optional[EmailNotification]:
    if booking.user is None or not booking.user.email:
        return None
    return EmailNotification(
        to=booking.user.email,
        subject="Booking Approved",
        html=booking_decision_html(_email_details(booking), "approved"),
    )


def rejection_notification(booking: Booking) -> Optional[EmailNotification]:
    if booking.user is None or not booking.user.email:
        return None
    return EmailNotification(
        to=booking.user.email,
        subject="Booking Rejected",
        html=booking_decision_html(_email_details(booking), "rejected"),
    )


def decision_notification(booking: Booking) -> Optional[EmailNotification]:
    """The requester email for a booking's current status, if that status warrants one."""
    if booking.status == BookingStatus.APPROVED:
        return approval_notification(booking)
    if booking.status == BookingStatus.REJECTED:
        return rejection_notification(booking)
    return None


def new_booking_notifications(booking: Booking, admins: Iterable[Profile]) -> List[EmailNotification]:
    """One message per administrator."""
    details = _email_details(booking)
    body = new_booking_html(details)
    subject = "New Tour Booking Request" if booking.is_tour else "New Booking Request"
    return [EmailNotification(to=admin.email, subject=subject, html=body) for admin in admins if admin.email]


dispatcher = NotificationDispatcher()
