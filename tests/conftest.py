import os

# Settings are read at import time, so the environment must be prepared first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-placeholder.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["EXPIRY_SWEEP_ENABLED"] = "false"

import time
import uuid
from datetime import datetime, timedelta
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import settings
from app.db.session import get_db, make_session_factory
from app.dependencies import get_dispatcher, get_storage
from app.main import app
from app.models import Base, Booking, BookingStatus, Profile, Room, Tour, UserRole
from app.utils.dates import utcnow


class FakeDispatcher:
    """Collects queued notifications instead of sending them."""

    def __init__(self):
        self.messages = []

    def enqueue(self, message):
        self.messages.append(message)
        return True


class FakeStorage:
    """In-memory stand-in for the GCS bucket."""

    def __init__(self):
        self.objects = {}
        self.fail_uploads = False

    async def upload_bytes_async(self, data, blob_name, content_type):
        # Failing uploads still leave a partial object behind
        self.objects[blob_name] = data
        if self.fail_uploads:
            raise ConnectionError("storage unavailable")
        return blob_name

    def public_url(self, blob_name):
        return f"https://storage.googleapis.com/test-bucket/{blob_name}"

    async def delete_blob_async(self, blob_name):
        return self.objects.pop(blob_name, None) is not None

    async def list_blob_names_async(self, prefix):
        return [name for name in self.objects if name.startswith(prefix)]


def make_token(subject: uuid.UUID, email: str, **user_metadata) -> str:
    claims = {
        "sub": str(subject),
        "email": email,
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
        "user_metadata": user_metadata,
    }
    return jwt.encode(claims, settings.JWT_SECRET.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


def auth_headers(profile: Profile) -> dict:
    return {"Authorization": f"Bearer {make_token(profile.id, profile.email)}"}


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
async def client(session_factory, dispatcher, storage):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_storage] = lambda: storage
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def create_profile(db: AsyncSession, email: str, role: UserRole = UserRole.USER, full_name: str = "Test User") -> Profile:
    profile = Profile(id=uuid.uuid4(), email=email, full_name=full_name, role=role)
    db.add(profile)
    await db.commit()
    return profile


async def create_room(
    db: AsyncSession,
    name: str,
    *,
    capacity: int = 20,
    is_active: bool = True,
    description: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Room:
    room = Room(name=name, capacity=capacity, is_active=is_active, description=description, facilities=["Projector"])
    if created_at is not None:
        room.created_at = created_at
    db.add(room)
    await db.commit()
    return room


async def create_booking(
    db: AsyncSession,
    user: Profile,
    room: Room,
    *,
    status: BookingStatus = BookingStatus.PENDING,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    created_at: Optional[datetime] = None,
    event_description: Optional[str] = None,
    is_tour: bool = False,
) -> Booking:
    start_time = start_time or utcnow() + timedelta(days=1)
    booking = Booking(
        user_id=user.id,
        room_id=room.id,
        start_time=start_time,
        end_time=end_time or start_time + timedelta(hours=2),
        status=status,
        event_description=event_description,
        is_tour=is_tour,
    )
    if created_at is not None:
        booking.created_at = created_at
    db.add(booking)
    await db.commit()
    return booking


@pytest.fixture
async def user(db):
    return await create_profile(db, "reader@library.edu", full_name="Rita Reader")


@pytest.fixture
async def other_user(db):
    return await create_profile(db, "visitor@library.edu", full_name="Victor Visitor")


@pytest.fixture
async def admin(db):
    return await create_profile(db, "librarian@library.edu", role=UserRole.ADMIN, full_name="Lena Librarian")


@pytest.fixture
async def room(db):
    return await create_room(db, "Meeting Room", capacity=20)


@pytest.fixture
async def tour(db):
    venue = await create_room(db, "Library Tour", capacity=15)
    tour = Tour(
        name="Library Heritage Tour",
        description="History and architecture of the library",
        duration_minutes=90,
        max_participants=15,
        meeting_point="Main Entrance Lobby",
        guide_name="Dr. Sarah Johnson",
        guide_contact="sarah.johnson@library.edu",
        schedule=[{"dayOfWeek": 1, "startTime": "10:00", "availableSlots": 15}],
        is_active=True,
        room_id=venue.id,
    )
    db.add(tour)
    await db.commit()
    return tour
