import argparse
import asyncio

# Make sure paths are correct for script execution
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.db.session import AsyncSessionLocal
from app.models import Profile, Room, Tour, UserRole

TOUR_VENUE = "Library Tour"

ROOMS = [
    {"name": "Library Theater", "description": "Theater for cultural events and presentations", "capacity": 100,
     "facilities": ["Projector", "Sound System", "Stage"]},
    {"name": "Library Hall (Full)", "description": "Main hall of the library building for large events", "capacity": 200,
     "facilities": ["Projector", "Sound System", "Tables and Chairs"]},
    {"name": "Library Hall (Half)", "description": "Part of the main hall for smaller events", "capacity": 50,
     "facilities": ["Projector", "Sound System"]},
    {"name": "Social Inclusion Room", "description": "Room for inclusion and community activities", "capacity": 30,
     "facilities": ["Whiteboard", "Round Tables"]},
    {"name": "Meeting Room", "description": "Room for meetings and discussions", "capacity": 20,
     "facilities": ["Projector", "Whiteboard", "Meeting Table"]},
    {"name": TOUR_VENUE, "description": "Assembly area for guided library tours", "capacity": 15,
     "facilities": ["Audio Guide"]},
    {"name": "Library Stage Outdoor", "description": "Outdoor stage for open-air events", "capacity": 50,
     "facilities": ["Sound System", "Outdoor Stage"]},
]

TOURS = [
    {
        "name": "Library Heritage Tour",
        "description": "Explore the history and architecture of the library building and view rare historical documents.",
        "duration_minutes": 90,
        "max_participants": 15,
        "meeting_point": "Main Entrance Lobby",
        "guide_name": "Dr. Sarah Johnson",
        "guide_contact": "sarah.johnson@library.edu",
        "schedule": [
            {"dayOfWeek": 1, "startTime": "10:00", "availableSlots": 15},
            {"dayOfWeek": 3, "startTime": "14:00", "availableSlots": 15},
            {"dayOfWeek": 5, "startTime": "10:00", "availableSlots": 15},
        ],
    },
    {
        "name": "Digital Archives Tour",
        "description": "Discover the digital collection and learn how to access manuscripts and academic databases.",
        "duration_minutes": 60,
        "max_participants": 10,
        "meeting_point": "Digital Services Desk",
        "guide_name": "Prof. Michael Chen",
        "guide_contact": "michael.chen@library.edu",
        "schedule": [
            {"dayOfWeek": 2, "startTime": "11:00", "availableSlots": 10},
            {"dayOfWeek": 4, "startTime": "15:00", "availableSlots": 10},
        ],
    },
    {
        "name": "Children's Literature Tour",
        "description": "A tour of the children's literature collection for families and educators.",
        "duration_minutes": 45,
        "max_participants": 20,
        "meeting_point": "Children's Section",
        "guide_name": "Ms. Emily Rodriguez",
        "guide_contact": "emily.rodriguez@library.edu",
        "schedule": [
            {"dayOfWeek": 6, "startTime": "10:30", "availableSlots": 20},
        ],
    },
]


async def seed_rooms(db: AsyncSession) -> dict:
    print("\n--- Creating Rooms ---")
    rooms = {}
    for data in ROOMS:
        result = await db.execute(select(Room).where(Room.name == data["name"]))
        room = result.scalar_one_or_none()
        if room:
            print(f"Room {data['name']} already exists.")
        else:
            room = Room(**data, is_active=True)
            db.add(room)
            await db.flush()
            print(f"Created Room: {room.name} (capacity {room.capacity})")
        rooms[room.name] = room
    return rooms


async def seed_tours(db: AsyncSession, venue: Room) -> None:
    print("\n--- Creating Tours ---")
    for data in TOURS:
        result = await db.execute(select(Tour).where(Tour.name == data["name"]))
        if result.scalar_one_or_none():
            print(f"Tour {data['name']} already exists.")
            continue
        db.add(Tour(**data, room_id=venue.id, is_active=True))
        print(f"Created Tour: {data['name']}")


async def promote_admin(db: AsyncSession, email: str) -> None:
    result = await db.execute(select(Profile).where(Profile.email == email))
    profile = result.scalar_one_or_none()
    if profile is None:
        print(f"No profile for {email}; sign in once before promoting.")
        return
    profile.role = UserRole.ADMIN
    print(f"Promoted {email} to admin.")


async def seed_data(admin_email: str | None = None):
    async with AsyncSessionLocal() as db:
        print("--- Seeding Reservation Data ---")
        rooms = await seed_rooms(db)
        await seed_tours(db, rooms[TOUR_VENUE])
        if admin_email:
            await promote_admin(db, admin_email)
        await db.commit()
    print("\n--- Seeding Completed ---")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed rooms and tours (safe to run repeatedly).")
    parser.add_argument("--admin-email", help="Promote the profile with this email to admin")
    args = parser.parse_args()
    asyncio.run(seed_data(args.admin_email))
