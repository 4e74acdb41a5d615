#!/usr/bin/env python3
"""
Gear Tracker — Sample Data Seeder
Fills a development database with musicians, bands, instruments, upkeep
schedules and gigs so the API has something to show.

Writes go through InstrumentService, so every seeded instrument with a value
gets its initial value history entry like one created over the API.

Usage:
    python scripts/seed_sample_data.py
    python scripts/seed_sample_data.py --users 10 --instruments 6 --seed 7
"""

import argparse
import asyncio
import random
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from database import get_db_context, init_db, close_db
from inventory import InstrumentService
from models import (
    User, UserRole, Band, BandMember, BandRole, Gig, GigGear,
    MaintenanceRecord, MaintenanceSchedule, RecurrenceType, InstrumentImage,
)


# ── Configuration ───────────────────────────────────────────

INSTRUMENT_CATALOGUE = [
    {"type": "guitar", "make": "Gibson", "model": "Les Paul Standard", "price": (1800, 3200)},
    {"type": "guitar", "make": "Fender", "model": "Stratocaster", "price": (700, 2000)},
    {"type": "guitar", "make": "Martin", "model": "D-28", "price": (2200, 3500)},
    {"type": "bass", "make": "Fender", "model": "Precision Bass", "price": (600, 1800)},
    {"type": "bass", "make": "Music Man", "model": "StingRay", "price": (1500, 2600)},
    {"type": "drums", "make": "Ludwig", "model": "Classic Maple", "price": (2000, 4000)},
    {"type": "keys", "make": "Nord", "model": "Stage 4", "price": (3000, 4500)},
    {"type": "keys", "make": "Yamaha", "model": "CP88", "price": (1800, 2400)},
    {"type": "amplifier", "make": "Vox", "model": "AC30", "price": (900, 1500)},
    {"type": "violin", "make": "Yamaha", "model": "V5", "price": (300, 700)},
]
CONDITIONS = ["mint", "excellent", "good", "fair", "worn"]
UPKEEP = [
    ("setup", "Full setup", RecurrenceType.YEARLY),
    ("restring", "New strings", RecurrenceType.MONTHLY),
    ("clean", "Clean and polish", RecurrenceType.WEEKLY),
    ("inspection", "Electronics check", RecurrenceType.NONE),
]
STORAGE = ["Home studio", "Rehearsal room", "Storage unit", "Van"]
BAND_NAMES = ["The Loose Strings", "Midnight Tempo", "Feedback Loop", "Velvet Static"]
VENUES = [
    ("The Crown", "Bristol"), ("Night & Day", "Manchester"),
    ("The Windmill", "London"), ("King Tut's", "Glasgow"),
]
FIRST_NAMES = ["Alex", "Jordan", "Taylor", "Morgan", "Casey", "Riley", "Quinn", "Avery", "Sage", "River"]
LAST_NAMES = ["Chen", "Patel", "Kim", "Santos", "Okafor", "Tanaka", "Silva", "Nguyen", "Rossi", "Park"]


class GearSeeder:
    """Seeds one coherent set of sample data."""

    def __init__(self, seed: int = 42):
        random.seed(seed)
        self.now = datetime.now(timezone.utc)
        self.counts = {"users": 0, "bands": 0, "instruments": 0, "maintenance": 0, "gigs": 0}

    def _past_date(self, max_days: int = 365):
        return (self.now - timedelta(days=random.randint(0, max_days))).date()

    def _money(self, low: int, high: int) -> Decimal:
        return Decimal(random.randint(low * 100, high * 100)) / 100

    # ── Seeders ─────────────────────────────────────────────

    async def seed_users(self, db, count: int) -> list:
        users = []
        for index in range(count):
            first = random.choice(FIRST_NAMES)
            last = random.choice(LAST_NAMES)
            user = User(
                id=str(uuid.uuid4()),
                email=f"{first.lower()}.{last.lower()}{index}@gear.example",
                display_name=f"{first} {last}",
                role=UserRole.ADMIN if index == 0 else UserRole.USER,
            )
            db.add(user)
            users.append(user)
        await db.commit()
        self.counts["users"] += len(users)
        return users

    async def seed_bands(self, db, users: list) -> list:
        bands = []
        for name in BAND_NAMES[: max(1, len(users) // 3)]:
            members = random.sample(users, k=min(len(users), random.randint(2, 4)))
            band = Band(name=name, owner_id=members[0].id, description=f"{name} sample band")
            db.add(band)
            await db.flush()
            for position, member in enumerate(members):
                role = BandRole.OWNER if position == 0 else BandRole.MEMBER
                db.add(BandMember(band_id=band.id, user_id=member.id, role=role))
            bands.append((band, members))
        await db.commit()
        self.counts["bands"] += len(bands)
        return bands

    async def seed_instruments(self, db, user, per_user: int, band_ids: list) -> list:
        service = InstrumentService(db)
        instrument_ids = []
        for _ in range(per_user):
            item = random.choice(INSTRUMENT_CATALOGUE)
            purchase = self._money(*item["price"])
            fields = {
                "name": f"{item['make']} {item['model']}",
                "type": item["type"],
                "make": item["make"],
                "model": item["model"],
                "serial_number": uuid.uuid4().hex[:10].upper(),
                "purchase_date": self._past_date(3650),
                "purchase_price": purchase,
                "current_value": (purchase * Decimal(random.uniform(0.7, 1.3))).quantize(Decimal("0.01")),
                "condition": random.choice(CONDITIONS),
                "insured": random.random() > 0.4,
                "storage_location": random.choice(STORAGE),
                "band_id": random.choice(band_ids) if band_ids and random.random() > 0.5 else None,
            }
            instrument_id = await service.create(user.id, fields)
            db.add(InstrumentImage(
                instrument_id=instrument_id,
                image_url=f"https://images.gear.example/{instrument_id}.jpg",
                caption="Front",
            ))
            instrument_ids.append(instrument_id)
        await db.commit()
        self.counts["instruments"] += len(instrument_ids)
        return instrument_ids

    async def seed_maintenance(self, db, user, instrument_ids: list) -> None:
        for instrument_id in instrument_ids:
            kind, title, recurrence = random.choice(UPKEEP)
            db.add(MaintenanceRecord(
                instrument_id=instrument_id, type=kind, title=title,
                date=self._past_date(180), cost=self._money(20, 150),
                performed_by=random.choice(["Self", "Local luthier", "Tech"]),
                user_id=user.id,
            ))
            db.add(MaintenanceSchedule(
                instrument_id=instrument_id, type=kind, title=title,
                due_date=(self.now + timedelta(days=random.randint(-10, 60))).date(),
                recurrence_type=recurrence,
                recurrence_interval=1 if recurrence != RecurrenceType.NONE else None,
                user_id=user.id,
            ))
            self.counts["maintenance"] += 2
        await db.commit()

    async def seed_gigs(self, db, bands: list, gear_by_user: dict) -> None:
        for band, members in bands:
            for _ in range(random.randint(1, 3)):
                venue, city = random.choice(VENUES)
                start = self.now + timedelta(days=random.randint(-30, 90), hours=random.randint(0, 5))
                gig = Gig(
                    band_id=band.id, title=f"{band.name} at {venue}", venue=venue, city=city,
                    start_time=start, end_time=start + timedelta(hours=3), created_by=members[0].id,
                )
                db.add(gig)
                await db.flush()
                for member in members:
                    for instrument_id in gear_by_user.get(member.id, [])[:2]:
                        db.add(GigGear(gig_id=gig.id, instrument_id=instrument_id,
                                       is_packed=random.random() > 0.5))
                self.counts["gigs"] += 1
        await db.commit()

    async def run(self, users: int, instruments: int) -> dict:
        async with get_db_context() as db:
            people = await self.seed_users(db, users)
            bands = await self.seed_bands(db, people)

            gear_by_user = {}
            for user in people:
                band_ids = [b.id for b, members in bands if user in members]
                gear_by_user[user.id] = await self.seed_instruments(db, user, instruments, band_ids)
                await self.seed_maintenance(db, user, gear_by_user[user.id])

            await self.seed_gigs(db, bands, gear_by_user)
        return self.counts


async def _main(args) -> dict:
    await init_db()
    try:
        return await GearSeeder(seed=args.seed).run(args.users, args.instruments)
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Gear Tracker sample data seeder")
    parser.add_argument("--users", type=int, default=6, help="Number of musicians")
    parser.add_argument("--instruments", type=int, default=4, help="Instruments per musician")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    counts = asyncio.run(_main(args))
    print("✅ Sample data seeded")
    for name, count in counts.items():
        print(f"   {name.capitalize()}: {count}")


if __name__ == "__main__":
    main()
