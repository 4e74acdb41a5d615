# models.py — Database models for the Musician Gear Tracker
# - String user ids issued by the identity provider
# - Integer primary keys for everything the API creates
# - Instrument is the aggregate root for images, maintenance and value history
# - Referential actions (CASCADE / SET NULL) are declared on the foreign keys

from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, Date, Boolean, Integer, Numeric,
    Enum as SQLEnum, ForeignKey, Text, Index, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, PyEnum):
    USER = "user"
    ADMIN = "admin"
    BAND_MANAGER = "band_manager"


class BandRole(str, PyEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class RecurrenceType(str, PyEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ValueSource(str, PyEnum):
    MANUAL = "manual"
    APPRAISAL = "appraisal"
    MARKET_LOOKUP = "market lookup"


# ============================================================
# USERS
# ============================================================

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)  # identity-provider uid
    email = Column(String, unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)
    role = Column(SQLEnum(UserRole), default=UserRole.USER, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    instruments = relationship("Instrument", back_populates="owner", passive_deletes=True)
    memberships = relationship("BandMember", back_populates="user", passive_deletes=True)


# ============================================================
# BANDS
# ============================================================

class Band(Base):
    __tablename__ = "bands"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    photo_url = Column(String, nullable=True)
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    members = relationship("BandMember", back_populates="band", passive_deletes=True)
    gigs = relationship("Gig", back_populates="band", passive_deletes=True)


class BandMember(Base):
    __tablename__ = "band_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    band_id = Column(Integer, ForeignKey("bands.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(SQLEnum(BandRole), default=BandRole.MEMBER, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    band = relationship("Band", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("band_id", "user_id", name="uq_band_members_band_user"),
    )


# ============================================================
# INSTRUMENTS
# ============================================================

class Instrument(Base):
    """A piece of gear. Owned by exactly one user, optionally assigned to a band."""
    __tablename__ = "instruments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # guitar, bass, drums, keyboard, ...
    make = Column(String, nullable=True)
    model = Column(String, nullable=True)
    serial_number = Column(String, nullable=True)
    purchase_date = Column(Date, nullable=True)
    purchase_price = Column(Numeric(10, 2), nullable=True)
    current_value = Column(Numeric(10, 2), nullable=True)
    description = Column(Text, nullable=True)
    condition = Column(String, nullable=True)  # excellent, good, fair, poor
    insured = Column(Boolean, default=False)
    insurance_policy = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    band_id = Column(Integer, ForeignKey("bands.id", ondelete="SET NULL"), nullable=True, index=True)
    storage_location = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="instruments")
    band = relationship("Band")
    images = relationship("InstrumentImage", back_populates="instrument", passive_deletes=True)
    maintenance_records = relationship("MaintenanceRecord", back_populates="instrument", passive_deletes=True)
    maintenance_schedule = relationship("MaintenanceSchedule", back_populates="instrument", passive_deletes=True)
    value_history = relationship("ValueHistory", back_populates="instrument", passive_deletes=True)

    __table_args__ = (
        Index("idx_instrument_owner_name", "owner_id", "name"),
    )


class InstrumentImage(Base):
    __tablename__ = "instrument_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instrument_id = Column(Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    caption = Column(String, nullable=True)
    display_order = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    instrument = relationship("Instrument", back_populates="images")


# ============================================================
# MAINTENANCE
# ============================================================

class MaintenanceRecord(Base):
    """Completed maintenance work"""
    __tablename__ = "maintenance_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instrument_id = Column(Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)  # repair, setup, string change, ...
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False)
    cost = Column(Numeric(10, 2), nullable=True)
    performed_by = Column(String, nullable=True)  # technician or self
    location = Column(String, nullable=True)  # store or home
    notes = Column(Text, nullable=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    instrument = relationship("Instrument", back_populates="maintenance_records")


class MaintenanceSchedule(Base):
    """Upcoming or recurring maintenance obligation"""
    __tablename__ = "maintenance_schedule"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instrument_id = Column(Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(Date, nullable=False, index=True)
    recurrence_type = Column(SQLEnum(RecurrenceType), default=RecurrenceType.NONE, nullable=True)
    recurrence_interval = Column(Integer, nullable=True)
    reminder_enabled = Column(Boolean, default=True)
    reminder_days_before = Column(Integer, default=7)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    instrument = relationship("Instrument", back_populates="maintenance_schedule")


# ============================================================
# GIGS
# ============================================================

class Gig(Base):
    __tablename__ = "gigs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    venue = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    country = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    band_id = Column(Integer, ForeignKey("bands.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    band = relationship("Band", back_populates="gigs")
    gear = relationship("GigGear", back_populates="gig", passive_deletes=True)

    __table_args__ = (
        Index("idx_gig_band_start", "band_id", "start_time"),
    )


class GigGear(Base):
    """Which instruments are needed for which gig, and whether they are packed"""
    __tablename__ = "gig_gear"

    id = Column(Integer, primary_key=True, autoincrement=True)
    gig_id = Column(Integer, ForeignKey("gigs.id", ondelete="CASCADE"), nullable=False, index=True)
    instrument_id = Column(Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False, index=True)
    notes = Column(String, nullable=True)
    is_packed = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    gig = relationship("Gig", back_populates="gear")
    instrument = relationship("Instrument")

    __table_args__ = (
        UniqueConstraint("gig_id", "instrument_id", name="uq_gig_gear_gig_instrument"),
    )


# ============================================================
# VALUE HISTORY
# ============================================================

class ValueHistory(Base):
    """Append-only valuation ledger for an instrument"""
    __tablename__ = "value_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instrument_id = Column(Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Numeric(10, 2), nullable=False)
    date = Column(Date, nullable=False)
    source = Column(SQLEnum(ValueSource), default=ValueSource.MANUAL, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    instrument = relationship("Instrument", back_populates="value_history")

    __table_args__ = (
        Index("idx_value_history_instrument_date", "instrument_id", "date"),
    )
