import enum
from datetime import datetime

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


# Only these statuses occupy a table
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

TERMINAL_STATUSES = (BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.NO_SHOW, BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
    BookingStatus.NO_SHOW: set(),
}


class Restaurant(Base):
    """A tenant with its own floor and weekly schedule"""
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True)
    # {"monday": {"open": "09:00 AM", "close": "10:00 PM", "closed": false}, ...}
    operating_hours = Column(JSON, nullable=True)
    auto_confirm_bookings = Column(Boolean, default=False)

    tables = relationship("Table", back_populates="restaurant")
    bookings = relationship("Booking", back_populates="restaurant")


class Table(Base):
    """Restaurant tables; layout fields are only used by the floor map"""
    __tablename__ = "tables"
    __table_args__ = (UniqueConstraint("restaurant_id", "number", name="uq_table_number"),)

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    number = Column(String(10), nullable=False)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True)

    shape = Column(String(20), default="circle")  # circle, rectangle, square, oval
    width = Column(Integer, default=80)
    height = Column(Integer, default=80)
    position_x = Column(Integer, default=0)
    position_y = Column(Integer, default=0)
    # Bumped by every assignment; a stale value at flush time means another request assigned it first
    version = Column(Integer, nullable=False, default=0)

    restaurant = relationship("Restaurant", back_populates="tables")
    bookings = relationship("Booking", back_populates="table")

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}


class Booking(Base):
    """Customer bookings"""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(20), unique=True, nullable=False)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    customer_id = Column(String(50), nullable=True, index=True)
    customer_name = Column(String(100), nullable=False, default="Guest")
    customer_email = Column(String(100))
    customer_phone = Column(String(20))
    date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=False)  # HH:MM format
    guests = Column(Integer, nullable=False)
    duration = Column(Integer, default=120)  # Duration in minutes
    status = Column(Enum(BookingStatus, native_enum=False, length=20), default=BookingStatus.PENDING, nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=True)
    special_requests = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    version = Column(Integer, nullable=False)

    restaurant = relationship("Restaurant", back_populates="bookings")
    table = relationship("Table", back_populates="bookings")

    # Concurrent writers to the same row fail with StaleDataError instead of overwriting
    __mapper_args__ = {"version_id_col": version}