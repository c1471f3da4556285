import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import BookingStatus


class TimeSlot(BaseModel):
    time: str
    available: bool
    remaining_capacity: int = Field(alias="remainingCapacity")

    class Config:
        populate_by_name = True


class AvailabilityResponse(BaseModel):
    date: str
    available_slots: List[TimeSlot] = Field(alias="availableSlots")

    class Config:
        populate_by_name = True


class TableBase(BaseModel):
    number: str = Field(min_length=1, max_length=10)
    capacity: int = Field(ge=1, le=50)
    is_active: bool = True
    shape: str = Field(default="circle", pattern="^(circle|rectangle|square|oval)$")
    width: int = Field(default=80, ge=40, le=200)
    height: int = Field(default=80, ge=40, le=200)
    position_x: int = 0
    position_y: int = 0


class TableCreate(TableBase):
    restaurant_id: Optional[int] = None


class TableUpdate(BaseModel):
    number: Optional[str] = Field(default=None, min_length=1, max_length=10)
    capacity: Optional[int] = Field(default=None, ge=1, le=50)
    is_active: Optional[bool] = None
    shape: Optional[str] = Field(default=None, pattern="^(circle|rectangle|square|oval)$")
    width: Optional[int] = Field(default=None, ge=40, le=200)
    height: Optional[int] = Field(default=None, ge=40, le=200)
    position_x: Optional[int] = None
    position_y: Optional[int] = None


class Table(TableBase):
    id: int
    restaurant_id: int

    class Config:
        from_attributes = True


class BookingCreate(BaseModel):
    date: str
    time: str
    guests: int
    customer_name: str = "Guest"
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_id: Optional[str] = None
    restaurant_id: Optional[int] = None
    special_requests: Optional[str] = None


class BookingUpdate(BaseModel):
    """Fields left out are not touched; an explicit null table_id unassigns"""
    status: Optional[BookingStatus] = None
    table_id: Optional[int] = None


class TableAssignment(BaseModel):
    table_id: Optional[int] = None


class Booking(BaseModel):
    id: int
    booking_number: str
    restaurant_id: int
    customer_id: Optional[str] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    date: dt.date
    time: str
    guests: int
    duration: int
    status: BookingStatus
    table_id: Optional[int] = None
    table: Optional[Table] = None
    special_requests: Optional[str] = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int


class BookingPage(BaseModel):
    data: List[Booking]
    pagination: Pagination
