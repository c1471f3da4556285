from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from .errors import InsufficientData
from .models import ACTIVE_STATUSES, Booking, BookingStatus, Restaurant, Table


@dataclass
class BookingFilters:
    status: Optional[BookingStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    customer_id: Optional[str] = None


class RestaurantRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_active(self, restaurant_id: Optional[int] = None) -> Optional[Restaurant]:
        query = self.db.query(Restaurant).filter(Restaurant.is_active == True)
        if restaurant_id is not None:
            query = query.filter(Restaurant.id == restaurant_id)
        return query.order_by(Restaurant.id).first()

    def default_restaurant_id(self) -> int:
        restaurant = self.get_active()
        if not restaurant:
            raise InsufficientData("No active restaurant found")
        return restaurant.id


class TableRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, table_id: int) -> Optional[Table]:
        return self.db.query(Table).filter(Table.id == table_id).first()

    def lock(self, table_id: int) -> Optional[Table]:
        """Load the table row with FOR UPDATE so concurrent assignments serialize on it"""
        return self.db.query(Table).filter(Table.id == table_id).with_for_update().first()

    def list_active(self, restaurant_id: int) -> List[Table]:
        return self.db.query(Table).filter(
            Table.restaurant_id == restaurant_id,
            Table.is_active == True,
        ).order_by(Table.number).all()

    def list_all(self, restaurant_id: Optional[int] = None) -> List[Table]:
        query = self.db.query(Table)
        if restaurant_id is not None:
            query = query.filter(Table.restaurant_id == restaurant_id)
        return query.order_by(Table.number).all()


class BookingRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, booking_id: int) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def active_on(self, day: date, restaurant_id: Optional[int] = None,
                  table_id: Optional[int] = None, exclude_id: Optional[int] = None) -> List[Booking]:
        """PENDING/CONFIRMED bookings for one calendar day"""
        query = self.db.query(Booking).filter(
            Booking.date == day,
            Booking.status.in_(ACTIVE_STATUSES),
        )
        if restaurant_id is not None:
            query = query.filter(Booking.restaurant_id == restaurant_id)
        if table_id is not None:
            query = query.filter(Booking.table_id == table_id)
        if exclude_id is not None:
            query = query.filter(Booking.id != exclude_id)
        return query.all()

    def on_date(self, day: date, status: Optional[BookingStatus] = None) -> List[Booking]:
        query = self.db.query(Booking).filter(Booking.date == day)
        if status is not None:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.time).all()

    def search(self, filters: BookingFilters, page: int = 1, page_size: int = 20) -> Tuple[List[Booking], int]:
        query = self.db.query(Booking)
        if filters.status is not None:
            query = query.filter(Booking.status == filters.status)
        if filters.start_date is not None:
            query = query.filter(Booking.date >= filters.start_date)
        if filters.end_date is not None:
            query = query.filter(Booking.date <= filters.end_date)
        if filters.customer_id is not None:
            query = query.filter(Booking.customer_id == filters.customer_id)

        total = query.count()
        items = query.order_by(Booking.date.desc(), Booking.time.desc()).offset(
            (page - 1) * page_size
        ).limit(page_size).all()
        return items, total

    def count_created_between(self, start: datetime, end: datetime) -> int:
        return self.db.query(Booking).filter(
            Booking.created_at >= start,
            Booking.created_at <= end,
        ).count()
