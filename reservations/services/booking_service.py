import logging
import math
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .. import notify
from ..config import Settings, settings as default_settings
from ..errors import (
    BookingError, InsufficientData, InvalidState, NotFound, SlotConflict, ValidationError,
)
from ..models import (
    ACTIVE_STATUSES, ALLOWED_TRANSITIONS, TERMINAL_STATUSES, Booking, BookingStatus, Restaurant,
)
from ..repositories import BookingFilters, BookingRepository, RestaurantRepository, TableRepository
from ..scheduling import (
    assemble_slots, booking_window, format_minutes, generate_time_slots, intervals_overlap,
    normalize_time, parse_date, resolve_operating_window, to_minutes,
)
from ..schemas import AvailabilityResponse, BookingCreate, TimeSlot

logger = logging.getLogger(__name__)

# Marks "leave the table assignment alone", as opposed to None which unassigns
UNSET = object()


class BookingService:
    def __init__(self, db: Session, config: Optional[Settings] = None):
        self.db = db
        self.settings = config or default_settings
        self.restaurants = RestaurantRepository(db)
        self.tables = TableRepository(db)
        self.bookings = BookingRepository(db)

    # ---- availability ----

    def check_availability(self, day: str, guests: Optional[int] = None,
                           restaurant_id: Optional[int] = None) -> AvailabilityResponse:
        """
        Compute one TimeSlot per bookable start time of the day.
        A missing restaurant or an empty floor yields unavailable slots, never an error.
        """
        booking_date = parse_date(day)
        guests = 1 if guests is None else guests
        if guests < 1:
            raise ValidationError("Guests must be a positive number")

        try:
            restaurant = self._resolve_restaurant(restaurant_id)
        except InsufficientData as e:
            logger.warning("Availability for %s without a restaurant: %s", day, e)
            restaurant = None

        window = resolve_operating_window(
            restaurant.operating_hours if restaurant else None, booking_date, self.settings
        )
        if window is None:
            return AvailabilityResponse(date=day, available_slots=[])

        slots = generate_time_slots(window[0], window[1], self.settings.slot_interval_minutes)

        if restaurant is None:
            tables, bookings = [], []
        else:
            tables = self.tables.list_active(restaurant.id)
            bookings = self.bookings.active_on(booking_date, restaurant.id)

        assembled = assemble_slots(slots, tables, bookings, guests, self.settings.default_duration_minutes)
        return AvailabilityResponse(
            date=day,
            available_slots=[
                TimeSlot(time=s.time, available=s.available, remaining_capacity=s.remaining_capacity)
                for s in assembled
            ],
        )

    def has_booking_conflict(self, day: Union[str, date], time: str, duration: Optional[int] = None,
                             table_id: Optional[int] = None,
                             exclude_booking_id: Optional[int] = None,
                             restaurant_id: Optional[int] = None) -> bool:
        """True if an active booking of the restaurant overlaps [time, time + duration) on that day"""
        if isinstance(day, str):
            day = parse_date(day)
        restaurant = self._resolve_restaurant(restaurant_id)
        duration = duration or self.settings.default_duration_minutes
        start = to_minutes(normalize_time(time))
        existing = self.bookings.active_on(
            day, restaurant.id, table_id=table_id, exclude_id=exclude_booking_id
        )
        return any(
            intervals_overlap(start, start + duration, *booking_window(b, self.settings.default_duration_minutes))
            for b in existing
        )

    # ---- table assignment and lifecycle ----

    def assign_table(self, booking_id: int, table_id: Optional[int]) -> Booking:
        """Assign a table to the booking, or clear the assignment when table_id is None"""
        return self.update_booking(booking_id, table_id=table_id)

    def update_booking(self, booking_id: int, status: Union[BookingStatus, str, None] = None,
                       table_id=UNSET) -> Booking:
        """
        Change status and/or table assignment in one transaction.
        Nothing is written if any check fails.
        """
        booking = self.get_booking(booking_id)
        current = booking.status
        target = self._coerce_status(status) if status is not None else current

        try:
            if current in TERMINAL_STATUSES:
                raise InvalidState(f"Cannot modify {current.value.lower()} booking")
            if target != current and target not in ALLOWED_TRANSITIONS[current]:
                raise InvalidState(f"Cannot change booking from {current.value} to {target.value}")

            if table_id is not UNSET:
                if table_id is None:
                    booking.table_id = None
                else:
                    self._apply_table(booking, table_id, target)

            booking.status = target
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise SlotConflict("Booking or table was modified by another request, please retry") from None
        except (BookingError, SQLAlchemyError):
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info("Booking %s: status %s -> %s, table=%s",
                    booking.booking_number, current.value, booking.status.value, booking.table_id)

        if target == BookingStatus.CONFIRMED and current != BookingStatus.CONFIRMED:
            self._notify_confirmed(booking)
        return booking

    def confirm_booking(self, booking_id: int, table_id: Optional[int] = None) -> Booking:
        return self.update_booking(
            booking_id, BookingStatus.CONFIRMED, table_id if table_id is not None else UNSET
        )

    def cancel_booking(self, booking_id: int) -> Booking:
        return self.update_booking(booking_id, BookingStatus.CANCELLED)

    def complete_booking(self, booking_id: int) -> Booking:
        return self.update_booking(booking_id, BookingStatus.COMPLETED)

    def mark_no_show(self, booking_id: int) -> Booking:
        return self.update_booking(booking_id, BookingStatus.NO_SHOW)

    # ---- creation and lookup ----

    def create_booking(self, data: BookingCreate) -> Booking:
        booking_date = parse_date(data.date)
        time = format_minutes(to_minutes(normalize_time(data.time)))
        if data.guests < 1:
            raise ValidationError("Guests must be a positive number")
        if data.guests > self.settings.max_guests:
            raise ValidationError(
                f"Maximum {self.settings.max_guests} guests per booking. Please contact us for larger parties."
            )

        if data.restaurant_id is not None:
            restaurant = self.restaurants.get_active(data.restaurant_id)
            if restaurant is None:
                raise NotFound("Restaurant not found")
        else:
            restaurant = self._resolve_restaurant(None)

        availability = self.check_availability(data.date, data.guests, restaurant.id)
        slot = next((s for s in availability.available_slots if s.time == time), None)
        if slot is None or not slot.available:
            raise SlotConflict(f"No availability at {time} on {data.date} for {data.guests} guests")

        status = BookingStatus.CONFIRMED if restaurant.auto_confirm_bookings else BookingStatus.PENDING
        booking = Booking(
            booking_number=self._generate_booking_number(),
            restaurant_id=restaurant.id,
            customer_id=data.customer_id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            date=booking_date,
            time=time,
            guests=data.guests,
            duration=self.settings.default_duration_minutes,
            status=status,
            special_requests=data.special_requests,
        )
        self.db.add(booking)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(booking)
        logger.info("Created booking %s for %s at %s (%d guests, %s)",
                    booking.booking_number, data.date, time, data.guests, status.value)

        if status == BookingStatus.CONFIRMED:
            self._notify_confirmed(booking)
        return booking

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.bookings.get(booking_id)
        if not booking:
            raise NotFound("Booking not found")
        return booking

    def get_bookings(self, filters: Optional[BookingFilters] = None, page: int = 1,
                     page_size: int = 20) -> dict:
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be positive")
        items, total = self.bookings.search(filters or BookingFilters(), page, page_size)
        return {
            "data": items,
            "pagination": {
                "total": total,
                "page": page,
                "page_size": page_size,
                "total_pages": math.ceil(total / page_size),
            },
        }

    def get_bookings_by_date(self, day: str, status: Optional[BookingStatus] = None):
        return self.bookings.on_date(parse_date(day), status)

    # ---- helpers ----

    def _resolve_restaurant(self, restaurant_id: Optional[int]) -> Restaurant:
        restaurant = self.restaurants.get_active(restaurant_id)
        if restaurant is None:
            raise InsufficientData("No active restaurant found")
        return restaurant

    def _apply_table(self, booking: Booking, table_id: int, target: BookingStatus):
        if target not in ACTIVE_STATUSES:
            raise InvalidState("Tables can only be assigned to pending or confirmed bookings")

        table = self.tables.lock(table_id)
        if not table:
            raise NotFound("Table not found")
        if not table.is_active:
            raise InvalidState("Table is not active")
        if table.restaurant_id != booking.restaurant_id:
            raise InvalidState("Table belongs to another restaurant")

        # Re-check inside the transaction: another active booking may hold the table
        start, end = booking_window(booking, self.settings.default_duration_minutes)
        for other in self.bookings.active_on(booking.date, table_id=table.id, exclude_id=booking.id):
            other_start, other_end = booking_window(other, self.settings.default_duration_minutes)
            if intervals_overlap(start, end, other_start, other_end):
                raise SlotConflict(
                    f"Table {table.number} is already held by booking {other.booking_number} at {other.time}"
                )

        booking.table_id = table.id
        # UPDATE ... WHERE version = <read value>: a racing assignment of this table makes one side stale
        table.version += 1

    @staticmethod
    def _coerce_status(status: Union[BookingStatus, str]) -> BookingStatus:
        try:
            return BookingStatus(status)
        except ValueError:
            raise ValidationError("Invalid booking status") from None

    def _generate_booking_number(self) -> str:
        """BKG-YYYYMMDD-NNN, numbered by bookings created today"""
        now = datetime.utcnow()
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        end = now.replace(hour=23, minute=59, second=59, microsecond=999999)
        sequence = self.bookings.count_created_between(start, end) + 1
        return f"BKG-{now:%Y%m%d}-{sequence:03d}"

    def _notify_confirmed(self, booking: Booking):
        if self.settings.notifications_enabled:
            notify.send_confirmation_email(booking)
