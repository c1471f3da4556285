import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Response
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .init_db import init_database
from .errors import BookingError, InsufficientData, InvalidState, NotFound, ValidationError
from .models import BookingStatus
from .repositories import BookingFilters
from .scheduling import parse_date
from .schemas import (
    AvailabilityResponse, Booking, BookingCreate, BookingPage, BookingUpdate, Table, TableAssignment,
    TableCreate, TableUpdate,
)
from .services.booking_service import UNSET, BookingService
from .services.table_service import TableService

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Table Reservations",
    description="Slot availability and table assignment for restaurant bookings",
    version="1.0.0"
)


def _http_error(e: BookingError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidState):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InsufficientData):
        logger.error("Restaurant configuration error: %s", e)
        return HTTPException(status_code=500, detail="Restaurant configuration error. Please contact support.")
    return HTTPException(status_code=500, detail=str(e))


@app.on_event("startup")
async def startup_event():
    """Create the schema and seed an empty database on startup"""
    init_database()


@app.get("/api/bookings/availability", response_model=AvailabilityResponse)
def check_availability(
    response: Response,
    date: str,
    guests: Optional[int] = None,
    restaurant_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """Available time slots for a day and party size"""
    try:
        requested = parse_date(date)
    except ValidationError as e:
        raise _http_error(e)

    if requested < datetime.utcnow().date():
        raise HTTPException(status_code=400, detail="Cannot check availability for past dates")

    if guests is not None:
        if guests < 1:
            raise HTTPException(status_code=400, detail="Guests must be a positive number")
        if guests > settings.max_guests:
            raise HTTPException(
                status_code=400,
                detail=f"Maximum {settings.max_guests} guests per booking. Please contact us for larger parties."
            )

    service = BookingService(db, settings)
    try:
        availability = service.check_availability(date, guests, restaurant_id)
    except BookingError as e:
        raise _http_error(e)

    response.headers["Cache-Control"] = "public, s-maxage=30, stale-while-revalidate=60"
    return availability


@app.post("/api/bookings", response_model=Booking, status_code=201)
def create_booking(data: BookingCreate, db: Session = Depends(get_db)):
    """Create a new booking"""
    service = BookingService(db, settings)
    try:
        return service.create_booking(data)
    except BookingError as e:
        raise _http_error(e)


@app.get("/api/bookings", response_model=BookingPage)
def list_bookings(
    status: Optional[BookingStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    customer_id: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
    db: Session = Depends(get_db)
):
    """Bookings, newest date first"""
    filters = BookingFilters(status=status, start_date=start_date, end_date=end_date, customer_id=customer_id)
    service = BookingService(db, settings)
    try:
        return service.get_bookings(filters, page, page_size)
    except BookingError as e:
        raise _http_error(e)


@app.get("/api/bookings/{booking_id}", response_model=Booking)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    service = BookingService(db, settings)
    try:
        return service.get_booking(booking_id)
    except BookingError as e:
        raise _http_error(e)


@app.patch("/api/bookings/{booking_id}", response_model=Booking)
def update_booking(booking_id: int, data: BookingUpdate, db: Session = Depends(get_db)):
    """Update status and/or table; a missing table_id leaves the assignment alone"""
    table_id = data.table_id if "table_id" in data.model_fields_set else UNSET
    service = BookingService(db, settings)
    try:
        return service.update_booking(booking_id, data.status, table_id)
    except BookingError as e:
        raise _http_error(e)


@app.put("/api/bookings/{booking_id}/table", response_model=Booking)
def assign_table(booking_id: int, data: TableAssignment, db: Session = Depends(get_db)):
    """Assign a table, or unassign with a null table_id"""
    service = BookingService(db, settings)
    try:
        return service.assign_table(booking_id, data.table_id)
    except BookingError as e:
        raise _http_error(e)


@app.delete("/api/bookings/{booking_id}", response_model=Booking)
def cancel_booking(booking_id: int, db: Session = Depends(get_db)):
    """Cancel a booking (the row is kept)"""
    service = BookingService(db, settings)
    try:
        return service.cancel_booking(booking_id)
    except BookingError as e:
        raise _http_error(e)


@app.get("/api/tables", response_model=List[Table])
def get_tables(restaurant_id: Optional[int] = None, active_only: bool = False, db: Session = Depends(get_db)):
    """Get tables, optionally only the active ones"""
    service = TableService(db)
    try:
        return service.list_tables(restaurant_id, active_only)
    except BookingError as e:
        raise _http_error(e)


@app.post("/api/tables", response_model=Table, status_code=201)
def create_table(data: TableCreate, db: Session = Depends(get_db)):
    service = TableService(db)
    try:
        return service.create_table(data)
    except BookingError as e:
        raise _http_error(e)


@app.patch("/api/tables/{table_id}", response_model=Table)
def update_table(table_id: int, data: TableUpdate, db: Session = Depends(get_db)):
    """Edit or (de)activate a table"""
    service = TableService(db)
    try:
        return service.update_table(table_id, data)
    except BookingError as e:
        raise _http_error(e)


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}
