import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reservations.config import Settings
from reservations.database import Base, get_db
from reservations.main import app
from reservations.models import Booking, BookingStatus, Restaurant, Table
from reservations.scheduling import parse_date

_numbers = itertools.count(1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def config():
    return Settings(
        database_url="sqlite://",
        default_duration_minutes=120,
        slot_interval_minutes=30,
        default_open_time="11:00",
        default_close_time="22:00",
        max_guests=20,
        notifications_enabled=False,
    )


@pytest.fixture
def restaurant(db):
    restaurant = Restaurant(name="Test Bistro", is_active=True, operating_hours=None)
    db.add(restaurant)
    db.commit()
    return restaurant


@pytest.fixture
def add_table(db, restaurant):
    def _add(number, capacity, is_active=True, restaurant_id=None):
        table = Table(
            restaurant_id=restaurant_id or restaurant.id,
            number=number,
            capacity=capacity,
            is_active=is_active,
        )
        db.add(table)
        db.commit()
        return table
    return _add


@pytest.fixture
def add_booking(db, restaurant):
    def _add(day, time, table=None, status=BookingStatus.CONFIRMED, guests=2, duration=120,
             restaurant_id=None, **extra):
        booking = Booking(
            booking_number=f"BKG-TEST-{next(_numbers):04d}",
            restaurant_id=restaurant_id or restaurant.id,
            customer_name="Test Guest",
            date=parse_date(day),
            time=time,
            guests=guests,
            duration=duration,
            status=status,
            table_id=table.id if table is not None else None,
            **extra,
        )
        db.add(booking)
        db.commit()
        return booking
    return _add


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
