import logging

from sqlalchemy.orm import Session

from .database import Base, engine
from .models import Restaurant, Table

logger = logging.getLogger(__name__)

WEEKLY_HOURS = {
    "monday": {"open": "11:00 AM", "close": "10:00 PM", "closed": False},
    "tuesday": {"open": "11:00 AM", "close": "10:00 PM", "closed": False},
    "wednesday": {"open": "11:00 AM", "close": "10:00 PM", "closed": False},
    "thursday": {"open": "11:00 AM", "close": "10:00 PM", "closed": False},
    "friday": {"open": "11:00 AM", "close": "11:00 PM", "closed": False},
    "saturday": {"open": "10:00 AM", "close": "11:00 PM", "closed": False},
    "sunday": {"open": "10:00 AM", "close": "09:00 PM", "closed": True},
}

# (number, capacity, shape, x, y)
FLOOR_PLAN = [
    ("1", 2, "square", 40, 40),
    ("2", 2, "square", 160, 40),
    ("3", 4, "square", 280, 40),
    ("4", 4, "square", 400, 40),
    ("5", 4, "circle", 40, 180),
    ("6", 6, "rectangle", 160, 180),
    ("7", 6, "rectangle", 320, 180),
    ("8", 8, "oval", 40, 320),
    ("9", 12, "rectangle", 220, 320),
]


def init_database(bind=engine):
    """Create the schema and seed one restaurant with its floor when the database is empty"""
    Base.metadata.create_all(bind=bind)

    db = Session(bind=bind)
    try:
        if db.query(Restaurant).first():
            logger.info("Database already initialized. Skipping...")
            return

        restaurant = Restaurant(name="Main Dining Room", is_active=True, operating_hours=WEEKLY_HOURS)
        db.add(restaurant)
        db.flush()

        for number, capacity, shape, x, y in FLOOR_PLAN:
            width = 160 if shape in ("rectangle", "oval") else 80
            db.add(Table(
                restaurant_id=restaurant.id,
                number=number,
                capacity=capacity,
                shape=shape,
                width=width,
                height=80,
                position_x=x,
                position_y=y,
            ))

        db.commit()
        logger.info("Database initialized: 1 restaurant, %d tables", len(FLOOR_PLAN))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
