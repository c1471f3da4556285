import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import InvalidState, NotFound
from ..models import Table
from ..repositories import RestaurantRepository, TableRepository
from ..schemas import TableCreate, TableUpdate

logger = logging.getLogger(__name__)


class TableService:
    """Floor management. Tables are deactivated, never deleted, so booking history keeps them."""

    def __init__(self, db: Session):
        self.db = db
        self.restaurants = RestaurantRepository(db)
        self.tables = TableRepository(db)

    def list_tables(self, restaurant_id: Optional[int] = None, active_only: bool = False) -> List[Table]:
        if active_only:
            if restaurant_id is None:
                restaurant_id = self.restaurants.default_restaurant_id()
            return self.tables.list_active(restaurant_id)
        return self.tables.list_all(restaurant_id)

    def create_table(self, data: TableCreate) -> Table:
        restaurant_id = data.restaurant_id
        if restaurant_id is None:
            restaurant_id = self.restaurants.default_restaurant_id()
        elif self.restaurants.get_active(restaurant_id) is None:
            raise NotFound("Restaurant not found")

        table = Table(**data.model_dump(exclude={"restaurant_id"}), restaurant_id=restaurant_id)
        self.db.add(table)
        self._commit(f"Table number {data.number} already exists")
        self.db.refresh(table)
        logger.info("Created table %s (%d seats)", table.number, table.capacity)
        return table

    def update_table(self, table_id: int, data: TableUpdate) -> Table:
        table = self.tables.get(table_id)
        if not table:
            raise NotFound("Table not found")

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(table, field, value)

        self._commit(f"Table number {data.number} already exists")
        self.db.refresh(table)
        if data.is_active is False:
            logger.info("Deactivated table %s", table.number)
        return table

    def _commit(self, duplicate_message: str):
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise InvalidState(duplicate_message) from None
