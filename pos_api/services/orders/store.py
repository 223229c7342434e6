"""
Order store: the only path through which orders and their dependent rows are
read or written.

Every write commits on its own. Submission is therefore a sequence of
independent writes (header, items, add-ons, timeline) and callers decide what
a failure at each step means.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from pos_api import models
from pos_api.core.errors import StoreError

logger = logging.getLogger(__name__)


class OrderStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _write(self, what: str) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Order store write failed ({what}): {e}")
            raise StoreError(f"Failed to {what}", details=str(e.__cause__ or e)) from e

    @contextmanager
    def _read(self, what: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Order store read failed ({what}): {e}")
            raise StoreError(f"Failed to {what}", details=str(e.__cause__ or e)) from e

    # branches / customers

    def first_branch_id(self, institution_id: int) -> Optional[int]:
        with self._read("fetch branch"):
            return self.db.scalar(
                select(models.Branch.id)
                .where(models.Branch.institution_id == institution_id)
                .order_by(models.Branch.id.asc())
                .limit(1)
            )

    def find_or_create_customer(
        self,
        name: str,
        phone: str,
        email: Optional[str] = None,
        address: Optional[str] = None,
    ) -> int:
        with self._write("save customer"):
            customer = self.db.scalar(select(models.Customer).where(models.Customer.phone == phone))
            if customer:
                customer.name = name or customer.name
                customer.email = email or customer.email
                customer.address = address or customer.address
            else:
                customer = models.Customer(name=name, phone=phone, email=email, address=address)
                self.db.add(customer)
            self.db.flush()
            customer_id = customer.id
        return customer_id

    # orders

    def order_number_exists(self, order_number: str) -> bool:
        with self._read("check order number"):
            found = self.db.scalar(
                select(models.Order.id).where(models.Order.order_number == order_number).limit(1)
            )
        return found is not None

    def insert_order(self, data: Dict[str, Any]) -> models.Order:
        order = models.Order(**data)
        with self._write("create order"):
            self.db.add(order)
        return order

    def insert_order_item(self, order_id: int, data: Dict[str, Any]) -> models.OrderItem:
        item = models.OrderItem(order_id=order_id, **data)
        with self._write("create order item"):
            self.db.add(item)
        return item

    def insert_addons(self, order_item_id: int, addons: Iterable[Dict[str, Any]]) -> List[models.OrderItemAddon]:
        rows = [models.OrderItemAddon(order_item_id=order_item_id, **a) for a in addons]
        with self._write("create order item addons"):
            self.db.add_all(rows)
        return rows

    def insert_timeline(self, order_id: int, event_type: str, description: str) -> models.OrderTimelineEntry:
        entry = models.OrderTimelineEntry(order_id=order_id, event_type=event_type, event_description=description)
        with self._write("create timeline entry"):
            self.db.add(entry)
        return entry

    def delete_order(self, order_id: int) -> None:
        with self._write("delete order"):
            order = self.db.get(models.Order, order_id)
            if order is not None:
                self.db.delete(order)

    def get_order(self, order_id: int) -> Optional[models.Order]:
        with self._read("fetch order"):
            return self.db.scalar(
                select(models.Order)
                .where(models.Order.id == order_id)
                .options(
                    selectinload(models.Order.items).selectinload(models.OrderItem.addons),
                    selectinload(models.Order.timeline),
                )
                .execution_options(populate_existing=True)
            )

    def get_order_by_number(self, order_number: str) -> Optional[models.Order]:
        with self._read("fetch order"):
            return self.db.scalar(select(models.Order).where(models.Order.order_number == order_number))

    def update_order_status(self, order_id: int, status: str) -> models.Order:
        with self._write("update order status"):
            order = self.db.get(models.Order, order_id)
            if order is None:
                raise StoreError("Order not found", details={"order_id": order_id})
            order.status = status
            order.updated_at = datetime.utcnow()
        return order

    def update_payment_status(self, order_id: int, payment_status: str) -> models.Order:
        with self._write("update payment status"):
            order = self.db.get(models.Order, order_id)
            if order is None:
                raise StoreError("Order not found", details={"order_id": order_id})
            order.payment_status = payment_status
            order.updated_at = datetime.utcnow()
        return order

    def list_orders(
        self,
        institution_id: Optional[int] = None,
        statuses: Optional[Iterable[str]] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[models.Order]:
        q = select(models.Order).options(selectinload(models.Order.items).selectinload(models.OrderItem.addons))
        if institution_id is not None:
            q = q.where(models.Order.institution_id == institution_id)
        if statuses:
            q = q.where(models.Order.status.in_(list(statuses)))
        if date_from is not None:
            q = q.where(models.Order.created_at >= date_from)
        if date_to is not None:
            q = q.where(models.Order.created_at <= date_to)
        q = q.order_by(models.Order.created_at.desc(), models.Order.id.desc())
        if limit:
            q = q.limit(limit)
        with self._read("list orders"):
            return list(self.db.scalars(q).all())
