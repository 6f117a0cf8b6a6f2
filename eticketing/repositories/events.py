"""Storage of events and payments."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from ..database import Database, RecordNotFoundError
from ..models import Event, EventStatus, Payment, PaymentStatus, Ticket, UserType


def _page(stmt, limit: Optional[int], offset: Optional[int]):
    if limit is not None and limit >= 0:
        stmt = stmt.limit(limit)
    if offset and offset > 0:
        stmt = stmt.offset(offset)
    return stmt


class EventRepository:
    """Stores events and answers listing and counting queries about them."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, event: Event) -> None:
        with self._db.session() as session:
            session.add(event)

    def get_by_id(self, event_id: int) -> Event:
        """Return the event with its seller and tickets loaded."""
        options = [selectinload(Event.seller), selectinload(Event.tickets)]
        with self._db.session() as session:
            event = session.get(Event, event_id, options=options)
        if event is None:
            raise RecordNotFoundError(f"Event {event_id} not found")
        return event

    def update(self, event: Event) -> None:
        with self._db.session() as session:
            merged = session.merge(event)
            session.flush()
            event.id = merged.id

    def delete(self, event_id: int) -> None:
        with self._db.session() as session:
            session.execute(sql_delete(Event).where(Event.id == event_id))

    def _list(self, condition, order, limit, offset) -> List[Event]:
        stmt = (
            select(Event)
            .options(selectinload(Event.seller))
            .where(condition)
            .order_by(order)
        )
        stmt = _page(stmt, limit, offset)
        with self._db.session() as session:
            return list(session.scalars(stmt))

    def list_by_status(self, status: EventStatus, limit: Optional[int],
                       offset: Optional[int]) -> List[Event]:
        """Events with the given status, earliest date first."""
        return self._list(Event.status == status, Event.date, limit, offset)

    def list_by_status_reverse(self, status: EventStatus, limit: Optional[int],
                               offset: Optional[int]) -> List[Event]:
        """Events with the given status, newest first."""
        return self._list(Event.status == status, Event.id.desc(), limit, offset)

    def list_by_seller(self, seller_id: int, limit: Optional[int],
                       offset: Optional[int]) -> List[Event]:
        """Events of one seller, newest first."""
        return self._list(Event.seller_id == seller_id, Event.id.desc(), limit, offset)

    def _count(self, *conditions) -> int:
        stmt = select(func.count()).select_from(Event).where(*conditions)
        with self._db.session() as session:
            return session.scalar(stmt) or 0

    def count_by_status(self, status: EventStatus) -> int:
        return self._count(Event.status == status)

    def count_by_seller_and_status(self, seller_id: int, status: Optional[int]) -> int:
        """Count a seller's events; a status of 0 or None counts all of them."""
        conditions = [Event.seller_id == seller_id]
        if status is not None and int(status) > 0:
            conditions.append(Event.status == status)
        return self._count(*conditions)

    def count_events_with_sold_tickets(self, seller_id: int) -> int:
        """Count a seller's events that have at least one sold ticket."""
        sold = select(Ticket.event_id).where(Ticket.is_sold.is_(True)).distinct()
        return self._count(Event.seller_id == seller_id, Event.id.in_(sold))


class PaymentRepository:
    """Stores payments made by users and revenue credited to sellers."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, payment: Payment) -> None:
        with self._db.session() as session:
            session.add(payment)

    def get_by_id(self, payment_id: int) -> Payment:
        with self._db.session() as session:
            payment = session.get(Payment, payment_id, options=[selectinload(Payment.event)])
        if payment is None:
            raise RecordNotFoundError(f"Payment {payment_id} not found")
        return payment

    def update(self, payment: Payment) -> None:
        with self._db.session() as session:
            merged = session.merge(payment)
            session.flush()
            payment.id = merged.id

    def _list(self, conditions, limit, offset) -> List[Payment]:
        stmt = (
            select(Payment)
            .options(selectinload(Payment.event))
            .where(*conditions)
            .order_by(Payment.date.desc(), Payment.id.desc())
        )
        stmt = _page(stmt, limit, offset)
        with self._db.session() as session:
            return list(session.scalars(stmt))

    def list_by_user(self, user_id: int, limit: Optional[int],
                     offset: Optional[int]) -> List[Payment]:
        """Payments of an account id of any type, newest first."""
        return self._list([Payment.user_id == user_id], limit, offset)

    def list_by_user_and_type(self, user_id: int, user_type: UserType, limit: Optional[int],
                              offset: Optional[int]) -> List[Payment]:
        """Payments of one account of one type, newest first."""
        return self._list(
            [Payment.user_id == user_id, Payment.user_type == user_type], limit, offset
        )

    def _sum(self, *conditions) -> float:
        stmt = select(func.coalesce(func.sum(Payment.amount), 0)).where(*conditions)
        with self._db.session() as session:
            return float(session.scalar(stmt) or 0)

    def get_total_revenue(self) -> float:
        """Sum of all completed payments."""
        return self._sum(Payment.status == PaymentStatus.COMPLETED)

    def count_transactions(self) -> int:
        with self._db.session() as session:
            return session.scalar(select(func.count()).select_from(Payment)) or 0

    def get_total_revenue_by_user(self, user_id: int, user_type: UserType) -> float:
        """Sum of an account's completed payments."""
        return self._sum(
            Payment.user_id == user_id,
            Payment.user_type == user_type,
            Payment.status == PaymentStatus.COMPLETED,
        )

    def get_pending_revenue_by_user(self, user_id: int, user_type: UserType) -> float:
        """Sum of an account's pending payments."""
        return self._sum(
            Payment.user_id == user_id,
            Payment.user_type == user_type,
            Payment.status == PaymentStatus.PENDING,
        )