"""Storage of tickets for sale and tickets already bought."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from sqlalchemy import and_, case, func, select
from sqlalchemy import delete as sql_delete
from sqlalchemy import update as sql_update
from sqlalchemy.orm import selectinload

from ..database import Database, RecordNotFoundError
from ..models import Event, GroupedTicket, PurchasedTicket, Ticket, TicketType


@dataclass
class TicketStats:
    """Ticket totals across all events of one seller."""

    total_tickets: int = 0
    sold_tickets: int = 0


_GROUP_COLUMNS = (
    Ticket.price,
    Ticket.type,
    Ticket.is_vip,
    Ticket.title,
    Ticket.description,
    Ticket.place,
    Ticket.sale_id,
    Ticket.event_id,
)

_AVAILABLE = and_(Ticket.is_sold.is_(False), Ticket.is_held.is_(False))


def _available_count():
    return func.count(case((_AVAILABLE, 1)))


def _grouped_select(event_id: int):
    return (
        select(
            *_GROUP_COLUMNS,
            func.count().label("total_amount"),
            _available_count().label("available_amount"),
            func.count(case((Ticket.is_sold.is_(True), 1))).label("sold_amount"),
            func.count(
                case((and_(Ticket.is_held.is_(True), Ticket.is_sold.is_(False)), 1))
            ).label("held_amount"),
        )
        .where(Ticket.event_id == event_id)
        .group_by(*_GROUP_COLUMNS)
        .order_by(func.min(Ticket.id))
    )


def _group_criteria(event_id, price, ticket_type, is_vip, title, place, sale_id):
    return [
        Ticket.event_id == event_id,
        Ticket.price == price,
        Ticket.type == ticket_type,
        Ticket.is_vip.is_(bool(is_vip)),
        Ticket.title == title,
        Ticket.place == place,
        Ticket.sale_id == sale_id,
    ]


class TicketRepository:
    """Stores individual tickets and aggregates them into groups."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, ticket: Ticket) -> None:
        with self._db.session() as session:
            session.add(ticket)

    def _get(self, ticket_id: int, lock: bool) -> Ticket:
        options = [selectinload(Ticket.event), selectinload(Ticket.sale)]
        with self._db.session() as session:
            ticket = session.get(Ticket, ticket_id, options=options, with_for_update=lock)
        if ticket is None:
            raise RecordNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    def get_by_id(self, ticket_id: int) -> Ticket:
        """Return the ticket with its event and sale loaded."""
        return self._get(ticket_id, lock=False)

    def get_by_id_for_update(self, ticket_id: int) -> Ticket:
        """Like get_by_id, but locks the row while it is read."""
        return self._get(ticket_id, lock=True)

    def update(self, ticket: Ticket) -> None:
        with self._db.session() as session:
            merged = session.merge(ticket)
            session.flush()
            ticket.id = merged.id

    def delete(self, ticket_id: int) -> None:
        with self._db.session() as session:
            session.execute(sql_delete(Ticket).where(Ticket.id == ticket_id))

    def _list(self, *conditions) -> List[Ticket]:
        stmt = select(Ticket).where(*conditions).order_by(Ticket.id)
        with self._db.session() as session:
            return list(session.scalars(stmt))

    def list_by_event(self, event_id: int) -> List[Ticket]:
        return self._list(Ticket.event_id == event_id)

    def list_available_by_event(self, event_id: int) -> List[Ticket]:
        """Tickets of an event that are neither sold nor held."""
        return self._list(Ticket.event_id == event_id, _AVAILABLE)

    def count_available_by_event(self, event_id: int) -> int:
        stmt = select(func.count()).select_from(Ticket).where(
            Ticket.event_id == event_id, _AVAILABLE
        )
        with self._db.session() as session:
            return session.scalar(stmt) or 0

    def list_by_group_criteria(self, event_id: int, price: float, ticket_type: TicketType,
                               is_vip: bool, title: str, place: str, sale_id: int,
                               include_sold: bool) -> List[Ticket]:
        """Tickets matching every group attribute; sold ones only if asked for."""
        conditions = _group_criteria(event_id, price, ticket_type, is_vip, title, place,
                                     sale_id)
        if not include_sold:
            conditions.append(Ticket.is_sold.is_(False))
        return self._list(*conditions)

    def _grouped(self, stmt) -> List[GroupedTicket]:
        with self._db.session() as session:
            rows = session.execute(stmt).all()
        return [
            GroupedTicket(
                price=row.price,
                type=row.type,
                is_vip=bool(row.is_vip),
                title=row.title,
                description=row.description or "",
                place=row.place,
                sale_id=row.sale_id,
                event_id=row.event_id,
                total_amount=row.total_amount,
                available_amount=row.available_amount,
                sold_amount=row.sold_amount,
                held_amount=row.held_amount,
            )
            for row in rows
        ]

    def list_grouped_by_event(self, event_id: int) -> List[GroupedTicket]:
        """Tickets of an event grouped by their shared attributes, with counts."""
        return self._grouped(_grouped_select(event_id))

    def list_available_grouped_by_event(self, event_id: int) -> List[GroupedTicket]:
        """Like list_grouped_by_event, keeping only groups with an available ticket."""
        return self._grouped(_grouped_select(event_id).having(_available_count() > 0))

    def find_and_lock_available_tickets(self, event_id: int, price: float,
                                        ticket_type: TicketType, is_vip: bool, title: str,
                                        place: str, sale_id: int,
                                        quantity: int) -> List[Ticket]:
        """Lock and return up to `quantity` available tickets of one group."""
        conditions = _group_criteria(event_id, price, ticket_type, is_vip, title, place,
                                     sale_id)
        stmt = (
            select(Ticket)
            .where(*conditions, _AVAILABLE)
            .order_by(Ticket.id)
            .with_for_update()
        )
        if quantity is not None and quantity >= 0:
            stmt = stmt.limit(quantity)
        with self._db.session() as session:
            return list(session.scalars(stmt))

    def get_seller_ticket_stats(self, seller_id: int) -> TicketStats:
        """Count all and sold tickets across a seller's events."""
        base = (
            select(func.count())
            .select_from(Ticket)
            .join(Event, Ticket.event_id == Event.id)
            .where(Event.seller_id == seller_id)
        )
        with self._db.session() as session:
            total = session.scalar(base) or 0
            sold = session.scalar(base.where(Ticket.is_sold.is_(True))) or 0
        return TicketStats(total_tickets=total, sold_tickets=sold)


class PurchasedTicketRepository:
    """Stores tickets that users have bought."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, ticket: PurchasedTicket) -> None:
        with self._db.session() as session:
            session.add(ticket)

    def get_by_id(self, ticket_id: int) -> PurchasedTicket:
        """Return the ticket with its owner, source ticket and event loaded."""
        options = [
            selectinload(PurchasedTicket.user),
            selectinload(PurchasedTicket.ticket).selectinload(Ticket.event),
        ]
        with self._db.session() as session:
            ticket = session.get(PurchasedTicket, ticket_id, options=options)
        if ticket is None:
            raise RecordNotFoundError(f"PurchasedTicket {ticket_id} not found")
        return ticket

    def update_ownership(self, ticket_id: int, new_user_id: int) -> None:
        """Give a purchased ticket to another user; raises if no row changed."""
        stmt = (
            sql_update(PurchasedTicket)
            .where(PurchasedTicket.id == ticket_id)
            .values(user_id=new_user_id)
            .execution_options(synchronize_session=False)
        )
        with self._db.session() as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                raise RecordNotFoundError("no rows updated")

    def list_by_user(self, user_id: int) -> List[PurchasedTicket]:
        stmt = (
            select(PurchasedTicket)
            .options(selectinload(PurchasedTicket.ticket).selectinload(Ticket.event))
            .where(PurchasedTicket.user_id == user_id)
            .order_by(PurchasedTicket.id)
        )
        with self._db.session() as session:
            return list(session.scalars(stmt))

    def count_by_user(self, user_id: int) -> int:
        stmt = select(func.count()).select_from(PurchasedTicket).where(
            PurchasedTicket.user_id == user_id
        )
        with self._db.session() as session:
            return session.scalar(stmt) or 0