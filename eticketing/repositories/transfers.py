"""Storage of ticket transfers between users."""

from __future__ import annotations

from typing import List

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

from ..database import Database, RecordNotFoundError
from ..models import ActiveTicketTransfer, DoneTicketTransfer, TransferStatus


def _with_parties(model):
    return [
        selectinload(model.from_user),
        selectinload(model.to_user),
        selectinload(model.purchased_ticket),
    ]


class TransferRepository:
    """Stores pending and completed ticket transfers."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create_active(self, transfer: ActiveTicketTransfer) -> None:
        with self._db.session() as session:
            session.add(transfer)

    def get_active_by_id(self, transfer_id: int) -> ActiveTicketTransfer:
        with self._db.session() as session:
            transfer = session.get(
                ActiveTicketTransfer, transfer_id, options=_with_parties(ActiveTicketTransfer)
            )
        if transfer is None:
            raise RecordNotFoundError(f"transfer {transfer_id} not found")
        return transfer

    def update_active(self, transfer: ActiveTicketTransfer) -> None:
        with self._db.session() as session:
            merged = session.merge(transfer)
            session.flush()
            transfer.id = merged.id

    def create_done(self, transfer: DoneTicketTransfer) -> None:
        with self._db.session() as session:
            session.add(transfer)

    def _list_active(self, user_id: int, *statuses: TransferStatus) -> List[ActiveTicketTransfer]:
        model = ActiveTicketTransfer
        stmt = (
            select(model)
            .options(*_with_parties(model))
            .where(or_(model.from_user_id == user_id, model.to_user_id == user_id))
            .where(model.status.in_(list(statuses)))
            .order_by(model.id)
        )
        with self._db.session() as session:
            return list(session.scalars(stmt))

    def list_active_by_user(self, user_id: int) -> List[ActiveTicketTransfer]:
        """Pending transfers the user sends or receives."""
        return self._list_active(user_id, TransferStatus.PENDING)

    def list_done_by_user(self, user_id: int) -> List[DoneTicketTransfer]:
        model = DoneTicketTransfer
        stmt = (
            select(model)
            .options(*_with_parties(model))
            .where(or_(model.from_user_id == user_id, model.to_user_id == user_id))
            .order_by(model.id)
        )
        with self._db.session() as session:
            return list(session.scalars(stmt))

    def list_rejected_by_user(self, user_id: int) -> List[ActiveTicketTransfer]:
        """Rejected or cancelled transfers the user sent or received."""
        return self._list_active(user_id, TransferStatus.REJECTED, TransferStatus.CANCELLED)

    def has_active_transfer_for_ticket(self, ticket_id: int) -> bool:
        stmt = select(func.count()).select_from(ActiveTicketTransfer).where(
            ActiveTicketTransfer.purchased_ticket_id == ticket_id,
            ActiveTicketTransfer.status == TransferStatus.PENDING,
        )
        with self._db.session() as session:
            return (session.scalar(stmt) or 0) > 0