"""Storage of sale windows and saved payment methods."""

from __future__ import annotations

from typing import List

from sqlalchemy import delete as sql_delete
from sqlalchemy import select, update as sql_update
from sqlalchemy.orm import selectinload

from ..database import Database, RecordNotFoundError
from ..models import PaymentMethod, Sale


class SaleRepository:
    """Stores the sale windows of events."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, sale: Sale) -> None:
        with self._db.session() as session:
            session.add(sale)

    def get_by_id(self, sale_id: int) -> Sale:
        with self._db.session() as session:
            sale = session.get(Sale, sale_id, options=[selectinload(Sale.event)])
        if sale is None:
            raise RecordNotFoundError(f"Sale {sale_id} not found")
        return sale

    def update(self, sale: Sale) -> None:
        with self._db.session() as session:
            merged = session.merge(sale)
            session.flush()
            sale.id = merged.id

    def delete(self, sale_id: int) -> None:
        with self._db.session() as session:
            session.execute(sql_delete(Sale).where(Sale.id == sale_id))

    def list_by_event(self, event_id: int) -> List[Sale]:
        stmt = select(Sale).where(Sale.event_id == event_id).order_by(Sale.start_date)
        with self._db.session() as session:
            return list(session.scalars(stmt))


class PaymentMethodRepository:
    """Stores payment methods saved by account holders."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, method: PaymentMethod) -> None:
        with self._db.session() as session:
            session.add(method)

    def get_by_id(self, method_id: int) -> PaymentMethod:
        with self._db.session() as session:
            method = session.get(PaymentMethod, method_id)
        if method is None:
            raise RecordNotFoundError(f"PaymentMethod {method_id} not found")
        return method

    def update(self, method: PaymentMethod) -> None:
        with self._db.session() as session:
            merged = session.merge(method)
            session.flush()
            method.id = merged.id

    def delete(self, method_id: int) -> None:
        with self._db.session() as session:
            session.execute(sql_delete(PaymentMethod).where(PaymentMethod.id == method_id))

    def list_by_user(self, user_id: int) -> List[PaymentMethod]:
        """Default method first, then by id."""
        stmt = (
            select(PaymentMethod)
            .where(PaymentMethod.user_id == user_id)
            .order_by(PaymentMethod.is_default.desc(), PaymentMethod.id.asc())
        )
        with self._db.session() as session:
            return list(session.scalars(stmt))

    def clear_default_for_user(self, user_id: int) -> None:
        stmt = (
            sql_update(PaymentMethod)
            .where(PaymentMethod.user_id == user_id, PaymentMethod.is_default.is_(True))
            .values(is_default=False)
        )
        with self._db.session() as session:
            session.execute(stmt)

    def get_default_by_user(self, user_id: int) -> PaymentMethod:
        stmt = (
            select(PaymentMethod)
            .where(PaymentMethod.user_id == user_id, PaymentMethod.is_default.is_(True))
            .order_by(PaymentMethod.id)
            .limit(1)
        )
        with self._db.session() as session:
            method = session.scalars(stmt).first()
        if method is None:
            raise RecordNotFoundError(f"no default payment method for user {user_id}")
        return method