"""Storage of user, seller and admin accounts."""

from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select

from ..database import Database, RecordNotFoundError
from ..models import Admin, Seller, User


class UserRepository:
    """Stores buyer accounts; sellers and admins share the same operations."""

    model: Any = User

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, account) -> None:
        with self._db.session() as session:
            session.add(account)

    def get_by_id(self, account_id: int):
        with self._db.session() as session:
            account = session.get(self.model, account_id)
        if account is None:
            raise RecordNotFoundError(f"{self.model.__name__} {account_id} not found")
        return account

    def _first_where(self, condition, what: str):
        stmt = select(self.model).where(condition).order_by(self.model.id).limit(1)
        with self._db.session() as session:
            account = session.scalars(stmt).first()
        if account is None:
            raise RecordNotFoundError(f"{self.model.__name__} with {what} not found")
        return account

    def get_by_email(self, email: str):
        return self._first_where(self.model.email == email, f"email {email!r}")

    def get_by_username(self, username: str):
        return self._first_where(self.model.username == username, f"username {username!r}")

    def update(self, account) -> None:
        with self._db.session() as session:
            merged = session.merge(account)
            session.flush()
            account.id = merged.id

    def delete(self, account_id: int) -> None:
        with self._db.session() as session:
            session.execute(sql_delete(self.model).where(self.model.id == account_id))

    def list(self, limit: Optional[int], offset: Optional[int]) -> List:
        stmt = select(self.model).order_by(self.model.id)
        if limit is not None and limit >= 0:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(max(0, offset))
        with self._db.session() as session:
            return list(session.scalars(stmt))

    def count(self) -> int:
        with self._db.session() as session:
            return session.scalar(select(func.count()).select_from(self.model)) or 0


class SellerRepository(UserRepository):
    """Stores seller accounts."""

    model = Seller


class AdminRepository(UserRepository):
    """Stores admin accounts."""

    model = Admin