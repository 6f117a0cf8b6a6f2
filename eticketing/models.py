"""Database models and enumerations for the ticketing service."""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, List, Optional

from sqlalchemy import Boolean, Float, ForeignKey, Integer, BigInteger, String, Text, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class EventStatus(enum.IntEnum):
    PENDING = 1
    APPROVED = 2
    REJECTED = 3
    CANCELLED = 4


class PaymentType(enum.IntEnum):
    CARD = 1
    PAYPAL = 2
    GOOGLE_PAY = 3
    STRIPE = 4


class PaymentStatus(enum.IntEnum):
    PENDING = 1
    COMPLETED = 2
    FAILED = 3
    REFUNDED = 4


class TicketType(enum.IntEnum):
    REGULAR = 1
    VIP = 2
    PREMIUM = 3


class TransferStatus(enum.IntEnum):
    PENDING = 1
    ACCEPTED = 2
    REJECTED = 3
    CANCELLED = 4


class UserType(enum.IntEnum):
    USER = 1
    SELLER = 2
    ADMIN = 3


class _IntEnumType(TypeDecorator):
    """Stores an IntEnum as a plain integer column."""

    impl = Integer
    cache_ok = True

    def __init__(self, enum_cls: type[enum.IntEnum]) -> None:
        super().__init__()
        self._enum = enum_cls

    def process_bind_param(self, value, dialect):
        return None if value is None else int(value)

    def process_result_value(self, value, dialect):
        return None if value is None else self._enum(value)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(191), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(191), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    surname: Mapped[str] = mapped_column(String(255), nullable=False)

    purchased_tickets: Mapped[List["PurchasedTicket"]] = relationship(back_populates="user")
    payment_methods: Mapped[List["PaymentMethod"]] = relationship(
        primaryjoin="User.id == foreign(PaymentMethod.user_id)", viewonly=True
    )


class Seller(Base):
    __tablename__ = "sellers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(191), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(191), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    surname: Mapped[str] = mapped_column(String(255), nullable=False)

    events: Mapped[List["Event"]] = relationship(back_populates="seller")


class Admin(Base):
    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(191), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(191), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    surname: Mapped[str] = mapped_column(String(255), nullable=False)
    # 1 = regular admin, 2 = super admin
    admin_role: Mapped[int] = mapped_column(Integer, default=1)


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, default="")
    date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    data: Mapped[Optional[str]] = mapped_column(Text)
    seller_id: Mapped[int] = mapped_column(ForeignKey("sellers.id"), nullable=False)
    status: Mapped[EventStatus] = mapped_column(
        _IntEnumType(EventStatus), default=EventStatus.PENDING
    )

    seller: Mapped[Seller] = relationship(back_populates="events")
    tickets: Mapped[List["Ticket"]] = relationship(back_populates="event")
    sales: Mapped[List["Sale"]] = relationship(back_populates="event")


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    start_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False)

    event: Mapped[Event] = relationship(back_populates="sales")


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_type: Mapped[UserType] = mapped_column(_IntEnumType(UserType), nullable=False)
    date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[PaymentType] = mapped_column(_IntEnumType(PaymentType), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        _IntEnumType(PaymentStatus), default=PaymentStatus.PENDING
    )
    description: Mapped[Optional[str]] = mapped_column(Text, default="")
    # 0 means the payment is not tied to an event, so no constraint is declared.
    event_id: Mapped[int] = mapped_column(Integer, default=0)

    event: Mapped[Optional[Event]] = relationship(
        primaryjoin="foreign(Payment.event_id) == Event.id", viewonly=True
    )


class PaymentMethod(Base):
    __tablename__ = "payment_methods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    type: Mapped[PaymentType] = mapped_column(_IntEnumType(PaymentType), nullable=False)
    token: Mapped[str] = mapped_column(String(255), nullable=False)
    data: Mapped[Optional[str]] = mapped_column(Text)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_type: Mapped[UserType] = mapped_column(_IntEnumType(UserType), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    is_held: Mapped[bool] = mapped_column(Boolean, default=False)
    is_sold: Mapped[bool] = mapped_column(Boolean, default=False)
    type: Mapped[TicketType] = mapped_column(_IntEnumType(TicketType), nullable=False)
    is_vip: Mapped[bool] = mapped_column(Boolean, default=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, default="")
    place: Mapped[str] = mapped_column(String(255), nullable=False)
    sale_id: Mapped[int] = mapped_column(ForeignKey("sales.id"), nullable=False)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), nullable=False)

    sale: Mapped[Sale] = relationship()
    event: Mapped[Event] = relationship(back_populates="tickets")


class PurchasedTicket(Base):
    __tablename__ = "purchased_tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    type: Mapped[TicketType] = mapped_column(_IntEnumType(TicketType), nullable=False)
    is_vip: Mapped[bool] = mapped_column(Boolean, default=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, default="")
    place: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    ticket_id: Mapped[int] = mapped_column(ForeignKey("tickets.id"), nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False)
    used_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    user: Mapped[User] = relationship(back_populates="purchased_tickets")
    ticket: Mapped[Ticket] = relationship()


@dataclasses.dataclass
class GroupedTicket:
    """Aggregated ticket data for display purposes."""

    price: float
    type: TicketType
    is_vip: bool
    title: str
    description: str
    place: str
    sale_id: int
    event_id: int
    total_amount: int = 0
    available_amount: int = 0
    sold_amount: int = 0
    held_amount: int = 0


class ActiveTicketTransfer(Base):
    __tablename__ = "active_ticket_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    from_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    to_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    purchased_ticket_id: Mapped[int] = mapped_column(
        ForeignKey("purchased_tickets.id"), nullable=False
    )
    status: Mapped[TransferStatus] = mapped_column(
        _IntEnumType(TransferStatus), default=TransferStatus.PENDING
    )

    from_user: Mapped[User] = relationship(foreign_keys=[from_user_id])
    to_user: Mapped[User] = relationship(foreign_keys=[to_user_id])
    purchased_ticket: Mapped[PurchasedTicket] = relationship()


class DoneTicketTransfer(Base):
    __tablename__ = "done_ticket_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    from_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    to_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    purchased_ticket_id: Mapped[int] = mapped_column(
        ForeignKey("purchased_tickets.id"), nullable=False
    )
    completed_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    from_user: Mapped[User] = relationship(foreign_keys=[from_user_id])
    to_user: Mapped[User] = relationship(foreign_keys=[to_user_id])
    purchased_ticket: Mapped[PurchasedTicket] = relationship()


_HIDDEN_FIELDS = frozenset({"password_hash"})


def _plain(value: Any) -> Any:
    return int(value) if isinstance(value, enum.IntEnum) else value


def to_dict(model: Any) -> dict:
    """Return the column values of a model as a JSON-ready dict, hiding password hashes."""
    if dataclasses.is_dataclass(model) and not isinstance(model, type):
        return {k: _plain(v) for k, v in dataclasses.asdict(model).items()}
    try:
        mapper = inspect(model).mapper
    except NoInspectionAvailable:
        raise TypeError(f"cannot serialise {type(model).__name__}") from None
    return {
        attr.key: _plain(getattr(model, attr.key))
        for attr in mapper.column_attrs
        if attr.key not in _HIDDEN_FIELDS
    }