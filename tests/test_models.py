import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from eticketing.models import (
    ActiveTicketTransfer,
    Admin,
    Base,
    Event,
    EventStatus,
    GroupedTicket,
    Payment,
    PaymentStatus,
    PaymentType,
    PurchasedTicket,
    Sale,
    Seller,
    Ticket,
    TicketType,
    TransferStatus,
    User,
    UserType,
    to_dict,
)


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


def _seed(session):
    seller = Seller(username="sel", password_hash="password", email="sel@example.com", name="S", surname="T")
    event = Event(title="Gig", date=100, address="Hall", seller=seller)
    sale = Sale(start_date=1, end_date=2, event=event)
    ticket = Ticket(price=10.0, type=TicketType.VIP, title="A", place="1", sale=sale, event=event)
    session.add_all([seller, event, sale, ticket])
    session.flush()
    return seller, event, sale, ticket


def test_enum_values_stored_as_source_numbers(session):
    _, event, _, _ = _seed(session)
    payment = Payment(user_id=1, user_type=UserType.ADMIN, date=5, type=PaymentType.STRIPE,
                      amount=3.0, status=PaymentStatus.REFUNDED, event_id=event.id)
    session.add(payment)
    session.flush()
    session.refresh(payment)
    data = to_dict(payment)
    assert data["status"] == 4
    assert data["user_type"] == 3
    assert data["type"] == 4
    session.refresh(event)
    assert to_dict(event)["status"] == EventStatus.PENDING == 1


def test_defaults_applied_on_insert(session):
    _, event, _, ticket = _seed(session)
    session.refresh(event)
    assert event.status is EventStatus.PENDING
    assert ticket.is_sold is False and ticket.is_held is False


def test_relationships(session):
    seller, event, sale, ticket = _seed(session)
    assert seller.events == [event]
    assert event.tickets == [ticket]
    assert event.sales == [sale]


def test_payment_event_link_without_constraint(session):
    _, event, _, _ = _seed(session)
    orphan = Payment(user_id=1, user_type=UserType.USER, date=5, type=PaymentType.CARD, amount=1.0)
    linked = Payment(user_id=1, user_type=UserType.USER, date=5, type=PaymentType.CARD,
                     amount=2.0, event_id=event.id)
    session.add_all([orphan, linked])
    session.flush()
    session.expire_all()
    assert orphan.event is None
    assert linked.event.id == event.id
    assert orphan.status is PaymentStatus.PENDING


def test_transfer_users(session):
    _, _, _, ticket = _seed(session)
    a = User(username="a", password_hash="password", email="a@example.com", name="A", surname="A")
    b = User(username="b", password_hash="password", email="b@example.com", name="B", surname="B")
    pt = PurchasedTicket(price=1.0, type=TicketType.REGULAR, title="t", place="p", user=a, ticket=ticket)
    tr = ActiveTicketTransfer(from_user=a, to_user=b, date=1, purchased_ticket=pt)
    session.add_all([a, b, pt, tr])
    session.flush()
    session.refresh(tr)
    assert tr.from_user.username == "a"
    assert tr.to_user.username == "b"
    assert tr.status is TransferStatus.PENDING
    assert a.purchased_tickets == [pt]


def test_to_dict_hides_password_and_flattens_enums(session):
    seller, event, _, _ = _seed(session)
    data = to_dict(seller)
    assert "password_hash" not in data
    assert data["email"] == "sel@example.com"
    session.refresh(event)
    assert to_dict(event)["status"] == 1


def test_admin_role_default(session):
    admin = Admin(username="adm", password_hash="password", email="adm@example.com", name="A", surname="D")
    session.add(admin)
    session.flush()
    session.refresh(admin)
    assert to_dict(admin)["admin_role"] == 1


def test_to_dict_grouped_ticket():
    g = GroupedTicket(price=5.0, type=TicketType.PREMIUM, is_vip=True, title="t",
                      description="", place="p", sale_id=2, event_id=3, total_amount=4)
    data = to_dict(g)
    assert data["type"] == 3
    assert data["total_amount"] == 4
    assert data["sold_amount"] == 0


def test_to_dict_rejects_other_objects():
    with pytest.raises(TypeError):
        to_dict(object())