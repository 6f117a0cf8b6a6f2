import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from eticketing.database import Database, RecordNotFoundError
from eticketing.models import (
    ActiveTicketTransfer,
    DoneTicketTransfer,
    PurchasedTicket,
    TicketType,
    TransferStatus,
    User,
)
from eticketing.repositories.transfers import TransferRepository


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    database = Database(engine)
    database.auto_migrate()
    yield database
    database.close()


@pytest.fixture
def parties(db):
    with db.session() as session:
        users = [
            User(username=name, password_hash="placeholder", email=f"{name}@example.com",
                 name=name.title(), surname="X")
            for name in ("alice", "bob", "carol")
        ]
        session.add_all(users)
        session.flush()
        ticket = PurchasedTicket(price=10.0, type=TicketType.REGULAR, title="GA",
                                 place="Floor", user_id=users[0].id, ticket_id=1)
        session.add(ticket)
        session.flush()
        return users[0].id, users[1].id, users[2].id, ticket.id


def active(sender, receiver, ticket_id):
    return ActiveTicketTransfer(from_user_id=sender, to_user_id=receiver, date=1000,
                                purchased_ticket_id=ticket_id)


def test_create_and_get_preloads(db, parties):
    alice, bob, _, ticket_id = parties
    repo = TransferRepository(db)
    transfer = active(alice, bob, ticket_id)
    repo.create_active(transfer)
    fetched = repo.get_active_by_id(transfer.id)
    assert fetched.status is TransferStatus.PENDING
    assert fetched.from_user.username == "alice"
    assert fetched.to_user.username == "bob"
    assert fetched.purchased_ticket.title == "GA"


def test_get_missing(db):
    with pytest.raises(RecordNotFoundError):
        TransferRepository(db).get_active_by_id(77)


def test_active_listed_for_both_parties(db, parties):
    alice, bob, carol, ticket_id = parties
    repo = TransferRepository(db)
    transfer = active(alice, bob, ticket_id)
    repo.create_active(transfer)
    assert [t.id for t in repo.list_active_by_user(alice)] == [transfer.id]
    assert [t.id for t in repo.list_active_by_user(bob)] == [transfer.id]
    assert repo.list_active_by_user(carol) == []


def test_has_active_transfer(db, parties):
    alice, bob, _, ticket_id = parties
    repo = TransferRepository(db)
    assert repo.has_active_transfer_for_ticket(ticket_id) is False
    repo.create_active(active(alice, bob, ticket_id))
    assert repo.has_active_transfer_for_ticket(ticket_id) is True


@pytest.mark.parametrize("status", [TransferStatus.REJECTED, TransferStatus.CANCELLED])
def test_rejected_moves_out_of_active(db, parties, status):
    alice, bob, _, ticket_id = parties
    repo = TransferRepository(db)
    transfer = active(alice, bob, ticket_id)
    repo.create_active(transfer)
    fetched = repo.get_active_by_id(transfer.id)
    fetched.status = status
    repo.update_active(fetched)
    assert repo.list_active_by_user(alice) == []
    assert [t.id for t in repo.list_rejected_by_user(bob)] == [transfer.id]
    assert repo.has_active_transfer_for_ticket(ticket_id) is False


def test_accepted_is_neither_active_nor_rejected(db, parties):
    alice, bob, _, ticket_id = parties
    repo = TransferRepository(db)
    transfer = active(alice, bob, ticket_id)
    repo.create_active(transfer)
    transfer.status = TransferStatus.ACCEPTED
    repo.update_active(transfer)
    assert repo.get_active_by_id(transfer.id).status is TransferStatus.ACCEPTED
    assert repo.list_active_by_user(alice) == []
    assert repo.list_rejected_by_user(alice) == []


def test_done_transfers_listed(db, parties):
    alice, bob, carol, ticket_id = parties
    repo = TransferRepository(db)
    done = DoneTicketTransfer(from_user_id=alice, to_user_id=bob, date=1000,
                              purchased_ticket_id=ticket_id, completed_at=2000)
    repo.create_done(done)
    history = repo.list_done_by_user(bob)
    assert [t.id for t in history] == [done.id]
    assert history[0].completed_at == 2000
    assert history[0].from_user.username == "alice"
    assert [t.id for t in repo.list_done_by_user(alice)] == [done.id]
    assert repo.list_done_by_user(carol) == []