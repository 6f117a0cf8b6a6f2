import pytest
from sqlalchemy import create_engine, func, inspect, select
from sqlalchemy.pool import StaticPool

from eticketing.config import Config, ConfigError, DatabaseConfig
from eticketing.database import Database, RecordNotFoundError, build_url
from eticketing.models import User


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )
    database = Database(engine)
    database.auto_migrate()
    yield database
    database.close()


def test_build_url_defaults():
    url = build_url(Config())
    assert url.render_as_string(hide_password=False) == (
        "mysql+pymysql://root@localhost:3306/e_ticketing_dev?charset=utf8mb4"
    )


def test_build_url_carries_credentials():
    password = "password"
    cfg = Config(database=DatabaseConfig(host="db.example.com", port="3307", user="user",
                                         password=password, name="tickets"))
    url = build_url(cfg)
    assert url.username == "user"
    assert url.password == "password"
    assert url.host == "db.example.com"
    assert url.port == 3307
    assert url.database == "tickets"
    assert url.query["charset"] == "utf8mb4"


def test_build_url_rejects_bad_port():
    with pytest.raises(ConfigError):
        build_url(Config(database=DatabaseConfig(port="abc")))


def test_auto_migrate_creates_tables(db):
    names = set(inspect(db.engine).get_table_names())
    expected = {
        "admins", "users", "events", "sales", "tickets", "purchased_tickets",
        "payments", "payment_methods", "active_ticket_transfers", "done_ticket_transfers",
    }
    assert expected <= names


def test_auto_migrate_is_idempotent(db):
    db.auto_migrate()
    assert "users" in inspect(db.engine).get_table_names()


def test_session_commits(db):
    with db.session() as session:
        session.add(User(username="alice", password_hash="placeholder",
                         email="alice@example.com", name="Alice", surname="A"))
    with db.session() as session:
        assert session.scalar(select(func.count()).select_from(User)) == 1


def test_session_rolls_back_on_error(db):
    with pytest.raises(RuntimeError):
        with db.session() as session:
            session.add(User(username="bob", password_hash="placeholder",
                             email="bob@example.com", name="Bob", surname="B"))
            session.flush()
            raise RuntimeError("boom")
    with db.session() as session:
        assert session.scalar(select(func.count()).select_from(User)) == 0


def test_ping_succeeds_on_live_engine(db):
    assert db.ping() is None
    with db.engine.connect() as conn:
        assert conn.exec_driver_sql("SELECT 1").scalar() == 1


def test_record_not_found_is_lookup_error():
    err = RecordNotFoundError("missing")
    assert isinstance(err, LookupError)
    assert "missing" in str(err)