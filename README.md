# eticketing

The storage and request-handling core of an event ticketing service.
Sellers publish events and sale windows, tickets are grouped by price,
type and place, buyers purchase and transfer tickets, and payments are
recorded against users and sellers.

## Modules

- `eticketing.models` — SQLAlchemy models on a shared declarative `Base`:
  `User`, `Seller`, `Admin`, `Event`, `Sale`, `Ticket`, `PurchasedTicket`,
  `Payment`, `PaymentMethod`, `ActiveTicketTransfer` and
  `DoneTicketTransfer`, plus the integer enums `EventStatus`,
  `PaymentType`, `PaymentStatus`, `TicketType`, `TransferStatus` and
  `UserType`. The dataclass `GroupedTicket` describes one aggregated group
  of identical tickets with its total, available, sold and held counts.
  `to_dict(model)` turns a model or a `GroupedTicket` into a dictionary of
  its column values, enums as plain integers, never including
  `password_hash`.
- `eticketing.config` — `load(environ)` reads settings from a mapping of
  environment variables (`os.environ` when none is given) into a frozen
  `Config` made of `ServerConfig`, `DatabaseConfig`, `RedisConfig`,
  `JWTConfig` and `PaymentConfig`. `parse_duration` reads durations such as
  `10s`, `1h30m` or `1.5ms` into a `timedelta`. Malformed integers,
  booleans or durations raise `ConfigError`.
- `eticketing.database` — `build_url(config)` produces the
  `mysql+pymysql` URL, and `connect(config)` creates a pooled engine,
  checks it answers, and returns a `Database` with `session()`, `ping()`,
  `close()` and `auto_migrate()` (which creates any missing tables). A
  `Database` is also a context manager that closes itself. Lookups that
  find nothing raise `RecordNotFoundError`.
- `eticketing.repositories` — each repository takes a `Database` and runs
  every call in its own session:
  - `accounts`: `UserRepository`, `SellerRepository`, `AdminRepository`
  - `events`: `EventRepository`, `PaymentRepository`
  - `tickets`: `TicketRepository`, `PurchasedTicketRepository`,
    `TicketStats`
  - `sales`: `SaleRepository`, `PaymentMethodRepository`
  - `transfers`: `TransferRepository`
- `eticketing.ratelimit` — `RateLimiter(rate, capacity)`, a per-client
  token bucket: `allow(ip)` takes a token, refilling one every `rate`
  seconds up to `capacity`, and `cleanup(max_idle)` forgets clients idle
  for longer than `max_idle` seconds.
- `eticketing.middleware` — WSGI middleware:
  - `cors_middleware` adds permissive CORS headers and answers `OPTIONS`
    with `204`;
  - `recovery_middleware` turns unhandled exceptions into a JSON `500`;
  - `logging_middleware` writes one access line per request, built by
    `format_access_line`, to a stream (stderr by default);
  - `rate_limit_middleware` answers `429` with a JSON body once a client
    runs out of tokens (by default 500 requests, one token back per
    minute).

## Configuration

| Variable | Default |
| --- | --- |
| `SERVER_PORT` | `8080` |
| `SERVER_HOST` | `0.0.0.0` |
| `SERVER_READ_TIMEOUT` / `SERVER_WRITE_TIMEOUT` | `10s` |
| `DB_HOST` | `localhost` |
| `DB_PORT` | `3306` |
| `DB_USER` | `root` |
| `DB_PASSWORD` | empty |
| `DB_NAME` | `e_ticketing_dev` |
| `DB_SSL_MODE` | `disable` |
| `DB_MAX_CONNS` / `DB_MAX_IDLE` | `25` / `5` |
| `REDIS_HOST` / `REDIS_PORT` / `REDIS_DB` | `localhost` / `6379` / `0` |
| `JWT_SECRET` | empty |
| `JWT_ACCESS_DURATION` | `15m` |
| `JWT_REFRESH_DURATION` | `168h` |
| `JWT_ISSUER` | `e-ticketing-system` |
| `PAYMENT_IS_MOCKED` | `true` |

`connect` uses the `mysql+pymysql` dialect, so the PyMySQL driver must be
installed alongside this package to reach a MySQL server.

## Getting started

```python
from eticketing.config import load
from eticketing.database import connect
from eticketing.models import EventStatus, to_dict
from eticketing.repositories.events import EventRepository

config = load()
with connect(config) as db:
    db.auto_migrate()
    events = EventRepository(db)
    for event in events.list_by_status(EventStatus.APPROVED, 20, 0):
        print(to_dict(event))
```

Wrapping a WSGI application:

```python
from eticketing.middleware import (
    cors_middleware, logging_middleware, rate_limit_middleware, recovery_middleware,
)

app = rate_limit_middleware(cors_middleware(recovery_middleware(app)))
app = logging_middleware(app)
```

## What this package does not do

It has no HTTP routes, request handlers or business rules for buying,
transferring or paying for tickets, no token issuing or checking, and no
command or server to start. `JWTConfig` and `RedisConfig` are only read
from the environment; nothing in the package uses them.