"""
Pytest fixtures for test database, client, ledger, and authentication.

Tests run against a throwaway SQLite file (aiosqlite) with tables created
and dropped per test for isolation. Redis is disabled and the token ledger
is replaced by an in-memory fake.
"""

import os
import tempfile

# Must be set before any greenlake import reads the settings
_TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f"greenlake_test_{os.getpid()}.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_PATH}"
os.environ["REDIS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["LEDGER_SIGNER_MODE"] = "custodial"

from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Awaitable, Callable, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from greenlake.main import app
from greenlake.db.base import Base
from greenlake.db.session import get_db
from greenlake.core.exceptions import LedgerError
from greenlake.core.security import create_access_token, hash_password
from greenlake.infrastructure.ledger_client import get_ledger
from greenlake.models.cart import Cart
from greenlake.models.catalog import Hotel, HotelOccupancy, VehicleType
from greenlake.models.reward import Amenity, Discount
from greenlake.models.user import User

TEST_DATABASE_URL = os.environ["DATABASE_URL"]

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

WALLET_ADDRESS = "0x" + "1" * 40
OTHER_WALLET_ADDRESS = "0x" + "2" * 40
PRIVATE_KEY = "0x" + "ab" * 32


class FakeLedger:
    """In-memory stand-in for LedgerClient with the same async surface."""

    def __init__(self):
        self.balances: Dict[str, int] = {}
        self.burns: List[Tuple[str, int, dict]] = []
        self.mints: List[Tuple[str, int]] = []
        self.transfers: List[Tuple[str, str, int, dict]] = []
        self.balance_calls = 0
        self.fail_balance = False
        self.fail_burn = False
        self.fail_transfer = False
        # Runs inside get_balance, i.e. after validation and before the burn
        self.on_balance: Optional[Callable[[], Awaitable[None]]] = None
        self._wallets = 0

    async def get_balance(self, address: str) -> int:
        self.balance_calls += 1
        if self.fail_balance:
            raise LedgerError("Ledger unreachable: connection refused")
        if self.on_balance is not None:
            await self.on_balance()
        return self.balances.get(address, 0)

    async def burn(self, address: str, amount: int, signer) -> dict:
        if self.fail_burn:
            raise LedgerError("Burn was not confirmed by the ledger", status_code=500)
        if self.balances.get(address, 0) < amount:
            raise LedgerError("Insufficient balance", status_code=400)
        self.balances[address] -= amount
        self.burns.append((address, amount, signer.authorize(address)))
        return {"success": True, "transactionHash": f"0xburn{len(self.burns)}"}

    async def mint(self, address: str, amount: int) -> dict:
        self.balances[address] = self.balances.get(address, 0) + amount
        self.mints.append((address, amount))
        return {"success": True, "transactionHash": f"0xmint{len(self.mints)}"}

    async def transfer(self, from_address: str, to_address: str, amount: int, signer) -> dict:
        if self.fail_transfer:
            raise LedgerError("Transfer failed", status_code=500)
        self.balances[from_address] = self.balances.get(from_address, 0) - amount
        self.balances[to_address] = self.balances.get(to_address, 0) + amount
        self.transfers.append((from_address, to_address, amount, signer.authorize(from_address)))
        return {"success": True, "transactionHash": f"0xtransfer{len(self.transfers)}"}

    async def create_wallet(self, username: str) -> dict:
        self._wallets += 1
        return {"address": "0x" + f"{self._wallets:040x}", "privateKey": PRIVATE_KEY}


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def session_factory():
    """Opens sessions on their own connections, e.g. to play a competing request."""
    return TestSessionLocal


@pytest.fixture
def wallet_address() -> str:
    return WALLET_ADDRESS


@pytest.fixture
def private_key() -> str:
    return PRIVATE_KEY


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, fake_ledger: FakeLedger) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB and ledger dependencies overridden."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger] = lambda: fake_ledger

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A user with a custodial wallet and an empty cart."""
    user = User(
        email="test@example.com",
        name="Test User",
        hashed_password=hash_password("Testpass1!"),
        wallet_address=WALLET_ADDRESS,
        private_key=PRIVATE_KEY,
    )
    db_session.add(user)
    await db_session.flush()
    db_session.add(Cart(user_id=user.id))
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second user without a wallet."""
    user = User(
        email="other@example.com",
        name="Other User",
        hashed_password=hash_password("Otherpass1!"),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return _headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest_asyncio.fixture
async def funded_wallet(test_user: User, fake_ledger: FakeLedger) -> str:
    """The test user's wallet holding 100 tokens."""
    fake_ledger.balances[WALLET_ADDRESS] = 100
    return WALLET_ADDRESS


@pytest_asyncio.fixture
async def test_hotel(db_session: AsyncSession) -> Hotel:
    """A hotel at 50% occupancy for the first week of June 2030."""
    hotel = Hotel(name="Hotel Lago Verde")
    db_session.add(hotel)
    await db_session.flush()
    for day in range(1, 8):
        db_session.add(HotelOccupancy(
            hotel_id=hotel.id,
            date=date(2030, 6, day),
            occupancy_rate=50.0,
            confirmed_bookings=40,
            cancellations=2,
            average_price_per_night=12000,
        ))
    await db_session.commit()
    await db_session.refresh(hotel)
    return hotel


@pytest_asyncio.fixture
async def full_hotel(db_session: AsyncSession) -> Hotel:
    """A hotel at 99% occupancy: one room left every day."""
    hotel = Hotel(name="Hotel Casi Lleno")
    db_session.add(hotel)
    await db_session.flush()
    for day in range(1, 8):
        db_session.add(HotelOccupancy(hotel_id=hotel.id, date=date(2030, 6, day), occupancy_rate=99.0))
    await db_session.commit()
    await db_session.refresh(hotel)
    return hotel


@pytest_asyncio.fixture
async def test_vehicle(db_session: AsyncSession) -> VehicleType:
    vehicle = VehicleType(name="Bicicleta")
    db_session.add(vehicle)
    await db_session.commit()
    await db_session.refresh(vehicle)
    return vehicle


def _discount(**overrides) -> Discount:
    now = datetime.now(timezone.utc)
    values = dict(
        name="10% en Hotel Lago Verde",
        description="Descuento para estancias",
        token_cost=50,
        discount_type="PERCENTAGE",
        discount_value=10.0,
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=1),
        max_uses=None,
        used_count=0,
        is_active=True,
        applicable_to=["HOTEL"],
    )
    values.update(overrides)
    return Discount(**values)


@pytest_asyncio.fixture
async def make_discount(db_session: AsyncSession):
    """Factory: persist a discount that is valid today unless overridden."""

    async def _make(**overrides) -> Discount:
        discount = _discount(**overrides)
        db_session.add(discount)
        await db_session.commit()
        await db_session.refresh(discount)
        return discount

    return _make


@pytest_asyncio.fixture
async def test_discount(make_discount) -> Discount:
    """Single-use discount costing 50 tokens."""
    return await make_discount(max_uses=1)


@pytest_asyncio.fixture
async def test_amenity(db_session: AsyncSession) -> Amenity:
    amenity = Amenity(
        name="Alquiler de bicicleta",
        description="Un día de bicicleta eléctrica",
        amenity_type="TRANSPORT",
        token_cost=20,
        is_active=True,
        max_quantity=3,
    )
    db_session.add(amenity)
    await db_session.commit()
    await db_session.refresh(amenity)
    return amenity
