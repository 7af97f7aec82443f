"""Pytest fixtures for LocalDeals backend tests."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from localdeals.auth import create_access_token
from localdeals.database import Base, get_db
from localdeals.main import app
from localdeals.models import Deal, Restaurant, User

# Use SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
test_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

FRISCO = (Decimal("32.9537"), Decimal("-96.8236"))
DALLAS = (Decimal("32.7767"), Decimal("-96.7970"))
SEATTLE = (Decimal("47.6062"), Decimal("-122.3321"))


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_db():
    async with test_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def db():
    async with test_session() as session:
        yield session


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(str(user.id), user.user_type)
    return {"Authorization": f"Bearer {token}"}


async def make_user(db: AsyncSession, user_type: str = "customer", email: str | None = None) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email or f"{uuid.uuid4().hex[:8]}@example.com",
        first_name="Test",
        last_name=user_type.title(),
        user_type=user_type,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_restaurant(
    db: AsyncSession,
    owner: User,
    *,
    name: str = "Taqueria Frisco",
    coords: tuple[Decimal, Decimal] | None = FRISCO,
    cuisine_types: list[str] | None = None,
    rating: str = "4.50",
    city: str = "Frisco",
    state: str = "TX",
    zip_code: str = "75035",
    description: str | None = None,
) -> Restaurant:
    restaurant = Restaurant(
        id=uuid.uuid4(),
        owner_id=owner.id,
        name=name,
        description=description,
        address="123 Main St",
        city=city,
        state=state,
        zip_code=zip_code,
        latitude=coords[0] if coords else None,
        longitude=coords[1] if coords else None,
        phone="555-0100",
        cuisine_types=cuisine_types if cuisine_types is not None else ["Mexican"],
        rating=Decimal(rating),
        deal_limit=5,
        deals_used_this_month=0,
    )
    db.add(restaurant)
    await db.commit()
    await db.refresh(restaurant)
    return restaurant


async def make_deal(
    db: AsyncSession,
    restaurant: Restaurant,
    *,
    title: str = "Taco Tuesday",
    description: str | None = "Two tacos for the price of one",
    original_price: str = "12.00",
    deal_price: str = "6.00",
    ends_in: timedelta = timedelta(hours=3),
    is_active: bool = True,
) -> Deal:
    now = datetime.now(timezone.utc)
    deal = Deal(
        id=uuid.uuid4(),
        restaurant_id=restaurant.id,
        title=title,
        description=description,
        original_price=Decimal(original_price),
        deal_price=Decimal(deal_price),
        start_time=now,
        end_time=now + ends_in,
        is_active=is_active,
    )
    db.add(deal)
    await db.commit()
    await db.refresh(deal)
    return deal


@pytest_asyncio.fixture
async def customer(db: AsyncSession) -> User:
    return await make_user(db, "customer")


@pytest_asyncio.fixture
async def owner(db: AsyncSession) -> User:
    return await make_user(db, "restaurant")


@pytest_asyncio.fixture
async def restaurant(db: AsyncSession, owner: User) -> Restaurant:
    return await make_restaurant(db, owner)


@pytest_asyncio.fixture
async def deal(db: AsyncSession, restaurant: Restaurant) -> Deal:
    return await make_deal(db, restaurant)
