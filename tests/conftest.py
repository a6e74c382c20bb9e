import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers tables
from app.db.base import Base
from app.repositories.order_sync_repository import OrderSyncRepository
from app.services.order_sync import OrderSyncService
from app.services.surecart.orders import SureCartOrders
from app.services.surecart.products import SureCartStorefront
from app.services.sync_orchestrator import SyncOrchestrator
from tests.factories import (
    FakeCatalog,
    FakeClock,
    FakeSureCartClient,
    InMemoryStateRepository,
    make_product,
)


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(db_session_factory):
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return FakeCatalog([make_product(f"p{i}") for i in range(1, 8)])


@pytest.fixture
def surecart():
    return FakeSureCartClient()


@pytest.fixture
def storefront(surecart):
    return SureCartStorefront(surecart, media_delay=0)


@pytest.fixture
def state_repository():
    return InMemoryStateRepository()


@pytest.fixture
def orchestrator(catalog, storefront, state_repository, clock):
    return SyncOrchestrator(
        catalog=catalog,
        storefront=storefront,
        repository=state_repository,
        shop_id="shop-1",
        batch_size=3,
        time_budget=20.0,
        stall_threshold=300,
        clock=clock,
    )


@pytest.fixture
def order_service(db, catalog, surecart):
    return OrderSyncService(
        printify=catalog,
        orders=SureCartOrders(surecart),
        repository=OrderSyncRepository(db),
    )
