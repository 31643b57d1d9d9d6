"""Pytest configuration and fixtures."""

import os

# Keep the app's own engine off the filesystem during tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import datetime
from typing import Dict, Generator, Optional

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from foodcost.core.metrics import DataQualityMetrics
from foodcost.db.base import Base
from foodcost.db.session import get_db
from foodcost.main import app
# Import all models to ensure they're registered with Base.metadata
from foodcost.models import *
from foodcost.services.storage import SqlAlchemyStorage

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.metrics = DataQualityMetrics()
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def metrics() -> DataQualityMetrics:
    return DataQualityMetrics()


@pytest.fixture
def storage(db_session: Session) -> SqlAlchemyStorage:
    return SqlAlchemyStorage(db_session)


# ==================== Tenants ====================

@pytest.fixture
def test_company(db_session: Session) -> Company:
    """Create the tenant most tests run as."""
    company = Company(name="Test Pizzeria Group")
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


@pytest.fixture
def other_company(db_session: Session) -> Company:
    """Create a second tenant for isolation tests."""
    company = Company(name="Other Restaurant Co")
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


@pytest.fixture
def test_store(db_session: Session, test_company: Company) -> Store:
    store = Store(company_id=test_company.id, name="Downtown", code="DT")
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def sister_store(db_session: Session, test_company: Company) -> Store:
    """Another store of the same company, for transfers."""
    store = Store(company_id=test_company.id, name="Uptown", code="UT")
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def other_store(db_session: Session, other_company: Company) -> Store:
    store = Store(company_id=other_company.id, name="Elsewhere", code="EW")
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def company_headers(test_company: Company) -> dict:
    return {"X-Company-Id": str(test_company.id)}


# ==================== Catalog ====================

@pytest.fixture
def units(db_session: Session) -> Dict[str, Unit]:
    """Create lb, oz, g and ea with a single lb -> oz edge (1 lb = 16 oz)."""
    created = {
        "lb": Unit(name="Pound", abbreviation="lb", kind="weight"),
        "oz": Unit(name="Ounce", abbreviation="oz", kind="weight"),
        "g": Unit(name="Gram", abbreviation="g", kind="weight"),
        "ea": Unit(name="Each", abbreviation="ea", kind="count"),
    }
    db_session.add_all(created.values())
    db_session.flush()
    db_session.add(UnitConversion(
        from_unit_id=created["lb"].id, to_unit_id=created["oz"].id, conversion_factor=16.0,
    ))
    db_session.commit()
    return created


@pytest.fixture
def make_category(db_session: Session, test_company: Company):
    def _make(name: str, company: Optional[Company] = None) -> Category:
        category = Category(company_id=(company or test_company).id, name=name)
        db_session.add(category)
        db_session.commit()
        db_session.refresh(category)
        return category
    return _make


@pytest.fixture
def make_item(db_session: Session, test_company: Company, units: Dict[str, Unit]):
    """Factory for inventory items; unit is given by abbreviation."""
    def _make(
        name: str,
        unit: str = "lb",
        price: float = 0.0,
        yield_percent: float = 100.0,
        company: Optional[Company] = None,
        category: Optional[Category] = None,
        plu_sku: Optional[str] = None,
        avg_cost: float = 0.0,
        active: bool = True,
    ) -> InventoryItem:
        item = InventoryItem(
            company_id=(company or test_company).id,
            name=name,
            unit_id=units[unit].id,
            price_per_unit=price,
            avg_cost_per_unit=avg_cost,
            yield_percent=yield_percent,
            category_id=category.id if category else None,
            plu_sku=plu_sku,
            active=active,
        )
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item
    return _make


@pytest.fixture
def test_vendor(db_session: Session, test_company: Company) -> Vendor:
    vendor = Vendor(company_id=test_company.id, name="Sysco Metro", vendor_key="sysco")
    db_session.add(vendor)
    db_session.commit()
    db_session.refresh(vendor)
    return vendor


# ==================== Recipes ====================

@pytest.fixture
def make_recipe(db_session: Session, test_company: Company):
    def _make(name: str, company: Optional[Company] = None) -> Recipe:
        recipe = Recipe(company_id=(company or test_company).id, name=name)
        db_session.add(recipe)
        db_session.commit()
        db_session.refresh(recipe)
        return recipe
    return _make


@pytest.fixture
def add_component(db_session: Session, units: Dict[str, Unit]):
    """Attach an inventory item or a sub-recipe to a recipe."""
    def _add(
        recipe: Recipe,
        target,
        qty: float,
        unit: str = "lb",
        component_id: Optional[int] = None,
        component_type: Optional[ComponentType] = None,
    ) -> RecipeComponent:
        if component_type is None:
            component_type = ComponentType.RECIPE if isinstance(target, Recipe) else ComponentType.INVENTORY_ITEM
        component = RecipeComponent(
            recipe_id=recipe.id,
            component_type=component_type,
            component_id=component_id if component_id is not None else target.id,
            qty=qty,
            unit_id=units[unit].id,
            sort_order=len(recipe.components),
        )
        db_session.add(component)
        db_session.commit()
        db_session.refresh(recipe)
        return component
    return _add


@pytest.fixture
def make_menu_item(db_session: Session, test_company: Company):
    def _make(name: str, recipe: Optional[Recipe] = None, price: float = 12.0) -> MenuItem:
        menu_item = MenuItem(
            company_id=test_company.id,
            name=name,
            recipe_id=recipe.id if recipe else None,
            price=price,
        )
        db_session.add(menu_item)
        db_session.commit()
        db_session.refresh(menu_item)
        return menu_item
    return _make


# ==================== Ledger ====================

@pytest.fixture
def make_count(db_session: Session):
    """Factory for an inventory count with {item: qty} lines."""
    def _make(store: Store, count_date: datetime, lines: Dict[InventoryItem, float]) -> InventoryCount:
        count = InventoryCount(company_id=store.company_id, store_id=store.id, count_date=count_date)
        count.lines = [
            InventoryCountLine(inventory_item_id=item.id, qty=qty, storage_location="main")
            for item, qty in lines.items()
        ]
        db_session.add(count)
        db_session.commit()
        db_session.refresh(count)
        return count
    return _make


@pytest.fixture
def make_receipt(db_session: Session, units: Dict[str, Unit]):
    """Factory for a received purchase order line of one item."""
    def _make(
        store: Store,
        item: InventoryItem,
        qty: float,
        expected_date: Optional[datetime],
        received_at: Optional[datetime] = None,
        status: str = "completed",
    ) -> Receipt:
        vendor = Vendor(company_id=store.company_id, name=f"Vendor for {item.name}")
        db_session.add(vendor)
        db_session.flush()
        vendor_item = VendorItem(
            vendor_id=vendor.id,
            inventory_item_id=item.id,
            vendor_sku=f"SKU-{item.id}",
            purchase_unit_id=item.unit_id,
        )
        po = PurchaseOrder(
            company_id=store.company_id,
            store_id=store.id,
            vendor_id=vendor.id,
            status="received",
            expected_date=expected_date,
        )
        db_session.add_all([vendor_item, po])
        db_session.flush()
        receipt = Receipt(
            company_id=store.company_id,
            store_id=store.id,
            purchase_order_id=po.id,
            status=status,
        )
        if received_at is not None:
            receipt.received_at = received_at
        receipt.lines = [ReceiptLine(vendor_item_id=vendor_item.id, received_qty=qty, price_each=0)]
        db_session.add(receipt)
        db_session.commit()
        db_session.refresh(receipt)
        return receipt
    return _make


@pytest.fixture
def make_transfer(db_session: Session):
    def _make(
        from_store: Store,
        to_store: Store,
        item: InventoryItem,
        qty: float,
        completed_at: Optional[datetime],
        status: str = "completed",
    ) -> TransferOrder:
        transfer = TransferOrder(
            company_id=from_store.company_id,
            from_store_id=from_store.id,
            to_store_id=to_store.id,
            status=status,
            completed_at=completed_at,
        )
        transfer.lines = [TransferOrderLine(inventory_item_id=item.id, requested_qty=qty, shipped_qty=qty)]
        db_session.add(transfer)
        db_session.commit()
        db_session.refresh(transfer)
        return transfer
    return _make


@pytest.fixture
def make_waste(db_session: Session):
    def _make(
        store: Store,
        qty: float,
        wasted_at: datetime,
        item: Optional[InventoryItem] = None,
        menu_item: Optional[MenuItem] = None,
        waste_type: WasteType = WasteType.INVENTORY,
    ) -> WasteLog:
        waste = WasteLog(
            company_id=store.company_id,
            store_id=store.id,
            waste_type=waste_type,
            inventory_item_id=item.id if item else None,
            menu_item_id=menu_item.id if menu_item else None,
            qty=qty,
            reason_code="SPOILED",
            wasted_at=wasted_at,
        )
        db_session.add(waste)
        db_session.commit()
        db_session.refresh(waste)
        return waste
    return _make


@pytest.fixture
def make_run(db_session: Session):
    """Factory for a stored theoretical usage run with {item: (qty, cost)} lines."""
    def _make(
        store: Store,
        sales_date: datetime,
        lines: Dict[InventoryItem, tuple],
        status: RunStatus = RunStatus.COMPLETED,
    ) -> TheoreticalUsageRun:
        run = TheoreticalUsageRun(
            company_id=store.company_id,
            store_id=store.id,
            sales_date=sales_date,
            source_batch_id=f"batch-{sales_date.date().isoformat()}",
            status=status,
            total_theoretical_cost=sum(cost for _, cost in lines.values()),
        )
        run.lines = [
            TheoreticalUsageLine(
                inventory_item_id=item.id,
                required_qty_base_unit=qty,
                base_unit_id=item.unit_id,
                cost_at_sale=cost,
                cost_at_sale_wac=cost,
                source_menu_items=[],
            )
            for item, (qty, cost) in lines.items()
        ]
        db_session.add(run)
        db_session.commit()
        db_session.refresh(run)
        return run
    return _make
