import random
from datetime import datetime, timedelta, timezone

import pytest

from conftest import StubLLM
from supplychain.core.exceptions import ForbiddenException, NotFoundException
from supplychain.schemas.analytics import AnalyticsInput, InventoryRecord
from supplychain.schemas.request import CurrentUser, DeliveryAddress, OrderCreate, OrderItem
from supplychain.services.analytics import DEFAULT_REORDER_LEVEL, AnalyticsService
from supplychain.services.orders import OrderService
from supplychain.services.simulation import ACTIVE_ORDERS, SimulationService
from supplychain.services.tracking import INVENTORY_UPDATES, SALES_DATA, TrackingService


def _iso(days_ago: float) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days_ago)).isoformat()


async def test_seed_writes_all_collections(store):
    """Сид: 10 сканов, 20 продаж, 3 статуса доставки"""
    svc = SimulationService(store, rng=random.Random(7))

    counts = await svc.seed()

    assert counts == {"inventory_updates": 10, "sales_data": 20, "delivery_status": 3}
    tracking = TrackingService(store)
    assert len(await tracking.inventory_log()) == 10
    assert len(await tracking.sales_since(1)) == 20
    assert {d["id"] for d in await tracking.deliveries()} == set(ACTIVE_ORDERS)


def test_generated_sales_revenue_matches():
    sale = SimulationService(store=None, rng=random.Random(1)).generate_sales_data()
    assert sale["revenue"] == round(sale["quantity"] * sale["price"], 2)
    assert 1 <= sale["quantity"] <= 10


async def test_missing_delivery_is_404(store):
    with pytest.raises(NotFoundException):
        await TrackingService(store).delivery("ORDER404")


async def test_sales_window_and_order(store):
    await store.append(SALES_DATA, {"date": _iso(2), "quantity": 2})
    await store.append(SALES_DATA, {"date": _iso(10), "quantity": 10})
    await store.append(SALES_DATA, {"date": _iso(1), "quantity": 1})

    sales = await TrackingService(store).sales_since(7)

    assert [s["quantity"] for s in sales] == [1, 2]


async def test_load_sales_oldest_first(store):
    await store.append(SALES_DATA, {"date": _iso(1), "quantity": 3, "price": 2.0})
    await store.append(SALES_DATA, {"date": _iso(3), "quantity": 5, "revenue": 40})
    await store.append(SALES_DATA, {"quantity": 1})  # без даты - пропускается фильтром

    records = await AnalyticsService(store, orchestrator=None).load_sales(30)

    assert [r.quantity for r in records] == [5, 3]
    assert [r.revenue for r in records] == [40, 6]


async def test_load_inventory_takes_latest_scan(store):
    """По каждому товару берётся последний скан; уровень дозаказа из каталога или 20"""
    await store.put("products", "SKU001", {"name": "Milk", "min_stock_level": 15})
    await store.append(INVENTORY_UPDATES, {"product_id": "SKU001", "stock_level": 80, "timestamp": _iso(2)})
    await store.append(INVENTORY_UPDATES, {"product_id": "SKU001", "stock_level": 30, "timestamp": _iso(1)})
    await store.append(INVENTORY_UPDATES, {"product_id": "SKU002", "stock_level": 12, "timestamp": _iso(1)})

    records = await AnalyticsService(store, orchestrator=None).load_inventory()
    by_product = {r.product_id: r for r in records}

    assert by_product["SKU001"].current_stock == 30
    assert by_product["SKU001"].reorder_level == 15
    assert by_product["SKU002"].reorder_level == DEFAULT_REORDER_LEVEL


async def test_explicit_records_skip_the_store(store, make_orchestrator):
    svc = AnalyticsService(store, make_orchestrator(StubLLM(RuntimeError("down"))))
    body = AnalyticsInput(
        sales=[],
        inventory=[InventoryRecord(product_id="SKU001", current_stock=1000, reorder_level=2000)],
    )

    result = await svc.stock_levels(body)

    assert result.status == "low"


def _order() -> OrderCreate:
    return OrderCreate(
        products=[OrderItem(product_id="SKU001", quantity=2, price=9.5)],
        delivery_address=DeliveryAddress(lat=28.6, lng=77.2, address="Main st 1"),
    )


async def test_order_rules(store):
    svc = OrderService(store)
    alice = CurrentUser(id="alice", role="user")
    bob = CurrentUser(id="bob", role="user")
    admin = CurrentUser(id="root", role="admin")

    with pytest.raises(ForbiddenException):
        await svc.create_order(admin, _order())

    order = await svc.create_order(alice, _order())
    assert order["status"] == "pending"
    assert order["customer_id"] == "alice"

    assert (await svc.get_order(alice, order["id"]))["id"] == order["id"]
    with pytest.raises(ForbiddenException):
        await svc.get_order(bob, order["id"])
    assert len(await svc.list_orders(admin)) == 1
    assert await svc.list_orders(bob) == []
