import random
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

from supplychain.repo.documents import DocumentStore
from supplychain.services.tracking import DELIVERY_STATUS, INVENTORY_UPDATES, SALES_DATA

logger = structlog.get_logger(__name__)

PRODUCT_IDS = ["SKU001", "SKU002", "SKU003", "SKU004", "SKU005"]
CATEGORIES = ["Electronics", "Clothing", "Food", "Books", "Home"]
DELIVERY_STATUSES = ["pending", "picked_up", "on_the_way", "delivered"]
ACTIVE_ORDERS = ["ORDER001", "ORDER002", "ORDER003"]

# центр карты для координат машин доставки
BASE_LAT = 28.6139
BASE_LNG = 77.2090


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SimulationService:
    """
    Генерация синтетических данных для демо.
    rng внедряется, чтобы тесты получали воспроизводимые записи.
    """

    def __init__(self, store: DocumentStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    def generate_inventory_update(self) -> Dict[str, Any]:
        return {
            "product_id": self.rng.choice(PRODUCT_IDS),
            "stock_level": self.rng.randint(1, 100),
            "timestamp": _now_iso(),
            "location": "Warehouse-A",
            "temperature": round(self.rng.uniform(20, 30), 2),
        }

    def generate_delivery_update(self, order_id: str) -> Dict[str, Any]:
        return {
            "order_id": order_id,
            "vehicle_lat": BASE_LAT + (self.rng.random() - 0.5) * 0.1,
            "vehicle_lng": BASE_LNG + (self.rng.random() - 0.5) * 0.1,
            "status": self.rng.choice(DELIVERY_STATUSES),
            "timestamp": _now_iso(),
            "driver_id": f"DRIVER_{self.rng.randint(1, 10)}",
        }

    def generate_sales_data(self) -> Dict[str, Any]:
        quantity = self.rng.randint(1, 10)
        price = round(self.rng.uniform(10, 110), 2)
        return {
            "product_id": self.rng.choice(PRODUCT_IDS),
            "category": self.rng.choice(CATEGORIES),
            "quantity": quantity,
            "price": price,
            "revenue": round(quantity * price, 2),
            "date": _now_iso(),
            "store_id": f"STORE_{self.rng.randint(1, 5)}",
        }

    async def seed(self, inventory_count: int = 10, sales_count: int = 20) -> Dict[str, int]:
        for _ in range(inventory_count):
            await self.store.append(INVENTORY_UPDATES, self.generate_inventory_update())

        for _ in range(sales_count):
            await self.store.append(SALES_DATA, self.generate_sales_data())

        for order_id in ACTIVE_ORDERS:
            await self.store.put(DELIVERY_STATUS, order_id, self.generate_delivery_update(order_id))

        logger.info("simulation.seeded", inventory=inventory_count, sales=sales_count, deliveries=len(ACTIVE_ORDERS))
        return {
            "inventory_updates": inventory_count,
            "sales_data": sales_count,
            "delivery_status": len(ACTIVE_ORDERS),
        }
