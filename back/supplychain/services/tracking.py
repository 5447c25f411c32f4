from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from supplychain.core.exceptions import NotFoundException
from supplychain.repo.documents import DocumentStore

INVENTORY_UPDATES = "inventory_updates"
DELIVERY_STATUS = "delivery_status"
SALES_DATA = "sales_data"

INVENTORY_LOG_LIMIT = 100


def since_iso(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


class TrackingService:
    """
    Чтение операционных данных для админского дашборда:
    журнал остатков, статусы доставки, сырые продажи.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def inventory_log(self, limit: int = INVENTORY_LOG_LIMIT) -> List[Dict[str, Any]]:
        return await self.store.query(
            INVENTORY_UPDATES, order_by="timestamp", descending=True, limit=limit
        )

    async def deliveries(self) -> List[Dict[str, Any]]:
        return await self.store.query(DELIVERY_STATUS)

    async def delivery(self, order_id: str) -> Dict[str, Any]:
        status = await self.store.get(DELIVERY_STATUS, order_id)
        if status is None:
            raise NotFoundException("Order")
        return status

    async def sales_since(self, days: int) -> List[Dict[str, Any]]:
        return await self.store.query(
            SALES_DATA,
            [("date", ">=", since_iso(days))],
            order_by="date",
            descending=True,
        )
