import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

import structlog

from supplychain.core.exceptions import ForbiddenException, NotFoundException
from supplychain.repo.documents import DocumentStore
from supplychain.schemas.request import CurrentUser, OrderCreate

logger = structlog.get_logger(__name__)

ORDERS = "orders"


class OrderService:
    """
    Заказы создают только пользователи с ролью user.
    Админ видит все заказы, пользователь - только свои.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_order(self, user: CurrentUser, payload: OrderCreate) -> Dict[str, Any]:
        if user.role != "user":
            raise ForbiddenException("Only users can create orders")

        order_id = uuid.uuid4().hex
        order = {
            "id": order_id,
            "customer_id": user.id,
            **payload.model_dump(),
            "status": "pending",
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        await self.store.put(ORDERS, order_id, order)
        logger.info("order.created", order_id=order_id, customer_id=user.id, items=len(payload.products))
        return order

    async def list_orders(self, user: CurrentUser) -> List[Dict[str, Any]]:
        if user.role == "admin":
            return await self.store.query(ORDERS)
        return await self.store.query(ORDERS, [("customer_id", "==", user.id)])

    async def get_order(self, user: CurrentUser, order_id: str) -> Dict[str, Any]:
        order = await self.store.get(ORDERS, order_id)
        if order is None:
            raise NotFoundException("Order")
        if user.role != "admin" and order.get("customer_id") != user.id:
            raise ForbiddenException("Unauthorized")
        return order
