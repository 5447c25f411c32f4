import uuid
from typing import Any, Dict, List

import structlog

from supplychain.core.exceptions import NotFoundException
from supplychain.repo.documents import DocumentStore
from supplychain.schemas.request import ProductCreate

logger = structlog.get_logger(__name__)

PRODUCTS = "products"


class ProductService:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_product(self, payload: ProductCreate) -> Dict[str, Any]:
        product_id = uuid.uuid4().hex
        product = {"id": product_id, **payload.model_dump(exclude_none=True)}
        await self.store.put(PRODUCTS, product_id, product)
        logger.info("product.created", product_id=product_id, name=payload.name)
        return product

    async def list_products(self) -> List[Dict[str, Any]]:
        return await self.store.query(PRODUCTS)

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        product = await self.store.get(PRODUCTS, product_id)
        if product is None:
            raise NotFoundException("Product")
        return product
