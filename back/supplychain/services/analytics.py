# supplychain/services/analytics.py

from __future__ import annotations

from typing import Any, Dict, List, Tuple

import structlog
from pydantic import ValidationError

from supplychain.analytics.orchestrator import AnalyticsOrchestrator
from supplychain.repo.documents import DocumentStore
from supplychain.schemas.analytics import (
    AccuracyInput,
    AccuracyResult,
    AnalysisKind,
    AnalyticsInput,
    AnalyticsRequest,
    ComprehensiveAnalytics,
    ComprehensiveAnalyticsInput,
    ImageAnalysisResult,
    InventoryRecord,
    SalesQuantityResult,
    SalesRecord,
    StockLevelsResult,
    StockoutAndVolumeResult,
)
from supplychain.services.products import PRODUCTS
from supplychain.services.tracking import INVENTORY_UPDATES, SALES_DATA, since_iso

logger = structlog.get_logger(__name__)

DEFAULT_REORDER_LEVEL = 20
INVENTORY_SCAN_LIMIT = 100


def sales_record_from_doc(doc: Dict[str, Any]) -> SalesRecord:
    quantity = float(doc.get("quantity") or 0)
    revenue = doc.get("revenue")
    if revenue is None:
        revenue = quantity * float(doc.get("price") or 0)
    return SalesRecord(
        date=doc["date"],
        product_id=doc.get("product_id"),
        quantity=quantity,
        revenue=revenue,
        category=doc.get("category"),
    )


def inventory_record_from_doc(doc: Dict[str, Any], reorder_levels: Dict[str, float]) -> InventoryRecord:
    product_id = doc.get("product_id")
    reorder = doc.get("reorder_level")
    if reorder is None:
        reorder = reorder_levels.get(product_id, DEFAULT_REORDER_LEVEL)
    return InventoryRecord(
        product_id=product_id,
        current_stock=doc.get("current_stock", doc.get("stock_level")) or 0,
        reorder_level=reorder,
        category=doc.get("category"),
        timestamp=doc.get("timestamp"),
    )


class AnalyticsService:
    """
    Связка хранилища и оркестратора для роутов /api/analytics.

    Если в теле запроса нет явных записей, берём:
    - продажи за последние `days` дней, от старых к новым
    - последний скан остатка по каждому товару
    """

    def __init__(self, store: DocumentStore, orchestrator: AnalyticsOrchestrator):
        self.store = store
        self.orchestrator = orchestrator

    async def load_sales(self, days: int) -> List[SalesRecord]:
        docs = await self.store.query(SALES_DATA, [("date", ">=", since_iso(days))], order_by="date")
        records = []
        for doc in docs:
            try:
                records.append(sales_record_from_doc(doc))
            except (KeyError, ValueError, ValidationError) as e:
                logger.warning("analytics.skip_sales_doc", doc_id=doc.get("id"), error=str(e))
        return records

    async def load_inventory(self) -> List[InventoryRecord]:
        docs = await self.store.query(
            INVENTORY_UPDATES, order_by="timestamp", descending=True, limit=INVENTORY_SCAN_LIMIT
        )
        products = await self.store.query(PRODUCTS)
        reorder_levels = {
            p["id"]: p["min_stock_level"] for p in products if p.get("min_stock_level") is not None
        }

        latest: Dict[str, Dict[str, Any]] = {}
        for doc in docs:
            # docs уже отсортированы от новых к старым
            latest.setdefault(doc.get("product_id") or doc["id"], doc)

        records = []
        for doc in latest.values():
            try:
                records.append(inventory_record_from_doc(doc, reorder_levels))
            except (ValueError, ValidationError) as e:
                logger.warning("analytics.skip_inventory_doc", doc_id=doc.get("id"), error=str(e))
        return records

    async def _inputs(self, body: AnalyticsInput) -> Tuple[List[SalesRecord], List[InventoryRecord]]:
        sales = body.sales if body.sales is not None else await self.load_sales(body.days)
        inventory = body.inventory if body.inventory is not None else await self.load_inventory()
        return sales, inventory

    async def comprehensive(self, body: ComprehensiveAnalyticsInput) -> ComprehensiveAnalytics:
        sales, inventory = await self._inputs(body)
        return await self.orchestrator.get_comprehensive_analytics(
            sales, inventory, body.historical_predictions, body.actual_results
        )

    async def sales_quantity(self, body: AnalyticsInput) -> SalesQuantityResult:
        sales, _ = await self._inputs(body.model_copy(update={"inventory": []}))
        return await self.orchestrator.analyze(
            AnalyticsRequest(kind=AnalysisKind.SALES_QUANTITY, sales=tuple(sales))
        )

    async def stock_levels(self, body: AnalyticsInput) -> StockLevelsResult:
        sales, inventory = await self._inputs(body)
        return await self.orchestrator.analyze(
            AnalyticsRequest(kind=AnalysisKind.STOCK_LEVELS, sales=tuple(sales), inventory=tuple(inventory))
        )

    async def stockout_and_volume(self, body: AnalyticsInput) -> StockoutAndVolumeResult:
        sales, inventory = await self._inputs(body)
        return await self.orchestrator.analyze(
            AnalyticsRequest(kind=AnalysisKind.STOCKOUT_AND_VOLUME, sales=tuple(sales), inventory=tuple(inventory))
        )

    def accuracy(self, body: AccuracyInput) -> AccuracyResult:
        return self.orchestrator.calculate_model_accuracy(body.historical_predictions, body.actual_results)

    async def shelf_image(self, image: bytes) -> ImageAnalysisResult:
        return await self.orchestrator.analyze(
            AnalyticsRequest(kind=AnalysisKind.IMAGE_SHELF_ANALYSIS, image=image)
        )
