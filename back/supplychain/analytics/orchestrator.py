from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Optional, Sequence, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from supplychain.analytics import fallback, prompts
from supplychain.analytics.backoff import BackoffRetrier
from supplychain.analytics.cache import ResponseCache
from supplychain.analytics.extraction import (
    ModelResponse,
    UnstructuredResponse,
    classify_response,
    parse_sales_quantity,
    parse_stock_levels,
    parse_stockout_and_volume,
)
from supplychain.analytics.rate_limiter import RateLimiter
from supplychain.analytics.vision import ShelfImageAnalyzer
from supplychain.clients.gemini import GeminiClient
from supplychain.core.exceptions import VisionServiceUnavailableError
from supplychain.schemas.analytics import (
    AccuracyResult,
    AnalysisKind,
    AnalyticsRequest,
    ComprehensiveAnalytics,
    ImageAnalysisResult,
    InventoryRecord,
    PredictionPoint,
    SalesQuantityResult,
    SalesRecord,
    StockLevelsResult,
    StockoutAndVolumeResult,
)

logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=BaseModel)

COMPREHENSIVE_BUCKET = "comprehensive"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AnalysisPlan(Generic[R]):
    """Всё, чем один вид анализа отличается от другого."""
    operation: str
    bucket: str
    cache_inputs: Any
    result_type: Type[R]
    build_prompt: Callable[[], str]
    parse: Callable[[ModelResponse], R]
    fallback: Callable[[], R]


class AnalyticsOrchestrator:
    """
    Единый конвейер для текстовой аналитики:

        CacheCheck -> RateCheck -> AIAttempt -> ParseAttempt -> Success | Fallback -> CacheWrite

    - попадание в кеш сразу возвращает сохранённый результат
    - отказ лимитера или любая ошибка вызова модели -> статистический fallback
    - невалидный JSON от модели -> эвристическое извлечение полей из текста
    - в кеш пишется ответ модели; fallback пишется только при cache_fallback=True

    Создаётся один раз (синглтон контейнера), всё состояние внедрено снаружи.
    """

    def __init__(
        self,
        llm: GeminiClient,
        cache: ResponseCache,
        limiter: RateLimiter,
        retrier: BackoffRetrier,
        image_analyzer: Optional[ShelfImageAnalyzer] = None,
        cache_fallback: bool = False,
        max_retries: int = 3,
        prompt_record_limit: int = 20,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.llm = llm
        self.cache = cache
        self.limiter = limiter
        self.retrier = retrier
        self.image_analyzer = image_analyzer
        self.cache_fallback = cache_fallback
        self.max_retries = max_retries
        self.prompt_record_limit = max(1, prompt_record_limit)
        self._clock = clock

    # =========================
    # ПУБЛИЧНОЕ API
    # =========================

    async def analyze(self, request: AnalyticsRequest) -> BaseModel:
        if request.kind is AnalysisKind.SALES_QUANTITY:
            return await self.analyze_sales_quantity(request.sales)
        if request.kind is AnalysisKind.STOCK_LEVELS:
            return await self.analyze_stock_levels(request.inventory, request.sales)
        if request.kind is AnalysisKind.STOCKOUT_AND_VOLUME:
            return await self.analyze_stockout_and_volume(request.inventory, request.sales)
        return await self.analyze_shelf_image(request.image)

    async def analyze_sales_quantity(self, sales: Sequence[SalesRecord]) -> SalesQuantityResult:
        recent = self._bounded(sales)
        return await self._run(AnalysisPlan(
            operation=AnalysisKind.SALES_QUANTITY.value,
            bucket=AnalysisKind.SALES_QUANTITY.value,
            cache_inputs={"sales": recent},
            result_type=SalesQuantityResult,
            build_prompt=lambda: prompts.sales_quantity_prompt(recent),
            parse=parse_sales_quantity,
            fallback=lambda: fallback.fallback_sales_quantity(sales, self._clock()),
        ))

    async def analyze_stock_levels(
        self,
        inventory: Sequence[InventoryRecord],
        sales: Sequence[SalesRecord],
    ) -> StockLevelsResult:
        stock = self._bounded(inventory)
        recent = self._bounded(sales)
        return await self._run(AnalysisPlan(
            operation=AnalysisKind.STOCK_LEVELS.value,
            bucket=AnalysisKind.STOCK_LEVELS.value,
            cache_inputs={"inventory": stock, "sales": recent},
            result_type=StockLevelsResult,
            build_prompt=lambda: prompts.stock_levels_prompt(stock, recent),
            parse=parse_stock_levels,
            fallback=lambda: fallback.fallback_stock_levels(inventory, sales),
        ))

    async def analyze_stockout_and_volume(
        self,
        inventory: Sequence[InventoryRecord],
        sales: Sequence[SalesRecord],
    ) -> StockoutAndVolumeResult:
        stock = self._bounded(inventory)
        recent = self._bounded(sales)
        return await self._run(AnalysisPlan(
            operation=AnalysisKind.STOCKOUT_AND_VOLUME.value,
            bucket=AnalysisKind.STOCKOUT_AND_VOLUME.value,
            cache_inputs={"inventory": stock, "sales": recent},
            result_type=StockoutAndVolumeResult,
            build_prompt=lambda: prompts.stockout_and_volume_prompt(stock, recent),
            parse=parse_stockout_and_volume,
            fallback=lambda: fallback.fallback_stockout_and_volume(inventory, sales, self._clock()),
        ))

    def calculate_model_accuracy(
        self,
        predictions: Sequence[PredictionPoint] = (),
        actuals: Sequence[PredictionPoint] = (),
    ) -> AccuracyResult:
        # считается локально, без AI
        return fallback.fallback_accuracy(predictions, actuals)

    async def get_comprehensive_analytics(
        self,
        sales: Sequence[SalesRecord],
        inventory: Sequence[InventoryRecord],
        predictions: Sequence[PredictionPoint] = (),
        actuals: Sequence[PredictionPoint] = (),
    ) -> ComprehensiveAnalytics:
        if not self.limiter.admit(COMPREHENSIVE_BUCKET):
            logger.warning("analytics.fallback", operation=COMPREHENSIVE_BUCKET, reason="rate_limited")
            return fallback.fallback_comprehensive(sales, inventory, self._clock(), predictions, actuals)

        sales_quantity, stock_levels, stockout_volume = await asyncio.gather(
            self.analyze_sales_quantity(sales),
            self.analyze_stock_levels(inventory, sales),
            self.analyze_stockout_and_volume(inventory, sales),
        )
        return ComprehensiveAnalytics(
            sales_quantity=sales_quantity,
            stock_levels=stock_levels,
            stockout_risk=stockout_volume.stockout_risk,
            sales_volume=stockout_volume.sales_volume,
            accuracy=self.calculate_model_accuracy(predictions, actuals),
        )

    async def analyze_shelf_image(self, image: Optional[bytes]) -> ImageAnalysisResult:
        if not image:
            raise ValueError("Image payload is empty")
        if self.image_analyzer is None:
            raise VisionServiceUnavailableError()
        return await self.image_analyzer.analyze(image)

    # =========================
    # КОНВЕЙЕР
    # =========================

    def _bounded(self, records: Sequence) -> list:
        return list(records)[-self.prompt_record_limit:]

    async def _run(self, plan: AnalysisPlan[R]) -> R:
        key = self.cache.make_key(plan.operation, plan.cache_inputs)
        log = logger.bind(operation=plan.operation, key=key)

        # 1) кеш
        try:
            cached = await self.cache.get(key)
        except OSError as e:
            # файл кеша недоступен - считаем промахом
            log.error("analytics.cache_read_failed", error=str(e))
            cached = None
        if cached is not None:
            try:
                result = plan.result_type.model_validate(cached)
                log.info("analytics.cache_hit")
                return result
            except ValidationError as e:
                log.warning("analytics.cache_entry_invalid", error=str(e))

        # 2) лимитер
        if not self.limiter.admit(plan.bucket):
            log.warning("analytics.fallback", reason="rate_limited", bucket=plan.bucket)
            return await self._fallback(plan, key)

        # 3) вызов модели (повторы только на 429)
        prompt = plan.build_prompt()
        try:
            raw = await self.retrier.execute(
                lambda: self.llm.generate(prompt),
                max_retries=self.max_retries,
            )
        except Exception as e:
            log.warning("analytics.fallback", reason=type(e).__name__, error=str(e))
            return await self._fallback(plan, key)

        # 4) разбор ответа
        try:
            response = classify_response(raw)
            if isinstance(response, UnstructuredResponse):
                log.warning("analytics.malformed_response", length=len(response.text))
            result = plan.parse(response)
        except Exception as e:
            log.warning("analytics.fallback", reason="parse_failed", error=f"{type(e).__name__}: {e}")
            return await self._fallback(plan, key)

        # 5) запись в кеш
        await self._store(key, result, log)
        log.info("analytics.ai_result")
        return result

    async def _fallback(self, plan: AnalysisPlan[R], key: str) -> R:
        result = plan.fallback()
        if self.cache_fallback:
            await self._store(key, result, logger.bind(operation=plan.operation, key=key))
        return result

    async def _store(self, key: str, result: BaseModel, log) -> None:
        try:
            await self.cache.put(key, result.model_dump(mode="json"))
        except OSError as e:
            # файл кеша недоступен - результат всё равно отдаём
            log.error("analytics.cache_write_failed", error=str(e))
