# supplychain/schemas/analytics.py

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

StockStatus = Literal["optimal", "low", "critical", "overstocked"]
Trend = Literal["increasing", "decreasing", "stable"]

MAX_FACTORS = 5
MAX_ACTIONS = 3
MAX_SEASONAL_FACTORS = 3


class AnalysisKind(str, Enum):
    SALES_QUANTITY = "sales_quantity"
    STOCK_LEVELS = "stock_levels"
    STOCKOUT_AND_VOLUME = "stockout_and_volume"
    IMAGE_SHELF_ANALYSIS = "image_shelf_analysis"


#
# Входные записи
#
class SalesRecord(BaseModel):
    date: datetime
    product_id: Optional[str] = None
    quantity: float = Field(0, ge=0)
    revenue: float = Field(0, ge=0)
    category: Optional[str] = None


class InventoryRecord(BaseModel):
    product_id: Optional[str] = None
    current_stock: float = Field(0, ge=0)
    reorder_level: float = Field(0, ge=0)
    category: Optional[str] = None
    timestamp: Optional[datetime] = None


class PredictionPoint(BaseModel):
    """Пара прогноз/факт для оценки точности моделей."""
    type: Literal["sales", "inventory"]
    product_id: Optional[str] = None
    date: Optional[str] = None
    value: Optional[float] = None


class AnalyticsRequest(BaseModel):
    """Неизменяемый запрос на анализ одного вида."""
    model_config = ConfigDict(frozen=True)

    kind: AnalysisKind
    sales: Tuple[SalesRecord, ...] = ()
    inventory: Tuple[InventoryRecord, ...] = ()
    image: Optional[bytes] = None


#
# Результаты. Форма одинаковая для AI и для fallback, у всех полей есть дефолт.
#
class SalesQuantityResult(BaseModel):
    prediction: float = 0
    confidence: float = Field(0, ge=0, le=100)
    factors: List[str] = Field(default_factory=list, max_length=MAX_FACTORS)


class StockLevelsResult(BaseModel):
    prediction: float = 0
    status: StockStatus = "optimal"
    recommendation: str = "Monitor current levels"


class StockoutRiskResult(BaseModel):
    probability: float = Field(0, ge=0, le=100)
    timeline: str = "Unknown"
    prevention_actions: List[str] = Field(default_factory=list, max_length=MAX_ACTIONS)


class SalesVolumeResult(BaseModel):
    prediction: float = 0
    trend: Trend = "stable"
    seasonal_factors: List[str] = Field(default_factory=list, max_length=MAX_SEASONAL_FACTORS)


class StockoutAndVolumeResult(BaseModel):
    stockout_risk: StockoutRiskResult = Field(default_factory=StockoutRiskResult)
    sales_volume: SalesVolumeResult = Field(default_factory=SalesVolumeResult)


class AccuracyResult(BaseModel):
    sales_model: int = Field(0, ge=0, le=100)
    inventory_model: int = Field(0, ge=0, le=100)
    overall_accuracy: int = Field(0, ge=0, le=100)


class ComprehensiveAnalytics(BaseModel):
    sales_quantity: SalesQuantityResult
    stock_levels: StockLevelsResult
    stockout_risk: StockoutRiskResult
    sales_volume: SalesVolumeResult
    accuracy: AccuracyResult


#
# Анализ фото полки
#
class DetectedProduct(BaseModel):
    name: str
    confidence: int
    quantity: int
    condition: Literal["good", "damaged", "expired"]


class ImageAnalysisResult(BaseModel):
    detected_products: List[DetectedProduct] = Field(default_factory=list)
    shelf_occupancy: int = 0
    stockout_indicators: List[str] = Field(default_factory=list)
    visual_quality_score: int = 0


#
# Тела запросов API
#
class AnalyticsInput(BaseModel):
    """
    Явные данные для анализа. Если списки не переданы,
    сервис сам берёт продажи и остатки из хранилища.
    """
    sales: Optional[List[SalesRecord]] = None
    inventory: Optional[List[InventoryRecord]] = None
    days: int = Field(30, ge=1, le=365, description="За сколько дней брать продажи из хранилища")


class ComprehensiveAnalyticsInput(AnalyticsInput):
    historical_predictions: List[PredictionPoint] = Field(default_factory=list)
    actual_results: List[PredictionPoint] = Field(default_factory=list)


class AccuracyInput(BaseModel):
    historical_predictions: List[PredictionPoint] = Field(default_factory=list)
    actual_results: List[PredictionPoint] = Field(default_factory=list)
