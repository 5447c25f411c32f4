"""
Статистическая модель, которая подменяет AI, когда он недоступен.

Чистые функции: без сети, без хранилища, без исключений.
Форма результата та же, что у AI-ветки (схемы из supplychain.schemas.analytics).
Все деления защищены знаменателем max(1, ...).
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import List, Sequence

from supplychain.schemas.analytics import (
    MAX_ACTIONS,
    MAX_FACTORS,
    MAX_SEASONAL_FACTORS,
    AccuracyResult,
    ComprehensiveAnalytics,
    InventoryRecord,
    PredictionPoint,
    SalesQuantityResult,
    SalesRecord,
    SalesVolumeResult,
    StockLevelsResult,
    StockoutAndVolumeResult,
    StockoutRiskResult,
    StockStatus,
    Trend,
)

SALES_WINDOW = 7
TREND_UP = 1.1
TREND_DOWN = 0.9

# пороги stock_ratio = остаток / средний уровень дозаказа
CRITICAL_RATIO = 0.5
LOW_RATIO = 1.0
OVERSTOCK_RATIO = 3.0

# сколько дней запаса держать при расчёте рекомендуемого уровня
TARGET_COVER_DAYS = 14

# уверенность fallback-прогноза растёт с числом записей в окне
CONFIDENCE_BASE = 40
CONFIDENCE_PER_RECORD = 5
CONFIDENCE_CAP = 70

# точность моделей, когда нет пар прогноз/факт
DEFAULT_SALES_ACCURACY = 85
DEFAULT_INVENTORY_ACCURACY = 82

STATUS_RECOMMENDATIONS = {
    "critical": "Immediate restock required - stock is below half of the reorder level",
    "low": "Schedule a replenishment order soon - stock is below the reorder level",
    "overstocked": "Reduce incoming orders and consider promotions to clear excess stock",
    "optimal": "Stock levels are healthy - continue monitoring sales velocity",
}

# (верхняя граница дней до исчерпания, вероятность, действия)
STOCKOUT_BANDS = [
    (7, 80, ["Place emergency order immediately", "Contact suppliers for expedited delivery"]),
    (14, 40, ["Schedule a restock order this week", "Review supplier lead times"]),
    (21, 20, ["Plan replenishment within the next two weeks", "Monitor daily sales velocity"]),
]
DEFAULT_STOCKOUT_PROBABILITY = 10
DEFAULT_PREVENTION_ACTIONS = ["Maintain the regular reorder schedule"]

HOLIDAY_MONTHS = {11, 12, 1, 2}
SUMMER_MONTHS = {6, 7, 8, 9}
SPRING_MONTHS = {3, 4, 5}


def _mean(values: Sequence[float]) -> float:
    return sum(values) / max(1, len(values))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _window(sales: Sequence[SalesRecord]) -> List[float]:
    return [r.quantity for r in list(sales)[-SALES_WINDOW:]]


# ---------------------------------------------------------------------------
# Базовые показатели
# ---------------------------------------------------------------------------

def average_daily_sales(sales: Sequence[SalesRecord]) -> float:
    """Среднее quantity по последним 7 записям, 0 если записей нет."""
    window = _window(sales)
    return _mean(window) if window else 0.0


def sales_trend(sales: Sequence[SalesRecord]) -> Trend:
    window = _window(sales)
    if len(window) < 2:
        return "stable"

    mid = math.ceil(len(window) / 2)
    first_half = _mean(window[:mid])
    second_half = _mean(window[mid:])

    if second_half > first_half * TREND_UP:
        return "increasing"
    if second_half < first_half * TREND_DOWN:
        return "decreasing"
    return "stable"


def total_current_stock(inventory: Sequence[InventoryRecord]) -> float:
    return sum(r.current_stock for r in inventory)


def average_reorder_level(inventory: Sequence[InventoryRecord]) -> float:
    return _mean([r.reorder_level for r in inventory]) if inventory else 0.0


def stock_ratio(total_stock: float, avg_reorder_level: float) -> float:
    return total_stock / max(1, avg_reorder_level)


def stock_status(total_stock: float, avg_reorder_level: float) -> StockStatus:
    ratio = stock_ratio(total_stock, avg_reorder_level)
    if ratio < CRITICAL_RATIO:
        return "critical"
    if ratio < LOW_RATIO:
        return "low"
    if ratio > OVERSTOCK_RATIO:
        return "overstocked"
    return "optimal"


def days_until_stockout(total_stock: float, avg_daily: float) -> float:
    return total_stock / max(1, avg_daily)


def stockout_probability(days: float) -> int:
    for upper, probability, _ in STOCKOUT_BANDS:
        if days < upper:
            return probability
    return DEFAULT_STOCKOUT_PROBABILITY


def prevention_actions(days: float) -> List[str]:
    for upper, _, actions in STOCKOUT_BANDS:
        if days < upper:
            return list(actions[:MAX_ACTIONS])
    return list(DEFAULT_PREVENTION_ACTIONS)


def stockout_timeline(days: float) -> str:
    n = _round_half_up(days)
    return "1 day" if n == 1 else f"{n} days"


def seasonal_factors(now: datetime) -> List[str]:
    factors = []
    if now.month in HOLIDAY_MONTHS:
        factors.append("Holiday season demand increase")
    if now.month in SUMMER_MONTHS:
        factors.append("Summer seasonal patterns")
    if now.month in SPRING_MONTHS:
        factors.append("Spring restocking period")
    return factors[:MAX_SEASONAL_FACTORS]


# ---------------------------------------------------------------------------
# Результаты по видам анализа
# ---------------------------------------------------------------------------

def fallback_sales_quantity(sales: Sequence[SalesRecord], now: datetime) -> SalesQuantityResult:
    window = _window(sales)
    avg = average_daily_sales(sales)
    trend = sales_trend(sales)

    if window:
        factors = [
            f"Average daily sales of {avg:.1f} units over the last {len(window)} records",
            f"Sales trend is {trend}",
        ]
    else:
        factors = ["No recent sales history available"]
    factors.extend(seasonal_factors(now))

    return SalesQuantityResult(
        prediction=round(avg * SALES_WINDOW, 2),
        confidence=min(CONFIDENCE_CAP, CONFIDENCE_BASE + CONFIDENCE_PER_RECORD * len(window)),
        factors=factors[:MAX_FACTORS],
    )


def fallback_stock_levels(
    inventory: Sequence[InventoryRecord],
    sales: Sequence[SalesRecord],
) -> StockLevelsResult:
    total = total_current_stock(inventory)
    avg_reorder = average_reorder_level(inventory)
    status = stock_status(total, avg_reorder)
    optimal_level = max(avg_reorder * 2, average_daily_sales(sales) * TARGET_COVER_DAYS)

    return StockLevelsResult(
        prediction=round(optimal_level, 2),
        status=status,
        recommendation=STATUS_RECOMMENDATIONS[status],
    )


def fallback_stockout_and_volume(
    inventory: Sequence[InventoryRecord],
    sales: Sequence[SalesRecord],
    now: datetime,
) -> StockoutAndVolumeResult:
    avg = average_daily_sales(sales)
    days = days_until_stockout(total_current_stock(inventory), avg)

    return StockoutAndVolumeResult(
        stockout_risk=StockoutRiskResult(
            probability=stockout_probability(days),
            timeline=stockout_timeline(days),
            prevention_actions=prevention_actions(days),
        ),
        sales_volume=SalesVolumeResult(
            prediction=round(avg * 30, 2),
            trend=sales_trend(sales),
            seasonal_factors=seasonal_factors(now),
        ),
    )


def prediction_accuracy(
    predictions: Sequence[PredictionPoint],
    actuals: Sequence[PredictionPoint],
    default: float,
) -> float:
    """
    Точность = (1 - средняя относительная ошибка) * 100, не ниже 0.
    Пары сопоставляются по (product_id, date); нулевые значения пропускаются.
    """
    if not predictions or not actuals:
        return default

    by_key = {(a.product_id, a.date): a for a in actuals}
    total_error = 0.0
    count = 0
    for p in predictions:
        actual = by_key.get((p.product_id, p.date))
        if actual is None or not actual.value or not p.value:
            continue
        total_error += abs(actual.value - p.value) / abs(actual.value)
        count += 1

    if count == 0:
        return default
    return max(0.0, (1 - total_error / count) * 100)


def fallback_accuracy(
    predictions: Sequence[PredictionPoint] = (),
    actuals: Sequence[PredictionPoint] = (),
) -> AccuracyResult:
    sales_acc = prediction_accuracy(
        [p for p in predictions if p.type == "sales"],
        [a for a in actuals if a.type == "sales"],
        DEFAULT_SALES_ACCURACY,
    )
    inventory_acc = prediction_accuracy(
        [p for p in predictions if p.type == "inventory"],
        [a for a in actuals if a.type == "inventory"],
        DEFAULT_INVENTORY_ACCURACY,
    )
    return AccuracyResult(
        sales_model=_round_half_up(sales_acc),
        inventory_model=_round_half_up(inventory_acc),
        overall_accuracy=_round_half_up((sales_acc + inventory_acc) / 2),
    )


def fallback_comprehensive(
    sales: Sequence[SalesRecord],
    inventory: Sequence[InventoryRecord],
    now: datetime,
    predictions: Sequence[PredictionPoint] = (),
    actuals: Sequence[PredictionPoint] = (),
) -> ComprehensiveAnalytics:
    stockout_volume = fallback_stockout_and_volume(inventory, sales, now)
    return ComprehensiveAnalytics(
        sales_quantity=fallback_sales_quantity(sales, now),
        stock_levels=fallback_stock_levels(inventory, sales),
        stockout_risk=stockout_volume.stockout_risk,
        sales_volume=stockout_volume.sales_volume,
        accuracy=fallback_accuracy(predictions, actuals),
    )
