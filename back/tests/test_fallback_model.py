from datetime import datetime, timedelta, timezone

import pytest

from supplychain.analytics import fallback
from supplychain.schemas.analytics import InventoryRecord, PredictionPoint, SalesRecord

NOW = datetime(2024, 12, 15, tzinfo=timezone.utc)


def _sales(*quantities):
    start = datetime(2024, 12, 1, tzinfo=timezone.utc)
    return [
        SalesRecord(date=start + timedelta(days=i), product_id="SKU001", quantity=q)
        for i, q in enumerate(quantities)
    ]


def test_scenario_increasing_trend():
    """[10,10,10,10,20,20,20] -> вторая половина 20 > 10 * 1.1"""
    sales = _sales(10, 10, 10, 10, 20, 20, 20)

    assert fallback.sales_trend(sales) == "increasing"

    result = fallback.fallback_sales_quantity(sales, NOW)
    assert result.prediction == 100
    assert result.confidence == 70
    assert "Sales trend is increasing" in result.factors


def test_trend_decreasing_and_stable():
    assert fallback.sales_trend(_sales(20, 20, 10, 10)) == "decreasing"
    assert fallback.sales_trend(_sales(10, 10, 10, 10)) == "stable"
    assert fallback.sales_trend(_sales(10)) == "stable"


def test_only_last_seven_records_count():
    sales = _sales(1000, 1000, 5, 5, 5, 5, 5, 5, 5)
    assert fallback.average_daily_sales(sales) == 5


def test_scenario_ratio_boundary_is_low():
    """ratio ровно 0.5 - это low, не critical"""
    inventory = [InventoryRecord(product_id="SKU001", current_stock=1000, reorder_level=2000)]

    result = fallback.fallback_stock_levels(inventory, [])
    assert result.status == "low"
    assert result.prediction == 4000
    assert result.recommendation == fallback.STATUS_RECOMMENDATIONS["low"]


@pytest.mark.parametrize(
    "stock, reorder, expected",
    [
        (999, 2000, "critical"),
        (1999, 2000, "low"),
        (2000, 2000, "optimal"),
        (6000, 2000, "optimal"),
        (6001, 2000, "overstocked"),
    ],
)
def test_stock_status_thresholds(stock, reorder, expected):
    assert fallback.stock_status(stock, reorder) == expected


def test_scenario_no_sales_stockout():
    """Продаж нет, остаток 50 -> 50 дней, вероятность 10"""
    inventory = [InventoryRecord(product_id="SKU001", current_stock=50, reorder_level=10)]

    result = fallback.fallback_stockout_and_volume(inventory, [], NOW)
    assert result.stockout_risk.probability == 10
    assert result.stockout_risk.timeline == "50 days"
    assert result.stockout_risk.prevention_actions == fallback.DEFAULT_PREVENTION_ACTIONS
    assert result.sales_volume.prediction == 0
    assert result.sales_volume.trend == "stable"


@pytest.mark.parametrize(
    "days, probability",
    [(0, 80), (6.9, 80), (7, 40), (13.9, 40), (14, 20), (20.9, 20), (21, 10)],
)
def test_stockout_probability_bands(days, probability):
    assert fallback.stockout_probability(days) == probability


def test_stockout_timeline_wording():
    assert fallback.stockout_timeline(1.2) == "1 day"
    assert fallback.stockout_timeline(2.5) == "3 days"


def test_empty_inputs_never_fail():
    """Пустые продажи и остатки: полностью заполненный результат без деления на ноль"""
    result = fallback.fallback_comprehensive([], [], NOW)

    assert result.sales_quantity.prediction == 0
    assert result.sales_quantity.confidence == 40
    assert result.sales_quantity.factors[0] == "No recent sales history available"
    assert result.stock_levels.status == "critical"
    assert result.stock_levels.prediction == 0
    assert result.stockout_risk.probability == 80
    assert result.stockout_risk.timeline == "0 days"
    assert result.sales_volume.prediction == 0
    assert result.accuracy.sales_model == 85
    assert result.accuracy.inventory_model == 82
    assert result.accuracy.overall_accuracy == 84


@pytest.mark.parametrize(
    "month, expected",
    [
        (12, ["Holiday season demand increase"]),
        (7, ["Summer seasonal patterns"]),
        (4, ["Spring restocking period"]),
        (10, []),
    ],
)
def test_seasonal_factors(month, expected):
    assert fallback.seasonal_factors(datetime(2024, month, 1)) == expected


def test_accuracy_from_prediction_pairs():
    predictions = [
        PredictionPoint(type="sales", product_id="A", date="2024-01-01", value=90),
        PredictionPoint(type="sales", product_id="B", date="2024-01-01", value=55),
        PredictionPoint(type="inventory", product_id="A", date="2024-01-01", value=0),
    ]
    actuals = [
        PredictionPoint(type="sales", product_id="A", date="2024-01-01", value=100),
        PredictionPoint(type="sales", product_id="B", date="2024-01-01", value=50),
        PredictionPoint(type="inventory", product_id="A", date="2024-01-01", value=10),
    ]

    result = fallback.fallback_accuracy(predictions, actuals)
    # ошибки 10% и 10% -> 90; у склада единственная пара с нулём пропущена -> дефолт
    assert result.sales_model == 90
    assert result.inventory_model == 82
    assert result.overall_accuracy == 86


def test_accuracy_never_negative():
    predictions = [PredictionPoint(type="sales", product_id="A", date="d", value=500)]
    actuals = [PredictionPoint(type="sales", product_id="A", date="d", value=100)]
    assert fallback.fallback_accuracy(predictions, actuals).sales_model == 0
