from __future__ import annotations

import json
from typing import Sequence

from supplychain.schemas.analytics import InventoryRecord, SalesRecord


def _records_json(records: Sequence) -> str:
    return json.dumps(
        [r.model_dump(mode="json", exclude_none=True) for r in records],
        ensure_ascii=False,
        separators=(",", ":"),
    )


def sales_quantity_prompt(sales: Sequence[SalesRecord]) -> str:
    return (
        "You are a retail demand analyst. Analyze the sales records and predict future sales quantity.\n"
        "\n"
        f"SALES (last {len(sales)} records, oldest first)={_records_json(sales)}\n"
        "\n"
        "Provide:\n"
        "1) prediction: total units expected to sell over the next 7 days\n"
        "2) confidence: 0-100\n"
        "3) factors: up to 5 short strings with the key factors behind the prediction\n"
        "\n"
        "Rules:\n"
        "- Return only a JSON object, no markdown, no comments.\n"
        "- Numbers are non-negative, no exponent notation.\n"
        "\n"
        'Schema: {"prediction":0,"confidence":0,"factors":["str"]}'
    )


def stock_levels_prompt(inventory: Sequence[InventoryRecord], sales: Sequence[SalesRecord]) -> str:
    return (
        "You are a warehouse inventory analyst. Analyze current stock levels against recent sales "
        "and predict the optimal inventory level.\n"
        "\n"
        f"INVENTORY={_records_json(inventory)}\n"
        f"RECENT_SALES={_records_json(sales)}\n"
        "\n"
        "Provide:\n"
        "1) prediction: optimal total stock level in units\n"
        "2) status: one of optimal, low, critical, overstocked\n"
        "3) recommendation: one specific sentence\n"
        "\n"
        "Rules:\n"
        "- Return only a JSON object, no markdown, no comments.\n"
        "\n"
        'Schema: {"prediction":0,"status":"optimal","recommendation":"str"}'
    )


def stockout_and_volume_prompt(inventory: Sequence[InventoryRecord], sales: Sequence[SalesRecord]) -> str:
    return (
        "You are a supply-chain risk analyst. Analyze stockout risk and sales volume trends.\n"
        "\n"
        f"INVENTORY={_records_json(inventory)}\n"
        f"SALES_HISTORY={_records_json(sales)}\n"
        "\n"
        "Provide:\n"
        "1) stockoutProbability: 0-100\n"
        "2) timeline: when a stockout may happen, e.g. \"12 days\"\n"
        "3) preventionActions: up to 3 short strings\n"
        "4) salesVolumePrediction: units expected over the next 30 days\n"
        "5) trend: one of increasing, decreasing, stable\n"
        "6) seasonalFactors: up to 3 short strings\n"
        "\n"
        "Rules:\n"
        "- Return only a JSON object, no markdown, no comments.\n"
        "\n"
        'Schema: {"stockoutProbability":0,"timeline":"str","preventionActions":["str"],'
        '"salesVolumePrediction":0,"trend":"stable","seasonalFactors":["str"]}'
    )
