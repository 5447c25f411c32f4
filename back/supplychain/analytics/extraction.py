"""
Разбор ответа генеративной модели.

Ответ бывает двух видов:
- StructuredResponse: удалось достать JSON объект (в т.ч. из ```json блока или из текста вокруг)
- UnstructuredResponse: свободный текст, поля из него вытаскиваются эвристиками

Парсеры ниже всегда возвращают полностью заполненную модель результата.
"""
from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from supplychain.core.exceptions import MalformedResponseError
from supplychain.schemas.analytics import (
    MAX_ACTIONS,
    MAX_FACTORS,
    MAX_SEASONAL_FACTORS,
    SalesQuantityResult,
    SalesVolumeResult,
    StockLevelsResult,
    StockoutAndVolumeResult,
    StockoutRiskResult,
)

STATUSES = ("optimal", "low", "critical", "overstocked")
TRENDS = ("increasing", "decreasing", "stable")
SEASONAL_KEYWORDS = ("seasonal", "holiday", "weather", "trend", "pattern")

DEFAULT_TIMELINE = "2-3 weeks"
DEFAULT_TEXT_RECOMMENDATION = "Monitor current inventory levels and sales patterns"

_JSON_RE = re.compile(r"\{.*\}", flags=re.S)
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", flags=re.I)
_BULLET_RE = re.compile(r"^[-•*]\s*")
_TIMELINE_RE = re.compile(r"(\d+)\s*(day|week|month)s?", flags=re.I)


@dataclass(frozen=True)
class StructuredResponse:
    data: Dict[str, Any]


@dataclass(frozen=True)
class UnstructuredResponse:
    text: str


ModelResponse = Union[StructuredResponse, UnstructuredResponse]


def parse_json_object(raw: str) -> Dict[str, Any]:
    text = _FENCE_RE.sub("", (raw or "").strip())
    candidates = [text]
    m = _JSON_RE.search(text)
    if m and m.group(0) != text:
        candidates.append(m.group(0))

    for candidate in candidates:
        try:
            obj = json.loads(candidate)
        except ValueError:
            # JSONDecodeError и слишком длинные целые
            continue
        if isinstance(obj, dict):
            return obj
    raise MalformedResponseError("Model response is not a JSON object")


def classify_response(raw: str) -> ModelResponse:
    try:
        return StructuredResponse(parse_json_object(raw))
    except MalformedResponseError:
        return UnstructuredResponse(raw or "")


# ---------------------------------------------------------------------------
# Эвристики по свободному тексту
# ---------------------------------------------------------------------------

def extract_number(text: str, field: str) -> Optional[float]:
    m = re.search(rf"{re.escape(field)}[\":]*\s*(\d+(?:\.\d+)?)", text, flags=re.I)
    return _finite(m.group(1)) if m else None


def _bullet_lines(text: str, keyword: str) -> List[str]:
    found = []
    for line in text.split("\n"):
        if keyword in line.lower() or "•" in line or "-" in line:
            cleaned = _BULLET_RE.sub("", line.strip())
            if cleaned:
                found.append(cleaned)
    return found


def extract_factors(text: str) -> List[str]:
    return _bullet_lines(text, "factor")[:MAX_FACTORS]


def extract_actions(text: str) -> List[str]:
    return [a for a in _bullet_lines(text, "action") if len(a) > 10][:MAX_ACTIONS]


def _first_match(text: str, vocabulary: Sequence[str], default: str) -> str:
    lowered = text.lower()
    for word in vocabulary:
        if word in lowered:
            return word
    return default


def extract_status(text: str) -> str:
    return _first_match(text, STATUSES, "optimal")


def extract_trend(text: str) -> str:
    return _first_match(text, TRENDS, "stable")


def extract_recommendation(text: str) -> str:
    for line in text.split("\n"):
        lowered = line.lower()
        if "recommend" in lowered or "suggest" in lowered:
            return line.strip()
    return DEFAULT_TEXT_RECOMMENDATION


def extract_timeline(text: str) -> str:
    m = _TIMELINE_RE.search(text)
    return m.group(0) if m else DEFAULT_TIMELINE


def extract_seasonal_factors(text: str) -> List[str]:
    seasonal = []
    for line in text.split("\n"):
        lowered = line.lower()
        if any(k in lowered for k in SEASONAL_KEYWORDS):
            seasonal.append(line.strip())
    return seasonal[:MAX_SEASONAL_FACTORS]


# ---------------------------------------------------------------------------
# Приведение значений из JSON
# ---------------------------------------------------------------------------

def _pick(data: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if data.get(k) is not None:
            return data[k]
    return None


def _finite(value: Any) -> Optional[float]:
    """float(value), если оно конечное; NaN, Infinity и огромные целые -> None"""
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_number(value: Any, default: float) -> float:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        number = _finite(value)
        return default if number is None else number
    if isinstance(value, str):
        m = re.search(r"\d+(?:\.\d+)?", value)
        if m:
            number = _finite(m.group(0))
            return default if number is None else number
    return default


def _percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def _as_str_list(value: Any, cap: int) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    items = [str(v).strip() for v in value if v is not None]
    return [i for i in items if i][:cap]


def _as_choice(value: Any, choices: Sequence[str], default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in choices:
        return value.strip().lower()
    return default


# ---------------------------------------------------------------------------
# Парсеры по видам анализа
# ---------------------------------------------------------------------------

def parse_sales_quantity(response: ModelResponse) -> SalesQuantityResult:
    if isinstance(response, StructuredResponse):
        d = response.data
        return SalesQuantityResult(
            prediction=_as_number(d.get("prediction"), 0),
            confidence=_percent(_as_number(d.get("confidence"), 0)),
            factors=_as_str_list(d.get("factors"), MAX_FACTORS),
        )

    text = response.text
    return SalesQuantityResult(
        prediction=extract_number(text, "prediction") or 0,
        confidence=_percent(extract_number(text, "confidence") or 75),
        factors=extract_factors(text),
    )


def parse_stock_levels(response: ModelResponse) -> StockLevelsResult:
    if isinstance(response, StructuredResponse):
        d = response.data
        recommendation = d.get("recommendation")
        return StockLevelsResult(
            prediction=_as_number(d.get("prediction"), 0),
            status=_as_choice(d.get("status"), STATUSES, "optimal"),
            recommendation=(
                recommendation.strip()
                if isinstance(recommendation, str) and recommendation.strip()
                else "Monitor current levels"
            ),
        )

    text = response.text
    return StockLevelsResult(
        prediction=extract_number(text, "prediction") or 100,
        status=extract_status(text),
        recommendation=extract_recommendation(text),
    )


def parse_stockout_and_volume(response: ModelResponse) -> StockoutAndVolumeResult:
    if isinstance(response, StructuredResponse):
        d = response.data
        timeline = _pick(d, "timeline")
        return StockoutAndVolumeResult(
            stockout_risk=StockoutRiskResult(
                probability=_percent(_as_number(_pick(d, "stockoutProbability", "stockout_probability"), 0)),
                timeline=str(timeline).strip() if timeline not in (None, "") else "Unknown",
                prevention_actions=_as_str_list(
                    _pick(d, "preventionActions", "prevention_actions"), MAX_ACTIONS
                ),
            ),
            sales_volume=SalesVolumeResult(
                prediction=_as_number(_pick(d, "salesVolumePrediction", "sales_volume_prediction"), 0),
                trend=_as_choice(d.get("trend"), TRENDS, "stable"),
                seasonal_factors=_as_str_list(
                    _pick(d, "seasonalFactors", "seasonal_factors"), MAX_SEASONAL_FACTORS
                ),
            ),
        )

    text = response.text
    return StockoutAndVolumeResult(
        stockout_risk=StockoutRiskResult(
            probability=_percent(extract_number(text, "probability") or 10),
            timeline=extract_timeline(text),
            prevention_actions=extract_actions(text),
        ),
        sales_volume=SalesVolumeResult(
            prediction=extract_number(text, "volume") or 1000,
            trend=extract_trend(text),
            seasonal_factors=extract_seasonal_factors(text),
        ),
    )
