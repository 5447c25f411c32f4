from __future__ import annotations

import asyncio
import math
from typing import List, Optional, Sequence

import structlog

from supplychain.clients.vision import VisionClient
from supplychain.core.exceptions import VisionError, VisionServiceUnavailableError
from supplychain.schemas.analytics import DetectedProduct, ImageAnalysisResult
from supplychain.schemas.vision import BoundingPoly, LabelAnnotation, LocalizedObject, TextAnnotation

logger = structlog.get_logger(__name__)

MIN_OBJECT_SCORE = 0.5
HIGH_OBJECT_SCORE = 0.8
AREA_PER_ITEM = 10000
DEFAULT_SIDE = 100
SHELF_CAPACITY = 20
LOW_PRODUCT_COUNT = 3
RETAIL_KEYWORDS = ("product", "shelf", "retail")

_REQUIRED_METHODS = ("localize_objects", "detect_text", "detect_labels")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _contains(text: Optional[str], *needles: str) -> bool:
    lowered = (text or "").lower()
    return any(n in lowered for n in needles)


def _side(vertices, a: int, b: int, axis: str) -> float:
    # в REST ответе нулевая координата опускается, отсутствующая вершина = нет данных
    if len(vertices) <= max(a, b):
        return DEFAULT_SIDE
    first = getattr(vertices[a], axis) or 0
    second = getattr(vertices[b], axis) or 0
    return abs(second - first) or DEFAULT_SIDE


def estimate_quantity(poly: Optional[BoundingPoly]) -> int:
    """Грубая оценка: чем больше bounding box, тем больше единиц товара."""
    if poly is None or not poly.vertices:
        return 1
    width = _side(poly.vertices, 0, 1, "x")
    height = _side(poly.vertices, 1, 2, "y")
    return max(1, math.floor(width * height / AREA_PER_ITEM))


def assess_condition(labels: Sequence[LabelAnnotation]) -> str:
    if any(_contains(lb.description, "damaged") for lb in labels):
        return "damaged"
    if any(_contains(lb.description, "expired") for lb in labels):
        return "expired"
    return "good"


def shelf_occupancy(objects: Sequence[LocalizedObject]) -> int:
    count = sum(1 for o in objects if o.score and o.score > MIN_OBJECT_SCORE)
    return min(100, _round_half_up(count / SHELF_CAPACITY * 100))


def stockout_indicators(
    objects: Sequence[LocalizedObject],
    texts: Sequence[TextAnnotation],
    labels: Sequence[LabelAnnotation],
) -> List[str]:
    indicators = []
    if len(objects) < LOW_PRODUCT_COUNT:
        indicators.append("Low product count detected")
    if any(_contains(lb.description, "empty", "bare") for lb in labels):
        indicators.append("Empty shelf areas detected")
    if any(_contains(t.description, "out of stock", "sold out") for t in texts):
        indicators.append("Out of stock signage detected")
    return indicators


def visual_quality_score(
    objects: Sequence[LocalizedObject],
    labels: Sequence[LabelAnnotation],
) -> int:
    high = sum(1 for o in objects if o.score and o.score > HIGH_OBJECT_SCORE)
    score = high / max(1, len(objects)) * 40
    retail = sum(1 for lb in labels if _contains(lb.description, *RETAIL_KEYWORDS))
    score += min(30, retail * 10)
    score += 30  # базовые баллы за успешную обработку
    return min(100, _round_half_up(score))


def build_image_result(
    objects: Sequence[LocalizedObject],
    texts: Sequence[TextAnnotation],
    labels: Sequence[LabelAnnotation],
) -> ImageAnalysisResult:
    condition = assess_condition(labels)
    detected = [
        DetectedProduct(
            name=o.name or "Unknown",
            confidence=_round_half_up((o.score or 0) * 100),
            quantity=estimate_quantity(o.bounding_poly),
            condition=condition,
        )
        for o in objects
        if o.name and o.score and o.score > MIN_OBJECT_SCORE
    ]
    return ImageAnalysisResult(
        detected_products=detected,
        shelf_occupancy=shelf_occupancy(objects),
        stockout_indicators=stockout_indicators(objects, texts, labels),
        visual_quality_score=visual_quality_score(objects, labels),
    )


class ShelfImageAnalyzer:
    """
    Анализ фото полки через Cloud Vision.

    В отличие от текстовой аналитики здесь нет лимитера, ретраев, кеша
    и статистического fallback: любой сбой уходит вызывающему.
    """

    def __init__(self, vision: Optional[VisionClient]):
        self.vision = vision

    async def analyze(self, image: bytes) -> ImageAnalysisResult:
        vision = self.vision
        if vision is None or not all(callable(getattr(vision, m, None)) for m in _REQUIRED_METHODS):
            logger.error("vision.unavailable", operation="image_shelf_analysis")
            raise VisionServiceUnavailableError()

        try:
            objects, texts, labels = await asyncio.gather(
                vision.localize_objects(image),
                vision.detect_text(image),
                vision.detect_labels(image),
            )
        except VisionError as e:
            logger.error("vision.failed", operation="image_shelf_analysis", error=str(e))
            raise

        result = build_image_result(objects, texts, labels)
        logger.info(
            "vision.analyzed",
            objects=len(objects),
            detected=len(result.detected_products),
            occupancy=result.shelf_occupancy,
        )
        return result
