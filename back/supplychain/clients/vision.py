from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from supplychain.core.exceptions import VisionRequestError
from supplychain.schemas.vision import LabelAnnotation, LocalizedObject, TextAnnotation

logger = structlog.get_logger(__name__)

A = TypeVar("A", bound=BaseModel)


class VisionClient:
    """
    Cloud Vision images:annotate, по одному feature на запрос.
    Ретраев и кеша здесь нет.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://vision.googleapis.com/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/images:annotate"
        self.timeout = timeout
        self._transport = transport

    async def localize_objects(self, image: bytes) -> List[LocalizedObject]:
        data = await self._annotate(image, "OBJECT_LOCALIZATION")
        return _validate(LocalizedObject, data.get("localizedObjectAnnotations"), "OBJECT_LOCALIZATION")

    async def detect_text(self, image: bytes) -> List[TextAnnotation]:
        data = await self._annotate(image, "TEXT_DETECTION")
        return _validate(TextAnnotation, data.get("textAnnotations"), "TEXT_DETECTION")

    async def detect_labels(self, image: bytes) -> List[LabelAnnotation]:
        data = await self._annotate(image, "LABEL_DETECTION")
        return _validate(LabelAnnotation, data.get("labelAnnotations"), "LABEL_DETECTION")

    async def _annotate(self, image: bytes, feature: str) -> Dict[str, Any]:
        body = {
            "requests": [{
                "image": {"content": base64.b64encode(image).decode("ascii")},
                "features": [{"type": feature, "maxResults": 50}],
            }]
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(self.url, json=body, params={"key": self.api_key})
                r.raise_for_status()
                payload = r.json()
        except httpx.HTTPStatusError as e:
            raise VisionRequestError(f"Vision {feature} {e.response.status_code}: {e.response.text}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise VisionRequestError(f"Vision {feature} failed: {e}") from e

        responses = payload.get("responses") or [{}]
        first = responses[0] or {}
        if first.get("error"):
            raise VisionRequestError(f"Vision {feature} error: {first['error'].get('message')}")
        return first


def _validate(model: Type[A], items: Any, feature: str) -> List[A]:
    try:
        return [model.model_validate(item) for item in items or []]
    except (ValidationError, TypeError) as e:
        raise VisionRequestError(f"Vision {feature} returned unexpected annotations: {e}") from e


def build_vision_client(api_key: Optional[str], base_url: str) -> Optional[VisionClient]:
    """Без ключа клиента нет: анализ фото тогда отвечает VisionServiceUnavailableError."""
    if not api_key:
        logger.warning("vision.client_disabled", reason="VISION_API_KEY is not set")
        return None
    return VisionClient(api_key=api_key, base_url=base_url)
