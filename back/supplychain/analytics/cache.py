from __future__ import annotations

import asyncio
import hashlib
import json
import math
import os
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


def _canonical(value: Any) -> Any:
    """
    Приводит вход к виду, который сериализуется одинаково при каждом запуске:
    модели -> dict, tuple -> list, 10.0 -> 10, datetime -> ISO строка.
    """
    if isinstance(value, BaseModel):
        return _canonical(value.model_dump(mode="json"))
    if isinstance(value, Enum):
        return _canonical(value.value)
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return hashlib.sha256(value).hexdigest()
    return value


class ResponseCache:
    """
    Кеш ответов AI в одном JSON файле: {ключ: результат}.

    - файл читается целиком при первом обращении
    - на каждый put файл переписывается целиком (через tmp + os.replace)
    - все записи идут под одним asyncio.Lock, иначе два запроса,
      пишущие разные ключи, потеряют друг друга
    - TTL и вытеснения нет
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._entries: Optional[Dict[str, Any]] = None
        self._lock = asyncio.Lock()

    @staticmethod
    def make_key(prefix: str, inputs: Any) -> str:
        payload = json.dumps(
            _canonical(inputs),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
        digest = hashlib.sha256((prefix + payload).encode("utf-8")).hexdigest()
        return f"{prefix}:{digest}"

    async def get(self, key: str) -> Optional[Any]:
        entries = await self._load()
        return entries.get(key)

    async def put(self, key: str, value: Any) -> None:
        async with self._lock:
            entries = await self._load_locked()
            snapshot = {**entries, key: value}
            await asyncio.to_thread(self._write_file, snapshot)
            # память меняется только после успешной записи на диск
            entries[key] = value
        logger.debug("cache.stored", key=key, entries=len(snapshot))

    async def size(self) -> int:
        return len(await self._load())

    # =========================
    # ФАЙЛ
    # =========================

    async def _load(self) -> Dict[str, Any]:
        if self._entries is not None:
            return self._entries
        async with self._lock:
            return await self._load_locked()

    async def _load_locked(self) -> Dict[str, Any]:
        if self._entries is None:
            self._entries = await asyncio.to_thread(self._read_file)
        return self._entries

    def _read_file(self) -> Dict[str, Any]:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("{}", encoding="utf-8")
            logger.info("cache.created", path=str(self.path))
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except ValueError as e:
            # JSONDecodeError и UnicodeDecodeError
            logger.warning("cache.corrupt_file", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("cache.unexpected_format", path=str(self.path))
            return {}
        logger.info("cache.loaded", path=str(self.path), entries=len(data))
        return data

    def _write_file(self, entries: Dict[str, Any]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(entries, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)
