# supplychain/repo/documents.py

from __future__ import annotations

import operator
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from supplychain.core.exceptions import PersistenceError
from supplychain.db.base import Document

logger = structlog.get_logger(__name__)

Filter = Tuple[str, str, Any]   # (поле, оператор, значение), как where() в документных БД

_OPS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


def _as_record(doc: Document) -> Dict[str, Any]:
    return {"id": doc.id, **(doc.data or {})}


def _matches(record: Dict[str, Any], filters: Sequence[Filter]) -> bool:
    for field, op, value in filters:
        actual = record.get(field)
        if actual is None:
            return False
        try:
            if not _OPS[op](actual, value):
                return False
        except TypeError:
            # сравнение несравнимых типов (строка vs число) считаем промахом
            return False
    return True


class DocumentStore:
    """
    Документное хранилище поверх одной таблицы documents.
    Каждая операция открывает свою сессию и сама коммитит.
    Любая ошибка SQLAlchemy превращается в PersistenceError и летит наверх.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.session_factory() as session:
                doc = await session.get(Document, (collection, doc_id))
                return _as_record(doc) if doc else None
        except SQLAlchemyError as e:
            logger.error("store.get_failed", collection=collection, doc_id=doc_id, error=str(e))
            raise PersistenceError(f"Failed to read {collection}/{doc_id}") from e

    async def query(
        self,
        collection: str,
        filters: Optional[Sequence[Filter]] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Выборка из коллекции.
        Фильтры и сортировка по полям документа выполняются в памяти,
        чтобы не зависеть от JSON-диалекта конкретной БД.
        Без order_by порядок = порядок вставки.
        """
        for _, op, _ in filters or ():
            if op not in _OPS:
                raise ValueError(f"Unsupported filter operator: {op}")

        try:
            async with self.session_factory() as session:
                stmt = (
                    select(Document)
                    .where(Document.collection == collection)
                    .order_by(Document.created_at, Document.id)
                )
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("store.query_failed", collection=collection, error=str(e))
            raise PersistenceError(f"Failed to query {collection}") from e

        records = [_as_record(r) for r in rows]
        if filters:
            records = [r for r in records if _matches(r, filters)]
        if order_by:
            present = [r for r in records if r.get(order_by) is not None]
            missing = [r for r in records if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            records = present + missing
        if limit is not None:
            records = records[:limit]
        return records

    # ------------------------------------------------------------------
    # WRITE
    # ------------------------------------------------------------------

    async def put(self, collection: str, doc_id: str, record: Dict[str, Any]) -> None:
        """Создать или целиком перезаписать документ."""
        data = {k: v for k, v in record.items() if k != "id"}
        try:
            async with self.session_factory() as session:
                existing = await session.get(Document, (collection, doc_id))
                if existing:
                    existing.data = data
                else:
                    session.add(Document(collection=collection, id=doc_id, data=data))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("store.put_failed", collection=collection, doc_id=doc_id, error=str(e))
            raise PersistenceError(f"Failed to write {collection}/{doc_id}") from e

    async def append(self, collection: str, record: Dict[str, Any]) -> str:
        """Добавить документ со сгенерированным id. Возвращает id."""
        doc_id = uuid.uuid4().hex
        await self.put(collection, doc_id, record)
        return doc_id
