from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Document(Base):
    """
    Одна запись документного хранилища.
    Коллекции (products, orders, sales_data, inventory_updates, delivery_status,
    admins, users) живут в одной таблице и различаются полем collection.
    """
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(100), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_documents_collection_created", "collection", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Document(collection='{self.collection}', id='{self.id}')>"
