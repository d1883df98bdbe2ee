from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from stock_engine.db.session import Base

# bigint identity on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY.
BigIntegerId = BigInteger().with_variant(Integer, "sqlite")


# --- Producto (documento de variantes + stock agregado) ---
class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(BigIntegerId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[str | None] = mapped_column(String(120), nullable=True)

    # derived: sum of every sizeStock quantity, recomputed on each adjustment
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    variants: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), default=list, nullable=False
    )

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())
