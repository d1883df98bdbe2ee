from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum as SqlEnum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from stock_engine.db.session import Base
from stock_engine.domain.enums import MovementType
from stock_engine.models.product import BigIntegerId


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockMovement(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_product_created", "product_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntegerId, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        BigIntegerId,
        ForeignKey("products.id"),
        nullable=False,
        index=True,
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    # stored as the value ("venda"/"entrada"), not the member name
    movement_type: Mapped[MovementType] = mapped_column(
        SqlEnum(
            MovementType,
            name="stock_movement_type",
            native_enum=False,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    from_status: Mapped[str | None] = mapped_column(Text, nullable=True)
    to_status: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
