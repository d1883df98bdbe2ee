# stock_engine/domain/enums.py
import enum


class StockOperation(str, enum.Enum):
    reserve = "reserve"
    restore = "restore"


class MovementType(str, enum.Enum):
    venda = "venda"
    entrada = "entrada"


class AdjustmentStatus(str, enum.Enum):
    applied = "applied"
    skipped = "skipped"


class SkipReason(str, enum.Enum):
    no_sizes = "no_sizes"
    size_unresolved = "size_unresolved"


MOVEMENT_TYPE_BY_OPERATION: dict[StockOperation, MovementType] = {
    StockOperation.reserve: MovementType.venda,
    StockOperation.restore: MovementType.entrada,
}
