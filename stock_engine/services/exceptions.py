# stock_engine/services/exceptions.py

class ServiceError(Exception):
    """Base class for service-layer errors."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class StockError(ServiceError):
    """Fatal stock adjustment failure; the caller must roll back its transaction."""
    pass


class InvalidQuantityError(StockError):
    """Raised when a quantity is not a positive integer."""
    pass


class ProductNotFoundError(StockError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class NoVariantsError(StockError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} has no variants")


class ColorNotFoundError(StockError):
    """No color rule matched; ``available_colors`` lists every variant for diagnostics."""

    def __init__(self, product_id: int, product_name: str, color: str | None, available_colors: list[str]):
        self.product_id = product_id
        self.color = color
        self.available_colors = available_colors
        super().__init__(
            f'Color "{color}" not found in product {product_id} ("{product_name}"). '
            f"Available colors: {', '.join(available_colors)}"
        )


class InsufficientStockError(StockError):
    def __init__(self, product_name: str, color: str, size: str, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_name} ({color}/{size}). "
            f"Requested: {requested}, Available: {available}"
        )
