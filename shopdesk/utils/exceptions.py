# utils/exceptions.py
# Domain errors; api/server.py maps them onto HTTP responses via status_code


class ShopError(Exception):
    status_code = 500
    public = False  # message may be shown to the client

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ValidationError(ShopError):
    status_code = 400
    public = True


class NotFoundError(ShopError):
    status_code = 404
    public = True


class InsufficientStockError(ShopError):
    status_code = 400
    public = True

    def __init__(self, size: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for size {size}. Available: {available}, Requested: {requested}"
        )
        self.size = size
        self.available = available
        self.requested = requested


class TransactionError(ShopError):
    """The atomic commit failed; nothing was written."""
    status_code = 500


class UpstreamUnavailable(ShopError):
    """One report data source could not be read."""
    status_code = 503

    def __init__(self, collection: str, cause: Exception | None = None):
        super().__init__(f"collection '{collection}' unavailable: {cause}")
        self.collection = collection
        self.cause = cause
