"""
Error taxonomy for ControlStock.

Services raise these; FastAPI handlers in controlstock.api.exception_handlers
turn them into JSON responses. None of them is fatal to the process.
"""


class ControlStockError(Exception):
    """Base class. status_code/code are used by the HTTP handlers."""
    status_code = 400
    code = "error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFound(ControlStockError):
    """Referenced id is absent from the store."""
    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(msg)


class ValidationError(ControlStockError):
    """Missing or out-of-range field. Raised before any store call."""
    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


class AuthorizationDenied(ControlStockError):
    status_code = 403
    code = "authorization_denied"


class Conflict(ControlStockError):
    """Duplicate unique value, or delete of a record other data still references."""
    status_code = 409
    code = "conflict"


class InsufficientStock(ControlStockError):
    status_code = 409
    code = "insufficient_stock"

    def __init__(self, warehouse_id, available: int, requested: int):
        self.warehouse_id = warehouse_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock in warehouse {warehouse_id}: "
            f"requested {requested}, only {available} available."
        )


class ConcurrentUpdate(ControlStockError):
    """Optimistic version conflict that persisted after the configured retries."""
    status_code = 409
    code = "concurrent_update"


class StoreIOError(ControlStockError):
    """Database/network failure. The caller may resubmit; nothing retries automatically."""
    status_code = 503
    code = "store_unavailable"
