# storefront/domain/errors.py
"""
Exception families raised by the services.

Validation and state errors stay ``ValueError`` subclasses, authorization
uses the builtin ``PermissionError`` and lost races are ``RuntimeError``s,
so routers can map whole families to HTTP codes.
"""


class NotFoundError(ValueError):
    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class InsufficientStockError(ValueError):
    pass


class InsufficientCoinsError(ValueError):
    pass


class InvalidTransitionError(ValueError):
    pass


class ConcurrencyError(RuntimeError):
    pass


class OrderIdConflict(ConcurrencyError):
    """Generated order id collided with one committed by a concurrent request."""


class OrderIdsExhausted(ValueError):
    """Every ORD-YYYYMMDD-XXXX sequence of the day is taken."""
