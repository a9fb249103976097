"""Domain errors raised by the services and mapped to HTTP responses in main."""
from typing import Iterable


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    status_code = 400


class NotFoundError(StoreError):
    status_code = 404

    @classmethod
    def for_id(cls, entity: str, entity_id: int) -> "NotFoundError":
        return cls(f"{entity} with ID {entity_id} not found")

    @classmethod
    def for_ids(cls, entity: str, ids: Iterable[int]) -> "NotFoundError":
        missing = ", ".join(str(i) for i in ids)
        return cls(f"{entity} with IDs [{missing}] not found")


class InsufficientStockError(StoreError):
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient quantity for product {product_name}. "
            f"Available: {available}, Requested: {requested}"
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested
