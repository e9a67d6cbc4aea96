"""
Typed errors for the inventory services.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with, so callers catch by type and clients switch on ``code``
instead of parsing messages.

    InventoryError
    |
    +-- UnauthorizedError           401  no authenticated session
    +-- ForbiddenError              403  access denied before any mutation
    |   +-- NoTeamError
    |   +-- FeatureNotAvailableError
    |   +-- SubscriptionExpiredError
    |   +-- PermissionDeniedError
    +-- NotFoundError               404  missing or owned by another team
    +-- InsufficientStockError      409  "out" larger than current stock
    +-- ConflictError               409
    |   +-- InUseError                   category/unit still referenced
    |   +-- ArchivedItemError            movement against an archived item
    |   +-- ConcurrentModificationError  compare-and-swap retries exhausted
    +-- ValidationError             422  malformed input
"""

from typing import Any, Optional
from uuid import UUID


class InventoryError(Exception):
    code: str = "INVENTORY_ERROR"
    status_code: int = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        out = {"detail": self.message, "code": self.code}
        for k, v in self.extra.items():
            out[k] = str(v) if isinstance(v, UUID) else v
        return out


class UnauthorizedError(InventoryError):
    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(InventoryError):
    code = "FORBIDDEN"
    status_code = 403


class NoTeamError(ForbiddenError):
    code = "NO_TEAM"

    def __init__(self):
        super().__init__("User not in a team")


class FeatureNotAvailableError(ForbiddenError):
    code = "FEATURE_NOT_AVAILABLE"

    def __init__(self, feature_key: str):
        super().__init__("Feature not available", feature_key=feature_key)
        self.feature_key = feature_key


class SubscriptionExpiredError(ForbiddenError):
    code = "SUBSCRIPTION_EXPIRED"

    def __init__(self, is_trial: bool = False):
        super().__init__("Subscription expired", is_trial=is_trial)
        self.is_trial = is_trial


class PermissionDeniedError(ForbiddenError):
    code = "PERMISSION_DENIED"

    def __init__(self, permission: str):
        super().__init__("Permission denied", permission=permission)
        self.permission = permission


class NotFoundError(InventoryError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[UUID] = None):
        super().__init__(f"{entity} not found", entity=entity, entity_id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(InventoryError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available={available} requested={requested}",
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class ConflictError(InventoryError):
    code = "CONFLICT"
    status_code = 409


class InUseError(ConflictError):
    code = "IN_USE"

    def __init__(self, entity: str, entity_id: UUID):
        super().__init__(
            f"Cannot delete {entity.lower()} with associated items",
            entity=entity,
            entity_id=entity_id,
        )
        self.entity = entity
        self.entity_id = entity_id


class ArchivedItemError(ConflictError):
    code = "ITEM_ARCHIVED"

    def __init__(self, item_id: UUID):
        super().__init__("Item is archived", item_id=item_id)
        self.item_id = item_id


class ConcurrentModificationError(ConflictError):
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, item_id: UUID, attempts: int):
        super().__init__(
            f"Item stock changed concurrently; gave up after {attempts} attempts",
            item_id=item_id,
            attempts=attempts,
        )
        self.item_id = item_id
        self.attempts = attempts


class ValidationError(InventoryError):
    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.field = field
