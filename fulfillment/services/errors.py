"""Error taxonomy for fulfillment operations.

Business-rule errors derive from ``FulfillmentError`` and are reported to the
human actor as-is. Storage failures derive from ``RepositoryError`` and are
treated as infrastructure errors by the API layer.
"""


class FulfillmentError(Exception):
    """Base class for business-rule violations."""

    code: str = "fulfillment_error"

    def __init__(self, message: str | None = None) -> None:
        self.message: str = message or (self.__doc__ or self.code).strip()
        super().__init__(self.message)


class InvalidTransition(FulfillmentError):
    """Requested status change is not allowed from the current status."""

    code = "invalid_transition"


class PaymentNotApproved(FulfillmentError):
    """Transfer payment must be approved by an administrator first."""

    code = "payment_not_approved"


class NotAuthorized(FulfillmentError):
    """Actor role is not allowed to perform this action."""

    code = "not_authorized"


class AlreadyClaimed(FulfillmentError):
    """Order already has a delivery worker or a pending claim request."""

    code = "already_claimed"


class NoActiveRequest(FulfillmentError):
    """Order has no pending claim request to resolve."""

    code = "no_active_request"


class WorkerNotEligible(FulfillmentError):
    """Delivery worker is not approved, not active or belongs to another branch."""

    code = "worker_not_eligible"


class CancellationWindowClosed(FulfillmentError):
    """Orders can only be cancelled shortly after being placed."""

    code = "cancellation_window_closed"


class InvalidBusinessHours(FulfillmentError):
    """Business hours must close later on the same day than they open."""

    code = "invalid_business_hours"


class BranchClosed(FulfillmentError):
    """Branch is not accepting orders right now."""

    code = "branch_closed"


class RepositoryError(Exception):
    """Base class for storage-layer failures."""


class EntityNotFound(RepositoryError):
    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class WriteConflict(RepositoryError):
    """Row changed concurrently since it was loaded."""
