"""Structured results returned by the validation gate and appliers."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from fund_ledger.domain.errors import (
    LedgerValidationError,
    ShortfallError,
    StoreUnavailableError,
)


class OutcomeStatus(str, Enum):
    """Terminal state of a validated operation."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a sufficiency check.

    Attributes:
        status: Accepted, rejected, or unavailable when the store failed.
        requested: Amount (USD) or quantity the caller asked for.
        available: Balance the request was checked against, when known.
        error_code: Stable code of the rejection reason.
        message: Human readable reason, never locale formatted.
    """

    status: OutcomeStatus
    requested: Decimal
    available: Decimal | None = None
    error_code: str | None = None
    message: str | None = None

    @property
    def valid(self) -> bool:
        """Return True when the operation may proceed."""
        return self.status == OutcomeStatus.ACCEPTED

    @property
    def shortfall(self) -> Decimal:
        """Return how much is missing to satisfy the request."""
        if self.available is None:
            return Decimal("0")
        return max(Decimal("0"), self.requested - self.available)

    @property
    def remaining(self) -> Decimal | None:
        """Return the balance left after an accepted request."""
        if not self.valid or self.available is None:
            return None
        return self.available - self.requested

    @classmethod
    def accepted(
        cls,
        available: Decimal,
        requested: Decimal,
    ) -> "ValidationOutcome":
        """Build an accepted outcome."""
        return cls(
            status=OutcomeStatus.ACCEPTED,
            requested=requested,
            available=available,
        )

    @classmethod
    def from_error(
        cls,
        error: Exception,
        requested: Decimal,
        available: Decimal | None = None,
    ) -> "ValidationOutcome":
        """Translate a ledger error into a rejected or unavailable outcome.

        Args:
            error: Raised validation or store error.
            requested: Amount or quantity the caller asked for.
            available: Balance known before the error, if any.

        Returns:
            ValidationOutcome: Outcome carrying the error code and numbers.
        """
        if isinstance(error, StoreUnavailableError):
            return cls(
                status=OutcomeStatus.UNAVAILABLE,
                requested=requested,
                error_code=error.code,
                message=error.message,
            )
        if isinstance(error, ShortfallError):
            available = error.available
        code = getattr(error, "code", LedgerValidationError.code)
        return cls(
            status=OutcomeStatus.REJECTED,
            requested=requested,
            available=available,
            error_code=code,
            message=str(error),
        )


@dataclass(frozen=True)
class MutationResult:
    """Result of a mutation applier call.

    Attributes:
        status: Accepted when events were appended.
        events: Appended events, primary event first.
        validation: Gate outcome, when the operation was gated.
        error_code: Stable code of the rejection reason.
        message: Human readable reason.
    """

    status: OutcomeStatus
    events: tuple = field(default_factory=tuple)
    validation: ValidationOutcome | None = None
    error_code: str | None = None
    message: str | None = None

    @property
    def accepted(self) -> bool:
        """Return True when the mutation was applied."""
        return self.status == OutcomeStatus.ACCEPTED

    @property
    def event(self):
        """Return the primary appended event, if any."""
        return self.events[0] if self.events else None


__all__ = ["OutcomeStatus", "ValidationOutcome", "MutationResult"]
