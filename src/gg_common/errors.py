"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Cron auth
  2xxx: Credits / ledger
  3xxx: Schedule
  4xxx: Scheduled run / rank checks
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Cron auth ---

class CronUnauthorizedError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Unauthorized", 401)


class CronSecretNotConfiguredError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Cron secret not configured", 500)


# --- 2xxx: Credits ---

class InsufficientCreditsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient credits: required {required}, available {available}",
            422,
        )

    @property
    def deficit(self) -> int:
        return max(0, self.required - self.available)


class InvalidCreditAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2002, f"Credit amount must be positive, got {amount}", 422)


class LedgerConflictError(AppError):
    """Another writer inserted the same idempotency key inside our transaction."""

    def __init__(self, idempotency_key: str) -> None:
        self.idempotency_key = idempotency_key
        super().__init__(2003, f"Ledger entry already exists for key {idempotency_key}", 409)


# --- 3xxx: Schedule ---

class DueWorkSelectionError(AppError):
    def __init__(self, tier: str, detail: str) -> None:
        self.tier = tier
        super().__init__(3001, f"Failed to select due work for {tier}: {detail}", 503)


# --- 4xxx: Scheduled run ---

class RankCheckExecutionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Rank check failed: {detail}", 502)


class ExecutionFailedError(AppError):
    """Raised by the saga after compensating a failed rank check.

    ``message`` is the original error's message; ``refunded`` tells whether the
    compensating refund landed.
    """

    def __init__(self, detail: str, refunded: bool) -> None:
        self.refunded = refunded
        super().__init__(4002, detail, 502)


# --- 9xxx: System ---

class StorageUnavailableError(AppError):
    def __init__(self, detail: str = "Storage unavailable") -> None:
        super().__init__(9003, detail, 503)
