class TokenEaseError(Exception):
    """Base class for domain errors raised by the queue rules and services."""


class InvalidTransition(TokenEaseError):
    def __init__(self, current: str, target: str, reason: str | None = None):
        self.current = current
        self.target = target
        message = reason or f"Cannot move appointment from '{current}' to '{target}'"
        super().__init__(message)


class InvalidConfiguration(TokenEaseError):
    pass


class StoreUnavailable(TokenEaseError):
    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Store operation '{operation}' failed: {cause}")


class BookingRejected(TokenEaseError):
    """
    Booking refused by a policy check.

    `code` is machine readable: account_blocked, date_in_past, slot_mismatch,
    duplicate_booking, slot_full.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)
