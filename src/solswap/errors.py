"""Exception hierarchy for swap execution."""

from typing import Optional


class SwapError(Exception):
    """Base exception for swap execution failures."""
    pass


class AmountTooSmallError(SwapError, ValueError):
    """Raised when the amount rounds down to zero base units of the input token."""
    pass


class QuoteUnavailableError(SwapError):
    """Raised when the aggregator returns no usable route."""
    pass


class QuoteExpiredError(SwapError):
    """Raised when a quote outlived its validity window before use."""
    pass


class InstructionFetchError(SwapError):
    """Raised when swap instructions cannot be fetched for a quote."""
    pass


class SimulationError(SwapError):
    """Raised when a dry-run of the instructions fails."""

    def __init__(self, message: str, logs: Optional[list[str]] = None):
        self.logs = logs or []
        super().__init__(message)


class InsufficientFundsForRentError(SwapError):
    """Raised when the simulated swap leaves an account below rent exemption.

    This is not retriable: the amount is below what the network can allocate,
    so widening slippage will not help.
    """

    def __init__(self, account_index: Optional[int] = None):
        self.account_index = account_index
        super().__init__(
            "Insufficient funds for rent"
            + (f" (account index {account_index})" if account_index is not None else "")
        )


class AssemblyError(SwapError):
    """Raised when instruction payloads cannot be built into a transaction."""
    pass


class TransactionAlreadySignedError(SwapError):
    """Raised on a second attempt to sign the same transaction."""
    pass


class BundleSubmissionError(SwapError):
    """Raised when the block engine rejects or drops a bundle submission."""
    pass


class BundleConfirmationError(SwapError):
    """Raised when a bundle does not land within the confirmation budget."""

    def __init__(self, message: str, last_status=None):
        self.last_status = last_status
        super().__init__(message)


class SwapAttemptError(SwapError):
    """A single attempt failed at a given stage."""

    def __init__(self, stage: str, attempt: int, cause: BaseException):
        self.stage = stage
        self.attempt = attempt
        self.cause = cause
        super().__init__(
            f"Attempt {attempt + 1} failed during {stage}: {type(cause).__name__}: {cause}"
        )


class SwapFailedError(SwapError):
    """Raised when every attempt of a swap operation failed."""

    def __init__(self, attempts: int, last_error: SwapAttemptError):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Swap failed after {attempts} attempts. Last error: {last_error}")


class TokenInfoError(SwapError):
    """Raised when mint metadata cannot be read from the chain."""
    pass


class LookupTableError(SwapError):
    """Raised when an address lookup table cannot be resolved."""
    pass
