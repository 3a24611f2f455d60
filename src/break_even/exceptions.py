"""Custom exceptions for Break Even."""


class BreakEvenError(Exception):
    """Base exception for all Break Even errors."""

    pass


class ConfigurationError(BreakEvenError):
    """Raised when configuration is invalid or missing."""

    pass


class RateUnavailableError(BreakEvenError):
    """Raised when a currency is missing from an exchange rate snapshot."""

    def __init__(self, currency_code: str, message: str | None = None):
        self.currency_code = currency_code
        super().__init__(
            message or f"No exchange rate available for {currency_code}"
        )


class SplitValidationError(BreakEvenError):
    """Raised by strict validation when a split cannot be saved as-is."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Invalid split:\n  " + "\n  ".join(problems))


class InvalidAmountError(BreakEvenError):
    """Raised when a settlement amount is zero, negative or not a number."""

    pass


class RoundingError(BreakEvenError):
    """Raised when rounded share lines drift too far from the unrounded total."""

    pass


class ReceiptParseError(BreakEvenError):
    """Raised when a receipt analysis response cannot be parsed."""

    pass


class APIError(BreakEvenError):
    """Base class for API-related errors."""

    pass


class ExchangeRateAPIError(APIError):
    """Raised when the exchange rate API request fails."""

    pass
