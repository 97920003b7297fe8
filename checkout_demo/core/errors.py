"""Custom exceptions for the checkout demo."""

from typing import Optional


class CheckoutDemoError(Exception):
    """Base exception for checkout demo errors."""
    pass


class ConfigurationError(CheckoutDemoError):
    """Configuration error."""
    pass


class WidgetError(CheckoutDemoError):
    """Error related to the embedded payment widget."""
    pass


class WidgetLoadError(WidgetError):
    """Widget runtime could not be loaded or detected."""
    pass


class WidgetConstructionError(WidgetError):
    """Widget runtime threw while constructing an instance."""
    pass


class SessionNotReadyError(WidgetError):
    """Session has no session token yet."""
    pass


class PaymentAPIError(CheckoutDemoError):
    """Error calling the payment API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PaymentAPIUnreachable(PaymentAPIError):
    """Payment API could not be reached (network error or timeout)."""
    pass


class PaymentAPIRejected(PaymentAPIError):
    """Payment API rejected the request."""
    pass
