from typing import Optional, Dict, Any


class CostNotifierException(Exception):
    """Base exception for all cost notifier errors."""
    def __init__(
        self,
        message: str,
        code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigurationError(CostNotifierException):
    """Raised when configuration, credentials or region are invalid or missing."""
    def __init__(self, message: str, code: str = "config_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class NetworkError(CostNotifierException):
    """Raised on transport failures and timeouts."""
    def __init__(self, message: str, code: str = "network_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class ApiError(CostNotifierException):
    """Raised when a remote endpoint answers with a non-success response."""
    def __init__(self, message: str, code: str = "api_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class BillingApiError(ApiError):
    """Raised when AWS Cost Explorer rejects a request."""
    def __init__(self, message: str, code: str = "billing_api_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class WebhookDeliveryError(ApiError):
    """Raised when the chat webhook answers with a non-2xx status."""
    def __init__(self, message: str, status_code: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="webhook_delivery_failed", details=details)
        self.status_code = status_code


class ParseError(CostNotifierException):
    """Raised when a billing total cannot be parsed as a decimal amount."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="parse_error", details=details)
