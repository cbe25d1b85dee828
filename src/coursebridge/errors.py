"""
Errors raised while handling a bridge request.

Everything here is caught by the HTTP layer and turned into an
``{"error": "..."}`` response.
"""


class BridgeError(Exception):
    """Base exception for all bridge errors."""
    pass


class InvalidInput(BridgeError):
    """Raised when the incoming request is missing required fields or is malformed."""
    pass


class ConfigError(BridgeError):
    """Raised when the selected provider has no credentials configured."""
    pass


class StoreError(BridgeError):
    """Raised by the session store for unreadable payloads. Never leaves the store."""
    pass


class ProviderError(BridgeError):
    """Raised when an upstream AI API returns a non-success status."""

    def __init__(self, provider: str, status: int | None, detail: str, operation: str = "chat"):
        self.provider = provider
        self.status = status
        self.detail = detail
        self.operation = operation
        if status is None:
            message = f"{provider} {operation} error: {detail}"
        else:
            message = f"{provider} {operation} error {status}: {detail}"
        super().__init__(message)
