from typing import Optional, Any

class ElecBotError(Exception):
    """
    Base exception for the electricity alert bot.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class AuthenticationError(ElecBotError):
    """
    Raised when authentication fails (e.g. webhook secret mismatch).
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)

class ValidationError(ElecBotError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)

class ExternalServiceError(ElecBotError):
    """
    Raised when an external service (e.g., Telegram, balance provider) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)

class BalanceProviderError(ExternalServiceError):
    """
    Raised when a balance query fails. The message is the user-facing reason.
    """
    def __init__(self, message: str = "Balance query failed", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "BALANCE_PROVIDER_ERROR"
