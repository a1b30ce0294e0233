"""
cloudpay error types — raised at the REST boundary, caught by the engine.
"""

from typing import Any, Optional


class CloudPayError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class AuthError(CloudPayError):
    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(code, message)


class TransactionError(CloudPayError):
    def __init__(self, message: str, code: str = "transaction_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class ConnectionError(CloudPayError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
