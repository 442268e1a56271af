"""
errors.py — FocusFlow exception hierarchy
Services raise these; main.py renders them as JSON with the matching status code.
"""

from typing import Any, Dict, Optional


class FocusFlowError(Exception):
    """Base exception for FocusFlow"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(FocusFlowError):
    """Invalid input, rejected before any write (400)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(FocusFlowError):
    """Resource not found for this user (404)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=404, details=details)


class LockedError(FocusFlowError):
    """Action not permitted by the entity's current lifecycle state (409)"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=409, details=details)


class StoreError(FocusFlowError):
    """The data store rejected or failed a request (503)"""

    def __init__(self, message: str = "Data store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=503, details=details)
