"""
Client error taxonomy.

Every failure the chat client can surface falls into one of these classes.
None of them is fatal: callers catch them at the component boundary and
degrade to an inline message.
"""

from typing import Optional


class ClientError(Exception):
    """Base class for all client-side errors"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(ClientError):
    """Input rejected locally, before any request is made"""
    pass


class AuthError(ClientError):
    """Backend rejected the credentials or the signup"""
    pass


class TransportError(ClientError):
    """Network unreachable, timed out, or a non-success status"""

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(TransportError):
    """The backend no longer has the conversation being operated on"""

    def __init__(self, message: str = "", status_code: Optional[int] = 404):
        super().__init__(message, status_code)
