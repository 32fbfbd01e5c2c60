# xero_sync/shared/exceptions.py
from fastapi import HTTPException, status


# Authentication & Authorization Exceptions
class InvalidTokenError(HTTPException):
    def __init__(self, message: str = "Missing or invalid token") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class NotAuthorizedError(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")


# Validation / Request Exceptions
class InvalidDataError(HTTPException):
    def __init__(self, message: str = "Invalid request data") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


# Integration Exceptions
class IntegrationConfigurationError(HTTPException):
    def __init__(self, message: str = "Integration is not configured") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class IntegrationConnectionError(HTTPException):
    def __init__(self, message: str = "Integration connection failed") -> None:
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)


class IntegrationAuthenticationError(HTTPException):
    def __init__(self, message: str = "Integration authentication failed") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class IntegrationTokenExpiredError(HTTPException):
    def __init__(self, message: str = "Integration token has expired") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


# Credential encryption
class EncryptionError(Exception):
    """Raised when sealing or opening a stored secret fails."""

    pass
