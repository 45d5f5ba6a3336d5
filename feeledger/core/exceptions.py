from typing import Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RemoteApiError(ServiceError):
    """The fee backend could not be reached or answered with an error status."""

    def __init__(self, message: str, upstream_status: Optional[int] = None) -> None:
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)
        self.upstream_status = upstream_status


class LedgerValidationError(ServiceError):
    """Rejected on the client before any request was sent."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> None:
        super().__init__(message, status_code)


class ClassResolutionError(LedgerValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY)


class LedgerNotLoadedError(ServiceError):
    def __init__(self, school_id: str) -> None:
        super().__init__(f"Fee ledger for school {school_id} is not mounted", status.HTTP_404_NOT_FOUND)
