from typing import Any, List, Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LedgerContractError(Exception):
    """A caller bypassed the payment acceptance rule. Programming error, never a user-facing result."""


class PersistenceError(Exception):
    """The persistence collaborator could not durably complete a write."""


class UnpersistedChangeError(ServiceError):
    """An administrative change was applied in memory but the write did not complete."""

    def __init__(self, message: str, records: Optional[List[Any]] = None) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.records = records or []
