"""
Service Base Types

Shared service contract and the error hierarchy raised across
market data, indicator and refresh services.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """A service turns one validated input model into one output model."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name used in logs and error messages."""

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """Run the service. Raises ServiceError subclasses on failure."""

    @abstractmethod
    async def health_check(self) -> bool:
        """True when the service can take requests."""


class ServiceError(Exception):
    """Root of every service error; carries the originating service name."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class FetchError(ServiceError):
    """Provider failure or malformed response."""

    def __init__(self, service_name: str, message: str, cause: Exception = None, details: dict = None):
        self.cause = cause
        super().__init__(service_name, message, details)


class InsufficientDataError(ServiceError):
    """Series shorter than the minimum window."""

    def __init__(self, service_name: str, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            service_name,
            f"need {required} candles, got {available}",
            {"required": required, "available": available},
        )


class CacheWriteError(ServiceError):
    """Storage quota exceeded or value not serializable."""
    pass


class StaleResultDiscarded(ServiceError):
    """A newer request for the same key superseded this one."""

    def __init__(self, service_name: str, key: str, sequence: int, latest: int):
        self.key = key
        self.sequence = sequence
        self.latest = latest
        super().__init__(
            service_name,
            f"result #{sequence} for {key} superseded by #{latest}",
        )
