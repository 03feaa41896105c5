"""
CoinWatch Services

Service layer containing all business logic.
Each service has a defined interface (contract) and implementation.
"""

from coinwatch.services.base import (
    BaseService,
    ServiceError,
    FetchError,
    InsufficientDataError,
    CacheWriteError,
    StaleResultDiscarded,
)

__all__ = [
    "BaseService",
    "ServiceError",
    "FetchError",
    "InsufficientDataError",
    "CacheWriteError",
    "StaleResultDiscarded",
]
