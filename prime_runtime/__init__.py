"""
Prime API Runtime

The request pipeline between the Prime MCP tool layer and the Prime REST
API. It provides:
- OAuth2 password grant token management with single-flight refresh
- Per-minute, daily and concurrency admission control
- Error classification with a single authorized retry on 401
"""

__version__ = "0.1.0"

from .client import AdmissionController, RequestExecutor, TokenSupplier, create_executor
from .core.exceptions import ErrorKind, PrimeApiError, QuotaExceededError

__all__ = [
    "AdmissionController",
    "RequestExecutor",
    "TokenSupplier",
    "create_executor",
    "ErrorKind",
    "PrimeApiError",
    "QuotaExceededError",
    "__version__",
]
