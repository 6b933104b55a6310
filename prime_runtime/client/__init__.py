"""
Client module for the Prime API runtime.

This module contains the request pipeline: the OAuth2 token supplier, the
admission controller, the JSON:API envelope decoder and the request executor
that ties them together.
"""

from .executor import RequestExecutor, create_executor, parse_retry_after
from .json_api import JsonApiError, decode_body, extract_error_messages, is_error_document
from .oauth import TokenSupplier
from .rate_limiter import AdmissionController

__all__ = [
    "AdmissionController",
    "JsonApiError",
    "RequestExecutor",
    "TokenSupplier",
    "create_executor",
    "decode_body",
    "extract_error_messages",
    "is_error_document",
    "parse_retry_after",
]
