"""HTTP adapter built on httpx."""
from __future__ import annotations

from .client import HttpClient, HttpClientConfig
from .errors import STATUS_KINDS, error_for_response, kind_for_status, map_http_error
from .expect import HttpResponseExpectation
from .results import HttpResponseResult

__all__ = [
    "STATUS_KINDS",
    "HttpClient",
    "HttpClientConfig",
    "HttpResponseExpectation",
    "HttpResponseResult",
    "error_for_response",
    "kind_for_status",
    "map_http_error",
]
