"""Concurrency and caching primitives used by the fetcher."""

from throttled_fetcher.utils.admission import (
    AdmissionGate,
    BoundedAdmission,
    UnboundedAdmission,
    admission_gate,
)
from throttled_fetcher.utils.cache import AsyncTTLCache
from throttled_fetcher.utils.throttle import ThrottleState

__all__ = [
    "AdmissionGate",
    "AsyncTTLCache",
    "BoundedAdmission",
    "ThrottleState",
    "UnboundedAdmission",
    "admission_gate",
]
