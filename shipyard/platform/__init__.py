"""Platform abstraction layer (processes, HTTP)."""

from .http import (
    HttpClient,
    HttpError,
    MockHttpClient,
    RealHttpClient,
)
from .process import (
    ProcessError,
    merged_env,
    run,
)

__all__ = [
    # http
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    # process
    "ProcessError",
    "merged_env",
    "run",
]
