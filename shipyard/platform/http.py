"""Minimal HTTP client for webhook delivery.

- HttpClient: protocol (injectable for tests)
- RealHttpClient: urllib implementation
- MockHttpClient: records requests, returns canned responses
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from shipyard.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details. ``status`` is 0 for network-level failures."""

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    def post_json(self, url: str, payload: dict[str, object]) -> Result[int, HttpError]:
        """POST ``payload`` as JSON; Ok carries the response status."""
        ...


class RealHttpClient:
    """HTTP client using urllib with system certificates."""

    def __init__(self, timeout: float = 30.0, user_agent: str = "shipyard") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def post_json(self, url: str, payload: dict[str, object]) -> Result[int, HttpError]:
        body = json.dumps(payload).encode("utf-8")
        try:
            req = urllib.request.Request(
                url,
                data=body,
                method="POST",
                headers={
                    "User-Agent": self.user_agent,
                    "Content-Type": "application/json",
                },
            )
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                return Ok(int(response.status))
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


class MockHttpClient:
    """Records POSTs; answers 204 unless an error is configured for the URL."""

    def __init__(self) -> None:
        self._errors: dict[str, HttpError] = {}
        self.calls: list[tuple[str, dict[str, object]]] = []

    def fail(self, url: str, error: HttpError) -> None:
        self._errors[url] = error

    def post_json(self, url: str, payload: dict[str, object]) -> Result[int, HttpError]:
        self.calls.append((url, payload))
        error = self._errors.get(url)
        if error is not None:
            return Err(error)
        return Ok(204)
