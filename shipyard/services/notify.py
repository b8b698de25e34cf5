"""Chat notification through a Discord-compatible webhook."""

from __future__ import annotations

from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import ConsoleProtocol
from shipyard.pipeline.errors import DistributionFailure
from shipyard.pipeline.fanout import NOTIFY_BRANCH
from shipyard.pipeline.model import ReleaseVersion, RunStatus
from shipyard.platform.http import HttpClient

__all__ = ["STATUS_COLORS", "WebhookNotifier", "build_payload"]

STATUS_COLORS: dict[RunStatus, int] = {
    "all_success": 0x2ECC71,
    "partial_failure": 0xF1C40F,
    "all_failure": 0xE74C3C,
}


def build_payload(
    *,
    product: str,
    version: ReleaseVersion,
    status: RunStatus,
    username: str,
    title: str | None = None,
) -> dict[str, object]:
    label = product.capitalize()
    embed: dict[str, object] = {
        "title": title or f"Published {label}",
        "description": f"Published {label} version {version}",
        "color": STATUS_COLORS[status],
        "fields": [{"name": "status", "value": status.replace("_", " "), "inline": True}],
    }
    return {"username": username, "embeds": [embed]}


class WebhookNotifier:
    def __init__(
        self,
        *,
        url: str,
        http: HttpClient,
        product: str,
        console: ConsoleProtocol,
        username: str = "Github Actions",
        title: str | None = None,
    ) -> None:
        self._url = url
        self._http = http
        self._product = product
        self._console = console
        self._username = username
        self._title = title

    def notify(
        self, status: RunStatus, version: ReleaseVersion
    ) -> Result[None, DistributionFailure]:
        payload = build_payload(
            product=self._product,
            version=version,
            status=status,
            username=self._username,
            title=self._title,
        )
        result = self._http.post_json(self._url, payload)
        if isinstance(result, Err):
            return Err(
                DistributionFailure(
                    branch=NOTIFY_BRANCH,
                    message="webhook delivery failed",
                    detail=str(result.error),
                )
            )
        self._console.info(f"notification sent (HTTP {result.value})")
        return Ok(None)
