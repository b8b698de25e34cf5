"""Distribution fanout: downstream channels triggered after publication.

Both branches are independent. Either may fail; neither failure touches the
release record, and nothing here retries.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Literal, Protocol

from shipyard.core.result import Err, Result
from shipyard.output.console import ConsoleProtocol
from shipyard.pipeline.errors import DistributionFailure
from shipyard.pipeline.model import PackagedArtifact, ReleaseRecord, ReleaseVersion, RunStatus

__all__ = [
    "BranchOutcome",
    "DistributionFanout",
    "NOTIFY_BRANCH",
    "Notifier",
    "REGISTRY_BRANCH",
    "RegistryPublisher",
]

REGISTRY_BRANCH = "registry"
NOTIFY_BRANCH = "notify"

BranchStatus = Literal["success", "failed", "skipped"]


class RegistryPublisher(Protocol):
    def publish(self, artifacts: Sequence[PackagedArtifact]) -> Result[None, DistributionFailure]:
        """Publish the release to a secondary package registry."""
        ...


class Notifier(Protocol):
    def notify(
        self, status: RunStatus, version: ReleaseVersion
    ) -> Result[None, DistributionFailure]: ...


@dataclass(frozen=True, slots=True)
class BranchOutcome:
    branch: str
    status: BranchStatus
    failure: DistributionFailure | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


class DistributionFanout:
    """Runs the registry and notification branches for a published release."""

    def __init__(
        self,
        *,
        registry: RegistryPublisher | None,
        notifier: Notifier | None,
        console: ConsoleProtocol,
    ) -> None:
        self._registry = registry
        self._notifier = notifier
        self._console = console

    def publish_registry(self, record: ReleaseRecord) -> BranchOutcome:
        if self._registry is None:
            return BranchOutcome(REGISTRY_BRANCH, "skipped", reason="registry disabled")
        if not record.is_published:
            return BranchOutcome(REGISTRY_BRANCH, "skipped", reason="release not published")

        result = self._registry.publish(record.artifacts)
        return self._outcome(REGISTRY_BRANCH, result)

    def notify(self, record: ReleaseRecord, status: RunStatus) -> BranchOutcome:
        if self._notifier is None:
            return BranchOutcome(NOTIFY_BRANCH, "skipped", reason="no webhook configured")
        if not record.is_published:
            return BranchOutcome(NOTIFY_BRANCH, "skipped", reason="release not published")

        result = self._notifier.notify(status, record.version)
        return self._outcome(NOTIFY_BRANCH, result)

    def run(self, record: ReleaseRecord, status: RunStatus) -> tuple[BranchOutcome, ...]:
        """Run both branches concurrently and wait for both."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="shipyard-fanout") as pool:
            registry = pool.submit(self._contained, REGISTRY_BRANCH, self.publish_registry, record)
            notify = pool.submit(self._contained, NOTIFY_BRANCH, self.notify, record, status)
            return (registry.result(), notify.result())

    def _contained(
        self, branch: str, fn: Callable[..., BranchOutcome], *args: object
    ) -> BranchOutcome:
        try:
            return fn(*args)
        except Exception as e:  # one branch must not take the other down
            return self._outcome(branch, Err(DistributionFailure(branch, f"crashed: {e!r}")))

    def _outcome(self, branch: str, result: Result[None, DistributionFailure]) -> BranchOutcome:
        if isinstance(result, Err):
            self._console.warning(f"{branch}: {result.error.message}")
            return BranchOutcome(branch, "failed", failure=result.error)
        self._console.success(f"{branch}: done")
        return BranchOutcome(branch, "success")
