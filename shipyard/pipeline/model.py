"""Value types that flow between pipeline stages.

All cross-leg data travels through these types. Everything is immutable
except ``ReleaseRecord``, whose artifact set and state are guarded by a lock
because legs attach to it from worker threads.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from shipyard.pipeline.errors import BuildFailure

HostClass = Literal["linux", "macos", "windows"]
# "zip": zip + tar.gz; "tar": tar.gz only
ArchiveStrategy = Literal["zip", "tar"]
BuildStatus = Literal["success", "failed"]
ReleaseState = Literal["draft", "published"]
RunStatus = Literal["all_success", "partial_failure", "all_failure"]

_TAG_REF_PREFIX = "refs/tags/"


@dataclass(frozen=True, slots=True)
class ReleaseVersion:
    """Token identifying one release run, taken verbatim from the tag."""

    token: str

    def __str__(self) -> str:
        return self.token

    @classmethod
    def from_ref(cls, ref: str) -> ReleaseVersion | None:
        """Parse ``refs/tags/v1.2.3`` or ``v1.2.3``; None if empty or invalid."""
        token = ref.strip().removeprefix(_TAG_REF_PREFIX)
        if not token or any(ch.isspace() or ch == "/" for ch in token):
            return None
        return cls(token)


def default_archive_strategy(host: HostClass) -> ArchiveStrategy:
    return "zip" if host == "windows" else "tar"


def aggregate_status(*, succeeded: int, failed: int) -> RunStatus:
    """Fold per-leg outcomes into one run status."""
    if succeeded == 0:
        return "all_failure"
    if failed == 0:
        return "all_success"
    return "partial_failure"


@dataclass(frozen=True, slots=True)
class BuildTarget:
    """One platform/architecture/flag combination to compile for."""

    identifier: str
    host_class: HostClass
    archive_strategy: ArchiveStrategy
    extra_flags: tuple[str, ...] = ()
    use_cross: bool = False
    produces_secondary_artifact: bool = False

    @property
    def is_windows(self) -> bool:
        return "windows" in self.identifier

    def binary_name(self, product: str) -> str:
        return f"{product}.exe" if self.is_windows else product


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Outcome of compiling one target. ``binary`` is set iff status is success."""

    target: BuildTarget
    status: BuildStatus
    binary: Path | None = None
    failure: BuildFailure | None = None

    def __post_init__(self) -> None:
        if (self.status == "success") != (self.binary is not None):
            raise ValueError("BuildResult.binary must be present iff status is success")

    @classmethod
    def succeeded(cls, target: BuildTarget, binary: Path) -> BuildResult:
        return cls(target=target, status="success", binary=binary)

    @classmethod
    def failed(cls, target: BuildTarget, failure: BuildFailure) -> BuildResult:
        return cls(target=target, status="failed", failure=failure)

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True, slots=True)
class PackagedArtifact:
    target: BuildTarget
    archive_paths: tuple[Path, ...]
    package_file: Path | None = None

    @property
    def files(self) -> tuple[Path, ...]:
        """Every produced file, archives first."""
        if self.package_file is None:
            return self.archive_paths
        return (*self.archive_paths, self.package_file)


class ReleaseRecord:
    """A release on the host: draft until the gate publishes it.

    Artifacts are keyed by target identifier, so re-running a leg replaces its
    previous entry instead of duplicating it.
    """

    def __init__(
        self,
        version: ReleaseVersion,
        record_id: str,
        *,
        state: ReleaseState = "draft",
        url: str | None = None,
    ) -> None:
        self.version = version
        self.record_id = record_id
        self.url = url
        self._state: ReleaseState = state
        self._artifacts: dict[str, PackagedArtifact] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"ReleaseRecord(version={self.version.token!r}, state={self.state!r}, "
            f"artifacts={len(self.artifacts)})"
        )

    @property
    def state(self) -> ReleaseState:
        with self._lock:
            return self._state

    @property
    def is_published(self) -> bool:
        return self.state == "published"

    @property
    def artifacts(self) -> tuple[PackagedArtifact, ...]:
        with self._lock:
            return tuple(self._artifacts.values())

    def attach(self, artifact: PackagedArtifact) -> None:
        with self._lock:
            self._artifacts[artifact.target.identifier] = artifact

    def mark_published(self) -> bool:
        """Flip Draft -> Published. Returns False if it was already published."""
        with self._lock:
            if self._state == "published":
                return False
            self._state = "published"
            return True
