"""Release gate: owns the draft release and its single publish point.

State machine::

    Draft --attach--> Draft --publish--> Published

The draft is created before any leg starts. Legs attach their artifacts
concurrently; ``publish`` runs once, after every leg has been observed
complete, and a second call is rejected without touching the host.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from shipyard.core.config import PublishPolicyName
from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import ConsoleProtocol
from shipyard.pipeline.errors import GateConflict, GateError, HostError, UploadFailure
from shipyard.pipeline.model import PackagedArtifact, ReleaseRecord, ReleaseVersion

__all__ = ["HostRelease", "PublishPolicy", "ReleaseGate", "ReleaseHost"]


@dataclass(frozen=True, slots=True)
class HostRelease:
    """A release as seen by the hosting service."""

    record_id: str
    is_draft: bool
    url: str | None = None


class ReleaseHost(Protocol):
    def find_release(self, version: ReleaseVersion) -> Result[HostRelease | None, HostError]: ...

    def create_draft(
        self, version: ReleaseVersion, *, notes: str | None = None
    ) -> Result[HostRelease, HostError]: ...

    def upload_asset(self, record_id: str, path: Path) -> Result[None, HostError]: ...

    def set_published(self, record_id: str, published: bool) -> Result[None, HostError]: ...


@dataclass(frozen=True, slots=True)
class PublishPolicy:
    """Whether a run with failed legs may still publish.

    - always: publish whatever was attached
    - any_success: publish if at least one leg succeeded
    - all_success: publish only if no leg failed
    """

    name: PublishPolicyName = "any_success"

    def allows(self, *, succeeded: int, failed: int) -> bool:
        match self.name:
            case "always":
                return True
            case "any_success":
                return succeeded > 0
            case "all_success":
                return failed == 0
            case _:
                raise AssertionError(f"unexpected publish policy: {self.name}")


class ReleaseGate:
    def __init__(
        self,
        *,
        host: ReleaseHost,
        console: ConsoleProtocol,
        reuse_draft: bool = True,
    ) -> None:
        self._host = host
        self._console = console
        self._reuse_draft = reuse_draft
        self._publish_lock = threading.Lock()

    def create_draft(
        self, version: ReleaseVersion, *, notes: str | None = None
    ) -> Result[ReleaseRecord, GateError]:
        """Create the draft for ``version``, or pick up one left by a prior run."""
        existing = self._host.find_release(version)
        if isinstance(existing, Err):
            return existing

        found = existing.value
        if found is not None:
            if not found.is_draft:
                return Err(
                    GateConflict(
                        version=version.token,
                        message=f"release {version} is already published",
                        hint="tag a new version instead of re-running a published one",
                    )
                )
            if not self._reuse_draft:
                return Err(
                    GateConflict(
                        version=version.token,
                        message=f"a draft release for {version} already exists",
                        hint="delete the draft or set policy.reuse_draft = true",
                    )
                )
            self._console.info(f"reusing draft release {version}")
            return Ok(ReleaseRecord(version, found.record_id, url=found.url))

        created = self._host.create_draft(version, notes=notes)
        if isinstance(created, Err):
            return created

        self._console.success(f"draft release {version} created")
        return Ok(ReleaseRecord(version, created.value.record_id, url=created.value.url))

    def open_existing(self, version: ReleaseVersion) -> Result[ReleaseRecord, GateError]:
        """Load the record of an earlier run (for single-leg reruns and manual publish)."""
        existing = self._host.find_release(version)
        if isinstance(existing, Err):
            return existing

        found = existing.value
        if found is None:
            return Err(
                GateConflict(
                    version=version.token,
                    message=f"no release exists for {version}",
                    hint=f"start a full run with: shipyard release {version}",
                )
            )
        state = "draft" if found.is_draft else "published"
        return Ok(ReleaseRecord(version, found.record_id, state=state, url=found.url))

    def attach(
        self, record: ReleaseRecord, artifact: PackagedArtifact
    ) -> Result[None, UploadFailure]:
        """Upload every file of ``artifact``, then add it to the record.

        Safe to call from several legs at once. Upload failures are returned,
        not retried.
        """
        target_id = artifact.target.identifier
        for path in artifact.files:
            uploaded = self._host.upload_asset(record.record_id, path)
            if isinstance(uploaded, Err):
                return Err(
                    UploadFailure(
                        target=target_id,
                        path=path,
                        message=f"upload failed: {path.name}",
                        detail=uploaded.error.hint or uploaded.error.message,
                    )
                )

        record.attach(artifact)
        self._console.success(f"[{target_id}] attached {len(artifact.files)} file(s)")
        return Ok(None)

    def publish(self, record: ReleaseRecord) -> Result[None, GateError]:
        """Flip the record to published, exactly once."""
        with self._publish_lock:
            if record.is_published:
                return Err(
                    GateConflict(
                        version=record.version.token,
                        message=f"release {record.version} is already published",
                    )
                )

            flipped = self._host.set_published(record.record_id, True)
            if isinstance(flipped, Err):
                return flipped

            record.mark_published()

        self._console.success(f"release {record.version} published")
        return Ok(None)
