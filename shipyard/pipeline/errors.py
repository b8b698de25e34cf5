"""Failure values produced by the release pipeline.

None of these are exceptions: legs return them, the orchestrator aggregates
them, and the CLI renders them. ``message``/``hint`` follow the shape the CLI
error helpers expect.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class BuildFailure:
    """One target's compile step failed."""

    target: str
    message: str
    returncode: int | None = None
    detail: str | None = None

    @property
    def hint(self) -> str | None:
        return self.detail


@dataclass(frozen=True, slots=True)
class PackagingFailure:
    """Archive or OS package could not be produced for a successful build."""

    target: str
    message: str
    path: Path | None = None
    detail: str | None = None

    @property
    def hint(self) -> str | None:
        return self.detail


@dataclass(frozen=True, slots=True)
class UploadFailure:
    """An artifact file could not be attached to the draft release."""

    target: str
    path: Path
    message: str
    detail: str | None = None

    @property
    def hint(self) -> str | None:
        return self.detail or f"retry with: shipyard leg <tag> {self.target}"


@dataclass(frozen=True, slots=True)
class GateConflict:
    """The release record is not in a state that allows the operation."""

    version: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class HostError:
    """The release host could not be reached or returned garbage."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class PublishWithheld:
    """The publish policy kept the release in draft."""

    version: str
    policy: str
    message: str

    @property
    def hint(self) -> str | None:
        return f"inspect the draft, then run: shipyard publish {self.version}"


@dataclass(frozen=True, slots=True)
class DistributionFailure:
    """A post-publication branch (registry, notification) failed."""

    branch: str
    message: str
    detail: str | None = None

    @property
    def hint(self) -> str | None:
        return self.detail


GateError = GateConflict | HostError
