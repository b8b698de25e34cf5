"""Aggregated outcome of a release run.

The report enumerates which targets succeeded or failed (and at which stage),
which distribution branches succeeded or failed, and the final release state,
so a human can decide whether to re-run a leg or intervene by hand.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from shipyard.pipeline.fanout import BranchOutcome
from shipyard.pipeline.model import ReleaseState, RunStatus, aggregate_status

__all__ = [
    "BranchReport",
    "LegReport",
    "LegStage",
    "ReportKind",
    "RunReport",
    "describe_failure",
]

LegStage = Literal["build", "package", "attach"]
# run: full release; leg: single-leg rerun; publish: manual gate
ReportKind = Literal["run", "leg", "publish"]


def describe_failure(error: object) -> tuple[str, str | None]:
    """(message, hint) for a failure value or a contained exception."""
    if error is None:
        return ("unknown failure", None)
    if isinstance(error, BaseException):
        return (f"unexpected error: {error!r}", None)
    message: str = getattr(error, "message", str(error))
    hint: str | None = getattr(error, "hint", None)
    return (message, hint)


@dataclass(frozen=True, slots=True)
class LegReport:
    target: str
    status: Literal["success", "failed"]
    # last stage reached: the failing stage, or "attach" on success
    stage: LegStage
    error: str | None = None
    hint: str | None = None
    files: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True, slots=True)
class BranchReport:
    branch: str
    status: Literal["success", "failed", "skipped"]
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: BranchOutcome) -> BranchReport:
        error = outcome.failure.message if outcome.failure is not None else outcome.reason
        return cls(branch=outcome.branch, status=outcome.status, error=error)


@dataclass(frozen=True, slots=True)
class RunReport:
    version: str
    kind: ReportKind = "run"
    legs: tuple[LegReport, ...] = ()
    branches: tuple[BranchReport, ...] = ()
    # None when the draft could not even be created
    release_state: ReleaseState | None = None
    release_url: str | None = None
    gate_error: str | None = None
    gate_hint: str | None = None
    # gate_error came from the release host (unreachable, auth), not a state conflict
    host_unreachable: bool = False

    @property
    def succeeded(self) -> tuple[str, ...]:
        return tuple(leg.target for leg in self.legs if leg.ok)

    @property
    def failed(self) -> tuple[str, ...]:
        return tuple(leg.target for leg in self.legs if not leg.ok)

    @property
    def failed_branches(self) -> tuple[str, ...]:
        return tuple(b.branch for b in self.branches if b.status == "failed")

    @property
    def leg_status(self) -> RunStatus:
        return aggregate_status(succeeded=len(self.succeeded), failed=len(self.failed))

    @property
    def status(self) -> RunStatus:
        """Overall status.

        For a full run, ``all_success`` requires every leg attached, the
        release published and no distribution branch failed; ``all_failure``
        means nothing shipped. A leg rerun reports its one leg; a manual
        publish reports the gate and the fanout.
        """
        if self.kind == "leg":
            return "all_success" if self.legs and not self.failed else "all_failure"
        if self.kind == "publish":
            if self.gate_error or not self.published:
                return "all_failure"
            return "partial_failure" if self.failed_branches else "all_success"

        if self.release_state is None or not self.succeeded:
            return "all_failure"
        if self.failed or self.failed_branches or self.release_state != "published":
            return "partial_failure"
        return "all_success"

    @property
    def published(self) -> bool:
        return self.release_state == "published"

    def to_dict(self) -> dict[str, object]:
        return {
            "version": self.version,
            "kind": self.kind,
            "status": self.status,
            "release": {
                "state": self.release_state,
                "url": self.release_url,
                "error": self.gate_error,
                "hint": self.gate_hint,
                "host_unreachable": self.host_unreachable,
            },
            "targets": [
                {
                    "target": leg.target,
                    "status": leg.status,
                    "stage": leg.stage,
                    "error": leg.error,
                    "hint": leg.hint,
                    "files": list(leg.files),
                }
                for leg in self.legs
            ],
            "distribution": [
                {"branch": b.branch, "status": b.status, "error": b.error}
                for b in self.branches
            ],
        }
