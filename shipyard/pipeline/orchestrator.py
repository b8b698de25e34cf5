"""Release orchestration.

A run is an explicit task graph::

    build:<id> -> package:<id> -> attach:<id>   (one leg per target)
    attach:*  ..> publish                         (after: waits for every leg)
    publish   -> registry, notify                 (needs: only once published)

The draft is created before the graph starts. Legs never see each other's
data; everything they share goes through the ``ReleaseRecord``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import ConsoleProtocol
from shipyard.pipeline.build import BuildExecutor
from shipyard.pipeline.errors import HostError, PublishWithheld
from shipyard.pipeline.fanout import (
    NOTIFY_BRANCH,
    REGISTRY_BRANCH,
    BranchOutcome,
    DistributionFanout,
)
from shipyard.pipeline.gate import PublishPolicy, ReleaseGate
from shipyard.pipeline.matrix import TargetMatrix
from shipyard.pipeline.model import (
    BuildResult,
    BuildTarget,
    PackagedArtifact,
    ReleaseRecord,
    ReleaseVersion,
    RunStatus,
    aggregate_status,
)
from shipyard.pipeline.packaging import Packager
from shipyard.pipeline.report import (
    BranchReport,
    LegReport,
    LegStage,
    ReportKind,
    RunReport,
    describe_failure,
)
from shipyard.pipeline.scheduler import NodeOutcome, TaskGraph

__all__ = ["PUBLISH_NODE", "ReleasePipeline", "leg_nodes"]

PUBLISH_NODE = "publish"
_STAGES: tuple[LegStage, ...] = ("build", "package", "attach")


def leg_nodes(target_id: str) -> tuple[str, str, str]:
    """Node names of one leg, in execution order."""
    build, package, attach = (f"{stage}:{target_id}" for stage in _STAGES)
    return build, package, attach


class ReleasePipeline:
    def __init__(
        self,
        *,
        matrix: TargetMatrix,
        executor: BuildExecutor,
        packager: Packager,
        gate: ReleaseGate,
        fanout: DistributionFanout,
        console: ConsoleProtocol,
        policy: PublishPolicy | None = None,
        max_workers: int = 4,
    ) -> None:
        self._matrix = matrix
        self._executor = executor
        self._packager = packager
        self._gate = gate
        self._fanout = fanout
        self._console = console
        self._policy = policy or PublishPolicy()
        self._max_workers = max_workers

    @property
    def matrix(self) -> TargetMatrix:
        return self._matrix

    def run(self, version: ReleaseVersion, *, notes: str | None = None) -> RunReport:
        """Full run: draft, every leg, publish join, distribution fanout."""
        self._console.header(f"Release {version} ({len(self._matrix)} targets)")

        draft = self._gate.create_draft(version, notes=notes)
        if isinstance(draft, Err):
            message, hint = describe_failure(draft.error)
            self._console.error(message)
            return RunReport(
                version=version.token,
                gate_error=message,
                gate_hint=hint,
                host_unreachable=isinstance(draft.error, HostError),
            )

        record = draft.value
        graph = TaskGraph()
        attach_nodes = [self._add_leg(graph, record, target) for target in self._matrix]

        graph.add(
            PUBLISH_NODE,
            lambda inputs: self._publish_node(record, inputs),
            after=attach_nodes,
        )
        graph.add(
            REGISTRY_BRANCH,
            lambda _: _branch_result(self._fanout.publish_registry(record)),
            needs=[PUBLISH_NODE],
        )
        graph.add(
            NOTIFY_BRANCH,
            lambda inputs: _branch_result(
                self._fanout.notify(record, _leg_status(inputs[PUBLISH_NODE]))
            ),
            needs=[PUBLISH_NODE],
        )

        outcomes = graph.run(max_workers=self._max_workers)
        return self._report(record, outcomes, kind="run")

    def run_leg(self, version: ReleaseVersion, target_id: str) -> RunReport:
        """Re-run one leg against the release left by an earlier run.

        The release state is left as it is; publishing stays a separate step.
        """
        target = self._matrix.get(target_id)
        if target is None:
            message = f"unknown target: {target_id}"
            return RunReport(
                version=version.token,
                kind="leg",
                gate_error=message,
                gate_hint=f"available: {', '.join(self._matrix.identifiers)}",
            )

        opened = self._gate.open_existing(version)
        if isinstance(opened, Err):
            message, hint = describe_failure(opened.error)
            self._console.error(message)
            return RunReport(
                version=version.token,
                kind="leg",
                gate_error=message,
                gate_hint=hint,
                host_unreachable=isinstance(opened.error, HostError),
            )

        record = opened.value
        self._console.header(f"Re-running {target_id} for {version} ({record.state})")

        graph = TaskGraph()
        self._add_leg(graph, record, target)
        outcomes = graph.run(max_workers=1)
        return self._report(record, outcomes, kind="leg", targets=(target,))

    def publish(self, version: ReleaseVersion, *, status: RunStatus = "all_success") -> RunReport:
        """Manual gate: publish an existing draft and run the fanout.

        ``status`` is what the notification reports; the legs of the earlier
        run are not known here.
        """
        opened = self._gate.open_existing(version)
        if isinstance(opened, Err):
            message, hint = describe_failure(opened.error)
            self._console.error(message)
            return RunReport(
                version=version.token,
                kind="publish",
                gate_error=message,
                gate_hint=hint,
                host_unreachable=isinstance(opened.error, HostError),
            )

        record = opened.value
        published = self._gate.publish(record)
        if isinstance(published, Err):
            message, hint = describe_failure(published.error)
            self._console.error(message)
            return RunReport(
                version=version.token,
                kind="publish",
                release_state=record.state,
                release_url=record.url,
                gate_error=message,
                gate_hint=hint,
                host_unreachable=isinstance(published.error, HostError),
            )

        branches = self._fanout.run(record, status)
        return RunReport(
            version=version.token,
            kind="publish",
            branches=tuple(BranchReport.from_outcome(b) for b in branches),
            release_state=record.state,
            release_url=record.url,
        )

    # -- graph nodes ---------------------------------------------------------

    def _add_leg(self, graph: TaskGraph, record: ReleaseRecord, target: BuildTarget) -> str:
        build_node, package_node, attach_node = leg_nodes(target.identifier)
        version = record.version

        def build(_: Mapping[str, NodeOutcome]) -> Result[object, object]:
            result = self._executor.build(target)
            if not result.ok:
                return Err(result.failure)
            return Ok(result)

        def package(inputs: Mapping[str, NodeOutcome]) -> Result[object, object]:
            result = inputs[build_node].value
            assert isinstance(result, BuildResult)
            return self._packager.package(result, version)

        def attach(inputs: Mapping[str, NodeOutcome]) -> Result[object, object]:
            artifact = inputs[package_node].value
            assert isinstance(artifact, PackagedArtifact)
            attached = self._gate.attach(record, artifact)
            if isinstance(attached, Err):
                self._console.error(f"[{target.identifier}] {attached.error.message}")
                return attached
            return Ok(artifact)

        graph.add(build_node, build)
        graph.add(package_node, package, needs=[build_node])
        graph.add(attach_node, attach, needs=[package_node])
        return attach_node

    def _publish_node(
        self, record: ReleaseRecord, inputs: Mapping[str, NodeOutcome]
    ) -> Result[object, object]:
        succeeded = sum(1 for outcome in inputs.values() if outcome.ok)
        failed = len(inputs) - succeeded
        status = aggregate_status(succeeded=succeeded, failed=failed)

        if not self._policy.allows(succeeded=succeeded, failed=failed):
            withheld = PublishWithheld(
                version=record.version.token,
                policy=self._policy.name,
                message=(
                    f"publish withheld by policy {self._policy.name} "
                    f"({succeeded} succeeded, {failed} failed)"
                ),
            )
            self._console.warning(withheld.message)
            return Err(withheld)

        published = self._gate.publish(record)
        if isinstance(published, Err):
            return published
        return Ok(status)

    # -- reporting -----------------------------------------------------------

    def _report(
        self,
        record: ReleaseRecord,
        outcomes: Mapping[str, NodeOutcome],
        *,
        kind: ReportKind,
        targets: tuple[BuildTarget, ...] | None = None,
    ) -> RunReport:
        legs = tuple(_leg_report(t, outcomes) for t in (targets or self._matrix.targets))

        branches: tuple[BranchReport, ...] = ()
        if kind == "run":
            branches = tuple(
                _branch_report(name, outcomes[name]) for name in (REGISTRY_BRANCH, NOTIFY_BRANCH)
            )

        gate_error: str | None = None
        gate_hint: str | None = None
        publish = outcomes.get(PUBLISH_NODE)
        if publish is not None and not publish.ok:
            gate_error, gate_hint = describe_failure(publish.error)
        host_unreachable = publish is not None and isinstance(publish.error, HostError)

        return RunReport(
            version=record.version.token,
            kind=kind,
            legs=legs,
            branches=branches,
            release_state=record.state,
            release_url=record.url,
            gate_error=gate_error,
            gate_hint=gate_hint,
            host_unreachable=host_unreachable,
        )


def _branch_result(outcome: BranchOutcome) -> Result[object, object]:
    if outcome.status == "failed":
        return Err(outcome)
    return Ok(outcome)


def _leg_status(publish: NodeOutcome) -> RunStatus:
    return cast(RunStatus, publish.value)


def _leg_report(target: BuildTarget, outcomes: Mapping[str, NodeOutcome]) -> LegReport:
    nodes = leg_nodes(target.identifier)
    attach = outcomes[nodes[-1]]
    if attach.ok:
        artifact = attach.value
        assert isinstance(artifact, PackagedArtifact)
        return LegReport(
            target=target.identifier,
            status="success",
            stage="attach",
            files=tuple(path.name for path in artifact.files),
        )

    for stage, node in zip(_STAGES, nodes, strict=True):
        outcome = outcomes[node]
        if outcome.status == "failed":
            message, hint = describe_failure(outcome.error)
            return LegReport(
                target=target.identifier,
                status="failed",
                stage=stage,
                error=message,
                hint=hint,
            )
    raise AssertionError(f"leg {target.identifier} neither attached nor failed")


def _branch_report(branch: str, outcome: NodeOutcome) -> BranchReport:
    match outcome.status:
        case "success":
            assert isinstance(outcome.value, BranchOutcome)
            return BranchReport.from_outcome(outcome.value)
        case "failed" if isinstance(outcome.error, BranchOutcome):
            return BranchReport.from_outcome(outcome.error)
        case "failed":
            message, _ = describe_failure(outcome.error)
            return BranchReport(branch=branch, status="failed", error=message)
        case _:
            return BranchReport(branch=branch, status="skipped", error="release not published")

