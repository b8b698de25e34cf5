"""Rendering of run reports, target matrices and packaging plans."""

from __future__ import annotations

from collections.abc import Iterable

from rich.table import Table
from rich.text import Text

from shipyard.core.errors import ErrorCode
from shipyard.output.console import ConsoleProtocol, Style
from shipyard.pipeline.matrix import TargetMatrix
from shipyard.pipeline.packaging import PackagingPlan, StripSymbols
from shipyard.pipeline.report import RunReport

__all__ = ["render_matrix", "render_plans", "render_report", "report_exit_code"]

_STATUS_STYLES = {
    "success": "green",
    "failed": "red",
    "skipped": "dim",
    "published": "green",
    "draft": "yellow",
}


def _status(value: str) -> Text:
    return Text(value, style=_STATUS_STYLES.get(value, ""))


def report_exit_code(report: RunReport) -> ErrorCode:
    """Exit code for a finished command.

    - run: OK, PARTIAL_FAILURE or BUILD_ERROR by status; GATE_CONFLICT if no draft
    - leg: GATE_CONFLICT if the release could not be opened, BUILD_ERROR if the leg failed
    - publish: GATE_CONFLICT if the gate refused, PARTIAL_FAILURE if a branch failed

    NETWORK_ERROR replaces GATE_CONFLICT when the release host itself failed.
    """
    if report.host_unreachable:
        return ErrorCode.NETWORK_ERROR
    if report.kind == "leg":
        if not report.legs:
            return ErrorCode.GATE_CONFLICT
        return ErrorCode.BUILD_ERROR if report.failed else ErrorCode.OK

    if report.kind == "publish":
        if report.gate_error:
            return ErrorCode.GATE_CONFLICT
        return ErrorCode.PARTIAL_FAILURE if report.failed_branches else ErrorCode.OK

    if report.release_state is None:
        return ErrorCode.GATE_CONFLICT
    match report.status:
        case "all_success":
            return ErrorCode.OK
        case "partial_failure":
            return ErrorCode.PARTIAL_FAILURE
        case _:
            return ErrorCode.BUILD_ERROR


def render_report(report: RunReport, console: ConsoleProtocol) -> None:
    if report.legs:
        legs = Table(title=f"Targets ({report.version})", title_justify="left")
        legs.add_column("target")
        legs.add_column("status")
        legs.add_column("stage")
        legs.add_column("details", overflow="fold")
        for leg in report.legs:
            details = ", ".join(leg.files) if leg.ok else (leg.error or "")
            legs.add_row(leg.target, _status(leg.status), leg.stage, details)
        console.render(legs)

    if report.branches:
        branches = Table(title="Distribution", title_justify="left")
        branches.add_column("branch")
        branches.add_column("status")
        branches.add_column("details", overflow="fold")
        for branch in report.branches:
            branches.add_row(branch.branch, _status(branch.status), branch.error or "")
        console.render(branches)

    console.newline()
    if report.release_state is not None:
        state = report.release_state
        where = f" {report.release_url}" if report.release_url else ""
        console.print(f"release {report.version}: {state}{where}", Style.BOLD)

    if report.gate_error:
        console.warning(report.gate_error)
        if report.gate_hint:
            console.print(f"hint: {report.gate_hint}", Style.DIM)

    for leg in report.legs:
        if not leg.ok and leg.hint:
            console.print(f"{leg.target}: {leg.hint}", Style.DIM)

    if report.kind != "run":
        return

    match report.status:
        case "all_success":
            console.success(f"{report.version}: all targets released")
        case "partial_failure":
            console.warning(
                f"{report.version}: partial failure "
                f"({len(report.succeeded)} ok, {len(report.failed)} failed)"
            )
        case _:
            console.error(f"{report.version}: nothing was released")


def render_matrix(matrix: TargetMatrix, console: ConsoleProtocol) -> None:
    table = Table(title=f"Targets ({len(matrix)})", title_justify="left")
    table.add_column("target")
    table.add_column("host")
    table.add_column("archive")
    table.add_column("notes")
    for target in matrix:
        notes: list[str] = []
        if target.use_cross:
            notes.append("cross")
        if target.extra_flags:
            notes.append("RUSTFLAGS=" + " ".join(target.extra_flags))
        if target.produces_secondary_artifact:
            notes.append("native package")
        table.add_row(
            target.identifier, target.host_class, target.archive_strategy, ", ".join(notes)
        )
    console.render(table)


def render_plans(plans: Iterable[PackagingPlan], console: ConsoleProtocol) -> None:
    table = Table(title="Packaging plan", title_justify="left")
    table.add_column("target")
    table.add_column("strip")
    table.add_column("files", overflow="fold")
    for plan in plans:
        strip = any(isinstance(a, StripSymbols) for a in plan.actions)
        table.add_row(plan.target.identifier, "yes" if strip else "", "\n".join(plan.filenames))
    console.render(table)
