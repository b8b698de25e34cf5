"""Release commands: full run, single-leg rerun, manual publish."""

from __future__ import annotations

from pathlib import Path
from typing import cast, get_args

import typer

from shipyard.cli.commands._helpers import emit_json, exit_on_error, exit_with_code, parse_version
from shipyard.cli.context import build_context, build_pipeline, resolve_matrix
from shipyard.core.config import PublishPolicyName
from shipyard.core.errors import ErrorCode
from shipyard.output.console import Style
from shipyard.output.report import render_report, report_exit_code
from shipyard.pipeline.gate import PublishPolicy

_POLICIES: tuple[str, ...] = get_args(PublishPolicyName)


def release(
    tag: str = typer.Argument(..., help="Release tag (e.g. v1.2.3)"),
    target: list[str] | None = typer.Option(
        None, "--target", "-t", help="Only build these targets (repeatable)"
    ),
    policy: str | None = typer.Option(
        None, "--policy", help="Publish policy: always|any_success|all_success"
    ),
    notes_file: Path | None = typer.Option(None, "--notes-file", help="Release notes body"),
    json_output: bool = typer.Option(False, "--json", help="Print the run report as JSON"),
    config: Path | None = typer.Option(None, "--config", help="Path to shipyard.toml"),
) -> None:
    """Build every target, attach artifacts to a draft, publish, then fan out."""
    ctx = build_context(config, stderr=json_output)
    version = parse_version(tag, ctx)

    publish_policy: PublishPolicy | None = None
    if policy is not None:
        if policy not in _POLICIES:
            ctx.console.error(f"unknown publish policy: {policy}")
            ctx.console.print(f"hint: one of {', '.join(_POLICIES)}", Style.DIM)
            exit_with_code(int(ErrorCode.USER_ERROR))
        publish_policy = PublishPolicy(cast(PublishPolicyName, policy))

    notes: str | None = None
    if notes_file is not None:
        try:
            notes = notes_file.read_text(encoding="utf-8")
        except OSError as e:
            ctx.console.error(f"cannot read notes file: {e}")
            exit_with_code(int(ErrorCode.IO_ERROR))

    matrix = resolve_matrix(ctx, target or ())
    exit_on_error(matrix, ctx, ErrorCode.USER_ERROR)

    pipeline = build_pipeline(ctx, matrix.unwrap(), policy=publish_policy)
    report = pipeline.run(version, notes=notes)

    if json_output:
        emit_json(report)
    else:
        render_report(report, ctx.console)

    code = report_exit_code(report)
    if not code.is_success:
        exit_with_code(int(code))


def leg(
    tag: str = typer.Argument(..., help="Release tag of the existing draft"),
    target: str = typer.Argument(..., help="Target identifier to rebuild"),
    json_output: bool = typer.Option(False, "--json", help="Print the leg report as JSON"),
    config: Path | None = typer.Option(None, "--config", help="Path to shipyard.toml"),
) -> None:
    """Re-run one target's build/package/attach against an existing release."""
    ctx = build_context(config, stderr=json_output)
    version = parse_version(tag, ctx)

    matrix = resolve_matrix(ctx, [target])
    exit_on_error(matrix, ctx, ErrorCode.USER_ERROR)

    pipeline = build_pipeline(ctx, matrix.unwrap())
    report = pipeline.run_leg(version, target)

    if json_output:
        emit_json(report)
    else:
        render_report(report, ctx.console)

    code = report_exit_code(report)
    if not code.is_success:
        exit_with_code(int(code))


def publish(
    tag: str = typer.Argument(..., help="Release tag of the draft to publish"),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    config: Path | None = typer.Option(None, "--config", help="Path to shipyard.toml"),
) -> None:
    """Publish a draft held back by policy, then run the distribution fanout."""
    ctx = build_context(config, stderr=json_output)
    version = parse_version(tag, ctx)

    matrix = resolve_matrix(ctx)
    exit_on_error(matrix, ctx, ErrorCode.USER_ERROR)

    pipeline = build_pipeline(ctx, matrix.unwrap())
    report = pipeline.publish(version)

    if json_output:
        emit_json(report)
    else:
        render_report(report, ctx.console)

    code = report_exit_code(report)
    if not code.is_success:
        exit_with_code(int(code))
