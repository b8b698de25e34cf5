"""Read-only commands: inspect the matrix and the packaging plan."""

from __future__ import annotations

from pathlib import Path

import typer

from shipyard.cli.commands._helpers import exit_on_error, parse_version
from shipyard.cli.context import build_context, resolve_matrix
from shipyard.core.errors import ErrorCode
from shipyard.output.report import render_matrix, render_plans
from shipyard.pipeline.packaging import plan_packaging


def targets(
    config: Path | None = typer.Option(None, "--config", help="Path to shipyard.toml"),
) -> None:
    """List the build targets."""
    ctx = build_context(config)
    matrix = resolve_matrix(ctx)
    exit_on_error(matrix, ctx, ErrorCode.ENV_ERROR)
    render_matrix(matrix.unwrap(), ctx.console)


def plan(
    tag: str = typer.Argument(..., help="Release tag (e.g. v1.2.3)"),
    target: list[str] | None = typer.Option(
        None, "--target", "-t", help="Only show these targets (repeatable)"
    ),
    config: Path | None = typer.Option(None, "--config", help="Path to shipyard.toml"),
) -> None:
    """Show the files each target would produce, without building anything."""
    ctx = build_context(config)
    version = parse_version(tag, ctx)

    matrix = resolve_matrix(ctx, target or ())
    exit_on_error(matrix, ctx, ErrorCode.USER_ERROR)

    product = ctx.config.product
    plans = [
        plan_packaging(
            t,
            version=version,
            product=product.name,
            package_arch=product.package_arch,
        )
        for t in matrix.unwrap()
    ]
    render_plans(plans, ctx.console)
