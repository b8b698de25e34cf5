"""Shared helpers for CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, NoReturn

import typer

from shipyard.core.errors import ErrorCode
from shipyard.core.result import Err, Result
from shipyard.output.console import Style
from shipyard.pipeline.model import ReleaseVersion
from shipyard.pipeline.report import RunReport

if TYPE_CHECKING:
    from shipyard.cli.context import CLIContext


def exit_on_error[T, E](
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode = ErrorCode.BUILD_ERROR,
) -> None:
    """Exit with ``error_code`` if result is Err, otherwise return.

    Expects error objects to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        ctx.console.error(message)
        if hint:
            ctx.console.print(f"hint: {hint}", Style.DIM)
        raise typer.Exit(code=int(error_code))


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)


def parse_version(tag: str, ctx: CLIContext) -> ReleaseVersion:
    version = ReleaseVersion.from_ref(tag)
    if version is None:
        ctx.console.error(f"invalid release tag: {tag!r}")
        ctx.console.print("hint: pass a tag such as v1.2.3 or refs/tags/v1.2.3", Style.DIM)
        exit_with_code(int(ErrorCode.USER_ERROR))
    return version


def emit_json(report: RunReport) -> None:
    typer.echo(json.dumps(report.to_dict(), indent=2))
