from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import typer

from shipyard.cli.commands._helpers import exit_on_error
from shipyard.core.config import Config, apply_env, resolve_config
from shipyard.core.errors import ErrorCode
from shipyard.core.result import Err, Result
from shipyard.output.console import ConsoleProtocol, RichConsole
from shipyard.pipeline.build import BuildExecutor
from shipyard.pipeline.fanout import DistributionFanout
from shipyard.pipeline.gate import PublishPolicy, ReleaseGate
from shipyard.pipeline.matrix import MatrixError, TargetMatrix, matrix_from_config
from shipyard.pipeline.orchestrator import ReleasePipeline
from shipyard.pipeline.packaging import Packager
from shipyard.platform.http import RealHttpClient
from shipyard.services.cargo import CargoCompiler, CargoDebPackager, ToolStripper
from shipyard.services.github import GhReleaseHost, ensure_gh_available
from shipyard.services.notify import WebhookNotifier
from shipyard.services.registry import CommandRegistryPublisher


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol

    @property
    def project_dir(self) -> Path:
        return self.root / self.config.paths.project

    @property
    def out_dir(self) -> Path:
        return self.root / self.config.paths.out

    @property
    def scratch_dir(self) -> Path:
        return self.root / self.config.paths.scratch


def build_context(config_path: Path | None = None, *, stderr: bool = False) -> CLIContext:
    root = Path.cwd()
    config_result = resolve_config(config_path, project_root=root)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        root=root,
        config=apply_env(config_result.value, os.environ),
        console=RichConsole(stderr=stderr),
    )


def resolve_matrix(
    ctx: CLIContext, target_ids: Sequence[str] = ()
) -> Result[TargetMatrix, MatrixError]:
    matrix = matrix_from_config(ctx.config.targets)
    if isinstance(matrix, Err):
        return matrix
    return matrix.value.select(target_ids)


def build_pipeline(
    ctx: CLIContext,
    matrix: TargetMatrix,
    *,
    policy: PublishPolicy | None = None,
) -> ReleasePipeline:
    """Wire the production collaborators (cargo, gh, npm, webhook)."""
    exit_on_error(ensure_gh_available(), ctx, ErrorCode.ENV_ERROR)

    config = ctx.config
    console = ctx.console
    product = config.product

    executor = BuildExecutor(
        compiler=CargoCompiler(
            project_root=ctx.project_dir,
            binary=product.binary_name,
            console=console,
            macos_deployment_target=product.macos_deployment_target,
        ),
        scratch_dir=ctx.scratch_dir,
        product_binary=product.binary_name,
        console=console,
    )
    packager = Packager(
        out_dir=ctx.out_dir,
        product=product.name,
        console=console,
        stripper=ToolStripper(),
        native_packager=CargoDebPackager(project_root=ctx.project_dir, console=console),
        package_arch=product.package_arch,
    )
    gate = ReleaseGate(
        host=GhReleaseHost(project_root=ctx.project_dir, console=console, repo=product.repo),
        console=console,
        reuse_draft=config.policy.reuse_draft,
    )

    registry = None
    if config.registry.enabled:
        registry = CommandRegistryPublisher(
            command=config.registry.command,
            project_root=ctx.project_dir,
            console=console,
        )

    notifier = None
    if config.notify.webhook:
        notifier = WebhookNotifier(
            url=config.notify.webhook,
            http=RealHttpClient(),
            product=product.name,
            console=console,
            username=config.notify.username,
            title=config.notify.title,
        )

    return ReleasePipeline(
        matrix=matrix,
        executor=executor,
        packager=packager,
        gate=gate,
        fanout=DistributionFanout(registry=registry, notifier=notifier, console=console),
        console=console,
        policy=policy or PublishPolicy(config.policy.publish),
        max_workers=config.policy.max_workers,
    )
