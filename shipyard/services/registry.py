"""Secondary registry publishing (npm by default)."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import ConsoleProtocol, Style
from shipyard.pipeline.errors import DistributionFailure
from shipyard.pipeline.fanout import REGISTRY_BRANCH
from shipyard.pipeline.model import PackagedArtifact
from shipyard.platform.process import run as run_process

__all__ = ["CommandRegistryPublisher"]


class CommandRegistryPublisher:
    """Runs a fixed publish command in the project directory.

    The registry package resolves the released binaries itself (npm's
    postinstall downloads them from the published release), so the artifacts
    are only used for reporting.
    """

    def __init__(
        self,
        *,
        command: Sequence[str],
        project_root: Path,
        console: ConsoleProtocol,
        timeout: float | None = 600.0,
    ) -> None:
        if not command:
            raise ValueError("registry command must not be empty")
        self._command = list(command)
        self._project_root = project_root
        self._console = console
        self._timeout = timeout

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def publish(self, artifacts: Sequence[PackagedArtifact]) -> Result[None, DistributionFailure]:
        self._console.print(
            f"{' '.join(self._command)} ({len(artifacts)} target(s) released)", Style.DIM
        )
        result = run_process(self._command, cwd=self._project_root, timeout=self._timeout)
        if isinstance(result, Err):
            return Err(
                DistributionFailure(
                    branch=REGISTRY_BRANCH,
                    message=f"{self._command[0]} publish failed (exit {result.error.returncode})",
                    detail=result.error.tail() or None,
                )
            )
        return Ok(None)
