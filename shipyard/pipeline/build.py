"""Build executor: compile one target into its own scratch location.

The toolchain itself is a collaborator behind ``Compiler``; the executor only
turns its outcome into a ``BuildResult`` and owns the per-target scratch
directory. A failed build is terminal for the leg: nothing here retries.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Protocol

from shipyard.core.result import Err, Result
from shipyard.output.console import ConsoleProtocol
from shipyard.pipeline.errors import BuildFailure
from shipyard.pipeline.model import BuildResult, BuildTarget

__all__ = ["BuildExecutor", "Compiler"]


class Compiler(Protocol):
    def compile(self, target: BuildTarget) -> Result[Path, BuildFailure]:
        """Build ``target`` and return the path of the produced binary."""
        ...


class BuildExecutor:
    """Runs one target's build and stages the binary in its scratch dir."""

    def __init__(
        self,
        *,
        compiler: Compiler,
        scratch_dir: Path,
        product_binary: str,
        console: ConsoleProtocol,
    ) -> None:
        self._compiler = compiler
        self._scratch_dir = scratch_dir
        self._product_binary = product_binary
        self._console = console

    def scratch_for(self, target: BuildTarget) -> Path:
        return self._scratch_dir / target.identifier

    def build(self, target: BuildTarget) -> BuildResult:
        compiled = self._compiler.compile(target)
        if isinstance(compiled, Err):
            self._console.error(f"[{target.identifier}] {compiled.error.message}")
            return BuildResult.failed(target, compiled.error)

        scratch = self.scratch_for(target)
        staged = scratch / target.binary_name(self._product_binary)
        try:
            if scratch.exists():
                shutil.rmtree(scratch)
            scratch.mkdir(parents=True)
            shutil.copy2(compiled.value, staged)
        except OSError as e:
            failure = BuildFailure(
                target=target.identifier,
                message=f"could not stage binary in {scratch}",
                detail=str(e),
            )
            self._console.error(f"[{target.identifier}] {failure.message}")
            return BuildResult.failed(target, failure)

        self._console.success(f"[{target.identifier}] built {staged.name}")
        return BuildResult.succeeded(target, staged)
