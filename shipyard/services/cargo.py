"""Rust toolchain adapters: cargo/cross builds, strip, cargo-deb."""

from __future__ import annotations

from pathlib import Path

from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import ConsoleProtocol, Style
from shipyard.pipeline.errors import BuildFailure, PackagingFailure
from shipyard.pipeline.model import BuildTarget
from shipyard.platform.process import ProcessError
from shipyard.platform.process import run as run_process

__all__ = ["CargoCompiler", "CargoDebPackager", "ToolStripper"]


class CargoCompiler:
    """Release builds through ``cargo`` (or ``cross`` for cross-built targets)."""

    def __init__(
        self,
        *,
        project_root: Path,
        binary: str,
        console: ConsoleProtocol,
        locked: bool = True,
        macos_deployment_target: str | None = "10.7",
    ) -> None:
        self._project_root = project_root
        self._binary = binary
        self._console = console
        self._locked = locked
        self._macos_deployment_target = macos_deployment_target

    def command(self, target: BuildTarget) -> list[str]:
        tool = "cross" if target.use_cross else "cargo"
        cmd = [tool, "build", "--release"]
        if self._locked:
            cmd.append("--locked")
        cmd += ["--target", target.identifier]
        return cmd

    def env(self, target: BuildTarget) -> dict[str, str]:
        env: dict[str, str] = {}
        if target.extra_flags:
            env["RUSTFLAGS"] = " ".join(target.extra_flags)
        if target.host_class == "macos" and self._macos_deployment_target:
            env["MACOSX_DEPLOYMENT_TARGET"] = self._macos_deployment_target
        return env

    def output_path(self, target: BuildTarget) -> Path:
        return (
            self._project_root
            / "target"
            / target.identifier
            / "release"
            / target.binary_name(self._binary)
        )

    def compile(self, target: BuildTarget) -> Result[Path, BuildFailure]:
        cmd = self.command(target)
        self._console.print(f"[{target.identifier}] {' '.join(cmd)}", Style.DIM)

        result = run_process(cmd, cwd=self._project_root, env=self.env(target))
        if isinstance(result, Err):
            e = result.error
            return Err(
                BuildFailure(
                    target=target.identifier,
                    message=f"{cmd[0]} build failed (exit {e.returncode})",
                    returncode=e.returncode,
                    detail=e.tail() or None,
                )
            )

        binary = self.output_path(target)
        if not binary.is_file():
            return Err(
                BuildFailure(
                    target=target.identifier,
                    message=f"build output missing: {binary}",
                )
            )
        return Ok(binary)


class ToolStripper:
    """Strips debug symbols with the host ``strip`` tool."""

    def __init__(self, tool: str = "strip") -> None:
        self._tool = tool

    def strip(self, binary: Path) -> Result[None, ProcessError]:
        result = run_process([self._tool, binary.name], cwd=binary.parent)
        if isinstance(result, Err):
            return result
        return Ok(None)


class CargoDebPackager:
    """Debian packages through ``cargo deb``."""

    def __init__(self, *, project_root: Path, console: ConsoleProtocol) -> None:
        self._project_root = project_root
        self._console = console

    def build_package(self, target: BuildTarget, output: Path) -> Result[Path, PackagingFailure]:
        cmd = ["cargo", "deb", "--target", target.identifier, "--output", str(output)]
        self._console.print(f"[{target.identifier}] {' '.join(cmd)}", Style.DIM)

        result = run_process(cmd, cwd=self._project_root)
        if isinstance(result, Err):
            return Err(
                PackagingFailure(
                    target=target.identifier,
                    message=f"cargo deb failed (exit {result.error.returncode})",
                    path=output,
                    detail=result.error.tail() or None,
                )
            )
        if not output.is_file():
            return Err(
                PackagingFailure(
                    target=target.identifier,
                    message=f"package output missing: {output}",
                    path=output,
                )
            )
        return Ok(output)
