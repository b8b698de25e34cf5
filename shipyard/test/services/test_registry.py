from __future__ import annotations

from pathlib import Path

import pytest

from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import MockConsole
from shipyard.platform.process import ProcessError
from shipyard.services import registry as registry_mod
from shipyard.services.registry import CommandRegistryPublisher


def test_empty_command_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        CommandRegistryPublisher(command=[], project_root=tmp_path, console=MockConsole())


def test_runs_command_in_project(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[tuple[list[str], Path]] = []

    def fake_run(
        cmd: list[str], cwd: Path, *, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del timeout
        calls.append((cmd, cwd))
        return Ok("+ tool@1.0.0")

    monkeypatch.setattr(registry_mod, "run_process", fake_run)
    publisher = CommandRegistryPublisher(
        command=["npm", "publish", "--access", "public"],
        project_root=tmp_path,
        console=MockConsole(),
    )

    assert publisher.publish([]) == Ok(None)
    assert calls == [(["npm", "publish", "--access", "public"], tmp_path)]


def test_failure_carries_output_tail(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(
        cmd: list[str], cwd: Path, *, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del cwd, timeout
        return Err(ProcessError(tuple(cmd), 1, "", "npm ERR! 403 Forbidden"))

    monkeypatch.setattr(registry_mod, "run_process", fake_run)
    publisher = CommandRegistryPublisher(
        command=["npm", "publish"], project_root=tmp_path, console=MockConsole()
    )

    result = publisher.publish([])

    assert isinstance(result, Err)
    assert result.error.branch == "registry"
    assert result.error.message == "npm publish failed (exit 1)"
    assert result.error.hint == "npm ERR! 403 Forbidden"
