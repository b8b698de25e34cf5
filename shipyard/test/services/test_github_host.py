from __future__ import annotations

from pathlib import Path

import pytest

from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import MockConsole
from shipyard.pipeline.gate import HostRelease
from shipyard.pipeline.model import ReleaseVersion
from shipyard.platform.process import ProcessError
from shipyard.services import github as github_mod
from shipyard.services.github import GhReleaseHost

VERSION = ReleaseVersion("v1.4.0")


def _err(*, stderr: str, returncode: int = 1) -> Err[ProcessError]:
    return Err(
        ProcessError(
            command=("gh", "release", "view"),
            returncode=returncode,
            stdout="",
            stderr=stderr,
        )
    )


def _no_sleep(seconds: float) -> None:
    del seconds


class _FakeGh:
    def __init__(self, *responses: Result[str, ProcessError]) -> None:
        self.responses = list(responses)
        self.calls: list[list[str]] = []
        self.timeouts: list[float | None] = []

    def __call__(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del cwd
        self.calls.append(cmd)
        self.timeouts.append(timeout)
        return self.responses.pop(0)


@pytest.fixture
def host(tmp_path: Path) -> GhReleaseHost:
    return GhReleaseHost(project_root=tmp_path, console=MockConsole())


def _install(monkeypatch: pytest.MonkeyPatch, fake: _FakeGh) -> _FakeGh:
    monkeypatch.setattr(github_mod, "run_process", fake)
    monkeypatch.setattr(github_mod, "sleep", _no_sleep)
    return fake


def test_find_release_parses_view(monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost) -> None:
    fake = _install(
        monkeypatch,
        _FakeGh(Ok('{"tagName": "v1.4.0", "isDraft": true, "url": "https://gh/r/v1.4.0"}')),
    )

    result = host.find_release(VERSION)

    assert result == Ok(HostRelease("v1.4.0", is_draft=True, url="https://gh/r/v1.4.0"))
    assert fake.calls == [["gh", "release", "view", "v1.4.0", "--json", "tagName,isDraft,url"]]


def test_find_release_not_found(monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost) -> None:
    _install(monkeypatch, _FakeGh(_err(stderr="release not found")))
    assert host.find_release(VERSION) == Ok(None)


def test_find_release_retries_transient_error(
    monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost
) -> None:
    fake = _install(
        monkeypatch,
        _FakeGh(
            _err(stderr="HTTP 502 Bad Gateway"),
            Ok('{"tagName": "v1.4.0", "isDraft": false}'),
        ),
    )

    result = host.find_release(VERSION)

    assert isinstance(result, Ok)
    assert result.value == HostRelease("v1.4.0", is_draft=False)
    assert len(fake.calls) == 2


def test_find_release_gives_up_after_retries(
    monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost
) -> None:
    fake = _install(monkeypatch, _FakeGh(*[_err(stderr="connection reset by peer")] * 3))

    result = host.find_release(VERSION)

    assert isinstance(result, Err)
    assert result.error.hint == "connection reset by peer"
    assert len(fake.calls) == 3


def test_find_release_does_not_retry_auth_errors(
    monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost
) -> None:
    fake = _install(monkeypatch, _FakeGh(_err(stderr="HTTP 401: Bad credentials")))

    result = host.find_release(VERSION)

    assert isinstance(result, Err)
    assert len(fake.calls) == 1


def test_find_release_rejects_bad_payload(
    monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost
) -> None:
    _install(monkeypatch, _FakeGh(Ok("not json"), Ok('{"url": "x"}')))

    first = host.find_release(VERSION)
    second = host.find_release(VERSION)

    assert isinstance(first, Err)
    assert "invalid JSON" in first.error.message
    assert isinstance(second, Err)
    assert "tagName" in second.error.message


def test_create_draft(monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost) -> None:
    fake = _install(monkeypatch, _FakeGh(Ok("https://gh/r/v1.4.0\n")))

    result = host.create_draft(VERSION, notes="notes")

    assert result == Ok(HostRelease("v1.4.0", is_draft=True, url="https://gh/r/v1.4.0"))
    assert fake.calls == [
        [
            "gh",
            "release",
            "create",
            "v1.4.0",
            "--draft",
            "--title",
            "v1.4.0",
            "--notes",
            "notes",
        ]
    ]


def test_create_draft_failure_hint(monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost) -> None:
    _install(monkeypatch, _FakeGh(_err(stderr="")))

    result = host.create_draft(VERSION)

    assert isinstance(result, Err)
    assert result.error.hint == "check: gh auth status"


def test_upload_replaces_existing_asset(
    monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost, tmp_path: Path
) -> None:
    fake = _install(monkeypatch, _FakeGh(Ok("")))
    asset = tmp_path / "tool-v1.4.0-x86_64.tar.gz"

    assert host.upload_asset("v1.4.0", asset) == Ok(None)
    assert fake.calls == [["gh", "release", "upload", "v1.4.0", str(asset), "--clobber"]]
    assert fake.timeouts == [github_mod.GH_UPLOAD_TIMEOUT_SECONDS]


def test_set_published(monkeypatch: pytest.MonkeyPatch, host: GhReleaseHost) -> None:
    fake = _install(monkeypatch, _FakeGh(Ok(""), Ok("")))

    host.set_published("v1.4.0", True)
    host.set_published("v1.4.0", False)

    assert fake.calls == [
        ["gh", "release", "edit", "v1.4.0", "--draft=false"],
        ["gh", "release", "edit", "v1.4.0", "--draft=true"],
    ]


def test_repo_flag(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    fake = _install(monkeypatch, _FakeGh(Ok("")))
    host = GhReleaseHost(project_root=tmp_path, console=MockConsole(), repo="acme/tool")

    host.set_published("v1.4.0", True)

    assert fake.calls[0][-2:] == ["--repo", "acme/tool"]


def test_ensure_gh_available(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(github_mod.shutil, "which", lambda name: None)
    result = github_mod.ensure_gh_available()
    assert isinstance(result, Err)
    assert result.error.message == "gh: missing"
