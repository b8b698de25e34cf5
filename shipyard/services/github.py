"""GitHub releases through the ``gh`` CLI.

The release tag doubles as the record id: ``gh release`` addresses releases
by tag, drafts included.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from time import sleep

from shipyard.core.result import Err, Ok, Result
from shipyard.core.structured import as_str_dict, get_bool, get_str
from shipyard.output.console import ConsoleProtocol, Style
from shipyard.pipeline.errors import HostError
from shipyard.pipeline.gate import HostRelease
from shipyard.pipeline.model import ReleaseVersion
from shipyard.platform.process import ProcessError
from shipyard.platform.process import run as run_process

__all__ = [
    "GH_READ_RETRY_ATTEMPTS",
    "GH_READ_RETRY_DELAY_SECONDS",
    "GH_TIMEOUT_SECONDS",
    "GH_UPLOAD_TIMEOUT_SECONDS",
    "GhReleaseHost",
    "ensure_gh_available",
]

GH_TIMEOUT_SECONDS = 60.0
GH_UPLOAD_TIMEOUT_SECONDS = 600.0
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0

_NOT_FOUND_MARKER = "release not found"


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timeout",
        "timed out",
        "connection reset",
        "connection refused",
        "service unavailable",
        "bad gateway",
        "network is unreachable",
        "http 429",
        "http 502",
        "http 503",
        "http 504",
    )
    return any(marker in text for marker in markers)


def ensure_gh_available() -> Result[None, HostError]:
    if shutil.which("gh") is None:
        return Err(
            HostError(
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


class GhReleaseHost:
    """``ReleaseHost`` backed by ``gh release``."""

    def __init__(
        self,
        *,
        project_root: Path,
        console: ConsoleProtocol,
        repo: str | None = None,
        retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
    ) -> None:
        self._project_root = project_root
        self._console = console
        self._repo = repo
        self._retry_attempts = max(1, retry_attempts)

    def _cmd(self, *args: str) -> list[str]:
        cmd = ["gh", "release", *args]
        if self._repo:
            cmd += ["--repo", self._repo]
        return cmd

    def _read(self, cmd: list[str]) -> Result[str, ProcessError]:
        result = run_process(cmd, cwd=self._project_root, timeout=GH_TIMEOUT_SECONDS)
        for attempt in range(1, self._retry_attempts):
            if isinstance(result, Ok) or not _is_transient_gh_error(result.error):
                break
            sleep(GH_READ_RETRY_DELAY_SECONDS * attempt)
            result = run_process(cmd, cwd=self._project_root, timeout=GH_TIMEOUT_SECONDS)
        return result

    def find_release(self, version: ReleaseVersion) -> Result[HostRelease | None, HostError]:
        cmd = self._cmd("view", version.token, "--json", "tagName,isDraft,url")
        result = self._read(cmd)
        if isinstance(result, Err):
            if _NOT_FOUND_MARKER in result.error.stderr.lower():
                return Ok(None)
            return Err(
                HostError(
                    message=f"gh release view failed: {version}",
                    hint=result.error.stderr.strip() or None,
                )
            )

        try:
            obj: object = json.loads(result.value)
        except json.JSONDecodeError as e:
            return Err(HostError(message=f"gh release view returned invalid JSON: {e}"))

        data = as_str_dict(obj)
        if data is None:
            return Err(HostError(message="gh release view returned an unexpected payload"))

        tag = get_str(data, "tagName")
        is_draft = get_bool(data, "isDraft")
        if tag is None or is_draft is None:
            return Err(HostError(message="gh release view: missing tagName/isDraft"))

        return Ok(HostRelease(record_id=tag, is_draft=is_draft, url=get_str(data, "url")))

    def create_draft(
        self, version: ReleaseVersion, *, notes: str | None = None
    ) -> Result[HostRelease, HostError]:
        cmd = self._cmd(
            "create",
            version.token,
            "--draft",
            "--title",
            version.token,
            "--notes",
            notes or "",
        )
        self._console.print(f"gh release create {version} --draft", Style.DIM)
        result = run_process(cmd, cwd=self._project_root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                HostError(
                    message=f"could not create draft release {version}",
                    hint=result.error.stderr.strip() or "check: gh auth status",
                )
            )

        url = result.value.strip() or None
        return Ok(HostRelease(record_id=version.token, is_draft=True, url=url))

    def upload_asset(self, record_id: str, path: Path) -> Result[None, HostError]:
        cmd = self._cmd("upload", record_id, str(path), "--clobber")
        result = run_process(cmd, cwd=self._project_root, timeout=GH_UPLOAD_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                HostError(
                    message=f"gh release upload failed: {path.name}",
                    hint=result.error.stderr.strip() or None,
                )
            )
        return Ok(None)

    def set_published(self, record_id: str, published: bool) -> Result[None, HostError]:
        draft_flag = "--draft=false" if published else "--draft=true"
        cmd = self._cmd("edit", record_id, draft_flag)
        self._console.print(f"gh release edit {record_id} {draft_flag}", Style.DIM)
        result = run_process(cmd, cwd=self._project_root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                HostError(
                    message=f"gh release edit failed: {record_id}",
                    hint=result.error.stderr.strip() or None,
                )
            )
        return Ok(None)
