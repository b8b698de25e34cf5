"""Artifact packaging.

Deciding *what* to produce for a target is a pure function of the target's
metadata (``plan_packaging``); the ``Packager`` then executes the plan.
Archives are written deterministically: entries carry fixed timestamps and
ownership, and the gzip header has no mtime or file name, so the same binary
always yields byte-identical archives.

File names follow ``<product>-<version>-<target>.<ext>``; the OS-native
package uses ``<product>-<version>-<arch>.deb``.
"""

from __future__ import annotations

import gzip
import io
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from shipyard.core.result import Err, Ok, Result
from shipyard.output.console import ConsoleProtocol
from shipyard.pipeline.errors import PackagingFailure
from shipyard.pipeline.model import BuildResult, BuildTarget, PackagedArtifact, ReleaseVersion
from shipyard.platform.process import ProcessError

__all__ = [
    "NativePackage",
    "NativePackager",
    "Packager",
    "PackagingAction",
    "PackagingPlan",
    "StripSymbols",
    "SymbolStripper",
    "TarGzArchive",
    "ZipArchive",
    "artifact_stem",
    "plan_packaging",
]

# Earliest timestamp a ZIP entry can carry.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_EXEC_MODE = 0o755


@dataclass(frozen=True, slots=True)
class StripSymbols:
    """Remove debug symbols from the staged binary (best-effort)."""


@dataclass(frozen=True, slots=True)
class ZipArchive:
    filename: str


@dataclass(frozen=True, slots=True)
class TarGzArchive:
    filename: str


@dataclass(frozen=True, slots=True)
class NativePackage:
    filename: str


PackagingAction = StripSymbols | ZipArchive | TarGzArchive | NativePackage


@dataclass(frozen=True, slots=True)
class PackagingPlan:
    target: BuildTarget
    actions: tuple[PackagingAction, ...]

    @property
    def filenames(self) -> tuple[str, ...]:
        """Produced file names, in production order."""
        return tuple(a.filename for a in self.actions if not isinstance(a, StripSymbols))


def artifact_stem(product: str, version: ReleaseVersion, target_id: str) -> str:
    return f"{product}-{version}-{target_id}"


def plan_packaging(
    target: BuildTarget,
    *,
    version: ReleaseVersion,
    product: str,
    package_arch: str = "amd64",
) -> PackagingPlan:
    """Packaging actions for ``target``.

    - zip class: strip, then zip
    - every target: tar.gz
    - targets with a secondary artifact: OS-native package
    """
    stem = artifact_stem(product, version, target.identifier)
    actions: list[PackagingAction] = []

    if target.archive_strategy == "zip":
        actions += [StripSymbols(), ZipArchive(f"{stem}.zip")]

    actions.append(TarGzArchive(f"{stem}.tar.gz"))

    if target.produces_secondary_artifact:
        actions.append(NativePackage(f"{product}-{version}-{package_arch}.deb"))

    return PackagingPlan(target=target, actions=tuple(actions))


class SymbolStripper(Protocol):
    def strip(self, binary: Path) -> Result[None, ProcessError]: ...


class NativePackager(Protocol):
    def build_package(self, target: BuildTarget, output: Path) -> Result[Path, PackagingFailure]:
        """Produce the OS-native package for ``target`` at ``output``."""
        ...


def write_zip(path: Path, *, source: Path, arcname: str) -> None:
    info = ZipInfo(arcname, date_time=_ZIP_EPOCH)
    info.compress_type = ZIP_DEFLATED
    info.external_attr = (_EXEC_MODE | 0o100000) << 16
    with ZipFile(path, "w") as zf:
        zf.writestr(info, source.read_bytes())


def write_tar_gz(path: Path, *, source: Path, arcname: str) -> None:
    data = source.read_bytes()
    info = tarfile.TarInfo(arcname)
    info.size = len(data)
    info.mtime = 0
    info.mode = _EXEC_MODE
    info.uid = info.gid = 0
    info.uname = info.gname = ""

    with path.open("wb") as raw:
        with gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.GNU_FORMAT) as tar:
                tar.addfile(info, io.BytesIO(data))


class Packager:
    """Executes packaging plans into ``out_dir``."""

    def __init__(
        self,
        *,
        out_dir: Path,
        product: str,
        console: ConsoleProtocol,
        stripper: SymbolStripper,
        native_packager: NativePackager | None = None,
        package_arch: str = "amd64",
    ) -> None:
        self._out_dir = out_dir
        self._product = product
        self._console = console
        self._stripper = stripper
        self._native_packager = native_packager
        self._package_arch = package_arch

    def plan(self, target: BuildTarget, version: ReleaseVersion) -> PackagingPlan:
        return plan_packaging(
            target,
            version=version,
            product=self._product,
            package_arch=self._package_arch,
        )

    def package(
        self, result: BuildResult, version: ReleaseVersion
    ) -> Result[PackagedArtifact, PackagingFailure]:
        """Package a successful build.

        Raises:
            ValueError: If called with a failed build.
        """
        if not result.ok or result.binary is None:
            raise ValueError(f"cannot package failed build: {result.target.identifier}")

        target = result.target
        plan = self.plan(target, version)

        # Work on a copy so stripping never touches the build output.
        staging = result.binary.parent / "package"
        staged = staging / result.binary.name
        try:
            staging.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(result.binary, staged)
            self._out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(
                PackagingFailure(
                    target=target.identifier,
                    message="could not stage binary for packaging",
                    path=staged,
                    detail=str(e),
                )
            )

        archives: list[Path] = []
        package_file: Path | None = None

        for action in plan.actions:
            match action:
                case StripSymbols():
                    self._strip(target, staged)
                case ZipArchive(filename=filename) | TarGzArchive(filename=filename):
                    written = self._write_archive(action, target, staged, self._out_dir / filename)
                    if isinstance(written, Err):
                        return written
                    archives.append(written.value)
                case NativePackage(filename=filename):
                    built = self._build_native(target, self._out_dir / filename)
                    if isinstance(built, Err):
                        return built
                    package_file = built.value

        artifact = PackagedArtifact(
            target=target,
            archive_paths=tuple(archives),
            package_file=package_file,
        )
        for path in artifact.files:
            self._console.success(f"[{target.identifier}] {path.name}")
        return Ok(artifact)

    def _strip(self, target: BuildTarget, staged: Path) -> None:
        stripped = self._stripper.strip(staged)
        if isinstance(stripped, Err):
            # Unstripped binaries are still shippable.
            self._console.warning(
                f"[{target.identifier}] strip failed, packaging unstripped binary "
                f"({stripped.error})"
            )

    def _write_archive(
        self,
        action: ZipArchive | TarGzArchive,
        target: BuildTarget,
        staged: Path,
        dest: Path,
    ) -> Result[Path, PackagingFailure]:
        try:
            if isinstance(action, ZipArchive):
                write_zip(dest, source=staged, arcname=staged.name)
            else:
                write_tar_gz(dest, source=staged, arcname=staged.name)
        except (OSError, tarfile.TarError) as e:
            return Err(
                PackagingFailure(
                    target=target.identifier,
                    message=f"could not write {dest.name}",
                    path=dest,
                    detail=str(e),
                )
            )
        return Ok(dest)

    def _build_native(self, target: BuildTarget, dest: Path) -> Result[Path, PackagingFailure]:
        if self._native_packager is None:
            return Err(
                PackagingFailure(
                    target=target.identifier,
                    message="target requires an OS-native package but no packager is configured",
                    path=dest,
                )
            )
        return self._native_packager.build_package(target, dest)
