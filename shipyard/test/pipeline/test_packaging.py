"""Tests for shipyard.pipeline.packaging."""

from __future__ import annotations

import tarfile
import zipfile
from pathlib import Path

import pytest

from shipyard.core.result import Err, Ok
from shipyard.output.console import MockConsole
from shipyard.pipeline.errors import BuildFailure
from shipyard.pipeline.model import BuildResult, BuildTarget, ReleaseVersion
from shipyard.pipeline.packaging import (
    NativePackage,
    Packager,
    StripSymbols,
    TarGzArchive,
    ZipArchive,
    plan_packaging,
)
from shipyard.test._fakes import (
    PRODUCT,
    TARGET_A,
    TARGET_B,
    TARGET_C,
    FakeNativePackager,
    FakeStripper,
)

VERSION = ReleaseVersion("1.2.3")


def _built(tmp_path: Path, target: BuildTarget, content: bytes = b"\x7fELF binary") -> BuildResult:
    binary = tmp_path / "scratch" / target.identifier / target.binary_name(PRODUCT)
    binary.parent.mkdir(parents=True, exist_ok=True)
    binary.write_bytes(content)
    return BuildResult.succeeded(target, binary)


def _packager(
    out_dir: Path,
    *,
    console: MockConsole | None = None,
    stripper: FakeStripper | None = None,
    native: FakeNativePackager | None = None,
) -> Packager:
    return Packager(
        out_dir=out_dir,
        product=PRODUCT,
        console=console or MockConsole(),
        stripper=stripper or FakeStripper(),
        native_packager=native,
    )


class TestPlanPackaging:
    def test_zip_class_strips_then_zips_then_tars(self) -> None:
        plan = plan_packaging(TARGET_A, version=VERSION, product=PRODUCT)
        assert plan.actions == (
            StripSymbols(),
            ZipArchive("prod-1.2.3-A.zip"),
            TarGzArchive("prod-1.2.3-A.tar.gz"),
        )

    def test_plain_target_gets_tar_only(self) -> None:
        plan = plan_packaging(TARGET_B, version=VERSION, product=PRODUCT)
        assert plan.actions == (TarGzArchive("prod-1.2.3-B.tar.gz"),)

    def test_secondary_artifact_adds_native_package(self) -> None:
        plan = plan_packaging(TARGET_C, version=VERSION, product=PRODUCT, package_arch="amd64")
        assert plan.filenames == ("prod-1.2.3-C.tar.gz", "prod-1.2.3-amd64.deb")
        assert isinstance(plan.actions[-1], NativePackage)

    def test_every_file_name_embeds_version(self) -> None:
        for target in (TARGET_A, TARGET_B, TARGET_C):
            plan = plan_packaging(target, version=VERSION, product=PRODUCT)
            assert all("1.2.3" in name for name in plan.filenames)


class TestPackager:
    def test_scenario_file_names(self, tmp_path: Path) -> None:
        out = tmp_path / "dist"
        packager = _packager(out, native=FakeNativePackager())

        names: list[str] = []
        for target in (TARGET_A, TARGET_B, TARGET_C):
            result = packager.package(_built(tmp_path, target), VERSION)
            assert isinstance(result, Ok)
            names += [p.name for p in result.value.files]

        assert names == [
            "prod-1.2.3-A.zip",
            "prod-1.2.3-A.tar.gz",
            "prod-1.2.3-B.tar.gz",
            "prod-1.2.3-C.tar.gz",
            "prod-1.2.3-amd64.deb",
        ]
        assert sorted(p.name for p in out.iterdir()) == sorted(names)

    def test_archives_contain_the_binary(self, tmp_path: Path) -> None:
        built = _built(tmp_path, TARGET_A, b"payload")
        result = _packager(tmp_path / "dist").package(built, VERSION)
        assert isinstance(result, Ok)
        zip_path, tar_path = result.value.archive_paths

        with zipfile.ZipFile(zip_path) as zf:
            assert zf.namelist() == ["prod"]
            assert zf.read("prod") == b"payload"
            assert (zf.getinfo("prod").external_attr >> 16) & 0o777 == 0o755

        with tarfile.open(tar_path, "r:gz") as tar:
            member = tar.getmember("prod")
            assert member.mode == 0o755
            assert member.mtime == 0
            extracted = tar.extractfile(member)
            assert extracted is not None
            assert extracted.read() == b"payload"

    def test_deterministic_output(self, tmp_path: Path) -> None:
        first = _packager(tmp_path / "one").package(_built(tmp_path / "a", TARGET_A), VERSION)
        second = _packager(tmp_path / "two").package(_built(tmp_path / "b", TARGET_A), VERSION)
        assert isinstance(first, Ok) and isinstance(second, Ok)

        for left, right in zip(first.value.files, second.value.files, strict=True):
            assert left.name == right.name
            assert left.read_bytes() == right.read_bytes()

    def test_strip_only_for_zip_class(self, tmp_path: Path) -> None:
        stripper = FakeStripper()
        packager = _packager(tmp_path / "dist", stripper=stripper)

        packager.package(_built(tmp_path, TARGET_A), VERSION)
        packager.package(_built(tmp_path, TARGET_B), VERSION)

        assert len(stripper.calls) == 1
        # strip runs on a copy, never on the build output
        assert stripper.calls[0].parent.name == "package"

    def test_strip_failure_is_tolerated(self, tmp_path: Path) -> None:
        console = MockConsole()
        packager = _packager(tmp_path / "dist", console=console, stripper=FakeStripper(fail=True))

        result = packager.package(_built(tmp_path, TARGET_A), VERSION)

        assert isinstance(result, Ok)
        assert len(result.value.archive_paths) == 2
        assert console.has_warning()

    def test_native_packager_failure(self, tmp_path: Path) -> None:
        packager = _packager(tmp_path / "dist", native=FakeNativePackager(fail=True))
        result = packager.package(_built(tmp_path, TARGET_C), VERSION)
        assert isinstance(result, Err)
        assert result.error.target == "C"

    def test_missing_native_packager(self, tmp_path: Path) -> None:
        result = _packager(tmp_path / "dist").package(_built(tmp_path, TARGET_C), VERSION)
        assert isinstance(result, Err)
        assert "no packager" in result.error.message

    def test_failed_build_is_rejected(self, tmp_path: Path) -> None:
        failed = BuildResult.failed(TARGET_A, BuildFailure(target="A", message="boom"))
        with pytest.raises(ValueError):
            _packager(tmp_path / "dist").package(failed, VERSION)
