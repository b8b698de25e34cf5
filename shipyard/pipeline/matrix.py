"""Target matrix: the fixed, ordered set of build targets for a run."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from shipyard.core.config import TargetConfig
from shipyard.core.result import Err, Ok, Result
from shipyard.pipeline.model import BuildTarget, HostClass, default_archive_strategy

__all__ = ["DEFAULT_TARGETS", "MatrixError", "TargetMatrix", "matrix_from_config"]


@dataclass(frozen=True, slots=True)
class MatrixError:
    message: str
    hint: str | None = None


def _target(
    identifier: str,
    host: HostClass,
    *,
    flags: tuple[str, ...] = (),
    native_package: bool = False,
) -> BuildTarget:
    # every target on a linux runner builds through `cross`
    return BuildTarget(
        identifier=identifier,
        host_class=host,
        archive_strategy=default_archive_strategy(host),
        extra_flags=flags,
        use_cross=host == "linux",
        produces_secondary_artifact=native_package,
    )


DEFAULT_TARGETS: tuple[BuildTarget, ...] = (
    _target("x86_64-unknown-linux-gnu", "linux"),
    _target("x86_64-unknown-linux-musl", "linux", native_package=True),
    _target("i686-unknown-linux-musl", "linux"),
    _target("aarch64-unknown-linux-musl", "linux"),
    _target("arm-unknown-linux-musleabihf", "linux"),
    _target("x86_64-apple-darwin", "macos"),
    _target("aarch64-apple-darwin", "macos"),
    _target("x86_64-pc-windows-msvc", "windows"),
    _target("i686-pc-windows-msvc", "windows"),
    _target("x86_64-pc-windows-gnu", "windows"),
    _target("aarch64-pc-windows-msvc", "windows", flags=("-C", "target-feature=+crt-static")),
    # windows target built on a linux runner; gets the tar.gz form only
    _target("i686-pc-windows-gnu", "linux"),
)


class TargetMatrix:
    """Ordered, immutable collection of build targets."""

    def __init__(self, targets: Iterable[BuildTarget]) -> None:
        ordered = tuple(targets)
        seen: set[str] = set()
        for target in ordered:
            if target.identifier in seen:
                raise ValueError(f"duplicate target identifier: {target.identifier}")
            seen.add(target.identifier)

        # the native package name carries no target id, so only one leg may own it
        natives = [t.identifier for t in ordered if t.produces_secondary_artifact]
        if len(natives) > 1:
            raise ValueError(
                f"only one target may produce the native package, got: {', '.join(natives)}"
            )
        self._targets = ordered

    def __iter__(self) -> Iterator[BuildTarget]:
        return iter(self._targets)

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, identifier: object) -> bool:
        return any(t.identifier == identifier for t in self._targets)

    @property
    def targets(self) -> tuple[BuildTarget, ...]:
        return self._targets

    @property
    def identifiers(self) -> tuple[str, ...]:
        return tuple(t.identifier for t in self._targets)

    def get(self, identifier: str) -> BuildTarget | None:
        for target in self._targets:
            if target.identifier == identifier:
                return target
        return None

    def select(self, identifiers: Sequence[str]) -> Result[TargetMatrix, MatrixError]:
        """Sub-matrix with the given targets, keeping matrix order."""
        if not identifiers:
            return Ok(self)

        unknown = [i for i in identifiers if i not in self]
        if unknown:
            return Err(
                MatrixError(
                    message=f"unknown target(s): {', '.join(unknown)}",
                    hint=f"available: {', '.join(self.identifiers)}",
                )
            )

        wanted = set(identifiers)
        return Ok(TargetMatrix(t for t in self._targets if t.identifier in wanted))

    @classmethod
    def default(cls) -> TargetMatrix:
        return cls(DEFAULT_TARGETS)


def matrix_from_config(entries: Sequence[TargetConfig]) -> Result[TargetMatrix, MatrixError]:
    """Matrix from ``[[targets]]`` entries, or the default matrix when empty."""
    if not entries:
        return Ok(TargetMatrix.default())

    targets = [
        BuildTarget(
            identifier=entry.id,
            host_class=entry.host,
            archive_strategy=entry.archive or default_archive_strategy(entry.host),
            extra_flags=entry.flags,
            use_cross=entry.use_cross,
            produces_secondary_artifact=entry.native_package,
        )
        for entry in entries
    ]
    try:
        return Ok(TargetMatrix(targets))
    except ValueError as e:
        return Err(MatrixError(message=str(e), hint="check [[targets]] in shipyard.toml"))
