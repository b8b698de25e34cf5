"""Typed loading of ``shipyard.toml``.

Every table is optional; a project without a config file releases the
default product with the default target matrix.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal, cast

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_int,
    get_list,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "CONFIG_FILENAME",
    "NOTIFY_WEBHOOK_ENV",
    "Config",
    "ConfigError",
    "NotifyConfig",
    "PathsConfig",
    "PolicyConfig",
    "ProductConfig",
    "PublishPolicyName",
    "RegistryConfig",
    "TargetConfig",
    "apply_env",
    "load_config",
    "resolve_config",
]

CONFIG_FILENAME = "shipyard.toml"
NOTIFY_WEBHOOK_ENV = "SHIPYARD_NOTIFY_WEBHOOK"

PublishPolicyName = Literal["always", "any_success", "all_success"]

_PUBLISH_POLICIES: tuple[PublishPolicyName, ...] = ("always", "any_success", "all_success")
_HOSTS = ("linux", "macos", "windows")
_ARCHIVES = ("zip", "tar")

DEFAULT_REGISTRY_COMMAND = ("npm", "publish", "--access", "public")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProductConfig:
    name: str = "railway"
    binary: str | None = None
    # owner/name on the release host; None lets `gh` use the current checkout
    repo: str | None = None
    package_arch: str = "amd64"
    # exported as MACOSX_DEPLOYMENT_TARGET for macos builds
    macos_deployment_target: str = "10.7"

    @property
    def binary_name(self) -> str:
        return self.binary or self.name


@dataclass(frozen=True, slots=True)
class PathsConfig:
    """Paths relative to the project root."""

    out: str = "dist"
    scratch: str = ".shipyard/scratch"
    project: str = "."


@dataclass(frozen=True, slots=True)
class PolicyConfig:
    publish: PublishPolicyName = "any_success"
    reuse_draft: bool = True
    max_workers: int = 4


@dataclass(frozen=True, slots=True)
class RegistryConfig:
    command: tuple[str, ...] = DEFAULT_REGISTRY_COMMAND
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class NotifyConfig:
    webhook: str | None = None
    username: str = "Github Actions"
    title: str | None = None


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """One ``[[targets]]`` entry, validated but not yet a BuildTarget."""

    id: str
    host: Literal["linux", "macos", "windows"]
    archive: Literal["zip", "tar"] | None = None
    flags: tuple[str, ...] = ()
    use_cross: bool = False
    native_package: bool = False


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    product: ProductConfig = field(default_factory=ProductConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)
    # Empty means "use the built-in matrix".
    targets: tuple[TargetConfig, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a parsed TOML mapping.

        Raises:
            ValueError: On values of the right type but outside the allowed set.
        """
        product: StrDict = get_table(data, "product") or {}
        paths: StrDict = get_table(data, "paths") or {}
        policy: StrDict = get_table(data, "policy") or {}
        registry: StrDict = get_table(data, "registry") or {}
        notify: StrDict = get_table(data, "notify") or {}

        publish = get_str(policy, "publish") or "any_success"
        if publish not in _PUBLISH_POLICIES:
            raise ValueError(
                f"policy.publish must be one of {', '.join(_PUBLISH_POLICIES)} (got {publish!r})"
            )

        max_workers = get_int(policy, "max_workers")
        if max_workers is None:
            max_workers = 4
        if max_workers < 1:
            raise ValueError(f"policy.max_workers must be >= 1 (got {max_workers})")

        reuse_draft = get_bool(policy, "reuse_draft")
        registry_enabled = get_bool(registry, "enabled")
        command = get_str_list(registry, "command")
        if command is not None and not command:
            raise ValueError("registry.command must not be empty")

        return cls(
            product=ProductConfig(
                name=get_str(product, "name") or "railway",
                binary=get_str(product, "binary"),
                repo=get_str(product, "repo"),
                package_arch=get_str(product, "package_arch") or "amd64",
                macos_deployment_target=get_str(product, "macos_deployment_target") or "10.7",
            ),
            paths=PathsConfig(
                out=get_str(paths, "out") or "dist",
                scratch=get_str(paths, "scratch") or ".shipyard/scratch",
                project=get_str(paths, "project") or ".",
            ),
            policy=PolicyConfig(
                publish=cast(PublishPolicyName, publish),
                reuse_draft=True if reuse_draft is None else reuse_draft,
                max_workers=max_workers,
            ),
            registry=RegistryConfig(
                command=tuple(command) if command else DEFAULT_REGISTRY_COMMAND,
                enabled=True if registry_enabled is None else registry_enabled,
            ),
            notify=NotifyConfig(
                webhook=get_str(notify, "webhook"),
                username=get_str(notify, "username") or "Github Actions",
                title=get_str(notify, "title"),
            ),
            targets=_parse_targets(data),
        )


def _parse_targets(data: Mapping[str, object]) -> tuple[TargetConfig, ...]:
    raw = get_list(data, "targets")
    if raw is None:
        return ()

    out: list[TargetConfig] = []
    for index, item in enumerate(raw):
        entry = as_str_dict(item)
        if entry is None:
            raise ValueError(f"targets[{index}] must be a table")

        target_id = get_str(entry, "id")
        if target_id is None:
            raise ValueError(f"targets[{index}].id is required")

        host = get_str(entry, "host")
        if host not in _HOSTS:
            raise ValueError(f"targets[{index}].host must be one of {', '.join(_HOSTS)}")

        archive = get_str(entry, "archive")
        if archive is not None and archive not in _ARCHIVES:
            raise ValueError(f"targets[{index}].archive must be one of {', '.join(_ARCHIVES)}")

        flags = get_str_list(entry, "flags")
        if flags is None and "flags" in entry:
            raise ValueError(f"targets[{index}].flags must be a list of strings")

        out.append(
            TargetConfig(
                id=target_id,
                host=cast(Literal["linux", "macos", "windows"], host),
                archive=cast(Literal["zip", "tar"] | None, archive),
                flags=tuple(flags or ()),
                use_cross=get_bool(entry, "use_cross") or False,
                native_package=get_bool(entry, "native_package") or False,
            )
        )
    return tuple(out)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))
    except OSError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file."""
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def resolve_config(path: Path | None, *, project_root: Path) -> Result[Config, ConfigError]:
    """Load an explicit config, the project's ``shipyard.toml``, or defaults.

    An explicit path must exist; the implicit one is optional.
    """
    if path is not None:
        return load_config(path)

    implicit = project_root / CONFIG_FILENAME
    if not implicit.exists():
        return Ok(Config())
    return load_config(implicit)


def apply_env(config: Config, env: Mapping[str, str]) -> Config:
    """Overlay settings that CI provides as secrets."""
    webhook = (env.get(NOTIFY_WEBHOOK_ENV) or "").strip()
    if not webhook:
        return config
    return replace(config, notify=replace(config.notify, webhook=webhook))
