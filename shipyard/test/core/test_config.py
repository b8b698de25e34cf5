"""Tests for shipyard.core.config module."""

from __future__ import annotations

from pathlib import Path

from shipyard.core.config import (
    DEFAULT_REGISTRY_COMMAND,
    NOTIFY_WEBHOOK_ENV,
    Config,
    apply_env,
    load_config,
    resolve_config,
)
from shipyard.core.result import Err, Ok


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "shipyard.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_empty_config(self) -> None:
        config = Config()
        assert config.product.name == "railway"
        assert config.product.binary_name == "railway"
        assert config.product.package_arch == "amd64"
        assert config.product.macos_deployment_target == "10.7"
        assert config.paths.out == "dist"
        assert config.policy.publish == "any_success"
        assert config.policy.reuse_draft is True
        assert config.registry.command == DEFAULT_REGISTRY_COMMAND
        assert config.notify.webhook is None
        assert config.notify.username == "Github Actions"
        assert config.targets == ()

    def test_binary_overrides_name(self) -> None:
        config = Config.from_dict({"product": {"name": "railway", "binary": "rw"}})
        assert config.product.binary_name == "rw"

    def test_macos_deployment_target(self) -> None:
        config = Config.from_dict({"product": {"macos_deployment_target": "11.0"}})
        assert config.product.macos_deployment_target == "11.0"


class TestLoadConfig:
    def test_full_file(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            """
[product]
name = "tool"
repo = "acme/tool"

[policy]
publish = "all_success"
reuse_draft = false
max_workers = 2

[registry]
command = ["pnpm", "publish"]
enabled = false

[notify]
webhook = "https://hooks.example/abc"
title = "Shipped"

[[targets]]
id = "x86_64-pc-windows-msvc"
host = "windows"

[[targets]]
id = "x86_64-unknown-linux-musl"
host = "linux"
native_package = true
flags = ["-C", "target-feature=+crt-static"]
""",
        )

        result = load_config(path)

        assert isinstance(result, Ok)
        config = result.value
        assert config.product.repo == "acme/tool"
        assert config.policy.publish == "all_success"
        assert config.policy.reuse_draft is False
        assert config.policy.max_workers == 2
        assert config.registry.command == ("pnpm", "publish")
        assert config.registry.enabled is False
        assert config.notify.webhook == "https://hooks.example/abc"
        assert config.notify.title == "Shipped"
        assert [t.id for t in config.targets] == [
            "x86_64-pc-windows-msvc",
            "x86_64-unknown-linux-musl",
        ]
        assert config.targets[0].archive is None
        assert config.targets[1].native_package is True
        assert config.targets[1].flags == ("-C", "target-feature=+crt-static")

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "nope.toml")
        assert isinstance(result, Err)
        assert "not found" in result.error.message

    def test_directory_instead_of_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path)
        assert isinstance(result, Err)
        assert result.error.path == tmp_path

    def test_invalid_toml(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, "[product\nname = 1"))
        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message

    def test_unknown_policy(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, '[policy]\npublish = "sometimes"\n'))
        assert isinstance(result, Err)
        assert "policy.publish" in result.error.message

    def test_zero_workers_rejected(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, "[policy]\nmax_workers = 0\n"))
        assert isinstance(result, Err)
        assert "max_workers" in result.error.message

    def test_target_with_bad_host(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, '[[targets]]\nid = "x"\nhost = "beos"\n'))
        assert isinstance(result, Err)
        assert "targets[0].host" in result.error.message

    def test_target_without_id(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, '[[targets]]\nhost = "linux"\n'))
        assert isinstance(result, Err)
        assert "targets[0].id" in result.error.message

    def test_empty_registry_command(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, "[registry]\ncommand = []\n"))
        assert isinstance(result, Err)


class TestResolveConfig:
    def test_implicit_file_is_optional(self, tmp_path: Path) -> None:
        result = resolve_config(None, project_root=tmp_path)
        assert result == Ok(Config())

    def test_implicit_file_is_loaded(self, tmp_path: Path) -> None:
        _write(tmp_path, '[product]\nname = "tool"\n')
        result = resolve_config(None, project_root=tmp_path)
        assert isinstance(result, Ok)
        assert result.value.product.name == "tool"

    def test_explicit_path_must_exist(self, tmp_path: Path) -> None:
        result = resolve_config(tmp_path / "other.toml", project_root=tmp_path)
        assert isinstance(result, Err)


class TestApplyEnv:
    def test_webhook_from_env(self) -> None:
        config = apply_env(Config(), {NOTIFY_WEBHOOK_ENV: " https://hooks.example/env "})
        assert config.notify.webhook == "https://hooks.example/env"
        assert config.notify.username == "Github Actions"

    def test_blank_env_keeps_config(self) -> None:
        base = Config.from_dict({"notify": {"webhook": "https://hooks.example/file"}})
        assert apply_env(base, {NOTIFY_WEBHOOK_ENV: "  "}) is base
