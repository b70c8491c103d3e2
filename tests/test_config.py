"""Tests for grpcsys.toml loading and the build data model."""

from unittest.mock import patch

import pytest

from grpcsys.config import (
    BuildProfile, GrpcSysConfig, GRPC_VERSION, PlatformProfile, TargetOs,
    create_example_config, find_project_root, load_config, validate_config,
)
from grpcsys.errors import ConfigError


@pytest.mark.parametrize("name, expected", [
    ("release", BuildProfile.RELEASE),
    ("Release", BuildProfile.RELEASE),
    ("bench", BuildProfile.RELEASE),
    ("BENCH", BuildProfile.RELEASE),
    ("debug", BuildProfile.DEBUG),
    ("test", BuildProfile.DEBUG),
    (None, BuildProfile.DEBUG),
])
def test_profile_from_name(name, expected):
    assert BuildProfile.from_name(name) is expected


def test_cmake_config_names():
    assert BuildProfile.DEBUG.cmake_config == "Debug"
    assert BuildProfile.RELEASE.cmake_config == "Release"


@pytest.mark.parametrize("os, target_env, msvc", [
    (TargetOs.WINDOWS, "msvc", True),
    (TargetOs.WINDOWS, "", True),
    (TargetOs.WINDOWS, "gnu", False),
    (TargetOs.LINUX, "msvc", False),
])
def test_is_msvc(os, target_env, msvc):
    assert PlatformProfile(os, target_env, BuildProfile.DEBUG).is_msvc is msvc


def test_defaults_without_config_file(tmp_path):
    config = load_config(project_dir=tmp_path)
    assert config == GrpcSysConfig()
    assert config.system.min_version == GRPC_VERSION
    assert config.toolchain.cxx_compiler_overrides == {"musl": "g++"}
    assert config.features.secure is False


def test_load_config_file(tmp_path):
    (tmp_path / "grpcsys.toml").write_text('''
[features]
secure = true

[sources]
grpc_dir = "third_party/grpc"

[system]
min_version = "1.20.0"

[toolchain]
parallel_jobs = 4

[toolchain.cxx_compiler_overrides]
musl = "x86_64-linux-musl-g++"
uclibc = "g++"
''')
    config = load_config(project_dir=tmp_path)
    assert config.features.secure is True
    assert config.sources.grpc_dir == "third_party/grpc"
    assert config.sources.shim_source == "grpc_wrap.cc"
    assert config.system.min_version == "1.20.0"
    assert config.toolchain.parallel_jobs == 4
    assert config.toolchain.cxx_compiler_overrides == {"musl": "x86_64-linux-musl-g++", "uclibc": "g++"}


def test_explicit_missing_config_fails(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.toml")


def test_invalid_toml_fails(tmp_path):
    path = tmp_path / "grpcsys.toml"
    path.write_text("[features\nsecure = ")
    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(path)


def test_unreadable_config_fails(tmp_path):
    path = tmp_path / "grpcsys.toml"
    path.write_text("[features]\n")
    with patch("builtins.open", side_effect=PermissionError("denied")):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(path)


def test_wrong_type_fails(tmp_path):
    path = tmp_path / "grpcsys.toml"
    path.write_text('[features]\nsecure = "yes"\n')
    with pytest.raises(ConfigError, match="features.secure"):
        load_config(path)


def test_example_config_loads(tmp_path):
    path = create_example_config(tmp_path / "grpcsys.toml")
    config = load_config(path)
    assert config == GrpcSysConfig()
    assert validate_config(config) == []


def test_validate_config_warnings():
    config = GrpcSysConfig()
    config.toolchain.parallel_jobs = 0
    config.toolchain.cxx_compiler_overrides["musl"] = ""
    config.system.min_version = ""
    warnings = validate_config(config)
    assert "toolchain.parallel_jobs must be >= 1" in warnings
    assert "system.min_version cannot be empty" in warnings
    assert any("musl" in w for w in warnings)


def test_find_project_root(tmp_path):
    (tmp_path / "grpcsys.toml").write_text("")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_project_root(nested) == tmp_path


def test_find_project_root_without_config(tmp_path):
    assert find_project_root(tmp_path) == tmp_path
