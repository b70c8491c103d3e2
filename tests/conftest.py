"""Shared fixtures for grpcsys tests."""

import subprocess
from pathlib import Path

import pytest

from grpcsys.config import (
    AcquisitionStrategy, BuildEnvironment, BuildProfile, BuildSettings, FeatureConfig,
    GrpcSysConfig, LibraryNameSet, PlatformProfile, TargetOs,
)
from grpcsys.prerequisites import required_modules


def make_settings(project_dir: Path, *, secure=False, os=TargetOs.LINUX, target_env="gnu",
                  profile=BuildProfile.DEBUG, strategy=AcquisitionStrategy.VENDORED,
                  config=None, environment=None, out_dir=None) -> BuildSettings:
    features = FeatureConfig(secure=secure)
    return BuildSettings(
        project_dir=project_dir,
        out_dir=out_dir or project_dir / "target" / profile.value / "grpcsys",
        features=features,
        libraries=LibraryNameSet.for_features(features),
        platform=PlatformProfile(os=os, target_env=target_env, build_profile=profile),
        strategy=strategy,
        config=config or GrpcSysConfig(),
        environment=environment or BuildEnvironment(),
    )


def populate_grpc_tree(grpc_dir: Path, secure: bool):
    """Create a vendored tree with every required module checked out"""
    for module in required_modules(grpc_dir, FeatureConfig(secure=secure)):
        module.mkdir(parents=True, exist_ok=True)
        (module / "CMakeLists.txt").write_text("# vendored\n")
    (grpc_dir / "include" / "grpc").mkdir(parents=True, exist_ok=True)


def completed(cmd, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)


@pytest.fixture
def settings_factory(tmp_path):
    def factory(**kwargs):
        return make_settings(tmp_path, **kwargs)
    return factory


@pytest.fixture
def shim_source(tmp_path):
    source = tmp_path / "grpc_wrap.cc"
    source.write_text("extern \"C\" int grpcwrap_ok() { return 1; }\n")
    return source
