"""Build orchestration: from settings to emitted link directives.

The flow is linear. Settings are resolved once, the library is acquired
from the vendored tree or from the system, the shim is compiled, and the
linkage is emitted. Any failure propagates as a GrpcSysError.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from .cmake_build import build_grpc, check_generator
from .config import (
    AcquisitionStrategy, BuildProfile, BuildSettings, FeatureConfig, GrpcSysConfig,
    LibraryNameSet, PlatformProfile, find_project_root, load_config, validate_config,
)
from .directives import Directives
from .environment import detect_target_env, detect_target_os, read_build_environment
from .link_plan import BuildOutput, derive_link_plan
from .pkg_config import probe_library
from .prerequisites import validate_prerequisites
from .shim import ShimArtifact, compile_shim


@dataclass(frozen=True)
class BuildResult:
    settings: BuildSettings
    output: BuildOutput
    shim: ShimArtifact


def resolve_settings(directives: Directives,
                     project_dir: Optional[Path] = None,
                     out_dir: Optional[Path] = None,
                     secure: Optional[bool] = None,
                     profile: Optional[str] = None,
                     target_os: Optional[str] = None,
                     config: Optional[GrpcSysConfig] = None,
                     config_path: Optional[Path] = None,
                     environ: Optional[Mapping[str, str]] = None,
                     verbose: bool = False) -> BuildSettings:
    """Select features, platform and acquisition strategy for one build.

    Explicit arguments win over the environment, which wins over
    grpcsys.toml. The environment is read exactly once.
    """
    if project_dir is None:
        project_dir = find_project_root()
    project_dir = Path(project_dir).resolve()

    if config is None:
        config = load_config(config_path, project_dir=project_dir)
    for warning in validate_config(config):
        print(f"[WARN] {warning}", file=sys.stderr)

    environment = read_build_environment(directives, environ)

    features = FeatureConfig(secure=config.features.secure if secure is None else secure)
    os_ = detect_target_os(target_os)
    build_profile = BuildProfile.from_name(profile if profile is not None else environment.profile)
    target_env = environment.target_env if environment.target_env is not None else detect_target_env(os_)
    platform = PlatformProfile(os=os_, target_env=target_env, build_profile=build_profile)

    strategy = AcquisitionStrategy.SYSTEM_PROBE if environment.use_pkg_config else AcquisitionStrategy.VENDORED

    if out_dir is None:
        out_dir = project_dir / "target" / build_profile.value / "grpcsys"

    settings = BuildSettings(
        project_dir=project_dir,
        out_dir=Path(out_dir).resolve(),
        features=features,
        libraries=LibraryNameSet.for_features(features),
        platform=platform,
        strategy=strategy,
        config=config,
        environment=environment,
        verbose=verbose,
    )
    if strategy is AcquisitionStrategy.VENDORED:
        check_generator(settings)
    print(
        f"[INFO] {settings.libraries.core_lib}/{settings.libraries.cpp_lib} "
        f"os={os_.value} env={target_env or '-'} profile={build_profile.value} "
        f"strategy={strategy.value}",
        file=sys.stderr,
    )
    return settings


def _pkg_config(settings: BuildSettings) -> str:
    return settings.environment.pkg_config or settings.config.system.pkg_config


def _probe(settings: BuildSettings, directives: Directives, emit_metadata: bool) -> List[Path]:
    include_paths: List[Path] = []
    for library in (settings.libraries.core_lib, settings.libraries.cpp_lib):
        lib = probe_library(
            library,
            settings.config.system.min_version,
            pkg_config=_pkg_config(settings),
            directives=directives,
            emit_metadata=emit_metadata,
        )
        for path in lib.include_paths:
            if path not in include_paths:
                include_paths.append(path)
    return include_paths


def acquire(settings: BuildSettings, directives: Directives) -> BuildOutput:
    """Obtain gRPC headers and, for vendored builds, the link plan"""
    if settings.strategy is AcquisitionStrategy.SYSTEM_PROBE:
        # Headers only for now; linkage is emitted once the shim is built
        include_paths = _probe(settings, directives, emit_metadata=False)
        return BuildOutput(root_dir=None, include_paths=tuple(include_paths))

    validate_prerequisites(settings.grpc_dir, settings.features)
    root = build_grpc(settings)
    plan = derive_link_plan(root, settings.platform, settings.features)
    return BuildOutput(
        root_dir=root,
        include_paths=(settings.grpc_dir / "include",),
        search_paths=plan.search_paths,
        static_libs=plan.static_libs,
    )


def emit_link_directives(settings: BuildSettings, output: BuildOutput, shim: ShimArtifact,
                         directives: Directives):
    """Emit headers, the shim archive, then the libraries it depends on"""
    directives.rerun_if_changed(settings.shim_source)
    directives.rerun_if_changed(settings.grpc_dir)
    for path in output.include_paths:
        directives.include(path)

    directives.link_search(shim.archive_path.parent)
    directives.link_lib(shim.lib_name)

    for path in output.search_paths:
        directives.link_search(path)
    for name in output.static_libs:
        directives.link_lib(name)


def run_build(settings: BuildSettings, directives: Directives) -> BuildResult:
    output = acquire(settings, directives)
    shim = compile_shim(settings, output.include_paths)
    emit_link_directives(settings, output, shim, directives)

    if settings.strategy is AcquisitionStrategy.SYSTEM_PROBE:
        # Link the shared system libraries
        _probe(settings, directives, emit_metadata=True)

    print("[OK] grpcsys build completed", file=sys.stderr)
    return BuildResult(settings=settings, output=output, shim=shim)
