#!/usr/bin/env python3
"""Build the vendored gRPC tree with CMake.

This module will:
- configure an out-of-tree CMake build of the vendored grpc directory
  with the overrides the binding needs (no install targets, no Go
  dependency for insecure builds, libc++ and rpath on macOS, and a
  compiler override for toolchains that need one)
- build only the C++ library target, which also builds the C core

The command lines are plain functions of the build settings so they can
be inspected without running CMake.
"""

import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .config import MSVC_RUNTIME_LIBRARY, BuildSettings, TargetOs
from .errors import ConfigError, NativeBuildFailure
from .process import run

# Stands in for the Go toolchain BoringSSL asks for; it is never run
# because insecure builds build no BoringSSL targets.
FAKE_GO_EXECUTABLE = "fake-go-nonexist"

# Generators that nest outputs under a per-configuration directory
MULTI_CONFIG_GENERATORS = ("Visual Studio", "Xcode", "Ninja Multi-Config")


def detect_cmake_generator(settings: BuildSettings) -> Optional[str]:
    """Detect the CMake generator for the target platform"""
    if settings.config.toolchain.cmake_generator:
        return settings.config.toolchain.cmake_generator
    if settings.platform.is_windows:
        # Let CMake choose the default Visual Studio generator, which nests
        # outputs by configuration as the link plan expects
        return None
    if shutil.which("ninja"):
        return "Ninja"
    return "Unix Makefiles"


def is_multi_config(generator: Optional[str]) -> bool:
    """None stands for the platform default, which is multi-config on Windows"""
    if generator is None:
        return True
    return generator.startswith(MULTI_CONFIG_GENERATORS)


def check_generator(settings: BuildSettings):
    """Windows link plans expect Debug/Release output directories"""
    generator = settings.config.toolchain.cmake_generator
    if settings.platform.is_windows and generator and not is_multi_config(generator):
        raise ConfigError(
            f"toolchain.cmake_generator = {generator!r} is single-config; Windows builds need a "
            "multi-config generator such as Visual Studio or Ninja Multi-Config"
        )


def cxx_flags(settings: BuildSettings) -> List[str]:
    """CMAKE_CXX_FLAGS for the vendored build"""
    flags = []
    if not settings.platform.is_msvc:
        flags.append("-std=c++11")
    if settings.platform.os is TargetOs.MACOS:
        flags.append("-stdlib=libc++")
    return flags


def cmake_defines(settings: BuildSettings) -> Dict[str, str]:
    """All -D overrides passed when configuring the vendored tree"""
    defines = {
        "CMAKE_BUILD_TYPE": settings.platform.build_profile.cmake_config,
        # The binding links the build tree directly; nothing is installed
        "gRPC_INSTALL": "false",
    }
    if not settings.features.secure:
        defines["GO_EXECUTABLE"] = FAKE_GO_EXECUTABLE
    if settings.platform.os is TargetOs.MACOS:
        # As CMake policy CMP0042 suggests
        defines["CMAKE_MACOSX_RPATH"] = "ON"
    if settings.platform.is_msvc:
        # Debug configs default to /MDd; pin the runtime the shim is compiled with
        defines["CMAKE_POLICY_DEFAULT_CMP0091"] = "NEW"
        defines["CMAKE_MSVC_RUNTIME_LIBRARY"] = MSVC_RUNTIME_LIBRARY

    compiler = settings.config.toolchain.cxx_compiler_overrides.get(settings.platform.target_env)
    if compiler:
        defines["CMAKE_CXX_COMPILER"] = compiler

    flags = cxx_flags(settings)
    if flags:
        defines["CMAKE_CXX_FLAGS"] = " ".join(flags)
    return defines


def configure_command(settings: BuildSettings, generator: Optional[str]) -> List[str]:
    cmd = ["cmake"]
    for key, value in cmake_defines(settings).items():
        cmd.append(f"-D{key}={value}")
    if generator:
        cmd.extend(["-G", generator])
    cmd.append(str(settings.grpc_dir.resolve()))
    return cmd


def build_command(settings: BuildSettings) -> List[str]:
    # Target grpc++ also builds grpc
    cmd = [
        "cmake", "--build", ".",
        "--target", settings.libraries.cpp_lib,
        "--config", settings.platform.build_profile.cmake_config,
    ]
    jobs = settings.config.toolchain.parallel_jobs or os.cpu_count()
    if jobs and jobs > 1:
        cmd.extend(["--parallel", str(jobs)])
    return cmd


def _run_step(cmd: List[str], cwd: Path, step: str, settings: BuildSettings):
    try:
        result = run(cmd, cwd=cwd, verbose=settings.verbose)
    except OSError as e:
        raise NativeBuildFailure(f"cmake {step} could not be started: {e}") from e
    if result.returncode != 0:
        raise NativeBuildFailure(
            f"cmake {step} failed with exit code {result.returncode}: {' '.join(cmd)}",
            result.stdout or "",
        )


def build_grpc(settings: BuildSettings) -> Path:
    """Configure and build the vendored tree; returns the CMake build directory"""
    if not shutil.which("cmake"):
        raise NativeBuildFailure("cmake not found on PATH; it is required to build the vendored gRPC")

    build_dir = settings.out_dir / "build"
    try:
        build_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise NativeBuildFailure(f"cannot create build directory {build_dir}: {e}") from e

    generator = detect_cmake_generator(settings)
    profile = settings.platform.build_profile.cmake_config
    print(f"Building {settings.libraries.cpp_lib} ({profile}) from {settings.grpc_dir}...", file=sys.stderr)

    configure = configure_command(settings, generator)
    print(f"    [CMAKE] Configure: {subprocess.list2cmdline(configure)}", file=sys.stderr)
    _run_step(configure, build_dir, "configure", settings)

    build = build_command(settings)
    print(f"    [CMAKE] Build: {subprocess.list2cmdline(build)}", file=sys.stderr)
    _run_step(build, build_dir, "build", settings)

    print(f"[OK] Vendored gRPC built in {build_dir}", file=sys.stderr)
    return build_dir
