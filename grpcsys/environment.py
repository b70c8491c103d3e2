"""Environment and host detection.

Every variable the build consumes is read once, here, and recorded as a
``rerun-if-env-changed`` directive so a change invalidates cached state.
"""

import os
import platform
import sys
from pathlib import Path
from typing import Mapping, Optional

from .config import BuildEnvironment, TargetOs
from .directives import Directives
from .errors import EnvironmentDecodeError

USE_PKG_CONFIG_VAR = "GRPCSYS_USE_PKG_CONFIG"
PROFILE_VAR = "GRPCSYS_PROFILE"
TARGET_ENV_VAR = "GRPCSYS_TARGET_ENV"


def get_env(name: str, directives: Directives, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Read one environment variable, recording it for rebuild detection"""
    directives.rerun_if_env_changed(name)
    if environ is None:
        environ = os.environ
    value = environ.get(name)
    if value is None:
        return None
    # os.environ smuggles undecodable bytes through as lone surrogates
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise EnvironmentDecodeError(name, value) from None
    return value


def read_build_environment(directives: Directives,
                           environ: Optional[Mapping[str, str]] = None) -> BuildEnvironment:
    """Read all consumed variables in a fixed order"""
    use_pkg_config = get_env(USE_PKG_CONFIG_VAR, directives, environ)
    return BuildEnvironment(
        use_pkg_config=use_pkg_config == "1",
        profile=get_env(PROFILE_VAR, directives, environ),
        target_env=get_env(TARGET_ENV_VAR, directives, environ),
        cxx=get_env("CXX", directives, environ),
        ar=get_env("AR", directives, environ),
        pkg_config=get_env("PKG_CONFIG", directives, environ),
    )


def detect_target_os(name: Optional[str] = None) -> TargetOs:
    """Map a target OS name (default: the host) onto TargetOs"""
    if name is None:
        name = sys.platform
    name = name.lower()
    if name.startswith("linux"):
        return TargetOs.LINUX
    if name in ("darwin", "macos", "osx"):
        return TargetOs.MACOS
    if name in ("win32", "windows", "cygwin"):
        return TargetOs.WINDOWS
    return TargetOs.OTHER


def _host_libc() -> str:
    """libc family of the running Linux host: "gnu", "musl" or "" when unknown"""
    if not sys.platform.startswith("linux"):
        return ""
    libc, _ = platform.libc_ver()
    if libc == "glibc":
        return "gnu"
    if any(Path("/lib").glob("ld-musl-*")):
        return "musl"
    return ""


def detect_target_env(target_os: TargetOs) -> str:
    """Guess the toolchain environment (gnu, musl, msvc) of the target.

    Linux targets take the host libc family, so cross builds from another
    host get no environment; GRPCSYS_TARGET_ENV names one explicitly.
    """
    if target_os is TargetOs.WINDOWS:
        return "msvc"
    if target_os is TargetOs.LINUX:
        return _host_libc()
    return ""
