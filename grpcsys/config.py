#!/usr/bin/env python3
"""
Configuration management for grpcsys

This module holds the build data model (features, platform, profile,
acquisition strategy) and handles parsing and validation of the optional
grpcsys.toml file that tunes sources, the system probe and the toolchain.
"""

try:
    import tomllib
except ImportError:
    # For Python < 3.11
    import tomli as tomllib
from pathlib import Path
from typing import Dict, List, Optional, Any, Union
from dataclasses import dataclass, field
from enum import Enum

from .errors import ConfigError


CONFIG_FILE_NAME = "grpcsys.toml"
GRPC_VERSION = "1.13.0"

# The shim and the vendored libraries must link one MSVC runtime, in every profile
MSVC_RUNTIME_FLAG = "/MD"
MSVC_RUNTIME_LIBRARY = "MultiThreadedDLL"


class TargetOs(Enum):
    """Operating system the native library is built for"""
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"
    OTHER = "other"


class BuildProfile(Enum):
    """Build profile of the surrounding build"""
    DEBUG = "debug"
    RELEASE = "release"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "BuildProfile":
        """Map a profile name onto a profile; case-insensitive, unknown names build as debug"""
        if name and name.lower() in ("release", "bench"):
            return cls.RELEASE
        return cls.DEBUG

    @property
    def cmake_config(self) -> str:
        """CMake configuration name, also the output subdirectory of multi-config generators"""
        return "Release" if self is BuildProfile.RELEASE else "Debug"


class AcquisitionStrategy(Enum):
    """Where the native library comes from"""
    VENDORED = "vendored"
    SYSTEM_PROBE = "system-probe"


@dataclass(frozen=True)
class FeatureConfig:
    """Compile-time feature flags"""
    secure: bool = False


@dataclass(frozen=True)
class LibraryNameSet:
    """Names of the gRPC core and C++ libraries for one build"""
    core_lib: str
    cpp_lib: str

    @classmethod
    def for_features(cls, features: FeatureConfig) -> "LibraryNameSet":
        if features.secure:
            return cls("grpc", "grpc++")
        return cls("grpc_unsecure", "grpc++_unsecure")


@dataclass(frozen=True)
class PlatformProfile:
    """Target platform and build profile"""
    os: TargetOs
    target_env: str
    build_profile: BuildProfile

    @property
    def is_windows(self) -> bool:
        return self.os is TargetOs.WINDOWS

    @property
    def is_msvc(self) -> bool:
        """Windows targets use the MSVC toolchain unless they ask for gnu"""
        return self.is_windows and self.target_env != "gnu"


@dataclass(frozen=True)
class BuildEnvironment:
    """Every environment variable the build consumes, read exactly once"""
    use_pkg_config: bool = False
    profile: Optional[str] = None
    target_env: Optional[str] = None
    cxx: Optional[str] = None
    ar: Optional[str] = None
    pkg_config: Optional[str] = None


@dataclass
class SourceConfig:
    """Source section: locations relative to the project root"""
    grpc_dir: str = "grpc"
    shim_source: str = "grpc_wrap.cc"
    shim_name: str = "grpc_wrap"


@dataclass
class SystemConfig:
    """System section: pkg-config probe settings"""
    min_version: str = GRPC_VERSION
    pkg_config: str = "pkg-config"


@dataclass
class ToolchainConfig:
    """Toolchain section"""
    # Target environments whose default compiler cannot build gRPC
    cxx_compiler_overrides: Dict[str, str] = field(default_factory=lambda: {"musl": "g++"})
    cmake_generator: Optional[str] = None
    parallel_jobs: Optional[int] = None


@dataclass
class GrpcSysConfig:
    """Complete grpcsys configuration"""
    features: FeatureConfig = field(default_factory=FeatureConfig)
    sources: SourceConfig = field(default_factory=SourceConfig)
    system: SystemConfig = field(default_factory=SystemConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)


@dataclass(frozen=True)
class BuildSettings:
    """Everything one build invocation needs, resolved once at entry"""
    project_dir: Path
    out_dir: Path
    features: FeatureConfig
    libraries: LibraryNameSet
    platform: PlatformProfile
    strategy: AcquisitionStrategy
    config: GrpcSysConfig
    environment: BuildEnvironment
    verbose: bool = False

    @property
    def grpc_dir(self) -> Path:
        return self.project_dir / self.config.sources.grpc_dir

    @property
    def shim_source(self) -> Path:
        return self.project_dir / self.config.sources.shim_source


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table in {CONFIG_FILE_NAME}")
    return section


def _typed(section: Dict[str, Any], key: str, expected: type, default: Any, where: str) -> Any:
    value = section.get(key, default)
    if value is not None and not isinstance(value, expected):
        raise ConfigError(f"{where}.{key} must be of type {expected.__name__}, got {type(value).__name__}")
    return value


def parse_config(data: Dict[str, Any]) -> GrpcSysConfig:
    """Build a GrpcSysConfig from parsed TOML data"""
    features_data = _section(data, "features")
    features = FeatureConfig(
        secure=_typed(features_data, "secure", bool, False, "features")
    )

    sources_data = _section(data, "sources")
    sources = SourceConfig(
        grpc_dir=_typed(sources_data, "grpc_dir", str, "grpc", "sources"),
        shim_source=_typed(sources_data, "shim_source", str, "grpc_wrap.cc", "sources"),
        shim_name=_typed(sources_data, "shim_name", str, "grpc_wrap", "sources"),
    )

    system_data = _section(data, "system")
    system = SystemConfig(
        min_version=_typed(system_data, "min_version", str, GRPC_VERSION, "system"),
        pkg_config=_typed(system_data, "pkg_config", str, "pkg-config", "system"),
    )

    toolchain_data = _section(data, "toolchain")
    overrides = _typed(toolchain_data, "cxx_compiler_overrides", dict, None, "toolchain")
    toolchain = ToolchainConfig(
        cmake_generator=_typed(toolchain_data, "cmake_generator", str, None, "toolchain"),
        parallel_jobs=_typed(toolchain_data, "parallel_jobs", int, None, "toolchain"),
    )
    if overrides is not None:
        toolchain.cxx_compiler_overrides = {str(k): str(v) for k, v in overrides.items()}

    return GrpcSysConfig(
        features=features,
        sources=sources,
        system=system,
        toolchain=toolchain,
    )


def find_project_root(start_path: Optional[Path] = None) -> Path:
    """Find the project root directory containing grpcsys.toml"""
    if start_path is None:
        start_path = Path.cwd()

    current = start_path if start_path.is_dir() else start_path.parent
    for path in [current] + list(current.parents):
        if (path / CONFIG_FILE_NAME).exists():
            return path

    # No grpcsys.toml anywhere above: the starting directory is the root
    return current


def load_config(config_path: Optional[Union[str, Path]] = None,
                project_dir: Optional[Path] = None) -> GrpcSysConfig:
    """Load grpcsys configuration; defaults apply when no file exists"""
    if config_path is None:
        root = project_dir if project_dir is not None else find_project_root()
        config_path = root / CONFIG_FILE_NAME
        if not config_path.exists():
            return GrpcSysConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    return parse_config(data)


def create_example_config(path: Optional[Union[str, Path]] = None) -> Path:
    """Create an example grpcsys.toml configuration file"""
    if path is None:
        path = Path.cwd() / CONFIG_FILE_NAME
    else:
        path = Path(path)

    example_config = f'''# grpcsys.toml - build settings for the native gRPC library

[features]
# Build the TLS-enabled libraries (grpc, grpc++) and link BoringSSL
secure = false

[sources]
grpc_dir = "grpc"
shim_source = "grpc_wrap.cc"
shim_name = "grpc_wrap"

[system]
# Used when GRPCSYS_USE_PKG_CONFIG=1
min_version = "{GRPC_VERSION}"
pkg_config = "pkg-config"

[toolchain]
# cmake_generator = "Ninja"
# parallel_jobs = 8

[toolchain.cxx_compiler_overrides]
musl = "g++"
'''

    with open(path, "w", encoding="utf-8") as f:
        f.write(example_config)

    return path


def validate_config(config: GrpcSysConfig) -> List[str]:
    """Validate a grpcsys configuration and return list of warnings"""
    warnings = []

    if not config.sources.grpc_dir:
        warnings.append("sources.grpc_dir cannot be empty")

    if not config.sources.shim_source:
        warnings.append("sources.shim_source cannot be empty")

    if not config.sources.shim_name:
        warnings.append("sources.shim_name cannot be empty")

    if not config.system.min_version:
        warnings.append("system.min_version cannot be empty")

    if config.toolchain.parallel_jobs is not None and config.toolchain.parallel_jobs < 1:
        warnings.append("toolchain.parallel_jobs must be >= 1")

    for target_env, compiler in config.toolchain.cxx_compiler_overrides.items():
        if not compiler:
            warnings.append(f"Compiler override for target env '{target_env}' is empty")

    return warnings
