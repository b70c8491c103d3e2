"""Link planning for a vendored gRPC build.

Everything here is pure data: the same build root, platform and features
always give the same plan, so it can be checked without running CMake.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .config import FeatureConfig, LibraryNameSet, PlatformProfile, BuildProfile

# Output directories of gRPC's bundled dependencies, relative to the build root
THIRD_PARTY_DIRS = (
    "cares/cares/lib",
    "zlib",
    "boringssl/ssl",
    "boringssl/crypto",
    "address_sorting",
)
TLS_LIBS = ("ssl", "crypto")


@dataclass(frozen=True)
class LinkPlan:
    """Ordered library search directories and static libraries"""
    search_paths: Tuple[Path, ...]
    static_libs: Tuple[str, ...]


@dataclass(frozen=True)
class BuildOutput:
    """What the acquisition step hands to the shim compiler and the linker.

    root_dir is None when the library came from the system probe; the
    linkage then comes from pkg-config instead of search_paths/static_libs.
    """
    root_dir: Optional[Path]
    include_paths: Tuple[Path, ...]
    search_paths: Tuple[Path, ...] = ()
    static_libs: Tuple[str, ...] = ()


def profile_subdir(platform: PlatformProfile) -> Optional[str]:
    """Multi-config generators on Windows nest outputs under the configuration name"""
    if platform.is_windows:
        return platform.build_profile.cmake_config
    return None


def zlib_name(platform: PlatformProfile) -> str:
    if platform.is_windows:
        if platform.build_profile is BuildProfile.RELEASE:
            return "zlibstatic"
        return "zlibstaticd"
    return "z"


def derive_link_plan(root: Path, platform: PlatformProfile, features: FeatureConfig) -> LinkPlan:
    """Search paths and static libraries to link a vendored build.

    Libraries come in the order the vendored build expects them on the
    link line; ssl and crypto only take part in secure builds.
    """
    subdir = profile_subdir(platform)

    def located(path: Path) -> Path:
        return path / subdir if subdir else path

    search_paths = [located(root)]
    for path in THIRD_PARTY_DIRS:
        search_paths.append(located(root / "third_party" / path))

    names = LibraryNameSet.for_features(features)
    static_libs = [
        zlib_name(platform),
        "cares",
        "gpr",
        "address_sorting",
        names.core_lib,
        names.cpp_lib,
    ]
    if features.secure:
        static_libs.extend(TLS_LIBS)

    return LinkPlan(search_paths=tuple(search_paths), static_libs=tuple(static_libs))
