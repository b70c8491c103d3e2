"""Checks that the vendored gRPC tree is checked out before building it."""

import sys
from pathlib import Path
from typing import List

from .config import FeatureConfig
from .errors import MissingPrerequisite

# Relative to the vendored grpc directory; "" is the tree itself
GRPC_MODULES = (
    "",
    "third_party/zlib",
    "third_party/cares/cares",
    "third_party/address_sorting",
)
SECURE_MODULES = (
    "third_party/boringssl",
)


def required_modules(grpc_dir: Path, features: FeatureConfig) -> List[Path]:
    """Directories that must be populated for a vendored build"""
    modules = list(GRPC_MODULES)
    if features.secure:
        modules.extend(SECURE_MODULES)
    return [grpc_dir / module if module else grpc_dir for module in modules]


def is_directory_empty(path: Path) -> bool:
    """True when path is missing, not a directory, or holds only hidden entries.

    An uninitialized submodule may still carry dot-files such as a
    ``.git`` link or a ``.gitkeep``; those are not sources. Unreadable
    directories count as empty.
    """
    if not path.is_dir():
        return True
    try:
        return not any(not entry.name.startswith(".") for entry in path.iterdir())
    except OSError:
        return True


def validate_prerequisites(grpc_dir: Path, features: FeatureConfig) -> List[Path]:
    """Fail on the first required module that is absent or empty"""
    modules = required_modules(grpc_dir, features)
    for module in modules:
        if is_directory_empty(module):
            raise MissingPrerequisite(module)
    print(f"[OK] Vendored sources present: {len(modules)} modules under {grpc_dir}", file=sys.stderr)
    return modules
