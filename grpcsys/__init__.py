"""
grpcsys - build-time preparation of the native gRPC library

This package builds gRPC from a vendored source tree (or locates a system
install through pkg-config), compiles the C++ bridging shim against it and
emits the link directives a language binding needs.
"""

__version__ = "0.1.0"

from .cli import main
from .config import load_config, create_example_config, GrpcSysConfig, BuildSettings
from .link_plan import derive_link_plan, LinkPlan, BuildOutput
from .orchestrator import resolve_settings, run_build

__all__ = [
    "main",
    "load_config",
    "create_example_config",
    "GrpcSysConfig",
    "BuildSettings",
    "derive_link_plan",
    "LinkPlan",
    "BuildOutput",
    "resolve_settings",
    "run_build",
]
