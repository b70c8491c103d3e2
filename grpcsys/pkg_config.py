#!/usr/bin/env python3
"""
System library probe for grpcsys

Locates a pre-installed gRPC through pkg-config, enforcing a minimum
version. The probe can optionally emit the linkage metadata (search paths
and dynamic libraries) as directives.
"""

import shlex
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .directives import Directives
from .errors import ProbeNotFound
from .process import run


@dataclass
class Library:
    """A library as described by its pkg-config metadata"""
    name: str
    version: str
    include_paths: List[Path] = field(default_factory=list)
    link_paths: List[Path] = field(default_factory=list)
    libs: List[str] = field(default_factory=list)


def _flag_values(output: str, prefix: str) -> List[str]:
    values = []
    for flag in shlex.split(output):
        if flag.startswith(prefix) and len(flag) > len(prefix):
            value = flag[len(prefix):]
            if value not in values:
                values.append(value)
    return values


def _query(pkg_config: str, library: str, min_version: str, *args: str) -> str:
    result = run([pkg_config, *args, library], capture_output=True)
    if result.returncode != 0:
        raise ProbeNotFound(library, min_version, (result.stderr or result.stdout).strip())
    return result.stdout


def probe_library(library: str, min_version: str, pkg_config: str = "pkg-config",
                  directives: Optional[Directives] = None, emit_metadata: bool = False) -> Library:
    """Probe pkg-config for library at min_version or newer.

    Args:
        library: pkg-config package name (e.g. "grpc_unsecure")
        min_version: Minimum acceptable version
        pkg_config: pkg-config executable
        directives: Sink for linkage metadata
        emit_metadata: Emit link-search and link-lib directives for the library

    Raises:
        ProbeNotFound: pkg-config is missing, or the library is missing or too old
    """
    if not shutil.which(pkg_config):
        raise ProbeNotFound(library, min_version, f"{pkg_config} not found on PATH")

    _query(pkg_config, library, min_version, "--print-errors", f"--atleast-version={min_version}")

    version = _query(pkg_config, library, min_version, "--modversion").strip()
    lib = Library(
        name=library,
        version=version,
        include_paths=[Path(p) for p in _flag_values(_query(pkg_config, library, min_version, "--cflags-only-I"), "-I")],
        link_paths=[Path(p) for p in _flag_values(_query(pkg_config, library, min_version, "--libs-only-L"), "-L")],
        libs=_flag_values(_query(pkg_config, library, min_version, "--libs-only-l"), "-l"),
    )
    print(f"[PKG-CONFIG] Found {library} {version}", file=sys.stderr)

    if emit_metadata:
        if directives is None:
            raise ValueError("emit_metadata requires a Directives sink")
        for path in lib.link_paths:
            directives.link_search(path)
        for name in lib.libs:
            directives.link_lib(name, kind=None)

    return lib
