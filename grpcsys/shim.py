"""Compile the C++ bridging shim into a static archive.

The shim is the narrow native surface the binding calls into. It is
compiled against whichever gRPC headers the acquisition step found, always
as C++, with every warning treated as an error.
"""

import os
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from .config import MSVC_RUNTIME_FLAG, BuildSettings, BuildProfile, TargetOs
from .errors import CompilationFailure
from .process import run

# Windows 7
WIN32_WINNT = "0x0700"


@dataclass(frozen=True)
class Compiler:
    path: str
    kind: str  # "msvc" or "gcc" (gcc and clang compatible command lines)

    @property
    def is_msvc(self) -> bool:
        return self.kind == "msvc"


@dataclass(frozen=True)
class ShimArtifact:
    archive_path: Path
    lib_name: str


def _kind_of(compiler: str) -> str:
    name = Path(compiler).name.lower()
    if name.endswith("cl.exe") or name.endswith("cl"):
        return "msvc"
    return "gcc"


def find_cxx_compiler(settings: BuildSettings) -> Compiler:
    """Find a C++ compiler (prefer CXX, then common names for the platform)"""
    cxx = settings.environment.cxx
    if cxx:
        path = shutil.which(cxx)
        if not path:
            raise CompilationFailure(f"CXX is set to {cxx!r} but it was not found on PATH")
        return Compiler(path, _kind_of(cxx))

    if settings.platform.is_msvc:
        candidates = [("cl", "msvc"), ("clang-cl", "msvc"), ("clang++", "gcc"), ("g++", "gcc")]
    else:
        candidates = [("clang++", "gcc"), ("g++", "gcc"), ("c++", "gcc")]

    for cand, kind in candidates:
        path = shutil.which(cand)
        if path:
            return Compiler(path, kind)

    tried = ", ".join(cand for cand, _ in candidates)
    raise CompilationFailure(f"no C++ compiler found (tried CXX env, {tried}); install one or set CXX")


def compile_flags(settings: BuildSettings, compiler: Compiler, include_paths: Sequence[Path]) -> List[str]:
    """Flags for compiling the shim, without source and output arguments"""
    windows = settings.platform.os is TargetOs.WINDOWS
    release = settings.platform.build_profile is BuildProfile.RELEASE
    defines = []
    if settings.features.secure:
        defines.append("GRPC_SYS_SECURE")
    if windows:
        defines.append(f"_WIN32_WINNT={WIN32_WINNT}")

    if compiler.is_msvc:
        # cl has no C++11 switch; that standard is its floor
        flags = ["/nologo", "/TP", "/EHsc", MSVC_RUNTIME_FLAG, "/W4", "/WX"]
        flags.extend(["/O2"] if release else ["/Od", "/Zi"])
        flags.extend(f"/D{define}" for define in defines)
        for inc in include_paths:
            flags += ["/I", str(inc)]
        return flags

    flags = ["-x", "c++", "-std=c++11", "-Wall", "-Wextra", "-Werror"]
    if not windows:
        flags.append("-fPIC")
    flags.extend(["-O2"] if release else ["-O0", "-g"])
    flags.extend(f"-D{define}" for define in defines)
    flags.extend(f"-I{inc}" for inc in include_paths)
    return flags


def archive_path(settings: BuildSettings, compiler: Compiler) -> Path:
    name = settings.config.sources.shim_name
    if compiler.is_msvc:
        return settings.out_dir / f"{name}.lib"
    return settings.out_dir / f"lib{name}.a"


def archive_command(settings: BuildSettings, compiler: Compiler, obj: Path, archive: Path) -> List[str]:
    if compiler.is_msvc:
        return ["lib.exe", "/nologo", f"/OUT:{archive}", str(obj)]
    return [settings.environment.ar or "ar", "crs", str(archive), str(obj)]


def _check(cmd: List[str], what: str, settings: BuildSettings):
    try:
        result = run(cmd, cwd=settings.out_dir, verbose=True)
    except OSError as e:
        raise CompilationFailure(f"{what} could not be started: {e}") from e
    if result.returncode != 0:
        raise CompilationFailure(f"{what} failed with exit code {result.returncode}", result.stdout or "")


def compile_shim(settings: BuildSettings, include_paths: Sequence[Path]) -> ShimArtifact:
    """Compile the shim source into a single static archive under out_dir"""
    source = settings.shim_source
    if not source.is_file():
        raise CompilationFailure(f"shim source not found: {source}")

    compiler = find_cxx_compiler(settings)
    try:
        settings.out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CompilationFailure(f"cannot create output directory {settings.out_dir}: {e}") from e
    flags = compile_flags(settings, compiler, include_paths)
    archive = archive_path(settings, compiler)

    print(f"[SHIM] Compiling {source.name} with {compiler.path}", file=sys.stderr)
    if compiler.is_msvc:
        obj = settings.out_dir / f"{source.stem}.obj"
        cmd = [compiler.path, *flags, "/c", str(source), f"/Fo{obj}"]
    else:
        obj = settings.out_dir / f"{source.stem}.o"
        cmd = [compiler.path, *flags, "-c", str(source), "-o", str(obj)]
    _check(cmd, f"compiling {source.name}", settings)

    # ar appends to an existing archive, so start from scratch
    if archive.exists():
        try:
            os.remove(archive)
        except OSError as e:
            raise CompilationFailure(f"cannot replace {archive}: {e}") from e
    _check(archive_command(settings, compiler, obj, archive), f"archiving {archive.name}", settings)

    print(f"[OK] Shim archive: {archive}", file=sys.stderr)
    return ShimArtifact(archive_path=archive, lib_name=settings.config.sources.shim_name)
