"""
grpcsys CLI
Prepares the native gRPC library for linkage into a binding

Usage: grpcsys build [--project-dir DIR] [--secure] [--profile debug|release]

The build command will:
- read GRPCSYS_USE_PKG_CONFIG, GRPCSYS_PROFILE and GRPCSYS_TARGET_ENV
- build the vendored grpc tree with CMake, or probe a system gRPC via pkg-config
- compile grpc_wrap.cc into a static archive
- print link directives (grpcsys:<key>=<value>) on stdout

Diagnostics go to stderr; any failure exits with status 1.
"""
import argparse
import sys
from pathlib import Path

from .config import GrpcSysConfig, FeatureConfig, PlatformProfile, BuildProfile, create_example_config
from .directives import Directives
from .environment import detect_target_os
from .errors import GrpcSysError
from .link_plan import derive_link_plan
from .orchestrator import resolve_settings, run_build


def build(argv=None) -> int:
    """Run the full pipeline and emit link directives"""
    parser = argparse.ArgumentParser(prog="grpcsys build", description="Build the native gRPC library and shim")
    parser.add_argument("--project-dir", default=None, help="directory holding grpc/ and grpc_wrap.cc (defaults to the grpcsys.toml root)")
    parser.add_argument("--out-dir", default=None, help="build output directory (default: <project>/target/<profile>/grpcsys)")
    parser.add_argument("--secure", action=argparse.BooleanOptionalAction, default=None, help="build the TLS-enabled libraries (overrides config)")
    parser.add_argument("--profile", default=None, help="build profile: debug or release (overrides GRPCSYS_PROFILE)")
    parser.add_argument("--target-os", default=None, help="target OS: linux, macos, windows (defaults to the host)")
    parser.add_argument("--config", default=None, help="path to grpcsys.toml configuration file")
    parser.add_argument("--no-config", action="store_true", help="disable automatic config loading")
    parser.add_argument("--manifest", default=None, help="also write the directives as JSON to this path")
    parser.add_argument("-v", "--verbose", action="store_true", help="print all tool output")
    args = parser.parse_args(argv)

    directives = Directives(stream=sys.stdout)
    settings = resolve_settings(
        directives,
        project_dir=Path(args.project_dir) if args.project_dir else None,
        out_dir=Path(args.out_dir) if args.out_dir else None,
        secure=args.secure,
        profile=args.profile,
        target_os=args.target_os,
        config=GrpcSysConfig() if args.no_config else None,
        config_path=Path(args.config) if args.config else None,
        verbose=args.verbose,
    )
    run_build(settings, directives)

    if args.manifest:
        try:
            path = directives.write_manifest(args.manifest)
        except OSError as e:
            raise GrpcSysError(f"cannot write manifest {args.manifest}: {e}") from e
        print(f"[OK] Manifest written: {path}", file=sys.stderr)
    return 0


def plan(argv=None) -> int:
    """Print the link plan of a vendored build without building"""
    parser = argparse.ArgumentParser(prog="grpcsys plan", description="Show the link plan for a vendored build")
    parser.add_argument("--root", default="build", help="CMake build directory of the vendored tree")
    parser.add_argument("--secure", action="store_true", help="plan for the TLS-enabled libraries")
    parser.add_argument("--profile", default="debug", help="build profile: debug or release")
    parser.add_argument("--target-os", default=None, help="target OS: linux, macos, windows (defaults to the host)")
    parser.add_argument("--target-env", default="", help="target toolchain environment (gnu, musl, msvc)")
    args = parser.parse_args(argv)

    platform = PlatformProfile(
        os=detect_target_os(args.target_os),
        target_env=args.target_env,
        build_profile=BuildProfile.from_name(args.profile),
    )
    link_plan = derive_link_plan(Path(args.root), platform, FeatureConfig(secure=args.secure))

    print("Search paths:")
    for path in link_plan.search_paths:
        print(f"  {path}")
    print("Static libraries:")
    for name in link_plan.static_libs:
        print(f"  {name}")
    return 0


def init_config(argv=None) -> int:
    """Initialize a new grpcsys.toml configuration file"""
    parser = argparse.ArgumentParser(prog="grpcsys init", description="Create a new grpcsys.toml configuration file")
    parser.add_argument("-o", "--output", default=None, help="output path for the configuration file (default: grpcsys.toml)")
    parser.add_argument("-f", "--force", action="store_true", help="overwrite existing file")
    args = parser.parse_args(argv)

    output_path = Path(args.output) if args.output else Path.cwd() / "grpcsys.toml"
    if output_path.exists() and not args.force:
        print(f"Configuration file already exists: {output_path}", file=sys.stderr)
        print("Use --force to overwrite or specify a different path with --output", file=sys.stderr)
        return 1

    created_path = create_example_config(output_path)
    print(f"✅ Created configuration file: {created_path}")
    return 0


def print_help():
    """Print help information for grpcsys command"""
    help_text = """
grpcsys - prepares the native gRPC library for a language binding

Usage: grpcsys <command> [options]

Commands:
  build, b       Build (or probe) gRPC, compile the shim, print link directives
  plan           Show the link plan of a vendored build without building
  init, new      Create a new grpcsys.toml configuration file
  help           Show this help message

Environment:
  GRPCSYS_USE_PKG_CONFIG=1   use a system gRPC found via pkg-config
  GRPCSYS_PROFILE            build profile (debug, release, bench)
  GRPCSYS_TARGET_ENV         target toolchain environment (gnu, musl, msvc)
  CXX, AR, PKG_CONFIG        tool overrides

Examples:
  grpcsys build --secure --profile release
  GRPCSYS_USE_PKG_CONFIG=1 grpcsys build --manifest target/grpcsys.json
  grpcsys plan --target-os windows --profile release --secure
  grpcsys init

For detailed options for each command, use:
  grpcsys build --help
  grpcsys plan --help
  grpcsys init --help
"""
    print(help_text)


COMMANDS = {
    "build": build,
    "b": build,
    "plan": plan,
    "init": init_config,
    "new": init_config,
}


def main(argv=None):
    """Main entry point for grpcsys command with subcommands"""
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        print_help()
        return

    subcommand, rest = argv[0], argv[1:]
    # `uv run grpcsys build -- --secure` forwards a leading '--'
    if rest and rest[0] == "--":
        rest = rest[1:]

    if subcommand in ["help", "-h", "--help"]:
        print_help()
        return

    command = COMMANDS.get(subcommand)
    if command is None:
        print(f"Unknown subcommand: {subcommand}", file=sys.stderr)
        print_help()
        sys.exit(1)

    try:
        status = command(rest)
    except GrpcSysError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)
    if status:
        sys.exit(status)


if __name__ == "__main__":
    main()
