"""Failure kinds raised while preparing the native gRPC library.

Components raise these and let them propagate; only the command line
entry point turns them into a diagnostic and a non-zero exit status.
"""


class GrpcSysError(RuntimeError):
    """Base class for every unrecoverable build failure"""


class ConfigError(GrpcSysError):
    """grpcsys.toml could not be parsed or has the wrong shape"""


class EnvironmentDecodeError(GrpcSysError):
    """An environment variable holds bytes that are not valid text"""

    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value
        readable = value.encode("utf-8", "backslashreplace").decode("utf-8")
        super().__init__(f"unrecognized env var of {name}: {readable!r}")


class MissingPrerequisite(GrpcSysError):
    """A vendored module directory is absent or empty"""

    def __init__(self, module):
        self.module = module
        super().__init__(
            f"Can't find module {module}. You need to run "
            "`git submodule update --init --recursive` first to build the project."
        )


class ProbeNotFound(GrpcSysError):
    """pkg-config cannot supply the library at the minimum version"""

    def __init__(self, library: str, min_version: str, detail: str = ""):
        self.library = library
        self.min_version = min_version
        self.detail = detail
        message = f"can't find library {library} (>= {min_version}) via pkg-config"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class NativeBuildFailure(GrpcSysError):
    """The vendored CMake configure or build step failed"""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(f"{message}\n{output}" if output else message)


class CompilationFailure(GrpcSysError):
    """The shim failed to compile or archive"""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(f"{message}\n{output}" if output else message)
