"""Linkage directives handed to the downstream build consumer.

Each directive is one ``grpcsys:<key>=<value>`` line on stdout. The same
directives can also be written as a JSON manifest.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Tuple, Union

PREFIX = "grpcsys"


class Directives:
    """Collects directives in emission order, echoing them to a stream"""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream
        self.entries: List[Tuple[str, str]] = []

    def emit(self, key: str, value: Union[str, Path]):
        value = str(value)
        self.entries.append((key, value))
        if self.stream is not None:
            print(f"{PREFIX}:{key}={value}", file=self.stream, flush=True)

    def rerun_if_changed(self, path: Union[str, Path]):
        self.emit("rerun-if-changed", path)

    def rerun_if_env_changed(self, name: str):
        self.emit("rerun-if-env-changed", name)

    def include(self, path: Union[str, Path]):
        self.emit("include", path)

    def link_search(self, path: Union[str, Path], kind: str = "native"):
        self.emit("link-search", f"{kind}={path}")

    def link_lib(self, name: str, kind: Optional[str] = "static"):
        """Link a library; kind None leaves the choice (usually dynamic) to the linker"""
        self.emit("link-lib", f"{kind}={name}" if kind else name)

    def lines(self) -> List[str]:
        return [f"{PREFIX}:{key}={value}" for key, value in self.entries]

    def values(self, key: str) -> List[str]:
        return [value for k, value in self.entries if k == key]

    def to_dict(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for key, value in self.entries:
            grouped.setdefault(key, []).append(value)
        return grouped

    def write_manifest(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")
        return path
