"""Tests for the pkg-config system library probe."""

from pathlib import Path
from unittest.mock import patch

import pytest

from grpcsys.directives import Directives
from grpcsys.errors import ProbeNotFound
from grpcsys.pkg_config import probe_library

from conftest import completed

RESPONSES = {
    "--modversion": "1.16.1\n",
    "--cflags-only-I": "-I/opt/grpc/include -I/usr/include -I/opt/grpc/include\n",
    "--libs-only-L": "-L/opt/grpc/lib\n",
    "--libs-only-l": "-lgrpc_unsecure -lgpr\n",
}


def fake_pkg_config(missing=()):
    def fake_run(cmd, **kwargs):
        flag, library = cmd[-2], cmd[-1]
        if library in missing:
            return completed(cmd, 1, "", f"Package {library} was not found in the pkg-config search path.")
        return completed(cmd, 0, RESPONSES.get(flag, ""), "")
    return fake_run


@pytest.fixture
def pkg_config_on_path():
    with patch("grpcsys.pkg_config.shutil.which", return_value="/usr/bin/pkg-config"):
        yield


@patch("grpcsys.pkg_config.run", side_effect=fake_pkg_config())
def test_probe_collects_metadata(mock_run, pkg_config_on_path):
    lib = probe_library("grpc_unsecure", "1.13.0")
    assert lib.version == "1.16.1"
    assert lib.include_paths == [Path("/opt/grpc/include"), Path("/usr/include")]
    assert lib.link_paths == [Path("/opt/grpc/lib")]
    assert lib.libs == ["grpc_unsecure", "gpr"]

    first = mock_run.call_args_list[0].args[0]
    assert first == ["pkg-config", "--print-errors", "--atleast-version=1.13.0", "grpc_unsecure"]


@patch("grpcsys.pkg_config.run", side_effect=fake_pkg_config())
def test_probe_is_silent_unless_asked(mock_run, pkg_config_on_path):
    directives = Directives()
    probe_library("grpc_unsecure", "1.13.0", directives=directives, emit_metadata=False)
    assert directives.entries == []


@patch("grpcsys.pkg_config.run", side_effect=fake_pkg_config())
def test_probe_emits_dynamic_linkage(mock_run, pkg_config_on_path):
    directives = Directives()
    probe_library("grpc_unsecure", "1.13.0", directives=directives, emit_metadata=True)
    assert directives.lines() == [
        "grpcsys:link-search=native=/opt/grpc/lib",
        "grpcsys:link-lib=grpc_unsecure",
        "grpcsys:link-lib=gpr",
    ]


@patch("grpcsys.pkg_config.run", side_effect=fake_pkg_config(missing=("grpc++",)))
def test_missing_library_is_fatal(mock_run, pkg_config_on_path):
    with pytest.raises(ProbeNotFound) as exc_info:
        probe_library("grpc++", "1.13.0")
    assert exc_info.value.library == "grpc++"
    assert "was not found in the pkg-config search path" in str(exc_info.value)
    assert mock_run.call_count == 1


def test_missing_pkg_config_is_fatal():
    with patch("grpcsys.pkg_config.shutil.which", return_value=None):
        with pytest.raises(ProbeNotFound, match="pkg-config not found"):
            probe_library("grpc", "1.13.0")
