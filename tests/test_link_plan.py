"""Tests for the link planner."""

from pathlib import Path

import pytest

from grpcsys.config import BuildProfile, FeatureConfig, LibraryNameSet, PlatformProfile, TargetOs
from grpcsys.link_plan import derive_link_plan, profile_subdir, zlib_name

ROOT = Path("/out/build")


def platform(os=TargetOs.LINUX, profile=BuildProfile.DEBUG, target_env=""):
    return PlatformProfile(os=os, target_env=target_env, build_profile=profile)


@pytest.mark.parametrize("secure", [False, True])
def test_library_name_set_is_one_of_two_pairs(secure):
    names = LibraryNameSet.for_features(FeatureConfig(secure=secure))
    expected = ("grpc", "grpc++") if secure else ("grpc_unsecure", "grpc++_unsecure")
    assert (names.core_lib, names.cpp_lib) == expected


@pytest.mark.parametrize("secure", [False, True])
def test_tls_libraries_present_iff_secure(secure):
    plan = derive_link_plan(ROOT, platform(), FeatureConfig(secure=secure))
    assert ("ssl" in plan.static_libs) is secure
    assert ("crypto" in plan.static_libs) is secure


def test_insecure_linux_plan():
    plan = derive_link_plan(ROOT, platform(), FeatureConfig(secure=False))
    assert plan.static_libs == ("z", "cares", "gpr", "address_sorting", "grpc_unsecure", "grpc++_unsecure")
    assert plan.search_paths == (
        ROOT,
        ROOT / "third_party" / "cares" / "cares" / "lib",
        ROOT / "third_party" / "zlib",
        ROOT / "third_party" / "boringssl" / "ssl",
        ROOT / "third_party" / "boringssl" / "crypto",
        ROOT / "third_party" / "address_sorting",
    )


def test_secure_plan_appends_ssl_then_crypto():
    plan = derive_link_plan(ROOT, platform(), FeatureConfig(secure=True))
    assert plan.static_libs == ("z", "cares", "gpr", "address_sorting", "grpc", "grpc++", "ssl", "crypto")


@pytest.mark.parametrize("os", [TargetOs.LINUX, TargetOs.MACOS, TargetOs.OTHER])
def test_non_windows_plans_ignore_profile(os):
    debug = derive_link_plan(ROOT, platform(os, BuildProfile.DEBUG), FeatureConfig())
    release = derive_link_plan(ROOT, platform(os, BuildProfile.RELEASE), FeatureConfig())
    assert debug == release
    assert profile_subdir(platform(os, BuildProfile.RELEASE)) is None
    assert zlib_name(platform(os, BuildProfile.RELEASE)) == "z"


@pytest.mark.parametrize("profile, subdir, zlib", [
    (BuildProfile.RELEASE, "Release", "zlibstatic"),
    (BuildProfile.DEBUG, "Debug", "zlibstaticd"),
])
def test_windows_plans_are_profile_suffixed(profile, subdir, zlib):
    plan = derive_link_plan(ROOT, platform(TargetOs.WINDOWS, profile, "msvc"), FeatureConfig(secure=True))
    assert all(path.name == subdir for path in plan.search_paths)
    assert plan.search_paths[0] == ROOT / subdir
    assert plan.search_paths[2] == ROOT / "third_party" / "zlib" / subdir
    assert plan.static_libs[0] == zlib


def test_plan_is_deterministic():
    args = (ROOT, platform(TargetOs.WINDOWS, BuildProfile.RELEASE), FeatureConfig(secure=True))
    assert derive_link_plan(*args) == derive_link_plan(*args)
