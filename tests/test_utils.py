import os
import platform
import sys

import pytest
import semver

from juliaup import utils


def test_parse_versionstring_requires_build_parts():
    with pytest.raises(ValueError):
        utils.parse_versionstring("1.1.1")


def test_parse_versionstring_x86():
    p, v = utils.parse_versionstring("1.1.1+0.x86.apple.darwin14")
    assert p == "x86"
    assert v == semver.Version(1, 1, 1)
    assert v.build is None


def test_parse_versionstring_x64():
    p, v = utils.parse_versionstring("1.1.1+0.x64.apple.darwin14")
    assert p == "x64"
    assert v == semver.Version(1, 1, 1)


def test_parse_versionstring_keeps_prerelease():
    p, v = utils.parse_versionstring("1.11.0-rc1+0.aarch64.linux.gnu")
    assert p == "aarch64"
    assert v.prerelease == "rc1"


def test_parse_versionstring_rejects_garbage():
    with pytest.raises(ValueError):
        utils.parse_versionstring("not a version")


def test_server_url_default(monkeypatch):
    monkeypatch.delenv("JULIAUP_SERVER", raising=False)
    assert utils.get_juliaserver_base_url() == "https://julialang-s3.julialang.org/"


@pytest.mark.parametrize(
    "value", ["http://localhost:8000", "http://localhost:8000/"]
)
def test_server_url_from_environment_gets_slash(monkeypatch, value):
    monkeypatch.setenv("JULIAUP_SERVER", value)
    assert utils.get_juliaserver_base_url() == "http://localhost:8000/"


def test_server_url_invalid(monkeypatch):
    monkeypatch.setenv("JULIAUP_SERVER", "not a url")
    with pytest.raises(ValueError, match="JULIAUP_SERVER"):
        utils.get_juliaserver_base_url()


def test_nightly_url_default(monkeypatch):
    monkeypatch.delenv("JULIAUP_NIGHTLY_SERVER", raising=False)
    assert (
        utils.get_julianightlies_base_url()
        == "https://julialangnightlies-s3.julialang.org/"
    )


def test_nightly_url_from_environment(monkeypatch):
    monkeypatch.setenv("JULIAUP_NIGHTLY_SERVER", "http://localhost/nightly")
    assert utils.get_julianightlies_base_url() == "http://localhost/nightly/"


def test_bin_dir_from_environment_takes_first_entry(tmp_path, monkeypatch):
    first = tmp_path / "first"
    second = tmp_path / "second"
    monkeypatch.setenv("JULIAUP_BIN_DIR", f"{first}{os.pathsep}{second}")
    assert utils.get_bin_dir() == first


def test_bin_dir_relative_is_rejected(monkeypatch):
    monkeypatch.setenv("JULIAUP_BIN_DIR", "relative/bin")
    with pytest.raises(ValueError, match="JULIAUP_BIN_DIR"):
        utils.get_bin_dir()


def test_bin_dir_outside_home_uses_local_bin(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.delenv("JULIAUP_BIN_DIR", raising=False)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    assert utils.get_bin_dir() == home / ".local" / "bin"


def test_is_valid_julia_path_missing_program(tmp_path):
    assert utils.is_valid_julia_path(tmp_path / "no-such-julia") is False


def test_is_valid_julia_path_existing_program():
    assert utils.is_valid_julia_path(sys.executable) is True


@pytest.mark.parametrize(
    "machine, expected",
    [("x86_64", "x64"), ("AMD64", "x64"), ("i686", "x86"), ("arm64", "aarch64")],
)
def test_get_arch(monkeypatch, machine, expected):
    monkeypatch.setattr(platform, "machine", lambda: machine)
    assert utils.get_arch() == expected


def test_get_arch_unknown(monkeypatch):
    monkeypatch.setattr(platform, "machine", lambda: "riscv64")
    with pytest.raises(ValueError, match="riscv64"):
        utils.get_arch()