import os
from pathlib import Path

import pytest

from juliaup.config_file import DirectDownloadChannel, LinkedChannel, SystemChannel
from juliaup.global_paths import GlobalPaths
from juliaup.symlinks import create_symlink, remove_symlink


@pytest.fixture
def paths(tmp_path):
    home = tmp_path / "depot" / "juliaup"
    return GlobalPaths(
        juliauphome=home,
        juliaupconfig=home / "juliaup.json",
        lockfile=home / ".juliaup-lock",
        versiondb=home / "versiondb.json",
    )


@pytest.fixture
def bin_dir(tmp_path, monkeypatch):
    folder = tmp_path / "bin"
    monkeypatch.setenv("JULIAUP_BIN_DIR", str(folder))
    monkeypatch.setenv("PATH", str(folder))
    return folder


def test_system_channel_symlink_points_to_julia_binary(paths, bin_dir, capsys):
    create_symlink(SystemChannel(version="1.6.4"), "julia-release", paths)
    link = bin_dir / "julia-release"
    assert os.readlink(link) == str(paths.juliauphome / "julia-1.6.4" / "bin" / "julia")
    assert "Creating symlink julia-release for Julia 1.6.4." in capsys.readouterr().err


def test_existing_symlink_is_updated(paths, bin_dir, capsys):
    create_symlink(SystemChannel(version="1.6.4"), "julia-release", paths)
    create_symlink(SystemChannel(version="1.7.0"), "julia-release", paths)
    link = bin_dir / "julia-release"
    old_target = paths.juliauphome / "julia-1.6.4" / "bin" / "julia"
    assert os.readlink(link) == str(paths.juliauphome / "julia-1.7.0" / "bin" / "julia")
    err = capsys.readouterr().err
    assert f"Updating symlink julia-release ( {old_target} -> 1.7.0 )" in err


def test_direct_download_channel_symlink(paths, bin_dir):
    channel = DirectDownloadChannel(
        path="./julia-nightly",
        url="https://example.com/julia.tar.gz",
        local_etag="a",
        server_etag="a",
        version="1.12.0-DEV.5",
    )
    create_symlink(channel, "julia-nightly", paths)
    expected = paths.juliauphome / "julia-nightly" / "bin" / "julia"
    assert os.readlink(bin_dir / "julia-nightly") == str(expected)


def test_linked_channel_writes_executable_shim(paths, bin_dir, capsys):
    channel = LinkedChannel(command="/opt/julia/bin/julia", args=("--project",))
    create_symlink(channel, "julia-dev", paths)
    shim = bin_dir / "julia-dev"
    assert not shim.is_symlink()
    assert shim.read_text() == '#!/bin/sh\n/opt/julia/bin/julia --project "$@"\n'
    assert shim.stat().st_mode & 0o777 == 0o755
    assert "Creating shim julia-dev for /opt/julia/bin/julia --project." in capsys.readouterr().err


def test_linked_channel_without_args(paths, bin_dir, capsys):
    name = "julia-mine"
    create_symlink(LinkedChannel(command="myjulia", args=None), name, paths)
    assert (bin_dir / name).read_text() == '#!/bin/sh\nmyjulia "$@"\n'
    assert "Creating shim julia-mine for myjulia." in capsys.readouterr().err


def test_shim_replaced_by_symlink(paths, bin_dir):
    create_symlink(LinkedChannel(command="myjulia", args=None), "julia-x", paths)
    create_symlink(SystemChannel(version="1.6.4"), "julia-x", paths)
    link = bin_dir / "julia-x"
    assert link.is_symlink()
    assert os.readlink(link) == str(paths.juliauphome / "julia-1.6.4" / "bin" / "julia")


def test_remove_symlink_deletes_link(paths, bin_dir, capsys):
    create_symlink(SystemChannel(version="1.6.4"), "julia-release", paths)
    remove_symlink("julia-release")
    assert not os.path.lexists(bin_dir / "julia-release")
    assert "Deleting symlink julia-release." in capsys.readouterr().err


def test_remove_missing_symlink_creates_folder(bin_dir, capsys):
    name = "julia-none"
    remove_symlink(name)
    assert bin_dir.is_dir()
    assert not os.path.lexists(bin_dir / name)
    assert "Deleting symlink julia-none." in capsys.readouterr().err


def test_hint_when_bin_folder_not_on_path(paths, bin_dir, monkeypatch, capsys):
    monkeypatch.setenv("PATH", "/usr/bin:/bin")
    create_symlink(SystemChannel(version="1.6.4"), "julia-release", paths)
    assert "Add this directory to the system PATH" in capsys.readouterr().err


def test_no_hint_when_bin_folder_on_path(paths, bin_dir, monkeypatch, capsys):
    monkeypatch.setenv("PATH", f"/usr/bin:{bin_dir}")
    create_symlink(SystemChannel(version="1.6.4"), "julia-release", paths)
    assert "Add this directory" not in capsys.readouterr().err


def test_relative_bin_dir_is_rejected(paths, monkeypatch):
    monkeypatch.setenv("JULIAUP_BIN_DIR", "relative/bin")
    with pytest.raises(RuntimeError, match="binary directory"):
        create_symlink(SystemChannel(version="1.6.4"), "julia-release", paths)
    with pytest.raises(RuntimeError, match="binary directory"):
        remove_symlink("julia-release")
    assert not Path("relative/bin/julia-release").exists()