"""Installing Julia versions and direct-download channels, and removing unused ones."""

from __future__ import annotations

import os
import platform
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from urllib.parse import urljoin

import semver

from juliaup.build_info import get_bundled_julia_version
from juliaup.channels import parse_nightly_channel_or_id
from juliaup.config_file import (
    ConfigVersion,
    DirectDownloadChannel,
    JuliaupConfig,
    LinkedChannel,
    SystemChannel,
)
from juliaup.download import download_extract_sans_parent
from juliaup.global_paths import GlobalPaths
from juliaup.symlinks import remove_symlink
from juliaup.utils import (
    get_julianightlies_base_url,
    get_juliaserver_base_url,
    is_valid_julia_path,
)
from juliaup.versionsdb import VersionDB

_EXE_SUFFIX = ".exe" if os.name == "nt" else ""

_NOTARIZATION_SCRIPT = (
    "foreach(p -> begin print(stderr, '.'); @eval(import $(Symbol(p))) end, "
    'filter!(x -> isfile(joinpath(Sys.STDLIB, x, "src", "$(x).jl")), '
    "readdir(Sys.STDLIB)))"
)

_NIGHTLY_FOLDERS = {
    "macos-x86_64": "macos/x86_64",
    "macos-aarch64": "macos/aarch64",
    "win64": "winnt/x64",
    "win32": "winnt/x86",
    "linux-x86_64": "linux/x86_64",
    "linux-i686": "linux/i686",
    "linux-aarch64": "linux/aarch64",
    "freebsd-x86_64": "freebsd/x86_64",
}

_PR_BUILDS = {
    "macos-x86_64": ("macos/x86_64", "macos-x86_64"),
    "macos-aarch64": ("macos/aarch64", "macos-aarch64"),
    "win64": ("windows/x86_64", "windows-x86_64"),
    "linux-x86_64": ("linux/x86_64", "linux-x86_64"),
    "linux-aarch64": ("linux/aarch64", "linux-aarch64"),
    "freebsd-x86_64": ("freebsd/x86_64", "freebsd-x86_64"),
}


def _running_program_dir() -> Path:
    program = sys.argv[0] if sys.argv and sys.argv[0] else sys.executable
    return Path(program).resolve().parent


def _check_notarization(paths: GlobalPaths, rel_path: str) -> None:
    config_dir = Path(paths.juliaupconfig).parent
    try:
        julia_path = (config_dir / rel_path / "bin" / f"julia{_EXE_SUFFIX}").resolve(
            strict=True
        )
    except OSError as exc:
        raise RuntimeError(
            "Failed to normalize path for Julia binary, starting from "
            f"`{paths.juliaupconfig}`."
        ) from exc

    print("Checking standard library notarization", end="", file=sys.stderr, flush=True)
    try:
        result = subprocess.run(
            [str(julia_path), "--startup-file=no", "-e", _NOTARIZATION_SCRIPT],
            env={**os.environ, "JULIA_LOAD_PATH": "@stdlib"},
        )
    except OSError as exc:
        raise RuntimeError(f"Failed to execute Julia binary at `{julia_path}`.") from exc

    if result.returncode == 0:
        print("done.", file=sys.stderr)
    else:
        print(f"failed with exit status: {result.returncode}.", file=sys.stderr)


def install_version(
    fullversion: str,
    config_data: JuliaupConfig,
    version_db: VersionDB,
    paths: GlobalPaths,
) -> None:
    """Install a Julia version from the version database unless it is installed."""
    if fullversion in config_data.installed_versions:
        return

    bundled_path = _running_program_dir() / "BundledJulia"
    child_target_foldername = f"julia-{fullversion}"
    target_path = Path(paths.juliauphome) / child_target_foldername
    target_path.parent.mkdir(parents=True, exist_ok=True)

    if fullversion == get_bundled_julia_version() and bundled_path.exists():
        shutil.copytree(bundled_path, target_path, dirs_exist_ok=True)
    else:
        try:
            server_base = get_juliaserver_base_url()
        except ValueError as exc:
            raise RuntimeError("Failed to get Juliaup server base URL.") from exc

        entry = version_db.available_versions.get(fullversion)
        if entry is None:
            raise RuntimeError(
                f"Failed to find download url in versions db for '{fullversion}'."
            )
        download_url = urljoin(server_base, entry.url_path)

        print(f"Installing Julia {fullversion}", file=sys.stderr)
        download_extract_sans_parent(download_url, target_path, 1)

    rel_path = os.path.join(".", child_target_foldername)
    config_data.installed_versions[fullversion] = ConfigVersion(path=rel_path)

    if platform.system() == "Darwin" and semver.Version.parse(
        fullversion
    ) > semver.Version.parse("1.11.0-rc1"):
        _check_notarization(paths, rel_path)


def _query_julia_version(julia_root: Path) -> str:
    julia_path = julia_root / "bin" / f"julia{_EXE_SUFFIX}"
    try:
        result = subprocess.run(
            [str(julia_path), "--startup-file=no", "-e", "print(VERSION)"],
            capture_output=True,
        )
    except OSError as exc:
        raise RuntimeError(f"Failed to execute Julia binary at `{julia_path}`.") from exc
    try:
        return result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise RuntimeError("Julia reported a version that is not valid UTF-8.") from exc


def install_from_url(
    url: str, path: os.PathLike | str, paths: GlobalPaths
) -> DirectDownloadChannel:
    """Download a Julia build into path, relative to the juliaup home, and describe it."""
    home = Path(paths.juliauphome)
    temp_dir = Path(tempfile.mkdtemp(prefix="julia-temp-", dir=home))

    try:
        server_etag = download_extract_sans_parent(url, temp_dir, 1)
    except Exception as exc:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise RuntimeError(f"Failed to download and extract pr or nightly: {exc}") from exc

    try:
        julia_version = _query_julia_version(temp_dir)
        target_path = home / path
        if target_path.exists():
            shutil.rmtree(target_path)
        os.rename(temp_dir, target_path)
    except BaseException:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise

    return DirectDownloadChannel(
        path=os.fspath(path),
        url=url,
        local_etag=server_etag,
        server_etag=server_etag,
        version=julia_version,
    )


def nightly_download_path(name: str) -> str:
    """Return the server path of a nightly or pull-request build such as 'latest-win64'."""
    build_id, separator, arch = name.partition("-")
    if not separator:
        raise ValueError("Failed to parse channel name.")

    # "x.y-latest-<platform>": the "latest" belongs to the id, not the platform.
    if arch.startswith("latest"):
        nightly, separator, arch = arch.partition("-")
        if not separator:
            raise ValueError("Failed to parse channel name.")
        build_id = f"{build_id}-{nightly}"

    nightly_version = parse_nightly_channel_or_id(build_id)
    if nightly_version is not None:
        folder = _NIGHTLY_FOLDERS.get(arch)
        if folder is None:
            raise ValueError("Unknown nightly.")
        version_folder = f"/{nightly_version}" if nightly_version else ""
        return f"bin/{folder}{version_folder}/julia-latest-{arch}.tar.gz"

    if build_id.startswith("pr"):
        build = _PR_BUILDS.get(arch)
        if build is None:
            raise ValueError("Unknown pr.")
        folder, suffix = build
        return f"bin/{folder}/julia-{build_id}-{suffix}.tar.gz"

    raise ValueError("Unknown non-db channel.")


def install_non_db_version(
    channel: str, name: str, paths: GlobalPaths
) -> DirectDownloadChannel:
    """Install a nightly or pull-request build for a channel from the nightly server."""
    base_url = get_julianightlies_base_url()
    download_url = urljoin(base_url, nightly_download_path(name))
    rel_path = os.path.join(".", f"julia-{channel}")

    print(f"Installing Julia {name}", file=sys.stderr)
    return install_from_url(download_url, rel_path, paths)


def garbage_collect_versions(
    prune_linked: bool, config_data: JuliaupConfig, paths: GlobalPaths
) -> None:
    """Delete versions no channel uses and, if asked, linked channels that cannot run."""
    used_versions = {
        channel.version
        for channel in config_data.installed_channels.values()
        if isinstance(channel, SystemChannel)
    }
    unused = [
        (version, detail)
        for version, detail in config_data.installed_versions.items()
        if version not in used_versions
    ]
    for version, detail in unused:
        path_to_delete = Path(paths.juliauphome) / detail.path
        try:
            shutil.rmtree(path_to_delete)
        except OSError:
            print(
                f"WARNING: Failed to delete {path_to_delete}. You can try to delete at "
                "a later point by running `juliaup gc`.",
                file=sys.stderr,
            )
        del config_data.installed_versions[version]

    if prune_linked:
        broken = [
            name
            for name, channel in config_data.installed_channels.items()
            if isinstance(channel, LinkedChannel)
            and not is_valid_julia_path(Path(channel.command))
        ]
        for name in broken:
            remove_symlink(f"julia-{name}")
            del config_data.installed_channels[name]