"""Helpers: server URLs, the binary folder, architecture and version strings."""

from __future__ import annotations

import os
import platform
import subprocess
import sys
from pathlib import Path
from urllib.parse import urlsplit

import semver

_DEFAULT_SERVER = "https://julialang-s3.julialang.org/"
_DEFAULT_NIGHTLY_SERVER = "https://julialangnightlies-s3.julialang.org/"


def _base_url(variable: str, default: str) -> str:
    value = os.environ.get(variable)
    base_url = default if value is None else (value if value.endswith("/") else value + "/")
    try:
        parts = urlsplit(base_url)
    except ValueError:
        parts = None
    if parts is None or not parts.scheme:
        raise ValueError(
            f"Failed to parse the value of {variable} '{base_url}' as a uri."
        )
    return base_url


def get_juliaserver_base_url() -> str:
    """Return the base URL of the Julia download server, ending in '/'."""
    return _base_url("JULIAUP_SERVER", _DEFAULT_SERVER)


def get_julianightlies_base_url() -> str:
    """Return the base URL of the nightly build server, ending in '/'."""
    return _base_url("JULIAUP_NIGHTLY_SERVER", _DEFAULT_NIGHTLY_SERVER)


def _running_program_dir() -> Path:
    program = sys.argv[0] if sys.argv and sys.argv[0] else sys.executable
    return Path(program).resolve().parent


def get_bin_dir() -> Path:
    """Return the folder where channel symlinks and shims are placed."""
    value = os.environ.get("JULIAUP_BIN_DIR")
    if value is not None:
        path = Path(value.split(os.pathsep)[0])
        if not path.is_absolute():
            raise ValueError(
                "The `JULIAUP_BIN_DIR` environment variable contains a value that "
                f"resolves to an an invalid path `{path}`."
            )
        return path

    path = _running_program_dir()
    try:
        home = Path.home()
    except RuntimeError:
        return path
    if not path.is_relative_to(home):
        path = home / ".local" / "bin"
        if not path.is_absolute():
            raise ValueError(
                f"The system returned an invalid home directory path `{path}`."
            )
    return path


def is_valid_julia_path(julia_path: os.PathLike | str) -> bool:
    """Return whether the given program can be started."""
    try:
        process = subprocess.Popen(
            [os.fspath(julia_path), "-v"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
        )
    except (OSError, ValueError):
        return False
    process.wait()
    return True


_ARCH_NAMES = {
    "x86": "x86",
    "i386": "x86",
    "i686": "x86",
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


def get_arch() -> str:
    """Return the architecture name used in channel names: x86, x64 or aarch64."""
    machine = platform.machine()
    try:
        return _ARCH_NAMES[machine.lower()]
    except KeyError:
        raise ValueError(f"Running on an unknown arch: {machine}.") from None


def parse_versionstring(value: str) -> tuple[str, semver.Version]:
    """Split 'x.y.z+n.platform.os.abi' into its platform and plain version."""
    try:
        version = semver.Version.parse(value)
    except ValueError as exc:
        raise ValueError(f"`{value}` is not a valid version.") from exc

    build_parts = (version.build or "").split(".")
    if len(build_parts) != 4:
        raise ValueError(
            f"`{value}` is an invalid version specifier: "
            "the build part must have four parts."
        )
    return build_parts[1], version.replace(build=None)