"""Build-time facts about this installation: own version, bundled data, target."""

from __future__ import annotations

import platform

import semver

PKG_VERSION = "1.17.20"

# No Julia is shipped alongside this installation; an empty string never
# matches a requested version.
BUNDLED_JULIA_VERSION = ""

# The vendored version database is empty, so any published database
# supersedes it.
BUNDLED_DB_VERSION = "0.0.0"

_ARCHES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "i386": "i686",
    "i686": "i686",
    "x86": "i686",
}

_OS_SUFFIXES = {
    "linux": "unknown-linux-gnu",
    "darwin": "apple-darwin",
    "windows": "pc-windows-msvc",
    "freebsd": "unknown-freebsd",
}


def _target_triple(system: str, machine: str) -> str:
    """Return the target triple for an operating system and machine name."""
    try:
        arch = _ARCHES[machine.lower()]
    except KeyError:
        raise ValueError(f"Unsupported architecture '{machine}'.") from None
    try:
        suffix = _OS_SUFFIXES[system.lower()]
    except KeyError:
        raise ValueError(f"Unsupported operating system '{system}'.") from None
    return f"{arch}-{suffix}"


def get_bundled_julia_version() -> str:
    """Return the Julia version bundled with this installation, or ''."""
    return BUNDLED_JULIA_VERSION


def get_bundled_dbversion() -> semver.Version:
    """Return the version of the vendored version database."""
    try:
        return semver.Version.parse(BUNDLED_DB_VERSION)
    except ValueError as exc:
        raise RuntimeError("Failed to parse our own db version.") from exc


def get_juliaup_target() -> str:
    """Return the target triple of the running system."""
    return _target_triple(platform.system(), platform.machine())


def get_own_version() -> semver.Version:
    """Return the version of juliaup itself."""
    try:
        return semver.Version.parse(PKG_VERSION)
    except ValueError as exc:
        raise RuntimeError("Failed to parse our own version.") from exc