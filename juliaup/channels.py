"""Channel names: nightly and pull-request channels, architectures and build names."""

from __future__ import annotations

import platform
import re

from juliaup.utils import get_arch
from juliaup.versionsdb import VersionDB

_PR_CHANNEL = re.compile(r"^(pr\d+)(~|\Z)")
_NIGHTLY_CHANNEL = re.compile(r"^((?:nightly|latest)|latest|(\d+\.\d+)-(?:nightly|latest))")

_OS_ARCH_SUFFIXES = {
    "Darwin": ("macOS", {"x64": "macos-x86_64", "aarch64": "macos-aarch64"}),
    "Windows": ("Windows", {"x64": "win64", "x86": "win32"}),
    "Linux": (
        "Linux",
        {"x64": "linux-x86_64", "x86": "linux-i686", "aarch64": "linux-aarch64"},
    ),
    "FreeBSD": ("FreeBSD", {"x64": "freebsd-x86_64"}),
}


def _machine_arch() -> str | None:
    try:
        return get_arch()
    except ValueError:
        return None


def default_arch() -> str:
    """Return the architecture used for a nightly or PR channel without a suffix."""
    arch = _machine_arch()
    if arch is None:
        raise ValueError("Unsupported architecture for nightly channel.")
    return arch


def compatible_archs() -> list[str]:
    """Return the architectures whose builds run on this system."""
    arch = _machine_arch()
    system = platform.system()
    if system == "Darwin":
        if arch == "x64":
            return ["x64"]
        if arch == "aarch64":
            # Rosetta 2 can run x86_64 binaries.
            return ["aarch64", "x64"]
        raise ValueError("Unsupported architecture for nightly channel on macOS.")
    if arch == "x86":
        return ["x86"]
    if arch == "x64":
        # No x86 builds are produced for FreeBSD.
        return ["x64"] if system == "FreeBSD" else ["x86", "x64"]
    if arch == "aarch64":
        return ["aarch64"]
    raise ValueError("Unsupported architecture for nightly channel.")


def get_channel_variations(channel: str) -> list[str]:
    """Return the channel name and its variants for every compatible architecture."""
    return [channel, *(f"{channel}~{arch}" for arch in compatible_archs())]


def is_valid_channel(versions_db: VersionDB, channel: str) -> bool:
    """Return whether a channel is in the version database or is a nightly channel."""
    if channel in versions_db.available_channels:
        return True
    return channel in get_channel_variations("nightly")


def is_pr_channel(channel: str) -> bool:
    """Return whether a channel names a pull request build, such as 'pr123'."""
    return _PR_CHANNEL.match(channel) is not None


def parse_nightly_channel_or_id(channel: str) -> str | None:
    """Return the 'x.y' of a nightly channel, '' for the plain nightly, else None."""
    match = _NIGHTLY_CHANNEL.match(channel)
    if match is None:
        return None
    return match.group(2) or ""


def channel_to_name(channel: str) -> str:
    """Return the build name of a channel, such as 'latest-linux-x86_64'."""
    base, _, arch = channel.partition("~")
    has_arch = "~" in channel

    version_prefix = parse_nightly_channel_or_id(base)
    if version_prefix is None:
        version = base
    elif version_prefix == "":
        version = "latest"
    else:
        version = f"{version_prefix}-latest"

    if not has_arch:
        arch = default_arch()

    system = platform.system()
    try:
        os_name, suffixes = _OS_ARCH_SUFFIXES[system]
    except KeyError:
        raise ValueError(
            f"Unsupported operating system '{system}' for nightly channel."
        ) from None
    try:
        suffix = suffixes[arch]
    except KeyError:
        raise ValueError(
            f"Unsupported architecture for nightly channel on {os_name}."
        ) from None
    return f"{version}-{suffix}"