"""The command that shows the installed channels, their versions and pending updates."""

from __future__ import annotations

import re
import sys
from typing import Iterable, Sequence

from juliaup.config_file import (
    Channel,
    DirectDownloadChannel,
    JuliaupConfig,
    LinkedChannel,
    SystemChannel,
    load_config_db,
)
from juliaup.global_paths import GlobalPaths
from juliaup.versions_file import load_versions_db
from juliaup.versionsdb import VersionDB

_TITLES = ("Default", "Channel", "Version", "Update")
_RIGHT_JUSTIFIED = (True, False, False, False)

_NATURAL_PART = re.compile(r"[0-9]+|[^0-9]")
_DIGIT_RANK = ord("0")


def _natural_key(text: str) -> list[tuple[int, int]]:
    """Sort key that compares runs of digits by their numeric value."""
    return [
        (_DIGIT_RANK, int(part)) if part[0] in "0123456789" else (ord(part), 0)
        for part in _NATURAL_PART.findall(text)
    ]


def _quote(text: str) -> str:
    return f'"{text}"' if " " in text else text


def _version_text(channel: Channel) -> str:
    match channel:
        case SystemChannel():
            return channel.version
        case DirectDownloadChannel():
            return f"Development version {channel.version}"
        case LinkedChannel():
            parts = [_quote(channel.command), *(_quote(arg) for arg in channel.args or ())]
            return f"Linked to `{' '.join(parts)}`"
    raise TypeError(f"Not a channel: {channel!r}")


def _update_text(name: str, channel: Channel, version_db: VersionDB) -> str:
    match channel:
        case SystemChannel():
            available = version_db.available_channels.get(name)
            if available is not None and available.version != channel.version:
                return f"Update to {available.version} available"
            return ""
        case DirectDownloadChannel():
            return "Update available" if channel.local_etag != channel.server_etag else ""
        case LinkedChannel():
            return ""
    raise TypeError(f"Not a channel: {channel!r}")


def _render_row(cells: Iterable[str], widths: Sequence[int], right: Sequence[bool]) -> str:
    return "".join(
        f" {cell.rjust(width) if is_right else cell.ljust(width)} "
        for cell, width, is_right in zip(cells, widths, right)
    )


def format_status_table(config: JuliaupConfig, version_db: VersionDB) -> str:
    """Return the status table for the installed channels, one row per channel."""
    rows = [
        (
            "*" if config.default is not None and name == config.default else "",
            name,
            _version_text(channel),
            _update_text(name, channel, version_db),
        )
        for name, channel in sorted(
            config.installed_channels.items(), key=lambda item: _natural_key(item[0])
        )
    ]

    widths = [max(len(cell) for cell in column) for column in zip(_TITLES, *rows)]
    lines = [
        _render_row(_TITLES, widths, (False,) * len(_TITLES)),
        "-" * sum(width + 2 for width in widths),
        *(_render_row(row, widths, _RIGHT_JUSTIFIED) for row in rows),
    ]
    return "".join(f"{line}\n" for line in lines)


def run_command_status(paths: GlobalPaths) -> None:
    """Print the status table of all installed channels."""
    try:
        config = load_config_db(paths, None)
    except Exception as exc:
        raise RuntimeError("`status` command failed to load configuration file.") from exc

    try:
        version_db = load_versions_db(paths)
    except Exception as exc:
        raise RuntimeError("`status` command failed to load versions db.") from exc

    sys.stdout.write(format_status_table(config, version_db))
    sys.stdout.flush()