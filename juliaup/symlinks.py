"""Channel commands in the bin folder: symlinks to Julia binaries and shell shims."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from juliaup.config_file import Channel, DirectDownloadChannel, LinkedChannel, SystemChannel
from juliaup.global_paths import GlobalPaths
from juliaup.utils import get_bin_dir


def _bin_dir(action: str) -> Path:
    try:
        return get_bin_dir()
    except ValueError as exc:
        raise RuntimeError(
            f"Failed to retrieve binary directory while trying to {action}."
        ) from exc


def _remove_existing(symlink_path: Path) -> Path | None:
    """Delete whatever sits at symlink_path and return what it pointed to, if anything."""
    symlink_path.parent.mkdir(parents=True, exist_ok=True)
    if symlink_path.is_symlink():
        previous = Path(os.readlink(symlink_path))
        symlink_path.unlink()
        return previous
    if symlink_path.exists():
        symlink_path.unlink()
        return symlink_path
    return None


def remove_symlink(symlink_name: str) -> None:
    """Delete the named channel command from the bin folder, if present."""
    symlink_path = _bin_dir("remove a symlink") / symlink_name
    print(f"Deleting symlink {symlink_name}.", file=sys.stderr)
    _remove_existing(symlink_path)


def _link_binary(
    target_root: Path,
    symlink_path: Path,
    symlink_name: str,
    version: str,
    previous: Path | None,
) -> None:
    if previous is not None:
        print(
            f"Updating symlink {symlink_name} ( {previous} -> {version} )",
            file=sys.stderr,
        )
    else:
        print(
            f"Creating symlink {symlink_name} for Julia {version}.",
            file=sys.stderr,
        )
    try:
        os.symlink(target_root / "bin" / "julia", symlink_path)
    except OSError as exc:
        raise RuntimeError(f"failed to create symlink `{symlink_path}`.") from exc


def _write_shim(
    channel: LinkedChannel,
    symlink_path: Path,
    symlink_name: str,
    previous: Path | None,
) -> None:
    if channel.args is None:
        command = channel.command
    else:
        command = f"{channel.command} {' '.join(channel.args)}"

    if previous is not None:
        print(
            f"Updating shim {symlink_name} ( {previous} -> {command} )",
            file=sys.stderr,
        )
    else:
        print(f"Creating shim {symlink_name} for {command}.", file=sys.stderr)

    try:
        symlink_path.write_text(f'#!/bin/sh\n{command} "$@"\n', encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"failed to create shim `{symlink_path}`.") from exc
    try:
        os.chmod(symlink_path, 0o755)
    except OSError as exc:
        raise RuntimeError(
            f"failed to change permissions for shim `{symlink_path}`."
        ) from exc


def create_symlink(channel: Channel, symlink_name: str, paths: GlobalPaths) -> None:
    """Create or replace the bin-folder command that starts the given channel."""
    if os.name == "nt":
        return

    symlink_folder = _bin_dir("create a symlink")
    symlink_path = symlink_folder / symlink_name
    previous = _remove_existing(symlink_path)
    home = Path(paths.juliauphome)

    match channel:
        case SystemChannel():
            _link_binary(
                home / f"julia-{channel.version}",
                symlink_path,
                symlink_name,
                channel.version,
                previous,
            )
        case DirectDownloadChannel():
            _link_binary(
                home / channel.path, symlink_path, symlink_name, channel.version, previous
            )
        case LinkedChannel():
            _write_shim(channel, symlink_path, symlink_name, previous)
        case _:
            raise TypeError(f"Not a channel: {channel!r}")

    if previous is None:
        search_path = os.environ.get("PATH")
        if search_path is not None and not any(
            Path(entry) == symlink_folder for entry in search_path.split(":")
        ):
            print(
                f"Symlink {symlink_name} added in {symlink_folder}. Add this directory "
                "to the system PATH to make the command available in your shell.",
                file=sys.stderr,
            )