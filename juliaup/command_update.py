"""The command that brings installed channels up to date."""

from __future__ import annotations

import os
import sys

from juliaup.config_file import (
    DirectDownloadChannel,
    JuliaupConfig,
    LinkedChannel,
    SystemChannel,
    load_mut_config_db,
    save_config_db,
)
from juliaup.global_paths import GlobalPaths
from juliaup.install import garbage_collect_versions, install_from_url, install_version
from juliaup.symlinks import create_symlink
from juliaup.version_db_update import update_version_db
from juliaup.versions_file import load_versions_db
from juliaup.versionsdb import VersionDB


def _wants_symlinks(config_db: JuliaupConfig) -> bool:
    return os.name != "nt" and config_db.settings.create_channel_symlinks


def update_channel(
    config_db: JuliaupConfig,
    channel: str,
    version_db: VersionDB,
    ignore_non_updatable_channel: bool,
    paths: GlobalPaths,
) -> None:
    """Update one installed channel to what the version database or server offers."""
    current = config_db.installed_channels.get(channel)
    if current is None:
        raise RuntimeError(
            "Trying to get the installed version for a channel that does not exist "
            "in the config database."
        )

    match current:
        case SystemChannel():
            available = version_db.available_channels.get(channel)
            if available is None:
                if ignore_non_updatable_channel:
                    print(
                        f"Skipping update for '{channel}' channel, it no longer exists "
                        "in the version database.",
                        file=sys.stderr,
                    )
                    return
                raise RuntimeError(
                    f"Failed to update '{channel}' because it no longer exists in the "
                    "version database."
                )
            if available.version == current.version:
                return

            print(f"Updating channel {channel}", file=sys.stderr)
            try:
                install_version(available.version, config_db, version_db, paths)
            except Exception as exc:
                raise RuntimeError(
                    f"Failed to install '{available.version}' while updating channel "
                    f"'{channel}'."
                ) from exc

            updated = SystemChannel(version=available.version)
            config_db.installed_channels[channel] = updated
            if _wants_symlinks(config_db):
                create_symlink(updated, f"julia-{channel}", paths)

        case LinkedChannel():
            if not ignore_non_updatable_channel:
                raise RuntimeError(
                    f"Failed to update '{channel}' because it is a linked channel."
                )

        case DirectDownloadChannel():
            if current.local_etag == current.server_etag:
                return
            if not current.version:
                print(
                    f"Channel {channel} version is empty, you may need to manually "
                    "codesign this channel if you trust the contents of this pull request.",
                    file=sys.stderr,
                )
            print(f"Updating channel {channel}", file=sys.stderr)

            config_db.installed_channels[channel] = install_from_url(
                current.url, current.path, paths
            )
            if _wants_symlinks(config_db):
                create_symlink(current, channel, paths)

        case _:
            raise TypeError(f"Not a channel: {current!r}")


def run_command_update(channel: str | None, paths: GlobalPaths) -> None:
    """Update one channel, or every installed channel when channel is None."""
    try:
        update_version_db(paths)
    except Exception as exc:
        raise RuntimeError("Failed to update versions db.") from exc

    try:
        version_db = load_versions_db(paths)
    except Exception as exc:
        raise RuntimeError("`update` command failed to load versions db.") from exc

    try:
        config_file = load_mut_config_db(paths)
    except Exception as exc:
        raise RuntimeError("`update` command failed to load configuration data.") from exc

    with config_file:
        data = config_file.data
        if channel is None:
            for name in list(data.installed_channels):
                update_channel(data, name, version_db, True, paths)
        else:
            if channel not in data.installed_channels:
                raise RuntimeError(
                    f"'{channel}' cannot be updated because it is currently not installed."
                )
            update_channel(data, channel, version_db, False, paths)

        garbage_collect_versions(False, data, paths)

        try:
            save_config_db(config_file)
        except Exception as exc:
            raise RuntimeError(
                "`update` command failed to save configuration db."
            ) from exc