"""Refreshing the version database and the ETags of direct-download channels."""

from __future__ import annotations

import dataclasses
import json
import os
import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, TypeVar
from urllib.parse import urljoin

import portalocker
import requests
import semver

from juliaup.build_info import get_bundled_dbversion, get_juliaup_target
from juliaup.config_file import (
    DirectDownloadChannel,
    JuliaupConfig,
    get_read_lock,
    load_config_db,
    load_mut_config_db,
    save_config_db,
)
from juliaup.download import download_juliaup_version, download_versiondb
from juliaup.global_paths import GlobalPaths
from juliaup.utils import get_juliaserver_base_url
from juliaup.versionsdb import VersionDB

R = TypeVar("R")

_SLOW_TIMEOUT_SECS = 3

_DBVERSION_PATHS = {
    "release": "juliaup/RELEASECHANNELDBVERSION",
    "releasepreview": "juliaup/RELEASEPREVIEWCHANNELDBVERSION",
    "dev": "juliaup/DEVCHANNELDBVERSION",
}


def run_with_slow_message(func: Callable[[], R], timeout_secs: float, message: str) -> R:
    """Run func; if it takes longer than timeout_secs, tell the user why, then keep waiting."""
    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(func)
        done, _ = wait([future], timeout=timeout_secs)
        if not done:
            print(message, file=sys.stderr)
        return future.result()


def _fetch_etag(url: str) -> str | None:
    try:
        response = requests.head(url)
    except requests.RequestException as exc:
        raise RuntimeError(f"Failed to send HEAD request to {url}") from exc
    if not 200 <= response.status_code < 300:
        return None
    etag = response.headers.get("etag")
    if etag is None:
        raise RuntimeError(f"ETag header not found in response from {url}")
    return etag


def download_direct_download_etags(
    config_data: JuliaupConfig,
) -> list[tuple[str, str | None]]:
    """Ask the server for the current ETag of every direct-download channel."""
    results: list[tuple[str, str | None]] = []
    for name, channel in config_data.installed_channels.items():
        if not isinstance(channel, DirectDownloadChannel):
            continue
        message = (
            f"Checking for new version on channel '{name}' is taking a while... "
            "This can be slow due to server caching"
        )
        url = channel.url
        etag = run_with_slow_message(lambda: _fetch_etag(url), _SLOW_TIMEOUT_SECS, message)
        results.append((name, etag))
    return results


def _local_dbversion(path: Path) -> semver.Version | None:
    try:
        with open(path, encoding="utf-8") as file:
            db = VersionDB.from_dict(json.load(file))
        return semver.Version.parse(db.version)
    except (OSError, ValueError):
        return None


def _release_read_lock(lock_file) -> None:
    try:
        portalocker.unlock(lock_file)
    except (OSError, portalocker.LockException) as exc:
        raise RuntimeError("Failed to unlock configuration file.") from exc
    finally:
        lock_file.close()


def _discard(path: Path | None) -> None:
    if path is not None:
        try:
            os.remove(path)
        except OSError:
            pass


def update_version_db(paths: GlobalPaths) -> None:
    """Fetch a newer version database if one exists and refresh direct-download ETags."""
    print("Checking for new Julia versions", file=sys.stderr)

    lock_file = get_read_lock(paths)
    try:
        try:
            old_config = load_config_db(paths, lock_file)
        except RuntimeError as exc:
            raise RuntimeError(
                "`run_command_update_version_db` command failed to load configuration db."
            ) from exc
        local_dbversion = _local_dbversion(Path(paths.versiondb))
    finally:
        _release_read_lock(lock_file)

    juliaup_channel = "release"
    try:
        server_base = get_juliaserver_base_url()
    except ValueError as exc:
        raise RuntimeError("Failed to get Juliaup server base URL.") from exc

    dbversion_path = _DBVERSION_PATHS.get(juliaup_channel)
    if dbversion_path is None:
        raise RuntimeError(
            f"Juliaup is configured to a channel named '{juliaup_channel}' that does not exist."
        )
    dbversion_url = urljoin(server_base, dbversion_path)

    try:
        online_dbversion = download_juliaup_version(dbversion_url)
    except RuntimeError as exc:
        raise RuntimeError("Failed to download current version db version.") from exc

    try:
        bundled_dbversion = get_bundled_dbversion()
    except RuntimeError as exc:
        raise RuntimeError("Failed to determine the bundled version db version.") from exc

    temp_download: Path | None = None
    delete_old_version_db = False

    if online_dbversion > bundled_dbversion:
        if local_dbversion is None or online_dbversion > local_dbversion:
            online_url = urljoin(
                server_base,
                f"juliaup/versiondb/versiondb-{online_dbversion}-{get_juliaup_target()}.json",
            )
            handle, name = tempfile.mkstemp(dir=Path(paths.versiondb).parent)
            os.close(handle)
            temp_download = Path(name)
            try:
                download_versiondb(online_url, temp_download)
            except RuntimeError as exc:
                _discard(temp_download)
                raise RuntimeError(
                    f"Failed to download new version db from {online_url}."
                ) from exc
    elif local_dbversion is not None:
        # The bundled database is current, so any cached copy is obsolete.
        delete_old_version_db = True

    try:
        etags = download_direct_download_etags(old_config)
        try:
            new_config_file = load_mut_config_db(paths)
        except RuntimeError as exc:
            raise RuntimeError(
                "`run_command_update_version_db` command failed to load configuration db."
            ) from exc
    except BaseException:
        _discard(temp_download)
        raise

    with new_config_file:
        # Optimistic locking: give up if someone changed the config in the meantime.
        if new_config_file.data != old_config:
            _discard(temp_download)
            return

        channels = new_config_file.data.installed_channels
        for name, etag in etags:
            channel = channels[name]
            if not isinstance(channel, DirectDownloadChannel):
                continue
            if etag is not None:
                channels[name] = dataclasses.replace(channel, server_etag=etag)
            else:
                print(
                    f"Failed to update {name}. This can happen if a build is no "
                    "longer available.",
                    file=sys.stderr,
                )

        new_config_file.data.last_version_db_update = datetime.now(timezone.utc)

        if temp_download is not None:
            os.replace(temp_download, paths.versiondb)
        elif delete_old_version_db:
            _discard(Path(paths.versiondb))

        try:
            save_config_db(new_config_file)
        except RuntimeError as exc:
            raise RuntimeError("Failed to save configuration file.") from exc