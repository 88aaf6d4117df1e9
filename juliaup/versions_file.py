"""Loading the version database: the local copy if current, else the vendored one."""

from __future__ import annotations

import json
from pathlib import Path

import semver

from juliaup.build_info import BUNDLED_DB_VERSION, get_bundled_dbversion
from juliaup.global_paths import GlobalPaths
from juliaup.versionsdb import VersionDB

_VENDORED_DB_JSON = json.dumps(
    {"AvailableVersions": {}, "AvailableChannels": {}, "Version": BUNDLED_DB_VERSION}
)


def load_vendored_db() -> VersionDB:
    """Return the version database shipped with the package."""
    try:
        return VersionDB.from_dict(json.loads(_VENDORED_DB_JSON))
    except ValueError as exc:
        raise RuntimeError("Failed to parse vendored version db.") from exc


def _read_local_db(path: Path) -> VersionDB | None:
    try:
        with open(path, encoding="utf-8") as file:
            return VersionDB.from_dict(json.load(file))
    except (OSError, ValueError):
        return None


def load_versions_db(paths: GlobalPaths) -> VersionDB:
    """Return the downloaded database if it is at least as new as the vendored one."""
    local = _read_local_db(paths.versiondb)
    if local is not None:
        try:
            version = semver.Version.parse(local.version)
        except ValueError:
            version = None
        if version is not None and version >= get_bundled_dbversion():
            return local
    return load_vendored_db()