"""Locations of juliaup's home folder and the files kept in it."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from juliaup.build_info import get_juliaup_target


@dataclass(frozen=True)
class GlobalPaths:
    """Paths of the juliaup home folder, its config, lock file and version db."""

    juliauphome: Path
    juliaupconfig: Path
    lockfile: Path
    versiondb: Path


def _default_juliaup_home_path() -> Path:
    """Return ~/.julia/juliaup."""
    try:
        home = Path.home()
    except RuntimeError as exc:
        raise RuntimeError(
            "Could not determine the path of the user home directory."
        ) from exc
    path = home / ".julia" / "juliaup"
    if not path.is_absolute():
        raise RuntimeError(
            f"The system returned an invalid home directory path `{path}`."
        )
    return path


def _juliaup_home_path() -> Path:
    value = os.environ.get("JULIAUP_DEPOT_PATH")
    if value is None:
        return _default_juliaup_home_path()
    value = value.strip()
    if not value:
        return _default_juliaup_home_path()
    path = Path(value)
    if not path.is_absolute():
        raise ValueError(
            f"The current value of '{value}' for the environment variable "
            "JULIAUP_DEPOT_PATH is not an absolute path."
        )
    return path / "juliaup"


def get_paths() -> GlobalPaths:
    """Work out all global paths from the environment."""
    home = _juliaup_home_path()
    return GlobalPaths(
        juliauphome=home,
        juliaupconfig=home / "juliaup.json",
        lockfile=home / ".juliaup-lock",
        versiondb=home / f"versiondb-{get_juliaup_target()}.json",
    )