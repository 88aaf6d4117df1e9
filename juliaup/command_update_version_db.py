"""The command that refreshes the version database."""

from __future__ import annotations

from juliaup.global_paths import GlobalPaths
from juliaup.version_db_update import update_version_db


def run_command_update_version_db(paths: GlobalPaths) -> None:
    """Refresh the version database and direct-download channel ETags."""
    try:
        update_version_db(paths)
    except Exception as exc:
        raise RuntimeError("Failed to update version db.") from exc