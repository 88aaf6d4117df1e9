import json

import pytest
import responses

from juliaup.command_update_version_db import run_command_update_version_db
from juliaup.global_paths import GlobalPaths

SERVER = "https://server.example.com/"


@pytest.fixture
def paths(tmp_path, monkeypatch):
    monkeypatch.setenv("JULIAUP_SERVER", "https://server.example.com")
    home = tmp_path / "juliaup"
    return GlobalPaths(
        juliauphome=home,
        juliaupconfig=home / "juliaup.json",
        lockfile=home / ".juliaup-lock",
        versiondb=home / "versiondb-test.json",
    )


def test_records_update_time(paths):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "juliaup/RELEASECHANNELDBVERSION", body="0.0.0")
        run_command_update_version_db(paths)
    data = json.loads(paths.juliaupconfig.read_text())
    assert "LastVersionDbUpdate" in data
    assert data["InstalledChannels"] == {}


def test_failure_is_wrapped(paths):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "juliaup/RELEASECHANNELDBVERSION", body="garbage")
        with pytest.raises(RuntimeError, match="Failed to update version db.") as info:
            run_command_update_version_db(paths)
    assert isinstance(info.value.__cause__, RuntimeError)