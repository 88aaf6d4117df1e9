import json
import time
from datetime import datetime, timezone

import pytest
import responses

from juliaup.build_info import get_juliaup_target
from juliaup.config_file import (
    DirectDownloadChannel,
    JuliaupConfig,
    SystemChannel,
    load_config_db,
    load_mut_config_db,
    save_config_db,
)
from juliaup.global_paths import GlobalPaths
from juliaup.version_db_update import (
    download_direct_download_etags,
    run_with_slow_message,
    update_version_db,
)

SERVER = "https://server.example.com/"
NIGHTLY_URL = "https://nightly.example.com/julia-latest.tar.gz"


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


def _write_local_db(paths, version):
    paths.juliauphome.mkdir(parents=True, exist_ok=True)
    paths.versiondb.write_text(
        json.dumps({"AvailableVersions": {}, "AvailableChannels": {}, "Version": version})
    )


def _nightly_channel(etag):
    return DirectDownloadChannel(
        path="./julia-nightly",
        url=NIGHTLY_URL,
        local_etag=etag,
        server_etag=etag,
        version="1.12.0-DEV",
    )


def test_run_with_slow_message_fast(capsys):
    assert run_with_slow_message(lambda: 42, 5, "slow") == 42
    assert capsys.readouterr().err == ""


def test_run_with_slow_message_slow(capsys):
    def slow():
        time.sleep(0.3)
        return "done"

    assert run_with_slow_message(slow, 0.05, "taking a while") == "done"
    assert "taking a while" in capsys.readouterr().err


def test_run_with_slow_message_propagates_error():
    def fail():
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        run_with_slow_message(fail, 1, "slow")


def test_download_etags_only_direct_channels():
    config = JuliaupConfig(
        installed_channels={"nightly": _nightly_channel('"a"'), "release": SystemChannel("1.10.0")}
    )
    with responses.RequestsMock() as rsps:
        rsps.add(responses.HEAD, NIGHTLY_URL, headers={"etag": '"abc"'})
        assert download_direct_download_etags(config) == [("nightly", '"abc"')]


def test_download_etags_failure_status_gives_none():
    config = JuliaupConfig(installed_channels={"nightly": _nightly_channel('"a"')})
    with responses.RequestsMock() as rsps:
        rsps.add(responses.HEAD, NIGHTLY_URL, status=404)
        assert download_direct_download_etags(config) == [("nightly", None)]


def test_download_etags_missing_header_raises():
    config = JuliaupConfig(installed_channels={"nightly": _nightly_channel('"a"')})
    with responses.RequestsMock() as rsps:
        rsps.add(responses.HEAD, NIGHTLY_URL, status=200)
        with pytest.raises(RuntimeError, match="ETag header not found"):
            download_direct_download_etags(config)


def test_update_downloads_newer_db(paths):
    db = {"AvailableVersions": {}, "AvailableChannels": {}, "Version": "1.0.0"}
    db_url = f"{SERVER}juliaup/versiondb/versiondb-1.0.0-{get_juliaup_target()}.json"
    before = datetime.now(timezone.utc)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "juliaup/RELEASECHANNELDBVERSION", body="1.0.0\n")
        rsps.add(responses.GET, db_url, body=json.dumps(db))
        update_version_db(paths)
    after = datetime.now(timezone.utc)

    assert json.loads(paths.versiondb.read_text()) == db
    stamp = load_config_db(paths).last_version_db_update
    assert before.replace(microsecond=0) <= stamp <= after


def test_update_keeps_newer_local_db(paths):
    _write_local_db(paths, "2.0.0")
    original = paths.versiondb.read_text()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "juliaup/RELEASECHANNELDBVERSION", body="1.0.0")
        update_version_db(paths)
    assert paths.versiondb.read_text() == original


def test_update_deletes_obsolete_local_db(paths):
    _write_local_db(paths, "2.0.0")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "juliaup/RELEASECHANNELDBVERSION", body="0.0.0")
        update_version_db(paths)
    assert not paths.versiondb.exists()


def test_update_refreshes_server_etag(paths):
    with load_mut_config_db(paths) as config_file:
        config_file.data.installed_channels["nightly"] = _nightly_channel('"old"')
        save_config_db(config_file)

    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "juliaup/RELEASECHANNELDBVERSION", body="0.0.0")
        rsps.add(responses.HEAD, NIGHTLY_URL, headers={"etag": '"new"'})
        update_version_db(paths)

    channel = load_config_db(paths).installed_channels["nightly"]
    assert channel.server_etag == '"new"'
    assert channel.local_etag == '"old"'


def test_update_reports_unavailable_build(paths, capsys):
    with load_mut_config_db(paths) as config_file:
        config_file.data.installed_channels["nightly"] = _nightly_channel('"old"')
        save_config_db(config_file)

    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "juliaup/RELEASECHANNELDBVERSION", body="0.0.0")
        rsps.add(responses.HEAD, NIGHTLY_URL, status=404)
        update_version_db(paths)

    assert load_config_db(paths).installed_channels["nightly"] == _nightly_channel('"old"')
    assert "Failed to update nightly" in capsys.readouterr().err


def test_update_bad_dbversion_raises(paths):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SERVER + "juliaup/RELEASECHANNELDBVERSION", body="garbage")
        with pytest.raises(RuntimeError, match="Failed to download current version db version"):
            update_version_db(paths)