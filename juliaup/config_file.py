"""The juliaup configuration file: installed versions, channels, settings, overrides."""

from __future__ import annotations

import json
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Mapping, Union

import portalocker

from juliaup.global_paths import GlobalPaths

DEFAULT_VERSIONSDB_UPDATE_INTERVAL = 1440

_LOCKED_MESSAGE = (
    "Juliaup configuration is locked by another process, waiting for it to unlock."
)

_TIMESTAMP = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class ConfigVersion:
    """An installed Julia version and its folder, relative to the juliaup home."""

    path: str


@dataclass(frozen=True)
class SystemChannel:
    """A channel that points to a version from the version database."""

    version: str


@dataclass(frozen=True)
class DirectDownloadChannel:
    """A channel installed straight from a URL, such as a nightly or a pull request."""

    path: str
    url: str
    local_etag: str
    server_etag: str
    version: str


@dataclass(frozen=True)
class LinkedChannel:
    """A channel that runs a user-supplied command."""

    command: str
    args: tuple[str, ...] | None = None


Channel = Union[DirectDownloadChannel, SystemChannel, LinkedChannel]


@dataclass
class ConfigSettings:
    """User settings stored in the configuration file."""

    create_channel_symlinks: bool = False
    versionsdb_update_interval: int = DEFAULT_VERSIONSDB_UPDATE_INTERVAL


@dataclass
class ConfigOverride:
    """A directory whose Julia invocations use a specific channel."""

    path: str
    channel: str


def _expect(value: Any, kind: type | tuple[type, ...], name: str) -> Any:
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"Field '{name}' has the wrong type.")
    return value


def _require(data: Mapping[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    if key not in data:
        raise ValueError(f"Missing field '{key}'.")
    return _expect(data[key], kind, key)


def _parse_timestamp(text: str) -> datetime:
    match = _TIMESTAMP.match(text)
    if match is None:
        raise ValueError(f"'{text}' is not a valid timestamp.")
    day, clock, fraction, offset = match.groups()
    micro = (fraction or "")[:6].ljust(6, "0")
    offset = "+00:00" if offset in ("Z", "z") else offset
    parsed = datetime.fromisoformat(f"{day}T{clock}.{micro}{offset}")
    return parsed.astimezone(timezone.utc)


def _format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += f".{moment.microsecond:06d}"
    return text + "Z"


def channel_from_dict(data: Any) -> Channel:
    """Build a channel from its JSON form, trying each kind in turn."""
    if not isinstance(data, Mapping):
        raise ValueError("A channel entry must be an object.")
    direct_keys = ("Path", "Url", "LocalETag", "ServerETag", "Version")
    if all(isinstance(data.get(key), str) for key in direct_keys):
        return DirectDownloadChannel(
            path=data["Path"],
            url=data["Url"],
            local_etag=data["LocalETag"],
            server_etag=data["ServerETag"],
            version=data["Version"],
        )
    if isinstance(data.get("Version"), str):
        return SystemChannel(version=data["Version"])
    if isinstance(data.get("Command"), str):
        args = data.get("Args")
        if args is None:
            return LinkedChannel(command=data["Command"], args=None)
        if isinstance(args, list) and all(isinstance(arg, str) for arg in args):
            return LinkedChannel(command=data["Command"], args=tuple(args))
    raise ValueError("Channel entry does not match any known kind of channel.")


def channel_to_dict(channel: Channel) -> dict[str, Any]:
    """Return the JSON form of a channel."""
    match channel:
        case DirectDownloadChannel():
            return {
                "Path": channel.path,
                "Url": channel.url,
                "LocalETag": channel.local_etag,
                "ServerETag": channel.server_etag,
                "Version": channel.version,
            }
        case SystemChannel():
            return {"Version": channel.version}
        case LinkedChannel():
            return {
                "Command": channel.command,
                "Args": None if channel.args is None else list(channel.args),
            }
    raise TypeError(f"Not a channel: {channel!r}")


@dataclass
class JuliaupConfig:
    """Everything juliaup records about the installed Julia versions and channels."""

    default: str | None = None
    installed_versions: dict[str, ConfigVersion] = field(default_factory=dict)
    installed_channels: dict[str, Channel] = field(default_factory=dict)
    settings: ConfigSettings = field(default_factory=ConfigSettings)
    overrides: list[ConfigOverride] = field(default_factory=list)
    last_version_db_update: datetime | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "JuliaupConfig":
        """Build a configuration from its JSON form; raise ValueError if malformed."""
        if not isinstance(data, Mapping):
            raise ValueError("The configuration must be an object.")

        default = data.get("Default")
        if default is not None:
            _expect(default, str, "Default")

        versions = _require(data, "InstalledVersions", dict)
        channels = _require(data, "InstalledChannels", dict)

        settings_data = data.get("Settings", {})
        _expect(settings_data, dict, "Settings")
        settings = ConfigSettings(
            create_channel_symlinks=_expect(
                settings_data.get("CreateChannelSymlinks", False),
                bool,
                "CreateChannelSymlinks",
            ),
            versionsdb_update_interval=_expect(
                settings_data.get(
                    "VersionsDbUpdateInterval", DEFAULT_VERSIONSDB_UPDATE_INTERVAL
                ),
                int,
                "VersionsDbUpdateInterval",
            ),
        )

        overrides = [
            ConfigOverride(
                path=_require(_expect(entry, dict, "Overrides"), "Path", str),
                channel=_require(entry, "Channel", str),
            )
            for entry in _expect(data.get("Overrides", []), list, "Overrides")
        ]

        last_update = data.get("LastVersionDbUpdate")
        if last_update is not None:
            last_update = _parse_timestamp(
                _expect(last_update, str, "LastVersionDbUpdate")
            )

        return cls(
            default=default,
            installed_versions={
                name: ConfigVersion(path=_require(_expect(entry, dict, name), "Path", str))
                for name, entry in versions.items()
            },
            installed_channels={
                name: channel_from_dict(entry) for name, entry in channels.items()
            },
            settings=settings,
            overrides=overrides,
            last_version_db_update=last_update,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the configuration."""
        settings: dict[str, Any] = {}
        if self.settings.create_channel_symlinks:
            settings["CreateChannelSymlinks"] = True
        if self.settings.versionsdb_update_interval != DEFAULT_VERSIONSDB_UPDATE_INTERVAL:
            settings["VersionsDbUpdateInterval"] = self.settings.versionsdb_update_interval

        result: dict[str, Any] = {
            "Default": self.default,
            "InstalledVersions": {
                name: {"Path": entry.path}
                for name, entry in self.installed_versions.items()
            },
            "InstalledChannels": {
                name: channel_to_dict(entry)
                for name, entry in self.installed_channels.items()
            },
            "Settings": settings,
            "Overrides": [
                {"Path": entry.path, "Channel": entry.channel} for entry in self.overrides
            ],
        }
        if self.last_version_db_update is not None:
            result["LastVersionDbUpdate"] = _format_timestamp(self.last_version_db_update)
        return result


def _to_json(config: JuliaupConfig) -> str:
    return json.dumps(config.to_dict(), indent=2, ensure_ascii=False)


def _open_lock_file(paths: GlobalPaths) -> IO[str]:
    try:
        Path(paths.juliauphome).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError("Could not create juliaup home folder.") from exc
    try:
        return open(paths.lockfile, "a+", encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Could not create lockfile: {exc}.") from exc


def _acquire(lock_file: IO[str], flags: portalocker.LockFlags) -> None:
    try:
        portalocker.lock(lock_file, flags | portalocker.LockFlags.NON_BLOCKING)
    except portalocker.LockException:
        print(_LOCKED_MESSAGE, file=sys.stderr)
        portalocker.lock(lock_file, flags)


def _release(lock_file: IO[str]) -> None:
    try:
        portalocker.unlock(lock_file)
    finally:
        lock_file.close()


def get_read_lock(paths: GlobalPaths) -> IO[str]:
    """Take a shared lock on the configuration; closing the returned file releases it."""
    lock_file = _open_lock_file(paths)
    try:
        _acquire(lock_file, portalocker.LockFlags.SHARED)
    except BaseException:
        lock_file.close()
        raise
    return lock_file


def _read_config(path: Path) -> JuliaupConfig:
    try:
        with open(path, encoding="utf-8") as file:
            text = file.read()
    except FileNotFoundError:
        return JuliaupConfig()
    except OSError as exc:
        raise RuntimeError(f"Problem opening the file {path}: {exc}") from exc
    try:
        return JuliaupConfig.from_dict(json.loads(text))
    except ValueError as exc:
        raise RuntimeError(
            f"Failed to parse configuration file '{path}' for reading."
        ) from exc


def load_config_db(paths: GlobalPaths, existing_lock: IO[str] | None = None) -> JuliaupConfig:
    """Read the configuration, under a shared lock unless one is already held."""
    lock_file = get_read_lock(paths) if existing_lock is None else None
    try:
        return _read_config(Path(paths.juliaupconfig))
    finally:
        if lock_file is not None:
            _release(lock_file)


@dataclass
class MutableConfigFile:
    """The configuration held open for writing under an exclusive lock."""

    file: IO[str]
    lock: IO[str]
    data: JuliaupConfig

    def close(self) -> None:
        """Close the configuration file and release the lock."""
        try:
            if not self.file.closed:
                self.file.close()
        finally:
            if not self.lock.closed:
                _release(self.lock)

    def __enter__(self) -> "MutableConfigFile":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _write_config(file: IO[str], config: JuliaupConfig) -> None:
    file.seek(0)
    file.truncate()
    file.write(_to_json(config))
    file.flush()
    os.fsync(file.fileno())


def _read_or_initialise(file: IO[str]) -> JuliaupConfig:
    file.seek(0, os.SEEK_END)
    if file.tell() == 0:
        config = JuliaupConfig()
        try:
            _write_config(file, config)
        except OSError as exc:
            raise RuntimeError("Failed to write configuration file.") from exc
        file.seek(0)
        return config
    file.seek(0)
    try:
        return JuliaupConfig.from_dict(json.loads(file.read()))
    except ValueError as exc:
        raise RuntimeError("Failed to parse configuration file.") from exc


def load_mut_config_db(paths: GlobalPaths) -> MutableConfigFile:
    """Open the configuration for changes, creating it if missing, under an exclusive lock."""
    lock_file = _open_lock_file(paths)
    try:
        _acquire(lock_file, portalocker.LockFlags.EXCLUSIVE)
        try:
            descriptor = os.open(
                paths.juliaupconfig,
                os.O_RDWR | os.O_CREAT | getattr(os, "O_BINARY", 0),
                0o666,
            )
            file = os.fdopen(descriptor, "r+", encoding="utf-8", newline="")
        except OSError as exc:
            raise RuntimeError("Failed to open juliaup config file.") from exc
        try:
            data = _read_or_initialise(file)
        except BaseException:
            file.close()
            raise
    except BaseException:
        _release(lock_file)
        raise
    return MutableConfigFile(file=file, lock=lock_file, data=data)


def save_config_db(config_file: MutableConfigFile) -> None:
    """Replace the file's content with the current configuration data."""
    try:
        _write_config(config_file.file, config_file.data)
    except OSError as exc:
        raise RuntimeError("Failed to write configuration file.") from exc