"""The version database: which Julia versions and channels can be installed."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


def _field(data: Any, key: str, kind: type) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"Expected an object holding '{key}'.")
    try:
        value = data[key]
    except KeyError:
        raise ValueError(f"Missing field '{key}'.") from None
    if not isinstance(value, kind):
        raise ValueError(f"Field '{key}' has the wrong type.")
    return value


@dataclass
class VersionDBVersion:
    """A downloadable Julia version."""

    url_path: str


@dataclass
class VersionDBChannel:
    """A channel and the version it currently points to."""

    version: str


@dataclass
class VersionDB:
    """Available versions and channels, and the database's own version."""

    available_versions: dict[str, VersionDBVersion] = field(default_factory=dict)
    available_channels: dict[str, VersionDBChannel] = field(default_factory=dict)
    version: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "VersionDB":
        """Build a database from its JSON form; raise ValueError if malformed."""
        versions = _field(data, "AvailableVersions", dict)
        channels = _field(data, "AvailableChannels", dict)
        return cls(
            available_versions={
                name: VersionDBVersion(url_path=_field(entry, "UrlPath", str))
                for name, entry in versions.items()
            },
            available_channels={
                name: VersionDBChannel(version=_field(entry, "Version", str))
                for name, entry in channels.items()
            },
            version=_field(data, "Version", str),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the database."""
        return {
            "AvailableVersions": {
                name: {"UrlPath": entry.url_path}
                for name, entry in self.available_versions.items()
            },
            "AvailableChannels": {
                name: {"Version": entry.version}
                for name, entry in self.available_channels.items()
            },
            "Version": self.version,
        }