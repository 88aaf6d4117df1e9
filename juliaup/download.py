"""Downloading Julia archives, the version database and its version number."""

from __future__ import annotations

import logging
import os
import shutil
import sys
import tarfile
from pathlib import Path
from typing import IO

import requests
import semver

_log = logging.getLogger(__name__)

_BAR_WIDTH = 40


class _ProgressReader:
    """A readable stream that reports download progress on a terminal."""

    def __init__(self, raw: IO[bytes], total: int | None) -> None:
        self._raw = raw
        self._total = total
        self._done = 0
        self._enabled = sys.stderr.isatty()

    def read(self, size: int = -1) -> bytes:
        data = self._raw.read(size)
        self._done += len(data)
        self._render()
        return data

    def _render(self) -> None:
        if not self._enabled:
            return
        if self._total:
            filled = min(_BAR_WIDTH, self._done * _BAR_WIDTH // self._total)
            bar = "=" * filled + (">" if filled < _BAR_WIDTH else "")
            line = f"  Downloading: [{bar.ljust(_BAR_WIDTH)}] {self._done}/{self._total}"
        else:
            line = f"  Downloading: {self._done} bytes"
        sys.stderr.write("\r" + line)
        sys.stderr.flush()

    def finish(self) -> None:
        if self._enabled:
            sys.stderr.write("\n")
            sys.stderr.flush()


def _components(name: str) -> list[str]:
    """Split an archive path the way path components are read: '.' kept only in front."""
    components = []
    absolute = name.startswith("/")
    if absolute:
        components.append("/")
    for position, segment in enumerate(name.lstrip("/").split("/")):
        if not segment:
            continue
        if segment == ".":
            if position == 0 and not absolute:
                components.append(".")
            continue
        components.append(segment)
    return components


def _stripped_parts(name: str, levels_to_skip: int) -> list[str]:
    # Only plain names survive, which keeps entries from escaping the target.
    return [
        part
        for part in _components(name)[levels_to_skip:]
        if part not in ("/", ".", "..")
    ]


def _clear(target: Path) -> None:
    if target.is_symlink() or (target.exists() and not target.is_dir()):
        target.unlink()


def unpack_sans_parent(src: IO[bytes], dst: os.PathLike | str, levels_to_skip: int) -> None:
    """Extract a gzipped tar stream into dst, dropping the leading path levels."""
    dst = Path(dst)
    dst.mkdir(parents=True, exist_ok=True)
    with tarfile.open(fileobj=src, mode="r|gz") as archive:
        for member in archive:
            target = dst.joinpath(*_stripped_parts(member.name, levels_to_skip))
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
            elif member.issym():
                target.parent.mkdir(parents=True, exist_ok=True)
                _clear(target)
                os.symlink(member.linkname, target)
            elif member.islnk():
                source = dst.joinpath(*_stripped_parts(member.linkname, levels_to_skip))
                target.parent.mkdir(parents=True, exist_ok=True)
                _clear(target)
                try:
                    os.link(source, target)
                except OSError:
                    shutil.copy2(source, target)
            elif member.isfile():
                target.parent.mkdir(parents=True, exist_ok=True)
                _clear(target)
                content = archive.extractfile(member)
                with content, open(target, "wb") as out:
                    shutil.copyfileobj(content, out)
                os.chmod(target, member.mode & 0o777)


def download_extract_sans_parent(
    url: str, target_path: os.PathLike | str, levels_to_skip: int
) -> str:
    """Download a .tar.gz archive, extract it and return the server's ETag."""
    _log.debug("Downloading from url `%s`.", url)
    try:
        response = requests.get(url, stream=True)
    except requests.RequestException as exc:
        raise RuntimeError(f"Failed to download from url `{url}`.") from exc

    with response:
        etag = response.headers.get("etag")
        if etag is None:
            raise RuntimeError(
                f"Failed to get etag from `{url}`.\n"
                "This is likely due to requesting a pull request that does not have "
                "a cached build available. You may have to build locally."
            )

        length = response.headers.get("content-length")
        total = int(length) if length and length.isdigit() else None
        response.raw.decode_content = True
        reader = _ProgressReader(response.raw, total)
        try:
            unpack_sans_parent(reader, target_path, levels_to_skip)
        except (tarfile.TarError, OSError, EOFError, requests.RequestException) as exc:
            raise RuntimeError(
                f"Failed to extract downloaded file from url `{url}`."
            ) from exc
        finally:
            reader.finish()

    return etag


def download_juliaup_version(url: str) -> semver.Version:
    """Download a text file holding a version number and parse it."""
    try:
        response = requests.get(url)
        text = response.text
    except requests.RequestException as exc:
        raise RuntimeError(f"Failed to download from url `{url}`.") from exc

    trimmed = text.strip()
    try:
        return semver.Version.parse(trimmed)
    except ValueError as exc:
        raise RuntimeError(
            f"`download_juliaup_version` failed to parse `{trimmed}` as a valid semversion."
        ) from exc


def download_versiondb(url: str, path: os.PathLike | str) -> None:
    """Download the version database and write it to path."""
    try:
        content = requests.get(url).content
    except requests.RequestException as exc:
        raise RuntimeError(f"Failed to download from url `{url}`.") from exc

    try:
        file = open(path, "wb")
    except OSError as exc:
        raise RuntimeError(
            f"Failed to open or create version db file at {path}"
        ) from exc
    with file:
        try:
            file.write(content)
        except OSError as exc:
            raise RuntimeError("Failed to write content into version db file.") from exc