"""Managing the juliaup section that puts the bin folder on PATH in shell startup files."""

from __future__ import annotations

import os
import platform
from pathlib import Path

S_MARKER = b"# >>> juliaup initialize >>>"
E_MARKER = b"# <<< juliaup initialize <<<"
HEADER = b"\n\n# !! Contents within this block are managed by juliaup !!\n\n"

_STARTUP_FILES = (".bashrc", ".profile", ".bash_profile", ".bash_login", ".zshrc")


def _zsh_content(path_str: str) -> str:
    return f"path=('{path_str}' $path)\nexport PATH\n"


def _sh_content(path_str: str) -> str:
    # Prepend only when not already present; ${PATH:+:${PATH}} adds ":$PATH" only if set.
    return (
        'case ":$PATH:" in\n'
        f"    *:{path_str}:*)\n"
        "        ;;\n"
        "\n"
        "    *)\n"
        f"        export PATH={path_str}${{PATH:+:${{PATH}}}}\n"
        "        ;;\n"
        "esac\n"
    )


def match_markers(buffer: bytes) -> tuple[int, int] | None:
    """Return the byte range of the juliaup section, or None if there is none."""
    start = buffer.find(S_MARKER)
    end = buffer.find(E_MARKER)

    if start == -1 and end == -1:
        return None
    if start == -1 or end == -1:
        raise ValueError("Found an opening marker but no end marker of juliaup section.")
    if start != buffer.rfind(S_MARKER) or end != buffer.rfind(E_MARKER):
        raise ValueError("Found multiple startup script sections from juliaup.")
    return start, end + len(E_MARKER)


def get_shell_script_juliaup_content(bin_path: os.PathLike | str, path: os.PathLike | str) -> bytes:
    """Return the juliaup section for the given startup file, markers included."""
    try:
        bin_path_str = os.fspath(bin_path)
        bin_path_str.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError(
            "Could not create UTF-8 string from passed-in binary application path. "
            "Currently only valid UTF-8 paths are supported"
        ) from None

    if Path(path).name == ".zshrc":
        body = _zsh_content(bin_path_str)
    else:
        body = _sh_content(bin_path_str)

    return S_MARKER + HEADER + body.encode("utf-8") + b"\n" + E_MARKER


def _rewrite(file, content: bytes) -> None:
    file.seek(0)
    file.truncate()
    file.write(content)
    file.flush()
    os.fsync(file.fileno())


def _find_section(buffer: bytes, path: Path) -> tuple[int, int] | None:
    try:
        return match_markers(buffer)
    except ValueError as exc:
        raise RuntimeError(
            "Error occured while searching juliaup shell startup script section in "
            f"{path}"
        ) from exc


def add_path_to_specific_file(bin_path: os.PathLike | str, path: os.PathLike | str) -> None:
    """Insert or refresh the juliaup section in one startup file, creating it if needed."""
    path = Path(path)
    try:
        descriptor = os.open(path, os.O_RDWR | os.O_CREAT | getattr(os, "O_BINARY", 0), 0o666)
        file = os.fdopen(descriptor, "r+b")
    except OSError as exc:
        raise RuntimeError(f"Failed to open file {path}.") from exc

    with file:
        try:
            buffer = file.read()
        except OSError as exc:
            raise RuntimeError(f"Failed to read data from file {path}.") from exc

        section = _find_section(buffer, path)
        try:
            new_content = get_shell_script_juliaup_content(bin_path, path)
        except ValueError as exc:
            raise RuntimeError(
                "Error occured while generating juliaup shell startup script section "
                f"for {path}"
            ) from exc

        if section is None:
            buffer = buffer + b"\n" + new_content + b"\n"
        else:
            start, end = section
            buffer = buffer[:start] + new_content + buffer[end:]

        _rewrite(file, buffer)


def remove_path_from_specific_file(path: os.PathLike | str) -> None:
    """Remove the juliaup section from one existing startup file."""
    path = Path(path)
    try:
        file = open(path, "r+b")
    except OSError as exc:
        raise RuntimeError(f"Failed to open file: {path}") from exc

    with file:
        buffer = file.read()
        section = _find_section(buffer, path)
        if section is not None:
            start, end = section
            _rewrite(file, buffer[:start] + buffer[end:])


def find_shell_scripts_to_be_modified(add_case: bool) -> list[Path]:
    """Return the startup files in the home folder that juliaup should edit."""
    home = Path.home()
    on_macos = platform.system() == "Darwin"
    # On macOS zsh is the default shell, so .zshrc is always edited when adding.
    return [
        candidate
        for candidate in (home / name for name in _STARTUP_FILES)
        if candidate.exists() or (add_case and candidate.name == ".zshrc" and on_macos)
    ]


def add_binfolder_to_path_in_shell_scripts(bin_path: os.PathLike | str) -> None:
    """Add the juliaup section to every relevant startup file."""
    for path in find_shell_scripts_to_be_modified(True):
        add_path_to_specific_file(bin_path, path)


def remove_binfolder_from_path_in_shell_scripts() -> None:
    """Remove the juliaup section from every existing startup file."""
    for path in find_shell_scripts_to_be_modified(False):
        remove_path_from_specific_file(path)