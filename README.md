# juliaup

Manage Julia installations from Python: install Julia versions and channels,
keep them up to date, and see what is installed.

juliaup keeps its state in a *depot*, by default `~/.julia/juliaup`. There it
stores `juliaup.json` (installed versions, channels, the default channel,
directory overrides and settings), a cached version database
(`versiondb-<target>.json`), and one directory per installed Julia.

## Channels

A channel is a name that points at a Julia build. There are three kinds, each a
dataclass in `juliaup.config_file`:

- `SystemChannel`: channels such as `release` or `1.10`, resolved through the
  version database to a concrete version.
- `DirectDownloadChannel`: channels such as `nightly`, `1.11-nightly` or
  `pr12345`, downloaded straight from the nightly build server and tracked by
  ETag.
- `LinkedChannel`: a command somewhere else on the system, optionally with
  extra arguments.

An architecture can be picked with a `~` suffix, for example `nightly~x64`.
`juliaup.channels` holds the helpers for these names (`channel_to_name`,
`is_pr_channel`, `is_valid_channel`, `get_channel_variations`, ...).

## Usage

```python
from juliaup.global_paths import get_paths
from juliaup.command_update_version_db import run_command_update_version_db
from juliaup.command_update import run_command_update
from juliaup.command_status import run_command_status

paths = get_paths()

# Refresh the version database and the ETags of direct-download channels.
run_command_update_version_db(paths)

# Update every installed channel, or a single one.
run_command_update(None, paths)
run_command_update("release", paths)

# Print a table of installed channels, their versions and pending updates.
run_command_status(paths)
```

To work with the data rather than print it:

```python
from juliaup.config_file import load_config_db
from juliaup.versions_file import load_versions_db
from juliaup.command_status import format_status_table

config = load_config_db(paths, None)      # a JuliaupConfig
version_db = load_versions_db(paths)      # a VersionDB
print(format_status_table(config, version_db), end="")
```

Changes to the configuration go through `load_mut_config_db`, which returns a
`MutableConfigFile` holding an exclusive lock on the depot. Use it as a context
manager; `save_config_db` writes the data back, and leaving the `with` block
closes the file and releases the lock. `load_config_db` takes a shared lock
only while it reads.

```python
from juliaup.config_file import load_mut_config_db, save_config_db

with load_mut_config_db(paths) as config_file:
    config_file.data.settings.create_channel_symlinks = True
    save_config_db(config_file)
```

Other building blocks:

- `juliaup.install`: `install_version`, `install_non_db_version`,
  `install_from_url`, `nightly_download_path` and `garbage_collect_versions`.
- `juliaup.symlinks`: `create_symlink` and `remove_symlink` for the
  `julia-<channel>` commands in the bin folder (`create_symlink` does nothing
  on Windows).
- `juliaup.shell_scripts`: adds or removes a marked section in `.bashrc`,
  `.profile`, `.bash_profile`, `.bash_login` and `.zshrc` that puts the bin
  folder on `PATH`.

## Environment variables

| Variable                 | Effect                                                          |
|--------------------------|-----------------------------------------------------------------|
| `JULIAUP_DEPOT_PATH`     | Absolute path of the depot; juliaup uses its `juliaup` child    |
| `JULIAUP_SERVER`         | Base URL for release downloads and the version database         |
| `JULIAUP_NIGHTLY_SERVER` | Base URL for nightly and pull-request builds                    |
| `JULIAUP_BIN_DIR`        | Directory for channel symlinks (first entry of a path list)     |

Channel symlinks are updated by `update_channel` only when the
`CreateChannelSymlinks` setting is on, and only on systems other than Windows.

## What this package does not do

- There is no command-line program; everything is called from Python.
- There are no functions for adding, removing or linking channels, choosing
  the default channel, or setting directory overrides, though the
  configuration file records defaults and overrides.
- It does not update itself and does not schedule background updates.
- No Julia is shipped with it, and its built-in version database is empty
  (version `0.0.0`): until `run_command_update_version_db` has downloaded a
  database, `load_versions_db` offers no versions or channels.
- The version database is always fetched for the `release` channel of the
  server.

## Running the tests

Install the `test` extra and run pytest from the project root.