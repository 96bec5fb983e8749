"""Git integration utilities.

Thin wrappers around the ``git`` executable: repository discovery and
attribute lookup for the file a filter is invoked on.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from prefab_filter.errors import ConfigError


def _run_git(args: list[str], cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
    )


def is_git_repository(path: Path | None = None) -> bool:
    """Check if ``path`` (default: cwd) is inside a git work tree."""
    try:
        result = _run_git(["rev-parse", "--is-inside-work-tree"], cwd=path)
    except OSError:
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


def parse_check_attr(output: str) -> dict[str, dict[str, str]]:
    """Parse ``git check-attr -z`` output into ``{path: {attribute: value}}``."""
    fields = output.split("\0")
    if fields and fields[-1] == "":
        fields.pop()
    if len(fields) % 3:
        raise ConfigError(f"unexpected git check-attr output: {output!r}")

    attributes: dict[str, dict[str, str]] = {}
    for i in range(0, len(fields), 3):
        path, name, value = fields[i : i + 3]
        attributes.setdefault(path, {})[name] = value
    return attributes


def check_attr(path: Path | str, names: list[str], cwd: Path | None = None) -> dict[str, str]:
    """Look up git attributes ``names`` for ``path``.

    Values are git's own: ``set``, ``unset``, ``unspecified`` or the
    attribute's string value.

    Raises:
        ConfigError: If git cannot be run or rejects the query.
    """
    try:
        result = _run_git(["check-attr", "-z", *names, "--", str(path)], cwd=cwd)
    except OSError as e:
        raise ConfigError(f"cannot run git: {e}") from e
    if result.returncode != 0:
        raise ConfigError(f"git check-attr failed: {result.stderr.strip()}")

    attributes = parse_check_attr(result.stdout)
    found: dict[str, str] = {}
    for values in attributes.values():
        found.update(values)
    return {name: found.get(name, "unspecified") for name in names}
