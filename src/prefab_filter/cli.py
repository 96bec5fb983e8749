"""Command-line interface for prefab-filter.

Provides the git clean/smudge filter commands plus helpers for normalizing
files by hand and inspecting the rule table.
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from prefab_filter import __version__
from prefab_filter import normalizer as filters
from prefab_filter.config import FilterConfig
from prefab_filter.errors import (
    CanonicalizationError,
    FilterError,
    NonNumericAnchorError,
    ParseError,
)
from prefab_filter.logging_ import setup_logging
from prefab_filter.normalizer import UnityPrefabNormalizer
from prefab_filter.rules import MAX_VERSION, ruleset_for

logger = logging.getLogger("prefab_filter.cli")

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _fail(message: str) -> NoReturn:
    logger.debug("Exiting with error: %s", message, exc_info=True)
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _read_stdin() -> bytes:
    return sys.stdin.buffer.read()


def _write_stdout(data: bytes) -> None:
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()


def _clean(data: bytes, config: FilterConfig, name: str) -> bytes:
    try:
        return filters.clean(data, config)
    except NonNumericAnchorError as e:
        if not config.fail_open:
            raise
        logger.warning("%s: %s; storing it unsorted", name, e)
        return _clean(data, dataclasses.replace(config, sort=False), name)
    except (ParseError, CanonicalizationError) as e:
        if not config.fail_open:
            raise
        logger.warning("%s: %s; storing it unchanged", name, e)
        return data


@click.group()
@click.version_option(version=__version__, prog_name="prefab-filter")
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level on stderr (default: $PREFAB_FILTER_LOG_LEVEL or WARNING)",
)
def main(log_level: str | None) -> None:
    """Git content filter for Unity YAML scenes, prefabs and assets.

    Strips editor and SDK noise from serialized files before git stores
    them, so diffs only show real changes.
    """
    setup_logging(log_level)


@main.command()
@click.option(
    "--file",
    "file_path",
    type=click.Path(path_type=Path),
    help="Path of the file being filtered (pass %f from the filter driver)",
)
@click.option(
    "--filter-version",
    type=int,
    default=None,
    help="Rule set version (default: filter-version attribute, then $PREFAB_FILTER_VERSION)",
)
@click.option(
    "--sort/--no-sort",
    default=None,
    help="Order objects by fileID (default: unity-sort attribute)",
)
@click.option(
    "--fail-open",
    is_flag=True,
    help="Store input unchanged instead of failing when it cannot be cleaned",
)
def clean(
    file_path: Path | None,
    filter_version: int | None,
    sort: bool | None,
    fail_open: bool,
) -> None:
    """Canonicalize a Unity YAML stream from stdin to stdout.

    Setup in .gitconfig:

        [filter "prefab"]
            clean = prefab-filter clean --file %f
            smudge = prefab-filter smudge --file %f
            required = true

    Setup in .gitattributes:

        *.prefab filter=prefab eol=lf text=auto
        *.unity filter=prefab eol=lf text=auto
        *.asset filter=prefab eol=lf text=auto
    """
    name = str(file_path) if file_path else "<stdin>"
    data = _read_stdin()

    try:
        config = FilterConfig.for_path(file_path, version=filter_version, sort=sort, fail_open=fail_open)
        output = _clean(data, config, name)
    except FilterError as e:
        _fail(f"{name}: {e}")

    logger.info("Cleaned %s (%d -> %d bytes)", name, len(data), len(output))
    _write_stdout(output)


@main.command()
@click.option(
    "--file",
    "file_path",
    type=click.Path(path_type=Path),
    help="Path of the file being filtered (pass %f from the filter driver)",
)
@click.option(
    "--filter-version",
    type=int,
    default=None,
    help="Rule set version (default: filter-version attribute, then $PREFAB_FILTER_VERSION)",
)
def smudge(file_path: Path | None, filter_version: int | None) -> None:
    """Copy stored content from stdin to stdout for checkout.

    The version is still checked so that a repository pinned to a newer
    filter fails on checkout instead of silently producing mixed output.
    """
    name = str(file_path) if file_path else "<stdin>"
    data = _read_stdin()

    try:
        config = FilterConfig.for_path(file_path, version=filter_version)
        output = filters.smudge(data, config)
    except FilterError as e:
        _fail(f"{name}: {e}")

    _write_stdout(output)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    help="Output file path (default: overwrite input or stdout with --stdout)",
)
@click.option(
    "--stdout",
    is_flag=True,
    help="Write to stdout instead of file",
)
@click.option(
    "--filter-version",
    type=int,
    default=None,
    help="Rule set version (default: filter-version attribute, then $PREFAB_FILTER_VERSION)",
)
@click.option(
    "--sort/--no-sort",
    default=None,
    help="Order objects by fileID (default: unity-sort attribute)",
)
def normalize(
    input_file: Path,
    output: Path | None,
    stdout: bool,
    filter_version: int | None,
    sort: bool | None,
) -> None:
    """Canonicalize a Unity YAML file on disk.

    INPUT_FILE is the path to the prefab, scene, or asset file.

    Examples:

        # Normalize in place
        prefab-filter normalize Player.prefab

        # Normalize to a new file
        prefab-filter normalize Player.prefab -o Player.normalized.prefab

        # Output to stdout with the newest rules
        prefab-filter normalize Player.prefab --stdout --filter-version 2
    """
    try:
        config = FilterConfig.for_path(
            input_file.resolve(), cwd=input_file.resolve().parent, version=filter_version, sort=sort
        )
        content = UnityPrefabNormalizer.from_config(config).normalize_file(input_file)
    except FilterError as e:
        _fail(f"Failed to normalize {input_file}: {e}")

    if stdout:
        click.echo(content, nl=False)
    elif output:
        output.write_text(content, encoding="utf-8", newline="\n")
        click.echo(f"Normalized: {input_file} -> {output}")
    else:
        input_file.write_text(content, encoding="utf-8", newline="\n")
        click.echo(f"Normalized: {input_file}")


@main.command(name="git-textconv")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--filter-version",
    type=int,
    default=None,
    help="Rule set version (default: filter-version attribute, then $PREFAB_FILTER_VERSION)",
)
def git_textconv(file: Path, filter_version: int | None) -> None:
    """Output canonical content for git diff textconv.

    Useful for diffing files committed before the clean filter was set up.

    Setup in .gitconfig:

        [diff "prefab"]
            textconv = prefab-filter git-textconv

    Setup in .gitattributes:

        *.prefab diff=prefab
        *.unity diff=prefab
        *.asset diff=prefab
    """
    try:
        config = FilterConfig.for_path(file.resolve(), cwd=file.resolve().parent, version=filter_version)
        content = UnityPrefabNormalizer.from_config(config).normalize_file(file)
    except FilterError as e:
        # On error, output original file content so git can still diff
        logger.warning("%s: %s; showing raw content", file, e)
        content = file.read_bytes().decode("utf-8", errors="replace")

    click.echo(content, nl=False)


@main.command(name="rules")
@click.option(
    "--filter-version",
    type=int,
    default=MAX_VERSION,
    show_default=True,
    help="Rule set version to list",
)
def list_rules(filter_version: int) -> None:
    """List the rules applied by a filter version."""
    try:
        ruleset = ruleset_for(filter_version)
    except FilterError as e:
        _fail(str(e))

    click.echo(f"Filter version {ruleset.version}: {len(ruleset)} rules")
    for rule in ruleset:
        click.echo(f"  [v{rule.since}] {rule.describe()}")
        if rule.note:
            click.echo(f"        {rule.note}")


if __name__ == "__main__":
    main()
