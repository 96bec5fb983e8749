"""Filter configuration.

A ``FilterConfig`` is resolved once per invocation, highest precedence first:
command-line options, git attributes of the filtered path, environment, and
finally the built-in defaults.

Attributes, set per path in ``.gitattributes``::

    *.prefab filter=prefab filter-version=2 unity-sort
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from prefab_filter.errors import ConfigError
from prefab_filter.git_utils import check_attr, is_git_repository
from prefab_filter.rules import DEFAULT_VERSION

logger = logging.getLogger(__name__)

ATTR_VERSION = "filter-version"
ATTR_SORT = "unity-sort"
ATTRIBUTES = [ATTR_VERSION, ATTR_SORT]

ENV_VERSION = "PREFAB_FILTER_VERSION"

_TRUE = {"set", "true", "yes", "on", "1"}
_FALSE = {"unset", "false", "no", "off", "0"}


def parse_version(text: str, source: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise ConfigError(f"invalid filter version {text!r} from {source}") from None


def parse_flag(text: str, source: str) -> bool | None:
    """Read a boolean git attribute; ``None`` when it is unspecified."""
    value = text.strip().lower()
    if value in ("", "unspecified"):
        return None
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"invalid boolean {text!r} from {source}")


@dataclass(frozen=True)
class FilterConfig:
    version: int = DEFAULT_VERSION
    sort: bool = False
    fail_open: bool = False

    @classmethod
    def resolve(
        cls,
        attributes: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
        *,
        version: int | None = None,
        sort: bool | None = None,
        fail_open: bool = False,
    ) -> FilterConfig:
        attributes = attributes or {}
        environ = os.environ if environ is None else environ

        if version is None:
            value = attributes.get(ATTR_VERSION, "unspecified")
            if value not in ("unspecified", "set", "unset"):
                version = parse_version(value, f"attribute {ATTR_VERSION}")
            elif environ.get(ENV_VERSION):
                version = parse_version(environ[ENV_VERSION], ENV_VERSION)
            else:
                version = DEFAULT_VERSION

        if sort is None:
            sort = bool(parse_flag(attributes.get(ATTR_SORT, "unspecified"), f"attribute {ATTR_SORT}"))

        return cls(version=version, sort=sort, fail_open=fail_open)

    @classmethod
    def for_path(
        cls,
        path: Path | str | None,
        cwd: Path | None = None,
        environ: Mapping[str, str] | None = None,
        **options,
    ) -> FilterConfig:
        """Resolve the configuration for ``path`` inside the current repository.

        Outside a git work tree, or without a path, attributes are skipped.
        """
        attributes: dict[str, str] = {}
        if path is not None and is_git_repository(cwd):
            attributes = check_attr(path, ATTRIBUTES, cwd=cwd)
        config = cls.resolve(attributes, environ, **options)
        logger.debug("Config for %s: %s", path, config)
        return config
