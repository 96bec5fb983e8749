"""Errors raised by the filter core.

The core never logs or prints; every failure is surfaced as one of these
exceptions and the caller (usually the CLI) decides how to present it.
"""

from __future__ import annotations


class FilterError(Exception):
    """Base class for every error the filter raises."""


class ParseError(FilterError):
    """Input is not well-formed Unity YAML."""

    def __init__(self, message: str, line: int, column: int = 1):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(f"line {line}, column {column}: {message}")

    @property
    def position(self) -> tuple[int, int]:
        return (self.line, self.column)


class UnsupportedVersionError(FilterError):
    """Requested filter version is newer than this build implements."""

    def __init__(self, requested: int, max_supported: int):
        self.requested = requested
        self.max_supported = max_supported
        super().__init__(
            f"filter version {requested} is not supported "
            f"(supported: 1-{max_supported}); upgrade prefab-filter "
            f"or pin an older filter-version in .gitattributes"
        )


class NonNumericAnchorError(FilterError):
    """A document anchor cannot be used as an integer sort key."""

    def __init__(self, anchor_text: str | None):
        self.anchor_text = anchor_text
        shown = "<missing>" if anchor_text is None else repr(anchor_text)
        super().__init__(f"cannot sort documents: anchor {shown} is not an integer fileID")


class CanonicalizationError(FilterError):
    """A rule's structural precondition does not hold for the input."""

    def __init__(self, message: str, object_type: str | None = None, path: str | None = None):
        self.object_type = object_type
        self.path = path
        where = ""
        if object_type is not None:
            where = f" ({object_type}.{path})" if path else f" ({object_type})"
        super().__init__(f"{message}{where}")


class ConfigError(FilterError):
    """Filter configuration (attributes, environment, options) is invalid."""
