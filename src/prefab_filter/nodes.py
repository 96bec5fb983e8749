"""Document model for Unity YAML streams.

A stream (``UnityYAMLDocument``) holds the ``%`` directives and an ordered
list of objects (``UnityYAMLObject``), one per ``--- !u!<classID> &<fileID>``
section. Each object owns a tree of ``Mapping``/``Sequence``/``Scalar`` nodes.

Scalars keep the lexical form they were read with, so an unmodified scalar is
written back byte-for-byte; only rules replace that form.
"""

from __future__ import annotations

import re
import string
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Union

PLAIN = "plain"
SINGLE_QUOTED = "single"
DOUBLE_QUOTED = "double"
LITERAL = "literal"
FOLDED = "folded"

_NULL_RE = re.compile(r"^(?:~|null|Null|NULL)?$")
_BOOL_RE = re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$")
_INT_RE = re.compile(r"^[-+]?[0-9]+$")
_FLOAT_RE = re.compile(
    r"^[-+]?(?:(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?|[0-9]+[eE][-+][0-9]+)$"
    r"|^[-+]?(?:Infinity|\.inf|\.Inf|\.INF)$"
    r"|^(?:NaN|\.nan|\.NaN|\.NAN)$"
)
_BLOCK_HEADER_RE = re.compile(r"^[|>](?P<a>[1-9+-]?)(?P<b>[1-9+-]?)$")

_ESCAPES = {
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "t": "\t",
    "\t": "\t",
    "n": "\n",
    "v": "\v",
    "f": "\f",
    "r": "\r",
    "e": "\x1b",
    " ": " ",
    '"': '"',
    "/": "/",
    "\\": "\\",
    "N": "\x85",
    "_": "\xa0",
    "L": "\u2028",
    "P": "\u2029",
}
_HEX_ESCAPES = {"x": 2, "u": 4, "U": 8}


def _fold(lines: list[str]) -> str:
    """Apply YAML line folding to already-trimmed lines."""
    result = lines[0]
    blanks = 0
    for line in lines[1:]:
        if not line:
            blanks += 1
            continue
        if blanks:
            result += "\n" * blanks
        elif result.endswith("\\") and not result.endswith("\\\\"):
            # escaped line break in a double-quoted scalar
            result = result[:-1]
        else:
            result += " "
        result += line
        blanks = 0
    return result


def find_invalid_escape(text: str) -> tuple[int, str] | None:
    """Locate the first bad escape in one line of double-quoted text.

    Returns the index of its backslash and a message, or ``None``. A
    backslash ending the line is an escaped line break and is accepted.
    """
    i = text.find("\\")
    while 0 <= i < len(text) - 1:
        code = text[i + 1]
        if code in _HEX_ESCAPES:
            width = _HEX_ESCAPES[code]
            digits = text[i + 2 : i + 2 + width]
            if len(digits) != width or not all(c in string.hexdigits for c in digits):
                return i, f"invalid escape sequence '\\{code}{digits}'"
            if int(digits, 16) > sys.maxunicode:
                return i, f"escape sequence '\\{code}{digits}' is out of range"
            i += 2 + width
        elif code in _ESCAPES:
            i += 2
        else:
            return i, f"unknown escape sequence '\\{code}'"
        i = text.find("\\", i)
    return None


def _unescape(text: str) -> str:
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "\\" or i + 1 >= len(text):
            out.append(ch)
            i += 1
            continue
        code = text[i + 1]
        if code in _HEX_ESCAPES:
            width = _HEX_ESCAPES[code]
            out.append(chr(int(text[i + 2 : i + 2 + width], 16)))
            i += 2 + width
        else:
            out.append(_ESCAPES.get(code, code))
            i += 2
    return "".join(out)


@dataclass
class Scalar:
    """A scalar with its raw lexical lines.

    ``lines[0]`` is the text written on the owning line (after ``key: `` or
    ``- ``); later entries are continuation lines without indentation, ``""``
    for blank lines. For block scalars ``lines[0]`` is the ``|``/``>`` header.
    """

    lines: list[str] = field(default_factory=lambda: [""])
    style: str = PLAIN

    @classmethod
    def plain(cls, text: str) -> Scalar:
        return cls([text], PLAIN)

    @property
    def raw(self) -> str:
        return "\n".join(self.lines)

    @property
    def is_multiline(self) -> bool:
        return len(self.lines) > 1

    @property
    def kind(self) -> str:
        """One of ``null``, ``bool``, ``int``, ``float`` or ``str``."""
        if self.style != PLAIN or self.is_multiline:
            return "str"
        text = self.lines[0]
        if _NULL_RE.match(text):
            return "null"
        if _BOOL_RE.match(text):
            return "bool"
        if _INT_RE.match(text):
            return "int"
        if _FLOAT_RE.match(text):
            return "float"
        return "str"

    @property
    def is_null(self) -> bool:
        return self.kind == "null"

    @property
    def text(self) -> str:
        """Decoded string content, whatever the scalar's kind."""
        if self.style == PLAIN:
            return _fold(self.lines)
        if self.style == SINGLE_QUOTED:
            return _fold(self._quoted_lines()).replace("''", "'")
        if self.style == DOUBLE_QUOTED:
            return _unescape(_fold(self._quoted_lines()))
        return self._block_text()

    @property
    def value(self) -> Any:
        kind = self.kind
        text = self.lines[0]
        if kind == "null":
            return None
        if kind == "bool":
            return text.lower() == "true"
        if kind == "int":
            return int(text)
        if kind == "float":
            lowered = text.lower().lstrip("+")
            if lowered in ("infinity", ".inf"):
                return float("inf")
            if lowered in ("-infinity", "-.inf"):
                return float("-inf")
            if lowered in ("nan", ".nan"):
                return float("nan")
            return float(text)
        return self.text

    @property
    def continuation_indent(self) -> int:
        """Indentation of continuation lines relative to the owning collection."""
        if self.style in (LITERAL, FOLDED):
            match = _BLOCK_HEADER_RE.match(self.lines[0])
            if match:
                for part in (match.group("a"), match.group("b")):
                    if part.isdigit():
                        return int(part)
        return 2

    def _quoted_lines(self) -> list[str]:
        lines = list(self.lines)
        lines[0] = lines[0][1:]
        lines[-1] = lines[-1][:-1]
        return lines

    def _block_text(self) -> str:
        header = self.lines[0]
        content = list(self.lines[1:])
        if self.style == LITERAL:
            body = "\n".join(content)
        else:
            body = _fold(content) if content else ""
        if "-" in header:
            return body.rstrip("\n")
        if "+" in header:
            return body + "\n"
        return body.rstrip("\n") + "\n" if body else ""

    def to_python(self) -> Any:
        return self.value


@dataclass
class Sequence:
    items: list[Node] = field(default_factory=list)
    flow: bool = False

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.items)

    def to_python(self) -> list[Any]:
        return [item.to_python() for item in self.items]


@dataclass
class Mapping:
    """Ordered mapping; keys are unique and compared by their decoded text."""

    entries: list[tuple[Scalar, Node]] = field(default_factory=list)
    flow: bool = False

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: str) -> bool:
        return self.index(name) is not None

    def keys(self) -> list[str]:
        return [key.text for key, _ in self.entries]

    def items(self) -> list[tuple[str, Node]]:
        return [(key.text, value) for key, value in self.entries]

    def index(self, name: str) -> int | None:
        for i, (key, _) in enumerate(self.entries):
            if key.text == name:
                return i
        return None

    def get(self, name: str, default: Node | None = None) -> Node | None:
        i = self.index(name)
        return default if i is None else self.entries[i][1]

    def set(self, name: str, value: Node) -> None:
        """Replace the value of ``name`` in place, or append a new entry."""
        i = self.index(name)
        if i is None:
            self.entries.append((Scalar.plain(name), value))
        else:
            self.entries[i] = (self.entries[i][0], value)

    def remove(self, name: str) -> bool:
        i = self.index(name)
        if i is None:
            return False
        del self.entries[i]
        return True

    def to_python(self) -> dict[str, Any]:
        return {key.text: value.to_python() for key, value in self.entries}


Node = Union[Scalar, Sequence, Mapping]


def lookup(node: Node | None, dotted: str) -> Node | None:
    """Resolve a dotted field path below ``node``; ``None`` when absent."""
    for name in dotted.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(name)
    return node


@dataclass
class UnityYAMLObject:
    """One ``--- !u!<classID> &<fileID>`` section of a stream."""

    class_id: str
    file_id: str | None
    root: Mapping = field(default_factory=Mapping)
    stripped: bool = False
    line: int = field(default=0, compare=False)

    @property
    def header(self) -> str:
        parts = [f"--- !u!{self.class_id}"]
        if self.file_id is not None:
            parts.append(f"&{self.file_id}")
        if self.stripped:
            parts.append("stripped")
        return " ".join(parts)

    @property
    def class_name(self) -> str | None:
        if not self.root.entries:
            return None
        return self.root.entries[0][0].text

    @property
    def body(self) -> Node | None:
        if not self.root.entries:
            return None
        return self.root.entries[0][1]

    def get_content(self) -> dict[str, Any] | None:
        body = self.body
        if isinstance(body, Mapping):
            return body.to_python()
        return None


@dataclass
class UnityYAMLDocument:
    """A parsed Unity YAML stream: directives plus objects, in file order."""

    directives: list[str] = field(default_factory=list)
    objects: list[UnityYAMLObject] = field(default_factory=list)

    @classmethod
    def loads(cls, data: bytes | str) -> UnityYAMLDocument:
        from prefab_filter.parser import parse

        return parse(data)

    @classmethod
    def load(cls, path: Path) -> UnityYAMLDocument:
        return cls.loads(Path(path).read_bytes())

    def dumps(self) -> str:
        from prefab_filter.emitter import emit_text

        return emit_text(self)

    def get_by_file_id(self, file_id: str) -> UnityYAMLObject | None:
        for obj in self.objects:
            if obj.file_id == file_id:
                return obj
        return None
