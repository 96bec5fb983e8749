"""Line lexer for Unity YAML streams.

The stream is split into one token per physical line. Structure inside a
document (keys, flow collections, quoted scalars) is left to the parser,
which only ever needs to look one line ahead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto

from prefab_filter.errors import ParseError

_HEADER_TAG_RE = re.compile(r"^!u!(?P<tag>\S+)$")


class TokenType(Enum):
    DIRECTIVE = auto()
    DOCUMENT_START = auto()
    CONTENT = auto()
    BLANK = auto()


@dataclass(slots=True)
class Token:
    type: TokenType
    line: int
    indent: int
    text: str
    raw: str
    tag: str | None = None
    anchor: str | None = None
    stripped: bool = False


def decode(data: bytes | str) -> str:
    """Decode ``data`` as UTF-8, dropping a BOM and folding CRLF to LF."""
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            line = data.count(b"\n", 0, e.start) + 1
            column = e.start - (data.rfind(b"\n", 0, e.start) + 1) + 1
            raise ParseError(f"invalid UTF-8 at byte {e.start}", line, column) from e
    else:
        text = data
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.replace("\r\n", "\n")


def _header(raw: str, line: int) -> Token:
    parts = raw[3:].split()
    if not parts:
        raise ParseError("document header has no !u! type tag", line, 1)
    match = _HEADER_TAG_RE.match(parts[0])
    if not match:
        raise ParseError(f"expected !u!<classID> tag, found {parts[0]!r}", line, raw.index(parts[0]) + 1)

    token = Token(TokenType.DOCUMENT_START, line, 0, raw.rstrip(), raw, tag=match.group("tag"))
    rest = parts[1:]
    if rest and rest[0].startswith("&"):
        token.anchor = rest.pop(0)[1:]
        if not token.anchor:
            raise ParseError("empty anchor in document header", line, raw.index("&") + 1)
    if rest and rest[0] == "stripped":
        token.stripped = True
        rest.pop(0)
    if rest:
        raise ParseError(f"unexpected {rest[0]!r} in document header", line, raw.index(rest[0]) + 1)
    return token


def tokenize(data: bytes | str) -> list[Token]:
    text = decode(data)
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()

    tokens = []
    for number, raw in enumerate(lines, start=1):
        if not raw.strip():
            tokens.append(Token(TokenType.BLANK, number, len(raw), "", raw))
            continue

        indent = len(raw) - len(raw.lstrip(" "))
        if indent == 0:
            if raw.startswith("---") and (len(raw) == 3 or raw[3] in " \t"):
                tokens.append(_header(raw, number))
                continue
            if raw.startswith("%"):
                tokens.append(Token(TokenType.DIRECTIVE, number, 0, raw.rstrip(), raw))
                continue
            if raw.rstrip() == "...":
                raise ParseError("document end marker '...' is not supported", number, 1)
        tokens.append(Token(TokenType.CONTENT, number, indent, raw[indent:].rstrip(), raw))
    return tokens
