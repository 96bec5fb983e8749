"""Parser for the YAML subset Unity writes.

Block structure is read line by line with one line of lookahead: nested
mappings sit exactly two columns deeper than their key, sequences are either
indentless or two columns deeper. Flow collections are gathered across their
continuation lines and handed to a small character-level parser.
"""

from __future__ import annotations

import re

from prefab_filter.errors import ParseError
from prefab_filter.lexer import Token, TokenType, tokenize
from prefab_filter.nodes import (
    DOUBLE_QUOTED,
    FOLDED,
    LITERAL,
    PLAIN,
    SINGLE_QUOTED,
    Mapping,
    Node,
    Scalar,
    Sequence,
    UnityYAMLDocument,
    UnityYAMLObject,
    find_invalid_escape,
)

_BLOCK_HEADER_RE = re.compile(r"^[|>](?:[1-9][+-]?|[+-][1-9]?)?$")
_NODE_PROPERTIES = "&*!"
_RESERVED = "@`%"


def _find_closing_quote(text: str, start: int, quote: str) -> int | None:
    i = start
    while i < len(text):
        ch = text[i]
        if quote == '"' and ch == "\\":
            i += 2
            continue
        if ch == quote:
            if quote == "'" and text[i + 1 : i + 2] == "'":
                i += 2
                continue
            return i
        i += 1
    return None


def _check_escapes(raw: str, line: int, column: int) -> None:
    found = find_invalid_escape(raw)
    if found is not None:
        index, message = found
        raise ParseError(message, line, column + index)


def _is_seq_entry(text: str) -> bool:
    return text == "-" or text.startswith("- ")


def _key_end(text: str) -> int | None:
    """Index of the ``:`` closing a mapping key at the start of ``text``."""
    if not text or text[0] in "{[":
        return None
    if text[0] in "'\"":
        close = _find_closing_quote(text, 1, text[0])
        if close is None:
            return None
        rest = text[close + 1 :]
        after = rest.lstrip(" ")
        if after.startswith(":") and (len(after) == 1 or after[1] == " "):
            return close + 1 + len(rest) - len(after)
        return None
    i = text.find(": ")
    if i == -1:
        return len(text) - 1 if text.endswith(":") else None
    return i


def _flow_end(text: str) -> int | None:
    """Index of the bracket closing the flow collection ``text`` opens."""
    depth = 0
    prev = ""
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in "'\"" and prev in ("", "{", "[", ",", ":"):
            close = _find_closing_quote(text, i + 1, ch)
            if close is None:
                return None
            i = close + 1
            prev = ch
            continue
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return i
        if ch != " ":
            prev = ch
        i += 1
    return None


class _FlowParser:
    """Character-level parser for one (possibly re-joined) flow collection."""

    def __init__(self, text: str, segments: list[tuple[int, int, int]]):
        # segments: (offset in text, source line, source column) per joined line
        self.text = text
        self.segments = segments
        self.pos = 0

    def error(self, message: str, index: int | None = None) -> ParseError:
        index = self.pos if index is None else index
        start, line, column = self.segments[0]
        for segment in self.segments:
            if segment[0] <= index:
                start, line, column = segment
        return ParseError(message, line, column + index - start)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip(self) -> None:
        while self.peek() == " ":
            self.pos += 1

    def node(self) -> Node:
        self.skip()
        ch = self.peek()
        if ch == "{":
            return self.mapping()
        if ch == "[":
            return self.sequence()
        if ch in ("'", '"'):
            return self.quoted()
        if ch and ch in _NODE_PROPERTIES:
            raise self.error("anchors, tags and aliases are not supported inside documents")
        if ch and ch in "|>":
            raise self.error("block scalar inside a flow collection")
        return self.plain()

    def mapping(self) -> Mapping:
        self.pos += 1
        mapping = Mapping(flow=True)
        self.skip()
        if self.peek() == "}":
            self.pos += 1
            return mapping
        while True:
            self.skip()
            start = self.pos
            ch = self.peek()
            if ch == "?":
                raise self.error("complex mapping keys are not supported")
            if ch in ("{", "["):
                raise self.error("flow collection used as a mapping key")
            key = self.quoted() if ch in ("'", '"') else self.plain()
            if not key.lines[0]:
                raise self.error("expected a mapping key", start)
            if key.text in mapping:
                raise self.error(f"duplicate key {key.text!r}", start)
            self.skip()
            if self.peek() != ":":
                raise self.error("expected ':' after mapping key")
            self.pos += 1
            self.skip()
            value = Scalar() if self.peek() in (",", "}") else self.node()
            mapping.entries.append((key, value))
            self.skip()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
                self.skip()
                if self.peek() == "}":
                    self.pos += 1
                    return mapping
                continue
            if ch == "}":
                self.pos += 1
                return mapping
            raise self.error("expected ',' or '}' in flow mapping")

    def sequence(self) -> Sequence:
        self.pos += 1
        sequence = Sequence(flow=True)
        self.skip()
        if self.peek() == "]":
            self.pos += 1
            return sequence
        while True:
            self.skip()
            if self.peek() in (",", "]"):
                raise self.error("empty entry in flow sequence")
            sequence.items.append(self.node())
            self.skip()
            ch = self.peek()
            if ch == ",":
                self.pos += 1
                self.skip()
                if self.peek() == "]":
                    self.pos += 1
                    return sequence
                continue
            if ch == "]":
                self.pos += 1
                return sequence
            raise self.error("expected ',' or ']' in flow sequence")

    def quoted(self) -> Scalar:
        quote = self.text[self.pos]
        close = _find_closing_quote(self.text, self.pos + 1, quote)
        if close is None:
            raise self.error("unterminated quoted scalar")
        raw = self.text[self.pos : close + 1]
        if quote == '"':
            found = find_invalid_escape(raw)
            if found is not None:
                raise self.error(found[1], self.pos + found[0])
        self.pos = close + 1
        return Scalar([raw], SINGLE_QUOTED if quote == "'" else DOUBLE_QUOTED)

    def plain(self) -> Scalar:
        text = self.text
        start = self.pos
        while self.pos < len(text):
            ch = text[self.pos]
            if ch in ",[]{}":
                break
            if ch == ":" and (self.pos + 1 == len(text) or text[self.pos + 1] in " ,[]{}"):
                break
            self.pos += 1
        return Scalar.plain(text[start : self.pos].rstrip(" "))


class Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next_content(self) -> Token | None:
        """Skip blank lines and return the next content line, unconsumed."""
        while self.pos < len(self.tokens) and self.tokens[self.pos].type is TokenType.BLANK:
            self.pos += 1
        tok = self._peek()
        if tok is not None and tok.type is TokenType.CONTENT:
            return tok
        return None

    def parse_stream(self) -> UnityYAMLDocument:
        document = UnityYAMLDocument()
        anchors: dict[str, int] = {}
        while self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            if tok.type is TokenType.BLANK:
                self.pos += 1
            elif tok.type is TokenType.DIRECTIVE:
                if document.objects:
                    raise ParseError("directive after the first document", tok.line, 1)
                document.directives.append(tok.text)
                self.pos += 1
            elif tok.type is TokenType.DOCUMENT_START:
                self.pos += 1
                if tok.anchor is not None:
                    if tok.anchor in anchors:
                        raise ParseError(
                            f"duplicate anchor &{tok.anchor} (first used on line {anchors[tok.anchor]})",
                            tok.line,
                            tok.raw.index("&") + 1,
                        )
                    anchors[tok.anchor] = tok.line
                root = self._parse_root()
                document.objects.append(
                    UnityYAMLObject(tok.tag, tok.anchor, root, stripped=tok.stripped, line=tok.line)
                )
            else:
                raise ParseError("content before the first document header", tok.line, tok.indent + 1)
        return document

    def _parse_root(self) -> Mapping:
        tok = self._next_content()
        if tok is None:
            return Mapping()
        if tok.indent != 0:
            raise ParseError("document body must start in column 1", tok.line, tok.indent + 1)
        return self._parse_mapping(0)

    # Block collections

    def _parse_mapping(self, indent: int, first: tuple[Token, str] | None = None) -> Mapping:
        mapping = Mapping()
        if first is not None:
            self._parse_entry(mapping, first[0], first[1], indent)
        while True:
            tok = self._next_content()
            if tok is None or tok.indent < indent:
                return mapping
            if tok.indent > indent:
                raise ParseError(
                    f"bad indentation: expected {indent} spaces, found {tok.indent}",
                    tok.line,
                    tok.indent + 1,
                )
            self.pos += 1
            self._parse_entry(mapping, tok, tok.text, indent)

    def _parse_entry(self, mapping: Mapping, tok: Token, text: str, indent: int) -> None:
        column = indent + 1
        if text.startswith("\t"):
            raise ParseError("tab character used for indentation", tok.line, column)
        if _is_seq_entry(text):
            raise ParseError("sequence entry where a mapping key was expected", tok.line, column)
        if text == "?" or text.startswith("? "):
            raise ParseError("complex mapping keys are not supported", tok.line, column)
        if text[0] in _NODE_PROPERTIES:
            raise ParseError("anchors, tags and aliases are not supported inside documents", tok.line, column)

        end = _key_end(text)
        if end is None:
            raise ParseError("expected a 'key: value' entry", tok.line, column)
        key_text = text[:end].rstrip(" ")
        if not key_text:
            raise ParseError("empty mapping key", tok.line, column)
        if key_text[0] == "'":
            key = Scalar([key_text], SINGLE_QUOTED)
        elif key_text[0] == '"':
            _check_escapes(key_text, tok.line, column)
            key = Scalar([key_text], DOUBLE_QUOTED)
        else:
            key = Scalar.plain(key_text)
        if key.text in mapping:
            raise ParseError(f"duplicate key {key.text!r}", tok.line, column)

        rest = text[end + 1 :].lstrip(" ")
        value = self._parse_value(rest, tok, indent, column + len(text) - len(rest))
        mapping.entries.append((key, value))

    def _parse_sequence(self, indent: int, first: tuple[Token, str] | None = None) -> Sequence:
        sequence = Sequence()
        if first is not None:
            self._parse_item(sequence, first[0], first[1], indent)
        while True:
            tok = self._next_content()
            if tok is None or tok.indent < indent:
                return sequence
            if tok.indent > indent:
                raise ParseError(
                    f"bad indentation: expected {indent} spaces, found {tok.indent}",
                    tok.line,
                    tok.indent + 1,
                )
            if not _is_seq_entry(tok.text):
                return sequence
            self.pos += 1
            self._parse_item(sequence, tok, tok.text, indent)

    def _parse_item(self, sequence: Sequence, tok: Token, text: str, indent: int) -> None:
        rest = text[1:].lstrip(" ")
        offset = len(text) - len(rest)
        column = indent + offset + 1
        if not rest:
            sequence.items.append(self._parse_value("", tok, indent, column, indentless=False))
            return
        if rest.startswith("\t"):
            raise ParseError("tab character used for indentation", tok.line, column)

        nested_seq = _is_seq_entry(rest)
        nested_map = not nested_seq and _key_end(rest) is not None
        if (nested_seq or nested_map) and offset != 2:
            raise ParseError("bad indentation: expected one space after '-'", tok.line, column)
        if nested_seq:
            sequence.items.append(self._parse_sequence(indent + 2, (tok, rest)))
        elif nested_map:
            sequence.items.append(self._parse_mapping(indent + 2, (tok, rest)))
        else:
            sequence.items.append(self._parse_inline(rest, tok, indent, column))

    # Values

    def _parse_value(self, rest: str, tok: Token, indent: int, column: int, indentless: bool = True) -> Node:
        if rest:
            return self._parse_inline(rest, tok, indent, column)
        nxt = self._next_content()
        if nxt is not None:
            if indentless and nxt.indent == indent and _is_seq_entry(nxt.text):
                return self._parse_sequence(indent)
            if nxt.indent == indent + 2:
                if _is_seq_entry(nxt.text):
                    return self._parse_sequence(indent + 2)
                return self._parse_mapping(indent + 2)
            if nxt.indent > indent:
                raise ParseError(
                    f"bad indentation: expected {indent + 2} spaces, found {nxt.indent}",
                    nxt.line,
                    nxt.indent + 1,
                )
        return Scalar()

    def _parse_inline(self, rest: str, tok: Token, indent: int, column: int) -> Node:
        first = rest[0]
        if first in "{[":
            return self._parse_flow(rest, tok, indent, column)
        if first in "'\"":
            return self._parse_quoted(rest, tok, indent, column)
        if first in "|>":
            return self._parse_block_scalar(rest, tok, indent, column)
        if first in _NODE_PROPERTIES:
            raise ParseError("anchors, tags and aliases are not supported inside documents", tok.line, column)
        if first == "#":
            raise ParseError("comments are not supported", tok.line, column)
        if first in _RESERVED:
            raise ParseError(f"plain scalar cannot start with {first!r}", tok.line, column)
        if first == "\t":
            raise ParseError("tab character used as separator", tok.line, column)
        return self._parse_plain(rest, tok, indent, column)

    def _parse_plain(self, rest: str, tok: Token, indent: int, column: int) -> Scalar:
        self._check_plain_line(rest, tok, column)
        lines = [rest]
        while True:
            j = self.pos
            while j < len(self.tokens) and self.tokens[j].type is TokenType.BLANK:
                j += 1
            if j >= len(self.tokens):
                break
            nxt = self.tokens[j]
            if nxt.type is not TokenType.CONTENT or nxt.indent <= indent:
                break
            lines.extend("" for _ in range(self.pos, j))
            text = nxt.text.strip(" \t")
            self._check_plain_line(text, nxt, nxt.indent + 1)
            lines.append(text)
            self.pos = j + 1
        return Scalar(lines, PLAIN)

    @staticmethod
    def _check_plain_line(text: str, tok: Token, column: int) -> None:
        i = text.find(": ")
        if i == -1 and text.endswith(":"):
            i = len(text) - 1
        if i != -1:
            raise ParseError("mapping values are not allowed here", tok.line, column + i)

    def _parse_quoted(self, rest: str, tok: Token, indent: int, column: int) -> Scalar:
        quote = rest[0]
        style = SINGLE_QUOTED if quote == "'" else DOUBLE_QUOTED
        close = _find_closing_quote(rest, 1, quote)
        if style == DOUBLE_QUOTED:
            _check_escapes(rest if close is None else rest[: close + 1], tok.line, column)
        if close is not None:
            self._expect_end(rest, close + 1, tok, column)
            return Scalar([rest], style)

        lines = [rest]
        while True:
            nxt = self._peek()
            if nxt is not None and nxt.type is TokenType.BLANK:
                lines.append("")
                self.pos += 1
                continue
            if nxt is None or nxt.type is not TokenType.CONTENT or nxt.indent <= indent:
                raise ParseError("unterminated quoted scalar", tok.line, column)
            self.pos += 1
            text = nxt.text.strip(" \t")
            lines.append(text)
            close = _find_closing_quote(text, 0, quote)
            if style == DOUBLE_QUOTED:
                _check_escapes(text if close is None else text[: close + 1], nxt.line, nxt.indent + 1)
            if close is not None:
                self._expect_end(text, close + 1, nxt, nxt.indent + 1)
                return Scalar(lines, style)

    @staticmethod
    def _expect_end(text: str, index: int, tok: Token, column: int) -> None:
        if text[index:].strip():
            raise ParseError("unexpected text after quoted scalar", tok.line, column + index)

    def _parse_block_scalar(self, rest: str, tok: Token, indent: int, column: int) -> Scalar:
        if not _BLOCK_HEADER_RE.match(rest):
            raise ParseError(f"invalid block scalar header {rest!r}", tok.line, column)
        style = LITERAL if rest[0] == "|" else FOLDED
        explicit = next((int(ch) for ch in rest if ch.isdigit()), None)
        content_indent = indent + explicit if explicit else None

        lines = [rest]
        pending: list[str] = []
        while self.pos < len(self.tokens):
            nxt = self.tokens[self.pos]
            if nxt.type is TokenType.BLANK:
                if content_indent is not None and len(nxt.raw) > content_indent:
                    pending.append(nxt.raw[content_indent:])
                else:
                    pending.append("")
                self.pos += 1
                continue
            if nxt.type is not TokenType.CONTENT:
                break
            if content_indent is None:
                if nxt.indent <= indent:
                    break
                content_indent = nxt.indent
            elif nxt.indent < content_indent:
                break
            lines.extend(pending)
            pending = []
            lines.append(nxt.raw[content_indent:])
            self.pos += 1
        if "+" in rest:
            lines.extend(pending)
        return Scalar(lines, style)

    def _parse_flow(self, rest: str, tok: Token, indent: int, column: int) -> Node:
        text = rest
        segments = [(0, tok.line, column)]
        while True:
            end = _flow_end(text)
            if end is not None:
                break
            nxt = self._peek()
            if nxt is not None and nxt.type is TokenType.BLANK:
                raise ParseError("blank line inside flow collection", nxt.line, 1)
            if nxt is None or nxt.type is not TokenType.CONTENT or nxt.indent <= indent:
                raise ParseError("unterminated flow collection", tok.line, column)
            self.pos += 1
            text += " "
            segments.append((len(text), nxt.line, nxt.indent + 1))
            text += nxt.text.strip(" \t")

        flow = _FlowParser(text[: end + 1], segments)
        if text[end + 1 :].strip():
            raise flow.error("unexpected text after flow collection", end + 1)
        return flow.node()


def parse(data: bytes | str) -> UnityYAMLDocument:
    """Parse a Unity YAML stream.

    Raises:
        ParseError: If ``data`` is not well-formed; carries line and column.
    """
    return Parser(tokenize(data)).parse_stream()


def parse_value(text: str) -> Node:
    """Parse a single inline value such as ``{fileID: 0}``, ``[]`` or ``0``."""
    text = text.strip()
    if not text:
        return Scalar()
    if text[0] in "{[":
        end = _flow_end(text)
        if end is None:
            raise ParseError("unterminated flow collection", 1, 1)
        flow = _FlowParser(text[: end + 1], [(0, 1, 1)])
        if text[end + 1 :].strip():
            raise flow.error("unexpected text after flow collection", end + 1)
        return flow.node()
    if text[0] in "'\"":
        close = _find_closing_quote(text, 1, text[0])
        if close != len(text) - 1:
            raise ParseError("malformed quoted scalar", 1, 1)
        if text[0] == '"':
            _check_escapes(text, 1, 1)
        return Scalar([text], SINGLE_QUOTED if text[0] == "'" else DOUBLE_QUOTED)
    return Scalar.plain(text)
