"""Serialize a ``UnityYAMLDocument`` back to Unity's text format.

Output follows what the Unity editor itself writes: two-space indentation,
indentless block sequences, ``key:`` for nulls and flow collections wrapped
the way libyaml wraps them at 80 columns.
"""

from __future__ import annotations

from prefab_filter.nodes import Mapping, Node, Scalar, Sequence, UnityYAMLDocument

BEST_WIDTH = 80
INDENT = 2


class _FlowWriter:
    """Writes one flow collection, breaking lines like libyaml's emitter."""

    def __init__(self, prefix: str, indent: int):
        self.lines: list[str] = []
        self.buffer = prefix
        self.indent = indent
        self.indents: list[int] = []
        self.whitespace = not prefix or prefix.endswith(" ")

    @property
    def column(self) -> int:
        return len(self.buffer)

    def _indicator(self, indicator: str, need_whitespace: bool, is_whitespace: bool = False) -> None:
        if need_whitespace and not self.whitespace:
            self.buffer += " "
        self.buffer += indicator
        self.whitespace = is_whitespace

    def _break(self) -> None:
        self.lines.append(self.buffer)
        self.buffer = " " * self.indent
        self.whitespace = True

    def _scalar(self, scalar: Scalar) -> None:
        text = scalar.lines[0]
        if not text:
            return
        if not self.whitespace:
            self.buffer += " "
        self.buffer += text
        self.whitespace = False

    def write(self, node: Node) -> None:
        if isinstance(node, Scalar):
            self._scalar(node)
            return
        is_mapping = isinstance(node, Mapping)
        self._indicator("{" if is_mapping else "[", True, True)
        self.indents.append(self.indent)
        self.indent += INDENT
        entries = node.entries if is_mapping else [(None, item) for item in node.items]
        for i, (key, value) in enumerate(entries):
            if i:
                self._indicator(",", False)
            if self.column > BEST_WIDTH:
                self._break()
            if key is not None:
                self._scalar(key)
                self._indicator(":", False)
            self.write(value)
        self.indent = self.indents.pop()
        self._indicator("}" if is_mapping else "]", False)

    def finish(self) -> list[str]:
        self.lines.append(self.buffer)
        return self.lines


def _is_block(node: Node) -> bool:
    if isinstance(node, Mapping):
        return bool(node.entries) and not node.flow
    if isinstance(node, Sequence):
        return bool(node.items) and not node.flow
    return False


def _emit_scalar(prefix: str, scalar: Scalar, indent: int, out: list[str]) -> None:
    first = scalar.lines[0]
    out.append(f"{prefix} {first}" if first else prefix)
    continuation = " " * (indent + scalar.continuation_indent)
    for line in scalar.lines[1:]:
        out.append(continuation + line if line else "")


def _emit_value(prefix: str, value: Node, indent: int, out: list[str]) -> None:
    """Emit ``value`` after ``prefix`` (``key:`` or ``-``) owned by a collection at ``indent``."""
    if isinstance(value, Scalar):
        _emit_scalar(prefix, value, indent, out)
    elif not _is_block(value):
        writer = _FlowWriter(prefix, indent)
        writer.write(value)
        out.extend(writer.finish())
    elif isinstance(value, Mapping):
        out.append(prefix)
        _emit_mapping(value, indent + INDENT, out)
    else:
        out.append(prefix)
        _emit_sequence(value, indent, out)


def _emit_mapping(mapping: Mapping, indent: int, out: list[str]) -> None:
    pad = " " * indent
    for key, value in mapping.entries:
        _emit_value(f"{pad}{key.raw}:", value, indent, out)


def _emit_sequence(sequence: Sequence, indent: int, out: list[str]) -> None:
    dash = " " * indent + "-"
    for item in sequence.items:
        if _is_block(item):
            # first line of the nested collection shares the dash line
            lines: list[str] = []
            if isinstance(item, Mapping):
                _emit_mapping(item, indent + INDENT, lines)
            else:
                _emit_sequence(item, indent + INDENT, lines)
            lines[0] = f"{dash} {lines[0][indent + INDENT:]}"
            out.extend(lines)
        else:
            _emit_value(dash, item, indent, out)


def emit_text(document: UnityYAMLDocument) -> str:
    out = list(document.directives)
    for obj in document.objects:
        out.append(obj.header)
        _emit_mapping(obj.root, 0, out)
    if not out:
        return ""
    return "\n".join(out) + "\n"


def emit(document: UnityYAMLDocument) -> bytes:
    """Serialize ``document`` to UTF-8 bytes with LF line endings."""
    return emit_text(document).encode("utf-8")
