"""--debug AST dump to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from burro.ast import Command, Document, Inline, Paragraph, Text


def dump_ast(doc: Document, *, file: TextIO | None = None) -> None:
    """Print a human-readable AST tree to *file* (default: the current stderr)."""
    _dump_document(doc, 0, sys.stderr if file is None else file)


def _indent(depth: int) -> str:
    return "  " * depth


def _dump_document(doc: Document, depth: int, f: TextIO) -> None:
    f.write(f"{_indent(depth)}Document\n")
    if doc.variables:
        f.write(f"{_indent(depth + 1)}Variables\n")
        for name, fragment in doc.variables.items():
            f.write(f"{_indent(depth + 2)}~{name}\n")
            for node in fragment:
                _dump_inline(node, depth + 3, f)
    for child in doc.children:
        if isinstance(child, Command):
            _dump_command(child, depth + 1, f)
        elif isinstance(child, Paragraph):
            _dump_paragraph(child, depth + 1, f)


def _dump_command(node: Command, depth: int, f: TextIO) -> None:
    f.write(f"{_indent(depth)}Command .{node.name}")
    if node.value is not None:
        f.write(f" = {node.value!r}")
    f.write("\n")
    for setting in node.settings or ():
        f.write(f"{_indent(depth + 1)}Setting {setting.key}={setting.value!r}\n")
    if node.argument is not None:
        f.write(f"{_indent(depth + 1)}Argument\n")
        for child in node.argument:
            _dump_inline(child, depth + 2, f)


def _dump_inline(child: Inline, depth: int, f: TextIO) -> None:
    if isinstance(child, Text):
        f.write(f"{_indent(depth)}Text({child.value!r})\n")
    else:
        _dump_command(child, depth, f)


def _dump_paragraph(para: Paragraph, depth: int, f: TextIO) -> None:
    f.write(f"{_indent(depth)}Paragraph\n")
    for child in para.body:
        _dump_inline(child, depth + 1, f)
