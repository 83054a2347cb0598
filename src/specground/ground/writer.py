"""
Line-oriented writer for generated Python source.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

INDENT = "    "


def docstring_safe(text: str) -> str:
    """Escape text for use inside a triple-quoted docstring."""
    return text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


class CodeWriter:
    """
    Writes generated code to a text stream, one line at a time.

    Indentation is tracked here so that emitters only deal with the
    content of each line.

    Example:
        out = CodeWriter(stream)
        with out.block("def setUp(self):"):
            out.line("self.system = Account()")
    """

    def __init__(self, stream: TextIO):
        self.stream = stream
        self.depth = 0

    def line(self, text: str = "") -> None:
        if text:
            self.stream.write(INDENT * self.depth + text + "\n")
        else:
            self.stream.write("\n")

    def lines(self, *texts: str) -> None:
        for text in texts:
            self.line(text)

    def blank(self, count: int = 1) -> None:
        for _ in range(count):
            self.stream.write("\n")

    @contextmanager
    def indent(self) -> Iterator[None]:
        self.depth += 1
        try:
            yield
        finally:
            self.depth -= 1

    @contextmanager
    def block(self, header: str) -> Iterator[None]:
        """Write a compound statement header and indent its body."""
        self.line(header)
        with self.indent():
            yield

    def docstring(self, *texts: str) -> None:
        """Write a docstring; a single short line stays on one line."""
        texts = tuple(docstring_safe(text) for text in texts)
        if len(texts) == 1 and len(INDENT * self.depth + texts[0]) < 90:
            text = texts[0]
            if text.endswith('"'):
                text = text[:-1] + '\\"'
            self.line(f'"""{text}"""')
            return
        self.line('"""')
        for text in texts:
            self.line(text)
        self.line('"""')
