"""Splitting assembly source into lines of words."""

from __future__ import annotations

import os
import re
from collections.abc import Iterator

MAX_LINES = 1000
MAX_WORDS = 6
MAX_LINE_LENGTH = 126

_WHITESPACE = frozenset(" \t\n\r\v\f")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "0": "\0"}
_PHYSICAL_LINE = re.compile(r"[^\n]*\n?")


def _read_quoted(line: str, pos: int) -> tuple[str, int]:
    """Read a quoted word starting just after the opening quote."""
    chars: list[str] = []
    end = len(line)
    while pos < end and line[pos] != '"':
        if line[pos] == "\\":
            pos += 1
            nxt = line[pos] if pos < end else ""
            if nxt in _ESCAPES:
                chars.append(_ESCAPES[nxt])
            else:
                chars.append("\\")
                if nxt:
                    chars.append(nxt)
            if nxt:
                pos += 1
        else:
            chars.append(line[pos])
            pos += 1
        if len(chars) >= MAX_LINE_LENGTH - 1:
            break
    if pos < end and line[pos] == '"':
        pos += 1
    # A NUL ends the stored word.
    return "".join(chars).split("\0", 1)[0], pos


def tokenize_line(line: str) -> list[str]:
    """Split one line into at most MAX_WORDS words.

    Words are separated by whitespace; a word opening with a double quote runs
    to the closing quote and understands the escapes \\n, \\t, \\r, \\\\, \\" and \\0.
    """
    words: list[str] = []
    pos = 0
    end = len(line)
    while pos < end and len(words) < MAX_WORDS:
        while pos < end and line[pos] in _WHITESPACE:
            pos += 1
        if pos >= end:
            break
        if line[pos] == '"':
            word, pos = _read_quoted(line, pos + 1)
        else:
            start = pos
            while pos < end and line[pos] not in _WHITESPACE:
                pos += 1
            word = line[start:pos][: MAX_LINE_LENGTH - 1]
        words.append(word)
    return words


def _chunks(text: str) -> Iterator[str]:
    """Yield lines as a fixed-size line reader would, splitting over-long ones."""
    size = MAX_LINE_LENGTH - 1
    for match in _PHYSICAL_LINE.finditer(text):
        physical = match.group()
        if not physical:
            continue
        for start in range(0, len(physical), size):
            yield physical[start:start + size]


def read_source(text: str) -> list[list[str]]:
    """Tokenize source text into at most MAX_LINES lines of words."""
    lines: list[list[str]] = []
    for chunk in _chunks(text):
        if len(lines) >= MAX_LINES:
            break
        lines.append(tokenize_line(chunk))
    return lines


def read_file(path: str | os.PathLike[str]) -> list[list[str]]:
    """Read and tokenize an assembly source file."""
    with open(path, encoding="utf-8", newline="") as handle:
        return read_source(handle.read())