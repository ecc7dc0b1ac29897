"""Balanced-delimiter scanning shared by the compiler stages."""

from __future__ import annotations

import re

IDENTIFIER = r"[A-Za-z_][A-Za-z0-9_]*"
IDENTIFIER_RE = re.compile(IDENTIFIER)

QUOTES = ("'", '"')
OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")": "(", "]": "[", "}": "{"}


def is_escaped(text: str, pos: int, floor: int = 0) -> bool:
    """True when the character at `pos` is preceded by an odd run of backslashes."""
    count = 0
    i = pos - 1
    while i >= floor and text[i] == "\\":
        count += 1
        i -= 1
    return count % 2 == 1


def string_end(text: str, start: int) -> int | None:
    """Offset just past the literal opened by the quote at `start`.

    Returns None when the literal is never terminated.
    """
    quote = text[start]
    i = start + 1
    while i < len(text):
        if text[i] == quote and not is_escaped(text, i, start + 1):
            return i + 1
        i += 1
    return None


def next_quote(text: str, offset: int = 0) -> int:
    """Offset of the next quote character at or after `offset`, or -1."""
    positions = [p for p in (text.find(q, offset) for q in QUOTES) if p != -1]
    return min(positions) if positions else -1


def find_matching(text: str, open_pos: int) -> int | None:
    """Offset of the bracket closing the one at `open_pos`.

    Nested (), [] and {} and quoted literals are skipped. Returns None when
    the group is unbalanced or runs off the end of the text.
    """
    stack: list[str] = []
    i = open_pos
    while i < len(text):
        char = text[i]
        if char in QUOTES:
            end = string_end(text, i)
            if end is None:
                return None
            i = end
            continue
        if char in OPENERS:
            stack.append(char)
        elif char in CLOSERS:
            if not stack or stack[-1] != CLOSERS[char]:
                return None
            stack.pop()
            if not stack:
                return i
        i += 1
    return None


def previous_char(text: str, pos: int) -> str:
    """First non-space character before `pos`, or an empty string."""
    i = pos - 1
    while i >= 0 and text[i].isspace():
        i -= 1
    return text[i] if i >= 0 else ""

