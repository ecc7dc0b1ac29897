"""Placeholder table - opaque tokens standing in for protected substrings."""

from __future__ import annotations

import re
from typing import Iterable

TOKEN_RE = re.compile(r"##([A-Z][A-Z_]*)_(\d+)##")
TAG_RE = re.compile(r"^[A-Z][A-Z_]*$")


class PlaceholderManager:
    """Maps `##TAG_N##` tokens to the substrings they replaced.

    One instance belongs to one expression compilation. Tokens end with
    `##`, so `##VAR_1##` is never a substring of `##VAR_10##`.
    """

    def __init__(self) -> None:
        self._placeholders: dict[str, str] = {}
        self._index = 0

    def mint(self, original: str, tag: str = "PROTECTED") -> str:
        """Record `original` under a fresh token and return the token."""
        if not TAG_RE.match(tag):
            raise ValueError(f"Invalid placeholder tag: {tag!r}")
        token = f"##{tag}_{self._index}##"
        self._index += 1
        self._placeholders[token] = original
        return token

    def protect(
        self, content: str, original: str, tag: str = "PROTECTED", start: int = 0
    ) -> str:
        """Replace the first occurrence of `original` at or after `start` with a token."""
        token = self.mint(original, tag)
        pos = content.find(original, start) if original else -1
        if pos == -1:
            return content
        return content[:pos] + token + content[pos + len(original) :]

    def restore(self, content: str, tags: Iterable[str] | None = None) -> str:
        """Put the original substrings back.

        Newest tokens are restored first: a token minted later may cover text
        that still contains older tokens.
        """
        wanted = set(tags) if tags is not None else None
        for token in reversed(list(self._placeholders)):
            if token not in content:
                continue
            if wanted is not None and TOKEN_RE.match(token).group(1) not in wanted:
                continue
            content = content.replace(token, self._placeholders[token])
        return content

    def reset(self) -> None:
        """Forget every mapping and restart numbering."""
        self._placeholders = {}
        self._index = 0

    @property
    def placeholders(self) -> dict[str, str]:
        return dict(self._placeholders)

    def __len__(self) -> int:
        return len(self._placeholders)


def has_tokens(content: str) -> bool:
    """True when `content` still contains a placeholder token."""
    return TOKEN_RE.search(content) is not None
