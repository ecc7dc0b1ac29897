"""Dot syntax - decides whether `obj.name` reads a property or calls a method.

Examples:
    form.render()              -> form.render()
    user.getId                 -> user.getId()
    user.name                  -> user.name
    user.getCreatedAt.format() -> user.getCreatedAt().format()
    items.first().is_active    -> items.first().is_active()
    items.0.name               -> items[0].name
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from viewc.compiler.placeholders import PlaceholderManager
from viewc.compiler.policy import ErrorPolicy
from viewc.compiler.strings import StringProtector
from viewc.config import CompilerSettings
from viewc.exceptions import AmbiguousMemberError, NonConvergentError

log = logging.getLogger(__name__)

# `.name` after an identifier, a closing bracket or a placeholder token,
# optionally followed by an opening paren
MEMBER_RE = re.compile(r"(?<=[\w)\]#])\s*\.\s*([A-Za-z_][A-Za-z0-9_]*)(\s*\()?")

# `.0` after a name or a closing bracket: a numeric member, read as an index
NUMERIC_MEMBER_RE = re.compile(r"(?<=[\w)\]#])\.(\d+)(?!\w)")
LAST_WORD_RE = re.compile(r"[\w#]*$")

# Members of these roots are never rewritten
RESERVED_LEFT_RE = re.compile(r"(?<![\w.#])(?:ctx|self|self\.app)$")

ACCESSOR_VERBS = (
    "get",
    "set",
    "is",
    "has",
    "can",
    "should",
    "will",
    "do",
    "make",
    "create",
    "find",
    "save",
    "delete",
    "update",
    "remove",
    "add",
    "clear",
    "reset",
    "load",
    "fetch",
    "build",
    "generate",
    "render",
    "format",
    "to",
)

# The verb must end the name or be followed by a word boundary in camelCase
# or snake_case: isAdmin, is_admin, render; not issue, total, settings.
VERB_RE = re.compile(r"^(?:%s)(?:[A-Z0-9_]|$)" % "|".join(ACCESSOR_VERBS))


def looks_like_method(name: str) -> bool:
    """Verb-prefix heuristic for members written without parens."""
    return VERB_RE.match(name[:1].lower() + name[1:]) is not None


class DotSyntaxTransformer:
    """Rewrites member access left to right, one member per iteration."""

    def __init__(
        self,
        settings: Optional[CompilerSettings] = None,
        policy: Optional[ErrorPolicy] = None,
    ):
        self.settings = settings or CompilerSettings()
        self.policy = policy or ErrorPolicy.from_settings(self.settings)

    def transform(self, expression: str) -> str:
        placeholders = PlaceholderManager()
        masked = StringProtector(placeholders, tag="DOT_STRING").protect_strings(expression)
        masked = NUMERIC_MEMBER_RE.sub(_index_numeric_member, masked)

        limit = self.settings.max_member_rewrites
        rewrites = 0
        pos = 0
        while True:
            match = MEMBER_RE.search(masked, pos)
            if match is None:
                break
            if rewrites >= limit:
                self.policy.report(NonConvergentError("member rewriting", limit, expression))
                break

            replacement = self._rewrite(masked, match, expression)
            masked = masked[: match.start()] + replacement + masked[match.end() :]
            pos = match.start() + len(replacement)
            rewrites += 1

        return placeholders.restore(masked)

    def _rewrite(self, masked: str, match: "re.Match[str]", expression: str) -> str:
        name = match.group(1)
        if RESERVED_LEFT_RE.search(masked[: match.start()]):
            return f".{name}" + ("(" if match.group(2) else "")

        if match.group(2) is not None:
            return f".{name}("

        if self._is_method(name, expression):
            return f".{name}()"
        return f".{name}"

    def _is_method(self, name: str, expression: str) -> bool:
        if name in self.settings.property_names:
            return False
        if name in self.settings.method_names:
            return True
        if looks_like_method(name):
            return True

        # Nothing declares this member; it is read as a property
        self.policy.report(AmbiguousMemberError(name, expression))
        return False


def _index_numeric_member(match: "re.Match[str]") -> str:
    # `1.5` is a float literal, not a member access
    left = LAST_WORD_RE.search(match.string, 0, match.start()).group(0)
    if left.isdigit():
        return match.group(0)
    return f"[{match.group(1)}]"
