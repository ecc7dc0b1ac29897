"""Variable protection and promotion.

Bare identifiers in template expressions name template variables unless
their position says otherwise. `VariableTransformer` promotes them to
`ctx.name`; `VariableProtector` hides references that are already promoted
so that later passes cannot promote them twice (`ctx.ctx.user`).

Examples:
    user                      -> ctx.user
    user.getId()              -> ctx.user.getId()
    items[index]              -> ctx.items[ctx.index]
    len(items) > limit        -> len(ctx.items) > ctx.limit
    route('show', id=post.id) -> route('show', id=ctx.post.id)
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from viewc.compiler.keywords import KeywordTable
from viewc.compiler.placeholders import PlaceholderManager
from viewc.compiler.policy import ErrorPolicy
from viewc.compiler.scanner import IDENTIFIER_RE, find_matching, previous_char
from viewc.compiler.spec import SIGIL
from viewc.compiler.strings import StringProtector
from viewc.config import CompilerSettings
from viewc.exceptions import NonConvergentError

# Start of an already-promoted reference
SIGIL_RE = re.compile(r"(?<![\w.#])ctx\.(?=[A-Za-z_])")

# A bare identifier: not glued to a word char, a dot or a placeholder token
CANDIDATE_RE = re.compile(r"(?<![\w.#])([A-Za-z_][A-Za-z0-9_]*)(?![\w#])")

# Parameter list of a lambda
LAMBDA_RE = re.compile(r"(?<![\w.#])lambda\b([^:]*):")

Predicate = Callable[[str, "re.Match[str]"], bool]


class VariableProtector:
    """Masks `ctx.name` references together with their access chains."""

    def __init__(
        self, placeholders: PlaceholderManager, max_variables: int = 50, tag: str = "VAR"
    ):
        self.placeholders = placeholders
        self.max_variables = max_variables
        self.tag = tag

    def protect(self, expression: str) -> str:
        offset = 0
        protected = 0
        while protected < self.max_variables:
            match = SIGIL_RE.search(expression, offset)
            if match is None:
                break

            start = match.start()
            end = self._chain_end(expression, match.end())
            token = self.placeholders.mint(expression[start:end], self.tag)
            expression = expression[:start] + token + expression[end:]
            offset = start + len(token)
            protected += 1

        return expression

    def restore(self, expression: str) -> str:
        return self.placeholders.restore(expression, tags=(self.tag,))

    @staticmethod
    def _chain_end(expression: str, pos: int) -> int:
        """End of `name(.member | [index] | (args))*` starting at `pos`."""
        i = IDENTIFIER_RE.match(expression, pos).end()
        while i < len(expression):
            char = expression[i]
            if char == ".":
                member = IDENTIFIER_RE.match(expression, i + 1)
                if member is None:
                    break
                i = member.end()
            elif char in "([":
                close = find_matching(expression, i)
                if close is None:
                    break
                i = close + 1
            else:
                break
        return i


class VariableTransformer:
    """Promotes bare identifiers to `ctx.` variable references."""

    def __init__(
        self,
        keywords: KeywordTable,
        settings: Optional[CompilerSettings] = None,
        policy: Optional[ErrorPolicy] = None,
    ):
        self.keywords = keywords
        self.settings = settings or CompilerSettings()
        self.policy = policy or ErrorPolicy.from_settings(self.settings)

    def transform(self, expression: str) -> str:
        placeholders = PlaceholderManager()
        strings = StringProtector(placeholders)
        protector = VariableProtector(placeholders, self.settings.max_protected_variables)

        # Step 1: literals and existing references are opaque from here on
        expression = strings.protect_strings(expression)
        expression = protector.protect(expression)

        # Step 2: objects whose members or items are accessed
        expression = self._fixed_point(
            expression, protector, self._is_accessed, "chained access promotion"
        )

        # Step 3: objects after a conditional or mapping separator
        expression = self._fixed_point(
            expression, protector, self._follows_separator, "ternary promotion"
        )

        # Step 4: indices and call arguments of protected chains
        expression = self._promote_groups(expression, protector)

        # Step 5: everything else that is still bare
        expression = self._fixed_point(expression, protector, None, "variable promotion")

        expression = protector.restore(expression)
        return placeholders.restore(expression)

    # ------------------------------------------------------------------
    # passes
    # ------------------------------------------------------------------

    def _fixed_point(
        self,
        expression: str,
        protector: VariableProtector,
        predicate: Optional[Predicate],
        stage: str,
    ) -> str:
        limit = self.settings.max_iterations
        for _ in range(limit):
            expression, count = self._promote(expression, predicate)
            if count == 0:
                return expression
            expression = protector.protect(expression)

        _, remaining = self._promote(expression, predicate)
        if remaining:
            self.policy.report(NonConvergentError(stage, limit, expression))
        return expression

    def _promote_groups(self, expression: str, protector: VariableProtector) -> str:
        # Chains are unmasked so their [..] and (..) groups become visible;
        # literals stay masked.
        unmasked = protector.restore(expression)
        parts: list[str] = []
        i = 0
        while i < len(unmasked):
            char = unmasked[i]
            if char not in "([":
                parts.append(char)
                i += 1
                continue

            close = find_matching(unmasked, i)
            if close is None:
                parts.append(unmasked[i:])
                break

            inner, _ = self._promote(unmasked[i + 1 : close], None)
            parts.append(char + inner + unmasked[close])
            i = close + 1

        return protector.protect("".join(parts))

    def _promote(
        self, expression: str, predicate: Optional[Predicate]
    ) -> tuple[str, int]:
        count = 0

        def replace(match: "re.Match[str]") -> str:
            nonlocal count
            name = match.group(1)
            if not self._is_variable(expression, match):
                return name
            if predicate is not None and not predicate(expression, match):
                return name
            count += 1
            return SIGIL + name

        return CANDIDATE_RE.sub(replace, expression), count

    # ------------------------------------------------------------------
    # classification
    # ------------------------------------------------------------------

    def _is_variable(self, expression: str, match: "re.Match[str]") -> bool:
        name = match.group(1)
        if self.keywords.is_keyword(name):
            return False

        # Lambda parameters, in the parameter list and in the body
        if name in _lambda_parameters(expression):
            return False

        # Member or method name: stays bare
        if previous_char(expression, match.start()) == ".":
            return False

        following, at = _peek(expression, match.end())
        # Function name
        if following == "(":
            return False
        # Keyword argument name (`id=...`, but not `id == ...`)
        if following == "=" and expression[at + 1 : at + 2] != "=":
            return False
        return True

    @staticmethod
    def _is_accessed(expression: str, match: "re.Match[str]") -> bool:
        following, _ = _peek(expression, match.end())
        return following in (".", "[")

    @staticmethod
    def _follows_separator(expression: str, match: "re.Match[str]") -> bool:
        following, _ = _peek(expression, match.end())
        if following != ".":
            return False
        before = expression[: match.start()].rstrip()
        return before.endswith(("?", ":")) or re.search(r"\b(?:if|else)$", before) is not None


def _lambda_parameters(expression: str) -> set[str]:
    names: set[str] = set()
    for match in LAMBDA_RE.finditer(expression):
        names.update(IDENTIFIER_RE.findall(match.group(1)))
    return names


def _peek(expression: str, pos: int) -> tuple[str, int]:
    """First non-space character at or after `pos` and its offset."""
    i = pos
    while i < len(expression) and expression[i].isspace():
        i += 1
    if i < len(expression):
        return expression[i], i
    return "", i
