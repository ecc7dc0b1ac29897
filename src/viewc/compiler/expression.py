"""Expression compilation - `{{ ... }}` regions to Python output statements.

ExpressionParser turns one template expression into a Python expression:

    user.getName()            -> ctx.user.getName()
    title|upper               -> str.upper(ctx.title)
    route('post', id=post.id) -> self.route('post', id=ctx.post.id)
    app.user.name             -> self.app.user.name
    a && !b                   -> ctx.a and not ctx.b

ExpressionCompiler finds the regions in a template and wraps each parsed
expression in an escaped or raw output statement.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from viewc.compiler.dot_syntax import DotSyntaxTransformer
from viewc.compiler.filters import FilterTransformer
from viewc.compiler.helpers import BARE_HELPERS, MARKUP_METHODS, Helper, is_helper
from viewc.compiler.keywords import KeywordTable
from viewc.compiler.placeholders import PlaceholderManager, has_tokens
from viewc.compiler.policy import ErrorPolicy
from viewc.compiler.scanner import CLOSERS, OPENERS, find_matching, string_end
from viewc.compiler.spec import (
    CONTEXT_NAME,
    SIGIL,
    Region,
    RegionKind,
    line_of,
    output,
    statement,
)
from viewc.compiler.strings import StringProtector
from viewc.compiler.variables import VariableTransformer
from viewc.config import CompilerSettings
from viewc.exceptions import UnterminatedRegionError

log = logging.getLogger(__name__)

# Properties reachable through the `app` accessor object
APP_PROPERTIES = ("user", "session", "request", "flashes", "debug", "environment")
APP_RE = re.compile(r"(?<![\w.#])app\.(%s)(?!\w)" % "|".join(APP_PROPERTIES))

LEADING_CALL_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*\(")
HELPER_CALL_RE = re.compile(r"(?<![\w.#])([A-Za-z_][A-Za-z0-9_]*)(?=\s*\()")

# Words that may precede a paren without being a function name
OPERATOR_WORDS = frozenset({"not", "and", "or", "in", "is", "if", "else", "for", "lambda"})

# Template operator spellings and their Python equivalents
OPERATORS = (
    (re.compile(r"\s*&&\s*"), " and "),
    (re.compile(r"\s*\|\|\s*"), " or "),
    (re.compile(r"(?<![\w.#])true(?!\w)"), "True"),
    (re.compile(r"(?<![\w.#])false(?!\w)"), "False"),
    (re.compile(r"(?<![\w.#])(?:null|none)(?!\w)"), "None"),
)
NEGATION_RE = re.compile(r"!(?!=)\s*")


class ExpressionParser:
    """Compiles a single template expression to a Python expression."""

    def __init__(
        self,
        settings: Optional[CompilerSettings] = None,
        policy: Optional[ErrorPolicy] = None,
        keywords: Optional[KeywordTable] = None,
    ):
        self.settings = settings or CompilerSettings()
        self.policy = policy or ErrorPolicy.from_settings(self.settings)
        self.keywords = keywords or KeywordTable()
        self.dot_syntax = DotSyntaxTransformer(self.settings, self.policy)
        self.filters = FilterTransformer(self.policy)
        self.variables = VariableTransformer(self.keywords, self.settings, self.policy)

    def parse(self, expression: str) -> str:
        expression = expression.strip()
        if not expression:
            return ""

        # Already compiled
        if expression.startswith(SIGIL):
            return expression

        expression = self._outside_strings(expression, self._rewrite_app)
        expression = self.filters.transform(expression)
        expression = self._outside_strings(expression, self._normalize_operators)

        # (expr) is parsed inside its parens
        if expression.startswith("(") and find_matching(expression, 0) == len(expression) - 1:
            return f"({self.parse(expression[1:-1])})"

        match = LEADING_CALL_RE.match(expression)
        if match and match.group(1) not in OPERATOR_WORDS:
            compiled = self._parse_leading_call(expression, match)
            if compiled is not None:
                return compiled

        return self.compile_fragment(expression)

    def compile_fragment(self, expression: str) -> str:
        """Helper qualification, dot syntax and variable promotion, in that order."""
        expression = self._outside_strings(expression, self._qualify_helpers)
        expression = self.dot_syntax.transform(expression)
        return self.variables.transform(expression)

    # ------------------------------------------------------------------
    # steps
    # ------------------------------------------------------------------

    def _parse_leading_call(self, expression: str, match: "re.Match[str]") -> Optional[str]:
        name = match.group(1)
        open_pos = match.end() - 1
        close = find_matching(expression, open_pos)
        if close is None:
            log.debug("Unbalanced call in %r", expression)
            return None

        args = expression[open_pos + 1 : close].strip()
        if args:
            args = self.compile_fragment(args)

        helper = Helper.lookup(name)
        call = helper.call(args) if helper else f"{name}({args})"

        tail = expression[close + 1 :]
        if not tail.strip():
            return call

        # The tail sees the call as an opaque operand
        placeholders = PlaceholderManager()
        token = placeholders.mint(call, "CALL")
        return placeholders.restore(self.compile_fragment(token + tail))

    @staticmethod
    def _rewrite_app(expression: str) -> str:
        return APP_RE.sub(lambda m: f"{CONTEXT_NAME}.app.{m.group(1)}", expression)

    @staticmethod
    def _normalize_operators(expression: str) -> str:
        for pattern, replacement in OPERATORS:
            expression = pattern.sub(replacement, expression)

        def negate(match: "re.Match[str]") -> str:
            before = expression[match.start() - 1] if match.start() > 0 else ""
            prefix = " " if before and not before.isspace() and before not in "([{" else ""
            return prefix + "not "

        expression = NEGATION_RE.sub(negate, expression).strip()
        return rewrite_ternaries(expression)

    @staticmethod
    def _qualify_helpers(expression: str) -> str:
        def qualify(match: "re.Match[str]") -> str:
            name = match.group(1)
            if is_helper(name):
                return f"{CONTEXT_NAME}.{name}"
            return name

        return HELPER_CALL_RE.sub(qualify, expression)

    @staticmethod
    def _outside_strings(expression: str, rewrite) -> str:
        placeholders = PlaceholderManager()
        masked = StringProtector(placeholders, tag="PARSER_STRING").protect_strings(expression)
        return placeholders.restore(rewrite(masked))


def rewrite_ternaries(expression: str) -> str:
    """`c ? a : b` to `(a if c else b)` and `a ?: b` to `(a or b)`.

    Bracketed groups are rewritten first, then each comma-separated item of
    the top level. Expects string literals to be masked already.
    """
    parts: list[str] = []
    i = 0
    while i < len(expression):
        char = expression[i]
        if char in OPENERS:
            close = find_matching(expression, i)
            if close is None:
                parts.append(expression[i:])
                break
            parts.append(char + rewrite_ternaries(expression[i + 1 : close]) + expression[close])
            i = close + 1
            continue
        parts.append(char)
        i += 1

    items = _split_top_level("".join(parts), ",")
    return ",".join(_rewrite_item(item) for item in items)


def _rewrite_item(item: str) -> str:
    question = _find_top_level(item, "?")
    if question == -1:
        return item
    colon = _pairing_colon(item, question)
    if colon == -1:
        return item

    # `key: c ? a : b` and `lambda x: c ? a : b` keep their prefix
    start = max((pos + 1 for pos in _top_level_positions(item, ":") if pos < question), default=0)
    condition = item[start:question]
    leading = condition[: len(condition) - len(condition.lstrip())]

    when_true = item[question + 1 : colon].strip()
    when_false = _rewrite_item(item[colon + 1 :]).strip()
    if not when_true:
        rewritten = f"({condition.strip()} or {when_false})"
    else:
        rewritten = f"({_rewrite_item(when_true)} if {condition.strip()} else {when_false})"
    return item[:start] + leading + rewritten


def _pairing_colon(item: str, question: int) -> int:
    """The top-level `:` closing the `?` at `question`, or -1."""
    pending = 0
    for pos, char in _top_level_chars(item, "?:", question + 1):
        if char == "?":
            pending += 1
        elif pending == 0:
            return pos
        else:
            pending -= 1
    return -1


def _split_top_level(expression: str, separator: str) -> list[str]:
    items: list[str] = []
    start = 0
    for pos in _top_level_positions(expression, separator):
        items.append(expression[start:pos])
        start = pos + 1
    items.append(expression[start:])
    return items


def _find_top_level(expression: str, char: str) -> int:
    return next(iter(_top_level_positions(expression, char)), -1)


def _top_level_positions(expression: str, char: str) -> list[int]:
    return [pos for pos, _ in _top_level_chars(expression, char)]


def _top_level_chars(expression: str, chars: str, start: int = 0) -> list[tuple[int, str]]:
    found: list[tuple[int, str]] = []
    depth = 0
    for i in range(start, len(expression)):
        current = expression[i]
        if current in OPENERS:
            depth += 1
        elif current in CLOSERS:
            depth -= 1
        elif current in chars and depth == 0:
            found.append((i, current))
    return found


# =============================================================================
# {{ ... }} regions
# =============================================================================

PRE_OPEN_RE = re.compile(r"<pre\b", re.IGNORECASE)
PRE_CLOSE_RE = re.compile(r"</pre\s*>", re.IGNORECASE)

RAW_SUFFIX_RE = re.compile(r"\|\s*raw\s*$")
ASSIGNMENT_RE = re.compile(r"^(?:ctx\.)?([A-Za-z_][A-Za-z0-9_]*)\s*=(?!=)(.*)$", re.DOTALL)
IDENTIFIER_ONLY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
STATEMENT_CALL_RE = re.compile(r"^self\.([A-Za-z_][A-Za-z0-9_]*)\(")


class ExpressionCompiler:
    """Replaces every `{{ expr }}` region with an output statement."""

    def __init__(self, parser: ExpressionParser, policy: Optional[ErrorPolicy] = None):
        self.parser = parser
        self.policy = policy or parser.policy

    def compile(self, text: str) -> str:
        pos = 0
        while True:
            start = text.find("{{", pos)
            if start == -1:
                break

            if _inside_pre(text, start):
                close = text.find("}}", start + 2)
                if close == -1:
                    break
                pos = close + 2
                continue

            end = find_region_end(text, start)
            if end is None:
                line = line_of(text, start)
                marker = self.policy.report(
                    UnterminatedRegionError("interpolation", line, text[start : start + 40])
                )
                text = text[:start] + marker + text[start:]
                pos = start + len(marker) + 2
                continue

            region = Region(start, end, RegionKind.INTERPOLATION, line_of(text, start))
            expression = region.inner(text).strip()
            if not expression:
                pos = region.end
                continue

            compiled = self.compile_expression(expression)
            text = text[: region.start] + compiled + text[region.end :]
            pos = region.start + len(compiled)

        return text

    def compile_expression(self, expression: str) -> str:
        """Compile the inside of one region to an output or assignment statement."""
        raw = False
        if expression.startswith("!") and not expression.startswith("!="):
            expression = expression[1:].strip()
            raw = True
        if RAW_SUFFIX_RE.search(expression):
            raw = True

        assignment = ASSIGNMENT_RE.match(expression)
        if assignment:
            value = self.parser.parse(assignment.group(2))
            return statement(f"{SIGIL}{assignment.group(1)} = {value}")

        if IDENTIFIER_ONLY_RE.match(expression):
            helper = Helper.lookup(expression)
            if helper in BARE_HELPERS:
                return output(helper.call())

        compiled = self.parser.parse(expression)
        if has_tokens(compiled):
            log.warning("Placeholder left in compiled expression: %r", compiled)

        call = STATEMENT_CALL_RE.match(compiled)
        if call and find_matching(compiled, call.end() - 1) == len(compiled) - 1:
            helper = Helper.lookup(call.group(1))
            if helper is not None and helper.statement:
                return statement(compiled)

        if raw or returns_markup(compiled):
            return output(compiled)
        return output(f"{CONTEXT_NAME}.e({compiled})")


def returns_markup(compiled: str) -> bool:
    """True when a compiled expression calls a helper or method that returns markup."""
    placeholders = PlaceholderManager()
    masked = StringProtector(placeholders).protect_strings(compiled)

    for match in re.finditer(r"(?<![\w.])self\.([A-Za-z_][A-Za-z0-9_]*)\s*\(", masked):
        helper = Helper.lookup(match.group(1))
        if helper is not None and helper.returns_markup:
            return True

    methods = "|".join(sorted(MARKUP_METHODS))
    return re.search(r"\.(?:%s)\s*\(" % methods, masked) is not None


def find_region_end(text: str, start: int) -> Optional[int]:
    """Offset just past the `}}` closing the `{{` at `start`.

    Parens, brackets, single braces, nested `{{ }}` pairs and string literals
    do not close the region. Returns None when it is never closed.
    """
    parens = 0
    braces = 0
    nested = 0
    i = start + 2
    while i < len(text):
        char = text[i]
        pair = text[i : i + 2]

        if char in "'\"":
            end = string_end(text, i)
            if end is None:
                return None
            i = end
            continue

        if pair == "{{":
            nested += 1
            i += 2
            continue
        if char == "{":
            braces += 1
        elif char == "}" and braces > 0:
            braces -= 1
        elif pair == "}}":
            if nested == 0 and parens == 0:
                return i + 2
            nested = max(nested - 1, 0)
            i += 2
            continue
        elif char in "([":
            parens += 1
        elif char in ")]":
            parens = max(parens - 1, 0)
        i += 1
    return None


def _inside_pre(text: str, pos: int) -> bool:
    opened = [m.start() for m in PRE_OPEN_RE.finditer(text, 0, pos)]
    if not opened:
        return False
    closed = [m.start() for m in PRE_CLOSE_RE.finditer(text, 0, pos)]
    return not closed or opened[-1] > closed[-1]
