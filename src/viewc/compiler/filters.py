"""Filter transformer - pipe filters to nested calls.

Examples:
    name|upper                -> str.upper(name)
    value|upper|trim          -> str.strip(str.upper(value))
    items|first               -> items[:1]
    post.created|date('%d/%m') -> post.created.strftime('%d/%m')
    tags|join(', ')           -> self.join(tags, ', ')
    items|length > 3          -> len(items) > 3
"""

from __future__ import annotations

import re
from typing import Optional

from viewc.compiler.placeholders import PlaceholderManager
from viewc.compiler.policy import ErrorPolicy
from viewc.compiler.scanner import CLOSERS, OPENERS, find_matching
from viewc.compiler.spec import CONTEXT_NAME, FilterApplication
from viewc.compiler.strings import StringProtector
from viewc.exceptions import FilterSyntaxError

# Known filters and the callable each one compiles to
FILTERS = {
    "upper": "str.upper",
    "lower": "str.lower",
    "capitalize": "str.capitalize",
    "title": "str.title",
    "trim": "str.strip",
    "length": "len",
    "count": "len",
    "json": f"{CONTEXT_NAME}.json",
    "nl2br": f"{CONTEXT_NAME}.nl2br",
    "e": f"{CONTEXT_NAME}.e",
    "escape": f"{CONTEXT_NAME}.e",
    "default": f"{CONTEXT_NAME}.default",
    "join": f"{CONTEXT_NAME}.join",
}

RAW_FILTER = "raw"
DEFAULT_DATE_FORMAT = "'%Y-%m-%d %H:%M:%S'"

SEGMENT_NAME_RE = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)")

# Values that can take a postfix ([..] or .method) without parens
POSTFIX_SAFE_RE = re.compile(r"^(?:[A-Za-z_][A-Za-z0-9_]*|##[A-Z_]+_\d+##)(?:\.[A-Za-z_][A-Za-z0-9_]*)*$")


def split_by_pipe(expression: str) -> list[str]:
    """Split on `|` at bracket depth zero, leaving `||` alone.

    Expects string literals to be masked already.
    """
    parts: list[str] = []
    depth = 0
    buffer: list[str] = []
    for i, char in enumerate(expression):
        if char in OPENERS:
            depth += 1
        elif char in CLOSERS:
            depth -= 1

        if char == "|" and depth == 0:
            before = expression[i - 1] if i > 0 else ""
            after = expression[i + 1] if i + 1 < len(expression) else ""
            if before != "|" and after != "|":
                parts.append("".join(buffer))
                buffer = []
                continue
        buffer.append(char)

    parts.append("".join(buffer))
    return parts


def parse_chain(
    expression: str, policy: Optional[ErrorPolicy] = None
) -> tuple[str, list[FilterApplication]]:
    """Base value and the filters applied to it, in order.

    Malformed segments are reported through `policy` and dropped.
    """
    policy = policy or ErrorPolicy()
    segments = split_by_pipe(expression)
    base = segments[0].strip()
    chain: list[FilterApplication] = []
    for segment in segments[1:]:
        segment = segment.strip()
        if not segment:
            continue
        application = parse_segment(segment)
        if application is None:
            policy.report(FilterSyntaxError(segment, expression))
            continue
        chain.append(application)
    return base, chain


def parse_segment(segment: str) -> Optional[FilterApplication]:
    """`name`, `name(args)` and whatever operators follow them.

    Returns None when the segment does not start with a filter name.
    """
    match = SEGMENT_NAME_RE.match(segment)
    if match is None:
        return None

    args = None
    end = match.end()
    paren = end
    while paren < len(segment) and segment[paren].isspace():
        paren += 1
    if paren < len(segment) and segment[paren] == "(":
        close = find_matching(segment, paren)
        if close is None:
            return None
        args = segment[paren + 1 : close]
        end = close + 1

    return FilterApplication(match.group(1), args, segment[end:].rstrip())


def apply_filter(value: str, application: FilterApplication) -> str:
    """Wrap `value` in one filter application, then append its operator tail."""
    return _wrap(value, application) + application.tail


def _wrap(value: str, application: FilterApplication) -> str:
    name = application.name
    args = application.args.strip() if application.args is not None else ""

    if name == RAW_FILTER:
        return value
    if name == "first":
        return f"{_postfix_safe(value)}[:1]"
    if name == "date":
        return f"{_postfix_safe(value)}.strftime({args or DEFAULT_DATE_FORMAT})"

    target = FILTERS.get(name, name)
    if args:
        return f"{target}({value}, {args})"
    return f"{target}({value})"


def _postfix_safe(value: str) -> str:
    if POSTFIX_SAFE_RE.match(value):
        return value
    if value.startswith("(") and find_matching(value, 0) == len(value) - 1:
        return value
    return f"({value})"


class FilterTransformer:
    """Rewrites `value|f|g(args)` into `g(f(value), args)`."""

    def __init__(self, policy: Optional[ErrorPolicy] = None):
        self.policy = policy or ErrorPolicy()

    def transform(self, expression: str) -> str:
        placeholders = PlaceholderManager()
        masked = StringProtector(placeholders, tag="FILTER_STRING").protect_strings(expression)

        if len(split_by_pipe(masked)) == 1:
            return expression

        value, chain = parse_chain(masked, self.policy)
        for application in chain:
            value = apply_filter(value, application)
        return placeholders.restore(value)
