"""Helper table - functions that compile to calls on the rendering context.

Each helper carries the metadata the compilers need to wrap its calls:
whether it returns markup (emitted unescaped), whether it is a bound method
of the rendering context, and whether it is a statement (called for its
effect, never printed).
"""

from __future__ import annotations

from enum import Enum

from viewc.compiler.spec import CONTEXT_NAME


class Helper(Enum):
    # name, returns_markup, bound, statement
    SECTION = ("section", True, True, False)
    BLOCK = ("block", True, True, False)
    COMPONENT = ("component", True, True, False)
    CSS = ("css", True, True, False)
    JS = ("js", True, True, False)
    CSRF_INPUT = ("csrf_input", True, True, False)
    DUMP = ("dump", True, True, False)
    EXTEND = ("extend", False, True, True)
    START = ("start", False, True, True)
    END = ("end", False, True, True)
    ROUTE = ("route", False, True, False)
    PATH = ("path", False, True, False)
    URL = ("url", False, True, False)
    ASSET = ("asset", False, True, False)
    HAS_ROUTE = ("has_route", False, True, False)
    ESCAPE = ("escape", False, True, False)
    E = ("e", False, True, False)
    CSRF_TOKEN = ("csrf_token", False, True, False)
    HAS_FLASH = ("has_flash", False, True, False)
    GET_FLASH = ("get_flash", False, True, False)
    GET_FLASHES = ("get_flashes", False, True, False)
    GET = ("get", False, True, False)
    HAS = ("has", False, True, False)
    PAIRS = ("pairs", False, True, False)

    def __init__(self, helper_name: str, returns_markup: bool, bound: bool, statement: bool):
        self.helper_name = helper_name
        self.returns_markup = returns_markup
        self.bound = bound
        self.statement = statement

    @classmethod
    def lookup(cls, name: str) -> "Helper | None":
        return _BY_NAME.get(name)

    def call(self, args: str = "") -> str:
        """Compiled call expression for this helper."""
        target = f"{CONTEXT_NAME}.{self.helper_name}" if self.bound else self.helper_name
        return f"{target}({args})"


_BY_NAME = {helper.helper_name: helper for helper in Helper}

# Methods that return markup when called on any object (form.render())
MARKUP_METHODS = frozenset({"render"})


def is_helper(name: str) -> bool:
    return name in _BY_NAME

# Markup helpers that may be written without parens: {{ csrf_input }}
BARE_HELPERS = frozenset({Helper.CSRF_INPUT, Helper.DUMP})
