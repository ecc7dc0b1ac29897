"""Compiler IR spec - transient records produced while compiling one template."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# Compiled-output markers understood by the Renderer
STATEMENT_OPEN = "<?py "
OUTPUT_OPEN = "<?py= "
CODE_CLOSE = " ?>"

# Host variable sigil: template variable `name` compiles to `ctx.name`
SIGIL = "ctx."
CONTEXT_NAME = "self"


class RegionKind(str, Enum):
    """Kind of delimiter-bounded region in template source."""

    INTERPOLATION = "interpolation"  # {{ ... }}
    CONTROL = "control"  # {% ... %}


@dataclass(frozen=True)
class Region:
    """A slice of template source identified by balanced-delimiter scanning."""

    start: int  # offset of the opening delimiter
    end: int  # offset just past the closing delimiter
    kind: RegionKind
    line: int = 1

    def inner(self, source: str) -> str:
        """Text between the delimiters."""
        return source[self.start + 2 : self.end - 2]


@dataclass(frozen=True)
class FilterApplication:
    """One `|name` or `|name(args)` segment of a filter chain."""

    name: str
    args: Optional[str] = None  # None when written without parens
    tail: str = ""  # operators after the filter, e.g. " > 3" in `items|length > 3`


@dataclass(frozen=True)
class Diagnostic:
    """A compile problem recorded by the error policy."""

    kind: str  # exception class name, e.g. "UnterminatedRegionError"
    message: str
    line: Optional[int] = None


def statement(code: str) -> str:
    """Wrap a Python statement in statement markers."""
    return f"{STATEMENT_OPEN}{code}{CODE_CLOSE}"


def output(expr: str) -> str:
    """Wrap a Python expression in output markers."""
    return f"{OUTPUT_OPEN}{expr}{CODE_CLOSE}"


def line_of(source: str, offset: int) -> int:
    """1-based line number of an offset."""
    return source.count("\n", 0, offset) + 1
