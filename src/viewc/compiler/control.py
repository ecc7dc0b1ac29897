"""Control structures - `{% ... %}` tags to Python block statements.

    {% for item in items %}         -> <?py for ctx.item in ctx.items: ?>
    {% for key, value in items %}   -> <?py for ctx.key, ctx.value in self.pairs(ctx.items): ?>
    {% endfor %}                    -> <?py #endfor ?>
    {% if user.isAdmin %}           -> <?py if ctx.user.isAdmin(): ?>
    {% elseif count > 1 %}          -> <?py elif ctx.count > 1: ?>
    {% else %}                      -> <?py else: ?>
    {% endif %}                     -> <?py #endif ?>
    {% extend('layout') %}          -> <?py self.extend('layout') ?>
    {% component('card', p) %}      -> <?py= self.component('card', ctx.p) ?>
    {% form.render() %}             -> <?py= ctx.form.render() ?>
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from viewc.compiler.expression import ExpressionParser
from viewc.compiler.helpers import MARKUP_METHODS, Helper
from viewc.compiler.policy import ErrorPolicy
from viewc.compiler.spec import (
    CONTEXT_NAME,
    SIGIL,
    Region,
    RegionKind,
    line_of,
    output,
    statement,
)
from viewc.exceptions import UnsupportedTagError, UnterminatedRegionError

log = logging.getLogger(__name__)

NAME = r"[A-Za-z_][A-Za-z0-9_]*"

ENDFOR_RE = re.compile(r"\{%\s*endfor\s*%\}")
ENDIF_RE = re.compile(r"\{%\s*endif\s*%\}")
ELSE_RE = re.compile(r"\{%\s*else\s*%\}")
FOR_RE = re.compile(r"\{%%\s*for\s+(%s)(?:\s*,\s*(%s))?\s+in\s+(.+?)\s*%%\}" % (NAME, NAME), re.DOTALL)
IF_RE = re.compile(r"\{%\s*if\s+(.+?)\s*%\}", re.DOTALL)
ELSEIF_RE = re.compile(r"\{%\s*(?:elseif|elif)\s+(.+?)\s*%\}", re.DOTALL)
CALL_RE = re.compile(r"\{%%\s*(%s)\s*\((.*?)\)\s*%%\}" % NAME, re.DOTALL)
METHOD_RE = re.compile(r"\{%%\s*(%s)\.(%s)\s*\((.*?)\)\s*%%\}" % (NAME, NAME), re.DOTALL)


class ControlStructureCompiler:
    """Applies the control-tag passes in a fixed order."""

    def __init__(self, parser: ExpressionParser, policy: Optional[ErrorPolicy] = None):
        self.parser = parser
        self.policy = policy or parser.policy

    def compile(self, text: str) -> str:
        passes: list[tuple[re.Pattern[str], Callable[[re.Match[str]], str]]] = [
            (ENDFOR_RE, lambda m: statement("#endfor")),
            (ENDIF_RE, lambda m: statement("#endif")),
            (ELSE_RE, lambda m: statement("else:")),
            (FOR_RE, self._for),
            (IF_RE, lambda m: statement(f"if {self.parser.parse(m.group(1))}:")),
            (ELSEIF_RE, lambda m: statement(f"elif {self.parser.parse(m.group(1))}:")),
            (CALL_RE, self._call),
            (METHOD_RE, self._method_call),
        ]
        for pattern, replace in passes:
            text = pattern.sub(replace, text)

        return self._report_leftovers(text)

    # ------------------------------------------------------------------
    # tag forms
    # ------------------------------------------------------------------

    def _for(self, match: "re.Match[str]") -> str:
        first, second, collection = match.groups()
        collection = self.parser.parse(collection)
        if second:
            return statement(
                f"for {SIGIL}{first}, {SIGIL}{second} in {Helper.PAIRS.call(collection)}:"
            )
        return statement(f"for {SIGIL}{first} in {collection}:")

    def _call(self, match: "re.Match[str]") -> str:
        name, args = match.group(1), match.group(2).strip()
        compiled = self.parser.parse(f"{name}({args})")

        helper = Helper.lookup(name)
        if helper is not None and helper.statement:
            return statement(compiled)
        if helper is not None and helper.returns_markup:
            return output(compiled)
        return output(f"{CONTEXT_NAME}.e({compiled})")

    def _method_call(self, match: "re.Match[str]") -> str:
        obj, method, args = match.group(1), match.group(2), match.group(3).strip()
        compiled = self.parser.parse(f"{obj}.{method}({args})")
        if method in MARKUP_METHODS:
            return output(compiled)
        return output(f"{CONTEXT_NAME}.e({compiled})")

    # ------------------------------------------------------------------
    # leftovers
    # ------------------------------------------------------------------

    def _report_leftovers(self, text: str) -> str:
        pos = 0
        while True:
            start = text.find("{%", pos)
            if start == -1:
                return text

            line = line_of(text, start)
            close = text.find("%}", start + 2)
            if close == -1:
                marker = self.policy.report(
                    UnterminatedRegionError("control", line, text[start : start + 40])
                )
                return text[:start] + marker + text[start:]

            region = Region(start, close + 2, RegionKind.CONTROL, line)
            inner = region.inner(text).strip()
            if not inner:
                pos = region.end
                continue

            tag = inner.split()[0]
            marker = self.policy.report(UnsupportedTagError(tag, line))
            text = text[:start] + marker + text[start:]
            pos = region.end + len(marker)
