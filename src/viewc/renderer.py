"""Renderer - turns compiled template text into a Python render function."""

from __future__ import annotations

import logging
from typing import Any, Callable

from viewc.compiler.scanner import string_end
from viewc.compiler.spec import CODE_CLOSE, OUTPUT_OPEN, STATEMENT_OPEN
from viewc.exceptions import RenderError, ViewcError

log = logging.getLogger(__name__)

CODE_OPEN = "<?py"
INDENT = "    "
FUNCTION_NAME = "render"

RenderFunction = Callable[[Any, Any], None]


class Renderer:
    """Builds and runs render functions for compiled templates."""

    def __init__(self) -> None:
        self._functions: dict[str, RenderFunction] = {}

    def to_python(self, compiled: str, name: str = "<string>") -> str:
        """Python source of `render(self, ctx)` for compiled template text.

        Statements ending with `:` open a block, `#end...` closes it, and
        `elif`/`else` sit one level above their body.

        Raises:
            RenderError: When blocks are unbalanced or a code marker is not closed.
        """
        lines = [f"def {FUNCTION_NAME}(self, ctx):", f"{INDENT}_append = self.write"]
        blocks: list[str] = []
        empty_block = False

        def emit(code: str, depth: int) -> None:
            nonlocal empty_block
            lines.append(INDENT * (depth + 1) + code)
            empty_block = False

        def close_empty(depth: int) -> None:
            if empty_block:
                emit("pass", depth)

        pos = 0
        while pos < len(compiled):
            start = compiled.find(CODE_OPEN, pos)
            if start == -1:
                emit(f"_append({compiled[pos:]!r})", len(blocks))
                break
            if start > pos:
                emit(f"_append({compiled[pos:start]!r})", len(blocks))

            end = _code_end(compiled, start)
            if end is None:
                raise RenderError(name, f"unclosed code marker at offset {start}")

            if compiled.startswith(OUTPUT_OPEN, start):
                expr = compiled[start + len(OUTPUT_OPEN) : end].strip()
                emit(f"_append(self.to_str({expr}))", len(blocks))
            elif compiled.startswith(STATEMENT_OPEN, start):
                code = compiled[start + len(STATEMENT_OPEN) : end].strip()
                keyword = code.split(None, 1)[0].rstrip(":") if code else ""

                if code.startswith("#end"):
                    opener = code[len("#end") :]
                    if not blocks or blocks[-1] != opener:
                        raise RenderError(name, f"unexpected {code!r}")
                    close_empty(len(blocks))
                    blocks.pop()
                elif keyword in ("elif", "else"):
                    if not blocks or blocks[-1] not in ("if", "for"):
                        raise RenderError(name, f"{keyword!r} outside of a block")
                    close_empty(len(blocks))
                    emit(code, len(blocks) - 1)
                    empty_block = True
                elif code.endswith(":"):
                    emit(code, len(blocks))
                    blocks.append(keyword)
                    empty_block = True
                elif code:
                    emit(code, len(blocks))
            else:
                raise RenderError(name, f"unknown code marker at offset {start}")

            pos = end + len(CODE_CLOSE)

        if blocks:
            raise RenderError(name, f"unclosed {blocks[-1]!r} block")

        return "\n".join(lines) + "\n"

    def build(self, compiled: str, name: str = "<string>") -> RenderFunction:
        """Compile the render function for `compiled`, reusing earlier builds."""
        if compiled in self._functions:
            return self._functions[compiled]

        source = self.to_python(compiled, name)
        namespace: dict[str, Any] = {}
        try:
            code = compile(source, f"<viewc:{name}>", "exec")
        except SyntaxError as e:
            log.debug("Generated source for %s:\n%s", name, source)
            raise RenderError(name, f"invalid compiled code at line {e.lineno}: {e.msg}") from e
        exec(code, namespace)

        function = namespace[FUNCTION_NAME]
        self._functions[compiled] = function
        return function

    def render(self, compiled: str, view: Any, ctx: Any, name: str = "<string>") -> str:
        """Run the render function for `compiled` and return what it wrote.

        `view` must provide `write`, `push_buffer`, `pop_buffer` and `to_str`.
        """
        function = self.build(compiled, name)
        view.push_buffer()
        try:
            function(view, ctx)
        except ViewcError:
            raise
        except Exception as e:
            raise RenderError(name, f"{type(e).__name__}: {e}") from e
        finally:
            content = view.pop_buffer()
        return content


def _code_end(text: str, start: int) -> int | None:
    """Offset of the ` ?>` closing the code marker at `start`, skipping string literals."""
    i = start + len(CODE_OPEN)
    while i < len(text):
        if text[i] in "'\"":
            end = string_end(text, i)
            if end is None:
                return None
            i = end
            continue
        if text.startswith(CODE_CLOSE, i):
            return i
        i += 1
    return None
