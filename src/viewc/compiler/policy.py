"""Error policy - decides whether compile problems raise, warn or pass."""

from __future__ import annotations

import logging

from viewc.config import CompilerSettings, ErrorMode
from viewc.exceptions import (
    AmbiguousMemberError,
    CompileError,
    UnsupportedTagError,
    UnterminatedRegionError,
)
from viewc.compiler.spec import Diagnostic

log = logging.getLogger(__name__)


class ErrorPolicy:
    """Collects compile problems for one compilation call.

    strict raises the error, lenient records it and asks the caller to emit
    a visible marker, ignore records it quietly.
    """

    def __init__(self, mode: ErrorMode = ErrorMode.LENIENT, strict_members: bool = False):
        self.mode = ErrorMode(mode)
        self.strict_members = strict_members
        self.diagnostics: list[Diagnostic] = []

    @classmethod
    def from_settings(cls, settings: CompilerSettings) -> "ErrorPolicy":
        return cls(settings.error_mode, settings.strict_members)

    @property
    def strict(self) -> bool:
        return self.mode is ErrorMode.STRICT

    def report(self, error: CompileError) -> str:
        """Handle a compile error.

        Returns:
            Marker text to splice into the output before the offending region
            (empty unless lenient and the error points at a region).
        """
        if isinstance(error, AmbiguousMemberError) and not self.strict_members:
            log.debug("%s", error)
            return ""

        line = getattr(error, "line", None)
        self.diagnostics.append(Diagnostic(type(error).__name__, str(error), line))

        if self.strict:
            raise error

        if self.mode is ErrorMode.IGNORE:
            log.debug("%s", error)
            return ""

        log.warning("%s", error)
        if isinstance(error, (UnterminatedRegionError, UnsupportedTagError)):
            return f"<!-- viewc: {_comment_safe(str(error))} -->"
        return ""


def _comment_safe(text: str) -> str:
    """Keep a message from closing the HTML comment early."""
    return text.replace("--", "- -")
