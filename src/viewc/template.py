"""Template compiler facade - control tags first, then interpolations."""

from __future__ import annotations

import hashlib
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from viewc.compiler import (
    ControlStructureCompiler,
    Diagnostic,
    ErrorPolicy,
    ExpressionCompiler,
    ExpressionParser,
    KeywordTable,
)
from viewc.config import CompilerSettings
from viewc.exceptions import TemplateNotFoundError

log = logging.getLogger(__name__)

CACHE_SUFFIX = ".compiled"


@dataclass
class CompileResult:
    """Compiled text plus the problems recorded while producing it."""

    output: str
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics


class TemplateCompiler:
    """Compiles template text, or template files into an on-disk cache."""

    def __init__(
        self,
        settings: Optional[CompilerSettings] = None,
        cache_dir: Optional[Path] = None,
        auto_reload: bool = True,
    ):
        self.settings = settings or CompilerSettings()
        self.cache_dir = Path(cache_dir) if cache_dir else Path(tempfile.gettempdir()) / "viewc"
        self.auto_reload = auto_reload
        self.keywords = KeywordTable()

    def compile_string(self, text: str) -> str:
        return self.compile_string_with_report(text).output

    def compile_string_with_report(self, text: str) -> CompileResult:
        """Compile template text with a fresh pipeline and error policy.

        Raises:
            CompileError: In strict mode, on the first compile problem.
        """
        policy = ErrorPolicy.from_settings(self.settings)
        parser = ExpressionParser(self.settings, policy, self.keywords)

        text = ControlStructureCompiler(parser, policy).compile(text)
        text = ExpressionCompiler(parser, policy).compile(text)
        return CompileResult(text, list(policy.diagnostics))

    def compile(self, path: Path) -> Path:
        """Compile a template file and return the path of the cached result.

        The cached file is reused when auto-reload is off and it is not older
        than the template.
        """
        path = Path(path)
        if not path.is_file():
            raise TemplateNotFoundError(str(path))

        compiled_path = self.cache_path(path)
        if not self.needs_recompilation(path):
            log.debug("Using cached %s for %s", compiled_path, path)
            return compiled_path

        result = self.compile_string_with_report(path.read_text(encoding="utf-8"))
        for diagnostic in result.diagnostics:
            log.info("%s:%s: %s", path, diagnostic.line or "?", diagnostic.message)

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        compiled_path.write_text(result.output, encoding="utf-8")
        log.debug("Compiled %s -> %s", path, compiled_path)
        return compiled_path

    def needs_recompilation(self, path: Path) -> bool:
        if self.auto_reload:
            return True

        compiled_path = self.cache_path(path)
        if not compiled_path.exists():
            return True
        return compiled_path.stat().st_mtime < Path(path).stat().st_mtime

    def cache_path(self, path: Path) -> Path:
        key = hashlib.md5(str(path).encode("utf-8")).hexdigest()
        return self.cache_dir / f"{key}{CACHE_SUFFIX}"

    def clear_cache(self) -> int:
        """Delete every compiled file in the cache directory.

        Returns:
            Number of files removed.
        """
        if not self.cache_dir.is_dir():
            return 0

        removed = 0
        for compiled in self.cache_dir.glob(f"*{CACHE_SUFFIX}"):
            if compiled.is_file():
                compiled.unlink()
                removed += 1
        return removed
