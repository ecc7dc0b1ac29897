"""viewc - template compiler and view renderer.

Templates written with `{{ expr }}` interpolations and `{% tag %}` control
structures compile to markup interleaved with Python, which the Renderer
turns into a render function run against a View.
"""

from viewc._version import __version__
from viewc.config import CompilerSettings, ErrorMode, ViewcConfig, ViewSettings
from viewc.exceptions import (
    AmbiguousMemberError,
    CompileError,
    ConfigError,
    FilterSyntaxError,
    NonConvergentError,
    RenderError,
    TemplateNotFoundError,
    UnsupportedTagError,
    UnterminatedRegionError,
    ViewcError,
)
from viewc.renderer import Renderer
from viewc.template import CompileResult, TemplateCompiler
from viewc.view import AppGlobal, Context, View

__all__ = [
    "__version__",
    "AmbiguousMemberError",
    "AppGlobal",
    "CompileError",
    "CompileResult",
    "CompilerSettings",
    "ConfigError",
    "Context",
    "ErrorMode",
    "FilterSyntaxError",
    "NonConvergentError",
    "RenderError",
    "Renderer",
    "TemplateCompiler",
    "TemplateNotFoundError",
    "UnsupportedTagError",
    "UnterminatedRegionError",
    "View",
    "ViewSettings",
    "ViewcConfig",
    "ViewcError",
]
