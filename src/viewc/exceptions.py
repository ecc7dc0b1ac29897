"""viewc Exceptions

Custom exceptions for the template compiler and the view renderer.
"""

from __future__ import annotations


class ViewcError(Exception):
    """Base exception for all viewc errors."""

    pass


class ConfigError(ViewcError):
    """Raised when a viewc.yaml file cannot be loaded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config {path}: {reason}")


# =============================================================================
# Compile errors
# =============================================================================


class CompileError(ViewcError):
    """Base exception for template compilation failures."""

    pass


class UnterminatedRegionError(CompileError):
    """Raised when a {{ or {% region has no matching close delimiter."""

    def __init__(self, kind: str, line: int, snippet: str = ""):
        self.kind = kind
        self.line = line
        self.snippet = snippet
        super().__init__(f"Unterminated {kind} region at line {line}")


class NonConvergentError(CompileError):
    """Raised when a bounded rewrite stage hits its iteration cap."""

    def __init__(self, stage: str, limit: int, expression: str = ""):
        self.stage = stage
        self.limit = limit
        self.expression = expression
        super().__init__(
            f"{stage} did not converge after {limit} iterations: {expression!r}"
        )


class AmbiguousMemberError(CompileError):
    """Raised when a member could not be classified as property or method."""

    def __init__(self, member: str, expression: str = ""):
        self.member = member
        self.expression = expression
        super().__init__(
            f"Member '{member}' is neither a declared method nor a declared property"
        )


class FilterSyntaxError(CompileError):
    """Raised when a `|filter` segment does not start with a filter name."""

    def __init__(self, segment: str, expression: str = ""):
        self.segment = segment
        self.expression = expression
        super().__init__(f"Malformed filter {segment!r} in {expression!r}")


class UnsupportedTagError(CompileError):
    """Raised when a {% %} tag matches none of the control forms."""

    def __init__(self, tag: str, line: int):
        self.tag = tag
        self.line = line
        super().__init__(f"Unsupported control tag at line {line}: {tag}")


# =============================================================================
# View errors
# =============================================================================


class TemplateNotFoundError(ViewcError):
    """Raised when a template or layout cannot be resolved."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Template not found: {name}")


class RenderError(ViewcError):
    """Raised when compiled template code fails to build or run."""

    def __init__(self, template: str, reason: str):
        self.template = template
        self.reason = reason
        super().__init__(f"Error rendering template '{template}': {reason}")
